"""
Database and resource lifecycle management.

Function:
`lifespan` is the FastAPI lifespan context manager. At startup it opens the
PostgreSQL connection pool (`psycopg_pool.AsyncConnectionPool`) with the
configured checkout timeout and a per-connection `statement_timeout`, and
stores it on `app.state.pg_pool`. At shutdown it closes the pool.

Interaction:
- `resourcehub.main` passes `lifespan` to FastAPI through `functools.partial`
  so that `settings` can be swapped in tests.
- `resourcehub.api.dependencies.get_postgres_pool` reads `app.state.pg_pool`.
"""

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict

import psycopg_pool
from fastapi import FastAPI

from resourcehub.core.config import Settings

logger = logging.getLogger(__name__)


def build_pool(settings: Settings) -> psycopg_pool.AsyncConnectionPool:
    """Create (but do not open) the pool described by `settings`."""
    if not settings.database_url:
        raise RuntimeError("Database URL is not configured, cannot start application.")
    return psycopg_pool.AsyncConnectionPool(
        conninfo=settings.database_url,
        min_size=settings.pg_pool_min_size,
        max_size=settings.pg_pool_max_size,
        timeout=settings.pg_pool_timeout,
        kwargs={"options": f"-c statement_timeout={settings.pg_statement_timeout_ms}"},
        open=False,
    )


@asynccontextmanager
async def lifespan(
    app: FastAPI, settings: Settings
) -> AsyncGenerator[Dict[str, Any], None]:
    """
    Handles application startup and shutdown events.
    Receives settings explicitly to allow for easier testing overrides.
    """
    logger.info("Application lifespan startup: Initializing resources...")
    app.state.pg_pool = None

    if not settings.database_url:
        logger.error(
            "CRITICAL: DATABASE_URL is not configured in settings. Cannot initialize PostgreSQL pool."
        )
        raise RuntimeError("Database URL is not configured, cannot start application.")

    try:
        logger.info("Initializing PostgreSQL pool...")
        pool = build_pool(settings)
        await pool.open(wait=True, timeout=settings.pg_pool_timeout)
        app.state.pg_pool = pool
        logger.info(
            f"PostgreSQL pool ready (min={settings.pg_pool_min_size}, "
            f"max={settings.pg_pool_max_size}, "
            f"statement_timeout={settings.pg_statement_timeout_ms}ms)."
        )
    except Exception as e:
        logger.exception(f"Failed to initialize PostgreSQL pool: {e}")
        raise RuntimeError("PostgreSQL pool initialization failed") from e

    logger.info("Application lifespan startup phase completed successfully.")
    yield {"pg_pool": app.state.pg_pool}

    logger.info("Application lifespan shutdown: Cleaning up resources...")
    pg_pool = getattr(app.state, "pg_pool", None)
    if pg_pool:
        try:
            await pg_pool.close()
            logger.info("PostgreSQL connection pool closed.")
        except Exception as e:
            logger.exception(f"Error closing PostgreSQL pool: {e}")
    app.state.pg_pool = None
    logger.info("Application lifespan shutdown phase completed.")
