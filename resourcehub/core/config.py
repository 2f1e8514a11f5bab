# resourcehub/core/config.py

"""
Global configuration module.

Function:
Defines every configuration item of the ResourceHub backend (database
connection, pool sizing, timeouts, superuser token, session secret, logging
level) and loads the values from environment variables and an optional `.env`
file at the project root using Pydantic Settings. A module-level `settings`
object is exposed for the rest of the application.

Interaction:
- Imported by `resourcehub.main` (app title, API prefix, CORS, session),
  `resourcehub.core.db` (pool configuration), `resourcehub.api.dependencies`
  (superuser token) and `alembic/env.py` (database URL).
- Tests build their own `Settings` instances and override the `get_settings`
  dependency.
"""

import os
from typing import List, Literal, Optional

from loguru import logger

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


IS_PYTEST = os.getenv("PYTEST_RUNNING") == "1"

# Project root is two levels up from this file (resourcehub/core/config.py)
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), "..", ".."))
dotenv_path = os.path.join(project_root, ".env")

logger.debug(f"Calculated .env path for Pydantic Settings: {dotenv_path}")


class Settings(BaseSettings):
    """
    Application settings model.

    Field aliases are the environment variable names. Unknown variables in the
    environment or `.env` are ignored.
    """

    model_config = SettingsConfigDict(
        env_file=dotenv_path if os.path.exists(dotenv_path) else None,
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # --- Application ---
    project_name: str = Field(default="ResourceHub", alias="PROJECT_NAME")
    api_prefix: str = Field(default="/api", alias="API_PREFIX")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", alias="LOG_LEVEL"
    )
    environment: str = Field(default="development", alias="ENVIRONMENT")
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")
    cors_origins: List[str] = Field(
        default=[
            "http://localhost",
            "http://localhost:3000",
            "http://localhost:5173",
        ],
        alias="CORS_ORIGINS",
    )

    # --- PostgreSQL ---
    database_url: Optional[str] = Field(default=None, alias="DATABASE_URL")
    pg_pool_min_size: int = Field(default=1, alias="PG_POOL_MIN_SIZE")
    pg_pool_max_size: int = Field(default=10, alias="PG_POOL_MAX_SIZE")
    # Seconds to wait for a free pooled connection
    pg_pool_timeout: float = Field(default=10.0, alias="PG_POOL_TIMEOUT")
    pg_statement_timeout_ms: int = Field(default=5000, alias="PG_STATEMENT_TIMEOUT_MS")

    # --- Authentication ---
    sudo_token: Optional[str] = Field(default=None, alias="SUDO_TOKEN")
    session_secret: Optional[str] = Field(default=None, alias="SESSION_SECRET")
    session_cookie: str = Field(default="resourcehub_session", alias="SESSION_COOKIE")

    # --- Test configuration ---
    test_database_url: Optional[str] = Field(default=None, alias="TEST_DATABASE_URL")

    @field_validator(
        "database_url", "test_database_url", "sudo_token", "session_secret", mode="before"
    )
    @classmethod
    def check_not_empty(
        cls, value: Optional[str], info: ValidationInfo
    ) -> Optional[str]:
        """
        Treat empty strings as "not set".

        `SUDO_TOKEN=""` must never make the empty bearer token valid, and an
        empty `DATABASE_URL` should fail the same way a missing one does.
        """
        if value == "":
            logger.warning(
                f"Configuration field '{info.field_name}' was set to an empty string. "
                f"Treating as None (not set)."
            )
            return None
        return value


try:
    settings = Settings()
    logger.info("Settings loaded successfully.")
    logger.debug(f"Project Name: {settings.project_name}")
    logger.debug(f"Environment: {settings.environment}")
    logger.debug(f"Log Level: {settings.log_level}")

    if IS_PYTEST and settings.test_database_url:
        logger.info(
            f"Running in pytest environment. TEST_DATABASE_URL is set: {settings.test_database_url[:15]}..."
        )
except Exception as e:
    logger.critical(f"Failed to load or validate settings: {e}")
    raise


if not settings.sudo_token:
    logger.warning(
        "SUDO_TOKEN is not set in environment variables or .env file. "
        "No caller can act as superuser."
    )

if not settings.session_secret:
    logger.warning(
        "SESSION_SECRET is not set in environment variables or .env file. "
        "A random secret will be generated and sessions won't survive restarts."
    )
