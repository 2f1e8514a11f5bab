"""
Alembic environment configuration.

Resolves the database URL (an explicit `sqlalchemy.url` set by the caller,
then the `DATABASE_URL` environment variable, then `resourcehub.core.config`),
adapts it to the psycopg 3 SQLAlchemy dialect and runs the migrations online
or offline. Migrations are raw SQL, so no MetaData is attached.
"""

import os
import sys
from logging.config import fileConfig
from typing import Optional

from dotenv import load_dotenv
from sqlalchemy import engine_from_config, pool

from alembic import context

project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if project_root not in sys.path:
    sys.path.insert(0, project_root)

dotenv_path = os.path.join(project_root, ".env")
if os.path.exists(dotenv_path):
    load_dotenv(dotenv_path=dotenv_path, override=False)

alembic_config = context.config

if alembic_config.config_file_name is not None:
    fileConfig(alembic_config.config_file_name, disable_existing_loggers=False)


def resolve_database_url() -> str:
    db_url: Optional[str] = alembic_config.get_main_option("sqlalchemy.url") or os.getenv(
        "DATABASE_URL"
    )
    if not db_url:
        from resourcehub.core.config import settings

        db_url = settings.database_url
    if not db_url:
        raise RuntimeError(
            "DATABASE_URL is not set in the environment and could not be loaded from settings."
        )

    if db_url.startswith("postgresql://"):
        db_url = db_url.replace("postgresql://", "postgresql+psycopg://", 1)
    elif db_url.startswith("postgres://"):
        db_url = db_url.replace("postgres://", "postgresql+psycopg://", 1)
    return db_url


DB_URL = resolve_database_url()
target_metadata = None


def run_migrations_offline() -> None:
    """Emit the migration SQL without connecting to a database."""
    context.configure(
        url=DB_URL,
        target_metadata=target_metadata,
        literal_binds=True,
        dialect_opts={"paramstyle": "named"},
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    connectable = engine_from_config(
        {"sqlalchemy.url": DB_URL},
        prefix="sqlalchemy.",
        poolclass=pool.NullPool,
    )
    with connectable.connect() as connection:
        context.configure(connection=connection, target_metadata=target_metadata)
        with context.begin_transaction():
            context.run_migrations()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
