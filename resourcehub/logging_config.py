"""
Logging configuration module.

Function:
Configures the standard library `logging` module for the whole ResourceHub
backend through `logging.config.dictConfig`:
1. Formatters with UTC ISO-8601 timestamps (`UTCFormatter`).
2. Handlers for the console plus rotating application, error and access logs
   under `logs/`, with timestamped file names.
3. Per-library logger levels (uvicorn, fastapi, psycopg, psycopg.pool, httpx)
   and the `resourcehub` application logger at the configured level.

Interaction:
- `resourcehub.main` calls `setup_logging(settings.log_level)` once at import.
"""

import datetime
import logging
from logging.config import dictConfig
from pathlib import Path
from typing import Any, Dict, Optional


class UTCFormatter(logging.Formatter):
    """Formatter that always renders `asctime` in UTC, whatever the host timezone."""

    def formatTime(
        self, record: logging.LogRecord, datefmt: Optional[str] = None
    ) -> str:
        utc_dt = datetime.datetime.fromtimestamp(record.created, datetime.timezone.utc)
        if datefmt:
            return utc_dt.strftime(datefmt)
        return utc_dt.isoformat(timespec="milliseconds")


LOGS_DIR = Path("logs")
MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUP_COUNT = 5


def _rotating_handler(filename: Path, formatter: str, level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "filename": str(filename),
        "formatter": formatter,
        "level": level,
        "maxBytes": MAX_LOG_BYTES,
        "backupCount": LOG_BACKUP_COUNT,
        "encoding": "utf-8",
    }


def build_logging_config(
    log_level: str = "INFO", logs_dir: Path = LOGS_DIR
) -> Dict[str, Any]:
    """Return the dictConfig mapping; file names carry the UTC start time."""
    timestamp = datetime.datetime.now(datetime.timezone.utc).strftime("%Y%m%d-%H%M%S")
    app_log_file = logs_dir / f"resourcehub_{timestamp}.log"
    error_log_file = logs_dir / f"resourcehub_error_{timestamp}.log"
    access_log_file = logs_dir / f"access_{timestamp}.log"

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "()": UTCFormatter,
                "format": "[%(asctime)s] %(levelname)s %(name)s:%(lineno)d - %(message)s",
            },
            "detailed": {
                "()": UTCFormatter,
                "format": "[%(asctime)s] %(levelname)s [%(name)s:%(filename)s:%(lineno)d] [%(process)d] - %(funcName)s - %(message)s",
            },
            "access": {
                "()": UTCFormatter,
                "format": "[%(asctime)s] [ACCESS] %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "level": log_level,
            },
            "app_file": _rotating_handler(app_log_file, "detailed", "DEBUG"),
            "error_file": _rotating_handler(error_log_file, "detailed", "ERROR"),
            "access_file": _rotating_handler(access_log_file, "access", "INFO"),
        },
        "loggers": {
            "uvicorn": {
                "handlers": ["console", "app_file"],
                "level": "INFO",
                "propagate": False,
            },
            "uvicorn.error": {
                "handlers": ["console", "error_file", "app_file"],
                "level": "INFO",
                "propagate": False,
            },
            "uvicorn.access": {
                "handlers": ["console", "access_file"],
                "level": "INFO",
                "propagate": False,
            },
            "fastapi": {
                "handlers": ["console", "app_file"],
                "level": "INFO",
                "propagate": False,
            },
            "resourcehub": {
                "handlers": ["console", "app_file", "error_file"],
                "level": log_level,
                "propagate": False,
            },
            "psycopg": {
                "handlers": ["console", "app_file"],
                "level": "WARNING",
                "propagate": False,
            },
            "psycopg.pool": {
                "handlers": ["console", "app_file"],
                "level": "INFO",
                "propagate": False,
            },
            "httpx": {
                "handlers": ["console", "app_file"],
                "level": "WARNING",
                "propagate": False,
            },
        },
        "root": {
            "handlers": ["console", "app_file", "error_file"],
            "level": "INFO",
        },
    }


def setup_logging(log_level: str = "INFO", logs_dir: Path = LOGS_DIR) -> None:
    """Apply the logging configuration. Call once at application start."""
    logs_dir.mkdir(parents=True, exist_ok=True)
    config = build_logging_config(log_level, logs_dir)
    dictConfig(config)

    app_logger = logging.getLogger("resourcehub")
    app_logger.info(f"Logging initialized at level {log_level}.")
    app_logger.info(
        f"Application logs will be written to: {config['handlers']['app_file']['filename']}"
    )
    app_logger.info(
        f"Error logs will be written to: {config['handlers']['error_file']['filename']}"
    )
