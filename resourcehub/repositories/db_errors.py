"""
Shared failure handling for the PostgreSQL repositories.

- `translate_db_errors` turns timeouts and connection losses into
  `RepositoryUnavailableError` so callers never see driver exceptions.
- `retry_idempotent` retries a read once when it failed that way, unless the
  call is part of a caller-held transaction (which would already be aborted).
"""

import functools
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Awaitable, Callable, TypeVar

import psycopg
import tenacity
from psycopg_pool import PoolTimeout

from resourcehub.core.errors import RepositoryUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# QueryCanceled (statement_timeout) is an OperationalError subclass
UNAVAILABLE_ERRORS = (PoolTimeout, psycopg.OperationalError)


@asynccontextmanager
async def translate_db_errors(operation: str) -> AsyncIterator[None]:
    try:
        yield
    except UNAVAILABLE_ERRORS as e:
        logger.error(f"Database unavailable during '{operation}': {e}", exc_info=True)
        raise RepositoryUnavailableError(operation, e) from e


def retry_idempotent(
    func: Callable[..., Awaitable[T]],
) -> Callable[..., Awaitable[T]]:
    retrying = tenacity.retry(
        stop=tenacity.stop_after_attempt(2),
        retry=tenacity.retry_if_exception_type(RepositoryUnavailableError),
        before_sleep=tenacity.before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )(func)

    @functools.wraps(func)
    async def wrapper(self: Any, *args: Any, **kwargs: Any) -> T:
        if kwargs.get("conn") is not None:
            return await func(self, *args, **kwargs)
        return await retrying(self, *args, **kwargs)

    return wrapper
