"""
Retry utilities for handling rate limits and transient errors.

Only infrastructure calls go through here (pool connect, catalog reads, model
calls). Tenant statements are never re-executed after an error.
"""

import asyncio
import logging
import re
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import anthropic
import asyncpg

logger = logging.getLogger(__name__)

T = TypeVar("T")


# SQLSTATE codes that represent transient errors worth retrying.
# All other Postgres errors (syntax, missing relation, permission, etc.) are permanent.
_TRANSIENT_SQLSTATES: frozenset[str] = frozenset({
    "08000",  # connection_exception
    "08001",  # sqlclient_unable_to_establish_sqlconnection
    "08003",  # connection_does_not_exist
    "08004",  # sqlserver_rejected_establishment_of_sqlconnection
    "08006",  # connection_failure
    "53300",  # too_many_connections
    "57P03",  # cannot_connect_now
    "40001",  # serialization_failure
    "40P01",  # deadlock_detected
})

# HTTP statuses from the model API worth retrying (rate limit, server errors, overloaded).
_TRANSIENT_HTTP_STATUSES: frozenset[int] = frozenset({429, 500, 502, 503, 504, 529})


def is_transient_postgres_error(exception: Exception) -> bool:
    """Check if an asyncpg error is transient and worth retrying.

    Postgres errors are classified by SQLSTATE; client-side connection loss
    (``ConnectionDoesNotExistError``, refused sockets) is always transient.
    """
    if isinstance(exception, asyncpg.PostgresError):
        return getattr(exception, "sqlstate", None) in _TRANSIENT_SQLSTATES
    if isinstance(exception, asyncpg.exceptions.ConnectionDoesNotExistError):
        return True
    return isinstance(exception, (ConnectionRefusedError, ConnectionResetError))


def is_transient_llm_error(exception: Exception) -> bool:
    """Check if an Anthropic API error is transient (rate limit, overload, network)."""
    if isinstance(exception, anthropic.APIConnectionError):
        return True
    if isinstance(exception, anthropic.APIStatusError):
        return exception.status_code in _TRANSIENT_HTTP_STATUSES
    return False


async def run_with_retry(
    func: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    initial_delay: float = 5.0,
    backoff_factor: float = 2.0,
    retry_on_rate_limit: bool = True,
) -> T:
    """
    Execute an async function with retry logic for rate limit and transient errors.

    Args:
        func: Async function to execute (no parameters)
        max_retries: Maximum number of attempts
        initial_delay: Initial delay in seconds before first retry
        backoff_factor: Multiplier for delay between retries
        retry_on_rate_limit: Whether to retry on rate limit errors

    Returns:
        Result from the function

    Raises:
        Exception: If max retries exceeded or non-retryable error occurs
    """
    last_exception: Exception | None = None

    for attempt in range(max_retries):
        try:
            return await func()
        except Exception as e:
            last_exception = e

            is_transient_db = is_transient_postgres_error(e)
            is_transient_llm = is_transient_llm_error(e)

            error_str = str(e).lower()
            is_rate_limit = (
                "rate limit" in error_str
                or "rate_limit" in error_str
                or isinstance(e, anthropic.RateLimitError)
            )
            is_connection_error = (
                isinstance(e, (TimeoutError, asyncio.TimeoutError))
                or is_transient_db
                or is_transient_llm
            )

            should_retry = (is_rate_limit or is_connection_error) and retry_on_rate_limit

            if should_retry and attempt < max_retries - 1:
                wait_time_match = re.search(r"(\d+)\s{0,10}seconds?", str(e), re.IGNORECASE)
                if wait_time_match:
                    wait_time = float(wait_time_match.group(1))
                else:
                    wait_time = initial_delay * (backoff_factor**attempt)

                error_type = "transient DB" if is_transient_db else "connection/timeout"
                logger.warning(
                    "Transient %s error detected (%s). Attempt %s/%s. Waiting %.1f seconds before retry...",
                    error_type,
                    e,
                    attempt + 1,
                    max_retries,
                    wait_time,
                )
                await asyncio.sleep(wait_time)
                continue

            raise

    if last_exception:
        raise last_exception
    raise RuntimeError("Max retries exceeded")


def retry_kwargs(max_retries: int = 2, initial_delay: float = 1.0) -> dict[str, Any]:
    """Standard retry arguments for infrastructure calls."""
    return {
        "max_retries": max_retries,
        "initial_delay": initial_delay,
        "backoff_factor": 2.0,
        "retry_on_rate_limit": True,
    }
