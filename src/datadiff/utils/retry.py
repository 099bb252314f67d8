"""
Retry decorators with exponential backoff.

Opening a connection to a busy database server fails transiently often
enough that the CLI and the parallel runner retry it. Errors that will not
go away by waiting (bad credentials, syntax errors, missing tables) are
raised immediately.

Usage:
    from datadiff.utils.retry import retry_database_operation

    @retry_database_operation(max_retries=3)
    def open_connection():
        return psycopg2.connect(dsn)
"""

import logging
import random
import time
from functools import wraps
from typing import Any, Callable

logger = logging.getLogger(__name__)

RETRYABLE_PATTERNS = (
    "connection refused",
    "connection reset",
    "connection closed",
    "connection terminated",
    "could not connect",
    "can't connect",
    "unable to connect",
    "lost connection",
    "server closed the connection",
    "timeout",
    "timed out",
    "deadlock",
    "lock wait timeout",
    "database is locked",
    "broken pipe",
    "network error",
    "communication link failure",
)

# Matched against the lower-cased exception class name
RETRYABLE_TYPES = (
    "connectionerror",
    "timeouterror",
    "operationalerror",
    "interfaceerror",
)

NON_RETRYABLE_PATTERNS = (
    "password authentication failed",
    "login failed",
    "does not exist",
    "no such table",
    "invalid object name",
    "syntax error",
    "permission denied",
)


def is_retryable_db_exception(exception: Exception) -> bool:
    """
    Decide whether a database error is worth retrying.

    Args:
        exception: The exception raised by the driver

    Returns:
        True for transient failures (connectivity, timeouts, deadlocks)
    """
    message = str(exception).lower()
    type_name = type(exception).__name__.lower()

    if any(pattern in message for pattern in NON_RETRYABLE_PATTERNS):
        return False
    if any(pattern in message for pattern in RETRYABLE_PATTERNS):
        return True
    return type_name in RETRYABLE_TYPES


def _backoff_delay(attempt: int, base_delay: float, max_delay: float,
                   exponential_base: float, jitter: bool) -> float:
    delay = min(base_delay * (exponential_base ** attempt), max_delay)
    if jitter:
        spread = delay * 0.25
        delay = max(0.1, delay + random.uniform(-spread, spread))
    return delay


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    exponential_base: float = 2.0,
    jitter: bool = True,
    should_retry: Callable[[Exception], bool] | None = None,
    on_retry: Callable[[int, Exception, float], None] | None = None,
):
    """
    Decorator that retries a function with exponential backoff.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Delay before the first retry in seconds
        max_delay: Upper bound for a single delay
        exponential_base: Growth factor of the delay
        jitter: Randomize delays by +/-25%
        should_retry: Predicate selecting retryable exceptions (default: all)
        on_retry: Callback(attempt, exception, delay) invoked before sleeping

    Returns:
        Decorated function
    """
    def decorator(func: Callable) -> Callable:
        @wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            func_name = getattr(func, "__name__", "function")
            attempt = 0
            while True:
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    if should_retry is not None and not should_retry(e):
                        logger.error(f"Non-retryable error in {func_name}: {type(e).__name__}: {e}")
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            f"Max retries ({max_retries}) exceeded for {func_name}: "
                            f"{type(e).__name__}: {e}"
                        )
                        raise

                    delay = _backoff_delay(attempt, base_delay, max_delay, exponential_base, jitter)
                    attempt += 1
                    logger.warning(
                        f"Attempt {attempt}/{max_retries} failed for {func_name}: "
                        f"{type(e).__name__}: {e}. Retrying in {delay:.2f}s..."
                    )
                    if on_retry:
                        try:
                            on_retry(attempt, e, delay)
                        except Exception as callback_error:
                            logger.error(f"Error in retry callback: {callback_error}")
                    time.sleep(delay)

        return wrapper
    return decorator


def retry_database_operation(
    max_retries: int = 3,
    base_delay: float = 1.0,
    on_retry: Callable[[int, Exception, float], None] | None = None,
):
    """
    Retry only transient database errors.

    Args:
        max_retries: Maximum number of retry attempts
        base_delay: Delay before the first retry in seconds
        on_retry: Callback(attempt, exception, delay) invoked before sleeping
    """
    return retry_with_backoff(
        max_retries=max_retries,
        base_delay=base_delay,
        should_retry=is_retryable_db_exception,
        on_retry=on_retry,
    )
