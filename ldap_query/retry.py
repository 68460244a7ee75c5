"""
Retry helpers for establishing directory connections.

Only opening and binding the connection is retried. Searches and
modifications report failure to the caller on the first attempt.
"""

import logging
import time
from typing import Any, Callable, Optional, Tuple, Type

from ldap3.core.exceptions import LDAPBindError, LDAPSocketOpenError

logger = logging.getLogger(__name__)

# Errors after which the server may accept a later attempt
CONNECT_ERRORS = (LDAPSocketOpenError, LDAPBindError)


class MaxRetriesExceeded(Exception):
    """Raised when maximum retry attempts are exceeded."""

    def __init__(self, attempts: int, last_exception: Exception):
        self.attempts = attempts
        self.last_exception = last_exception
        super().__init__(f"Failed after {attempts} attempts: {last_exception}")


def retry_call(
    func: Callable,
    args: tuple = (),
    kwargs: Optional[dict] = None,
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 1.0,
    exceptions: Tuple[Type[Exception], ...] = CONNECT_ERRORS,
    on_retry: Optional[Callable[[int, Exception], None]] = None
) -> Any:
    """
    Call a function, retrying when it raises one of ``exceptions``.

    Args:
        func: Function to call
        args: Positional arguments for function
        kwargs: Keyword arguments for function
        max_attempts: Total number of attempts, including the first
        delay: Seconds to wait before the first retry
        backoff: Multiplier applied to the delay after each retry
        exceptions: Exception types that trigger a retry
        on_retry: Called with the attempt number and error before each retry

    Returns:
        Function result

    Raises:
        MaxRetriesExceeded: If every attempt failed
    """
    kwargs = kwargs or {}
    last_exception = None
    current_delay = delay

    for attempt in range(max_attempts):
        try:
            result = func(*args, **kwargs)
            if attempt > 0:
                logger.info(f"Operation succeeded on attempt {attempt + 1}")
            return result
        except exceptions as e:
            last_exception = e

            if attempt == max_attempts - 1:
                break

            logger.debug(f"Attempt {attempt + 1} failed with {type(e).__name__}: {e}")
            if on_retry:
                on_retry(attempt + 1, e)

            time.sleep(current_delay)
            current_delay *= backoff

    raise MaxRetriesExceeded(max_attempts, last_exception)


def create_retry_callback(operation_name: str) -> Callable[[int, Exception], None]:
    """Build an ``on_retry`` callback that logs a warning per failed attempt."""
    def on_retry(attempt: int, exception: Exception):
        logger.warning(f"{operation_name} failed on attempt {attempt}, "
                       f"retrying due to {type(exception).__name__}: {exception}")

    return on_retry
