"""Retry helpers for source requests.

Only failures that are likely to clear within a few seconds are retried
in-call: timeouts, dropped connections and 5xx responses. Rate limits are
left to the rate limiter, whose next ``acquire()`` waits for the reset.
"""

import logging
from typing import Callable, Union

import httpx
from tenacity import retry_if_exception, wait_exponential

from issuestream.core.logging import ContextualLogger

RATE_LIMIT_STATUS_CODES = (403, 429)


def should_retry_on_timeout(exception: BaseException) -> bool:
    """Check if exception is a timeout or connection error that should be retried.

    Args:
        exception: Exception to check

    Returns:
        True if this is a timeout or transient connection exception
    """
    return isinstance(
        exception,
        (
            httpx.ConnectTimeout,
            httpx.ReadTimeout,
            httpx.WriteTimeout,
            httpx.PoolTimeout,
            httpx.ConnectError,
            httpx.RemoteProtocolError,
        ),
    )


def should_retry_on_server_error(exception: BaseException) -> bool:
    """Check if exception is an HTTP 5xx response."""
    if isinstance(exception, httpx.HTTPStatusError):
        return exception.response.status_code >= 500
    return False


def should_retry_on_timeout_or_server_error(exception: BaseException) -> bool:
    """Combined retry condition for timeouts and 5xx responses.

    Example:
        @retry(
            stop=stop_after_attempt(3),
            retry=retry_if_timeout_or_server_error,
            wait=wait_transient_backoff,
            reraise=True,
        )
        async def _get(self, params):
            ...
    """
    return should_retry_on_timeout(exception) or should_retry_on_server_error(exception)


def is_rate_limited(response: httpx.Response) -> bool:
    """Whether a response is GitHub's rate limit rejection.

    GitHub answers primary rate limits with 403 and ``X-RateLimit-Remaining: 0``
    and secondary limits with 403/429 plus ``Retry-After``.
    """
    if response.status_code not in RATE_LIMIT_STATUS_CODES:
        return False
    if response.headers.get("Retry-After"):
        return True
    return response.headers.get("X-RateLimit-Remaining") == "0"


# Exponential backoff for transient errors: 1s, 2s, 4s, max 8s
wait_transient_backoff = wait_exponential(multiplier=1, min=1, max=8)

retry_if_timeout_or_server_error = retry_if_exception(should_retry_on_timeout_or_server_error)


def log_retry_attempt(
    logger: Union[logging.Logger, ContextualLogger], service_name: str = "API"
) -> Callable[..., None]:
    """Create a before_sleep callback that logs retry attempts.

    Args:
        logger: Logger instance to use
        service_name: Name of the service being called (for log messages)

    Returns:
        Callable that can be used as before_sleep in @retry decorator
    """

    def before_sleep(retry_state) -> None:
        exception = retry_state.outcome.exception()
        attempt = retry_state.attempt_number
        wait_time = retry_state.next_action.sleep if retry_state.next_action else 0

        if isinstance(exception, httpx.HTTPStatusError):
            error_desc = f"HTTP {exception.response.status_code}"
        elif isinstance(exception, httpx.TimeoutException):
            error_desc = f"timeout ({type(exception).__name__})"
        elif isinstance(exception, httpx.RequestError):
            error_desc = f"connection error ({type(exception).__name__})"
        else:
            error_desc = f"{type(exception).__name__}: {exception}"

        logger.warning(
            f"{service_name} request failed ({error_desc}), "
            f"retrying in {wait_time:.1f}s (attempt {attempt})"
        )

    return before_sleep
