"""
Retry service for outbound provider calls.

Provides a bounded retry loop with an explicit attempt counter. Only
transient network failures (timeouts, refused connections, DNS errors) are
retried; HTTP error statuses are never retried here.
"""

import asyncio
import functools
import logging
from typing import Any, Callable, Optional, Tuple, Type

import aiohttp

logger = logging.getLogger(__name__)

# Timeout, connection refused and DNS failure. ClientConnectorError covers
# both refused connections and name resolution errors.
TRANSIENT_EXCEPTIONS: Tuple[Type[Exception], ...] = (
    asyncio.TimeoutError,
    aiohttp.ServerTimeoutError,
    aiohttp.ClientConnectorError,
    ConnectionRefusedError,
)


class RetryError(Exception):
    """Exception raised when all retry attempts are exhausted."""

    def __init__(self, message: str, last_exception: Exception, attempts: int):
        self.message = message
        self.last_exception = last_exception
        self.attempts = attempts
        super().__init__(message)


class RetryConfig:
    """Configuration for retry behavior."""

    def __init__(self, max_attempts: int = 3, delay: float = 1.0):
        """
        Initialize retry configuration.

        Args:
            max_attempts: Total number of attempts, including the first one
            delay: Fixed delay in seconds between attempts
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.max_attempts = max_attempts
        self.delay = delay


def should_retry_exception(
    exception: Exception,
    retryable_exceptions: Tuple[Type[Exception], ...] = TRANSIENT_EXCEPTIONS,
) -> bool:
    """
    Determine if an exception should trigger a retry.

    Args:
        exception: The exception that occurred
        retryable_exceptions: Tuple of exception types that should be retried

    Returns:
        True if the exception should be retried, False otherwise
    """
    # Response errors carry an HTTP status and are never transient
    if isinstance(exception, aiohttp.ClientResponseError):
        return False

    return isinstance(exception, retryable_exceptions)


def retry_async(
    config: RetryConfig,
    retryable_exceptions: Tuple[Type[Exception], ...] = TRANSIENT_EXCEPTIONS,
    log_attempts: bool = True,
) -> Callable:
    """
    Decorator for asynchronous functions with retry logic.

    Args:
        config: Retry configuration
        retryable_exceptions: Tuple of exception types to retry on
        log_attempts: Whether to log retry attempts

    Returns:
        Decorator function
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> Any:
            last_exception: Optional[Exception] = None
            attempt = 0

            while attempt < config.max_attempts:
                attempt += 1
                try:
                    result = await func(*args, **kwargs)
                    if attempt > 1 and log_attempts:
                        logger.info(
                            "Function %s succeeded on attempt %d/%d",
                            func.__name__,
                            attempt,
                            config.max_attempts,
                        )
                    return result

                except Exception as e:  # pylint: disable=broad-exception-caught
                    if not should_retry_exception(e, retryable_exceptions):
                        raise

                    last_exception = e
                    if attempt == config.max_attempts:
                        break

                    delay = config.delay
                    if log_attempts:
                        logger.warning(
                            "Function %s failed on attempt %d/%d: %r. Retrying in %.2f seconds",  # pylint: disable=line-too-long
                            func.__name__,
                            attempt,
                            config.max_attempts,
                            e,
                            delay,
                        )
                    await asyncio.sleep(delay)

            if log_attempts:
                logger.error(
                    "Function %s failed after %d attempts. Last error: %r",
                    func.__name__,
                    attempt,
                    last_exception,
                )
            raise RetryError(
                f"Function {func.__name__} failed after {attempt} attempts",
                last_exception,
                attempt,
            )

        return wrapper

    return decorator


def api_retry(config: RetryConfig) -> Callable:
    """
    Retry decorator for external API calls.

    Retries on timeouts, refused connections and DNS failures only.
    """
    return retry_async(config, TRANSIENT_EXCEPTIONS)
