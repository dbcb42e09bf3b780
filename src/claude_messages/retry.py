"""
Claude Messages - Retry Logic

Geometric backoff for the execution engine. The policy is immutable once a
client is built and only governs the engine's own attempt loop.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from functools import wraps
from typing import Awaitable, Callable, Iterator, Optional, TypeVar, Any

from .exceptions import ClaudeError, ConfigurationError, InterceptorError

logger = logging.getLogger(__name__)

T = TypeVar("T")

ErrorHook = Callable[[ClaudeError], None]


@dataclass(frozen=True)
class RetryPolicy:
    """Configuration for retry behavior.

    Attributes:
        max_attempts: Maximum number of retries after the first try (default: 3)
        initial_delay: Delay before the first retry in seconds (default: 0.5)
        max_delay: Upper bound for any delay in seconds (default: 30.0)
        backoff_multiplier: Growth factor between delays (default: 2.0)
    """

    max_attempts: int = 3
    initial_delay: float = 0.5
    max_delay: float = 30.0
    backoff_multiplier: float = 2.0

    def __post_init__(self):
        if self.max_attempts < 0:
            raise ConfigurationError("max_attempts must not be negative")
        if self.initial_delay < 0 or self.max_delay < 0:
            raise ConfigurationError("retry delays must not be negative")
        if self.max_delay < self.initial_delay:
            raise ConfigurationError("max_delay must be at least initial_delay")
        if self.backoff_multiplier <= 0:
            raise ConfigurationError("backoff_multiplier must be positive")

    def next_delay(self, delay: float) -> float:
        """Grow a delay by the multiplier, capped at max_delay."""
        return min(delay * self.backoff_multiplier, self.max_delay)

    def delays(self) -> Iterator[float]:
        """Yield the wait before each retry, in order."""
        delay = self.initial_delay
        for _ in range(self.max_attempts):
            yield delay
            delay = self.next_delay(delay)

    def should_retry(self, error: ClaudeError, attempt: int) -> bool:
        """Determine if an error should be retried.

        Args:
            error: The classified failure
            attempt: Current attempt number (0-indexed)
        """
        if attempt >= self.max_attempts:
            return False
        return error.is_retryable()


# Default retry policy
DEFAULT_RETRY_POLICY = RetryPolicy()

# No retry policy
NO_RETRY_POLICY = RetryPolicy(max_attempts=0)


def _notify(on_error: Optional[ErrorHook], error: ClaudeError):
    # Interceptor failures were already reported when the hook raised
    if on_error is not None and not isinstance(error, InterceptorError):
        on_error(error)


def retry_sync(
    policy: Optional[RetryPolicy] = None,
    on_error: Optional[ErrorHook] = None,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Decorator running a single-attempt function under the retry policy.

    Only ClaudeError is considered; anything else propagates untouched.
    The final error is re-raised as-is.

    Example:
        >>> @retry_sync(RetryPolicy(max_attempts=5))
        ... def send_once():
        ...     return client.execute_chat(request)
    """
    if policy is None:
        policy = DEFAULT_RETRY_POLICY

    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            attempt = 0
            delay = policy.initial_delay

            while True:
                try:
                    return func(*args, **kwargs)

                except ClaudeError as e:
                    if not policy.should_retry(e, attempt):
                        raise

                    _notify(on_error, e)

                    logger.warning(
                        f"Retry {attempt + 1}/{policy.max_attempts} after {delay:.2f}s "
                        f"due to {type(e).__name__}: {e}"
                    )

                    time.sleep(delay)
                    delay = policy.next_delay(delay)
                    attempt += 1

        return wrapper
    return decorator


def retry_async(
    policy: Optional[RetryPolicy] = None,
    on_error: Optional[ErrorHook] = None,
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[T]]]:
    """Decorator for async single-attempt functions with retry logic.

    Example:
        >>> @retry_async(RetryPolicy(max_attempts=5))
        ... async def send_once():
        ...     return await client.execute_chat(request)
    """
    if policy is None:
        policy = DEFAULT_RETRY_POLICY

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> T:
            attempt = 0
            delay = policy.initial_delay

            while True:
                try:
                    return await func(*args, **kwargs)

                except ClaudeError as e:
                    if not policy.should_retry(e, attempt):
                        raise

                    _notify(on_error, e)

                    logger.warning(
                        f"Retry {attempt + 1}/{policy.max_attempts} after {delay:.2f}s "
                        f"due to {type(e).__name__}: {e}"
                    )

                    await asyncio.sleep(delay)
                    delay = policy.next_delay(delay)
                    attempt += 1

        return wrapper
    return decorator
