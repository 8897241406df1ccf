"""Opt-in retry with exponential backoff for evidence-source requests.

GitHub calls run a single attempt by default. Deployments that prefer to
absorb transient 5xx or network errors raise ``github.retry_attempts``;
rate-limit (403) and not-found responses are never retried.
"""

import asyncio
import functools
import random
from dataclasses import dataclass
from typing import Any, Callable, Type, TypeVar

import structlog

logger = structlog.get_logger()

F = TypeVar("F", bound=Callable[..., Any])


@dataclass
class RetryConfig:
    """Attempt budget and backoff shape.

    ``max_attempts`` counts the first call. ``should_retry`` narrows which
    of the ``retryable_exceptions`` are tried again; anything else is
    re-raised on the spot.
    """

    max_attempts: int = 3
    base_delay: float = 1.0
    max_delay: float = 60.0
    exponential_base: float = 2.0
    jitter: bool = True
    retryable_exceptions: tuple[Type[Exception], ...] | None = None
    should_retry: Callable[[Exception], bool] | None = None

    def __post_init__(self) -> None:
        self.max_attempts = max(1, self.max_attempts)
        if not self.retryable_exceptions:
            self.retryable_exceptions = (Exception,)

    def calculate_delay(self, attempt: int) -> float:
        """Seconds to wait after the zero-based ``attempt`` failed."""
        delay = min(self.base_delay * self.exponential_base**attempt, self.max_delay)
        if self.jitter:
            # +/- 25%
            delay *= 0.75 + random.random() * 0.5
        return delay

    def wants_retry(self, error: Exception, attempt: int) -> bool:
        if self.should_retry is not None and not self.should_retry(error):
            return False
        return attempt < self.max_attempts - 1


def async_retry(
    config: RetryConfig | None = None,
    max_attempts: int | None = None,
    base_delay: float | None = None,
    retryable_exceptions: tuple[Type[Exception], ...] | None = None,
) -> Callable[[F], F]:
    """Wrap a coroutine function so failures matching ``config`` are retried.

    Example:
        @async_retry(max_attempts=3, base_delay=0.5)
        async def fetch_profile():
            return await client.get("/users/octocat")
    """
    if config is None:
        config = RetryConfig(
            max_attempts=max_attempts or 3,
            base_delay=1.0 if base_delay is None else base_delay,
            retryable_exceptions=retryable_exceptions,
        )

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except config.retryable_exceptions as e:
                    if not config.wants_retry(e, attempt):
                        if attempt:
                            logger.error(
                                "Giving up after retries",
                                function=func.__name__,
                                attempts=attempt + 1,
                                error=str(e),
                            )
                        raise
                    delay = config.calculate_delay(attempt)
                    logger.warning(
                        "Retrying request",
                        function=func.__name__,
                        attempt=attempt + 1,
                        max_attempts=config.max_attempts,
                        delay=round(delay, 3),
                        error=str(e),
                    )
                    await asyncio.sleep(delay)
                    attempt += 1

        return wrapper  # type: ignore

    return decorator
