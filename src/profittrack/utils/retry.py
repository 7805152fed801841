"""Retry policy and executor with linear backoff."""
import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from .exceptions import CompletionError, ErrorKind
from .logger import get_logger

logger = get_logger()

T = TypeVar("T")

MAX_RETRIES = 2
RETRY_DELAY_SECONDS = 2.0


@dataclass(frozen=True)
class RetryDecision:
    """Whether to try again, and how long to wait first."""
    retry: bool
    delay: float = 0.0


def retry_policy(
    kind: ErrorKind,
    attempt: int,
    max_retries: int = MAX_RETRIES,
    retry_delay: float = RETRY_DELAY_SECONDS
) -> RetryDecision:
    """
    Decide what to do after a failed attempt.

    Args:
        kind: Classified failure of the attempt
        attempt: 1-based number of the attempt that just failed
        max_retries: Additional attempts allowed after the first one
        retry_delay: Base delay in seconds, multiplied by the retry number

    Returns:
        RetryDecision
    """
    if not kind.retryable:
        return RetryDecision(retry=False)
    if attempt > max_retries:
        return RetryDecision(retry=False)
    return RetryDecision(retry=True, delay=retry_delay * attempt)


async def call_with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = MAX_RETRIES,
    retry_delay: float = RETRY_DELAY_SECONDS,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    name: str = "operation"
) -> T:
    """
    Run an async operation, retrying classified failures per retry_policy.

    Only CompletionError is retried; any other exception propagates at once.
    The last CompletionError is re-raised when no further attempt is allowed.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return await operation()
        except CompletionError as e:
            decision = retry_policy(e.kind, attempt, max_retries, retry_delay)
            if not decision.retry:
                if e.retryable:
                    logger.error(f"Max retries ({max_retries}) exceeded for {name}: {e}")
                else:
                    logger.error(f"Terminal failure in {name}, not retrying: {e}")
                raise

            logger.warning(
                f"Retry {attempt}/{max_retries} for {name} "
                f"after {decision.delay:.1f}s: {e}"
            )
            await sleep(decision.delay)
