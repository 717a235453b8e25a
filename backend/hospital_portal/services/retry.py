"""
Bounded retry with a deterministic fallback.
No failure memory is kept between calls: every call starts with a fresh attempt
against the remote operation.
"""
import logging
import time
from dataclasses import dataclass
from typing import Callable, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERROR_MARKERS = (
    "quota",
    "rate limit",
    "429",
    "service unavailable",
    "temporary",
)


@dataclass(frozen=True)
class RetryPolicy:
    max_attempts: int = 2
    delay_seconds: float = 2.0
    retryable_markers: Tuple[str, ...] = TRANSIENT_ERROR_MARKERS

    def is_retryable(self, exc: BaseException) -> bool:
        message = str(exc).lower()
        return any(marker in message for marker in self.retryable_markers)


def call_with_fallback(
    operation: Callable[[], T],
    fallback: Callable[[], T],
    policy: RetryPolicy = RetryPolicy(),
    sleep: Callable[[float], None] = time.sleep,
) -> Tuple[T, bool]:
    """
    Run ``operation``; retry transient failures up to ``policy.max_attempts``.

    Returns ``(value, used_fallback)``. Non-transient failures and exhausted
    retries go straight to ``fallback``; the exception is logged, not raised.
    """
    attempt = 0
    while True:
        attempt += 1
        try:
            return operation(), False
        except Exception as exc:
            if policy.is_retryable(exc) and attempt < policy.max_attempts:
                logger.warning(
                    "Attempt %d failed with transient error, retrying in %.1fs: %s",
                    attempt, policy.delay_seconds, exc,
                )
                sleep(policy.delay_seconds)
                continue
            logger.warning("Attempt %d failed, using fallback: %s", attempt, exc)
            return fallback(), True
