"""
Retry Policy - Exponential Backoff With a Cap.

Pure policy object; the retry middleware in ``stage_worker`` applies it to
live messages.

Attempts are 1-based and include the first delivery. After failed attempt
``n`` the message is redelivered after

    min(initial_delay * multiplier ** (n - 1), max_delay)

as long as ``n < max_attempts``. With the defaults (5, 1s, x2, 10s) the
redelivery delays are 1s, 2s, 4s, 8s and the fifth failure dead-letters.

Exports:
    RetryPolicy: Immutable backoff policy
"""

from dataclasses import dataclass
from typing import List

from config import RetryConfig
from config.defaults import RetryDefaults
from core.errors import ErrorClassification


@dataclass(frozen=True)
class RetryPolicy:
    """Redelivery policy for one stage."""

    max_attempts: int = RetryDefaults.MAX_ATTEMPTS
    initial_delay_seconds: float = RetryDefaults.INITIAL_DELAY_SECONDS
    multiplier: float = RetryDefaults.MULTIPLIER
    max_delay_seconds: float = RetryDefaults.MAX_DELAY_SECONDS

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")

    @classmethod
    def from_config(cls, config: RetryConfig) -> "RetryPolicy":
        return cls(
            max_attempts=config.max_attempts,
            initial_delay_seconds=config.initial_delay_seconds,
            multiplier=config.multiplier,
            max_delay_seconds=config.max_delay_seconds,
        )

    def can_retry(self, attempt: int) -> bool:
        """True if failed attempt ``attempt`` may be followed by another."""
        return attempt < self.max_attempts

    def backoff_delay(self, attempt: int, classification: ErrorClassification = ErrorClassification.TRANSIENT) -> float:
        """
        Delay before redelivering after failed attempt ``attempt``.

        Throttling failures wait the full cap.
        """
        if classification == ErrorClassification.THROTTLING:
            return self.max_delay_seconds
        exponent = max(0, attempt - 1)
        return min(self.initial_delay_seconds * (self.multiplier ** exponent), self.max_delay_seconds)

    def schedule(self) -> List[float]:
        """Every redelivery delay the policy will ever use, in order."""
        return [self.backoff_delay(n) for n in range(1, self.max_attempts)]
