# ============================================================================
# STAGE WORKER CONTRACTS
# ============================================================================
# STATUS: Core - Delivery envelope and settlement outcome
# PURPOSE: Carry a received message through the retry middleware and tell
#          the listener how to settle it
# ============================================================================
"""
Stage Worker Contracts

RetryEnvelope: What the listener hands to the retry middleware (body and
the attempt number carried on the message's application properties).
ProcessingOutcome: What the middleware hands back (how to settle the
original delivery).
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from config.defaults import RetryDefaults


class Settlement(str, Enum):
    """How the listener settles the original delivery."""
    COMPLETE = "complete"          # Remove from queue (success, drop, or retry already scheduled)
    DEAD_LETTER = "dead_letter"    # Move to the dead-letter sub-queue (forwarded to *.dlq)
    ABANDON = "abandon"            # Release the lock; broker redelivers


def _read_attempt(properties: Optional[Mapping[Any, Any]]) -> int:
    """Attempt number from application properties (keys may arrive as bytes)."""
    if not properties:
        return 1
    name = RetryDefaults.ATTEMPT_PROPERTY
    raw = properties.get(name, properties.get(name.encode("utf-8")))
    if raw is None:
        return 1
    if isinstance(raw, bytes):
        raw = raw.decode("utf-8")
    try:
        return max(1, int(raw))
    except (TypeError, ValueError):
        return 1


def _redeliveries(message) -> int:
    """Broker redeliveries of this same message (abandoned or lock expired)."""
    try:
        return max(0, int(getattr(message, "delivery_count", 0) or 0) - 1)
    except (TypeError, ValueError):
        return 0


@dataclass(frozen=True)
class RetryEnvelope:
    """
    One delivery as seen by the retry middleware.

    ``attempt_count`` is 1 on the first delivery and is incremented on every
    copy the middleware schedules. Broker redeliveries of the same message
    count as attempts too, so an abandoned delivery still spends the budget.
    """
    body: str
    attempt_count: int = 1

    @classmethod
    def from_message(cls, message) -> "RetryEnvelope":
        """Build from a ServiceBusReceivedMessage (or anything with the same surface)."""
        return cls(
            body=str(message),
            attempt_count=(
                _read_attempt(getattr(message, "application_properties", None))
                + _redeliveries(message)
            ),
        )


@dataclass(frozen=True)
class ProcessingOutcome:
    """Result of running one delivery through the retry middleware."""
    settlement: Settlement
    reason: Optional[str] = None
    description: Optional[str] = None
    retry_scheduled: bool = False
    delay_seconds: Optional[float] = None
    error_code: Optional[str] = None

    @classmethod
    def completed(cls) -> "ProcessingOutcome":
        return cls(settlement=Settlement.COMPLETE)
