"""
State Transition Logic for Content Moderation.

Contains business rules for valid moderation state transitions.
Separated from data models for clean architecture.

Exports:
    can_transition: Check if a moderation state transition is valid

Dependencies:
    core.models.enums: ModerationState
"""

from ..models.enums import ModerationState


# Forward-only chain; nothing ever returns to PENDING
_TRANSITIONS = {
    ModerationState.PENDING: [ModerationState.APPROVED, ModerationState.REJECTED],
    ModerationState.APPROVED: [ModerationState.PUBLISHED],
    ModerationState.REJECTED: [],  # Terminal state
    ModerationState.PUBLISHED: [],  # Terminal state
}


def can_transition(current: ModerationState, target: ModerationState) -> bool:
    """
    Check if content can move from current to target moderation state.

    Re-applying the current state is allowed as a no-op, which is what makes
    redelivered terminal transitions idempotent.

    Args:
        current: Current moderation state
        target: Target moderation state

    Returns:
        True if transition is valid, False otherwise
    """
    if current == target:
        return True

    return target in _TRANSITIONS.get(current, [])
