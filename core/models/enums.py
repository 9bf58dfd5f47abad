"""
Pure Enumeration Types for the Moderation Pipeline.

Defines valid moderation states, notification event types and autoscaler
decision labels. No business logic - pure type definitions only.

Exports:
    ModerationState: Content moderation lifecycle
    NotificationEventType: Notification event kinds
    ScalingDirection: Direction of a proposed pool resize
    ScalingAction: Outcome of one autoscaler tick
    StageOutcome: Result of one successfully settled stage message
"""

from enum import Enum


class ModerationState(str, Enum):
    """
    Moderation lifecycle of one piece of content.

    State transitions:
    - PENDING -> APPROVED -> PUBLISHED (normal flow)
    - PENDING -> REJECTED (classifier said no)

    REJECTED and PUBLISHED are terminal. Values are stored verbatim in the
    content store.
    """

    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    PUBLISHED = "PUBLISHED"


class NotificationEventType(str, Enum):
    """Kinds of notification carried on notification.queue."""

    ARTICLE_APPROVED = "ARTICLE_APPROVED"
    ARTICLE_REJECTED = "ARTICLE_REJECTED"
    ARTICLE_LIKED = "ARTICLE_LIKED"
    COMMENT_CREATED = "COMMENT_CREATED"
    COMMENT_REPLIED = "COMMENT_REPLIED"
    COMMENT_LIKED = "COMMENT_LIKED"


class ScalingDirection(str, Enum):
    """Direction of a proposed pool resize."""

    UP = "up"
    DOWN = "down"
    NONE = "none"


class ScalingAction(str, Enum):
    """What one autoscaler tick ended up doing."""

    RESIZED = "resized"
    NO_CHANGE = "no_change"
    SKIPPED_COOLDOWN = "skipped_cooldown"
    SKIPPED_DEADBAND = "skipped_deadband"
    SKIPPED_PROBE_FAILURE = "skipped_probe_failure"
    SKIPPED_REENTRANT = "skipped_reentrant"


class StageOutcome(str, Enum):
    """What a stage worker did with one message that it settled normally."""

    APPROVED = "approved"
    REJECTED = "rejected"
    PUBLISHED = "published"
    SKIPPED = "skipped"  # Already handled by an earlier delivery, or no longer publishable
