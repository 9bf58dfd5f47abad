"""
Stage Worker Configuration.

Settings that shape how the two stage workers and the notification path
behave, independent of broker or database wiring.

Exports:
    PipelineConfig: Stage worker behaviour
    TrendConfig: Global trend vector refresh
"""

import os
from pydantic import BaseModel, Field

from .defaults import PipelineDefaults, TrendDefaults


class PipelineConfig(BaseModel):
    """Stage worker behaviour."""

    lookup_retry_delay_seconds: float = Field(
        default=PipelineDefaults.LOOKUP_RETRY_DELAY_SECONDS,
        ge=0,
        description="Wait before the single retry of a moderation lookup miss"
    )

    body_excerpt_chars: int = Field(
        default=PipelineDefaults.BODY_EXCERPT_CHARS,
        ge=1,
        description="Maximum body characters sent to the classifier"
    )

    system_actor_id: int = Field(
        default=PipelineDefaults.SYSTEM_ACTOR_ID,
        description="Actor id used for notifications the pipeline emits itself"
    )

    notification_max_pending: int = Field(
        default=PipelineDefaults.NOTIFICATION_MAX_PENDING,
        ge=1,
        description="Bound on queued-but-unsent notifications; overflow is dropped"
    )

    notification_workers: int = Field(
        default=PipelineDefaults.NOTIFICATION_WORKERS,
        ge=0,
        description="Fixed consumer count for notification.queue (0 disables)"
    )

    shutdown_timeout_seconds: float = Field(default=PipelineDefaults.SHUTDOWN_TIMEOUT_SECONDS, gt=0)

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            lookup_retry_delay_seconds=float(os.environ.get("LOOKUP_RETRY_DELAY_SECONDS", str(PipelineDefaults.LOOKUP_RETRY_DELAY_SECONDS))),
            body_excerpt_chars=int(os.environ.get("BODY_EXCERPT_CHARS", str(PipelineDefaults.BODY_EXCERPT_CHARS))),
            system_actor_id=int(os.environ.get("SYSTEM_ACTOR_ID", str(PipelineDefaults.SYSTEM_ACTOR_ID))),
            notification_max_pending=int(os.environ.get("NOTIFICATION_MAX_PENDING", str(PipelineDefaults.NOTIFICATION_MAX_PENDING))),
            notification_workers=int(os.environ.get("NOTIFICATION_WORKERS", str(PipelineDefaults.NOTIFICATION_WORKERS))),
            shutdown_timeout_seconds=float(os.environ.get("SHUTDOWN_TIMEOUT_SECONDS", str(PipelineDefaults.SHUTDOWN_TIMEOUT_SECONDS))),
        )


class TrendConfig(BaseModel):
    """Global trend vector refresh."""

    enabled: bool = Field(default=TrendDefaults.ENABLED)
    top_n: int = Field(default=TrendDefaults.TOP_N, ge=1)
    refresh_interval_seconds: float = Field(default=TrendDefaults.REFRESH_INTERVAL_SECONDS, gt=0)

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            enabled=os.environ.get("TREND_VECTOR_ENABLED", str(TrendDefaults.ENABLED)).lower() == "true",
            top_n=int(os.environ.get("TREND_VECTOR_TOP_N", str(TrendDefaults.TOP_N))),
            refresh_interval_seconds=float(os.environ.get("TREND_VECTOR_REFRESH_SECONDS", str(TrendDefaults.REFRESH_INTERVAL_SECONDS))),
        )
