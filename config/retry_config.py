"""
Per-Stage Retry Configuration.

Each stage (audit, vector, notification) reads its own retry policy from
environment variables carrying the stage prefix, e.g.
``AUDIT_RETRY_MAX_ATTEMPTS`` or ``VECTOR_RETRY_INITIAL_DELAY_SECONDS``.

Exports:
    RetryConfig: Pydantic retry policy configuration
"""

import os
from pydantic import BaseModel, Field, model_validator

from .defaults import RetryDefaults


class RetryConfig(BaseModel):
    """
    Redelivery policy for one stage.

    ``max_attempts`` counts the first delivery, so the default of 5 means
    one delivery plus four scheduled redeliveries before dead-lettering.
    """

    max_attempts: int = Field(
        default=RetryDefaults.MAX_ATTEMPTS,
        ge=1,
        le=100,
        description="Total attempts including the first delivery"
    )

    initial_delay_seconds: float = Field(
        default=RetryDefaults.INITIAL_DELAY_SECONDS,
        ge=0,
        description="Delay before the first redelivery"
    )

    multiplier: float = Field(
        default=RetryDefaults.MULTIPLIER,
        ge=1.0,
        description="Backoff multiplier applied per failed attempt"
    )

    max_delay_seconds: float = Field(
        default=RetryDefaults.MAX_DELAY_SECONDS,
        ge=0,
        description="Upper bound on any single redelivery delay"
    )

    @model_validator(mode="after")
    def _check_delay_bounds(self):
        if self.max_delay_seconds < self.initial_delay_seconds:
            raise ValueError(
                f"max_delay_seconds ({self.max_delay_seconds}) must be >= "
                f"initial_delay_seconds ({self.initial_delay_seconds})"
            )
        return self

    @classmethod
    def from_environment(cls, prefix: str):
        """
        Load from environment variables.

        Args:
            prefix: Stage prefix without trailing underscore ("AUDIT", "VECTOR")
        """
        return cls(
            max_attempts=int(os.environ.get(f"{prefix}_RETRY_MAX_ATTEMPTS", str(RetryDefaults.MAX_ATTEMPTS))),
            initial_delay_seconds=float(os.environ.get(f"{prefix}_RETRY_INITIAL_DELAY_SECONDS", str(RetryDefaults.INITIAL_DELAY_SECONDS))),
            multiplier=float(os.environ.get(f"{prefix}_RETRY_MULTIPLIER", str(RetryDefaults.MULTIPLIER))),
            max_delay_seconds=float(os.environ.get(f"{prefix}_RETRY_MAX_DELAY_SECONDS", str(RetryDefaults.MAX_DELAY_SECONDS))),
        )
