"""
External Model Integration Configuration.

Endpoints for the moderation classifier and the embedding generator. Both
are plain JSON-over-HTTP services called through httpx.

Exports:
    IntegrationConfig: Pydantic integration configuration
"""

import os
from typing import Optional
from pydantic import BaseModel, Field

from .defaults import IntegrationDefaults


class IntegrationConfig(BaseModel):
    """Classifier and embedding endpoint settings."""

    classifier_url: str = Field(default=IntegrationDefaults.CLASSIFIER_URL)
    embedding_url: str = Field(default=IntegrationDefaults.EMBEDDING_URL)

    api_key: Optional[str] = Field(
        default=None,
        repr=False,
        description="Bearer token sent to both endpoints"
    )

    classifier_timeout_seconds: float = Field(default=IntegrationDefaults.CLASSIFIER_TIMEOUT_SECONDS, gt=0)
    embedding_timeout_seconds: float = Field(default=IntegrationDefaults.EMBEDDING_TIMEOUT_SECONDS, gt=0)

    embedding_dimensions: int = Field(
        default=IntegrationDefaults.EMBEDDING_DIMENSIONS,
        ge=1,
        description="Fixed dimensionality every embedding must have"
    )

    def debug_dict(self) -> dict:
        return {
            "classifier_url": self.classifier_url,
            "embedding_url": self.embedding_url,
            "api_key": "***MASKED***" if self.api_key else None,
            "classifier_timeout_seconds": self.classifier_timeout_seconds,
            "embedding_timeout_seconds": self.embedding_timeout_seconds,
            "embedding_dimensions": self.embedding_dimensions,
        }

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            classifier_url=os.environ.get("CLASSIFIER_URL", IntegrationDefaults.CLASSIFIER_URL),
            embedding_url=os.environ.get("EMBEDDING_URL", IntegrationDefaults.EMBEDDING_URL),
            api_key=os.environ.get("MODEL_API_KEY"),
            classifier_timeout_seconds=float(os.environ.get("CLASSIFIER_TIMEOUT_SECONDS", str(IntegrationDefaults.CLASSIFIER_TIMEOUT_SECONDS))),
            embedding_timeout_seconds=float(os.environ.get("EMBEDDING_TIMEOUT_SECONDS", str(IntegrationDefaults.EMBEDDING_TIMEOUT_SECONDS))),
            embedding_dimensions=int(os.environ.get("EMBEDDING_DIMENSIONS", str(IntegrationDefaults.EMBEDDING_DIMENSIONS))),
        )
