"""
Main Application Configuration.

Composes domain-specific configuration modules:
    - QueueConfig (Service Bus topology)
    - DatabaseConfig (PostgreSQL content store)
    - IntegrationConfig (classifier / embedding endpoints)
    - PipelineConfig, TrendConfig (stage worker behaviour)
    - RetryConfig per stage (audit, vector, notification)
    - AutoscalerConfig per autoscaled stage (audit, vector)

Exports:
    AppConfig: Main configuration class

Pattern:
    Composition over inheritance - domain configs are composed, not inherited.
    Per-stage sections reuse one model class with a different env prefix.
"""

import os
from pydantic import BaseModel, Field

from .autoscaler_config import AutoscalerConfig
from .database_config import DatabaseConfig
from .defaults import AppDefaults
from .integration_config import IntegrationConfig
from .pipeline_config import PipelineConfig, TrendConfig
from .queue_config import QueueConfig
from .retry_config import RetryConfig


class AppConfig(BaseModel):
    """
    Application configuration - composition of domain configs.
    """

    # ========================================================================
    # Core Application Settings
    # ========================================================================

    debug_mode: bool = Field(
        default=AppDefaults.DEBUG_MODE,
        description="Enable debug mode for verbose diagnostics"
    )

    environment: str = Field(
        default=AppDefaults.ENVIRONMENT,
        description="Environment name (dev, qa, prod)",
        examples=["dev", "qa", "prod"]
    )

    log_level: str = Field(default=AppDefaults.LOG_LEVEL)

    provision_topology: bool = Field(
        default=AppDefaults.PROVISION_TOPOLOGY,
        description="Create missing queues/topics/subscriptions at startup"
    )

    # ========================================================================
    # Domain Configurations
    # ========================================================================

    queues: QueueConfig = Field(default_factory=QueueConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    integrations: IntegrationConfig = Field(default_factory=IntegrationConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)
    trend: TrendConfig = Field(default_factory=TrendConfig)

    # ========================================================================
    # Per-Stage Policies
    # ========================================================================

    audit_retry: RetryConfig = Field(default_factory=RetryConfig)
    vector_retry: RetryConfig = Field(default_factory=RetryConfig)
    notification_retry: RetryConfig = Field(default_factory=RetryConfig)

    audit_autoscaler: AutoscalerConfig = Field(default_factory=AutoscalerConfig)
    vector_autoscaler: AutoscalerConfig = Field(default_factory=AutoscalerConfig)

    @classmethod
    def from_environment(cls):
        """Load all configs from environment."""
        return cls(
            debug_mode=os.environ.get("DEBUG_MODE", str(AppDefaults.DEBUG_MODE).lower()).lower() == "true",
            environment=os.environ.get("ENVIRONMENT", AppDefaults.ENVIRONMENT),
            log_level=os.environ.get("LOG_LEVEL", AppDefaults.LOG_LEVEL),
            provision_topology=os.environ.get("PROVISION_TOPOLOGY", str(AppDefaults.PROVISION_TOPOLOGY)).lower() == "true",

            queues=QueueConfig.from_environment(),
            database=DatabaseConfig.from_environment(),
            integrations=IntegrationConfig.from_environment(),
            pipeline=PipelineConfig.from_environment(),
            trend=TrendConfig.from_environment(),

            audit_retry=RetryConfig.from_environment("AUDIT"),
            vector_retry=RetryConfig.from_environment("VECTOR"),
            notification_retry=RetryConfig.from_environment("NOTIFICATION"),

            audit_autoscaler=AutoscalerConfig.from_environment("AUDIT"),
            vector_autoscaler=AutoscalerConfig.from_environment("VECTOR"),
        )
