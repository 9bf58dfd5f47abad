"""
Configuration Package - Domain-Specific Configuration Modules

This package provides application configuration using a composition-based approach.

Structure:
    config/
    ├── __init__.py              # This file - exports and singleton
    ├── app_config.py            # Main config (composes domain configs)
    ├── defaults.py              # Default values for every field
    ├── queue_config.py          # Service Bus topology
    ├── database_config.py       # PostgreSQL content store
    ├── integration_config.py    # Classifier / embedding endpoints
    ├── pipeline_config.py       # Stage worker behaviour, trend vector
    ├── retry_config.py          # Per-stage retry policy
    └── autoscaler_config.py     # Per-stage autoscaler tuning

Usage:
    # Singleton pattern (preferred)
    from config import get_config
    config = get_config()
    max_workers = config.audit_autoscaler.max_workers

    # Debug output
    from config import debug_config
    info = debug_config()  # Secrets masked
"""

from typing import Optional

from .autoscaler_config import AutoscalerConfig
from .database_config import DatabaseConfig
from .integration_config import IntegrationConfig
from .pipeline_config import PipelineConfig, TrendConfig
from .queue_config import QueueConfig, QueueNames, StageTopology
from .retry_config import RetryConfig
from .app_config import AppConfig


# ============================================================================
# SINGLETON PATTERN
# ============================================================================

_config_instance: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """
    Get global configuration singleton.

    Returns:
        AppConfig instance loaded from environment
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = AppConfig.from_environment()
    return _config_instance


def reset_config() -> None:
    """Drop the cached singleton so the next get_config() re-reads the environment."""
    global _config_instance
    _config_instance = None


def debug_config() -> dict:
    """
    Get sanitized configuration for debugging (masks sensitive values).

    Returns:
        Dictionary with configuration values, secrets masked
    """
    try:
        config = get_config()
        return {
            'queues': config.queues.debug_dict(),
            'database': config.database.debug_dict(),
            'integrations': config.integrations.debug_dict(),
            'pipeline': config.pipeline.model_dump(),
            'trend': config.trend.model_dump(),
            'retry': {
                'audit': config.audit_retry.model_dump(),
                'vector': config.vector_retry.model_dump(),
                'notification': config.notification_retry.model_dump(),
            },
            'autoscaler': {
                'audit': config.audit_autoscaler.model_dump(),
                'vector': config.vector_autoscaler.model_dump(),
            },
            'debug_mode': config.debug_mode,
            'environment': config.environment,
            'log_level': config.log_level,
        }
    except Exception as e:
        return {'error': f'Configuration validation failed: {e}'}


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    'AppConfig',
    'get_config',
    'reset_config',
    'debug_config',
    'QueueConfig',
    'QueueNames',
    'StageTopology',
    'DatabaseConfig',
    'IntegrationConfig',
    'PipelineConfig',
    'TrendConfig',
    'RetryConfig',
    'AutoscalerConfig',
]
