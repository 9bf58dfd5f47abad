"""
Config test fixtures: clean environment via monkeypatch.
"""

import pytest


@pytest.fixture
def clean_env(monkeypatch):
    """Remove all env vars that config modules might read, for isolation."""
    env_vars_to_clear = [
        "ServiceBusConnection", "SERVICE_BUS_NAMESPACE",
        "ServiceBusConnection__fullyQualifiedNamespace",
        "POSTGRES_HOST", "POSTGRES_PORT", "POSTGRES_DB", "POSTGRES_USER",
        "POSTGRES_PASSWORD", "APP_SCHEMA", "USERS_TABLE", "USE_MANAGED_IDENTITY",
        "CLASSIFIER_URL", "EMBEDDING_URL", "MODEL_API_KEY", "EMBEDDING_DIMENSIONS",
        "LOOKUP_RETRY_DELAY_SECONDS", "BODY_EXCERPT_CHARS", "SYSTEM_ACTOR_ID",
        "NOTIFICATION_MAX_PENDING", "NOTIFICATION_WORKERS", "SHUTDOWN_TIMEOUT_SECONDS",
        "TREND_VECTOR_ENABLED", "TREND_VECTOR_TOP_N", "TREND_VECTOR_REFRESH_SECONDS",
        "PROVISION_TOPOLOGY", "LOG_LEVEL", "DEBUG_MODE", "ENVIRONMENT",
        "AUDIT_QUEUE", "VECTOR_QUEUE", "NOTIFICATION_QUEUE",
    ]
    for stage in ("AUDIT", "VECTOR", "NOTIFICATION"):
        for suffix in ("MAX_ATTEMPTS", "INITIAL_DELAY_SECONDS", "MULTIPLIER", "MAX_DELAY_SECONDS"):
            env_vars_to_clear.append(f"{stage}_RETRY_{suffix}")
    for stage in ("AUDIT", "VECTOR"):
        for suffix in ("ENABLED", "MIN_WORKERS", "MAX_WORKERS", "DEADBAND", "EMERGENCY_THRESHOLD",
                       "SCALE_UP_COOLDOWN_SECONDS", "SCALE_DOWN_COOLDOWN_SECONDS", "KP", "KI", "KD"):
            env_vars_to_clear.append(f"{stage}_AUTOSCALER_{suffix}")
    for var in env_vars_to_clear:
        monkeypatch.delenv(var, raising=False)
    return monkeypatch
