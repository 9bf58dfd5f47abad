"""
AppConfig and per-stage config tests: environment loading and validation.
"""

import pytest
from pydantic import ValidationError

from config import AppConfig, AutoscalerConfig, RetryConfig, debug_config, get_config
from config.database_config import DatabaseConfig
from config.defaults import AutoscalerDefaults, QueueDefaults, RetryDefaults


class TestDefaults:

    def test_defaults_without_env(self, clean_env):
        config = AppConfig.from_environment()
        assert config.queues.audit.queue == QueueDefaults.AUDIT_QUEUE
        assert config.queues.audit.dead_letter_queue == "audit.dlq"
        assert config.queues.vector.dead_letter_exchange == "vector.dlx"
        assert config.queues.notification_routing_key == "notification.routing.key"
        assert config.audit_retry.max_attempts == RetryDefaults.MAX_ATTEMPTS
        assert config.vector_autoscaler.max_workers == AutoscalerDefaults.MAX_WORKERS
        assert config.pipeline.system_actor_id == -1
        assert config.trend.enabled is False
        assert config.provision_topology is False

    def test_debug_config_masks_secrets(self, clean_env):
        clean_env.setenv("ServiceBusConnection", "Endpoint=sb://x/;SharedAccessKey=secret")
        clean_env.setenv("POSTGRES_PASSWORD", "hunter2")
        clean_env.setenv("MODEL_API_KEY", "sk-123")
        dumped = str(debug_config())
        assert "secret" not in dumped
        assert "hunter2" not in dumped
        assert "sk-123" not in dumped
        assert "***MASKED***" in dumped


class TestPerStageEnv:

    def test_stage_prefixes_are_independent(self, clean_env):
        clean_env.setenv("AUDIT_RETRY_MAX_ATTEMPTS", "3")
        clean_env.setenv("VECTOR_RETRY_INITIAL_DELAY_SECONDS", "0.5")
        clean_env.setenv("VECTOR_AUTOSCALER_MAX_WORKERS", "8")
        clean_env.setenv("AUDIT_AUTOSCALER_ENABLED", "false")

        config = AppConfig.from_environment()

        assert config.audit_retry.max_attempts == 3
        assert config.vector_retry.max_attempts == RetryDefaults.MAX_ATTEMPTS
        assert config.vector_retry.initial_delay_seconds == 0.5
        assert config.vector_autoscaler.max_workers == 8
        assert config.audit_autoscaler.max_workers == AutoscalerDefaults.MAX_WORKERS
        assert config.audit_autoscaler.enabled is False
        assert config.vector_autoscaler.enabled is True

    def test_singleton_rereads_after_reset(self, clean_env):
        from config import reset_config
        clean_env.setenv("SYSTEM_ACTOR_ID", "-99")
        reset_config()
        assert get_config().pipeline.system_actor_id == -99
        assert get_config() is get_config()

    def test_managed_identity_omits_password(self, clean_env):
        clean_env.setenv("USE_MANAGED_IDENTITY", "true")
        clean_env.setenv("POSTGRES_PASSWORD", "pw")
        assert "password" not in DatabaseConfig.from_environment().connection_string

    def test_password_in_conninfo(self, clean_env):
        clean_env.setenv("POSTGRES_PASSWORD", "pw")
        assert "password=pw" in DatabaseConfig.from_environment().connection_string

    def test_users_table_from_env(self, clean_env):
        assert DatabaseConfig.from_environment().users_table is None
        clean_env.setenv("USERS_TABLE", "accounts.users")
        assert DatabaseConfig.from_environment().users_table == "accounts.users"


class TestValidation:

    def test_min_workers_above_max_rejected(self):
        with pytest.raises(ValidationError):
            AutoscalerConfig(min_workers=10, max_workers=5)

    def test_non_positive_tick_rejected(self):
        with pytest.raises(ValidationError):
            AutoscalerConfig(tick_interval_seconds=0)

    def test_zero_attempts_rejected(self):
        with pytest.raises(ValidationError):
            RetryConfig(max_attempts=0)

    def test_max_delay_below_initial_rejected(self):
        with pytest.raises(ValidationError):
            RetryConfig(initial_delay_seconds=5.0, max_delay_seconds=1.0)

    def test_multiplier_below_one_rejected(self):
        with pytest.raises(ValidationError):
            RetryConfig(multiplier=0.5)

    def test_invalid_env_surfaces_as_error(self, clean_env):
        clean_env.setenv("AUDIT_AUTOSCALER_MIN_WORKERS", "30")
        with pytest.raises(ValidationError):
            AppConfig.from_environment()
