"""
Configuration Defaults - Single source of truth for all default values.

Every pydantic config model in this package takes its ``Field`` defaults
from here, so tuning a default is a one-line change.

Organization:
    - QueueDefaults: Service Bus topology names and client settings
    - RetryDefaults: Per-stage redelivery policy
    - AutoscalerDefaults: Feedback-controlled pool sizing
    - PipelineDefaults: Stage worker behaviour
    - IntegrationDefaults: Classifier / embedding endpoints
    - DatabaseDefaults: PostgreSQL content store
    - TrendDefaults: Global trend vector refresh
    - AppDefaults: Process-wide settings

Usage:
    from config.defaults import AutoscalerDefaults

    min_workers: int = Field(default=AutoscalerDefaults.MIN_WORKERS, ...)
"""


# =============================================================================
# QUEUE DEFAULTS
# =============================================================================

class QueueDefaults:
    """
    Service Bus topology.

    Names are stable wire contracts shared with the content producers.
    Each stage queue dead-letters into a topic whose single subscription
    forwards to the stage's inspection queue:

        audit.queue  -> audit.dlx  --(audit.dead)-->  audit.dlq
        vector.queue -> vector.dlx --(vector.dead)--> vector.dlq
    """

    # Stage 1 - moderation
    AUDIT_QUEUE = "audit.queue"
    AUDIT_DLX = "audit.dlx"
    AUDIT_DEAD_ROUTING = "audit.dead"
    AUDIT_DLQ = "audit.dlq"

    # Stage 2 - vectorize and publish
    VECTOR_QUEUE = "vector.queue"
    VECTOR_DLX = "vector.dlx"
    VECTOR_DEAD_ROUTING = "vector.dead"
    VECTOR_DLQ = "vector.dlq"

    # Notifications (exchange + routing key fan-out)
    NOTIFICATION_EXCHANGE = "notification.exchange"
    NOTIFICATION_ROUTING_KEY = "notification.routing.key"
    NOTIFICATION_QUEUE = "notification.queue"

    # Broker-side backstop; the retry middleware normally settles first
    MAX_DELIVERY_COUNT = 10
    LOCK_DURATION_SECONDS = 60

    # Client settings
    RECEIVE_WAIT_SECONDS = 5
    PREFETCH_COUNT = 1
    SEND_RETRY_COUNT = 3
    SEND_RETRY_BASE_DELAY_SECONDS = 0.5


# =============================================================================
# RETRY DEFAULTS
# =============================================================================

class RetryDefaults:
    """
    Redelivery policy applied per stage.

    MAX_ATTEMPTS counts the first delivery. Delay after failed attempt n is
    min(INITIAL_DELAY * MULTIPLIER ** (n - 1), MAX_DELAY): 1s, 2s, 4s, 8s.
    """

    MAX_ATTEMPTS = 5
    INITIAL_DELAY_SECONDS = 1.0
    MULTIPLIER = 2.0
    MAX_DELAY_SECONDS = 10.0

    ATTEMPT_PROPERTY = "attempt_count"


# =============================================================================
# AUTOSCALER DEFAULTS
# =============================================================================

class AutoscalerDefaults:
    """
    Consumer pool autoscaling.

    Scale-up cooldown is short to absorb bursts; scale-down cooldown is long
    so short lulls do not thrash the pool. Backlog above EMERGENCY_THRESHOLD
    bypasses cooldown and deadband.
    """

    ENABLED = True
    TICK_SECONDS = 5.0
    MIN_WORKERS = 2
    MAX_WORKERS = 20
    DEADBAND = 2
    EMERGENCY_THRESHOLD = 100
    SCALE_UP_COOLDOWN_SECONDS = 5.0
    SCALE_DOWN_COOLDOWN_SECONDS = 60.0

    # PID gains
    KP = 0.05
    KI = 0.005
    KD = 0.02

    # Integral accumulation freezes while |error| >= this
    INTEGRAL_GUARD = 1000.0

    # Pool max capacity is kept at least desired + CAPACITY_BUFFER
    CAPACITY_BUFFER = 2

    PROBE_TIMEOUT_SECONDS = 3.0


# =============================================================================
# PIPELINE DEFAULTS
# =============================================================================

class PipelineDefaults:
    """Stage worker behaviour."""

    # Single wait-and-retry on a moderation lookup miss
    LOOKUP_RETRY_DELAY_SECONDS = 0.5

    # Classifier sees at most this many body characters
    BODY_EXCERPT_CHARS = 2000

    # Notifications authored by the pipeline itself carry no actor
    SYSTEM_ACTOR_ID = -1

    NOTIFICATION_MAX_PENDING = 1000
    NOTIFICATION_WORKERS = 2
    SHUTDOWN_TIMEOUT_SECONDS = 30.0


# =============================================================================
# INTEGRATION DEFAULTS
# =============================================================================

class IntegrationDefaults:
    """Classifier and embedding HTTP endpoints."""

    CLASSIFIER_URL = "http://localhost:8080/v1/moderate"
    EMBEDDING_URL = "http://localhost:8080/v1/embed"
    CLASSIFIER_TIMEOUT_SECONDS = 30.0
    EMBEDDING_TIMEOUT_SECONDS = 30.0
    EMBEDDING_DIMENSIONS = 768


# =============================================================================
# DATABASE DEFAULTS
# =============================================================================

class DatabaseDefaults:
    """PostgreSQL content store."""

    HOST = "localhost"
    PORT = 5432
    DATABASE = "moderation"
    USER = "moderation"
    SCHEMA = "app"
    CONNECT_TIMEOUT_SECONDS = 10


# =============================================================================
# TREND DEFAULTS
# =============================================================================

class TrendDefaults:
    """Global trend vector (centroid of the most favorited published items)."""

    ENABLED = False
    TOP_N = 20
    REFRESH_INTERVAL_SECONDS = 3600.0


# =============================================================================
# APP DEFAULTS
# =============================================================================

class AppDefaults:
    """Process-wide settings."""

    ENVIRONMENT = "dev"
    LOG_LEVEL = "INFO"
    DEBUG_MODE = False
    PROVISION_TOPOLOGY = False
