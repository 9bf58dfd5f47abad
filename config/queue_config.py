"""
Azure Service Bus Queue Configuration.

Provides configuration for:
    - Service Bus connection settings
    - Stage queue names and their dead-letter topology
    - Notification exchange / routing key / queue
    - Client receive and send settings

Exports:
    QueueConfig: Pydantic queue configuration model
    QueueNames: Queue name constants
    StageTopology: Queue + dead-letter names for one pipeline stage
"""

import os
from typing import Optional
from pydantic import BaseModel, Field

from .defaults import QueueDefaults


# ============================================================================
# QUEUE NAMES
# ============================================================================

class QueueNames:
    """Queue name constants for easy access."""
    AUDIT = QueueDefaults.AUDIT_QUEUE
    AUDIT_DLQ = QueueDefaults.AUDIT_DLQ
    VECTOR = QueueDefaults.VECTOR_QUEUE
    VECTOR_DLQ = QueueDefaults.VECTOR_DLQ
    NOTIFICATION = QueueDefaults.NOTIFICATION_QUEUE
    NOTIFICATION_EXCHANGE = QueueDefaults.NOTIFICATION_EXCHANGE


class StageTopology(BaseModel):
    """
    Input queue plus dead-letter route for one stage.

    ``dead_letter_exchange`` is the topic the input queue forwards its
    dead-letter sub-queue to; ``dead_letter_routing`` is the subscription
    on that topic that forwards on to ``dead_letter_queue``.
    """

    queue: str
    dead_letter_exchange: str
    dead_letter_routing: str
    dead_letter_queue: str


# ============================================================================
# QUEUE CONFIGURATION
# ============================================================================

class QueueConfig(BaseModel):
    """
    Azure Service Bus queue configuration.

    Either ``connection_string`` or ``namespace`` (managed identity via
    DefaultAzureCredential) must be set before workers start.
    """

    connection_string: Optional[str] = Field(
        default=None,
        repr=False,
        description="Service Bus connection string (ServiceBusConnection env var)"
    )

    namespace: Optional[str] = Field(
        default=None,
        description="Fully qualified Service Bus namespace for managed identity auth"
    )

    audit: StageTopology = Field(
        default_factory=lambda: StageTopology(
            queue=QueueDefaults.AUDIT_QUEUE,
            dead_letter_exchange=QueueDefaults.AUDIT_DLX,
            dead_letter_routing=QueueDefaults.AUDIT_DEAD_ROUTING,
            dead_letter_queue=QueueDefaults.AUDIT_DLQ,
        ),
        description="Moderation stage topology"
    )

    vector: StageTopology = Field(
        default_factory=lambda: StageTopology(
            queue=QueueDefaults.VECTOR_QUEUE,
            dead_letter_exchange=QueueDefaults.VECTOR_DLX,
            dead_letter_routing=QueueDefaults.VECTOR_DEAD_ROUTING,
            dead_letter_queue=QueueDefaults.VECTOR_DLQ,
        ),
        description="Vectorize/publish stage topology"
    )

    notification_exchange: str = Field(default=QueueDefaults.NOTIFICATION_EXCHANGE)
    notification_routing_key: str = Field(default=QueueDefaults.NOTIFICATION_ROUTING_KEY)
    notification_queue: str = Field(default=QueueDefaults.NOTIFICATION_QUEUE)

    max_delivery_count: int = Field(
        default=QueueDefaults.MAX_DELIVERY_COUNT,
        ge=1,
        le=2000,
        description="Broker-side delivery limit before Service Bus dead-letters on its own"
    )

    lock_duration_seconds: int = Field(
        default=QueueDefaults.LOCK_DURATION_SECONDS,
        ge=5,
        le=300,
    )

    receive_wait_seconds: float = Field(
        default=QueueDefaults.RECEIVE_WAIT_SECONDS,
        gt=0,
        description="max_wait_time for each receive_messages call"
    )

    prefetch_count: int = Field(default=QueueDefaults.PREFETCH_COUNT, ge=0)

    retry_count: int = Field(
        default=QueueDefaults.SEND_RETRY_COUNT,
        ge=0,
        le=10,
        description="Number of retry attempts for Service Bus send operations"
    )

    @classmethod
    def from_environment(cls):
        """Load from environment variables."""
        return cls(
            connection_string=os.environ.get("ServiceBusConnection"),
            namespace=os.environ.get("SERVICE_BUS_NAMESPACE") or os.environ.get("ServiceBusConnection__fullyQualifiedNamespace"),
            audit=StageTopology(
                queue=os.environ.get("AUDIT_QUEUE", QueueDefaults.AUDIT_QUEUE),
                dead_letter_exchange=os.environ.get("AUDIT_DLX", QueueDefaults.AUDIT_DLX),
                dead_letter_routing=os.environ.get("AUDIT_DEAD_ROUTING", QueueDefaults.AUDIT_DEAD_ROUTING),
                dead_letter_queue=os.environ.get("AUDIT_DLQ", QueueDefaults.AUDIT_DLQ),
            ),
            vector=StageTopology(
                queue=os.environ.get("VECTOR_QUEUE", QueueDefaults.VECTOR_QUEUE),
                dead_letter_exchange=os.environ.get("VECTOR_DLX", QueueDefaults.VECTOR_DLX),
                dead_letter_routing=os.environ.get("VECTOR_DEAD_ROUTING", QueueDefaults.VECTOR_DEAD_ROUTING),
                dead_letter_queue=os.environ.get("VECTOR_DLQ", QueueDefaults.VECTOR_DLQ),
            ),
            notification_exchange=os.environ.get("NOTIFICATION_EXCHANGE", QueueDefaults.NOTIFICATION_EXCHANGE),
            notification_routing_key=os.environ.get("NOTIFICATION_ROUTING_KEY", QueueDefaults.NOTIFICATION_ROUTING_KEY),
            notification_queue=os.environ.get("NOTIFICATION_QUEUE", QueueDefaults.NOTIFICATION_QUEUE),
            max_delivery_count=int(os.environ.get("SERVICE_BUS_MAX_DELIVERY_COUNT", str(QueueDefaults.MAX_DELIVERY_COUNT))),
            lock_duration_seconds=int(os.environ.get("SERVICE_BUS_LOCK_DURATION_SECONDS", str(QueueDefaults.LOCK_DURATION_SECONDS))),
            receive_wait_seconds=float(os.environ.get("SERVICE_BUS_RECEIVE_WAIT_SECONDS", str(QueueDefaults.RECEIVE_WAIT_SECONDS))),
            prefetch_count=int(os.environ.get("SERVICE_BUS_PREFETCH_COUNT", str(QueueDefaults.PREFETCH_COUNT))),
            retry_count=int(os.environ.get("SERVICE_BUS_RETRY_COUNT", str(QueueDefaults.SEND_RETRY_COUNT))),
        )

    def debug_dict(self) -> dict:
        """Debug-friendly representation (connection string masked)."""
        return {
            'namespace': self.namespace,
            'connection': '***MASKED***' if self.connection_string else None,
            'audit': self.audit.model_dump(),
            'vector': self.vector.model_dump(),
            'notification_exchange': self.notification_exchange,
            'notification_routing_key': self.notification_routing_key,
            'notification_queue': self.notification_queue,
            'max_delivery_count': self.max_delivery_count,
        }
