# ============================================================================
# SERVICE BUS REPOSITORY
# ============================================================================
# STATUS: Infrastructure - Azure Service Bus adapter
# PURPOSE: Send (optionally scheduled) messages, hand out receivers, and
#          report queue backlog for the autoscalers
# EXPORTS: ServiceBusRepository, ServiceBusBacklogProbe
# DEPENDENCIES: azure-servicebus (aio), azure-identity (aio)
# ============================================================================
"""
Service Bus Repository Implementation

Async adapter over ``azure.servicebus.aio``.

Key Features:
- Connection string (local development) or namespace + DefaultAzureCredential
- Cached senders (safe to reuse); fresh receivers per pool worker
- Scheduled delivery via ScheduledEnqueueTimeUtc for retry backoff
- Application properties (attempt_count) and subject (routing key)
- Send retry with exponential backoff

Backlog:
- ServiceBusBacklogProbe reads ``active_message_count`` from the
  administration client's queue runtime properties. Scheduled retry copies
  are not counted until they become active.
"""

import asyncio
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict, Mapping, Optional

from azure.identity.aio import DefaultAzureCredential
from azure.servicebus import ServiceBusMessage
from azure.servicebus.aio import ServiceBusClient, ServiceBusReceiver, ServiceBusSender
from azure.servicebus.aio.management import ServiceBusAdministrationClient

from config import QueueConfig
from exceptions import BacklogProbeError, ConfigurationError, ServiceBusError
from interfaces.repository import IBacklogProbe, IMessagePublisher
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "ServiceBusRepository")


def fully_qualified_namespace(namespace: str) -> str:
    """'mynamespace' -> 'mynamespace.servicebus.windows.net'; FQDNs pass through."""
    namespace = namespace.strip()
    if "." in namespace:
        return namespace
    return f"{namespace}.servicebus.windows.net"


class ServiceBusRepository(IMessagePublisher):
    """
    Service Bus publisher and receiver source.

    Configuration comes from QueueConfig:
    - connection_string: ServiceBusConnection (takes precedence)
    - namespace: SERVICE_BUS_NAMESPACE (DefaultAzureCredential)
    - retry_count: send attempts before ServiceBusError
    """

    def __init__(self, config: QueueConfig, retry_base_delay_seconds: float = 0.5):
        self.config = config
        self.max_retries = max(1, config.retry_count)
        self.retry_base_delay_seconds = retry_base_delay_seconds
        self.credential: Optional[DefaultAzureCredential] = None

        if config.connection_string:
            logger.info("🔑 Using connection string authentication")
            self.client = ServiceBusClient.from_connection_string(config.connection_string)
        elif config.namespace:
            namespace = fully_qualified_namespace(config.namespace)
            logger.info(f"🔐 Using DefaultAzureCredential for namespace {namespace}")
            self.credential = DefaultAzureCredential()
            self.client = ServiceBusClient(fully_qualified_namespace=namespace, credential=self.credential)
        else:
            raise ConfigurationError(
                "Service Bus not configured: set ServiceBusConnection or SERVICE_BUS_NAMESPACE"
            )

        # Topics need a topic sender; everything else is a queue
        self._topics = {config.notification_exchange}
        self._senders: Dict[str, ServiceBusSender] = {}
        self._sender_lock = asyncio.Lock()

    async def _get_sender(self, destination: str) -> ServiceBusSender:
        async with self._sender_lock:
            sender = self._senders.get(destination)
            if sender is None:
                logger.debug(f"🚌 Creating sender for {destination}")
                if destination in self._topics:
                    sender = self.client.get_topic_sender(topic_name=destination)
                else:
                    sender = self.client.get_queue_sender(queue_name=destination)
                self._senders[destination] = sender
            return sender

    async def publish(
        self,
        destination: str,
        body: str,
        *,
        properties: Optional[Mapping[str, Any]] = None,
        subject: Optional[str] = None,
        delay_seconds: float = 0.0,
    ) -> str:
        """
        Send one message.

        Args:
            destination: Queue or topic name
            body: Message body (already serialized)
            properties: Application properties (e.g. attempt_count)
            subject: Message subject; used as the routing key on topics
            delay_seconds: > 0 schedules delivery that far in the future

        Returns:
            Message ID

        Raises:
            ServiceBusError: All send attempts failed
        """
        sender = await self._get_sender(destination)
        last_error: Optional[Exception] = None

        for attempt in range(self.max_retries):
            message = ServiceBusMessage(
                body=body,
                application_properties=dict(properties) if properties else None,
                subject=subject,
            )
            if delay_seconds and delay_seconds > 0:
                message.scheduled_enqueue_time_utc = datetime.now(timezone.utc) + timedelta(seconds=delay_seconds)

            try:
                await sender.send_messages(message)
                message_id = message.message_id or f"sb_{datetime.now(timezone.utc).timestamp()}"
                if delay_seconds and delay_seconds > 0:
                    logger.debug(f"⏰ Scheduled message {message_id} to {destination} in {delay_seconds}s")
                else:
                    logger.debug(f"📤 Sent message {message_id} to {destination}")
                return message_id
            except Exception as e:
                last_error = e
                logger.warning(
                    f"⚠️ Send to {destination} failed (attempt {attempt + 1}/{self.max_retries}): {e}",
                    extra={'error_type': type(e).__name__}
                )
                if attempt < self.max_retries - 1:
                    await asyncio.sleep(self.retry_base_delay_seconds * (2 ** attempt))

        raise ServiceBusError(f"Failed to send message to {destination}: {last_error}") from last_error

    def receiver_factory(self, queue_name: str) -> Callable[[], ServiceBusReceiver]:
        """
        Factory for the per-worker receivers of one queue.

        Each call returns a fresh receiver; pool workers use it as an async
        context manager so it is closed when the worker retires.
        """
        def create() -> ServiceBusReceiver:
            return self.client.get_queue_receiver(
                queue_name=queue_name,
                prefetch_count=self.config.prefetch_count,
                max_wait_time=self.config.receive_wait_seconds,
            )
        return create

    async def close(self) -> None:
        for destination, sender in list(self._senders.items()):
            try:
                await sender.close()
            except Exception as e:
                logger.warning(f"⚠️ Error closing sender for {destination}: {e}")
        self._senders.clear()
        await self.client.close()
        if self.credential is not None:
            await self.credential.close()
        logger.info("🚌 Service Bus client closed")


class ServiceBusBacklogProbe(IBacklogProbe):
    """Queue depth from the Service Bus administration API."""

    def __init__(self, admin_client: ServiceBusAdministrationClient, credential: Optional[DefaultAzureCredential] = None):
        self.admin_client = admin_client
        self.credential = credential

    @classmethod
    def from_config(cls, config: QueueConfig) -> "ServiceBusBacklogProbe":
        if config.connection_string:
            return cls(ServiceBusAdministrationClient.from_connection_string(config.connection_string))
        if config.namespace:
            credential = DefaultAzureCredential()
            return cls(
                ServiceBusAdministrationClient(
                    fully_qualified_namespace=fully_qualified_namespace(config.namespace),
                    credential=credential,
                ),
                credential=credential,
            )
        raise ConfigurationError(
            "Service Bus not configured: set ServiceBusConnection or SERVICE_BUS_NAMESPACE"
        )

    async def depth(self, queue_name: str) -> int:
        try:
            properties = await self.admin_client.get_queue_runtime_properties(queue_name)
        except Exception as e:
            raise BacklogProbeError(f"Cannot read depth of {queue_name}: {e}") from e
        return int(properties.active_message_count or 0)

    async def close(self) -> None:
        await self.admin_client.close()
        if self.credential is not None:
            await self.credential.close()
