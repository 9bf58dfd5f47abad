# ============================================================================
# NOTIFICATION EMITTER
# ============================================================================
# STATUS: Service - Fire-and-forget notification publishing
# PURPOSE: Decouple user notifications from the pipeline's transactional outcome
# EXPORTS: NotificationEmitter
# DEPENDENCIES: interfaces.repository.IMessagePublisher
# ============================================================================
"""
Notification Emitter.

Stage workers call ``emit()`` after their transaction commits. The event
goes onto a bounded asyncio.Queue and a single background task publishes
it to the notification exchange with the notification routing key as the
message subject.

Guarantees:
    - emit() never blocks and never raises
    - self-notifications (actor == target) are never emitted
    - a full queue drops the event with a warning
    - publish failures are logged, never propagated to the pipeline

Exports:
    NotificationEmitter: Bounded fire-and-forget publisher
"""

import asyncio
from typing import Optional

from core.models import NotificationEvent
from interfaces.repository import IMessagePublisher
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "NotificationEmitter")


class NotificationEmitter:
    """
    Bounded fire-and-forget notification publisher.

    Usage:
        emitter = NotificationEmitter(publisher, exchange="notification.exchange",
                                      routing_key="notification.routing.key")
        await emitter.start()
        emitter.emit(event)
        ...
        await emitter.stop()
    """

    def __init__(
        self,
        publisher: IMessagePublisher,
        exchange: str,
        routing_key: str,
        max_pending: int = 1000,
        system_actor_id: int = -1,
    ):
        self.publisher = publisher
        self.exchange = exchange
        self.routing_key = routing_key
        self.system_actor_id = system_actor_id
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=max_pending)
        self._drain_task: Optional[asyncio.Task] = None
        self.emitted = 0
        self.dropped = 0
        self.failed = 0

    def emit(self, event: NotificationEvent) -> bool:
        """
        Queue ``event`` for publishing.

        Returns:
            True if queued, False if dropped (self-notification, no target, queue full)
        """
        if event.target_user_id is None:
            logger.warning(f"Dropping {event.event_type.value} notification without target user")
            self.dropped += 1
            return False

        if event.is_self_notification:
            logger.debug(f"Skipping self-notification {event.event_type.value} for user {event.target_user_id}")
            self.dropped += 1
            return False

        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(
                f"⚠️ Notification queue full ({self._queue.maxsize}), dropping "
                f"{event.event_type.value} for user {event.target_user_id}",
                extra={'resource_id': event.resource_id}
            )
            return False
        return True

    async def start(self) -> None:
        if self._drain_task is None:
            self._drain_task = asyncio.create_task(self._drain(), name="notification-emitter")
            logger.info(f"Notification emitter publishing to {self.exchange} ({self.routing_key})")

    async def flush(self) -> None:
        """Wait until every queued event has been handled (published or failed)."""
        await self._queue.join()

    async def stop(self, timeout: float = 5.0) -> None:
        """Drain what is queued (bounded by ``timeout``) and stop the background task."""
        if self._drain_task is None:
            return
        try:
            await asyncio.wait_for(self._queue.join(), timeout=timeout)
        except asyncio.TimeoutError:
            logger.warning(f"⚠️ Notification emitter stopped with {self._queue.qsize()} events unsent")
        self._drain_task.cancel()
        try:
            await self._drain_task
        except asyncio.CancelledError:
            pass
        self._drain_task = None
        logger.info(
            f"Notification emitter stopped. Emitted: {self.emitted}, "
            f"Dropped: {self.dropped}, Failed: {self.failed}"
        )

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    async def _drain(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._publish(event)
            finally:
                self._queue.task_done()

    async def _publish(self, event: NotificationEvent) -> None:
        wire = event
        if event.actor_id is None:
            wire = event.model_copy(update={'actor_id': self.system_actor_id})
        try:
            await self.publisher.publish(
                self.exchange,
                wire.to_message_body(),
                subject=self.routing_key,
            )
            self.emitted += 1
        except Exception as e:
            self.failed += 1
            logger.error(
                f"❌ Failed to publish {event.event_type.value} notification "
                f"for user {event.target_user_id}: {e}",
                extra={'resource_id': event.resource_id, 'error_type': type(e).__name__}
            )
