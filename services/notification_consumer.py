"""
Notification Consumer.

Handler for notification.queue: decode the event, drop what must never be
shown (no target, self-notification), map the system actor back to "no
actor", and persist the notification as unread.

A target or actor that no longer exists is not retryable: the event is
logged and dropped. Store outages propagate so the retry middleware
redelivers.

Exports:
    NotificationConsumer: notification.queue handler
"""

from core.models import NotificationEvent
from exceptions import ResourceNotFoundError
from interfaces.repository import INotificationStore
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "NotificationConsumer")


class NotificationConsumer:
    """Persists notifications delivered on notification.queue."""

    def __init__(self, store: INotificationStore, system_actor_id: int = -1):
        self.store = store
        self.system_actor_id = system_actor_id

    async def handle(self, body: str) -> bool:
        """
        Handle one notification message body.

        Returns:
            True if a notification was stored, False if the event was dropped

        Raises:
            MessageFormatError: Body is not a NotificationEvent
        """
        event = NotificationEvent.from_message_body(body)

        if event.target_user_id is None:
            logger.error(f"Notification {event.event_type.value} has no target user, dropping")
            return False

        if event.is_self_notification:
            logger.debug(f"Ignoring self-notification {event.event_type.value} for user {event.target_user_id}")
            return False

        if event.actor_id == self.system_actor_id:
            event = event.model_copy(update={'actor_id': None})

        try:
            await self.store.save(event)
        except ResourceNotFoundError as e:
            logger.warning(
                f"⚠️ Dropping {event.event_type.value} notification: {e}",
                extra={'target_user_id': event.target_user_id, 'resource_id': event.resource_id}
            )
            return False

        logger.debug(f"Stored {event.event_type.value} notification for user {event.target_user_id}")
        return True
