"""
NotificationEmitter and NotificationConsumer tests.
"""

import asyncio
import json

import pytest

from core.models import NotificationEventType
from exceptions import DatabaseError, MessageFormatError
from services.notification_consumer import NotificationConsumer
from services.notification_emitter import NotificationEmitter
from tests.factories.fakes import InMemoryNotificationStore, RecordingPublisher
from tests.factories.model_factories import make_notification

EXCHANGE = "notification.exchange"
ROUTING_KEY = "notification.routing.key"


# ============================================================================
# EMITTER
# ============================================================================

class TestEmitter:

    def test_publishes_to_exchange_with_routing_key(self):
        publisher = RecordingPublisher()
        event = make_notification()

        async def scenario():
            emitter = NotificationEmitter(publisher, EXCHANGE, ROUTING_KEY)
            await emitter.start()
            assert emitter.emit(event) is True
            await emitter.flush()
            await emitter.stop()
            return emitter

        emitter = asyncio.run(scenario())
        [sent] = publisher.sent
        assert sent.destination == EXCHANGE
        assert sent.subject == ROUTING_KEY
        assert json.loads(sent.body)["targetUserId"] == event.target_user_id
        assert emitter.emitted == 1

    def test_system_actor_on_the_wire(self):
        publisher = RecordingPublisher()

        async def scenario():
            emitter = NotificationEmitter(publisher, EXCHANGE, ROUTING_KEY, system_actor_id=-7)
            await emitter.start()
            emitter.emit(make_notification(actor_id=None))
            await emitter.stop()

        asyncio.run(scenario())
        assert json.loads(publisher.sent[0].body)["actorId"] == -7

    def test_self_notification_never_emitted(self):
        publisher = RecordingPublisher()

        async def scenario():
            emitter = NotificationEmitter(publisher, EXCHANGE, ROUTING_KEY)
            await emitter.start()
            result = emitter.emit(make_notification(actor_id=11, target_user_id=11))
            await emitter.stop()
            return result, emitter

        result, emitter = asyncio.run(scenario())
        assert result is False
        assert publisher.sent == []
        assert emitter.dropped == 1

    def test_missing_target_dropped(self):
        async def scenario():
            emitter = NotificationEmitter(RecordingPublisher(), EXCHANGE, ROUTING_KEY)
            return emitter.emit(make_notification(target_user_id=None))

        assert asyncio.run(scenario()) is False

    def test_full_queue_drops_without_blocking(self):
        async def scenario():
            emitter = NotificationEmitter(RecordingPublisher(), EXCHANGE, ROUTING_KEY, max_pending=1)
            first = emitter.emit(make_notification())
            second = emitter.emit(make_notification())
            return first, second, emitter

        first, second, emitter = asyncio.run(scenario())
        assert (first, second) == (True, False)
        assert emitter.dropped == 1
        assert emitter.pending == 1

    def test_publish_failure_is_contained(self):
        publisher = RecordingPublisher(fail_times=1)

        async def scenario():
            emitter = NotificationEmitter(publisher, EXCHANGE, ROUTING_KEY)
            await emitter.start()
            emitter.emit(make_notification())
            emitter.emit(make_notification())
            await emitter.stop()
            return emitter

        emitter = asyncio.run(scenario())
        assert emitter.failed == 1
        assert emitter.emitted == 1
        assert len(publisher.sent) == 1

    def test_stop_without_start_is_noop(self):
        async def scenario():
            await NotificationEmitter(RecordingPublisher(), EXCHANGE, ROUTING_KEY).stop()

        asyncio.run(scenario())


# ============================================================================
# CONSUMER
# ============================================================================

def _consume(store, event_or_body, system_actor_id=-1):
    body = event_or_body if isinstance(event_or_body, str) else event_or_body.to_message_body()
    return asyncio.run(NotificationConsumer(store, system_actor_id=system_actor_id).handle(body))


class TestConsumer:

    def test_stores_notification(self):
        store = InMemoryNotificationStore()
        event = make_notification(event_type=NotificationEventType.COMMENT_REPLIED)
        assert _consume(store, event) is True
        [saved] = store.saved
        assert saved.event_type == NotificationEventType.COMMENT_REPLIED
        assert saved.actor_id == event.actor_id

    def test_system_actor_mapped_to_none(self):
        store = InMemoryNotificationStore()
        _consume(store, make_notification(actor_id=-1))
        assert store.saved[0].actor_id is None

    def test_self_notification_dropped(self):
        store = InMemoryNotificationStore()
        assert _consume(store, make_notification(actor_id=4, target_user_id=4)) is False
        assert store.saved == []

    def test_missing_target_dropped(self):
        store = InMemoryNotificationStore()
        assert _consume(store, make_notification(target_user_id=None)) is False

    def test_deleted_user_dropped(self):
        event = make_notification()
        store = InMemoryNotificationStore(missing_users={event.target_user_id})
        assert _consume(store, event) is False
        assert store.saved == []

    def test_store_outage_propagates(self):
        store = InMemoryNotificationStore(fail_times=1)
        with pytest.raises(DatabaseError):
            _consume(store, make_notification())

    def test_malformed_body(self):
        with pytest.raises(MessageFormatError):
            _consume(InMemoryNotificationStore(), "not json")
