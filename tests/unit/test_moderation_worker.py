"""
ModerationWorker (stage 1) tests.

Collaborators are in-memory fakes; the notification emitter is real and
publishes to the same RecordingPublisher so emitted events can be read
back after a flush.
"""

import asyncio
import json

import pytest

from core.models import AnalysisResult, ModerationState, ProceedEvent, StageOutcome
from exceptions import ContentNotFoundError, ServiceBusError, TransientExternalError
from services.moderation_worker import ModerationWorker
from services.notification_emitter import NotificationEmitter
from tests.factories.fakes import InMemoryContentStore, RecordingPublisher, ScriptedClassifier
from tests.factories.model_factories import make_analysis, make_content

VECTOR_QUEUE = "vector.queue"
EXCHANGE = "notification.exchange"
ROUTING_KEY = "notification.routing.key"


class Harness:
    """Wires a ModerationWorker inside the running event loop."""

    def __init__(self, classifier=None, publisher=None, **worker_kwargs):
        self.store = InMemoryContentStore()
        self.classifier = classifier or ScriptedClassifier()
        self.publisher = publisher or RecordingPublisher()
        self.sleeps = []
        self.worker_kwargs = worker_kwargs

    async def _sleep(self, seconds):
        self.sleeps.append(seconds)

    async def run(self, body_or_task):
        emitter = NotificationEmitter(self.publisher, EXCHANGE, ROUTING_KEY)
        await emitter.start()
        worker = ModerationWorker(
            self.store, self.classifier, self.publisher, emitter,
            proceed_queue=VECTOR_QUEUE, sleep=self._sleep, **self.worker_kwargs
        )
        try:
            return await worker.handle(body_or_task)
        finally:
            await emitter.stop(timeout=1.0)

    def __call__(self, body):
        return asyncio.run(self.run(body))

    @property
    def notifications(self):
        return [json.loads(m.body) for m in self.publisher.to(EXCHANGE)]


class TestApprove:

    def test_approved_content_moves_to_approved_and_hands_off(self):
        analysis = make_analysis(approved=True)
        h = Harness(classifier=ScriptedClassifier(default=analysis))
        content = h.store.add(make_content())

        assert h(content.task_id) == StageOutcome.APPROVED

        assert h.store.state_of(content.task_id) == ModerationState.APPROVED
        [handoff] = h.publisher.to(VECTOR_QUEUE)
        event = ProceedEvent.from_message_body(handoff.body)
        assert event.task_id == content.task_id
        assert event.analysis_result == analysis
        assert h.notifications == []

    def test_classifier_sees_title_and_excerpt(self):
        h = Harness(body_excerpt_chars=10)
        content = h.store.add(make_content(body="0123456789abcdef"))
        h(content.task_id)
        assert h.classifier.calls == [(content.title, "0123456789")]

    def test_handoff_failure_rolls_state_back(self):
        h = Harness(publisher=RecordingPublisher(fail_destinations={VECTOR_QUEUE}))
        content = h.store.add(make_content())

        with pytest.raises(ServiceBusError):
            h(content.task_id)

        assert h.store.state_of(content.task_id) == ModerationState.PENDING
        assert h.store.rollbacks == 1


class TestReject:

    def test_rejected_content_records_reason_and_notifies(self):
        analysis = AnalysisResult(approved=False, keywords=[], reason="graphic violence")
        h = Harness(classifier=ScriptedClassifier(default=analysis))
        content = h.store.add(make_content())

        assert h(content.task_id) == StageOutcome.REJECTED

        row = h.store.row(content.task_id)
        assert row.state == ModerationState.REJECTED
        assert row.rejection_reason == "graphic violence"
        assert h.publisher.to(VECTOR_QUEUE) == []
        [note] = h.notifications
        assert note["eventType"] == "ARTICLE_REJECTED"
        assert note["targetUserId"] == content.author_id
        assert note["actorId"] == -1
        assert note["resourceId"] == content.task_id
        assert note["payload"] == "graphic violence"
        assert h.publisher.to(EXCHANGE)[0].subject == ROUTING_KEY


class TestIdempotency:

    @pytest.mark.parametrize("state", [ModerationState.APPROVED, ModerationState.REJECTED, ModerationState.PUBLISHED])
    def test_already_decided_content_skipped_without_classifier(self, state):
        h = Harness()
        content = h.store.add(make_content(state=state))

        assert h(content.task_id) == StageOutcome.SKIPPED
        assert h.classifier.calls == []
        assert h.publisher.sent == []

    def test_redelivery_after_approval_sends_one_handoff(self):
        h = Harness()
        content = h.store.add(make_content())
        h(content.task_id)
        h(content.task_id)
        assert len(h.publisher.to(VECTOR_QUEUE)) == 1
        assert len(h.classifier.calls) == 1


class TestLookup:

    def test_lookup_miss_retried_once(self):
        h = Harness(lookup_retry_delay_seconds=0.25)
        content = h.store.add(make_content())
        h.store.hide(content.task_id, reads=1)

        assert h(content.task_id) == StageOutcome.APPROVED
        assert h.sleeps == [0.25]

    def test_missing_content_after_retry(self):
        h = Harness()
        with pytest.raises(ContentNotFoundError):
            h("404")
        assert len(h.sleeps) == 1
        assert h.classifier.calls == []

    def test_quoted_numeric_body(self):
        h = Harness()
        content = h.store.add(make_content(task_id="31"))
        assert h('"31"') == StageOutcome.APPROVED
        assert h.store.state_of(content.task_id) == ModerationState.APPROVED


class TestClassifierFailures:

    def test_transient_failure_leaves_pending(self):
        h = Harness(classifier=ScriptedClassifier().script(TransientExternalError("503", service="classifier")))
        content = h.store.add(make_content())

        with pytest.raises(TransientExternalError):
            h(content.task_id)

        assert h.store.state_of(content.task_id) == ModerationState.PENDING
        assert h.publisher.sent == []

    def test_timeout_is_transient(self):
        h = Harness(classifier=ScriptedClassifier(delay=0.5), classifier_timeout_seconds=0.01)
        content = h.store.add(make_content())

        with pytest.raises(TransientExternalError):
            h(content.task_id)

        assert h.store.state_of(content.task_id) == ModerationState.PENDING
