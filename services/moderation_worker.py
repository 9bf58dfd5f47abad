# ============================================================================
# MODERATION WORKER (STAGE 1)
# ============================================================================
# STATUS: Service - audit.queue handler
# PURPOSE: Classify PENDING content once and either hand it to the vector
#          stage (APPROVED) or close it out (REJECTED)
# EXPORTS: ModerationWorker
# DEPENDENCIES: core.state_transitions, interfaces.repository
# ============================================================================
"""
Moderation Worker (Stage 1).

Input: a bare task id from audit.queue.

Flow:
    1. Look the content up; on a miss wait once and retry once, then give
       up with ContentNotFoundError (acknowledged and dropped)
    2. Content no longer PENDING -> an earlier delivery already decided;
       acknowledge without calling the classifier
    3. Classify (title + body excerpt), bounded by a timeout. Failures
       propagate to the retry middleware with the state left at PENDING
    4. approved -> PENDING->APPROVED and publish the ProceedEvent inside one
       transaction. A publish failure rolls the state back
    5. rejected -> PENDING->REJECTED with reason, then a rejection
       notification after commit

The handoff is sent before the APPROVED commit so that a failed send
leaves the task PENDING and the audit message is retried; sending after
commit could strand an APPROVED task with no ProceedEvent. The cost is
that stage 2 can receive the event before the commit is visible. It sees
PENDING, raises StateNotVisibleError and is redelivered after backoff.
The row lock is held for the length of the send, including its retries.

Exports:
    ModerationWorker: Stage 1 handler
"""

import asyncio
from typing import Awaitable, Callable, Optional

from core.models import (
    AnalysisResult,
    Content,
    ModerationState,
    NotificationEvent,
    NotificationEventType,
    ProceedEvent,
    StageOutcome,
    Task,
    parse_task_reference,
)
from core.state_transitions import apply_transition
from exceptions import ContentNotFoundError, TransientExternalError
from interfaces.repository import IClassifier, IContentStore, IMessagePublisher
from services.notification_emitter import NotificationEmitter
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "ModerationWorker")


class ModerationWorker:
    """Stage 1: moderation decision."""

    stage_name = "audit"

    def __init__(
        self,
        store: IContentStore,
        classifier: IClassifier,
        publisher: IMessagePublisher,
        emitter: Optional[NotificationEmitter],
        proceed_queue: str,
        classifier_timeout_seconds: float = 30.0,
        lookup_retry_delay_seconds: float = 0.5,
        body_excerpt_chars: int = 2000,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.store = store
        self.classifier = classifier
        self.publisher = publisher
        self.emitter = emitter
        self.proceed_queue = proceed_queue
        self.classifier_timeout_seconds = classifier_timeout_seconds
        self.lookup_retry_delay_seconds = lookup_retry_delay_seconds
        self.body_excerpt_chars = body_excerpt_chars
        self._sleep = sleep

    async def handle(self, body: str) -> StageOutcome:
        """Queue entry point: decode the audit.queue body and process it."""
        return await self.process(parse_task_reference(body))

    async def process(self, task: Task) -> StageOutcome:
        content = await self._load(task.id)

        if content.state != ModerationState.PENDING:
            logger.info(
                f"Task {task.id} already {content.state.value}, skipping moderation",
                extra={'task_id': task.id, 'state': content.state.value}
            )
            return StageOutcome.SKIPPED

        analysis = await self._classify(content)

        if analysis.approved:
            return await self._approve(content, analysis)
        return await self._reject(content, analysis)

    async def _load(self, task_id: str) -> Content:
        content = await self.store.get(task_id)
        if content is None:
            # Producer commit may not be visible yet
            logger.info(
                f"Content for task {task_id} not visible, retrying once in "
                f"{self.lookup_retry_delay_seconds}s",
                extra={'task_id': task_id}
            )
            await self._sleep(self.lookup_retry_delay_seconds)
            content = await self.store.get(task_id)

        if content is None:
            logger.warning(f"⚠️ Content for task {task_id} not found after retry, dropping", extra={'task_id': task_id})
            raise ContentNotFoundError(task_id)
        return content

    async def _classify(self, content: Content) -> AnalysisResult:
        excerpt = content.body[:self.body_excerpt_chars]
        try:
            return await asyncio.wait_for(
                self.classifier.classify(content.title, excerpt),
                timeout=self.classifier_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise TransientExternalError(
                f"Classifier timed out after {self.classifier_timeout_seconds}s for task {content.task_id}",
                service="classifier",
            ) from e

    async def _approve(self, content: Content, analysis: AnalysisResult) -> StageOutcome:
        event = ProceedEvent(task_id=content.task_id, analysis_result=analysis)

        async def publish_proceed():
            await self.publisher.publish(self.proceed_queue, event.to_message_body())

        result = await apply_transition(
            self.store,
            content.task_id,
            ModerationState.PENDING,
            ModerationState.APPROVED,
            side_effects=[publish_proceed],
        )
        if not result.applied:
            logger.info(
                f"Task {content.task_id} moved to {result.observed.value} concurrently, approval not applied",
                extra={'task_id': content.task_id}
            )
            return StageOutcome.SKIPPED

        logger.info(
            f"✅ Task {content.task_id} approved, handed to {self.proceed_queue}",
            extra={'task_id': content.task_id, 'keywords': analysis.keywords}
        )
        return StageOutcome.APPROVED

    async def _reject(self, content: Content, analysis: AnalysisResult) -> StageOutcome:
        result = await apply_transition(
            self.store,
            content.task_id,
            ModerationState.PENDING,
            ModerationState.REJECTED,
            reason=analysis.reason,
        )
        if not result.applied:
            logger.info(
                f"Task {content.task_id} moved to {result.observed.value} concurrently, rejection not applied",
                extra={'task_id': content.task_id}
            )
            return StageOutcome.SKIPPED

        logger.info(
            f"🚫 Task {content.task_id} rejected: {analysis.reason}",
            extra={'task_id': content.task_id}
        )

        if self.emitter is not None:
            self.emitter.emit(NotificationEvent(
                actor_id=None,
                target_user_id=content.author_id,
                event_type=NotificationEventType.ARTICLE_REJECTED,
                resource_id=content.task_id,
                resource_slug=content.slug,
                payload=analysis.reason,
            ))
        return StageOutcome.REJECTED
