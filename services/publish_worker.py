# ============================================================================
# PUBLISH WORKER (STAGE 2)
# ============================================================================
# STATUS: Service - vector.queue handler
# PURPOSE: Embed approved content and commit PUBLISHED + index document
# EXPORTS: PublishWorker
# DEPENDENCIES: core.state_transitions, core.logic.embedding_source
# ============================================================================
"""
Publish Worker (Stage 2).

Input: a ProceedEvent from vector.queue. The event already carries the
stage 1 AnalysisResult, so the classifier is never called here. A
transient embedding failure redelivers only this stage.

State on entry decides what happens:
    APPROVED   -> embed, then APPROVED->PUBLISHED + index document in one
                  transaction, approval notification after commit
    PUBLISHED  -> earlier delivery finished the job; acknowledge
    REJECTED   -> cannot be published; warn and acknowledge
    PENDING    -> stage 1 commit not visible yet; StateNotVisibleError
                  (transient) so the message is redelivered
    missing    -> deleted between stages; ContentNotFoundError (dropped)

Exports:
    PublishWorker: Stage 2 handler
"""

import asyncio
from typing import List, Optional

from core.logic.embedding_source import build_embedding_source
from core.models import (
    Content,
    IndexDocument,
    ModerationState,
    NotificationEvent,
    NotificationEventType,
    ProceedEvent,
    StageOutcome,
)
from core.state_transitions import apply_transition
from exceptions import ContentNotFoundError, StateNotVisibleError, TransientExternalError
from interfaces.repository import IContentStore, IEmbeddingGenerator
from services.notification_emitter import NotificationEmitter
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "PublishWorker")


class PublishWorker:
    """Stage 2: vectorize and publish."""

    stage_name = "vector"

    def __init__(
        self,
        store: IContentStore,
        embedder: IEmbeddingGenerator,
        emitter: Optional[NotificationEmitter],
        embedding_timeout_seconds: float = 30.0,
    ):
        self.store = store
        self.embedder = embedder
        self.emitter = emitter
        self.embedding_timeout_seconds = embedding_timeout_seconds

    async def handle(self, body: str) -> StageOutcome:
        """Queue entry point: decode the vector.queue body and process it."""
        return await self.process(ProceedEvent.from_message_body(body))

    async def process(self, event: ProceedEvent) -> StageOutcome:
        task_id = event.task_id
        content = await self.store.get(task_id)

        if content is None:
            logger.warning(f"⚠️ Content for task {task_id} deleted before publish, dropping", extra={'task_id': task_id})
            raise ContentNotFoundError(task_id)

        if content.state == ModerationState.PUBLISHED:
            logger.info(f"Task {task_id} already PUBLISHED, skipping", extra={'task_id': task_id})
            return StageOutcome.SKIPPED

        if content.state == ModerationState.REJECTED:
            logger.warning(f"⚠️ Task {task_id} is REJECTED, refusing to publish", extra={'task_id': task_id})
            return StageOutcome.SKIPPED

        if content.state == ModerationState.PENDING:
            raise StateNotVisibleError(
                f"Task {task_id} still PENDING on the vector stage; approval not visible yet",
                service="content_store",
            )

        keywords = event.analysis_result.keywords
        source = build_embedding_source(content, keywords)
        embedding = await self._embed(task_id, source)
        document = IndexDocument.build(content, keywords, embedding)

        result = await apply_transition(
            self.store,
            task_id,
            ModerationState.APPROVED,
            ModerationState.PUBLISHED,
            index_document=document,
        )
        if not result.applied:
            logger.info(
                f"Task {task_id} moved to {result.observed.value} concurrently, publish not applied",
                extra={'task_id': task_id}
            )
            return StageOutcome.SKIPPED

        logger.info(
            f"✅ Task {task_id} published with {len(embedding)}-dim embedding",
            extra={'task_id': task_id, 'slug': content.slug}
        )
        self._notify_approved(content)
        return StageOutcome.PUBLISHED

    async def _embed(self, task_id: str, source: str) -> List[float]:
        try:
            return await asyncio.wait_for(
                self.embedder.embed(source),
                timeout=self.embedding_timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise TransientExternalError(
                f"Embedding timed out after {self.embedding_timeout_seconds}s for task {task_id}",
                service="embedding",
            ) from e

    def _notify_approved(self, content: Content) -> None:
        if self.emitter is None:
            return
        self.emitter.emit(NotificationEvent(
            actor_id=None,
            target_user_id=content.author_id,
            event_type=NotificationEventType.ARTICLE_APPROVED,
            resource_id=content.task_id,
            resource_slug=content.slug,
            payload=content.title,
        ))
