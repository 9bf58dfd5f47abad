"""
Task Submitter - Publish After Commit.

Producer-side helper for code that creates content and wants it moderated.
Task ids collected inside ``submission()`` are sent to audit.queue only
after the producer's transaction has committed, so stage 1 never receives
an id whose content it cannot yet read. Nothing is sent if the
transaction rolls back.

Usage:
    async with submitter.submission() as pending:
        await create_content_row(...)      # collaborator's own write
        pending.append(content_id)
    # audit.queue messages are sent here

Exports:
    TaskSubmitter: Publish-after-commit producer helper
"""

from contextlib import asynccontextmanager
from typing import AsyncIterator, List

from core.models import Task
from interfaces.repository import IContentStore, IMessagePublisher
from util_logger import LoggerFactory, ComponentType

logger = LoggerFactory.create_logger(ComponentType.SERVICE, "TaskSubmitter")


class TaskSubmitter:
    """Sends task ids to audit.queue once their content is committed."""

    def __init__(self, store: IContentStore, publisher: IMessagePublisher, audit_queue: str):
        self.store = store
        self.publisher = publisher
        self.audit_queue = audit_queue

    async def submit(self, task_id) -> str:
        """Send one already-committed task id. Returns the message id."""
        task = Task(id=task_id)
        message_id = await self.publisher.publish(self.audit_queue, task.id)
        logger.info(f"Submitted task {task.id} to {self.audit_queue}", extra={'task_id': task.id})
        return message_id

    @asynccontextmanager
    async def submission(self) -> AsyncIterator[List[str]]:
        pending: List[str] = []
        async with self.store.transaction():
            yield pending
        for task_id in pending:
            await self.submit(task_id)
