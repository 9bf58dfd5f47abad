"""
Pipeline Services - Stage Handlers and Notification Plumbing.

Explicit exports, no registration magic. Each stage handler exposes
``handle(body)`` (the queue entry point wired into a StageListener by
worker_main) and ``stage_name``.

Handlers:
    ModerationWorker      audit.queue  (stage 1: classify, approve/reject)
    PublishWorker         vector.queue (stage 2: embed, publish, index)
    NotificationConsumer  notification.queue

Collaborator helpers:
    NotificationEmitter   fire-and-forget notification publishing
    TaskSubmitter         publish task ids after the producer commits
    GlobalTrendManager    centroid of top published embeddings

Handler Contract (ENFORCED BY RetryMiddleware):
    async def handle(body: str) -> Any
        - return normally            -> message completed
        - ContentNotFoundError       -> message completed (dropped)
        - permanent errors           -> dead-lettered
        - anything else              -> retried with backoff, then dead-lettered
"""

from .moderation_worker import ModerationWorker
from .publish_worker import PublishWorker
from .notification_emitter import NotificationEmitter
from .notification_consumer import NotificationConsumer
from .task_submitter import TaskSubmitter
from .trend_vector import GlobalTrendManager, calculate_centroid

__all__ = [
    "ModerationWorker",
    "PublishWorker",
    "NotificationEmitter",
    "NotificationConsumer",
    "TaskSubmitter",
    "GlobalTrendManager",
    "calculate_centroid",
]
