"""
Collaborator Interfaces

Defines the contracts the pipeline consumes. Stage workers, the autoscaler
and the notification path depend only on these ABCs; Service Bus,
PostgreSQL and the HTTP model endpoints live behind them in
``infrastructure/``, and tests substitute in-memory fakes.

Exports:
    IContentStore: Content reads, state writes, index writes, transactions
    IMessagePublisher: Send a message to a queue or topic
    IBacklogProbe: Queue depth, used only by the autoscaler
    IClassifier: Moderation classifier
    IEmbeddingGenerator: Fixed-dimension embedding generator
    IConsumerPool: Resize surface of a stage consumer pool
    INotificationStore: Persists delivered notifications
    ITrendSource: Embeddings of the most favorited published content
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncContextManager, Dict, List, Optional

from core.models import AnalysisResult, Content, IndexDocument, ModerationState, NotificationEvent


class IContentStore(ABC):
    """
    Content store as observed by the pipeline.

    Writes issued inside ``transaction()`` commit or roll back together.
    Writes issued outside a transaction commit individually.
    """

    @abstractmethod
    async def get(self, task_id: str, lock: bool = False) -> Optional[Content]:
        """
        Read content by task id.

        Args:
            task_id: Opaque content identifier
            lock: Take a row lock for the rest of the enclosing transaction

        Returns:
            Content, or None if no such content is visible
        """
        pass

    @abstractmethod
    async def set_state(self, task_id: str, state: ModerationState, reason: Optional[str] = None) -> None:
        """
        Persist a moderation state (and rejection reason, if any).

        Raises:
            ContentNotFoundError: Content vanished
        """
        pass

    @abstractmethod
    async def set_index_document(self, task_id: str, document: IndexDocument) -> None:
        """Upsert the search index document for a task (one per task id)."""
        pass

    @abstractmethod
    def transaction(self) -> AsyncContextManager[None]:
        """
        Transaction boundary.

        Usage:
            async with store.transaction():
                await store.set_state(task_id, ModerationState.APPROVED)
                await publisher.publish(...)   # failure rolls the state back
        """
        pass


class IMessagePublisher(ABC):
    """Sends messages to the broker."""

    @abstractmethod
    async def publish(
        self,
        destination: str,
        body: str,
        *,
        properties: Optional[Dict[str, Any]] = None,
        subject: Optional[str] = None,
        delay_seconds: float = 0.0,
    ) -> str:
        """
        Send one message.

        Args:
            destination: Queue or topic name
            body: Message body (already serialized)
            properties: Application properties
            subject: Routing key, matched by topic subscription filters
            delay_seconds: Schedule the message this far in the future

        Returns:
            Message ID

        Raises:
            ServiceBusError: Send failed after client-side retries
        """
        pass


class IBacklogProbe(ABC):
    """Reads queue depth for the autoscaler."""

    @abstractmethod
    async def depth(self, queue_name: str) -> int:
        """
        Number of messages waiting in ``queue_name``.

        Raises:
            BacklogProbeError: Depth could not be read
        """
        pass


class IClassifier(ABC):
    """Moderation classifier."""

    @abstractmethod
    async def classify(self, title: str, body: str) -> AnalysisResult:
        """
        Decide whether content may be published.

        Raises:
            TransientExternalError: Timeout, network error, 5xx, malformed response
            PermanentExternalError: Request refused (4xx)
        """
        pass


class IEmbeddingGenerator(ABC):
    """Embedding generator with a fixed output dimensionality."""

    @property
    @abstractmethod
    def dimensions(self) -> int:
        pass

    @abstractmethod
    async def embed(self, text: str) -> List[float]:
        """
        Embed ``text``.

        Returns:
            Vector of exactly ``dimensions`` floats

        Raises:
            TransientExternalError: Timeout, network error, 5xx, malformed response
            PermanentExternalError: Request refused or wrong dimensionality
        """
        pass


class IConsumerPool(ABC):
    """
    Resize surface of a stage consumer pool.

    Only the autoscaler calls ``resize`` and ``set_max_capacity``; workers
    never resize their own pool.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        pass

    @property
    @abstractmethod
    def active_workers(self) -> int:
        pass

    @property
    @abstractmethod
    def max_capacity(self) -> int:
        pass

    @abstractmethod
    def set_max_capacity(self, capacity: int) -> None:
        pass

    @abstractmethod
    def resize(self, target: int) -> int:
        """
        Grow or shrink the pool toward ``target`` (clamped to max capacity).

        Returns:
            The worker count the pool is now heading for
        """
        pass


class INotificationStore(ABC):
    """Persists notifications consumed from notification.queue."""

    @abstractmethod
    async def save(self, event: NotificationEvent) -> None:
        """
        Store one notification as unread.

        Raises:
            ResourceNotFoundError: Target or actor user no longer exists
        """
        pass


class ITrendSource(ABC):
    """Source of embeddings for the global trend vector."""

    @abstractmethod
    async def top_published_embeddings(self, limit: int) -> List[List[float]]:
        """Embeddings of the ``limit`` most favorited PUBLISHED items."""
        pass
