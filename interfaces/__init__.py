"""
Collaborator interfaces consumed by the pipeline.
"""

from .repository import (
    IBacklogProbe,
    IClassifier,
    IConsumerPool,
    IContentStore,
    IEmbeddingGenerator,
    IMessagePublisher,
    INotificationStore,
    ITrendSource,
)

__all__ = [
    'IBacklogProbe',
    'IClassifier',
    'IConsumerPool',
    'IContentStore',
    'IEmbeddingGenerator',
    'IMessagePublisher',
    'INotificationStore',
    'ITrendSource',
]
