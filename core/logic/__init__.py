"""
Core Business Logic Package.

Contains business logic that operates on pure data models.

Exports:
    State transitions: can_transition
    Embedding source: build_embedding_source
"""

from .transitions import can_transition
from .embedding_source import build_embedding_source

__all__ = [
    'can_transition',
    'build_embedding_source',
]
