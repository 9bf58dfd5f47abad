"""
Content Models - Read Side of the Content Store.

The pipeline never creates content. It reads what the producing
collaborator committed, advances the moderation state, and writes one
search index document per published task.

Exports:
    Task: Unit of work referenced by a queue message
    coerce_task_id: Normalize a numeric or string id to its string form
    Content: Content row as the pipeline observes it
    IndexDocument: Search index document written on publish
"""

from datetime import datetime, timezone
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .enums import ModerationState


def coerce_task_id(value):
    # Producers send numeric ids; the pipeline treats them as opaque strings
    if isinstance(value, bool):
        raise ValueError("task id must not be a boolean")
    if isinstance(value, (int, str)):
        value = str(value).strip()
        if not value:
            raise ValueError("task id must not be empty")
        return value
    raise ValueError(f"task id must be a string or integer, got {type(value).__name__}")


class Task(BaseModel):
    """
    Unit of work: an opaque content identifier.

    Consumed, never mutated. ``payload_reference`` points at the content the
    id stands for and defaults to the id itself.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Opaque content identifier")
    payload_reference: Optional[str] = Field(default=None)

    @field_validator("id", mode="before")
    @classmethod
    def _normalize_id(cls, value):
        return coerce_task_id(value)

    @property
    def reference(self) -> str:
        return self.payload_reference or self.id


class Content(BaseModel):
    """Content row as the pipeline observes it."""

    task_id: str
    slug: str
    title: str
    body: str = ""
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    author_id: int
    author_name: str = ""
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    state: ModerationState = ModerationState.PENDING
    rejection_reason: Optional[str] = None

    @field_validator("task_id", mode="before")
    @classmethod
    def _normalize_id(cls, value):
        return coerce_task_id(value)

    @field_validator("tags", mode="before")
    @classmethod
    def _none_tags(cls, value):
        return [] if value is None else value


class IndexDocument(BaseModel):
    """
    Search index document, written once per published task.

    Serialized with camelCase keys (``createdAt``) for the index.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    slug: str
    title: str
    description: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    author: str = ""
    created_at: datetime = Field(..., alias="createdAt")
    embedding: List[float] = Field(default_factory=list)

    @classmethod
    def build(cls, content: Content, keywords: List[str], embedding: List[float]) -> "IndexDocument":
        """Assemble the document from re-read content plus the stage-1 keywords."""
        return cls(
            id=content.task_id,
            slug=content.slug,
            title=content.title,
            description=content.description,
            keywords=list(keywords),
            tags=list(content.tags),
            author=content.author_name,
            created_at=content.created_at,
            embedding=list(embedding),
        )
