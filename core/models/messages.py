"""
Queue Message Contracts.

Wire formats for the three pipeline queues. Field names on the wire are
camelCase because the content producers and notification consumers on the
other side of the broker speak that dialect; Python code uses snake_case.

    audit.queue         bare task id, e.g. ``42`` or ``"42"``
    vector.queue        {"taskId", "analysisResult": {"approved", "keywords", "reason"}}
    notification.queue  {"actorId", "targetUserId", "eventType",
                         "resourceId", "resourceSlug", "payload"}

Exports:
    AnalysisResult: Classifier decision, carried unchanged into stage 2
    ProceedEvent: Stage 1 -> stage 2 handoff
    NotificationEvent: Fire-and-forget user notification
    parse_task_reference: Decode an audit.queue body into a Task
"""

import json
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from exceptions import MessageFormatError
from .content import Task, coerce_task_id
from .enums import NotificationEventType


class AnalysisResult(BaseModel):
    """
    Classifier decision.

    Produced once by stage 1 and never recomputed; stage 2 reads the
    keywords from here instead of calling the classifier again.
    """

    model_config = ConfigDict(frozen=True)

    approved: bool
    keywords: List[str] = Field(default_factory=list)
    reason: str = ""

    @field_validator("keywords", mode="before")
    @classmethod
    def _none_keywords(cls, value):
        return [] if value is None else value

    @field_validator("reason", mode="before")
    @classmethod
    def _none_reason(cls, value):
        return "" if value is None else value


class ProceedEvent(BaseModel):
    """Handoff message from stage 1 to stage 2."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    task_id: str = Field(..., alias="taskId")
    analysis_result: AnalysisResult = Field(..., alias="analysisResult")

    @field_validator("task_id", mode="before")
    @classmethod
    def _stringify_id(cls, value):
        return coerce_task_id(value)

    def to_message_body(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_message_body(cls, body: str) -> "ProceedEvent":
        """
        Decode a vector.queue body.

        Raises:
            MessageFormatError: Body is not a valid ProceedEvent
        """
        try:
            return cls.model_validate_json(body)
        except ValidationError as e:
            raise MessageFormatError(f"Invalid ProceedEvent: {e.error_count()} error(s): {e.errors()[0]['msg']}") from e


class NotificationEvent(BaseModel):
    """
    User notification.

    ``actor_id`` is None for notifications authored by the pipeline itself;
    on the wire the pipeline sends its configured system actor id instead.
    """

    model_config = ConfigDict(populate_by_name=True)

    actor_id: Optional[int] = Field(default=None, alias="actorId")
    target_user_id: Optional[int] = Field(default=None, alias="targetUserId")
    event_type: NotificationEventType = Field(..., alias="eventType")
    resource_id: Optional[str] = Field(default=None, alias="resourceId")
    resource_slug: Optional[str] = Field(default=None, alias="resourceSlug")
    payload: Optional[str] = None

    @field_validator("resource_id", mode="before")
    @classmethod
    def _stringify_resource(cls, value):
        return None if value is None else str(value)

    @property
    def is_self_notification(self) -> bool:
        return self.actor_id is not None and self.actor_id == self.target_user_id

    def to_message_body(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_message_body(cls, body: str) -> "NotificationEvent":
        """
        Decode a notification.queue body.

        Raises:
            MessageFormatError: Body is not a valid NotificationEvent
        """
        try:
            return cls.model_validate_json(body)
        except ValidationError as e:
            raise MessageFormatError(f"Invalid NotificationEvent: {e.errors()[0]['msg']}") from e


def parse_task_reference(body: str) -> Task:
    """
    Decode an audit.queue body into a Task.

    Accepts a bare id (``42``), a JSON string (``"42"``) or a JSON number.

    Raises:
        MessageFormatError: Body does not carry a usable id
    """
    text = body.strip()
    if not text:
        raise MessageFormatError("Empty audit message body")
    try:
        value = json.loads(text)
    except json.JSONDecodeError:
        value = text
    if isinstance(value, (dict, list)) or value is None:
        raise MessageFormatError(f"Audit message must carry a bare task id, got: {text[:100]}")
    try:
        return Task(id=value)
    except ValidationError as e:
        raise MessageFormatError(f"Invalid task id in audit message: {text[:100]}") from e
