"""
Core Data Models Package.

Pure data structures for the moderation pipeline - no business logic.

Exports:
    Enums: ModerationState, NotificationEventType, ScalingAction, ScalingDirection, StageOutcome
    Content: Task, Content, IndexDocument
    Messages: AnalysisResult, ProceedEvent, NotificationEvent, parse_task_reference
    Control: ControllerSample, ControllerState, ScalingDecision
"""

from .enums import (
    ModerationState,
    NotificationEventType,
    ScalingAction,
    ScalingDirection,
    StageOutcome,
)
from .content import Task, Content, IndexDocument, coerce_task_id
from .messages import (
    AnalysisResult,
    ProceedEvent,
    NotificationEvent,
    parse_task_reference,
)
from .control import ControllerSample, ControllerState, ScalingDecision

__all__ = [
    'ModerationState',
    'NotificationEventType',
    'ScalingAction',
    'ScalingDirection',
    'StageOutcome',
    'Task',
    'Content',
    'IndexDocument',
    'coerce_task_id',
    'AnalysisResult',
    'ProceedEvent',
    'NotificationEvent',
    'parse_task_reference',
    'ControllerSample',
    'ControllerState',
    'ScalingDecision',
]
