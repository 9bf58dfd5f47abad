"""
Error Code Definitions and Classification.

Centralized error code management with retry logic shared by every
pipeline stage. The retry middleware settles a failed message purely from
the classification returned here.

Key Features:
    - Explicit error codes for all failure modes
    - Retry classification (PERMANENT, TRANSIENT, THROTTLING)
    - Exception to error code mapping for the retry middleware

Exports:
    ErrorCode: Standardized error codes enum
    ErrorClassification: Error category enum
    is_retryable: Helper to check if error should be retried
    get_error_classification: Classification lookup for an error code
    classify_exception: Map a raised exception to (ErrorCode, ErrorClassification)
"""

import asyncio
from enum import Enum
from typing import Dict, Tuple

from exceptions import (
    BacklogProbeError,
    ContentNotFoundError,
    ContractViolationError,
    DatabaseError,
    InvalidStateTransitionError,
    MessageFormatError,
    PermanentExternalError,
    ResourceNotFoundError,
    ServiceBusError,
    StateNotVisibleError,
    ThrottledError,
    TransientExternalError,
)


class ErrorCode(str, Enum):
    """
    Standardized error codes for all pipeline errors.

    These codes are attached to log records and dead-letter descriptions to
    provide explicit error classification for monitoring and retry logic.
    """

    # ========================================================================
    # CONTENT ERRORS - NOT RETRYABLE
    # ========================================================================

    CONTENT_NOT_FOUND = "CONTENT_NOT_FOUND"  # Task id has no content (deleted or never committed)
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"  # Generic resource not found
    INVALID_MESSAGE = "INVALID_MESSAGE"  # Queue body does not match its contract
    INVALID_TRANSITION = "INVALID_TRANSITION"  # State machine refused the transition
    CONTRACT_VIOLATION = "CONTRACT_VIOLATION"  # Programming bug

    # ========================================================================
    # EXTERNAL MODEL ERRORS
    # ========================================================================

    UPSTREAM_REJECTED = "UPSTREAM_REJECTED"  # 4xx from classifier/embedding endpoint
    UPSTREAM_UNAVAILABLE = "UPSTREAM_UNAVAILABLE"  # 5xx, network error, malformed body
    STATE_NOT_VISIBLE = "STATE_NOT_VISIBLE"  # Moderation commit not visible to vector stage yet
    TIMEOUT = "TIMEOUT"  # External call exceeded its timeout
    THROTTLED = "THROTTLED"  # Rate limited

    # ========================================================================
    # INFRASTRUCTURE ERRORS - RETRYABLE
    # ========================================================================

    DATABASE_ERROR = "DATABASE_ERROR"  # Content store operation failed
    QUEUE_ERROR = "QUEUE_ERROR"  # Service Bus operation failed
    BACKLOG_PROBE_FAILED = "BACKLOG_PROBE_FAILED"  # Queue depth unavailable

    # ========================================================================
    # GENERIC ERRORS
    # ========================================================================

    UNKNOWN_ERROR = "UNKNOWN_ERROR"  # Unclassified error


class ErrorClassification(str, Enum):
    """
    Error classification for retry logic.

    Determines whether an error should trigger a retry or fail immediately.
    """

    PERMANENT = "PERMANENT"  # Never retry
    TRANSIENT = "TRANSIENT"  # Retry with exponential backoff
    THROTTLING = "THROTTLING"  # Retry with the capped delay


# Error code to classification mapping
_ERROR_CLASSIFICATION: Dict[ErrorCode, ErrorClassification] = {
    ErrorCode.CONTENT_NOT_FOUND: ErrorClassification.PERMANENT,
    ErrorCode.RESOURCE_NOT_FOUND: ErrorClassification.PERMANENT,
    ErrorCode.INVALID_MESSAGE: ErrorClassification.PERMANENT,
    ErrorCode.INVALID_TRANSITION: ErrorClassification.PERMANENT,
    ErrorCode.CONTRACT_VIOLATION: ErrorClassification.PERMANENT,
    ErrorCode.UPSTREAM_REJECTED: ErrorClassification.PERMANENT,

    ErrorCode.UPSTREAM_UNAVAILABLE: ErrorClassification.TRANSIENT,
    ErrorCode.STATE_NOT_VISIBLE: ErrorClassification.TRANSIENT,
    ErrorCode.TIMEOUT: ErrorClassification.TRANSIENT,
    ErrorCode.DATABASE_ERROR: ErrorClassification.TRANSIENT,
    ErrorCode.QUEUE_ERROR: ErrorClassification.TRANSIENT,
    ErrorCode.BACKLOG_PROBE_FAILED: ErrorClassification.TRANSIENT,

    ErrorCode.THROTTLED: ErrorClassification.THROTTLING,

    # UNKNOWN - Default to transient (retry until attempts run out)
    ErrorCode.UNKNOWN_ERROR: ErrorClassification.TRANSIENT,
}

# Most specific classes first; the first isinstance match wins
_EXCEPTION_CODES = (
    (ContentNotFoundError, ErrorCode.CONTENT_NOT_FOUND),
    (ResourceNotFoundError, ErrorCode.RESOURCE_NOT_FOUND),
    (MessageFormatError, ErrorCode.INVALID_MESSAGE),
    (InvalidStateTransitionError, ErrorCode.INVALID_TRANSITION),
    (ContractViolationError, ErrorCode.CONTRACT_VIOLATION),
    (PermanentExternalError, ErrorCode.UPSTREAM_REJECTED),
    (ThrottledError, ErrorCode.THROTTLED),
    (StateNotVisibleError, ErrorCode.STATE_NOT_VISIBLE),
    (TransientExternalError, ErrorCode.UPSTREAM_UNAVAILABLE),
    (asyncio.TimeoutError, ErrorCode.TIMEOUT),
    (DatabaseError, ErrorCode.DATABASE_ERROR),
    (ServiceBusError, ErrorCode.QUEUE_ERROR),
    (BacklogProbeError, ErrorCode.BACKLOG_PROBE_FAILED),
)


def is_retryable(error_code: ErrorCode) -> bool:
    """
    Determine if an error code should trigger a retry.

    Args:
        error_code: ErrorCode enum value

    Returns:
        True if error should be retried, False otherwise

    Example:
        >>> is_retryable(ErrorCode.CONTENT_NOT_FOUND)
        False
        >>> is_retryable(ErrorCode.TIMEOUT)
        True
    """
    classification = _ERROR_CLASSIFICATION.get(error_code, ErrorClassification.TRANSIENT)
    return classification != ErrorClassification.PERMANENT


def get_error_classification(error_code: ErrorCode) -> ErrorClassification:
    """
    Get the classification for an error code.

    Args:
        error_code: ErrorCode enum value

    Returns:
        ErrorClassification enum value
    """
    return _ERROR_CLASSIFICATION.get(error_code, ErrorClassification.TRANSIENT)


def classify_exception(error: BaseException) -> Tuple[ErrorCode, ErrorClassification]:
    """
    Map an exception raised by a stage handler to its code and classification.

    Exceptions outside the known hierarchy are UNKNOWN_ERROR and therefore
    TRANSIENT: the retry budget, not the handler, decides when to give up.

    Example:
        >>> classify_exception(ContentNotFoundError("42"))
        (ErrorCode.CONTENT_NOT_FOUND, ErrorClassification.PERMANENT)
    """
    for exc_type, code in _EXCEPTION_CODES:
        if isinstance(error, exc_type):
            return code, get_error_classification(code)
    return ErrorCode.UNKNOWN_ERROR, get_error_classification(ErrorCode.UNKNOWN_ERROR)
