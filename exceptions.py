# ============================================================================
# EXCEPTIONS
# ============================================================================
# STATUS: Shared - used by every pipeline stage
# PURPOSE: Exception hierarchy separating contract violations, retryable
#          upstream failures and permanent content failures
# ============================================================================

"""
Custom Exception Hierarchy

Distinguishes between:
1. Contract Violations (programming bugs that need fixing)
2. Business Logic Failures (expected runtime issues)

Business failures are further split by how the retry middleware settles
the message that caused them:

    TransientExternalError   -> redelivered with backoff until attempts run out
    PermanentExternalError   -> dead-lettered immediately
    ContentNotFoundError     -> acknowledged and dropped (nothing to publish)
    MessageFormatError       -> dead-lettered immediately

Business rejection by the classifier is NOT an exception. It is a normal
transition to REJECTED.
"""

from typing import Optional


class ContractViolationError(TypeError):
    """
    Raised when component contracts are violated (programming bugs).

    These indicate:
    - Wrong types passed to functions
    - Illegal moderation state transitions
    - Interface contract violations

    Stage workers never retry these. The message is dead-lettered so the
    offending payload stays inspectable.
    """
    pass


class InvalidStateTransitionError(ContractViolationError):
    """
    A moderation state transition not allowed by the state machine.

    Examples:
        - REJECTED -> PUBLISHED
        - PUBLISHED -> PENDING
    """

    def __init__(self, task_id: str, current: str, target: str):
        self.task_id = task_id
        self.current = current
        self.target = target
        super().__init__(
            f"Invalid moderation transition for task {task_id}: {current} -> {target}"
        )


class BusinessLogicError(Exception):
    """
    Base class for expected runtime business logic failures.

    These are normal failures that occur during system operation
    and should be handled gracefully without crashing.
    """
    pass


class TransientExternalError(BusinessLogicError):
    """
    Temporary failure of an external collaborator.

    Examples:
        - Classifier or embedding endpoint timed out
        - Network error talking to the model endpoint
        - Upstream returned HTTP 5xx or a malformed body
    """

    def __init__(self, message: str, service: Optional[str] = None):
        self.service = service
        super().__init__(message)


class ThrottledError(TransientExternalError):
    """Upstream rate limited the call (HTTP 429)."""
    pass


class StateNotVisibleError(TransientExternalError):
    """
    The vector stage saw a task that is still PENDING.

    The moderation stage commit has not become visible yet, so the proceed
    event is redelivered rather than dropped.
    """
    pass


class PermanentExternalError(BusinessLogicError):
    """
    External collaborator refused the request in a way retries cannot fix.

    Examples:
        - HTTP 400/401/403/404 from the model endpoint
        - Embedding returned with the wrong dimensionality
    """

    def __init__(self, message: str, service: Optional[str] = None):
        self.service = service
        super().__init__(message)


class ServiceBusError(BusinessLogicError):
    """
    Service Bus communication failures.

    Examples:
        - Service Bus unavailable
        - Queue not found
        - Authentication failure
    """
    pass


class DatabaseError(BusinessLogicError):
    """
    Database operation failures.

    Examples:
        - Connection lost
        - Deadlock detected
        - Query timeout
    """
    pass


class ResourceNotFoundError(BusinessLogicError):
    """
    Requested resource does not exist.

    Examples:
        - Notification target user was deleted
        - Queue does not exist
    """
    pass


class ContentNotFoundError(ResourceNotFoundError):
    """
    The content behind a task id is irrecoverably missing.

    Raised after the bounded lookup retry on the moderation stage, or when
    content was deleted between stages.
    """

    def __init__(self, task_id: str):
        self.task_id = task_id
        super().__init__(f"Content not found for task {task_id}")


class MessageFormatError(BusinessLogicError):
    """
    A queue message body could not be decoded into its contract.

    Redelivering a malformed body can never succeed, so it is dead-lettered.
    """
    pass


class BacklogProbeError(BusinessLogicError):
    """Queue depth could not be read. The autoscaler skips the tick."""
    pass


class ConfigurationError(Exception):
    """
    System configuration error.

    These are typically fatal and indicate misconfiguration
    that prevents the system from operating.

    Examples:
        - Missing required environment variables
        - Invalid connection strings
        - min_workers greater than max_workers
    """
    pass
