"""
Error classification tests: exception to (code, classification) mapping.
"""

import asyncio
import logging

import pytest

from core.error_handler import PipelineErrorHandler, log_nested_error
from core.errors import ErrorClassification, ErrorCode, classify_exception, get_error_classification, is_retryable
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


_CASES = [
    (ContentNotFoundError("7"), ErrorCode.CONTENT_NOT_FOUND, ErrorClassification.PERMANENT),
    (ResourceNotFoundError("user 9"), ErrorCode.RESOURCE_NOT_FOUND, ErrorClassification.PERMANENT),
    (MessageFormatError("bad"), ErrorCode.INVALID_MESSAGE, ErrorClassification.PERMANENT),
    (InvalidStateTransitionError("7", "REJECTED", "PUBLISHED"), ErrorCode.INVALID_TRANSITION, ErrorClassification.PERMANENT),
    (ContractViolationError("bug"), ErrorCode.CONTRACT_VIOLATION, ErrorClassification.PERMANENT),
    (PermanentExternalError("400"), ErrorCode.UPSTREAM_REJECTED, ErrorClassification.PERMANENT),
    (ThrottledError("429"), ErrorCode.THROTTLED, ErrorClassification.THROTTLING),
    (StateNotVisibleError("pending"), ErrorCode.STATE_NOT_VISIBLE, ErrorClassification.TRANSIENT),
    (TransientExternalError("503"), ErrorCode.UPSTREAM_UNAVAILABLE, ErrorClassification.TRANSIENT),
    (asyncio.TimeoutError(), ErrorCode.TIMEOUT, ErrorClassification.TRANSIENT),
    (DatabaseError("reset"), ErrorCode.DATABASE_ERROR, ErrorClassification.TRANSIENT),
    (ServiceBusError("down"), ErrorCode.QUEUE_ERROR, ErrorClassification.TRANSIENT),
    (BacklogProbeError("n/a"), ErrorCode.BACKLOG_PROBE_FAILED, ErrorClassification.TRANSIENT),
    (RuntimeError("surprise"), ErrorCode.UNKNOWN_ERROR, ErrorClassification.TRANSIENT),
]


@pytest.mark.parametrize("error,code,classification", _CASES, ids=[c[1].value for c in _CASES])
def test_classify_exception(error, code, classification):
    assert classify_exception(error) == (code, classification)


@pytest.mark.parametrize("code", list(ErrorCode), ids=[c.value for c in ErrorCode])
def test_is_retryable_consistent_with_classification(code):
    assert is_retryable(code) == (get_error_classification(code) != ErrorClassification.PERMANENT)


def test_throttled_is_transient_subclass():
    assert issubclass(ThrottledError, TransientExternalError)
    assert is_retryable(ErrorCode.THROTTLED)


def test_invalid_transition_message_names_states():
    error = InvalidStateTransitionError("42", "PUBLISHED", "PENDING")
    assert "PUBLISHED -> PENDING" in str(error)
    assert isinstance(error, TypeError)


_handler_logger = logging.getLogger("test.error_handler")


class TestPipelineErrorHandler:

    def test_reraises_by_default(self):
        with pytest.raises(DatabaseError):
            with PipelineErrorHandler.handle_operation(_handler_logger, "write state", task_id="42"):
                raise DatabaseError("connection reset")

    def test_swallows_when_asked_and_runs_callback(self, caplog):
        seen = []

        with caplog.at_level(logging.ERROR, logger=_handler_logger.name):
            with PipelineErrorHandler.handle_operation(
                _handler_logger, "close pool", stage="audit", on_error=seen.append, raise_on_error=False
            ):
                raise ServiceBusError("already closed")

        assert len(seen) == 1
        assert isinstance(seen[0], ServiceBusError)
        record = caplog.records[-1]
        assert record.operation == "close pool"
        assert record.stage == "audit"

    def test_contract_violation_always_propagates(self):
        with pytest.raises(ContractViolationError):
            with PipelineErrorHandler.handle_operation(_handler_logger, "apply", raise_on_error=False):
                raise ContractViolationError("wrong type")


def test_log_nested_error_keeps_both_errors(caplog):
    with caplog.at_level(logging.ERROR, logger=_handler_logger.name):
        log_nested_error(
            _handler_logger,
            primary_error=TransientExternalError("classifier down"),
            cleanup_error=ServiceBusError("lock lost"),
            operation="abandon_message",
            task_id="0123456789abcdefXYZ",
            stage="audit",
        )

    record = caplog.records[-1]
    assert record.nested_error is True
    assert record.primary_error_type == "TransientExternalError"
    assert record.cleanup_error_type == "ServiceBusError"
    assert record.task_id == "0123456789abcdef..."
