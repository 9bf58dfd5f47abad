"""
Structured logger tests.

Tests:
- extra fields land in customDimensions
- bound stage/queue context rides along on every record
- JSONFormatter emits one parseable object
- log_exceptions logs and re-raises for sync and async functions
"""

import asyncio
import json
import logging
import uuid

import pytest

from util_logger import ComponentType, JSONFormatter, LogLevel, LoggerFactory, log_exceptions


def _unique(name: str) -> str:
    return f"{name}-{uuid.uuid4().hex[:8]}"


class TestLoggerFactory:

    def test_extra_fields_become_custom_dimensions(self, caplog):
        logger = LoggerFactory.create_logger(ComponentType.WORKER, _unique("Listener"))

        with caplog.at_level(logging.INFO, logger=logger.name):
            logger.info("received", extra={'task_id': '42'})

        record = caplog.records[-1]
        assert record.custom_dimensions['task_id'] == '42'
        assert record.custom_dimensions['component_type'] == 'worker'

    def test_bound_context_is_attached(self, caplog):
        logger = LoggerFactory.create_with_context(
            ComponentType.CONTROLLER, _unique("Autoscaler"), stage="audit", queue_name="audit.queue"
        )

        with caplog.at_level(logging.INFO, logger=logger.name):
            logger.info("tick")

        dims = caplog.records[-1].custom_dimensions
        assert dims['stage'] == 'audit'
        assert dims['queue_name'] == 'audit.queue'
        assert 'task_id' not in dims

    def test_single_handler_per_logger(self):
        name = _unique("Repeat")
        first = LoggerFactory.create_logger(ComponentType.SERVICE, name)
        second = LoggerFactory.create_logger(ComponentType.SERVICE, name)

        assert first is second
        json_handlers = [h for h in first.handlers if isinstance(h.formatter, JSONFormatter)]
        assert len(json_handlers) == 1

    def test_log_level_from_string(self):
        assert LogLevel.from_string("warning") == LogLevel.WARNING
        assert LogLevel.DEBUG.to_python_level() == logging.DEBUG


class TestJSONFormatter:

    def test_formats_one_json_object(self, caplog):
        logger = LoggerFactory.create_logger(ComponentType.ADAPTER, _unique("ServiceBus"))

        with caplog.at_level(logging.INFO, logger=logger.name):
            logger.info("sent", extra={'destination': 'vector.queue'})

        payload = json.loads(JSONFormatter().format(caplog.records[-1]))
        assert payload['message'] == "sent"
        assert payload['level'] == "INFO"
        assert payload['customDimensions']['destination'] == 'vector.queue'

    def test_includes_exception_block(self, caplog):
        logger = LoggerFactory.create_logger(ComponentType.SERVICE, _unique("Failing"))

        with caplog.at_level(logging.ERROR, logger=logger.name):
            try:
                raise RuntimeError("boom")
            except RuntimeError:
                logger.exception("failed")

        payload = json.loads(JSONFormatter().format(caplog.records[-1]))
        assert payload['exception']['type'] == "RuntimeError"
        assert payload['exception']['message'] == "boom"


class TestLogExceptions:

    def test_sync_function_logged_and_reraised(self, caplog):
        @log_exceptions(ComponentType.TRIGGER, _unique("sync"))
        def explode():
            raise ValueError("bad input")

        with caplog.at_level(logging.ERROR):
            with pytest.raises(ValueError):
                explode()

        assert any("Exception in explode" in r.getMessage() for r in caplog.records)

    def test_async_function_logged_and_reraised(self, caplog):
        @log_exceptions(ComponentType.TRIGGER, _unique("async"))
        async def explode_later():
            await asyncio.sleep(0)
            raise ValueError("bad input")

        with caplog.at_level(logging.ERROR):
            with pytest.raises(ValueError):
                asyncio.run(explode_later())

        assert any("Exception in explode_later" in r.getMessage() for r in caplog.records)

    def test_return_value_passes_through(self):
        @log_exceptions(ComponentType.TRIGGER, _unique("ok"))
        async def fine():
            return 7

        assert asyncio.run(fine()) == 7
