"""
Unified Logger System.

JSON-only structured logging for the moderation pipeline workers. Every
record is one JSON object on stdout with a ``customDimensions`` block that
Application Insights (or any log shipper) can index.

Design Principles:
    - Strong typing with dataclasses (stdlib only)
    - Enum safety for categories
    - Component-specific loggers
    - Clean factory pattern

Exports:
    ComponentType: Enum for component types
    LogLevel: Enum for log levels
    LogContext: Logging context dataclass
    ComponentConfig: Per-component logger settings
    JSONFormatter: Structured formatter
    LoggerFactory: Factory for creating loggers
    log_exceptions: Exception logging decorator (sync and async)

Dependencies:
    Standard library only (logging, enum, dataclasses, json)
"""

from enum import Enum
from typing import Optional, Dict, Any
from datetime import datetime, timezone
from dataclasses import dataclass
import asyncio
import logging
import sys
import os
import json
import traceback
from functools import wraps


# ============================================================================
# COMPONENT TYPES - Aligned with pipeline layers
# ============================================================================

class ComponentType(Enum):
    """
    Component types aligned with the pipeline layers.

    Each layer has specific logging needs and levels.
    """
    WORKER = "worker"          # Stage listeners and consumer pools
    CONTROLLER = "controller"  # Autoscaler and feedback control
    SERVICE = "service"        # Stage business logic
    REPOSITORY = "repository"  # Data access layer
    ADAPTER = "adapter"        # External integration layer (Service Bus, model endpoints)
    TRIGGER = "trigger"        # Process entry point


# ============================================================================
# LOG LEVELS - Standard Python levels with enum safety
# ============================================================================

class LogLevel(Enum):
    """
    Standard Python log levels as enum for type safety.
    """
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"

    def to_python_level(self) -> int:
        """Convert to Python logging level constant."""
        return getattr(logging, self.value)

    @classmethod
    def from_string(cls, level: str) -> 'LogLevel':
        """Create from string, case-insensitive."""
        return cls[level.upper()]


# ============================================================================
# LOG CONTEXT - Correlation and tracking
# ============================================================================

@dataclass
class LogContext:
    """
    Context for log correlation across operations.

    A task id is shared by both stages, so filtering on ``task_id`` shows a
    task's whole lifecycle while ``stage`` separates moderation from
    vectorization.
    """
    task_id: Optional[str] = None
    stage: Optional[str] = None
    queue_name: Optional[str] = None
    pool_name: Optional[str] = None
    correlation_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            k: v for k, v in {
                'task_id': self.task_id,
                'stage': self.stage,
                'queue_name': self.queue_name,
                'pool_name': self.pool_name,
                'correlation_id': self.correlation_id,
            }.items() if v is not None
        }


# ============================================================================
# COMPONENT CONFIGURATION - Per-component settings
# ============================================================================

@dataclass
class ComponentConfig:
    """
    Configuration for component-specific logging.

    Each component type can have different settings.
    """
    component_type: ComponentType
    log_level: LogLevel = LogLevel.INFO
    enable_debug_context: bool = False


# Attributes every LogRecord carries; anything else passed via ``extra``
# is copied into customDimensions.
_RESERVED_RECORD_ATTRS = frozenset(
    logging.LogRecord('', 0, '', 0, '', (), None).__dict__.keys()
) | {'message', 'asctime', 'custom_dimensions'}


# ============================================================================
# JSON FORMATTER - Structured logging
# ============================================================================

class JSONFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.
    Outputs logs in a format that Application Insights can automatically parse.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_obj = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name,
            'module': record.module,
            'function': record.funcName,
            'line': record.lineno
        }

        if hasattr(record, 'custom_dimensions'):
            log_obj['customDimensions'] = record.custom_dimensions

        if record.exc_info:
            log_obj['exception'] = {
                'type': record.exc_info[0].__name__ if record.exc_info[0] else None,
                'message': str(record.exc_info[1]) if record.exc_info[1] else None,
                'traceback': self.formatException(record.exc_info)
            }

        return json.dumps(log_obj, default=str)


# ============================================================================
# LOGGER FACTORY - Creates component-specific loggers
# ============================================================================

def _resolve_default_level() -> LogLevel:
    if os.getenv('DEBUG_LOGGING', '').lower() == 'true':
        return LogLevel.DEBUG
    try:
        return LogLevel.from_string(os.getenv('LOG_LEVEL', 'INFO'))
    except KeyError:
        return LogLevel.INFO


class LoggerFactory:
    """
    Factory for creating component-specific loggers.

    Example:
        logger = LoggerFactory.create_logger(
            ComponentType.CONTROLLER,
            "Autoscaler.audit"
        )
        logger.info("Resized pool")
    """

    _default_level = _resolve_default_level()

    DEFAULT_CONFIGS = {
        ComponentType.WORKER: ComponentConfig(
            component_type=ComponentType.WORKER,
            log_level=_default_level
        ),
        ComponentType.CONTROLLER: ComponentConfig(
            component_type=ComponentType.CONTROLLER,
            log_level=_default_level,
            enable_debug_context=_default_level == LogLevel.DEBUG
        ),
        ComponentType.SERVICE: ComponentConfig(
            component_type=ComponentType.SERVICE,
            log_level=_default_level
        ),
        ComponentType.REPOSITORY: ComponentConfig(
            component_type=ComponentType.REPOSITORY,
            log_level=_default_level,
            enable_debug_context=True
        ),
        ComponentType.ADAPTER: ComponentConfig(
            component_type=ComponentType.ADAPTER,
            log_level=_default_level
        ),
        ComponentType.TRIGGER: ComponentConfig(
            component_type=ComponentType.TRIGGER,
            log_level=_default_level
        ),
    }

    @classmethod
    def create_logger(
        cls,
        component_type: ComponentType,
        name: str,
        context: Optional[LogContext] = None,
        config: Optional[ComponentConfig] = None
    ) -> logging.Logger:
        """
        Create a logger for a specific component.

        Args:
            component_type: Type of component
            name: Component name (e.g., "ModerationWorker")
            context: Optional log context for correlation
            config: Optional custom configuration

        Returns:
            Configured Python logger
        """
        if config is None:
            config = cls.DEFAULT_CONFIGS.get(
                component_type,
                ComponentConfig(component_type=component_type)
            )

        logger_name = f"{component_type.value}.{name}"
        logger = logging.getLogger(logger_name)

        if isinstance(config.log_level, str):
            log_level = LogLevel.from_string(config.log_level).to_python_level()
        else:
            log_level = config.log_level.to_python_level()
        logger.setLevel(log_level)

        # Only one JSON handler per logger, even when created repeatedly
        has_json_handler = any(
            isinstance(h.formatter, JSONFormatter) for h in logger.handlers
        )
        if not has_json_handler:
            handler = logging.StreamHandler(sys.stdout)
            handler.setLevel(log_level)
            handler.setFormatter(JSONFormatter())
            logger.addHandler(handler)

        # pytest caplog and Azure's root logger both listen on propagation
        logger.propagate = True

        if not hasattr(logger, '_context_wrapped'):
            original_log = logger._log

            def log_with_context(level, msg, args, exc_info=None, extra=None, stack_info=False, stacklevel=1):
                """Wrapper to inject context as custom dimensions."""
                if extra is None:
                    extra = {}

                custom_dims = context.to_dict() if context else {}
                custom_dims['component_type'] = component_type.value
                custom_dims['component_name'] = name

                for key, value in extra.items():
                    if key not in _RESERVED_RECORD_ATTRS:
                        custom_dims[key] = value
                if 'custom_dimensions' in extra:
                    custom_dims.update(extra['custom_dimensions'])

                extra['custom_dimensions'] = custom_dims

                # +1 to account for this wrapper frame
                original_log(level, msg, args, exc_info=exc_info, extra=extra,
                             stack_info=stack_info, stacklevel=stacklevel + 1)

            logger._log = log_with_context
            logger._context_wrapped = True

        return logger

    @classmethod
    def create_with_context(
        cls,
        component_type: ComponentType,
        name: str,
        task_id: Optional[str] = None,
        stage: Optional[str] = None,
        queue_name: Optional[str] = None,
        pool_name: Optional[str] = None,
    ) -> logging.Logger:
        """
        Create logger with stage/queue context.

        The context is bound to the logger name, so pass only stable values
        (stage, queue, pool) here. Per-task ids belong in ``extra``.
        """
        context = LogContext(
            task_id=task_id,
            stage=stage,
            queue_name=queue_name,
            pool_name=pool_name,
        ) if any([task_id, stage, queue_name, pool_name]) else None

        return cls.create_logger(
            component_type=component_type,
            name=name,
            context=context
        )


# ============================================================================
# EXCEPTION DECORATOR - Automatic exception logging with context
# ============================================================================

def log_exceptions(component_type: Optional[ComponentType] = None,
                   component_name: Optional[str] = None,
                   logger: Optional[logging.Logger] = None):
    """
    Decorator to automatically log exceptions with full context.

    Works on plain functions and coroutine functions. The exception is
    always re-raised.

    Example:
        @log_exceptions(ComponentType.TRIGGER, "worker_main")
        async def main():
            ...
    """
    def decorator(func):
        def _resolve_logger() -> logging.Logger:
            if logger:
                return logger
            if component_type and component_name:
                return LoggerFactory.create_logger(component_type, component_name)
            return LoggerFactory.create_logger(
                ComponentType.SERVICE,
                func.__module__ or "unknown"
            )

        def _log_failure(e: Exception, args, kwargs) -> None:
            _resolve_logger().error(
                f"Exception in {func.__name__}",
                exc_info=True,
                extra={
                    'custom_dimensions': {
                        'function_name': func.__name__,
                        'function_module': func.__module__,
                        'exception_type': type(e).__name__,
                        'exception_message': str(e),
                        'function_args': str(args)[:500],
                        'function_kwargs': str(kwargs)[:500],
                        'traceback': traceback.format_exc()
                    }
                }
            )

        if asyncio.iscoroutinefunction(func):
            @wraps(func)
            async def async_wrapper(*args, **kwargs):
                try:
                    return await func(*args, **kwargs)
                except Exception as e:
                    _log_failure(e, args, kwargs)
                    raise
            return async_wrapper

        @wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except Exception as e:
                _log_failure(e, args, kwargs)
                raise
        return wrapper
    return decorator
