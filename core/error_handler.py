"""
Pipeline Error Handler - Centralized Error Handling.

Provides context manager for consistent error logging across stage
operations, and a helper that keeps the root cause visible when a settle
or cleanup step fails after a primary error.

Exports:
    PipelineErrorHandler: Context manager for operation error handling
    log_nested_error: Helper for preserving exception context in cleanup
"""

from contextlib import contextmanager
from typing import Optional, Callable, Any, Dict
import traceback
import logging

from exceptions import ContractViolationError


def _short_id(value: str) -> str:
    return value[:16] + '...' if len(value) > 16 else value


class PipelineErrorHandler:
    """
    Centralized error handling for pipeline operations.

    Usage:
        with PipelineErrorHandler.handle_operation(
            logger=self.logger,
            operation_name="start consumer pool",
            stage="audit",
            raise_on_error=False
        ):
            await pool.start()
    """

    @staticmethod
    @contextmanager
    def handle_operation(
        logger: logging.Logger,
        operation_name: str,
        task_id: Optional[str] = None,
        stage: Optional[str] = None,
        on_error: Optional[Callable[[Exception], None]] = None,
        raise_on_error: bool = True
    ):
        """
        Context manager for consistent error handling.

        Args:
            logger: Logger instance for error output
            operation_name: Human-readable operation description
            task_id: Optional task ID for context
            stage: Optional stage name for context
            on_error: Optional callback to execute on error
            raise_on_error: If True, re-raise exception after handling

        Raises:
            ContractViolationError: Always re-raised (programming bugs)
            Exception: Re-raised if raise_on_error=True
        """
        try:
            yield
        except ContractViolationError:
            # Contract violations always bubble up (programming bugs)
            raise
        except Exception as e:
            error_context: Dict[str, Any] = {
                'operation': operation_name,
                'error_type': type(e).__name__,
                'error_message': str(e),
            }
            if task_id:
                error_context['task_id'] = _short_id(task_id)
            if stage:
                error_context['stage'] = stage

            logger.error(
                f"❌ Operation failed: {operation_name}",
                extra=error_context
            )
            logger.debug(f"Traceback: {traceback.format_exc()}")

            if on_error:
                try:
                    on_error(e)
                except Exception as callback_error:
                    logger.error(
                        f"❌ Error callback failed: {callback_error}",
                        extra={'callback_error': str(callback_error)}
                    )

            if raise_on_error:
                raise


def log_nested_error(
    logger: logging.Logger,
    primary_error: Exception,
    cleanup_error: Exception,
    operation: str,
    task_id: Optional[str] = None,
    stage: Optional[str] = None,
    additional_context: Optional[Dict[str, Any]] = None
) -> None:
    """
    Log both primary and cleanup errors with full context preservation.

    When settling a message (dead-letter, abandon) fails after the handler
    already failed, both errors are logged so the root cause is not lost.

    Usage:
        except Exception as settle_error:
            log_nested_error(
                self.logger,
                primary_error=handler_error,
                cleanup_error=settle_error,
                operation="dead_letter_message",
                task_id=task_id,
            )

    In Application Insights, you can search for:
        - customDimensions.primary_error_type to find root cause
        - customDimensions.nested_error = true to find all nested errors
    """
    error_context: Dict[str, Any] = {
        'nested_error': True,
        'operation': operation,
        'primary_error': str(primary_error),
        'primary_error_type': type(primary_error).__name__,
        'cleanup_error': str(cleanup_error),
        'cleanup_error_type': type(cleanup_error).__name__,
    }

    if task_id:
        error_context['task_id'] = _short_id(task_id)
    if stage is not None:
        error_context['stage'] = stage
    if additional_context:
        error_context.update(additional_context)

    logger.error(
        f"❌ Nested error: {operation} failed, cleanup also failed. "
        f"PRIMARY: {type(primary_error).__name__}: {primary_error} | "
        f"CLEANUP: {type(cleanup_error).__name__}: {cleanup_error}",
        extra=error_context
    )
    logger.debug(f"Primary error traceback: {traceback.format_exception(type(primary_error), primary_error, primary_error.__traceback__)}")
