# ============================================================================
# RETRY MIDDLEWARE
# ============================================================================
# STATUS: Core - Per-stage retry, backoff and dead-letter routing
# PURPOSE: Wrap every handler invocation and turn its outcome into a
#          settlement decision
# ============================================================================
"""
Retry Middleware

Explicit wrapper around each consumer invocation. The handler never
settles messages itself; it either returns or raises, and the middleware
decides:

    success                                   -> COMPLETE
    ContentNotFoundError                      -> COMPLETE (dropped, logged)
    other permanent errors                    -> DEAD_LETTER immediately
    transient/throttling, attempts left       -> schedule a copy with
                                                 attempt_count + 1 after the
                                                 backoff delay, COMPLETE the
                                                 original
    transient/throttling, attempts exhausted  -> DEAD_LETTER (MaxAttemptsExceeded)
    scheduling the copy failed                -> ABANDON (broker redelivers,
                                                 max_delivery_count backstops)

Dead-lettered messages are auto-forwarded by the broker topology to the
stage's *.dlq queue.
"""

from typing import Any, Awaitable, Callable

from config.defaults import RetryDefaults
from core.error_handler import log_nested_error
from core.errors import ErrorClassification, ErrorCode, classify_exception
from core.retry_policy import RetryPolicy
from interfaces.repository import IMessagePublisher
from util_logger import LoggerFactory, ComponentType

from .contracts import ProcessingOutcome, RetryEnvelope, Settlement

MAX_ATTEMPTS_EXCEEDED = "MaxAttemptsExceeded"

Handler = Callable[[str], Awaitable[Any]]


class RetryMiddleware:
    """Applies one stage's RetryPolicy to handler failures."""

    def __init__(
        self,
        stage_name: str,
        queue_name: str,
        policy: RetryPolicy,
        publisher: IMessagePublisher,
    ):
        self.stage_name = stage_name
        self.queue_name = queue_name
        self.policy = policy
        self.publisher = publisher
        self.logger = LoggerFactory.create_with_context(
            ComponentType.WORKER,
            f"RetryMiddleware.{stage_name}",
            stage=stage_name,
            queue_name=queue_name,
        )

    async def invoke(self, envelope: RetryEnvelope, handler: Handler) -> ProcessingOutcome:
        try:
            await handler(envelope.body)
        except Exception as e:
            return await self._on_failure(envelope, e)
        return ProcessingOutcome.completed()

    async def _on_failure(self, envelope: RetryEnvelope, error: Exception) -> ProcessingOutcome:
        code, classification = classify_exception(error)
        attempt = envelope.attempt_count
        context = {
            'stage': self.stage_name,
            'attempt': attempt,
            'error_code': code.value,
            'error_type': type(error).__name__,
        }

        if code == ErrorCode.CONTENT_NOT_FOUND:
            self.logger.warning(f"⚠️ [{self.stage_name}] {error}; message dropped", extra=context)
            return ProcessingOutcome(
                settlement=Settlement.COMPLETE,
                reason=code.value,
                description=str(error),
                error_code=code.value,
            )

        if classification == ErrorClassification.PERMANENT:
            self.logger.error(
                f"❌ [{self.stage_name}] Permanent failure on attempt {attempt}: {error}",
                extra=context
            )
            return ProcessingOutcome(
                settlement=Settlement.DEAD_LETTER,
                reason=code.value,
                description=str(error),
                error_code=code.value,
            )

        if not self.policy.can_retry(attempt):
            self.logger.error(
                f"❌ [{self.stage_name}] Giving up after {attempt} attempts: {error}",
                extra=context
            )
            return ProcessingOutcome(
                settlement=Settlement.DEAD_LETTER,
                reason=MAX_ATTEMPTS_EXCEEDED,
                description=f"{code.value}: {error}",
                error_code=code.value,
            )

        delay = self.policy.backoff_delay(attempt, classification)
        try:
            await self.publisher.publish(
                self.queue_name,
                envelope.body,
                properties={RetryDefaults.ATTEMPT_PROPERTY: attempt + 1},
                delay_seconds=delay,
            )
        except Exception as schedule_error:
            log_nested_error(
                self.logger,
                primary_error=error,
                cleanup_error=schedule_error,
                operation="schedule_retry",
                stage=self.stage_name,
                additional_context={'attempt': attempt},
            )
            return ProcessingOutcome(
                settlement=Settlement.ABANDON,
                reason=code.value,
                description=str(error),
                error_code=code.value,
            )

        self.logger.warning(
            f"🔄 [{self.stage_name}] Attempt {attempt}/{self.policy.max_attempts} failed "
            f"({code.value}), retry in {delay:.1f}s: {error}",
            extra={**context, 'delay_seconds': delay}
        )
        return ProcessingOutcome(
            settlement=Settlement.COMPLETE,
            reason=code.value,
            description=str(error),
            retry_scheduled=True,
            delay_seconds=delay,
            error_code=code.value,
        )
