# ============================================================================
# STAGE LISTENER
# ============================================================================
# STATUS: Core - Service Bus message handling for one stage
# PURPOSE: Run a received message through the retry middleware and settle it
# ============================================================================
"""
Stage Listener

For each message a pool worker receives:
1. Wrap it in a RetryEnvelope (body + attempt_count)
2. Run the stage handler through the RetryMiddleware
3. Complete / dead-letter / abandon the message on the worker's receiver

A settle failure is logged together with the handler outcome; the message
lock then expires and the broker redelivers.
"""

from typing import Any, Awaitable, Callable

from core.error_handler import log_nested_error
from util_logger import LoggerFactory, ComponentType

from .contracts import ProcessingOutcome, RetryEnvelope, Settlement
from .retry_middleware import RetryMiddleware


class StageListener:
    """Processes and settles messages for one stage queue."""

    def __init__(
        self,
        stage_name: str,
        queue_name: str,
        handler: Callable[[str], Awaitable[Any]],
        middleware: RetryMiddleware,
    ):
        self.stage_name = stage_name
        self.queue_name = queue_name
        self.handler = handler
        self.middleware = middleware
        self.logger = LoggerFactory.create_with_context(
            ComponentType.WORKER,
            f"StageListener.{stage_name}",
            stage=stage_name,
            queue_name=queue_name,
        )
        self._processed = 0
        self._retried = 0
        self._dead_lettered = 0
        self._abandoned = 0

    async def process_message(self, receiver, message) -> ProcessingOutcome:
        """
        Handle one received message and settle it on ``receiver``.

        Args:
            receiver: ServiceBusReceiver the message was received on
            message: ServiceBusReceivedMessage

        Returns:
            The outcome the message was settled with
        """
        envelope = RetryEnvelope.from_message(message)
        self.logger.debug(f"[{self.stage_name}] Received message, attempt {envelope.attempt_count}")

        outcome = await self.middleware.invoke(envelope, self.handler)

        try:
            if outcome.settlement == Settlement.COMPLETE:
                await receiver.complete_message(message)
            elif outcome.settlement == Settlement.DEAD_LETTER:
                await receiver.dead_letter_message(
                    message,
                    reason=outcome.reason,
                    error_description=(outcome.description or "")[:1024],
                )
            else:
                await receiver.abandon_message(message)
        except Exception as settle_error:
            log_nested_error(
                self.logger,
                primary_error=RuntimeError(f"{outcome.settlement.value}: {outcome.reason}"),
                cleanup_error=settle_error,
                operation=f"{outcome.settlement.value}_message",
                stage=self.stage_name,
            )
            return outcome

        self._record(outcome)
        return outcome

    def _record(self, outcome: ProcessingOutcome) -> None:
        if outcome.settlement == Settlement.DEAD_LETTER:
            self._dead_lettered += 1
        elif outcome.settlement == Settlement.ABANDON:
            self._abandoned += 1
        elif outcome.retry_scheduled:
            self._retried += 1
        else:
            self._processed += 1

    @property
    def stats(self) -> dict:
        """Get listener statistics."""
        return {
            "stage": self.stage_name,
            "queue": self.queue_name,
            "processed": self._processed,
            "retried": self._retried,
            "dead_lettered": self._dead_lettered,
            "abandoned": self._abandoned,
        }
