#!/usr/bin/env python3
# ============================================================================
# PIPELINE WORKER ENTRY POINT
# ============================================================================
# STATUS: Core Component - asyncio process hosting every pipeline stage
# PURPOSE: Wire config, adapters, stage workers, consumer pools and
#          autoscalers together and run them until SIGTERM/SIGINT
# ============================================================================
"""
Pipeline Worker Entry Point.

One process hosts:
    - audit.queue pool        -> ModerationWorker   (autoscaled)
    - vector.queue pool       -> PublishWorker      (autoscaled)
    - notification.queue pool -> NotificationConsumer (fixed size)
    - NotificationEmitter background publisher
    - GlobalTrendManager refresh loop (optional)

Usage:
    python worker_main.py
    moderation-worker            # console script

Environment Variables (Required):
    ServiceBusConnection=<connection-string> OR SERVICE_BUS_NAMESPACE=<namespace>
    POSTGRES_HOST, POSTGRES_DB, POSTGRES_USER (+ POSTGRES_PASSWORD or USE_MANAGED_IDENTITY=true)
    CLASSIFIER_URL, EMBEDDING_URL

Optional:
    PROVISION_TOPOLOGY=true     create queues/topics/tables on start (local dev)
    APPLICATIONINSIGHTS_CONNECTION_STRING   export logs to Application Insights

Shutdown:
    SIGTERM/SIGINT set the stop event. Autoscalers stop ticking, every pool
    retires its workers (in-flight messages finish, bounded by
    SHUTDOWN_TIMEOUT_SECONDS), queued notifications are flushed,
    then clients close.
"""

import asyncio
import os
import signal
import sys
from datetime import datetime, timezone
from typing import List, Optional

from azure.monitor.opentelemetry import configure_azure_monitor

from config import AppConfig, AutoscalerConfig, RetryConfig, debug_config, get_config
from core.autoscaler import Autoscaler
from core.error_handler import PipelineErrorHandler
from core.retry_policy import RetryPolicy
from exceptions import ConfigurationError
from infrastructure.model_client import HttpEmbeddingGenerator, HttpModerationClassifier
from infrastructure.postgresql import PostgreSQLContentStore, PostgreSQLNotificationStore
from infrastructure.service_bus import ServiceBusBacklogProbe, ServiceBusRepository
from infrastructure.topology import ensure_topology
from services import (
    GlobalTrendManager,
    ModerationWorker,
    NotificationConsumer,
    NotificationEmitter,
    PublishWorker,
)
from stage_worker import ConsumerPool, RetryMiddleware, StageListener
from util_logger import LoggerFactory, ComponentType

# Module-level logger
logger = LoggerFactory.create_logger(ComponentType.CONTROLLER, "PipelineWorker")


# ============================================================================
# AZURE MONITOR OPENTELEMETRY SETUP
# ============================================================================

def _configure_azure_monitor() -> bool:
    """Send logs and traces to Application Insights when a connection string is set."""
    connection_string = os.environ.get("APPLICATIONINSIGHTS_CONNECTION_STRING")
    if not connection_string:
        logger.info("APPLICATIONINSIGHTS_CONNECTION_STRING not set - telemetry export disabled")
        return False

    os.environ.setdefault("OTEL_SERVICE_NAME", os.environ.get("APP_NAME", "moderation-pipeline"))
    try:
        configure_azure_monitor(connection_string=connection_string)
    except Exception as e:
        logger.warning(f"⚠️ Azure Monitor setup failed: {e} - telemetry export disabled")
        return False

    logger.info("✅ Azure Monitor OpenTelemetry configured")
    return True


class PipelineWorker:
    """
    Hosts every stage of the moderation pipeline in one event loop.

    Key Features:
        - One ConsumerPool per stage queue, each worker with its own receiver
        - One Autoscaler per moderation stage, ticking independently
        - Retry/backoff/dead-letter policy configured per stage
        - Graceful shutdown on stop_event
    """

    def __init__(self, config: AppConfig):
        self.config = config
        self.bus: Optional[ServiceBusRepository] = None
        self.probe: Optional[ServiceBusBacklogProbe] = None
        self.content_store: Optional[PostgreSQLContentStore] = None
        self.notification_store: Optional[PostgreSQLNotificationStore] = None
        self.classifier: Optional[HttpModerationClassifier] = None
        self.embedder: Optional[HttpEmbeddingGenerator] = None
        self.emitter: Optional[NotificationEmitter] = None
        self.trend: Optional[GlobalTrendManager] = None
        self.pools: List[ConsumerPool] = []
        self.autoscalers: List[Autoscaler] = []

    # ------------------------------------------------------------------
    # Wiring
    # ------------------------------------------------------------------

    def _build_stage(
        self,
        stage_name: str,
        queue_name: str,
        handler,
        retry: RetryConfig,
        initial_workers: int,
        max_workers: int,
    ) -> ConsumerPool:
        middleware = RetryMiddleware(stage_name, queue_name, RetryPolicy.from_config(retry), self.bus)
        listener = StageListener(stage_name, queue_name, handler, middleware)
        pool = ConsumerPool(
            stage_name,
            listener,
            self.bus.receiver_factory(queue_name),
            initial_workers=initial_workers,
            max_capacity=max_workers,
            max_wait_time=self.config.queues.receive_wait_seconds,
        )
        self.pools.append(pool)
        return pool

    def _autoscale(self, pool: ConsumerPool, queue_name: str, config: AutoscalerConfig) -> None:
        if not config.enabled:
            logger.info(f"Autoscaler disabled for {queue_name}, pool stays at {config.min_workers}")
            return
        self.autoscalers.append(Autoscaler(pool, self.probe, queue_name, config))

    async def build(self) -> None:
        config = self.config
        queues = config.queues
        pipeline = config.pipeline

        self.bus = ServiceBusRepository(queues)
        self.probe = ServiceBusBacklogProbe.from_config(queues)
        self.content_store = PostgreSQLContentStore(config.database)
        self.notification_store = PostgreSQLNotificationStore(config.database)

        if config.provision_topology:
            with PipelineErrorHandler.handle_operation(logger, "provision topology and schema"):
                await ensure_topology(self.probe.admin_client, queues)
                await self.content_store.ensure_schema()
                await self.notification_store.ensure_schema()

        self.classifier = HttpModerationClassifier.from_config(config.integrations)
        self.embedder = HttpEmbeddingGenerator.from_config(config.integrations)
        self.emitter = NotificationEmitter(
            self.bus,
            exchange=queues.notification_exchange,
            routing_key=queues.notification_routing_key,
            max_pending=pipeline.notification_max_pending,
            system_actor_id=pipeline.system_actor_id,
        )

        moderation = ModerationWorker(
            self.content_store,
            self.classifier,
            self.bus,
            self.emitter,
            proceed_queue=queues.vector.queue,
            classifier_timeout_seconds=config.integrations.classifier_timeout_seconds,
            lookup_retry_delay_seconds=pipeline.lookup_retry_delay_seconds,
            body_excerpt_chars=pipeline.body_excerpt_chars,
        )
        publisher = PublishWorker(
            self.content_store,
            self.embedder,
            self.emitter,
            embedding_timeout_seconds=config.integrations.embedding_timeout_seconds,
        )
        consumer = NotificationConsumer(self.notification_store, system_actor_id=pipeline.system_actor_id)

        audit_pool = self._build_stage(
            moderation.stage_name, queues.audit.queue, moderation.handle, config.audit_retry,
            config.audit_autoscaler.min_workers, config.audit_autoscaler.max_workers,
        )
        self._autoscale(audit_pool, queues.audit.queue, config.audit_autoscaler)

        vector_pool = self._build_stage(
            publisher.stage_name, queues.vector.queue, publisher.handle, config.vector_retry,
            config.vector_autoscaler.min_workers, config.vector_autoscaler.max_workers,
        )
        self._autoscale(vector_pool, queues.vector.queue, config.vector_autoscaler)

        self._build_stage(
            "notification", queues.notification_queue, consumer.handle, config.notification_retry,
            pipeline.notification_workers, pipeline.notification_workers,
        )

        if config.trend.enabled:
            self.trend = GlobalTrendManager(
                self.content_store,
                dimensions=config.integrations.embedding_dimensions,
                top_n=config.trend.top_n,
                refresh_interval_seconds=config.trend.refresh_interval_seconds,
            )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def run(self, stop_event: asyncio.Event) -> None:
        """Run until ``stop_event`` is set, then shut down gracefully."""
        await self.build()
        await self.emitter.start()
        for pool in self.pools:
            await pool.start()

        background = [
            asyncio.create_task(autoscaler.run(stop_event), name=f"autoscaler-{autoscaler.pool.name}")
            for autoscaler in self.autoscalers
        ]
        if self.trend is not None:
            background.append(asyncio.create_task(self.trend.run(stop_event), name="trend-vector"))

        logger.info(
            f"🚀 Pipeline worker running: {', '.join(p.name for p in self.pools)} "
            f"({len(self.autoscalers)} autoscalers)"
        )
        try:
            await stop_event.wait()
        finally:
            await asyncio.gather(*background, return_exceptions=True)
            await self.shutdown()

    async def shutdown(self) -> None:
        timeout = self.config.pipeline.shutdown_timeout_seconds
        logger.info("Shutting down...")

        await asyncio.gather(*(pool.stop(timeout=timeout) for pool in self.pools), return_exceptions=True)
        if self.emitter is not None:
            await self.emitter.stop(timeout=timeout)

        for resource in (self.classifier, self.embedder, self.content_store,
                         self.notification_store, self.probe, self.bus):
            if resource is None:
                continue
            with PipelineErrorHandler.handle_operation(
                logger, f"close {type(resource).__name__}", raise_on_error=False
            ):
                await resource.close()

        logger.info("Pipeline worker shutdown complete")
        logger.info(f"Shutdown at: {datetime.now(timezone.utc).isoformat()}")


async def main_async() -> None:
    config = get_config()
    logger.debug(f"Configuration: {debug_config()}")

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def request_shutdown(signum: int) -> None:
        logger.info(f"Received signal {signum}, initiating graceful shutdown...")
        stop_event.set()

    for signum in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(signum, request_shutdown, signum)

    await PipelineWorker(config).run(stop_event)


def run() -> None:
    """Entry point for the pipeline worker."""
    _configure_azure_monitor()
    try:
        asyncio.run(main_async())
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    run()
