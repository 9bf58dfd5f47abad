"""
Service Bus Topology Provisioning.

Creates the queues, topics, subscriptions and rules the pipeline expects.
Safe to run on every start: existing entities are left untouched, and
forwarding targets are always created before the entities that forward
to them.

    audit.queue  --dead-letter-->  audit.dlx  --(audit.dead)-->  audit.dlq
    vector.queue --dead-letter-->  vector.dlx --(vector.dead)--> vector.dlq
    notification.exchange --(subject == notification.routing.key)--> notification.queue

Exports:
    ensure_topology: Idempotent provisioning
"""

from datetime import timedelta
from typing import Awaitable, Callable, List

from azure.core.exceptions import ResourceExistsError, ResourceNotFoundError
from azure.servicebus.aio.management import ServiceBusAdministrationClient
from azure.servicebus.management import CorrelationRuleFilter

from config import QueueConfig, StageTopology
from util_logger import LoggerFactory, ComponentType, log_exceptions

logger = LoggerFactory.create_logger(ComponentType.REPOSITORY, "Topology")

DEFAULT_RULE_NAME = "$Default"
ROUTING_RULE_NAME = "routing-key"


async def _ensure(
    description: str,
    exists: Callable[[], Awaitable],
    create: Callable[[], Awaitable],
    created: List[str],
) -> None:
    try:
        await exists()
        logger.debug(f"✓ {description} exists")
        return
    except ResourceNotFoundError:
        pass
    try:
        await create()
        created.append(description)
        logger.info(f"✅ Created {description}")
    except ResourceExistsError:
        logger.debug(f"✓ {description} created concurrently")


async def _ensure_stage(admin: ServiceBusAdministrationClient, stage: StageTopology, config: QueueConfig, created: List[str]) -> None:
    lock_duration = timedelta(seconds=config.lock_duration_seconds)

    await _ensure(
        f"queue {stage.dead_letter_queue}",
        lambda: admin.get_queue(stage.dead_letter_queue),
        lambda: admin.create_queue(stage.dead_letter_queue, lock_duration=lock_duration),
        created,
    )
    await _ensure(
        f"topic {stage.dead_letter_exchange}",
        lambda: admin.get_topic(stage.dead_letter_exchange),
        lambda: admin.create_topic(stage.dead_letter_exchange),
        created,
    )
    await _ensure(
        f"subscription {stage.dead_letter_exchange}/{stage.dead_letter_routing}",
        lambda: admin.get_subscription(stage.dead_letter_exchange, stage.dead_letter_routing),
        lambda: admin.create_subscription(
            stage.dead_letter_exchange,
            stage.dead_letter_routing,
            forward_to=stage.dead_letter_queue,
        ),
        created,
    )
    await _ensure(
        f"queue {stage.queue}",
        lambda: admin.get_queue(stage.queue),
        lambda: admin.create_queue(
            stage.queue,
            max_delivery_count=config.max_delivery_count,
            lock_duration=lock_duration,
            forward_dead_lettered_messages_to=stage.dead_letter_exchange,
        ),
        created,
    )


async def _ensure_notifications(admin: ServiceBusAdministrationClient, config: QueueConfig, created: List[str]) -> None:
    topic = config.notification_exchange
    subscription = config.notification_queue

    await _ensure(
        f"queue {config.notification_queue}",
        lambda: admin.get_queue(config.notification_queue),
        lambda: admin.create_queue(
            config.notification_queue,
            max_delivery_count=config.max_delivery_count,
            lock_duration=timedelta(seconds=config.lock_duration_seconds),
        ),
        created,
    )
    await _ensure(
        f"topic {topic}",
        lambda: admin.get_topic(topic),
        lambda: admin.create_topic(topic),
        created,
    )
    await _ensure(
        f"subscription {topic}/{subscription}",
        lambda: admin.get_subscription(topic, subscription),
        lambda: admin.create_subscription(topic, subscription, forward_to=config.notification_queue),
        created,
    )
    await _ensure(
        f"rule {topic}/{subscription}/{ROUTING_RULE_NAME}",
        lambda: admin.get_rule(topic, subscription, ROUTING_RULE_NAME),
        lambda: admin.create_rule(
            topic,
            subscription,
            ROUTING_RULE_NAME,
            filter=CorrelationRuleFilter(label=config.notification_routing_key),
        ),
        created,
    )

    # The catch-all default rule would bypass the routing key filter
    try:
        await admin.delete_rule(topic, subscription, DEFAULT_RULE_NAME)
        logger.info(f"Removed {DEFAULT_RULE_NAME} rule from {topic}/{subscription}")
    except ResourceNotFoundError:
        pass


@log_exceptions(logger=logger)
async def ensure_topology(admin: ServiceBusAdministrationClient, config: QueueConfig) -> List[str]:
    """
    Provision every entity the pipeline uses.

    Returns:
        Descriptions of the entities that were created on this run
    """
    created: List[str] = []
    logger.info("🚌 Ensuring Service Bus topology")
    await _ensure_stage(admin, config.audit, config, created)
    await _ensure_stage(admin, config.vector, config, created)
    await _ensure_notifications(admin, config, created)
    logger.info(f"✅ Topology ready ({len(created)} entities created)")
    return created
