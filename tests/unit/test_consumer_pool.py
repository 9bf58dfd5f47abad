"""
ConsumerPool tests: worker coroutines against the in-memory broker.
"""

import asyncio

from core.retry_policy import RetryPolicy
from stage_worker.listener import StageListener
from stage_worker.pool import ConsumerPool
from stage_worker.retry_middleware import RetryMiddleware
from tests.factories.fakes import InMemoryBroker


def _pool(broker, handler, initial=1, max_capacity=20, factory=None):
    middleware = RetryMiddleware("audit", "audit.queue", RetryPolicy(), broker)
    listener = StageListener("audit", "audit.queue", handler, middleware)
    return ConsumerPool(
        "audit",
        listener,
        factory or broker.receiver_factory("audit.queue"),
        initial_workers=initial,
        max_capacity=max_capacity,
        max_wait_time=0.01,
        error_backoff_seconds=0.01,
    )


async def _wait_for(predicate, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0.01)


async def _noop(body):
    return None


def test_workers_drain_queue():
    broker = InMemoryBroker()
    seen = []

    async def handler(body):
        seen.append(body)

    async def scenario():
        for i in range(6):
            await broker.publish("audit.queue", str(i))
        pool = _pool(broker, handler, initial=2)
        await pool.start()
        await _wait_for(lambda: len(seen) == 6)
        await pool.stop(timeout=1.0)
        return pool

    pool = asyncio.run(scenario())
    assert sorted(seen) == [str(i) for i in range(6)]
    assert pool.listener.stats["processed"] == 6
    assert pool.active_workers == 0


def test_resize_grows_and_shrinks():
    broker = InMemoryBroker()

    async def scenario():
        pool = _pool(broker, _noop, initial=1)
        await pool.start()
        assert pool.active_workers == 1
        assert pool.resize(4) == 4
        assert pool.active_workers == 4
        assert pool.resize(2) == 2
        assert pool.active_workers == 2
        await pool.stop(timeout=1.0)

    asyncio.run(scenario())


def test_resize_clamped_to_capacity():
    broker = InMemoryBroker()

    async def scenario():
        pool = _pool(broker, _noop, initial=0, max_capacity=3)
        await pool.start()
        assert pool.resize(10) == 3
        pool.set_max_capacity(5)
        assert pool.max_capacity == 5
        assert pool.resize(10) == 5
        assert pool.active_workers == 5
        await pool.stop(timeout=1.0)

    asyncio.run(scenario())


def test_retired_workers_finish_in_flight_message():
    broker = InMemoryBroker()
    finished = []

    async def scenario():
        in_handler = asyncio.Event()

        async def slow(body):
            in_handler.set()
            await asyncio.sleep(0.05)
            finished.append(body)

        await broker.publish("audit.queue", "1")
        pool = _pool(broker, slow, initial=1)
        await pool.start()
        await asyncio.wait_for(in_handler.wait(), timeout=1.0)
        pool.resize(0)
        assert pool.active_workers == 0
        await pool.stop(timeout=1.0)

    asyncio.run(scenario())
    assert finished == ["1"]


def test_stop_cancels_stuck_workers():
    broker = InMemoryBroker()

    async def stuck(body):
        await asyncio.sleep(30)

    async def scenario():
        await broker.publish("audit.queue", "1")
        pool = _pool(broker, stuck, initial=1)
        await pool.start()
        await asyncio.sleep(0.05)
        await asyncio.wait_for(pool.stop(timeout=0.05), timeout=1.0)
        return pool

    pool = asyncio.run(scenario())
    assert pool.active_workers == 0


def test_receiver_errors_do_not_kill_worker():
    broker = InMemoryBroker()
    attempts = []

    def flaky_factory():
        attempts.append(1)
        if len(attempts) < 3:
            raise ConnectionError("namespace unreachable")
        return broker.receiver("audit.queue")

    seen = []

    async def handler(body):
        seen.append(body)

    async def scenario():
        await broker.publish("audit.queue", "42")
        pool = _pool(broker, handler, initial=1, factory=flaky_factory)
        await pool.start()
        await _wait_for(lambda: seen == ["42"])
        await pool.stop(timeout=1.0)

    asyncio.run(scenario())
    assert len(attempts) >= 3
