# ============================================================================
# RESIZABLE CONSUMER POOL
# ============================================================================
# STATUS: Core - Competing-consumer worker coroutines for one stage
# PURPOSE: Run N receive/process loops and let the autoscaler change N
# ============================================================================
"""
Resizable Consumer Pool

Each worker coroutine opens its own receiver (prefetch 1, competing
consumers) and loops receive -> StageListener.process_message. Workers
share no mutable state.

Resizing:
    grow   -> spawn new worker tasks
    shrink -> set the retire event of the newest workers; each finishes the
              message it holds, closes its receiver, and exits

``max_capacity`` caps every resize. Only the autoscaler calls ``resize``
and ``set_max_capacity``.
"""

import asyncio
import itertools
from dataclasses import dataclass
from typing import AsyncContextManager, Callable, Dict, List

from interfaces.repository import IConsumerPool
from util_logger import LoggerFactory, ComponentType

from .listener import StageListener

ReceiverFactory = Callable[[], AsyncContextManager]


@dataclass
class _Worker:
    worker_id: int
    task: asyncio.Task
    retire: asyncio.Event

    @property
    def live(self) -> bool:
        return not self.task.done() and not self.retire.is_set()


class ConsumerPool(IConsumerPool):
    """
    Pool of receive/process loops for one stage queue.

    Usage:
        pool = ConsumerPool("audit", listener, bus.receiver_factory("audit.queue"),
                            initial_workers=2, max_capacity=20)
        await pool.start()
        pool.resize(5)
        ...
        await pool.stop()
    """

    def __init__(
        self,
        name: str,
        listener: StageListener,
        receiver_factory: ReceiverFactory,
        initial_workers: int = 1,
        max_capacity: int = 20,
        max_wait_time: float = 5.0,
        max_message_count: int = 1,
        error_backoff_seconds: float = 1.0,
    ):
        self._name = name
        self.listener = listener
        self.receiver_factory = receiver_factory
        self.initial_workers = initial_workers
        self._max_capacity = max_capacity
        self.max_wait_time = max_wait_time
        self.max_message_count = max_message_count
        self.error_backoff_seconds = error_backoff_seconds
        self._workers: Dict[int, _Worker] = {}
        self._ids = itertools.count(1)
        self.logger = LoggerFactory.create_with_context(
            ComponentType.WORKER,
            f"ConsumerPool.{name}",
            pool_name=name,
        )

    # ------------------------------------------------------------------
    # IConsumerPool
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def active_workers(self) -> int:
        return sum(1 for w in self._workers.values() if w.live)

    @property
    def max_capacity(self) -> int:
        return self._max_capacity

    def set_max_capacity(self, capacity: int) -> None:
        capacity = max(0, int(capacity))
        if capacity != self._max_capacity:
            self.logger.debug(f"Pool {self._name} max capacity {self._max_capacity} -> {capacity}")
        self._max_capacity = capacity

    def resize(self, target: int) -> int:
        """Grow or shrink toward ``target``; must be called from the event loop."""
        self._prune()
        target = max(0, min(int(target), self._max_capacity))
        live = [w for w in self._workers.values() if w.live]

        if target > len(live):
            for _ in range(target - len(live)):
                self._spawn()
        elif target < len(live):
            for worker in sorted(live, key=lambda w: w.worker_id, reverse=True)[:len(live) - target]:
                worker.retire.set()

        if target != len(live):
            self.logger.info(f"Pool {self._name} resized {len(live)} -> {target}")
        return target

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        self.resize(self.initial_workers)
        self.logger.info(f"Pool {self._name} started with {self.active_workers} workers")

    async def stop(self, timeout: float = 30.0) -> None:
        """Retire every worker and wait (bounded) for in-flight messages."""
        workers: List[_Worker] = list(self._workers.values())
        for worker in workers:
            worker.retire.set()

        tasks = [w.task for w in workers if not w.task.done()]
        if tasks:
            done, pending = await asyncio.wait(tasks, timeout=timeout)
            for task in pending:
                task.cancel()
            if pending:
                self.logger.warning(f"⚠️ Pool {self._name}: cancelled {len(pending)} workers after {timeout}s")
                await asyncio.gather(*pending, return_exceptions=True)

        self._workers.clear()
        self.logger.info(f"Pool {self._name} stopped. Stats: {self.listener.stats}")

    # ------------------------------------------------------------------
    # Workers
    # ------------------------------------------------------------------

    def _spawn(self) -> None:
        worker_id = next(self._ids)
        retire = asyncio.Event()
        task = asyncio.create_task(self._run_worker(worker_id, retire), name=f"{self._name}-worker-{worker_id}")
        self._workers[worker_id] = _Worker(worker_id=worker_id, task=task, retire=retire)

    def _prune(self) -> None:
        for worker_id in [wid for wid, w in self._workers.items() if w.task.done()]:
            del self._workers[worker_id]

    async def _run_worker(self, worker_id: int, retire: asyncio.Event) -> None:
        self.logger.debug(f"Worker {self._name}-{worker_id} starting")
        while not retire.is_set():
            try:
                async with self.receiver_factory() as receiver:
                    while not retire.is_set():
                        messages = await receiver.receive_messages(
                            max_message_count=self.max_message_count,
                            max_wait_time=self.max_wait_time,
                        )
                        for message in messages:
                            await self.listener.process_message(receiver, message)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.logger.exception(f"Worker {self._name}-{worker_id} receive error: {e}")
                try:
                    await asyncio.wait_for(retire.wait(), timeout=self.error_backoff_seconds)
                except asyncio.TimeoutError:
                    pass
        self.logger.debug(f"Worker {self._name}-{worker_id} retired")
