"""
Feedback-Controlled Consumer Pool Autoscaler.

Samples a queue's backlog on a fixed tick, asks a FeedbackController for a
desired worker count, and resizes the stage's consumer pool unless a
safeguard vetoes it.

Tick sequence:
    1. Read backlog (bounded by probe timeout) and active worker count
    2. desired = controller.compute(0, backlog)
    3. desired == current -> nothing to do
    4. Cooldown: time since the last resize must reach the direction's
       cooldown (short for UP, long for DOWN)
    5. Deadband: |desired - current| must reach the deadband
    6. Resize, record the timestamp, keep max capacity >= desired + buffer

Backlog above the emergency threshold bypasses steps 4 and 5. A failed or
slow backlog read skips the tick; the loop never dies on it.

Exports:
    Autoscaler: Periodic pool sizing loop for one stage
"""

import asyncio
import time
from typing import Callable, Optional

from config import AutoscalerConfig
from core.feedback_controller import FeedbackController
from core.models import (
    ControllerSample,
    ControllerState,
    ScalingAction,
    ScalingDecision,
    ScalingDirection,
)
from interfaces.repository import IBacklogProbe, IConsumerPool
from util_logger import LoggerFactory, ComponentType


class Autoscaler:
    """
    Autoscaler for one consumer pool.

    The tick is serialized by an asyncio.Lock; a tick that finds the lock
    held returns immediately instead of queueing behind it. Controller state
    is touched only from inside the lock.
    """

    def __init__(
        self,
        pool: IConsumerPool,
        probe: IBacklogProbe,
        queue_name: str,
        config: AutoscalerConfig,
        controller: Optional[FeedbackController] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.pool = pool
        self.probe = probe
        self.queue_name = queue_name
        self.config = config
        self.controller = controller or FeedbackController(
            kp=config.kp,
            ki=config.ki,
            kd=config.kd,
            min_output=config.min_workers,
            max_output=config.max_workers,
            integral_guard=config.integral_guard,
        )
        self._clock = clock
        self._last_scale = clock()
        self._tick_lock = asyncio.Lock()
        self.logger = LoggerFactory.create_with_context(
            ComponentType.CONTROLLER,
            f"Autoscaler.{pool.name}",
            queue_name=queue_name,
            pool_name=pool.name,
        )

    @property
    def state(self) -> ControllerState:
        return self.controller.snapshot(self._last_scale)

    async def tick(self) -> ScalingDecision:
        """Run one control step. Never raises for probe failures."""
        if self._tick_lock.locked():
            self.logger.warning("⚠️ Autoscaler tick still running, skipping overlapping tick")
            return ScalingDecision(action=ScalingAction.SKIPPED_REENTRANT)

        async with self._tick_lock:
            return await self._tick()

    async def _tick(self) -> ScalingDecision:
        try:
            depth = await asyncio.wait_for(
                self.probe.depth(self.queue_name),
                timeout=self.config.probe_timeout_seconds,
            )
        except asyncio.TimeoutError:
            self.logger.warning(
                f"⚠️ Backlog probe for {self.queue_name} timed out after "
                f"{self.config.probe_timeout_seconds}s, skipping tick"
            )
            return ScalingDecision(action=ScalingAction.SKIPPED_PROBE_FAILURE)
        except Exception as e:
            self.logger.warning(
                f"⚠️ Backlog probe for {self.queue_name} failed, skipping tick: {e}",
                extra={'error_type': type(e).__name__}
            )
            return ScalingDecision(action=ScalingAction.SKIPPED_PROBE_FAILURE)

        now = self._clock()
        sample = ControllerSample(
            timestamp=now,
            queue_depth=max(0, int(depth)),
            active_workers=self.pool.active_workers,
        )
        desired = self.controller.compute(0, sample.queue_depth)
        current = sample.active_workers

        if desired == current:
            self.logger.debug(f"Backlog {sample.queue_depth}, pool at {current}, no change")
            return ScalingDecision(action=ScalingAction.NO_CHANGE, sample=sample, desired=desired)

        direction = ScalingDirection.UP if desired > current else ScalingDirection.DOWN
        emergency = sample.queue_depth > self.config.emergency_threshold

        if not emergency:
            cooldown = (
                self.config.scale_up_cooldown_seconds
                if direction == ScalingDirection.UP
                else self.config.scale_down_cooldown_seconds
            )
            if now - self._last_scale < cooldown:
                self.logger.debug(
                    f"Scale {direction.value} {current}->{desired} held by cooldown "
                    f"({now - self._last_scale:.1f}s < {cooldown}s)"
                )
                return ScalingDecision(
                    action=ScalingAction.SKIPPED_COOLDOWN,
                    sample=sample,
                    desired=desired,
                    direction=direction,
                )

            if abs(desired - current) < self.config.deadband:
                self.logger.debug(f"Scale {direction.value} {current}->{desired} inside deadband")
                return ScalingDecision(
                    action=ScalingAction.SKIPPED_DEADBAND,
                    sample=sample,
                    desired=desired,
                    direction=direction,
                )

        # Raise capacity first so the resize is not clamped by the old ceiling
        self.pool.set_max_capacity(max(desired + self.config.capacity_buffer, self.config.max_workers))
        self.pool.resize(desired)
        self._last_scale = now

        label = "🚨 Emergency scale" if emergency else f"Scale {direction.value}"
        self.logger.info(
            f"{label} {self.pool.name}: {current} -> {desired} workers (backlog {sample.queue_depth})",
            extra={
                'queue_depth': sample.queue_depth,
                'previous_workers': current,
                'desired_workers': desired,
                'direction': direction.value,
                'emergency': emergency,
            }
        )
        return ScalingDecision(
            action=ScalingAction.RESIZED,
            sample=sample,
            desired=desired,
            direction=direction,
            emergency=emergency,
        )

    async def run(self, stop_event: asyncio.Event) -> None:
        """
        Tick every ``tick_interval_seconds`` until ``stop_event`` is set.
        """
        self.logger.info(
            f"Autoscaler started for {self.queue_name} "
            f"(tick {self.config.tick_interval_seconds}s, "
            f"workers {self.config.min_workers}-{self.config.max_workers})"
        )
        while not stop_event.is_set():
            try:
                await self.tick()
            except Exception as e:
                # A resize failure must not end the loop; the next tick retries
                self.logger.exception(f"❌ Autoscaler tick failed: {e}")
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.config.tick_interval_seconds)
            except asyncio.TimeoutError:
                pass
        self.logger.info(f"Autoscaler for {self.queue_name} stopped")
