"""
Autoscaler Control Records.

Transient records owned by a single Autoscaler instance. Nothing here is
persisted; a restarted worker starts from a fresh ControllerState.

Exports:
    ControllerSample: One backlog observation
    ControllerState: PID memory plus last scaling timestamp
    ScalingDecision: Outcome of one autoscaler tick
"""

from dataclasses import dataclass
from typing import Optional

from .enums import ScalingAction, ScalingDirection


@dataclass(frozen=True)
class ControllerSample:
    """Backlog and pool size read at the start of a tick."""
    timestamp: float
    queue_depth: int
    active_workers: int


@dataclass
class ControllerState:
    """
    Controller memory.

    Mutated only from the autoscaler tick, which is never re-entered.
    """
    previous_error: float = 0.0
    integral_accumulator: float = 0.0
    last_scale_timestamp: float = 0.0


@dataclass(frozen=True)
class ScalingDecision:
    """What a tick observed and what it did about it."""
    action: ScalingAction
    sample: Optional[ControllerSample] = None
    desired: Optional[int] = None
    direction: ScalingDirection = ScalingDirection.NONE
    emergency: bool = False

    @property
    def resized(self) -> bool:
        return self.action == ScalingAction.RESIZED
