"""
Autoscaler Configuration.

Tuning for the feedback-controlled consumer pool of one stage. Loaded with
a stage prefix, e.g. ``AUDIT_AUTOSCALER_MAX_WORKERS``.

Exports:
    AutoscalerConfig: Pydantic autoscaler configuration
"""

import os
from pydantic import BaseModel, Field, model_validator

from .defaults import AutoscalerDefaults


def _env_bool(name: str, default: bool) -> bool:
    return os.environ.get(name, str(default)).lower() in ("true", "1", "yes")


class AutoscalerConfig(BaseModel):
    """
    Autoscaler tuning for one consumer pool.

    Controller output is clamped to [min_workers, max_workers]; min_workers
    is also the PID baseline, so an empty queue settles at min_workers.
    """

    enabled: bool = Field(default=AutoscalerDefaults.ENABLED)

    tick_interval_seconds: float = Field(
        default=AutoscalerDefaults.TICK_SECONDS,
        gt=0,
        description="Seconds between control ticks"
    )

    min_workers: int = Field(default=AutoscalerDefaults.MIN_WORKERS, ge=0)
    max_workers: int = Field(default=AutoscalerDefaults.MAX_WORKERS, ge=1)

    deadband: int = Field(
        default=AutoscalerDefaults.DEADBAND,
        ge=0,
        description="Resize is suppressed while |desired - current| is below this"
    )

    emergency_threshold: int = Field(
        default=AutoscalerDefaults.EMERGENCY_THRESHOLD,
        ge=0,
        description="Backlog above which cooldown and deadband are bypassed"
    )

    scale_up_cooldown_seconds: float = Field(default=AutoscalerDefaults.SCALE_UP_COOLDOWN_SECONDS, ge=0)
    scale_down_cooldown_seconds: float = Field(default=AutoscalerDefaults.SCALE_DOWN_COOLDOWN_SECONDS, ge=0)

    kp: float = Field(default=AutoscalerDefaults.KP)
    ki: float = Field(default=AutoscalerDefaults.KI)
    kd: float = Field(default=AutoscalerDefaults.KD)

    integral_guard: float = Field(
        default=AutoscalerDefaults.INTEGRAL_GUARD,
        gt=0,
        description="Integral stops accumulating while |error| >= this"
    )

    capacity_buffer: int = Field(
        default=AutoscalerDefaults.CAPACITY_BUFFER,
        ge=0,
        description="Pool max capacity kept at least desired + buffer"
    )

    probe_timeout_seconds: float = Field(
        default=AutoscalerDefaults.PROBE_TIMEOUT_SECONDS,
        gt=0,
        description="Backlog read timeout; a timeout skips the tick"
    )

    @model_validator(mode="after")
    def _check_worker_bounds(self):
        if self.min_workers > self.max_workers:
            raise ValueError(
                f"min_workers ({self.min_workers}) must be <= max_workers ({self.max_workers})"
            )
        return self

    @classmethod
    def from_environment(cls, prefix: str):
        """
        Load from environment variables.

        Args:
            prefix: Stage prefix without trailing underscore ("AUDIT", "VECTOR")
        """
        p = f"{prefix}_AUTOSCALER"
        d = AutoscalerDefaults
        return cls(
            enabled=_env_bool(f"{p}_ENABLED", d.ENABLED),
            tick_interval_seconds=float(os.environ.get(f"{p}_TICK_SECONDS", str(d.TICK_SECONDS))),
            min_workers=int(os.environ.get(f"{p}_MIN_WORKERS", str(d.MIN_WORKERS))),
            max_workers=int(os.environ.get(f"{p}_MAX_WORKERS", str(d.MAX_WORKERS))),
            deadband=int(os.environ.get(f"{p}_DEADBAND", str(d.DEADBAND))),
            emergency_threshold=int(os.environ.get(f"{p}_EMERGENCY_THRESHOLD", str(d.EMERGENCY_THRESHOLD))),
            scale_up_cooldown_seconds=float(os.environ.get(f"{p}_SCALE_UP_COOLDOWN_SECONDS", str(d.SCALE_UP_COOLDOWN_SECONDS))),
            scale_down_cooldown_seconds=float(os.environ.get(f"{p}_SCALE_DOWN_COOLDOWN_SECONDS", str(d.SCALE_DOWN_COOLDOWN_SECONDS))),
            kp=float(os.environ.get(f"{p}_KP", str(d.KP))),
            ki=float(os.environ.get(f"{p}_KI", str(d.KI))),
            kd=float(os.environ.get(f"{p}_KD", str(d.KD))),
            integral_guard=float(os.environ.get(f"{p}_INTEGRAL_GUARD", str(d.INTEGRAL_GUARD))),
            capacity_buffer=int(os.environ.get(f"{p}_CAPACITY_BUFFER", str(d.CAPACITY_BUFFER))),
            probe_timeout_seconds=float(os.environ.get(f"{p}_PROBE_TIMEOUT_SECONDS", str(d.PROBE_TIMEOUT_SECONDS))),
        )
