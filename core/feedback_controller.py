"""
PID Feedback Controller.

Generic discrete PID loop with a clamped integer output. Pure computation:
no I/O, no clock, no locking. It is meant to be called at a fixed cadence
from exactly one scheduling context.

    error      = measured - target
    integral  += error            (only while |error| < integral_guard)
    derivative = error - previous_error
    output     = clamp(int(baseline + Kp*error + Ki*integral + Kd*derivative),
                       min_output, max_output)

The baseline is ``min_output``, so with zero error the output rests at the
floor (an empty queue keeps the minimum worker count).

Exports:
    FeedbackController: Stateful PID controller
"""

from core.models.control import ControllerState


class FeedbackController:
    """
    Stateful PID controller.

    Example:
        pid = FeedbackController(kp=0.05, ki=0.005, kd=0.02, min_output=2, max_output=20)
        pid.compute(0, 150)   # -> 13
    """

    def __init__(
        self,
        kp: float,
        ki: float,
        kd: float,
        min_output: int,
        max_output: int,
        integral_guard: float = 1000.0,
    ):
        if min_output > max_output:
            raise ValueError(f"min_output ({min_output}) must be <= max_output ({max_output})")
        self.kp = kp
        self.ki = ki
        self.kd = kd
        self.min_output = min_output
        self.max_output = max_output
        self.integral_guard = integral_guard
        self._previous_error = 0.0
        self._integral = 0.0

    def compute(self, target: float, measured: float) -> int:
        """
        Advance the loop by one step.

        Args:
            target: Setpoint (queue depth the loop aims for, normally 0)
            measured: Observed value (current queue depth)

        Returns:
            Control output clamped to [min_output, max_output]
        """
        error = measured - target

        # Freeze the accumulator during large sustained errors (anti-windup)
        if abs(error) < self.integral_guard:
            self._integral += error

        derivative = error - self._previous_error
        self._previous_error = error

        raw = self.kp * error + self.ki * self._integral + self.kd * derivative
        output = int(self.min_output + raw)
        return max(self.min_output, min(self.max_output, output))

    def reset(self) -> None:
        self._previous_error = 0.0
        self._integral = 0.0

    @property
    def previous_error(self) -> float:
        return self._previous_error

    @property
    def integral(self) -> float:
        return self._integral

    def snapshot(self, last_scale_timestamp: float) -> ControllerState:
        """Controller memory as a ControllerState record."""
        return ControllerState(
            previous_error=self._previous_error,
            integral_accumulator=self._integral,
            last_scale_timestamp=last_scale_timestamp,
        )
