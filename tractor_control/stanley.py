"""Stanley steering controller.

Maps guidance errors and speed to a bounded steer angle in degrees. The law
combines a speed-compressed atan of the cross-track error with the scaled
heading error, adds a bounded integral term for steady-state bias, damps the
result close to the line, and clamps it to the vehicle's steering range.
"""

import logging
import math
from dataclasses import dataclass
from typing import Dict

from .config import (
    NOMINAL_DT,
    STANLEY_DAMPING_THRESHOLD,
    STANLEY_INTEGRAL_ACTIVE_BAND,
    STANLEY_INTEGRAL_DECAY,
    STANLEY_INTEGRAL_MIN_SPEED,
    STANLEY_SPEED_COMPRESSION,
    StanleyGains,
)
from .errors import ConfigurationError, ContractViolation


@dataclass
class ControllerState:
    """Mutable state carried between ticks.

    The controller uses integral_accumulator; the simulator's actuator model
    uses previous_steer_angle_smoothed. Each owner holds its own instance.
    """

    integral_accumulator: float = 0.0
    previous_steer_angle_smoothed: float = 0.0

    def reset(self) -> None:
        self.integral_accumulator = 0.0
        self.previous_steer_angle_smoothed = 0.0


def effective_speed(speed: float) -> float:
    """Speed used in the cross-track denominator, never below 1.

    Above 1 m/s the speed is compressed so the controller does not go
    arbitrarily soft at road speeds.
    """
    abs_speed = abs(speed)
    if abs_speed > 1.0:
        return 1.0 + STANLEY_SPEED_COMPRESSION * (abs_speed - 1.0)
    return 1.0


class StanleyController:
    """Stanley path-tracking law with bounded integral action.

    Attributes:
        state: Integral accumulator owned by this controller.
        use_integral: Integral stage enabled.
        use_damping: Near-line damping stage enabled.
        last_steer_angle: Most recent output (degrees), for diagnostics.
    """

    def __init__(self, disable_integral: bool = False, disable_damping: bool = False):
        """Initialize the controller.

        Args:
            disable_integral: Bypass the integral stage (component isolation).
            disable_damping: Bypass the near-line damping stage.
        """
        self.state = ControllerState()
        self.use_integral = not disable_integral
        self.use_damping = not disable_damping

        self.last_cross_track_term: float = 0.0
        self.last_heading_term: float = 0.0
        self.last_steer_angle: float = 0.0

    def calculate(
        self,
        cross_track_error: float,
        heading_error: float,
        speed: float,
        is_reverse: bool,
        gains: StanleyGains,
        max_steer_angle: float,
        dt: float = NOMINAL_DT,
    ) -> float:
        """Compute the steer angle command.

        Args:
            cross_track_error: Signed distance to the line (m, right positive).
            heading_error: Vehicle minus reference heading (rad).
            speed: Ground speed (m/s).
            is_reverse: True when backing up; flips the heading error.
            gains: Stanley gains.
            max_steer_angle: Output limit (degrees, > 0).
            dt: Tick length (s), scales the integral update.

        Returns:
            Steer angle in degrees within [-max_steer_angle, max_steer_angle],
            negative steering left.

        Raises:
            ConfigurationError: If max_steer_angle is not positive.
            ContractViolation: If dt is not positive.
        """
        if not max_steer_angle > 0:
            raise ConfigurationError(f"max_steer_angle must be positive, got {max_steer_angle}")
        if not dt > 0:
            raise ContractViolation(f"dt must be positive, got {dt}")

        if is_reverse:
            heading_error = -heading_error

        heading_term = heading_error * gains.heading_error_gain

        ratio = (cross_track_error * gains.distance_error_gain) / effective_speed(speed)
        if math.isnan(ratio):
            # inf / inf from extreme inputs: saturate towards the error sign
            ratio = math.copysign(math.inf, cross_track_error)
        cross_track_term = math.atan(ratio)

        steer_angle = math.degrees(-(cross_track_term + heading_term))

        if self.use_integral:
            self._update_integral(cross_track_error, speed, is_reverse, gains, dt)
            steer_angle += self.state.integral_accumulator

        if self.use_damping:
            abs_xte = abs(cross_track_error)
            if abs_xte > STANLEY_DAMPING_THRESHOLD:
                steer_angle *= 0.5
            else:
                steer_angle *= 1.0 - abs_xte

        if math.isnan(steer_angle):
            logging.warning("Stanley steer angle was NaN, commanding 0.0")
            steer_angle = 0.0

        steer_angle = max(-max_steer_angle, min(max_steer_angle, steer_angle))
        # Normalize -0.0 so the zero-error output is exactly 0.0
        steer_angle += 0.0

        self.last_cross_track_term = cross_track_term
        self.last_heading_term = heading_term
        self.last_steer_angle = steer_angle
        return steer_angle

    def _update_integral(
        self,
        cross_track_error: float,
        speed: float,
        is_reverse: bool,
        gains: StanleyGains,
        dt: float,
    ) -> None:
        """Accumulate the integral term with anti-windup."""
        if is_reverse or gains.integral_gain == 0:
            self.state.integral_accumulator = 0.0
            return

        scale = dt / NOMINAL_DT
        integral = self.state.integral_accumulator

        if abs(speed) > STANLEY_INTEGRAL_MIN_SPEED and abs(cross_track_error) < STANLEY_INTEGRAL_ACTIVE_BAND:
            # Unwind faster when the integral already pushes past the line
            overshoot = (integral < 0 and cross_track_error < 0) or (
                integral > 0 and cross_track_error > 0
            )
            rate = -0.03 if overshoot else -0.01
            integral += cross_track_error * gains.integral_gain * rate * scale
        else:
            integral *= STANLEY_INTEGRAL_DECAY ** scale

        limit = gains.integral_limit
        self.state.integral_accumulator = max(-limit, min(limit, integral))

    def reset(self) -> None:
        """Clear the integral and diagnostic state.

        Call when the guidance line or guidance mode changes.
        """
        self.state.reset()
        self.last_cross_track_term = 0.0
        self.last_heading_term = 0.0
        self.last_steer_angle = 0.0

    def get_diagnostics(self) -> Dict[str, float]:
        """Get diagnostic information for logging and debugging."""
        return {
            "cross_track_term": self.last_cross_track_term,
            "heading_term": self.last_heading_term,
            "integral": self.state.integral_accumulator,
            "steer_angle": self.last_steer_angle,
        }
