"""Kinematic vehicle simulator used to close the loop without hardware.

The simulator advances a bicycle model by one tick given a commanded steer
angle. Hydraulic steering lag is emulated by ramping the applied angle towards
the command in three fixed step sizes per tick:
    gap > 11 deg  -> 6 deg step
    gap > 5 deg   -> 2 deg step
    gap > 1 deg   -> 0.5 deg step
    otherwise     -> snap to the command
"""

import math
from typing import Optional

from .config import VehicleConfig
from .errors import ConfigurationError, ContractViolation
from .geometry import Pose, project, wrap_two_pi
from .stanley import ControllerState

# Actuator ramp tiers (degrees)
RAMP_LARGE_GAP = 11.0
RAMP_LARGE_STEP = 6.0
RAMP_MEDIUM_GAP = 5.0
RAMP_MEDIUM_STEP = 2.0
RAMP_SMALL_GAP = 1.0
RAMP_SMALL_STEP = 0.5


def ramp_steer_angle(smoothed: float, commanded: float) -> float:
    """Move the applied steer angle one tick towards the command.

    Args:
        smoothed: Currently applied steer angle (degrees).
        commanded: Requested steer angle (degrees).

    Returns:
        New applied steer angle (degrees).
    """
    gap = abs(commanded - smoothed)

    if gap > RAMP_LARGE_GAP:
        step = RAMP_LARGE_STEP
    elif gap > RAMP_MEDIUM_GAP:
        step = RAMP_MEDIUM_STEP
    elif gap > RAMP_SMALL_GAP:
        step = RAMP_SMALL_STEP
    else:
        return commanded

    if smoothed >= commanded:
        return smoothed - step
    return smoothed + step


class VehicleSimulator:
    """Bicycle-model vehicle with actuator lag.

    Attributes:
        vehicle: Vehicle geometry.
        pose: Current pose, replaced on every step.
        state: Actuator state (previous_steer_angle_smoothed).
        use_actuator_lag: If False, the command is applied instantly.
        distance_traveled: Total path length driven (m).
        elapsed: Total simulated time (s).
    """

    def __init__(
        self,
        vehicle: VehicleConfig,
        initial_pose: Pose,
        disable_actuator_lag: bool = False,
    ):
        """Initialize the simulator.

        Args:
            vehicle: Vehicle geometry (wheelbase, steering limit).
            initial_pose: Starting pose in the local plane.
            disable_actuator_lag: Apply commands instantly (component isolation).

        Raises:
            ConfigurationError: If the wheelbase is not positive.
        """
        if not vehicle.wheelbase > 0:
            raise ConfigurationError(f"wheelbase must be positive, got {vehicle.wheelbase}")

        self.vehicle = vehicle
        self.use_actuator_lag = not disable_actuator_lag
        self.state = ControllerState()
        self.pose = initial_pose
        self.distance_traveled: float = 0.0
        self.elapsed: float = 0.0
        self.reset(initial_pose)

    @property
    def steer_angle_smoothed(self) -> float:
        return self.state.previous_steer_angle_smoothed

    def reset(self, pose: Optional[Pose] = None) -> Pose:
        """Place the vehicle at a pose with the wheels straight."""
        pose = pose or self.pose
        self.pose = Pose(
            pose.easting, pose.northing, wrap_two_pi(pose.heading), pose.speed, pose.is_reverse
        )
        self.state.reset()
        self.distance_traveled = 0.0
        self.elapsed = 0.0
        return self.pose

    def set_speed(self, speed: float, is_reverse: Optional[bool] = None) -> None:
        """Change the simulated ground speed (and optionally direction)."""
        reverse = self.pose.is_reverse if is_reverse is None else is_reverse
        self.pose = Pose(self.pose.easting, self.pose.northing, self.pose.heading, speed, reverse)

    def step(self, commanded_steer_angle: float, dt: float) -> Pose:
        """Advance the vehicle by one tick.

        Args:
            commanded_steer_angle: Steer command from the controller (degrees).
            dt: Tick length (s).

        Returns:
            The new pose.

        Raises:
            ContractViolation: If dt is not positive.
        """
        if not dt > 0:
            raise ContractViolation(f"dt must be positive, got {dt}")

        if self.use_actuator_lag:
            applied = ramp_steer_angle(self.state.previous_steer_angle_smoothed, commanded_steer_angle)
        else:
            applied = commanded_steer_angle
        limit = self.vehicle.max_steer_angle
        applied = max(-limit, min(limit, applied))
        self.state.previous_steer_angle_smoothed = applied

        pose = self.pose
        distance = abs(pose.speed) * dt
        if pose.is_reverse:
            distance = -distance

        heading = wrap_two_pi(
            pose.heading + distance * math.tan(math.radians(applied)) / self.vehicle.wheelbase
        )
        position = project(pose.position, heading, distance)

        self.pose = Pose(position.easting, position.northing, heading, pose.speed, pose.is_reverse)
        self.distance_traveled += abs(distance)
        self.elapsed += dt
        return self.pose
