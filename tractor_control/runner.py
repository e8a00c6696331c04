"""Closed-loop tick orchestration.

One ClosedLoopRunner.tick(dt) call:
1. reads the pose (simulator in simulation, PoseBuffer in live operation)
2. projects it onto the guidance line
3. computes the Stanley steer angle and forwards it to the actuator
4. advances the simulator with that angle (simulation only)
5. updates section switching and coverage from the tick's pose

Everything happens synchronously on the caller's thread. The only
cross-thread handoff is the PoseBuffer, written by a position-fix adapter and
read once at the start of each tick.
"""

import logging
import math
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Tuple

from .boundary import Boundary
from .component_modes import ComponentMode
from .config import NOMINAL_DT, ImplementConfig, StanleyGains, VehicleConfig
from .errors import ConfigurationError, ContractViolation
from .geometry import GeodeticPoint, LocalPlaneConverter, Pose
from .guidance import GuidanceLine
from .sections import SectionController
from .simulator import VehicleSimulator
from .stanley import StanleyController


class SteerActuator(Protocol):
    """Receives the commanded steer angle (degrees) once per tick."""

    def command(self, steer_angle: float) -> None:
        ...


class SectionSink(Protocol):
    """Receives the per-section on/off vector once per tick."""

    def apply(self, states: List[bool]) -> None:
        ...


class PoseBuffer:
    """Latest-pose handoff between a fix adapter thread and the control loop.

    The writer replaces the whole immutable Pose under a lock; the reader
    takes the most recent complete pose. Older poses are dropped.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._pose: Optional[Pose] = None
        self._sequence: int = 0

    def publish(self, pose: Pose) -> None:
        with self._lock:
            self._pose = pose
            self._sequence += 1

    def publish_fix(
        self,
        fix: GeodeticPoint,
        heading: float,
        speed: float,
        is_reverse: bool,
        converter: LocalPlaneConverter,
    ) -> Pose:
        """Convert a geodetic fix to the local plane and publish it.

        Args:
            fix: Latitude/longitude from the receiver.
            heading: Heading (rad, 0 = north, clockwise positive).
            speed: Ground speed (m/s).
            is_reverse: Direction of travel.
            converter: Geodetic to local plane conversion service.

        Returns:
            The published pose.
        """
        local = converter.to_local(fix)
        pose = Pose(local.easting, local.northing, heading, speed, is_reverse)
        self.publish(pose)
        return pose

    def latest(self) -> Optional[Pose]:
        with self._lock:
            return self._pose

    @property
    def sequence(self) -> int:
        """Number of poses published so far."""
        with self._lock:
            return self._sequence

    def clear(self) -> None:
        with self._lock:
            self._pose = None


@dataclass(frozen=True)
class TickResult:
    """Outcome of one tick.

    A halted result carries a steer angle of exactly 0.0 and all sections off.
    """

    tick: int
    pose: Optional[Pose]
    steer_angle: float
    cross_track_error: float = 0.0
    heading_error: float = 0.0
    section_states: Tuple[bool, ...] = field(default_factory=tuple)
    halted: bool = False
    fault: Optional[str] = None


class ClosedLoopRunner:
    """Fixed-step guidance loop over a guidance line, controller and implement.

    Attributes:
        vehicle: Vehicle geometry and steering limit.
        gains: Stanley gains.
        guidance_line: Active reference path, None until configured.
        controller: Stanley controller (owns the integral state).
        simulator: Vehicle simulator in simulation mode, else None.
        pose_buffer: Latest-pose handoff in live mode, else None.
        sections: Section controller, None without an implement.
        boundary: Workable-area service handed to the section controller.
        fault: Description of the active contract violation, None if healthy.
        tick_count: Completed (non-halted) ticks.
    """

    def __init__(
        self,
        vehicle: VehicleConfig,
        gains: StanleyGains,
        implement: Optional[ImplementConfig] = None,
        guidance_line: Optional[GuidanceLine] = None,
        boundary: Optional[Boundary] = None,
        simulator: Optional[VehicleSimulator] = None,
        pose_buffer: Optional[PoseBuffer] = None,
        actuator: Optional[SteerActuator] = None,
        section_sink: Optional[SectionSink] = None,
        component_mode: Optional[ComponentMode] = None,
    ):
        """Initialize the runner.

        Exactly one pose source is required: a simulator (simulation mode) or
        a pose buffer (live mode).

        Raises:
            ConfigurationError: If the pose source is missing or ambiguous.
        """
        if (simulator is None) == (pose_buffer is None):
            raise ConfigurationError("runner needs exactly one of simulator or pose_buffer")

        self.component_mode = component_mode or ComponentMode()
        self.vehicle = vehicle
        self.gains = gains
        self.simulator = simulator
        self.pose_buffer = pose_buffer
        self.actuator = actuator
        self.section_sink = section_sink
        self.boundary = boundary

        self.controller = StanleyController(
            disable_integral=not self.component_mode.use_integral,
            disable_damping=not self.component_mode.use_damping,
        )
        if self.simulator is not None:
            self.simulator.vehicle = vehicle
            self.simulator.use_actuator_lag = self.component_mode.use_actuator_lag

        self.sections: Optional[SectionController] = None
        if implement is not None and self.component_mode.use_sections:
            self.sections = SectionController(implement, vehicle.hitch_length, boundary)

        self.guidance_line: Optional[GuidanceLine] = guidance_line
        self.fault: Optional[str] = None
        self.tick_count: int = 0

        # Tracking metrics over non-halted ticks
        self._xte_sum_sq: float = 0.0
        self._xte_max: float = 0.0
        self._xte_samples: int = 0

    # ------------------------------------------------------------------
    # Configuration
    # ------------------------------------------------------------------

    @property
    def is_simulation(self) -> bool:
        return self.simulator is not None

    @property
    def halted(self) -> bool:
        return self.fault is not None

    def set_guidance_line(self, guidance_line: Optional[GuidanceLine]) -> None:
        """Swap the reference path.

        The controller's integral is reset. A valid line clears an active
        fault and resumes guidance on the next tick.

        Raises:
            ConfigurationError: If the object is not a GuidanceLine.
        """
        if guidance_line is not None and not isinstance(guidance_line, GuidanceLine):
            raise ConfigurationError(f"not a guidance line: {guidance_line!r}")

        self.guidance_line = guidance_line
        self.controller.reset()
        logging.debug(f"Guidance line set to {guidance_line!r}")

        if guidance_line is not None and self.fault is not None:
            logging.info(f"Guidance resumed after fault: {self.fault}")
            self.fault = None

    def clear_fault(self) -> None:
        """Acknowledge a fault that was not caused by a missing line."""
        if self.fault is not None:
            logging.info(f"Guidance resumed after fault: {self.fault}")
            self.fault = None

    def set_boundary(self, boundary: Optional[Boundary]) -> None:
        """Replace the workable-area service used by AUTO sections."""
        self.boundary = boundary
        if self.sections is not None:
            self.sections.set_boundary(boundary)
        logging.debug(f"Boundary set to {boundary!r}")

    def reconfigure(
        self,
        vehicle: Optional[VehicleConfig] = None,
        gains: Optional[StanleyGains] = None,
        implement: Optional[ImplementConfig] = None,
    ) -> None:
        """Swap in new immutable configuration between ticks.

        Every argument is checked before any is applied, so a rejected call
        leaves the runner exactly as it was.

        Raises:
            ConfigurationError: If an argument has the wrong type, or the
                implement changes its section count or coverage cell size.
        """
        if vehicle is not None and not isinstance(vehicle, VehicleConfig):
            raise ConfigurationError(f"not a VehicleConfig: {vehicle!r}")
        if gains is not None and not isinstance(gains, StanleyGains):
            raise ConfigurationError(f"not a StanleyGains: {gains!r}")
        if implement is not None:
            if not isinstance(implement, ImplementConfig):
                raise ConfigurationError(f"not an ImplementConfig: {implement!r}")
            if self.sections is not None:
                self.sections.validate_reconfigure(implement)

        if vehicle is not None:
            self.vehicle = vehicle
            if self.simulator is not None:
                self.simulator.vehicle = vehicle
            if self.sections is not None:
                self.sections.hitch_length = vehicle.hitch_length

        if gains is not None:
            self.gains = gains

        if implement is not None:
            if self.sections is None:
                if self.component_mode.use_sections:
                    self.sections = SectionController(
                        implement, self.vehicle.hitch_length, self.boundary
                    )
            else:
                self.sections.reconfigure(implement)

        self.controller.reset()
        logging.debug(f"Runner reconfigured: vehicle={self.vehicle} gains={self.gains}")

    # ------------------------------------------------------------------
    # Tick
    # ------------------------------------------------------------------

    def _current_pose(self) -> Optional[Pose]:
        if self.simulator is not None:
            return self.simulator.pose
        return self.pose_buffer.latest()

    def _emit_safe_output(self, pose: Optional[Pose], fault: Optional[str]) -> TickResult:
        """Command straight wheels and switch every section off."""
        if self.sections is not None:
            self.sections.force_all_off()
            states = self.sections.states()
        else:
            states = []

        if self.actuator is not None:
            self.actuator.command(0.0)
        if self.section_sink is not None:
            self.section_sink.apply(states)

        return TickResult(
            tick=self.tick_count,
            pose=pose,
            steer_angle=0.0,
            section_states=tuple(states),
            halted=True,
            fault=fault,
        )

    def _violation(self, message: str) -> ContractViolation:
        if self.fault is None:
            logging.info("Guidance halted: steer 0.0, all sections off")
        self.fault = message
        self._emit_safe_output(self._current_pose(), message)
        logging.error(f"Contract violation: {message}")
        return ContractViolation(message)

    def tick(self, dt: float = NOMINAL_DT) -> TickResult:
        """Run one control cycle.

        Args:
            dt: Time since the previous tick (s).

        Returns:
            The tick outcome. Halted when no fix is available or a previous
            fault has not been cleared.

        Raises:
            ContractViolation: If no guidance line is configured or dt is not
                positive. Safe output is emitted before raising.
        """
        if not dt > 0:
            raise self._violation(f"dt must be positive, got {dt}")
        if self.guidance_line is None:
            raise self._violation("tick called without a guidance line")

        if self.fault is not None:
            return self._emit_safe_output(self._current_pose(), self.fault)

        pose = self._current_pose()
        if pose is None:
            logging.warning("No position fix available, holding steer at 0.0")
            return self._emit_safe_output(None, None)

        projection = self.guidance_line.project(pose)
        steer_angle = self.controller.calculate(
            projection.cross_track_error,
            projection.heading_error,
            pose.speed,
            pose.is_reverse,
            self.gains,
            self.vehicle.max_steer_angle,
            dt,
        )
        if self.actuator is not None:
            self.actuator.command(steer_angle)

        if self.simulator is not None:
            self.simulator.step(steer_angle, dt)

        states: List[bool] = []
        if self.sections is not None:
            states = self.sections.update(pose, dt)
        if self.section_sink is not None:
            self.section_sink.apply(states)

        xte = projection.cross_track_error
        if math.isfinite(xte):
            self._xte_sum_sq += xte * xte
            self._xte_max = max(self._xte_max, abs(xte))
            self._xte_samples += 1

        result = TickResult(
            tick=self.tick_count,
            pose=pose,
            steer_angle=steer_angle,
            cross_track_error=xte,
            heading_error=projection.heading_error,
            section_states=tuple(states),
        )
        self.tick_count += 1
        return result

    def run(self, ticks: int, dt: float = NOMINAL_DT) -> List[TickResult]:
        """Run a fixed number of ticks and collect the results."""
        return [self.tick(dt) for _ in range(ticks)]

    # ------------------------------------------------------------------
    # Metrics
    # ------------------------------------------------------------------

    @property
    def rms_cross_track_error(self) -> float:
        if self._xte_samples == 0:
            return 0.0
        return math.sqrt(self._xte_sum_sq / self._xte_samples)

    @property
    def max_cross_track_error(self) -> float:
        return self._xte_max

    def reset_metrics(self) -> None:
        self._xte_sum_sq = 0.0
        self._xte_max = 0.0
        self._xte_samples = 0
