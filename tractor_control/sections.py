"""Implement section switching and coverage recording.

Each section has an operator-requested state:
- OFF: always off, no timers, no boundary checks
- ON: always on, no timers, no boundary checks
- AUTO: on while its look-ahead probes are inside the workable area,
  debounced by on/off delay timers so edges do not cause chatter

Sections that are on emit one CoveragePatch per tick.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from .boundary import Boundary
from .config import ImplementConfig, OverlapPolicy
from .coverage import CoverageMap, CoveragePatch, CoverageRecord
from .errors import ConfigurationError, ContractViolation, SectionIndexError
from .geometry import LocalPoint, Pose, distance_squared, offset_right, project

__all__ = [
    "OverlapPolicy",
    "Section",
    "SectionController",
    "SectionState",
]


class SectionState(Enum):
    """Operator-requested section mode."""

    OFF = "off"
    AUTO = "auto"
    ON = "on"


@dataclass
class Section:
    """Runtime state of one implement section.

    Offsets are meters from the implement centreline, left negative.
    Timers count seconds a pending transition has been continuously wanted.
    """

    index: int
    left_offset: float
    right_offset: float
    requested_state: SectionState = SectionState.OFF
    is_on: bool = False
    is_in_boundary: bool = False
    is_overlapping: bool = False
    on_delay_timer: float = 0.0
    off_delay_timer: float = 0.0
    last_left: Optional[LocalPoint] = None
    last_right: Optional[LocalPoint] = None

    @property
    def width(self) -> float:
        return self.right_offset - self.left_offset

    def reset_timers(self) -> None:
        self.on_delay_timer = 0.0
        self.off_delay_timer = 0.0


class SectionController:
    """Per-section state machine plus coverage accumulation.

    Attributes:
        implement: Section layout and timing.
        hitch_length: Distance of the section line behind the pose (m).
        boundary: Workable-area service, None means everywhere is workable.
        sections: Section runtime state, fixed count for the session.
        records: One append-only CoverageRecord per section.
        coverage_map: Raster union of all patches.
    """

    def __init__(
        self,
        implement: ImplementConfig,
        hitch_length: float = 0.0,
        boundary: Optional[Boundary] = None,
    ):
        if hitch_length < 0:
            raise ConfigurationError(f"hitch_length must not be negative, got {hitch_length}")

        self.implement = implement
        self.hitch_length = hitch_length
        self.boundary = boundary
        self.sections: List[Section] = [
            Section(i, cfg.left_offset, cfg.right_offset) for i, cfg in enumerate(implement.sections)
        ]
        self.records: List[CoverageRecord] = [CoverageRecord(i) for i in range(len(self.sections))]
        self.coverage_map = CoverageMap(implement.coverage_cell_size)
        self.tick_count: int = 0

    # ------------------------------------------------------------------
    # Configuration and operator input
    # ------------------------------------------------------------------

    def validate_reconfigure(self, implement: ImplementConfig) -> None:
        """Check that implement can replace the current layout.

        Raises:
            ConfigurationError: If the section count or coverage cell size
                changes.
        """
        if len(implement.sections) != len(self.sections):
            raise ConfigurationError(
                f"section count is fixed for the session ({len(self.sections)}), "
                f"got {len(implement.sections)}"
            )
        if implement.coverage_cell_size != self.implement.coverage_cell_size:
            raise ConfigurationError("coverage_cell_size cannot change during a session")

    def reconfigure(self, implement: ImplementConfig) -> None:
        """Apply new offsets, delays or overlap policy to the same sections.

        A section whose offsets change starts a new strip.

        Raises:
            ConfigurationError: If the section count or cell size changes.
        """
        self.validate_reconfigure(implement)
        for section, cfg in zip(self.sections, implement.sections):
            if (section.left_offset, section.right_offset) != (cfg.left_offset, cfg.right_offset):
                section.left_offset = cfg.left_offset
                section.right_offset = cfg.right_offset
                section.last_left = None
                section.last_right = None
        self.implement = implement

    def set_boundary(self, boundary: Optional[Boundary]) -> None:
        self.boundary = boundary

    def _check_index(self, index: int) -> Section:
        if not 0 <= index < len(self.sections):
            raise SectionIndexError(
                f"section index {index} out of range (0..{len(self.sections) - 1})"
            )
        return self.sections[index]

    def section(self, index: int) -> Section:
        return self._check_index(index)

    def set_requested_state(self, index: int, state: SectionState) -> None:
        """Set the operator mode of one section.

        Manual ON/OFF take effect immediately.
        """
        if not isinstance(state, SectionState):
            raise ContractViolation(f"unknown section state: {state!r}")
        section = self._check_index(index)
        section.requested_state = state
        section.reset_timers()
        if state is SectionState.ON:
            section.is_on = True
        elif state is SectionState.OFF:
            section.is_on = False

    def set_all(self, state: SectionState) -> None:
        for index in range(len(self.sections)):
            self.set_requested_state(index, state)

    def is_on(self, index: int) -> bool:
        return self._check_index(index).is_on

    def states(self) -> List[bool]:
        return [section.is_on for section in self.sections]

    def force_all_off(self) -> None:
        """Switch every section off without touching the requested modes.

        Edge history is dropped so no patch spans the halted interval.
        """
        for section in self.sections:
            section.is_on = False
            section.reset_timers()
            section.last_left = None
            section.last_right = None

    # ------------------------------------------------------------------
    # Per-tick update
    # ------------------------------------------------------------------

    def section_edges(self, pose: Pose, section: Section) -> Tuple[LocalPoint, LocalPoint]:
        """Left and right end of a section for the given pose."""
        centre = project(pose.position, pose.heading, -self.hitch_length)
        left = offset_right(centre, pose.heading, section.left_offset)
        right = offset_right(centre, pose.heading, section.right_offset)
        return left, right

    def _probe_points(self, pose: Pose, section: Section, left: LocalPoint, right: LocalPoint) -> List[LocalPoint]:
        """Left, middle and right probes, look_ahead along the direction of travel.

        Outer probes sit a coverage cell inside the section ends so they do
        not land on the seam with a neighbouring pass.
        """
        ahead = -self.implement.look_ahead if pose.is_reverse else self.implement.look_ahead
        inset = min(self.implement.coverage_cell_size, section.width / 4.0) / section.width

        def along(fraction: float) -> LocalPoint:
            return LocalPoint(
                left.easting + fraction * (right.easting - left.easting),
                left.northing + fraction * (right.northing - left.northing),
            )

        return [project(along(f), pose.heading, ahead) for f in (inset, 0.5, 1.0 - inset)]

    def _classify(self, section: Section, probes: List[LocalPoint]) -> None:
        if self.boundary is None:
            section.is_in_boundary = True
        else:
            allowed = any(self.boundary.is_allowed(p) for p in probes)
            excluded = any(self.boundary.is_excluded(p) for p in probes)
            section.is_in_boundary = allowed and not excluded

        if self.implement.overlap_policy is OverlapPolicy.SUPPRESS_ON_OVERLAP:
            section.is_overlapping = all(self.coverage_map.is_covered(p) for p in probes)
        else:
            section.is_overlapping = False

    def _apply_state(self, section: Section, dt: float) -> None:
        if section.requested_state is SectionState.OFF:
            section.is_on = False
            section.reset_timers()
            return
        if section.requested_state is SectionState.ON:
            section.is_on = True
            section.reset_timers()
            return

        wants_on = section.is_in_boundary and not section.is_overlapping

        if wants_on and not section.is_on:
            section.off_delay_timer = 0.0
            section.on_delay_timer += dt
            if section.on_delay_timer >= self.implement.on_delay:
                section.is_on = True
                section.on_delay_timer = 0.0
        elif not wants_on and section.is_on:
            section.on_delay_timer = 0.0
            section.off_delay_timer += dt
            if section.off_delay_timer >= self.implement.off_delay:
                section.is_on = False
                section.off_delay_timer = 0.0
        else:
            section.reset_timers()

    def _jumped(self, section: Section, left: LocalPoint, right: LocalPoint) -> bool:
        """True if either edge moved further than max_patch_length since the last tick."""
        limit_sq = self.implement.max_patch_length ** 2
        return (
            distance_squared(section.last_left, left) > limit_sq
            or distance_squared(section.last_right, right) > limit_sq
        )

    def update(self, pose: Pose, dt: float) -> List[bool]:
        """Advance every section by one tick.

        Args:
            pose: Pose for this tick.
            dt: Tick length (s).

        Returns:
            On/off state of each section after the update.

        Raises:
            ContractViolation: If dt is not positive.
        """
        if not dt > 0:
            raise ContractViolation(f"dt must be positive, got {dt}")

        for section in self.sections:
            left, right = self.section_edges(pose, section)
            self._classify(section, self._probe_points(pose, section, left, right))
            self._apply_state(section, dt)

            if section.last_left is not None and self._jumped(section, left, right):
                section.last_left = None
                section.last_right = None

            if section.is_on and section.last_left is not None:
                patch = CoveragePatch(
                    section.index,
                    self.tick_count,
                    (section.last_left, section.last_right, right, left),
                )
                self.records[section.index].append(patch)
                self.coverage_map.add_patch(patch)

            section.last_left = left
            section.last_right = right

        self.tick_count += 1
        return self.states()

    # ------------------------------------------------------------------
    # Coverage queries
    # ------------------------------------------------------------------

    def record(self, index: int) -> CoverageRecord:
        self._check_index(index)
        return self.records[index]

    def patches(self) -> Tuple[CoveragePatch, ...]:
        """All patches ordered by tick, then section index."""
        merged = [patch for record in self.records for patch in record.snapshot()]
        return tuple(sorted(merged, key=lambda p: (p.tick, p.section_index)))

    @property
    def applied_area(self) -> float:
        """Raw sum of patch areas; overlap is counted every time."""
        return sum(record.applied_area for record in self.records)

    @property
    def net_area(self) -> float:
        """Union area of all patches.

        The raster counts whole cells, so along patch edges it can read up
        to one cell ring high; the result is capped at applied_area.
        """
        return min(self.coverage_map.union_area, self.applied_area)

    @property
    def overlap_ratio(self) -> float:
        applied = self.applied_area
        if applied <= 0.0:
            return 0.0
        return max(0.0, applied - self.net_area) / applied
