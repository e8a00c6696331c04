"""Configuration parameters for the tractor guidance core.

This module centralizes all configuration parameters including:
- Physical vehicle parameters
- Stanley controller gains
- Implement section geometry and debounce timing
- Coverage accounting resolution
- Terminal colors for the simulation CLI

Defaults are plain module constants, documented with their purpose, units and
tuning rationale. The controller, simulator and section controller never read
these constants at tick time: they receive the immutable configuration objects
defined at the bottom of this module, built once at session start.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from .errors import ConfigurationError

# ============================================================================
# Physical Vehicle Parameters
# ============================================================================

VEHICLE_WHEELBASE = 2.5
"""Distance between front and rear axle (meters).

Used by the bicycle model in the simulator. Must be strictly positive."""

VEHICLE_MAX_STEER_ANGLE = 30.0
"""Maximum steer angle magnitude (degrees).

Hard output limit of the Stanley controller. Typical tractor front axles
reach 35-40°, 30° leaves margin for the hydraulic valve."""

VEHICLE_HITCH_LENGTH = 0.0
"""Distance from the vehicle position to the implement section line (meters).

Positive values place the implement behind the vehicle. 0.0 models a
front-mounted or pivot-aligned boom."""


# ============================================================================
# Stanley Controller Parameters
# ============================================================================

STANLEY_HEADING_ERROR_GAIN = 1.0
"""Multiplier applied to the heading error before it enters the steer law.

Higher values = stronger alignment with the line direction (less overshoot).
Lower values = the cross-track term dominates (faster lateral pull-in)."""

STANLEY_DISTANCE_ERROR_GAIN = 0.8
"""Multiplier applied to the cross-track error inside the atan term (1/m).

Tuning rationale:
- 0.8 pulls a 2 m offset back to the line in under 15 s at 10 km/h
- Values above ~1.5 start to chatter on rough ground
"""

STANLEY_INTEGRAL_GAIN = 0.0
"""Integral gain for steady-state offset removal (range: [0, 1]).

Disabled by default. Enable on side slopes or with a mis-trimmed steering
sensor; the integral only runs above 1 m/s and within 0.25 m of the line."""

STANLEY_INTEGRAL_LIMIT = 5.0
"""Anti-windup limit for the integral contribution (degrees of steer).

Clamps the accumulator so a long excursion cannot bank enough correction to
overshoot the line once it is reacquired."""

STANLEY_INTEGRAL_ACTIVE_BAND = 0.25
"""Cross-track band inside which the integral accumulates (meters)."""

STANLEY_INTEGRAL_MIN_SPEED = 1.0
"""Minimum speed for integral accumulation (m/s)."""

STANLEY_INTEGRAL_DECAY = 0.7
"""Per-nominal-tick decay factor of the integral when it is not accumulating."""

STANLEY_SPEED_COMPRESSION = 0.277
"""Slope of the effective speed above 1 m/s in the cross-track denominator.

effSpeed = 1 + 0.277 * (|v| - 1) for |v| > 1, else 1."""

STANLEY_DAMPING_THRESHOLD = 0.5
"""Cross-track magnitude above which the fixed 0.5 damping factor applies (m)."""


# ============================================================================
# Guidance Line Parameters
# ============================================================================

CURVE_COARSE_STEP = 10
"""Stride of the coarse nearest-point scan over curve points.

The refinement pass then scans +/- this many points around the coarse hit."""

NOMINAL_DT = 0.1
"""Nominal control tick (seconds), 10 Hz.

Per-tick constants (integral rates, decay) are defined at this rate and scaled
by dt / NOMINAL_DT so accelerated simulation does not change the response."""


# ============================================================================
# Implement Section Parameters
# ============================================================================

SECTION_COUNT = 5
"""Default number of independently switched implement sections."""

TOOL_WIDTH = 12.0
"""Default total working width of the implement (meters).

Also the pass spacing for parallel AB lines."""

SECTION_ON_DELAY = 0.5
"""Time a section must continuously want to be on before switching on (s)."""

SECTION_OFF_DELAY = 0.3
"""Time a section must continuously want to be off before switching off (s)."""

SECTION_LOOK_AHEAD = 1.0
"""Distance ahead of the section line at which boundary and overlap
membership are probed (meters)."""

SECTION_MAX_PATCH_LENGTH = 5.0
"""Largest distance a section edge may move between two ticks and still emit
a coverage patch (meters).

A longer move (position jump, dropped fixes) starts a new strip instead of
bridging the gap with ground that was never worked."""

COVERAGE_CELL_SIZE = 0.25
"""Edge length of the square raster cells used for union-area accounting (m).

Smaller cells = more exact overlap figures but more memory on large fields."""


# ============================================================================
# Simulation Scenario Defaults
# ============================================================================

SIM_SPEED = 2.78
"""Ground speed of the simulated vehicle (m/s), 10 km/h."""

SIM_TICKS = 600
"""Ticks per simulated run, 60 s at the nominal tick."""

SIM_INITIAL_OFFSET = 2.0
"""Lateral start offset to the right of the guidance line (meters)."""

SIM_FIELD_MARGIN = 10.0
"""Headland depth before the field starts and after it ends (meters).

Sections in AUTO stay off inside the headland."""


# ============================================================================
# Terminal Colors
# ============================================================================

TERM_ORANGE = "\033[38;2;247;72;35m"
"""Terminal color code for warnings and fault lines."""

TERM_BLUE = "\033[38;2;35;116;247m"
"""Terminal color code for status lines."""

TERM_RESET = "\033[0m"
"""Terminal color reset code."""


# ============================================================================
# Immutable configuration objects
# ============================================================================


class OverlapPolicy(Enum):
    """How previously applied area affects automatic section switching."""

    IGNORE_OVERLAP = "ignore_overlap"
    SUPPRESS_ON_OVERLAP = "suppress_on_overlap"


def _require_finite(name: str, value: float) -> None:
    if not math.isfinite(value):
        raise ConfigurationError(f"{name} must be finite, got {value}")


@dataclass(frozen=True)
class VehicleConfig:
    """Vehicle geometry used by the controller and the simulator."""

    wheelbase: float = VEHICLE_WHEELBASE
    max_steer_angle: float = VEHICLE_MAX_STEER_ANGLE
    hitch_length: float = VEHICLE_HITCH_LENGTH

    def __post_init__(self) -> None:
        for name in ("wheelbase", "max_steer_angle", "hitch_length"):
            _require_finite(name, getattr(self, name))
        if self.wheelbase <= 0:
            raise ConfigurationError(f"wheelbase must be positive, got {self.wheelbase}")
        if self.max_steer_angle <= 0:
            raise ConfigurationError(
                f"max_steer_angle must be positive, got {self.max_steer_angle}"
            )
        if self.hitch_length < 0:
            raise ConfigurationError(
                f"hitch_length must not be negative, got {self.hitch_length}"
            )

    @classmethod
    def default(cls) -> "VehicleConfig":
        return cls()


@dataclass(frozen=True)
class StanleyGains:
    """Gains of the Stanley steering law.

    Attributes:
        heading_error_gain: Scale applied to the heading error.
        distance_error_gain: Scale applied to the cross-track error (1/m).
        integral_gain: Integral action strength, 0 disables it.
        integral_limit: Anti-windup clamp on the integral (degrees).
    """

    heading_error_gain: float = STANLEY_HEADING_ERROR_GAIN
    distance_error_gain: float = STANLEY_DISTANCE_ERROR_GAIN
    integral_gain: float = STANLEY_INTEGRAL_GAIN
    integral_limit: float = STANLEY_INTEGRAL_LIMIT

    def __post_init__(self) -> None:
        for name in (
            "heading_error_gain",
            "distance_error_gain",
            "integral_gain",
            "integral_limit",
        ):
            value = getattr(self, name)
            _require_finite(name, value)
            if value < 0:
                raise ConfigurationError(f"{name} must not be negative, got {value}")

    @classmethod
    def default(cls) -> "StanleyGains":
        return cls()


@dataclass(frozen=True)
class SectionConfig:
    """Lateral extent of one section relative to the implement centreline.

    Offsets are in meters, left negative and right positive.
    """

    left_offset: float
    right_offset: float

    def __post_init__(self) -> None:
        _require_finite("left_offset", self.left_offset)
        _require_finite("right_offset", self.right_offset)
        if self.right_offset <= self.left_offset:
            raise ConfigurationError(
                f"section right_offset ({self.right_offset}) must exceed "
                f"left_offset ({self.left_offset})"
            )

    @property
    def width(self) -> float:
        return self.right_offset - self.left_offset


@dataclass(frozen=True)
class ImplementConfig:
    """Section layout, debounce delays and coverage settings of the implement."""

    sections: Tuple[SectionConfig, ...]
    on_delay: float = SECTION_ON_DELAY
    off_delay: float = SECTION_OFF_DELAY
    look_ahead: float = SECTION_LOOK_AHEAD
    overlap_policy: OverlapPolicy = OverlapPolicy.IGNORE_OVERLAP
    coverage_cell_size: float = COVERAGE_CELL_SIZE
    max_patch_length: float = SECTION_MAX_PATCH_LENGTH

    def __post_init__(self) -> None:
        # Accept lists from callers but store an immutable tuple
        object.__setattr__(self, "sections", tuple(self.sections))
        if not self.sections:
            raise ConfigurationError("implement needs at least one section")
        for name in ("on_delay", "off_delay", "look_ahead", "coverage_cell_size", "max_patch_length"):
            _require_finite(name, getattr(self, name))
        if self.on_delay < 0:
            raise ConfigurationError(f"on_delay must not be negative, got {self.on_delay}")
        if self.off_delay < 0:
            raise ConfigurationError(f"off_delay must not be negative, got {self.off_delay}")
        if self.look_ahead < 0:
            raise ConfigurationError(f"look_ahead must not be negative, got {self.look_ahead}")
        if self.coverage_cell_size <= 0:
            raise ConfigurationError(
                f"coverage_cell_size must be positive, got {self.coverage_cell_size}"
            )
        if self.max_patch_length <= 0:
            raise ConfigurationError(
                f"max_patch_length must be positive, got {self.max_patch_length}"
            )
        if not isinstance(self.overlap_policy, OverlapPolicy):
            raise ConfigurationError(f"unknown overlap policy: {self.overlap_policy!r}")

    @property
    def total_width(self) -> float:
        return max(s.right_offset for s in self.sections) - min(
            s.left_offset for s in self.sections
        )

    @classmethod
    def evenly_spaced(
        cls, count: int = SECTION_COUNT, total_width: float = TOOL_WIDTH, **kwargs
    ) -> "ImplementConfig":
        """Build contiguous equal-width sections centred on the implement.

        Args:
            count: Number of sections (>= 1).
            total_width: Overall working width (meters, > 0).
            **kwargs: Remaining ImplementConfig fields.

        Raises:
            ConfigurationError: If count or total_width is not positive.
        """
        if count < 1:
            raise ConfigurationError(f"section count must be at least 1, got {count}")
        if not total_width > 0:
            raise ConfigurationError(f"total_width must be positive, got {total_width}")
        width = total_width / count
        left = -total_width / 2.0
        sections = tuple(
            SectionConfig(left + i * width, left + (i + 1) * width) for i in range(count)
        )
        return cls(sections=sections, **kwargs)

    @classmethod
    def default(cls) -> "ImplementConfig":
        return cls.evenly_spaced()
