"""Reference paths and nearest-point projection.

A guidance line turns a vehicle pose into the three numbers the steering law
needs: signed cross-track error (positive = vehicle right of the line),
heading error normalized to (-pi, pi], and the reference heading at the
projected point.

Two variants exist:
- ABLine: an infinite straight line through an origin at a fixed heading,
  shifted sideways by pass_number * tool_width for parallel passes.
- Curve: an ordered sequence of recorded points with per-point tangent
  headings, searched coarse-to-fine for the nearest point.
"""

import math
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from .config import CURVE_COARSE_STEP, TOOL_WIDTH
from .errors import ConfigurationError
from .geometry import (
    LocalPoint,
    Pose,
    bearing,
    calculate_headings,
    offset_line,
    offset_right,
    project,
    wrap_pi,
    wrap_two_pi,
)


@dataclass(frozen=True)
class LineProjection:
    """Result of projecting a pose onto a guidance line.

    Attributes:
        cross_track_error: Signed perpendicular distance (m), positive when
            the vehicle is to the right of the line.
        heading_error: Vehicle heading minus reference heading, in (-pi, pi].
        reference_heading: Line heading at the projected point (rad).
        closest_point: Foot of the perpendicular on the line.
        index: Start index of the curve segment used, -1 for AB lines.
    """

    cross_track_error: float
    heading_error: float
    reference_heading: float
    closest_point: LocalPoint
    index: int = -1


class GuidanceLine(ABC):
    """Reference path the controller tracks."""

    @abstractmethod
    def project(self, pose: Pose) -> LineProjection:
        """Project the pose onto the line."""


class ABLine(GuidanceLine):
    """Straight guidance line, infinite in both directions.

    Attributes:
        origin: Point the reference (pass 0) line goes through.
        heading: Line heading in [0, 2*pi).
        pass_number: Parallel pass index, positive passes lie to the right.
        tool_width: Spacing between parallel passes (m).
        bidirectional: Track the line in whichever direction the vehicle drives.
    """

    def __init__(
        self,
        origin: LocalPoint,
        heading: float,
        pass_number: int = 0,
        tool_width: float = TOOL_WIDTH,
        bidirectional: bool = False,
    ):
        """Initialize the AB line.

        Args:
            origin: Point A of the line (local plane).
            heading: Direction from A towards B (rad, 0 = north, clockwise).
            pass_number: Integer pass number for parallel guidance.
            tool_width: Implement width used as pass spacing (m, > 0).
            bidirectional: If True, reverse the reference direction when the
                vehicle heads more than 90 degrees away from the line heading.

        Raises:
            ConfigurationError: On non-finite heading or non-positive width.
        """
        if not math.isfinite(heading):
            raise ConfigurationError(f"AB line heading must be finite, got {heading}")
        if not tool_width > 0 or not math.isfinite(tool_width):
            raise ConfigurationError(f"tool_width must be positive, got {tool_width}")
        if int(pass_number) != pass_number:
            raise ConfigurationError(f"pass_number must be an integer, got {pass_number}")

        self.origin = origin
        self.heading = wrap_two_pi(heading)
        self.pass_number = int(pass_number)
        self.tool_width = float(tool_width)
        self.bidirectional = bidirectional

        self.offset = self.pass_number * self.tool_width
        self.pass_origin = offset_right(origin, self.heading, self.offset)

    @classmethod
    def from_points(cls, point_a: LocalPoint, point_b: LocalPoint, **kwargs) -> "ABLine":
        """Build a line through A and B, heading from A towards B.

        Raises:
            ConfigurationError: If A and B coincide.
        """
        if point_a == point_b:
            raise ConfigurationError("AB line needs two distinct points")
        return cls(point_a, bearing(point_a, point_b), **kwargs)

    def with_pass(self, pass_number: int) -> "ABLine":
        """Return the same line shifted to another parallel pass."""
        return ABLine(
            self.origin,
            self.heading,
            pass_number=pass_number,
            tool_width=self.tool_width,
            bidirectional=self.bidirectional,
        )

    def project(self, pose: Pose) -> LineProjection:
        sin_h = math.sin(self.heading)
        cos_h = math.cos(self.heading)
        de = pose.easting - self.pass_origin.easting
        dn = pose.northing - self.pass_origin.northing

        cross_track = de * cos_h - dn * sin_h
        along_track = de * sin_h + dn * cos_h
        reference_heading = self.heading

        if self.bidirectional and abs(wrap_pi(pose.heading - self.heading)) > math.pi / 2:
            reference_heading = wrap_two_pi(self.heading + math.pi)
            cross_track = -cross_track

        return LineProjection(
            cross_track_error=cross_track,
            heading_error=wrap_pi(pose.heading - reference_heading),
            reference_heading=reference_heading,
            closest_point=project(self.pass_origin, self.heading, along_track),
        )

    def __repr__(self) -> str:
        return (
            f"ABLine(origin=({self.origin.easting:.2f}, {self.origin.northing:.2f}), "
            f"heading={math.degrees(self.heading):.2f}deg, pass={self.pass_number})"
        )


def _latest_argmin(values: np.ndarray) -> int:
    """Index of the minimum, preferring the last one on ties."""
    return len(values) - 1 - int(np.argmin(values[::-1]))


class Curve(GuidanceLine):
    """Guidance along a recorded sequence of points.

    Each point carries a tangent heading (see calculate_headings). The curve
    is open unless loop=True, in which case the last point connects back to
    the first and projections wrap across the seam.
    """

    def __init__(
        self,
        points: Sequence[LocalPoint],
        loop: bool = False,
        coarse_step: int = CURVE_COARSE_STEP,
    ):
        """Initialize the curve.

        Args:
            points: Ordered path points, at least two.
            loop: Whether the curve is closed.
            coarse_step: Stride of the coarse nearest-point scan (>= 1).

        Raises:
            ConfigurationError: If fewer than two points or a bad stride.
        """
        if len(points) < 2:
            raise ConfigurationError(f"curve needs at least 2 points, got {len(points)}")
        if int(coarse_step) != coarse_step or coarse_step < 1:
            raise ConfigurationError(f"coarse_step must be a positive integer, got {coarse_step}")

        self.points: Tuple[LocalPoint, ...] = tuple(points)
        self.loop = loop
        self.coarse_step = int(coarse_step)
        self.headings: Tuple[float, ...] = tuple(calculate_headings(self.points, loop))

        self._east = np.array([p.easting for p in self.points], dtype=float)
        self._north = np.array([p.northing for p in self.points], dtype=float)
        self._east.flags.writeable = False
        self._north.flags.writeable = False

    @property
    def count(self) -> int:
        return len(self.points)

    def parallel(
        self, pass_number: int, tool_width: float = TOOL_WIDTH, min_spacing: float = 0.25
    ) -> "Curve":
        """Return the curve offset sideways by pass_number * tool_width.

        Raises:
            ConfigurationError: If fewer than two offset points survive.
        """
        if pass_number == 0:
            return self
        offset_points = offset_line(self.points, pass_number * tool_width, min_spacing, self.loop)
        if len(offset_points) < 2:
            raise ConfigurationError(
                f"pass {pass_number} leaves only {len(offset_points)} usable curve points"
            )
        return Curve(offset_points, loop=self.loop, coarse_step=self.coarse_step)

    def _squared_distances(self, indices: np.ndarray, easting: float, northing: float) -> np.ndarray:
        return (self._east[indices] - easting) ** 2 + (self._north[indices] - northing) ** 2

    def nearest_index(self, point: LocalPoint) -> int:
        """Find the index of the curve point nearest to a position.

        Coarse pass over every coarse_step-th point (plus the last point),
        then an exact scan within one stride either side of the coarse hit.
        Ties prefer the later index.
        """
        count = self.count
        step = self.coarse_step

        coarse = np.arange(0, count, step)
        if coarse[-1] != count - 1:
            coarse = np.append(coarse, count - 1)
        approx = int(coarse[_latest_argmin(self._squared_distances(coarse, point.easting, point.northing))])

        if self.loop:
            window = np.unique(np.arange(approx - step, approx + step + 1) % count)
        else:
            window = np.arange(max(0, approx - step), min(count - 1, approx + step) + 1)

        return int(window[_latest_argmin(self._squared_distances(window, point.easting, point.northing))])

    def _segment_foot(
        self, start: int, end: int, easting: float, northing: float
    ) -> Tuple[float, LocalPoint, float, float]:
        """Clamp-project a position onto segment start->end.

        Returns:
            Tuple of (t, foot, squared distance, side) where side > 0 means
            the position lies right of the direction of travel.
        """
        a = self.points[start]
        b = self.points[end]
        de = b.easting - a.easting
        dn = b.northing - a.northing
        length_sq = de * de + dn * dn

        if length_sq == 0.0:
            # Degenerate segment: fall back to the point heading for the side
            t = 0.0
            heading = self.headings[start]
            side = (easting - a.easting) * math.cos(heading) - (northing - a.northing) * math.sin(heading)
        else:
            t = ((easting - a.easting) * de + (northing - a.northing) * dn) / length_sq
            t = max(0.0, min(1.0, t))
            side = (easting - a.easting) * dn - (northing - a.northing) * de

        foot = LocalPoint(a.easting + t * de, a.northing + t * dn)
        dist_sq = (easting - foot.easting) ** 2 + (northing - foot.northing) ** 2
        return t, foot, dist_sq, side

    def project(self, pose: Pose) -> LineProjection:
        count = self.count
        nearest = self.nearest_index(pose.position)

        segments = []
        if self.loop or nearest > 0:
            segments.append(((nearest - 1) % count, nearest))
        if self.loop or nearest < count - 1:
            segments.append((nearest, (nearest + 1) % count))

        best: Optional[Tuple[int, int, float, LocalPoint, float, float]] = None
        for start, end in segments:
            t, foot, dist_sq, side = self._segment_foot(start, end, pose.easting, pose.northing)
            if best is None or dist_sq <= best[4]:
                best = (start, end, t, foot, dist_sq, side)

        start, end, t, foot, dist_sq, side = best
        distance = math.sqrt(dist_sq)
        cross_track = distance if side >= 0 else -distance

        heading_a = self.headings[start]
        heading_b = self.headings[end]
        reference_heading = wrap_two_pi(heading_a + t * wrap_pi(heading_b - heading_a))

        return LineProjection(
            cross_track_error=cross_track,
            heading_error=wrap_pi(pose.heading - reference_heading),
            reference_heading=reference_heading,
            closest_point=foot,
            index=start,
        )

    def __repr__(self) -> str:
        kind = "loop" if self.loop else "open"
        return f"Curve({self.count} points, {kind})"
