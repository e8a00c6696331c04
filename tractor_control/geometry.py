"""Local-plane geometry primitives.

All guidance math runs in a local tangent plane: easting and northing in
meters, headings in radians with 0 = north and clockwise positive. Geodetic
coordinates get their own type so that the conversion step is always an
explicit call on a LocalPlaneConverter, never an implicit mix of conventions.
"""

import math
from dataclasses import dataclass
from typing import List, Protocol, Sequence

TWO_PI = 2.0 * math.pi


@dataclass(frozen=True)
class LocalPoint:
    """Point in the local tangent plane (meters)."""

    easting: float
    northing: float


@dataclass(frozen=True)
class GeodeticPoint:
    """WGS84 position (degrees). Not usable by guidance math directly."""

    latitude: float
    longitude: float


class LocalPlaneConverter(Protocol):
    """Coordinate conversion service supplied by the surrounding system."""

    def to_local(self, point: GeodeticPoint) -> LocalPoint:
        ...

    def to_geodetic(self, point: LocalPoint) -> GeodeticPoint:
        ...


@dataclass(frozen=True)
class Pose:
    """Vehicle pose consumed by one control tick.

    Attributes:
        easting: Position east of the local origin (m).
        northing: Position north of the local origin (m).
        heading: Direction of travel (rad, 0 = north, clockwise positive).
        speed: Ground speed magnitude (m/s).
        is_reverse: True when the vehicle is backing up.
    """

    easting: float
    northing: float
    heading: float
    speed: float
    is_reverse: bool = False

    @property
    def position(self) -> LocalPoint:
        return LocalPoint(self.easting, self.northing)


def wrap_two_pi(angle: float) -> float:
    """Normalize angle to [0, 2*pi)."""
    wrapped = angle % TWO_PI
    # Tiny negative inputs round up to exactly 2*pi
    if wrapped >= TWO_PI:
        wrapped = 0.0
    return wrapped


def wrap_pi(angle: float) -> float:
    """Normalize angle to (-pi, pi]."""
    wrapped = wrap_two_pi(angle)
    if wrapped > math.pi:
        wrapped -= TWO_PI
    return wrapped


def bearing(start: LocalPoint, end: LocalPoint) -> float:
    """Heading from start to end in [0, 2*pi)."""
    return wrap_two_pi(
        math.atan2(end.easting - start.easting, end.northing - start.northing)
    )


def project(point: LocalPoint, heading: float, distance: float) -> LocalPoint:
    """Move a point along a heading by a (signed) distance."""
    return LocalPoint(
        point.easting + math.sin(heading) * distance,
        point.northing + math.cos(heading) * distance,
    )


def offset_right(point: LocalPoint, heading: float, distance: float) -> LocalPoint:
    """Move a point perpendicular to a heading, positive distance to the right."""
    return LocalPoint(
        point.easting + math.cos(heading) * distance,
        point.northing - math.sin(heading) * distance,
    )


def distance_squared(a: LocalPoint, b: LocalPoint) -> float:
    de = a.easting - b.easting
    dn = a.northing - b.northing
    return de * de + dn * dn


def calculate_headings(points: Sequence[LocalPoint], loop: bool = False) -> List[float]:
    """Compute the tangent heading of every point of a polyline.

    Interior points use the direction from the previous to the next point.
    The first and last points use their single adjacent segment, or the
    segment across the ends when the polyline is a closed loop.

    Args:
        points: Ordered polyline points.
        loop: Whether the last point connects back to the first.

    Returns:
        One heading per point in [0, 2*pi). Fewer than two points yields
        zero headings, since no direction is defined.
    """
    count = len(points)
    if count < 2:
        return [0.0] * count

    last = count - 1
    headings = []

    first_prev = points[last] if loop else points[0]
    headings.append(bearing(first_prev, points[1]))

    for i in range(1, last):
        headings.append(bearing(points[i - 1], points[i + 1]))

    last_next = points[0] if loop else points[last]
    headings.append(bearing(points[last - 1], last_next))

    return headings


def offset_line(
    points: Sequence[LocalPoint], distance: float, min_spacing: float, loop: bool = False
) -> List[LocalPoint]:
    """Offset a polyline perpendicular to its local heading.

    Offset points landing closer than |distance| to any original point are
    discarded (they come from the inside of tight bends), as are points
    closer than min_spacing to the previously kept offset point.

    Args:
        points: Ordered polyline points.
        distance: Offset in meters, positive to the right of travel.
        min_spacing: Minimum squared spacing between kept points (m^2).
        loop: Whether the polyline is closed.

    Returns:
        New list of offset points (possibly empty).
    """
    headings = calculate_headings(points, loop)
    limit = distance * distance - 0.0001
    result: List[LocalPoint] = []

    for point, heading in zip(points, headings):
        candidate = offset_right(point, heading, distance)

        if any(distance_squared(candidate, original) < limit for original in points):
            continue

        if result and distance_squared(candidate, result[-1]) <= min_spacing:
            continue

        result.append(candidate)

    return result


def polygon_area(corners: Sequence[LocalPoint]) -> float:
    """Unsigned area of a simple polygon via the shoelace formula."""
    count = len(corners)
    if count < 3:
        return 0.0
    twice_area = 0.0
    for i in range(count):
        a = corners[i]
        b = corners[(i + 1) % count]
        twice_area += a.easting * b.northing - b.easting * a.northing
    return abs(twice_area) / 2.0
