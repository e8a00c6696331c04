"""Field boundary membership.

The section controller only needs one question answered per probe point:
is this point inside the workable area? A Boundary answers it. FieldBoundary
is the default implementation: one or more allowed outer polygons minus any
excluded inner polygons (headlands, ponds, already-treated strips), tested
with matplotlib's point-in-polygon.
"""

from typing import Iterable, List, Protocol, Sequence

import numpy as np
from matplotlib.path import Path

from .errors import ConfigurationError
from .geometry import LocalPoint


class Boundary(Protocol):
    """Membership service consumed by the section controller."""

    def is_allowed(self, point: LocalPoint) -> bool:
        ...

    def is_excluded(self, point: LocalPoint) -> bool:
        ...


def _polygon_path(polygon: Sequence[LocalPoint]) -> Path:
    if len(polygon) < 3:
        raise ConfigurationError(f"boundary polygon needs at least 3 points, got {len(polygon)}")
    vertices = np.array([[p.easting, p.northing] for p in polygon], dtype=float)
    return Path(vertices, closed=False)


class FieldBoundary:
    """Allowed and excluded regions of a field.

    Attributes:
        allowed: Outer polygons the implement may work in.
        excluded: Polygons inside which every section must stay off.
    """

    def __init__(
        self,
        allowed: Iterable[Sequence[LocalPoint]],
        excluded: Iterable[Sequence[LocalPoint]] = (),
    ):
        """Initialize the boundary.

        Args:
            allowed: One or more outer polygons (vertex lists, not closed).
            excluded: Zero or more exclusion polygons.

        Raises:
            ConfigurationError: If no allowed polygon is given or a polygon
                has fewer than three vertices.
        """
        self.allowed: List[Path] = [_polygon_path(p) for p in allowed]
        self.excluded: List[Path] = [_polygon_path(p) for p in excluded]
        if not self.allowed:
            raise ConfigurationError("field boundary needs at least one allowed polygon")

    @classmethod
    def rectangle(
        cls, min_easting: float, min_northing: float, max_easting: float, max_northing: float
    ) -> "FieldBoundary":
        """Axis-aligned rectangular field."""
        return cls(
            [
                [
                    LocalPoint(min_easting, min_northing),
                    LocalPoint(max_easting, min_northing),
                    LocalPoint(max_easting, max_northing),
                    LocalPoint(min_easting, max_northing),
                ]
            ]
        )

    def is_allowed(self, point: LocalPoint) -> bool:
        xy = (point.easting, point.northing)
        return any(path.contains_point(xy) for path in self.allowed)

    def is_excluded(self, point: LocalPoint) -> bool:
        xy = (point.easting, point.northing)
        return any(path.contains_point(xy) for path in self.excluded)
