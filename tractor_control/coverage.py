"""Applied-area accounting.

Every tick a switched-on section sweeps a quadrilateral between its previous
and current edge positions. Patches are appended to a per-section
CoverageRecord and never modified afterwards. The raw sum of patch areas
counts overlap twice; the CoverageMap rasterizes patches onto a square grid to
measure the union (net) area and to answer "is this point already covered?".
"""

import math
from dataclasses import dataclass
from typing import Iterator, List, Set, Tuple

import numpy as np
from matplotlib.path import Path

from .errors import ContractViolation
from .geometry import LocalPoint, polygon_area

Corners = Tuple[LocalPoint, LocalPoint, LocalPoint, LocalPoint]


@dataclass(frozen=True)
class CoveragePatch:
    """Quadrilateral covered by one section during one tick.

    Corners are ordered previous-left, previous-right, current-right,
    current-left.
    """

    section_index: int
    tick: int
    corners: Corners

    @property
    def area(self) -> float:
        return polygon_area(self.corners)


class CoverageRecord:
    """Append-only patch sequence of a single section."""

    def __init__(self, section_index: int):
        self.section_index = section_index
        self._patches: List[CoveragePatch] = []

    def append(self, patch: CoveragePatch) -> None:
        if patch.section_index != self.section_index:
            raise ContractViolation(
                f"patch for section {patch.section_index} appended to record "
                f"of section {self.section_index}"
            )
        self._patches.append(patch)

    def snapshot(self) -> Tuple[CoveragePatch, ...]:
        """Consistent copy of the patches appended so far.

        The length is read once, so a reader running beside the control loop
        sees a complete prefix and never a half-written tail.
        """
        length = len(self._patches)
        return tuple(self._patches[:length])

    @property
    def applied_area(self) -> float:
        return sum(patch.area for patch in self.snapshot())

    def __len__(self) -> int:
        return len(self._patches)

    def __iter__(self) -> Iterator[CoveragePatch]:
        return iter(self.snapshot())


class CoverageMap:
    """Raster of covered cells for union area and overlap queries.

    A cell counts as covered once its centre lies inside any patch.

    Attributes:
        cell_size: Cell edge length (m).
    """

    def __init__(self, cell_size: float):
        self.cell_size = cell_size
        self._cells: Set[Tuple[int, int]] = set()

    def _cell_of(self, easting: float, northing: float) -> Tuple[int, int]:
        return (math.floor(easting / self.cell_size), math.floor(northing / self.cell_size))

    def add_patch(self, patch: CoveragePatch) -> int:
        """Rasterize a patch.

        Returns:
            Number of cells newly covered by this patch.
        """
        vertices = np.array([[c.easting, c.northing] for c in patch.corners], dtype=float)
        size = self.cell_size

        i_min, j_min = self._cell_of(vertices[:, 0].min(), vertices[:, 1].min())
        i_max, j_max = self._cell_of(vertices[:, 0].max(), vertices[:, 1].max())

        ii, jj = np.meshgrid(
            np.arange(i_min, i_max + 1), np.arange(j_min, j_max + 1), indexing="ij"
        )
        ii = ii.ravel()
        jj = jj.ravel()
        centres = np.column_stack(((ii + 0.5) * size, (jj + 0.5) * size))

        inside = Path(vertices).contains_points(centres)
        before = len(self._cells)
        self._cells.update(zip(ii[inside].tolist(), jj[inside].tolist()))
        return len(self._cells) - before

    def is_covered(self, point: LocalPoint) -> bool:
        return self._cell_of(point.easting, point.northing) in self._cells

    @property
    def cell_count(self) -> int:
        return len(self._cells)

    @property
    def union_area(self) -> float:
        return len(self._cells) * self.cell_size * self.cell_size

    def clear(self) -> None:
        self._cells.clear()
