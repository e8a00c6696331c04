import pytest

from tractor_control.coverage import CoverageMap, CoveragePatch, CoverageRecord
from tractor_control.errors import ContractViolation
from tractor_control.geometry import LocalPoint


def _patch(section_index=0, tick=0, min_e=0.0, min_n=0.0, width=1.0, length=1.0):
    return CoveragePatch(
        section_index,
        tick,
        (
            LocalPoint(min_e, min_n),
            LocalPoint(min_e + width, min_n),
            LocalPoint(min_e + width, min_n + length),
            LocalPoint(min_e, min_n + length),
        ),
    )


def test_patch_area():
    assert _patch(width=2.0, length=0.5).area == 1.0


def test_record_is_append_only_snapshot():
    record = CoverageRecord(0)
    record.append(_patch(tick=0))
    snapshot = record.snapshot()
    record.append(_patch(tick=1, min_n=1.0))

    assert len(snapshot) == 1
    assert len(record) == 2
    assert isinstance(snapshot, tuple)
    assert record.applied_area == 2.0


def test_record_rejects_foreign_patch():
    record = CoverageRecord(1)
    with pytest.raises(ContractViolation):
        record.append(_patch(section_index=0))


def test_map_union_area_counts_overlap_once():
    coverage = CoverageMap(0.25)
    assert coverage.add_patch(_patch()) == 16
    assert coverage.union_area == 1.0
    assert coverage.add_patch(_patch(tick=1)) == 0
    assert coverage.union_area == 1.0

    coverage.add_patch(_patch(tick=2, min_e=0.5))
    assert coverage.union_area == 1.5


def test_map_is_covered():
    coverage = CoverageMap(0.25)
    coverage.add_patch(_patch(min_e=-1.0, min_n=-1.0, width=2.0, length=2.0))
    assert coverage.is_covered(LocalPoint(0.0, 0.0))
    assert coverage.is_covered(LocalPoint(-0.9, 0.9))
    assert not coverage.is_covered(LocalPoint(1.5, 0.0))
    coverage.clear()
    assert not coverage.is_covered(LocalPoint(0.0, 0.0))
    assert coverage.cell_count == 0


def test_degenerate_patch_covers_nothing():
    coverage = CoverageMap(0.25)
    flat = CoveragePatch(0, 0, (LocalPoint(0, 0), LocalPoint(1, 0), LocalPoint(1, 0), LocalPoint(0, 0)))
    assert coverage.add_patch(flat) == 0
    assert flat.area == 0.0
