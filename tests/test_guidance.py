import math

import pytest

from tractor_control.errors import ConfigurationError
from tractor_control.geometry import LocalPoint, Pose
from tractor_control.guidance import ABLine, Curve


def _north_ab(**kwargs):
    return ABLine(LocalPoint(0.0, 0.0), 0.0, **kwargs)


def _north_curve(count=21, spacing=1.0, **kwargs):
    return Curve([LocalPoint(0.0, i * spacing) for i in range(count)], **kwargs)


def test_ab_line_right_of_line_is_positive():
    projection = _north_ab().project(Pose(3.0, 10.0, 0.0, 2.0))
    assert projection.cross_track_error == 3.0
    assert projection.heading_error == 0.0
    assert projection.closest_point.northing == pytest.approx(10.0)


def test_ab_line_left_of_line_is_negative():
    projection = _north_ab().project(Pose(-2.0, 5.0, 0.0, 2.0))
    assert projection.cross_track_error == pytest.approx(-2.0)


def test_ab_line_heading_error_wrapped():
    projection = _north_ab().project(Pose(0.0, 0.0, math.radians(350.0), 2.0))
    assert projection.heading_error == pytest.approx(math.radians(-10.0))


def test_ab_line_parallel_pass():
    line = _north_ab(pass_number=1, tool_width=12.0)
    assert line.project(Pose(12.0, 3.0, 0.0, 2.0)).cross_track_error == pytest.approx(0.0)
    assert line.with_pass(-1).project(Pose(-10.0, 3.0, 0.0, 2.0)).cross_track_error == pytest.approx(2.0)


def test_ab_line_from_points():
    line = ABLine.from_points(LocalPoint(0.0, 0.0), LocalPoint(10.0, 0.0))
    assert line.heading == pytest.approx(math.pi / 2)
    # South of an eastbound line is to the right
    assert line.project(Pose(5.0, -1.0, math.pi / 2, 2.0)).cross_track_error == pytest.approx(1.0)


def test_ab_line_rejects_bad_configuration():
    with pytest.raises(ConfigurationError):
        ABLine.from_points(LocalPoint(1.0, 1.0), LocalPoint(1.0, 1.0))
    with pytest.raises(ConfigurationError):
        ABLine(LocalPoint(0.0, 0.0), float("nan"))
    with pytest.raises(ConfigurationError):
        ABLine(LocalPoint(0.0, 0.0), 0.0, tool_width=0.0)


def test_ab_line_bidirectional_follows_travel_direction():
    pose = Pose(3.0, 0.0, math.pi, 2.0)

    fixed = _north_ab().project(pose)
    assert fixed.heading_error == pytest.approx(math.pi)
    assert fixed.cross_track_error == pytest.approx(3.0)

    either = _north_ab(bidirectional=True).project(pose)
    assert either.reference_heading == pytest.approx(math.pi)
    assert either.heading_error == pytest.approx(0.0)
    assert either.cross_track_error == pytest.approx(-3.0)


def test_curve_needs_two_points():
    with pytest.raises(ConfigurationError):
        Curve([LocalPoint(0.0, 0.0)])
    with pytest.raises(ConfigurationError):
        Curve([])


def test_curve_straight_projection():
    projection = _north_curve().project(Pose(1.5, 5.5, 0.0, 2.0))
    assert projection.cross_track_error == pytest.approx(1.5)
    assert projection.heading_error == pytest.approx(0.0)
    assert projection.closest_point.northing == pytest.approx(5.5)


def test_curve_tie_prefers_later_segment():
    # Exactly on point 5: both adjacent segments are equally close
    projection = _north_curve().project(Pose(1.0, 5.0, 0.0, 2.0))
    assert projection.index == 5
    assert projection.cross_track_error == pytest.approx(1.0)


def test_curve_clamps_beyond_end():
    projection = _north_curve().project(Pose(1.0, 25.0, 0.0, 2.0))
    assert projection.closest_point == LocalPoint(0.0, 20.0)
    assert projection.cross_track_error == pytest.approx(math.sqrt(26.0))


def test_curve_clamps_before_start():
    projection = _north_curve().project(Pose(-1.0, -3.0, 0.0, 2.0))
    assert projection.closest_point == LocalPoint(0.0, 0.0)
    assert projection.index == 0


def test_curve_nearest_index_coarse_to_fine():
    curve = _north_curve(count=100)
    assert curve.nearest_index(LocalPoint(0.3, 57.2)) == 57
    assert curve.nearest_index(LocalPoint(0.0, 99.4)) == 99


def test_curve_loop_wraps_across_seam():
    radius = 10.0
    count = 36
    circle = [
        LocalPoint(radius * math.sin(2 * math.pi * k / count), radius * math.cos(2 * math.pi * k / count))
        for k in range(count)
    ]
    curve = Curve(circle, loop=True)

    # Just outside the seam point, driving clockwise (east at the top)
    projection = curve.project(Pose(0.0, 11.0, math.pi / 2, 2.0))
    assert projection.index in (count - 1, 0)
    # Clockwise loop: outside is left of travel
    assert projection.cross_track_error < 0
    assert abs(projection.cross_track_error) == pytest.approx(1.0, abs=0.1)
    assert abs(projection.heading_error) < 0.1


def test_curve_parallel_offset():
    parallel = _north_curve().parallel(1, tool_width=2.0)
    assert parallel.project(Pose(2.0, 5.0, 0.0, 2.0)).cross_track_error == pytest.approx(0.0)
    assert _north_curve().parallel(0) is not None


def test_curve_parallel_with_too_few_points():
    short = Curve([LocalPoint(0.0, 0.0), LocalPoint(0.0, 0.1)])
    with pytest.raises(ConfigurationError):
        short.parallel(1, tool_width=1.0, min_spacing=0.25)
