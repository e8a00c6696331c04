import math

import pytest

from tractor_control.config import VehicleConfig
from tractor_control.errors import ConfigurationError, ContractViolation
from tractor_control.geometry import Pose
from tractor_control.simulator import VehicleSimulator, ramp_steer_angle


def _simulator(pose=None, **kwargs):
    return VehicleSimulator(VehicleConfig.default(), pose or Pose(0.0, 0.0, 0.0, 2.0), **kwargs)


def test_ramp_tiers_towards_positive_command():
    smoothed = 0.0
    sequence = []
    for _ in range(12):
        smoothed = ramp_steer_angle(smoothed, 20.0)
        sequence.append(smoothed)
    assert sequence == [6.0, 12.0, 14.0, 16.0, 16.5, 17.0, 17.5, 18.0, 18.5, 19.0, 20.0, 20.0]


def test_ramp_is_symmetric():
    assert ramp_steer_angle(0.0, -20.0) == -6.0
    assert ramp_steer_angle(-12.0, -20.0) == -14.0
    assert ramp_steer_angle(-19.5, -20.0) == -20.0


def test_simulator_applies_ramp_per_tick():
    sim = _simulator()
    applied = []
    for _ in range(4):
        sim.step(20.0, 0.1)
        applied.append(sim.steer_angle_smoothed)
    assert applied == [6.0, 12.0, 14.0, 16.0]


def test_ramp_independent_of_dt():
    fast = _simulator()
    slow = _simulator()
    fast.step(20.0, 0.01)
    slow.step(20.0, 1.0)
    assert fast.steer_angle_smoothed == slow.steer_angle_smoothed == 6.0


def test_without_lag_command_is_clamped():
    sim = _simulator(disable_actuator_lag=True)
    sim.step(45.0, 0.1)
    assert sim.steer_angle_smoothed == 30.0


def test_straight_motion_forward():
    sim = _simulator(Pose(0.0, 0.0, 0.0, 2.0))
    for _ in range(10):
        pose = sim.step(0.0, 0.1)
    assert pose.easting == pytest.approx(0.0, abs=1e-12)
    assert pose.northing == pytest.approx(2.0)
    assert pose.heading == 0.0
    assert sim.distance_traveled == pytest.approx(2.0)
    assert sim.elapsed == pytest.approx(1.0)


def test_straight_motion_reverse():
    sim = _simulator(Pose(0.0, 0.0, 0.0, 1.0, is_reverse=True))
    for _ in range(10):
        pose = sim.step(0.0, 0.1)
    assert pose.northing == pytest.approx(-1.0)
    assert pose.is_reverse


def test_positive_steer_turns_clockwise():
    sim = _simulator(disable_actuator_lag=True)
    pose = sim.step(5.0, 0.1)
    expected = 2.0 * 0.1 * math.tan(math.radians(5.0)) / 2.5
    assert pose.heading == pytest.approx(expected)
    assert pose.easting > 0


def test_heading_stays_wrapped():
    sim = _simulator(Pose(0.0, 0.0, 0.0, 2.0), disable_actuator_lag=True)
    for _ in range(50):
        pose = sim.step(-30.0, 0.1)
        assert 0.0 <= pose.heading < 2 * math.pi


def test_reset_restores_pose_and_straightens_wheels():
    sim = _simulator()
    sim.step(20.0, 0.1)
    pose = sim.reset(Pose(5.0, 5.0, 1.0, 3.0))
    assert pose == Pose(5.0, 5.0, 1.0, 3.0)
    assert sim.steer_angle_smoothed == 0.0
    assert sim.distance_traveled == 0.0


def test_set_speed_keeps_position():
    sim = _simulator()
    sim.set_speed(4.0, is_reverse=True)
    assert sim.pose.speed == 4.0
    assert sim.pose.is_reverse
    assert sim.pose.northing == 0.0


def test_wheelbase_must_be_positive():
    with pytest.raises(ConfigurationError):
        VehicleConfig(wheelbase=0.0)
    with pytest.raises(ConfigurationError):
        VehicleConfig(wheelbase=-1.0)


def test_step_rejects_non_positive_dt():
    with pytest.raises(ContractViolation):
        _simulator().step(0.0, 0.0)
