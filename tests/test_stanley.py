import math

import pytest

from tractor_control.config import StanleyGains
from tractor_control.errors import ConfigurationError, ContractViolation
from tractor_control.stanley import StanleyController, effective_speed

MAX_STEER = 30.0


def _steer(controller, xte, heading_error=0.0, speed=1.0, reverse=False, gains=None, dt=0.1):
    return controller.calculate(
        xte, heading_error, speed, reverse, gains or StanleyGains.default(), MAX_STEER, dt
    )


def test_zero_error_gives_exactly_zero():
    out = _steer(StanleyController(), 0.0, 0.0, speed=2.78)
    assert out == 0.0
    assert math.copysign(1.0, out) == 1.0


def test_output_is_bounded():
    controller = StanleyController()
    for xte in (-1e6, -3.0, -0.2, 0.2, 3.0, 1e6):
        for heading_error in (-math.pi, -1.0, 0.0, 1.0, math.pi):
            for speed in (0.0, 0.5, 5.0, 50.0):
                out = _steer(controller, xte, heading_error, speed)
                assert -MAX_STEER <= out <= MAX_STEER


def test_right_of_line_steers_left():
    assert _steer(StanleyController(), 0.3) < 0
    assert _steer(StanleyController(), -0.3) > 0


def test_effective_speed_floor_and_compression():
    assert effective_speed(0.0) == 1.0
    assert effective_speed(1.0) == 1.0
    assert effective_speed(-2.0) == pytest.approx(1.277)
    assert effective_speed(11.0) == pytest.approx(1.0 + 0.277 * 10.0)


def test_damping_fixed_beyond_half_meter():
    expected = -0.5 * math.degrees(math.atan(0.8))
    assert _steer(StanleyController(), 1.0) == pytest.approx(expected)


def test_damping_continuous_at_threshold():
    below = _steer(StanleyController(), 0.5)
    above = _steer(StanleyController(), 0.5 + 1e-9)
    assert below == pytest.approx(above, abs=1e-6)


def test_disabled_damping_hits_clamp():
    controller = StanleyController(disable_damping=True)
    assert _steer(controller, 1.0) == -MAX_STEER


def test_reverse_flips_heading_term():
    forward = _steer(StanleyController(), 0.0, heading_error=0.2)
    backward = _steer(StanleyController(), 0.0, heading_error=0.2, reverse=True)
    assert forward == pytest.approx(-math.degrees(0.2))
    assert backward == pytest.approx(-forward)


def test_integral_accumulates_inside_band():
    gains = StanleyGains(integral_gain=1.0)
    controller = StanleyController()
    for _ in range(100):
        _steer(controller, 0.1, speed=2.0, gains=gains)
    assert controller.state.integral_accumulator == pytest.approx(-0.1)


def test_integral_unwinds_faster_on_overshoot():
    gains = StanleyGains(integral_gain=1.0)
    controller = StanleyController()
    controller.state.integral_accumulator = 1.0
    _steer(controller, 0.1, speed=2.0, gains=gains)
    assert controller.state.integral_accumulator == pytest.approx(1.0 - 0.003)


def test_integral_clamped_to_limit():
    gains = StanleyGains(integral_gain=1e4, integral_limit=5.0)
    controller = StanleyController()
    for _ in range(3):
        _steer(controller, 0.2, speed=2.0, gains=gains)
    assert controller.state.integral_accumulator == -5.0


def test_integral_decays_outside_band_scaled_by_dt():
    gains = StanleyGains(integral_gain=1.0)
    controller = StanleyController()

    controller.state.integral_accumulator = -1.0
    _steer(controller, 0.5, speed=2.0, gains=gains, dt=0.1)
    assert controller.state.integral_accumulator == pytest.approx(-0.7)

    controller.state.integral_accumulator = -1.0
    _steer(controller, 0.5, speed=2.0, gains=gains, dt=0.2)
    assert controller.state.integral_accumulator == pytest.approx(-0.49)


def test_integral_reset_in_reverse_and_when_disabled():
    controller = StanleyController()
    controller.state.integral_accumulator = 2.0
    _steer(controller, 0.1, speed=2.0, reverse=True, gains=StanleyGains(integral_gain=1.0))
    assert controller.state.integral_accumulator == 0.0

    controller.state.integral_accumulator = 2.0
    _steer(controller, 0.1, speed=2.0, gains=StanleyGains(integral_gain=0.0))
    assert controller.state.integral_accumulator == 0.0


def test_disable_integral_leaves_accumulator_alone():
    controller = StanleyController(disable_integral=True)
    for _ in range(10):
        _steer(controller, 0.1, speed=2.0, gains=StanleyGains(integral_gain=1.0))
    assert controller.state.integral_accumulator == 0.0


def test_nan_input_commands_zero():
    assert _steer(StanleyController(), float("nan")) == 0.0


def test_rejects_bad_limits_and_dt():
    controller = StanleyController()
    with pytest.raises(ConfigurationError):
        controller.calculate(0.0, 0.0, 1.0, False, StanleyGains.default(), 0.0)
    with pytest.raises(ContractViolation):
        controller.calculate(0.0, 0.0, 1.0, False, StanleyGains.default(), MAX_STEER, dt=0.0)


def test_gains_validation():
    with pytest.raises(ConfigurationError):
        StanleyGains(distance_error_gain=-0.1)
    with pytest.raises(ConfigurationError):
        StanleyGains(heading_error_gain=float("inf"))


def test_reset_clears_state():
    controller = StanleyController()
    controller.state.integral_accumulator = 3.0
    _steer(controller, 0.4)
    controller.reset()
    assert controller.state.integral_accumulator == 0.0
    assert controller.get_diagnostics()["steer_angle"] == 0.0
