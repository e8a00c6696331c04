from tractor_control.component_modes import ComponentMode, parse_component_flags
from tractor_control.simulate import main


def test_defaults_enable_everything():
    mode, remaining = parse_component_flags([])
    assert mode == ComponentMode()
    assert remaining == []
    assert str(mode) == "Stanley(XTE+HDG+I+Damp) → Ramp Actuator → Sections"


def test_flags_disable_named_stage_only():
    mode, remaining = parse_component_flags(["--no-integral", "--ticks", "10", "--no-sections"])
    assert not mode.use_integral
    assert mode.use_damping
    assert mode.use_actuator_lag
    assert not mode.use_sections
    assert remaining == ["--ticks", "10"]


def test_to_dict():
    mode = ComponentMode(use_actuator_lag=False)
    assert mode.to_dict() == {
        'use_integral': True,
        'use_damping': True,
        'use_actuator_lag': False,
        'use_sections': True,
    }
    assert "Ideal Actuator" in str(mode)


def test_simulation_cli_runs():
    assert main(["--ticks", "50"]) == 0
    assert main(["--line", "curve", "--ticks", "50", "--no-actuator-lag", "--suppress-overlap"]) == 0


def test_simulation_cli_reports_bad_configuration():
    assert main(["--ticks", "10", "--distance-gain", "-1"]) == 1
    assert main(["--ticks", "10", "--dt", "0"]) == 1
