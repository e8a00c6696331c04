import math

import pytest

from analysis.cli import main, parse_param_specs
from analysis.statistics import (
    compute_statistics,
    generate_report,
    load_sweep_results,
    rank_configurations,
)
from analysis.sweep import ConfigResult, GainSweep, RunResult, aggregate
from tractor_control.errors import ConfigurationError


def _small_sweep(**kwargs):
    options = dict(offsets=(1.0, -1.0), ticks=150)
    options.update(kwargs)
    return GainSweep(**options)


def test_compute_statistics():
    stats = compute_statistics([1.0, 2.0, 3.0, 4.0, float("inf")])
    assert stats.n == 4
    assert stats.mean == pytest.approx(2.5)
    assert stats.median == pytest.approx(2.5)
    assert stats.q1 == pytest.approx(1.75)
    assert stats.q3 == pytest.approx(3.25)
    assert stats.ci_95_lower < stats.mean < stats.ci_95_upper
    assert compute_statistics([]) is None
    assert compute_statistics([float("inf")]) is None


def test_aggregate_counts_failures():
    runs = [RunResult(0.1, True), RunResult(0.3, True), RunResult(float("inf"), False, error_message="x")]
    result = aggregate("cfg", {"integral_gain": 1.0}, runs)
    assert result.num_runs == 3
    assert result.num_failures == 1
    assert result.mean == pytest.approx(0.2)
    assert not result.is_valid
    assert result.consistency_score() == pytest.approx(result.mean + 2 * result.std_dev)


def test_aggregate_all_failed():
    result = aggregate("cfg", {}, [RunResult(float("inf"), False)])
    assert math.isinf(result.mean)
    assert not result.is_valid


def test_sweep_rejects_unknown_gain():
    with pytest.raises(ConfigurationError):
        GainSweep(parameters={"MOTOR_KP_V": [1.0]})
    with pytest.raises(ConfigurationError):
        GainSweep().run()


def test_sweep_scores_settled_error():
    sweep = _small_sweep(parameters={"distance_error_gain": [0.8, 1.2]})
    results = sweep.run()
    assert [r.config_name for r in results] == ["distance_error_gain=0.8", "distance_error_gain=1.2"]
    for result in results:
        assert isinstance(result, ConfigResult)
        assert result.num_runs == 2
        assert result.num_failures == 0
        assert all(math.isfinite(s) for s in result.scores)


def test_sweep_is_deterministic():
    first = _small_sweep(parameters={"heading_error_gain": [1.0]}).run()
    second = _small_sweep(parameters={"heading_error_gain": [1.0]}).run()
    assert first[0].scores == second[0].scores


def test_invalid_gain_value_marks_configuration_failed():
    sweep = _small_sweep()
    sweep.add_configuration("negative", {"distance_error_gain": -1.0})
    result = sweep.run()[0]
    assert result.num_failures == 2
    assert not result.is_valid


def test_save_load_and_report(tmp_path):
    sweep = _small_sweep()
    sweep.add_configuration("baseline", {})
    sweep.add_configuration("stiff", {"distance_error_gain": 1.5})
    sweep.run()

    csv_path = sweep.save_results(tmp_path / "sweep.csv")
    loaded = load_sweep_results(csv_path)
    assert [r["config_name"] for r in loaded] == ["baseline", "stiff"]
    assert loaded[1]["params"] == {"distance_error_gain": "1.5"}

    ranked = rank_configurations(loaded)
    assert all(r["is_valid"] for r in ranked)
    assert [r["consistency_score"] for r in ranked] == sorted(r["consistency_score"] for r in ranked)

    report_path = tmp_path / "report.txt"
    report = generate_report(csv_path, report_path)
    assert "GAIN SWEEP REPORT" in report
    assert report_path.read_text() == report


def test_parse_param_specs():
    assert parse_param_specs(["integral_gain=0,1.5"]) == {"integral_gain": [0.0, 1.5]}
    with pytest.raises(ValueError):
        parse_param_specs(["integral_gain"])
    with pytest.raises(ValueError):
        parse_param_specs(["integral_gain=a,b"])


def test_cli_sweep_and_stats(tmp_path):
    csv_path = tmp_path / "cli.csv"
    assert main([
        "sweep", "--param", "distance_error_gain=0.8", "--offsets", "1.0",
        "--ticks", "100", "--output", str(csv_path),
    ]) == 0
    assert csv_path.exists()
    assert main(["stats", str(csv_path)]) == 0
    assert main(["stats", str(tmp_path / "missing.csv")]) == 1
    assert main(["sweep"]) == 1
