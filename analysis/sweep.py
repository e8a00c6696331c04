"""Gain sweep framework for the tractor guidance loop.

This module runs the closed loop in-process for combinations of Stanley gains
and scores each run by how well the vehicle settles on the line. It handles:
- One-at-a-time or explicit gain configurations
- Several initial lateral offsets per configuration
- Failure detection (configuration errors, runaway tracking)
- CSV export of results

Runs are deterministic: the same configuration and offsets always produce the
same scores, so a single pass per offset is enough.
"""

import logging
import math
import statistics
from dataclasses import dataclass, fields, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from tractor_control.component_modes import ComponentMode
from tractor_control.config import NOMINAL_DT, SIM_SPEED, SIM_TICKS, StanleyGains
from tractor_control.errors import ConfigurationError, ContractViolation
from tractor_control.simulate import build_scenario

GAIN_NAMES = tuple(f.name for f in fields(StanleyGains))

DEFAULT_OFFSETS = (-3.0, -1.0, 1.0, 3.0)
"""Initial lateral offsets (m) driven for every configuration."""


@dataclass
class RunResult:
    """Results from a single closed-loop run."""

    score: float
    success: bool
    initial_offset: float = 0.0
    error_message: Optional[str] = None

    @property
    def is_valid(self) -> bool:
        """Check if result is valid (successful with finite score)."""
        return self.success and math.isfinite(self.score)


@dataclass
class ConfigResult:
    """Aggregated results for a gain configuration."""

    config_name: str
    params: Dict[str, Any]
    scores: List[float]
    mean: float
    std_dev: float
    median: float
    min_score: float
    max_score: float
    q1: float  # First quartile (25th percentile)
    q3: float  # Third quartile (75th percentile)
    num_runs: int
    num_failures: int
    invalid_threshold: float = 0.5

    @property
    def is_valid(self) -> bool:
        """Configuration is valid if no failures and all scores under threshold."""
        return (
            self.num_failures == 0
            and self.max_score <= self.invalid_threshold
            and len(self.scores) > 0
        )

    @property
    def iqr(self) -> float:
        """Interquartile range (Q3 - Q1)."""
        return self.q3 - self.q1

    def consistency_score(self) -> float:
        """Calculate consistency score (lower is better).

        Combines mean error with variance penalty.
        """
        return self.mean + 2 * self.std_dev

    def __str__(self) -> str:
        status = "VALID" if self.is_valid else "INVALID"
        return (
            f"{self.config_name:40s} | "
            f"Mean: {self.mean:6.3f}m | "
            f"Std: {self.std_dev:6.3f}m | "
            f"Median: {self.median:6.3f}m | "
            f"Range: [{self.min_score:6.3f}, {self.max_score:6.3f}] | "
            f"Failures: {self.num_failures:2d}/{self.num_runs} | "
            f"{status}"
        )


def aggregate(
    config_name: str,
    params: Dict[str, Any],
    runs: Sequence[RunResult],
    invalid_threshold: float = 0.5,
) -> ConfigResult:
    """Fold individual runs into a ConfigResult."""
    scores = [r.score for r in runs if r.is_valid]
    failures = len(runs) - len(scores)

    if scores:
        sorted_scores = sorted(scores)
        n = len(sorted_scores)
        mean = statistics.mean(scores)
        std_dev = statistics.stdev(scores) if n > 1 else 0.0
        median = statistics.median(scores)
        min_score = sorted_scores[0]
        max_score = sorted_scores[-1]
        q1 = sorted_scores[n // 4]
        q3 = sorted_scores[(3 * n) // 4]
    else:
        mean = median = min_score = max_score = float("inf")
        std_dev = q1 = q3 = float("inf")

    return ConfigResult(
        config_name=config_name,
        params=dict(params),
        scores=scores,
        mean=mean,
        std_dev=std_dev,
        median=median,
        min_score=min_score,
        max_score=max_score,
        q1=q1,
        q3=q3,
        num_runs=len(runs),
        num_failures=failures,
        invalid_threshold=invalid_threshold,
    )


class GainSweep:
    """Sweep Stanley gains over simulated runs.

    Example:
        sweep = GainSweep(
            parameters={'distance_error_gain': [0.5, 0.8, 1.2]},
            offsets=(-2.0, 2.0),
        )
        sweep.run()
        sweep.save_results('results/gain_sweep.csv')
    """

    def __init__(
        self,
        parameters: Optional[Dict[str, List[float]]] = None,
        offsets: Sequence[float] = DEFAULT_OFFSETS,
        line_kind: str = "ab",
        speed: float = SIM_SPEED,
        ticks: int = SIM_TICKS,
        dt: float = NOMINAL_DT,
        settle_fraction: float = 0.5,
        invalid_threshold: float = 0.5,
        component_mode: Optional[ComponentMode] = None,
    ):
        """Initialize gain sweep.

        Args:
            parameters: Dict mapping StanleyGains field names to values to
                       test. If None, call add_parameter() or add_configuration().
            offsets: Initial lateral offsets (m), one run each.
            line_kind: "ab" or "curve".
            speed: Ground speed (m/s).
            ticks: Ticks per run.
            dt: Tick length (s).
            settle_fraction: Leading share of each run excluded from the score.
            invalid_threshold: Score above which a configuration is invalid (m).
            component_mode: Stage isolation flags applied to every run.

        Raises:
            ConfigurationError: If a parameter is not a StanleyGains field or
                settle_fraction is outside [0, 1).
        """
        self.parameters: Dict[str, List[float]] = {}
        for name, values in (parameters or {}).items():
            self.add_parameter(name, values)
        if not 0.0 <= settle_fraction < 1.0:
            raise ConfigurationError(f"settle_fraction must be in [0, 1), got {settle_fraction}")

        self.offsets = tuple(offsets)
        self.line_kind = line_kind
        self.speed = speed
        self.ticks = ticks
        self.dt = dt
        self.settle_fraction = settle_fraction
        self.invalid_threshold = invalid_threshold
        self.component_mode = component_mode or ComponentMode()

        self.results: List[ConfigResult] = []
        self.configurations: List[Tuple[str, Dict[str, float]]] = []

    def add_parameter(self, name: str, values: List[float]) -> None:
        """Add a gain to sweep over.

        Args:
            name: StanleyGains field name (e.g., 'distance_error_gain')
            values: Values to test for this gain
        """
        if name not in GAIN_NAMES:
            raise ConfigurationError(
                f"unknown gain {name!r}, expected one of {', '.join(GAIN_NAMES)}"
            )
        self.parameters[name] = list(values)

    def add_configuration(self, name: str, params: Dict[str, float]) -> None:
        """Add a specific gain combination to test."""
        for key in params:
            if key not in GAIN_NAMES:
                raise ConfigurationError(f"unknown gain {key!r}")
        self.configurations.append((name, dict(params)))

    def run_single(self, gains: StanleyGains, initial_offset: float) -> RunResult:
        """Drive one simulated run and score the settled tracking error.

        The score is the RMS cross-track error over the ticks after the
        settle window.
        """
        try:
            runner = build_scenario(
                line_kind=self.line_kind,
                initial_offset=initial_offset,
                speed=self.speed,
                ticks=self.ticks,
                dt=self.dt,
                gains=gains,
                component_mode=self.component_mode,
            )
            results = runner.run(self.ticks, self.dt)
        except (ConfigurationError, ContractViolation) as e:
            logging.error(f"Run failed: {e}")
            return RunResult(float("inf"), False, initial_offset, str(e))

        settled = results[int(len(results) * self.settle_fraction):]
        if not settled:
            return RunResult(float("inf"), False, initial_offset, "No settled ticks")

        score = math.sqrt(sum(r.cross_track_error ** 2 for r in settled) / len(settled))
        if not math.isfinite(score):
            return RunResult(float("inf"), False, initial_offset, "Non-finite tracking error")
        logging.debug(f"    offset {initial_offset:+.1f}m: {score:.4f}m")
        return RunResult(score, True, initial_offset)

    def test_configuration(self, config_name: str, params: Dict[str, float]) -> ConfigResult:
        """Run every offset for one gain combination."""
        logging.info(f"Testing: {config_name}")

        try:
            gains = replace(StanleyGains.default(), **params)
        except ConfigurationError as e:
            logging.error(f"Invalid gains for {config_name}: {e}")
            runs = [RunResult(float("inf"), False, offset, str(e)) for offset in self.offsets]
            return aggregate(config_name, params, runs, self.invalid_threshold)

        runs = [self.run_single(gains, offset) for offset in self.offsets]
        result = aggregate(config_name, params, runs, self.invalid_threshold)

        status = "✓ VALID" if result.is_valid else "✗ INVALID"
        logging.info(f"  {status}  Mean: {result.mean:.4f}m ± {result.std_dev:.4f}m")
        return result

    def run(self) -> List[ConfigResult]:
        """Run the sweep.

        Tests all configurations added via add_configuration(), or one
        configuration per value in the parameters dict (one-at-a-time).

        Raises:
            ConfigurationError: If nothing was configured.
        """
        if self.configurations:
            plan = list(self.configurations)
        elif self.parameters:
            plan = [
                (f"{name}={value}", {name: value})
                for name, values in self.parameters.items()
                for value in values
            ]
        else:
            raise ConfigurationError(
                "Must either add configurations via add_configuration() or specify parameters"
            )

        logging.info(f"Gain sweep: {len(plan)} configurations x {len(self.offsets)} offsets")
        self.results = [self.test_configuration(name, params) for name, params in plan]
        return self.results

    def save_results(self, filepath: Optional[Path] = None) -> Path:
        """Save results to CSV file.

        Args:
            filepath: Optional path for CSV file. If None, auto-generates
                     timestamped filename in results/ directory.

        Returns:
            Path to saved CSV file
        """
        if filepath is None:
            results_dir = Path("results")
            results_dir.mkdir(exist_ok=True)
            timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
            filepath = results_dir / f"gain_sweep_{timestamp}.csv"
        else:
            filepath = Path(filepath)
            filepath.parent.mkdir(parents=True, exist_ok=True)

        with open(filepath, "w") as f:
            f.write(
                "config_name,param_names,param_values,"
                "mean,std_dev,median,min,max,q1,q3,iqr,"
                "num_runs,num_failures,is_valid,consistency_score,"
                "all_scores\n"
            )
            for result in self.results:
                param_names = ";".join(result.params.keys())
                param_values = ";".join(str(v) for v in result.params.values())
                scores_str = ";".join(f"{s:.4f}" for s in result.scores)
                f.write(
                    f"{result.config_name},{param_names},{param_values},"
                    f"{result.mean:.4f},{result.std_dev:.4f},{result.median:.4f},"
                    f"{result.min_score:.4f},{result.max_score:.4f},"
                    f"{result.q1:.4f},{result.q3:.4f},{result.iqr:.4f},"
                    f"{result.num_runs},{result.num_failures},{result.is_valid},"
                    f"{result.consistency_score():.4f},{scores_str}\n"
                )

        logging.info(f"✓ Results saved to {filepath}")
        return filepath

    def print_summary(self, top_n: int = 10) -> None:
        """Print summary of results to console."""
        print("\n" + "=" * 80)
        print("GAIN SWEEP COMPLETE")
        print("=" * 80)

        valid_results = [r for r in self.results if r.is_valid]
        print(f"\nTotal configurations tested: {len(self.results)}")
        print(f"Valid configurations: {len(valid_results)}")
        print(f"Invalid configurations: {len(self.results) - len(valid_results)}")

        if valid_results:
            print("\n" + "=" * 80)
            print(f"TOP {min(top_n, len(valid_results))} CONFIGURATIONS (by consistency)")
            print("=" * 80 + "\n")

            ranked = sorted(valid_results, key=lambda r: r.consistency_score())
            for i, result in enumerate(ranked[:top_n], 1):
                print(f"{i}. {result}")
                print(f"   Consistency: {result.consistency_score():.4f}")
                print(f"   Parameters: {result.params}\n")
