#!/usr/bin/env python3
"""
Closed-Loop Guidance Simulation

Drives the simulated tractor along an AB line or a curve with the Stanley
controller, switches the implement sections against a rectangular field with
headlands, and prints tracking and coverage figures at the end of the run.
Nothing is written to disk.
"""

import argparse
import logging
import math
import sys
from typing import Dict, List, Optional

from .component_modes import ComponentMode, parse_component_flags
from .config import (
    NOMINAL_DT,
    SIM_FIELD_MARGIN,
    SIM_INITIAL_OFFSET,
    SIM_SPEED,
    SIM_TICKS,
    TERM_BLUE,
    TERM_ORANGE,
    TERM_RESET,
    ImplementConfig,
    OverlapPolicy,
    StanleyGains,
    VehicleConfig,
)
from .boundary import FieldBoundary
from .errors import ConfigurationError, ContractViolation
from .geometry import LocalPoint, Pose
from .guidance import ABLine, Curve, GuidanceLine
from .runner import ClosedLoopRunner
from .sections import SectionState
from .simulator import VehicleSimulator


class CustomFormatter(logging.Formatter):
    """Custom logging formatter that removes timestamps from INFO messages.

    INFO lines are printed bare for a clean console; WARNING, ERROR and DEBUG
    lines keep timestamp and level.
    """

    def format(self, record: logging.LogRecord) -> str:
        if record.levelno == logging.INFO:
            return record.getMessage()
        return f"{self.formatTime(record, self.datefmt)} - {record.levelname} - {record.getMessage()}"


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level.

    Args:
        verbose: If True, show all levels with timestamps. If False, show INFO
                 without timestamps and WARNING/ERROR with timestamps.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        handler = logging.StreamHandler()
        handler.setFormatter(CustomFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
        logger = logging.getLogger()
        logger.setLevel(logging.INFO)
        logger.addHandler(handler)


def curve_points(length: float, amplitude: float = 5.0, wavelength: float = 120.0, spacing: float = 1.0) -> List[LocalPoint]:
    """Sample a gentle S-curve heading roughly north from the origin."""
    count = int(length / spacing) + 1
    return [
        LocalPoint(amplitude * math.sin(2.0 * math.pi * i * spacing / wavelength), i * spacing)
        for i in range(count)
    ]


def build_scenario(
    line_kind: str = "ab",
    initial_offset: float = SIM_INITIAL_OFFSET,
    speed: float = SIM_SPEED,
    ticks: int = SIM_TICKS,
    dt: float = NOMINAL_DT,
    gains: Optional[StanleyGains] = None,
    vehicle: Optional[VehicleConfig] = None,
    implement: Optional[ImplementConfig] = None,
    component_mode: Optional[ComponentMode] = None,
) -> ClosedLoopRunner:
    """Assemble a simulated runner for one run.

    The vehicle starts at the southern end of the line, initial_offset meters
    to the right, heading north. The field spans the run length minus a
    headland at each end; all sections are set to AUTO.

    Args:
        line_kind: "ab" for a straight line, "curve" for an S-curve.
        initial_offset: Lateral start offset (m, right positive).
        speed: Ground speed (m/s).
        ticks: Planned run length, used to size the field and curve.
        dt: Planned tick length (s).
        gains: Stanley gains, defaults from config.
        vehicle: Vehicle geometry, defaults from config.
        implement: Section layout, defaults from config.
        component_mode: Stage isolation flags.

    Returns:
        A runner in simulation mode.

    Raises:
        ConfigurationError: If line_kind is unknown.
    """
    gains = gains or StanleyGains.default()
    vehicle = vehicle or VehicleConfig.default()
    implement = implement or ImplementConfig.default()

    run_length = abs(speed) * ticks * dt + 2.0 * SIM_FIELD_MARGIN

    if line_kind == "ab":
        line: GuidanceLine = ABLine(LocalPoint(0.0, 0.0), 0.0)
    elif line_kind == "curve":
        line = Curve(curve_points(run_length))
    else:
        raise ConfigurationError(f"unknown line kind: {line_kind!r}")

    half_width = implement.total_width + 10.0
    boundary = FieldBoundary.rectangle(
        -half_width, SIM_FIELD_MARGIN, half_width, run_length - SIM_FIELD_MARGIN
    )

    start = line.project(Pose(initial_offset, 0.0, 0.0, speed))
    simulator = VehicleSimulator(
        vehicle, Pose(initial_offset, 0.0, start.reference_heading, speed)
    )

    runner = ClosedLoopRunner(
        vehicle,
        gains,
        implement=implement,
        guidance_line=line,
        boundary=boundary,
        simulator=simulator,
        component_mode=component_mode,
    )
    if runner.sections is not None:
        runner.sections.set_all(SectionState.AUTO)
    return runner


def run_scenario(runner: ClosedLoopRunner, ticks: int = SIM_TICKS, dt: float = NOMINAL_DT) -> Dict[str, float]:
    """Run the loop and summarize tracking and coverage.

    Returns:
        Dictionary with rms/max/final cross-track error and, when sections
        are active, applied area, net area and overlap ratio.
    """
    results = runner.run(ticks, dt)
    ticks_per_second = max(1, int(round(1.0 / dt)))
    for result in results[::ticks_per_second]:
        logging.debug(
            f"t={result.tick * dt:6.1f}s  xte={result.cross_track_error:+.3f}m  "
            f"steer={result.steer_angle:+.2f}°  sections={sum(result.section_states)}"
        )

    summary = {
        "ticks": float(len(results)),
        "rms_xte": runner.rms_cross_track_error,
        "max_xte": runner.max_cross_track_error,
        "final_xte": results[-1].cross_track_error if results else 0.0,
    }
    if runner.sections is not None:
        summary["applied_area"] = runner.sections.applied_area
        summary["net_area"] = runner.sections.net_area
        summary["overlap_ratio"] = runner.sections.overlap_ratio
    return summary


def main(argv: Optional[List[str]] = None) -> int:
    """Command-line entry point.

    Returns:
        Process exit code.
    """
    component_mode, remaining_args = parse_component_flags(argv)

    parser = argparse.ArgumentParser(description="Closed-loop tractor guidance simulation")
    parser.add_argument("--line", choices=["ab", "curve"], default="ab", help="Guidance line type")
    parser.add_argument("--offset", type=float, default=SIM_INITIAL_OFFSET, help="Initial lateral offset (m)")
    parser.add_argument("--speed", type=float, default=SIM_SPEED, help="Ground speed (m/s)")
    parser.add_argument("--ticks", type=int, default=SIM_TICKS, help="Number of ticks to run")
    parser.add_argument("--dt", type=float, default=NOMINAL_DT, help="Tick length (s)")
    parser.add_argument("--heading-gain", type=float, default=None, help="Heading error gain")
    parser.add_argument("--distance-gain", type=float, default=None, help="Distance error gain")
    parser.add_argument("--integral-gain", type=float, default=None, help="Integral gain")
    parser.add_argument(
        "--suppress-overlap", action="store_true", help="Switch sections off over covered ground"
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable verbose logging with timestamps"
    )
    args = parser.parse_args(remaining_args)

    setup_logging(args.verbose)
    logging.info(f"{TERM_BLUE}Component Configuration: {component_mode}{TERM_RESET}")

    defaults = StanleyGains.default()
    try:
        gains = StanleyGains(
            heading_error_gain=defaults.heading_error_gain if args.heading_gain is None else args.heading_gain,
            distance_error_gain=defaults.distance_error_gain if args.distance_gain is None else args.distance_gain,
            integral_gain=defaults.integral_gain if args.integral_gain is None else args.integral_gain,
            integral_limit=defaults.integral_limit,
        )
        policy = OverlapPolicy.SUPPRESS_ON_OVERLAP if args.suppress_overlap else OverlapPolicy.IGNORE_OVERLAP
        implement = ImplementConfig.evenly_spaced(overlap_policy=policy)
        runner = build_scenario(
            line_kind=args.line,
            initial_offset=args.offset,
            speed=args.speed,
            ticks=args.ticks,
            dt=args.dt,
            gains=gains,
            implement=implement,
            component_mode=component_mode,
        )
        summary = run_scenario(runner, args.ticks, args.dt)
    except (ConfigurationError, ContractViolation) as e:
        logging.error(f"{TERM_ORANGE}Simulation aborted: {e}{TERM_RESET}")
        return 1

    logging.info(
        f"{TERM_BLUE}\033[1m→ RMS XTE: {summary['rms_xte']:.3f}m  Max: {summary['max_xte']:.3f}m  "
        f"Final: {summary['final_xte']:+.3f}m{TERM_RESET}"
    )
    if "applied_area" in summary:
        logging.info(
            f"{TERM_BLUE}\033[1m→ Applied: {summary['applied_area']:.1f}m²  Net: {summary['net_area']:.1f}m²  "
            f"Overlap: {summary['overlap_ratio'] * 100:.1f}%{TERM_RESET}"
        )
    return 0


if __name__ == "__main__":
    sys.exit(main())
