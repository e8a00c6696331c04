"""Command-line interface for the gain sweep tooling.

Runs Stanley gain sweeps against the simulated loop and generates
statistical reports from saved results.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional

from analysis import statistics, sweep
from tractor_control.component_modes import parse_component_flags
from tractor_control.errors import ConfigurationError
from tractor_control.simulate import setup_logging


def parse_param_specs(specs: List[str]) -> Dict[str, List[float]]:
    """Parse 'name=v1,v2,v3' specifications.

    Raises:
        ValueError: If a specification is malformed.
    """
    parameters = {}
    for param_spec in specs:
        if '=' not in param_spec:
            raise ValueError(f"Invalid parameter specification: {param_spec} (format: name=v1,v2)")
        param_name, values_str = param_spec.split('=', 1)
        try:
            values = [float(v.strip()) for v in values_str.split(',')]
        except ValueError:
            raise ValueError(f"Invalid parameter values for {param_name}: {values_str}")
        parameters[param_name.strip()] = values
    return parameters


def run_sweep(args: argparse.Namespace) -> int:
    """Run a gain sweep from command line.

    Returns:
        Exit code (0 for success)
    """
    try:
        parameters = parse_param_specs(args.param or [])
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    if not parameters:
        print("Error: No parameters specified!")
        print("Example: --param distance_error_gain=0.5,0.8,1.2")
        return 1

    try:
        gs = sweep.GainSweep(
            parameters=parameters,
            offsets=args.offsets or sweep.DEFAULT_OFFSETS,
            line_kind=args.line,
            ticks=args.ticks,
            invalid_threshold=args.threshold,
            component_mode=args.component_mode,
        )
        gs.run()
    except ConfigurationError as e:
        print(f"Error: {e}")
        return 1

    csv_path = gs.save_results(Path(args.output) if args.output else None)
    gs.print_summary(top_n=args.top)

    if args.report:
        report_path = csv_path.with_suffix('.txt')
        statistics.generate_report(csv_path, report_path, top_n=args.top)

    print(f"\n✓ Sweep complete! Results saved to {csv_path}")
    return 0


def run_stats(args: argparse.Namespace) -> int:
    """Generate statistical report from existing CSV.

    Returns:
        Exit code (0 for success)
    """
    csv_path = Path(args.csv)
    if not csv_path.exists():
        print(f"Error: File not found: {csv_path}")
        return 1

    output_path = Path(args.output) if args.output else None
    try:
        report = statistics.generate_report(csv_path, output_path, top_n=args.top)
    except (KeyError, ValueError) as e:
        print(f"Error: malformed results file: {e}")
        return 1

    if not output_path:
        print(report)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for CLI.

    Args:
        argv: Optional command-line arguments (for testing)

    Returns:
        Exit code (0 for success)
    """
    component_mode, remaining_args = parse_component_flags(argv)

    parser = argparse.ArgumentParser(
        description="Gain sweep tooling for the tractor guidance loop",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Sweep the distance error gain
  python -m analysis.cli sweep --param distance_error_gain=0.5,0.8,1.2

  # Sweep two gains on a curve without actuator lag
  python -m analysis.cli sweep --line curve --no-actuator-lag \\
    --param heading_error_gain=0.8,1.0,1.2 \\
    --param integral_gain=0,1,2 --report

  # Generate statistical report
  python -m analysis.cli stats results/gain_sweep_20260101_120000.csv
        """
    )
    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    sweep_parser = subparsers.add_parser('sweep', help='Run a gain sweep')
    sweep_parser.add_argument(
        '--param', action='append',
        help='Gain to sweep: name=val1,val2,val3 (can specify multiple)'
    )
    sweep_parser.add_argument(
        '--offsets', type=float, nargs='+',
        help='Initial lateral offsets in meters (default: -3 -1 1 3)'
    )
    sweep_parser.add_argument('--line', choices=['ab', 'curve'], default='ab', help='Guidance line type')
    sweep_parser.add_argument('--ticks', type=int, default=sweep.SIM_TICKS, help='Ticks per run')
    sweep_parser.add_argument(
        '--threshold', type=float, default=0.5,
        help='Invalid settled RMS XTE threshold in meters (default: 0.5)'
    )
    sweep_parser.add_argument('--output', '-o', help='Output CSV path (default: auto-generated in results/)')
    sweep_parser.add_argument('--report', action='store_true', help='Generate statistical report after sweep')
    sweep_parser.add_argument('--top', type=int, default=10, help='Number of top configurations to show')
    sweep_parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose logging')

    stats_parser = subparsers.add_parser('stats', help='Generate statistical report from CSV')
    stats_parser.add_argument('csv', help='Path to sweep results CSV file')
    stats_parser.add_argument('--output', '-o', help='Output report path (default: print)')
    stats_parser.add_argument('--top', type=int, default=10, help='Number of top configurations to show')
    stats_parser.add_argument('--verbose', '-v', action='store_true', help='Enable verbose output')

    args = parser.parse_args(remaining_args)
    if not args.command:
        parser.print_help()
        return 1

    setup_logging(args.verbose)
    logging.debug(f"Component configuration: {component_mode}")

    if args.command == 'sweep':
        args.component_mode = component_mode
        return run_sweep(args)
    return run_stats(args)


if __name__ == '__main__':
    sys.exit(main())
