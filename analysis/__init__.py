"""Gain sweep tooling for the tractor guidance loop.

This package provides:
- In-process sweeps of Stanley gains over simulated runs
- Statistical analysis and ranking of the results

Quick Start:
    >>> from analysis import GainSweep
    >>> sweep = GainSweep(parameters={'distance_error_gain': [0.5, 0.8, 1.2]})
    >>> sweep.run()
    >>> sweep.save_results('results/my_sweep.csv')

Command Line:
    # Run a gain sweep
    python -m analysis.cli sweep --param distance_error_gain=0.5,0.8,1.2

    # Generate statistical report
    python -m analysis.cli stats results/gain_sweep_*.csv
"""

from analysis.statistics import (
    Statistics,
    compute_statistics,
    generate_report,
    load_sweep_results,
    rank_configurations,
)
from analysis.sweep import (
    ConfigResult,
    GainSweep,
    RunResult,
    aggregate,
)

__all__ = [
    # Sweep framework
    'GainSweep',
    'RunResult',
    'ConfigResult',
    'aggregate',
    # Statistics
    'Statistics',
    'compute_statistics',
    'load_sweep_results',
    'rank_configurations',
    'generate_report',
]

__version__ = '0.1.0'
