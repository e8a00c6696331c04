"""Statistical summaries of gain sweep results.

Scores are settled RMS cross-track errors in meters, so lower is better
everywhere. This module provides:
- Descriptive statistics with an approximate 95% confidence interval
- Loading sweep CSV files written by GainSweep.save_results
- Ranking by consistency, mean and spread
- Plain-text report generation
"""

import csv
import math
import statistics
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import numpy as np


@dataclass
class Statistics:
    """Statistical summary for a set of scores."""

    mean: float
    std: float
    median: float
    min: float
    max: float
    q1: float  # 25th percentile
    q3: float  # 75th percentile
    iqr: float
    ci_95_lower: float
    ci_95_upper: float
    n: int

    def __str__(self) -> str:
        return (
            f"Mean: {self.mean:.4f} ± {self.std:.4f} | "
            f"Median: {self.median:.4f} | "
            f"Range: [{self.min:.4f}, {self.max:.4f}] | "
            f"IQR: {self.iqr:.4f} | "
            f"95% CI: [{self.ci_95_lower:.4f}, {self.ci_95_upper:.4f}] | "
            f"N={self.n}"
        )


def compute_statistics(data: List[float]) -> Optional[Statistics]:
    """Compute descriptive statistics over the finite values of data.

    Returns:
        Statistics object, or None if no finite value is present
    """
    finite_data = [x for x in data if math.isfinite(x)]
    if not finite_data:
        return None

    n = len(finite_data)
    mean = statistics.mean(finite_data)
    std = statistics.stdev(finite_data) if n > 1 else 0.0
    q1 = float(np.percentile(finite_data, 25))
    q3 = float(np.percentile(finite_data, 75))

    if n > 1:
        se = std / math.sqrt(n)
        # Widen the normal quantile for small samples instead of a t-table
        t_critical = 1.96 if n > 30 else 2.0 + (30 - n) * 0.05
        ci_95_lower = mean - t_critical * se
        ci_95_upper = mean + t_critical * se
    else:
        ci_95_lower = ci_95_upper = mean

    return Statistics(
        mean=mean,
        std=std,
        median=statistics.median(finite_data),
        min=min(finite_data),
        max=max(finite_data),
        q1=q1,
        q3=q3,
        iqr=q3 - q1,
        ci_95_lower=ci_95_lower,
        ci_95_upper=ci_95_upper,
        n=n,
    )


def load_sweep_results(csv_path: Path) -> List[Dict]:
    """Load sweep results from a CSV file.

    Args:
        csv_path: CSV written by GainSweep.save_results

    Returns:
        List of result dictionaries, one per configuration
    """
    results = []
    with open(csv_path, 'r', newline='') as f:
        for row in csv.DictReader(f):
            scores_str = row.get('all_scores', '')
            results.append({
                'config_name': row['config_name'],
                'params': dict(zip(
                    row.get('param_names', '').split(';'),
                    row.get('param_values', '').split(';'),
                )),
                'mean': float(row['mean']),
                'std_dev': float(row['std_dev']),
                'median': float(row['median']),
                'min': float(row['min']),
                'max': float(row['max']),
                'iqr': float(row.get('iqr', 0)),
                'num_runs': int(row['num_runs']),
                'num_failures': int(row['num_failures']),
                'is_valid': row['is_valid'].lower() == 'true',
                'consistency_score': float(row['consistency_score']),
                'scores': [float(s) for s in scores_str.split(';') if s],
            })
    return results


def rank_configurations(
    results: List[Dict],
    metric: str = 'consistency_score',
    ascending: bool = True,
) -> List[Dict]:
    """Rank valid configurations by a metric.

    Args:
        results: Result dictionaries from load_sweep_results
        metric: Key to sort by ('consistency_score', 'mean', 'std_dev', ...)
        ascending: True when lower is better

    Returns:
        Sorted valid results
    """
    valid_results = [r for r in results if r['is_valid']]
    return sorted(valid_results, key=lambda r: r[metric], reverse=not ascending)


def _section(lines: List[str], title: str) -> None:
    lines.append("\n" + "=" * 80)
    lines.append(title)
    lines.append("=" * 80)


def generate_report(
    csv_path: Path,
    output_path: Optional[Path] = None,
    top_n: int = 10,
) -> str:
    """Build a text report from sweep results.

    Args:
        csv_path: Sweep CSV file
        output_path: Optional path to save the report
        top_n: Number of configurations per ranking

    Returns:
        Report text
    """
    results = load_sweep_results(csv_path)
    valid_results = [r for r in results if r['is_valid']]

    lines = ["=" * 80, "GAIN SWEEP REPORT", "=" * 80]
    lines.append(f"\nSource: {csv_path}")
    lines.append(f"Total configurations: {len(results)}")
    lines.append(f"Valid configurations: {len(valid_results)}")
    lines.append(f"Invalid configurations: {len(results) - len(valid_results)}")

    if not valid_results:
        lines.append("\nNo valid configurations found!")
    else:
        _section(lines, "OVERALL SETTLED RMS XTE (all valid configurations)")
        overall = compute_statistics([s for r in valid_results for s in r['scores']])
        if overall:
            lines.append(f"\n{overall}")

        _section(lines, f"TOP {top_n} CONFIGURATIONS BY CONSISTENCY SCORE")
        for i, result in enumerate(rank_configurations(results)[:top_n], 1):
            lines.append(f"\n{i}. {result['config_name']}")
            lines.append(f"   Gains: {result['params']}")
            stats = compute_statistics(result['scores'])
            if stats:
                lines.append(f"   {stats}")
            lines.append(f"   Consistency Score: {result['consistency_score']:.4f}")

        _section(lines, f"TOP {top_n} CONFIGURATIONS BY MEAN")
        for i, result in enumerate(rank_configurations(results, metric='mean')[:top_n], 1):
            lines.append(f"\n{i}. {result['config_name']}")
            lines.append(f"   Mean: {result['mean']:.4f}m ± {result['std_dev']:.4f}m")
            lines.append(f"   Range: [{result['min']:.4f}, {result['max']:.4f}]m")

        _section(lines, f"TOP {top_n} MOST STABLE CONFIGURATIONS (lowest std dev)")
        for i, result in enumerate(rank_configurations(results, metric='std_dev')[:top_n], 1):
            lines.append(f"\n{i}. {result['config_name']}")
            lines.append(f"   Std Dev: {result['std_dev']:.4f}m  Mean: {result['mean']:.4f}m")

    lines.append("\n" + "=" * 80)
    report_text = "\n".join(lines)

    if output_path:
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(report_text)
        print(f"✓ Report saved to {output_path}")

    return report_text
