"""Analyze which argument values are optimal across several grid runs.

Running the same grid on different train/test splits and comparing the
optimal combinations shows how robust an argument choice is.

Usage:
    python scripts/analyze_argument_stability.py \\
        runs/split_01 runs/split_02 runs/split_03 \\
        --criterion coverage=target:0.9
"""
from __future__ import annotations

import argparse
import logging
from collections import Counter, defaultdict
from pathlib import Path
from typing import Dict, List

from testargs.grid import DiagnosticsComparison, optimal_arguments

logger = logging.getLogger(__name__)


def analyze_argument_stability(
    run_dirs: List[Path],
    criteria: Dict[str, str] | None = None,
) -> dict:
    """Count how often each argument value is optimal, per diagnostic."""
    criteria = criteria or {}
    run_results = []

    for run_dir in run_dirs:
        try:
            result = DiagnosticsComparison.load_result(run_dir)
        except (FileNotFoundError, ValueError) as e:
            logger.warning("Could not load %s: %s", run_dir, e)
            continue

        per_diagnostic = {name: criteria.get(name, "min") for name in result.diagnostic_names}
        optimal = optimal_arguments(result, per_diagnostic)
        run_results.append({
            "run": run_dir.name,
            "arg_names": result.arg_names,
            "optimal": optimal,
        })

    if not run_results:
        return {}

    combo_counts: Dict[str, Counter] = defaultdict(Counter)
    value_counts: Dict[str, Dict[str, Counter]] = defaultdict(lambda: defaultdict(Counter))

    for run in run_results:
        for _, row in run["optimal"].iterrows():
            diagnostic = row["which_diagnostic_optimal"]
            combo = tuple((arg, row[arg]) for arg in run["arg_names"])
            combo_counts[diagnostic][combo] += 1
            for arg, value in combo:
                value_counts[diagnostic][arg][value] += 1

    return {
        "runs_analyzed": len(run_results),
        "combinations": dict(combo_counts),
        "value_frequencies": {d: dict(v) for d, v in value_counts.items()},
        "run_details": run_results,
    }


def format_stability_report(analysis: dict) -> str:
    """Format the stability analysis as text."""
    lines = []
    runs = analysis["runs_analyzed"]

    lines.append("=" * 80)
    lines.append("ARGUMENT STABILITY ANALYSIS")
    lines.append("=" * 80)
    lines.append("")
    lines.append(f"Runs analyzed: {runs}")
    lines.append("")

    for diagnostic, combos in sorted(analysis["combinations"].items()):
        lines.append("-" * 80)
        lines.append(f"OPTIMAL COMBINATIONS FOR {diagnostic.upper()}")
        lines.append("-" * 80)
        for combo, count in combos.most_common(10):
            described = ", ".join(f"{arg}={value}" for arg, value in combo) or "(no arguments)"
            lines.append(f"  {count}/{runs} runs ({count / runs * 100:.1f}%): {described}")
        lines.append("")

        lines.append("  Value frequencies:")
        for arg, counts in sorted(analysis["value_frequencies"][diagnostic].items()):
            ranked = ", ".join(f"{value} ({count})" for value, count in counts.most_common())
            lines.append(f"    {arg}: {ranked}")
        lines.append("")

    return "\n".join(lines)


def main():
    parser = argparse.ArgumentParser(
        description="Analyze optimal-argument stability across grid runs",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Example:
  python scripts/analyze_argument_stability.py \\
      runs/split_01 runs/split_02 runs/split_03 \\
      --criterion coverage=target:0.9 \\
      --output stability.txt

Note: each directory must hold diagnostics.csv and results.json written by
'testargs run'.
        """
    )

    parser.add_argument(
        "run_dirs",
        nargs="+",
        type=Path,
        help="Paths to grid output directories"
    )

    parser.add_argument(
        "--criterion",
        nargs="*",
        default=[],
        help="Per-diagnostic criteria, e.g. rmse=min coverage=target:0.9 (default: min)"
    )

    parser.add_argument(
        "--output",
        type=Path,
        help="Save report to file (optional)"
    )

    args = parser.parse_args()
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')

    criteria = {}
    for spec in args.criterion:
        if "=" not in spec:
            parser.error(f"Invalid criterion: {spec}. Expected format: diagnostic=min|max|target:<value>")
        name, value = spec.split("=", 1)
        criteria[name.strip()] = value.strip()

    valid_dirs = [d for d in args.run_dirs if d.is_dir()]
    if not valid_dirs:
        parser.error("No valid run directories found")

    print(f"Analyzing {len(valid_dirs)} run directories...")
    print()

    analysis = analyze_argument_stability(valid_dirs, criteria)
    if not analysis:
        print("No analysis results generated. Check that run directories contain diagnostics.csv and results.json.")
        return

    report = format_stability_report(analysis)
    print(report)

    if args.output:
        args.output.write_text(report, encoding="utf-8")
        print(f"Report saved to {args.output}")


if __name__ == "__main__":
    main()
