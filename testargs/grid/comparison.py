"""Optimal argument selection and comparison utilities for grid results."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from .engine import CombinationResult, GridResult
from .schema import ArgumentCombination

logger = logging.getLogger(__name__)

Criterion = Union[str, Callable[[pd.Series], Any]]
CriterionSpec = Union[Criterion, Sequence[Criterion], Mapping[str, Criterion]]


def which_min(values: pd.Series) -> int:
    """Position of the smallest value, ignoring NaN."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0 or np.isnan(arr).all():
        raise ValueError("Cannot pick an optimum from an empty or all-NaN column")
    return int(np.nanargmin(arr))


def which_max(values: pd.Series) -> int:
    """Position of the largest value, ignoring NaN."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0 or np.isnan(arr).all():
        raise ValueError("Cannot pick an optimum from an empty or all-NaN column")
    return int(np.nanargmax(arr))


def which_closest(target: float) -> Callable[[pd.Series], int]:
    """Criterion picking the value closest to ``target`` (e.g. nominal coverage)."""

    def criterion(values: pd.Series) -> int:
        arr = np.asarray(values, dtype=float)
        return which_min(np.abs(arr - target))

    criterion.__name__ = f"which_closest({target})"
    return criterion


def resolve_criterion(criterion: Criterion) -> Callable[[pd.Series], Any]:
    """Turn 'min', 'max' or 'target:<value>' into a criterion function."""
    if callable(criterion):
        return criterion
    if not isinstance(criterion, str):
        raise ValueError(f"Optimality criterion must be callable or a name, got {criterion!r}")

    name = criterion.strip().lower()
    if name == "min":
        return which_min
    if name == "max":
        return which_max
    if name.startswith("target:"):
        try:
            target = float(name.split(":", 1)[1])
        except ValueError as exc:
            raise ValueError(f"Invalid target criterion '{criterion}'") from exc
        return which_closest(target)
    raise ValueError(f"Unknown optimality criterion '{criterion}' (expected min, max or target:<value>)")


def _criteria_by_diagnostic(
    diagnostic_names: List[str], optimality_criterion: CriterionSpec
) -> Dict[str, Callable[[pd.Series], Any]]:
    if isinstance(optimality_criterion, Mapping):
        if set(optimality_criterion.keys()) != set(diagnostic_names):
            raise ValueError(
                "If optimality_criterion is a dict, its keys must be the diagnostic names "
                f"{diagnostic_names}; got {list(optimality_criterion.keys())}"
            )
        return {name: resolve_criterion(optimality_criterion[name]) for name in diagnostic_names}

    if isinstance(optimality_criterion, (list, tuple)):
        if len(optimality_criterion) != len(diagnostic_names):
            raise ValueError(
                "If using a list of optimality criteria, provide one for each diagnostic "
                f"({len(diagnostic_names)}: {diagnostic_names}); got {len(optimality_criterion)}"
            )
        return {
            name: resolve_criterion(criterion)
            for name, criterion in zip(diagnostic_names, optimality_criterion)
        }

    criterion = resolve_criterion(optimality_criterion)
    return {name: criterion for name in diagnostic_names}


def optimal_arguments(
    result: GridResult,
    optimality_criterion: CriterionSpec = which_min,
) -> pd.DataFrame:
    """Find the optimal argument combination for each diagnostic.

    Args:
        result: GridResult from a grid run
        optimality_criterion: A criterion applied to every diagnostic, a list
            with one criterion per diagnostic (in ``result.diagnostic_names``
            order), or a dict keyed by diagnostic name. A criterion receives
            the diagnostic column and returns the position of the preferred
            row; 'min', 'max' and 'target:<value>' are accepted by name.

    Returns:
        DataFrame with a ``which_diagnostic_optimal`` column followed by the
        selected row of the diagnostics table, one row per diagnostic
    """
    if not isinstance(result, GridResult):
        raise TypeError(f"result should be a GridResult, got {type(result).__name__}")

    criteria = _criteria_by_diagnostic(result.diagnostic_names, optimality_criterion)
    df = result.diagnostics_df.reset_index(drop=True)

    positions = []
    for name, criterion in criteria.items():
        position = criterion(df[name])
        if isinstance(position, (bool, np.bool_)) or not isinstance(position, (int, np.integer)):
            raise ValueError(
                f"Optimality criterion for '{name}' must return an integer position, got {position!r}"
            )
        if not 0 <= position < len(df):
            raise ValueError(
                f"Optimality criterion for '{name}' returned position {position} outside 0..{len(df) - 1}"
            )
        positions.append(int(position))

    optimal = df.iloc[positions].reset_index(drop=True)
    optimal.insert(0, "which_diagnostic_optimal", list(criteria.keys()))
    return optimal


class DiagnosticsComparison:
    """Utilities for comparing and analyzing grid results."""

    @staticmethod
    def rank_by_diagnostic(
        diagnostics_df: pd.DataFrame,
        diagnostic: str,
        ascending: bool = True
    ) -> pd.DataFrame:
        """Rank argument combinations by a diagnostic.

        Args:
            diagnostics_df: Diagnostics table from a grid run
            diagnostic: Diagnostic to rank by (e.g., 'rmse')
            ascending: If True, lower values rank first

        Returns:
            Sorted DataFrame with rank column
        """
        if diagnostic not in diagnostics_df.columns:
            raise ValueError(f"Diagnostic '{diagnostic}' not found in diagnostics data")

        result = diagnostics_df.copy()
        result["rank"] = result[diagnostic].rank(ascending=ascending, method="min", na_option="bottom")
        return result.sort_values("rank", kind="stable")

    @staticmethod
    def get_top_n(
        diagnostics_df: pd.DataFrame,
        diagnostic: str,
        n: int = 5,
        ascending: bool = True
    ) -> pd.DataFrame:
        ranked = DiagnosticsComparison.rank_by_diagnostic(diagnostics_df, diagnostic, ascending)
        return ranked.head(n)

    @staticmethod
    def compute_summary_stats(result: GridResult) -> pd.DataFrame:
        """Compute summary statistics (mean, median, std, min, max) per diagnostic."""
        diagnostic_cols = [
            col for col in result.diagnostic_names
            if pd.api.types.is_numeric_dtype(result.diagnostics_df[col])
        ]
        column_order = ["mean", "median", "std", "min", "max"]
        if not diagnostic_cols:
            return pd.DataFrame(columns=column_order)

        values = result.diagnostics_df[diagnostic_cols]

        summary = values.describe().T
        summary["median"] = values.median()

        existing_cols = [col for col in column_order if col in summary.columns]
        return summary[existing_cols]

    @staticmethod
    def generate_leaderboard(
        result: GridResult,
        primary_diagnostic: Optional[str] = None,
        ascending: bool = True,
    ) -> pd.DataFrame:
        """Argument columns plus all diagnostics, sorted by the primary diagnostic."""
        primary = primary_diagnostic or result.diagnostic_names[0]
        if primary not in result.diagnostic_names:
            raise ValueError(f"Diagnostic '{primary}' not found in diagnostics data")

        columns = result.arg_names + [primary] + [d for d in result.diagnostic_names if d != primary]
        leaderboard = result.diagnostics_df[columns].sort_values(
            primary, ascending=ascending, na_position="last", kind="stable"
        )
        leaderboard.insert(0, "rank", range(1, len(leaderboard) + 1))
        return leaderboard

    @staticmethod
    def load_result(output_dir: str | Path) -> GridResult:
        """Load a saved grid result.

        Args:
            output_dir: Path to the run output directory

        Returns:
            GridResult rebuilt from diagnostics.csv and results.json
        """
        output_path = Path(output_dir)
        diagnostics_path = output_path / "diagnostics.csv"
        results_path = output_path / "results.json"

        if not diagnostics_path.exists():
            raise FileNotFoundError(f"Diagnostics file not found: {diagnostics_path}")
        if not results_path.exists():
            raise FileNotFoundError(f"Results file not found: {results_path}")

        diagnostics_df = pd.read_csv(diagnostics_path)
        with open(results_path, "r", encoding="utf-8") as f:
            results_data = json.load(f)

        arg_names = results_data["arg_names"]
        fixed_arguments = results_data.get("fixed_arguments", {})
        combinations = results_data.get("combinations", [])

        # CSV re-infers types; argument levels are taken from the JSON record
        if arg_names and len(combinations) == len(diagnostics_df):
            for name in arg_names:
                diagnostics_df[name] = [entry["arguments"][name] for entry in combinations]

        combination_results = [
            CombinationResult(
                combination=ArgumentCombination(
                    index=entry["index"],
                    arguments=entry["arguments"],
                    parameters={**fixed_arguments, **entry["arguments"]},
                ),
                diagnostics={},
                elapsed=entry.get("elapsed"),
                success=entry["success"],
                error=entry.get("error"),
            )
            for entry in combinations
        ]

        return GridResult(
            diagnostics_df=diagnostics_df,
            arg_names=arg_names,
            diagnostic_names=results_data["diagnostic_names"],
            combination_results=combination_results,
            elapsed=results_data.get("elapsed", 0.0),
            output_dir=output_path,
        )

    @staticmethod
    def create_report(
        result: GridResult,
        optimality_criterion: CriterionSpec = which_min,
        output_path: Optional[str | Path] = None,
    ) -> str:
        """Create a text report: summary statistics, optimal arguments and top rows.

        Args:
            result: GridResult from a grid run
            optimality_criterion: Passed to optimal_arguments
            output_path: Optional path to save the report

        Returns:
            Report text
        """
        lines = []
        lines.append("=" * 80)
        lines.append("ARGUMENT GRID REPORT")
        lines.append("=" * 80)
        lines.append("")
        lines.append(f"Arguments: {', '.join(result.arg_names) or '(none)'}")
        lines.append(f"Combinations: {len(result.diagnostics_df)} ({len(result.failures)} failed)")
        lines.append("")

        lines.append("SUMMARY STATISTICS")
        lines.append("-" * 80)
        lines.append(DiagnosticsComparison.compute_summary_stats(result).to_string())
        lines.append("")

        lines.append("OPTIMAL ARGUMENTS")
        lines.append("-" * 80)
        lines.append(optimal_arguments(result, optimality_criterion).to_string(index=False))
        lines.append("")

        lines.append("TOP COMBINATIONS")
        lines.append("-" * 80)
        for diagnostic in result.diagnostic_names:
            if not pd.api.types.is_numeric_dtype(result.diagnostics_df[diagnostic]):
                continue
            top = DiagnosticsComparison.get_top_n(result.diagnostics_df, diagnostic, n=3)
            lines.append(f"By {diagnostic}:")
            lines.append(top[result.arg_names + [diagnostic]].to_string(index=False))
            lines.append("")

        report = "\n".join(lines)

        if output_path:
            Path(output_path).write_text(report, encoding="utf-8")
            logger.info("Grid report saved to %s", output_path)

        return report


load_result = DiagnosticsComparison.load_result
