"""Tests for optimal argument selection and comparison utilities."""
import numpy as np
import pandas as pd
import pytest

from testargs.grid import (
    DiagnosticsComparison,
    GridResult,
    optimal_arguments,
    resolve_criterion,
    which_closest,
    which_max,
    which_min,
)


class TestOptimalArguments:
    """Tests for optimal_arguments."""

    def test_default_picks_minimum(self, linear_result):
        """Test the default criterion picks the smallest value of each diagnostic."""
        optimal = optimal_arguments(linear_result)

        assert list(optimal.columns) == ["which_diagnostic_optimal", "a", "b", "mse", "bias"]
        assert optimal["which_diagnostic_optimal"].tolist() == ["mse", "bias"]
        assert optimal.loc[0, ["a", "b"]].tolist() == [2, 1]
        assert optimal.loc[1, ["a", "b"]].tolist() == [3, 1]
        assert list(optimal.index) == [0, 1]

    def test_single_callable_applies_to_all(self, linear_result):
        """Test a single criterion is applied to every diagnostic."""
        optimal = optimal_arguments(linear_result, which_max)

        assert optimal.loc[0, ["a", "b"]].tolist() == [1, 0]
        assert optimal.loc[1, ["a", "b"]].tolist() == [1, 0]

    def test_list_of_criteria(self, linear_result):
        """Test one criterion per diagnostic, in diagnostic order."""
        optimal = optimal_arguments(linear_result, ["min", "max"])

        assert optimal.loc[0, ["a", "b"]].tolist() == [2, 1]
        assert optimal.loc[1, ["a", "b"]].tolist() == [1, 0]

    def test_dict_of_criteria(self, linear_result):
        """Test criteria keyed by diagnostic name."""
        optimal = optimal_arguments(linear_result, {"bias": which_closest(0.0), "mse": "min"})

        assert optimal["which_diagnostic_optimal"].tolist() == ["mse", "bias"]
        assert optimal.loc[1, ["a", "b"]].tolist() == [2, 1]

    def test_custom_callable(self, linear_result):
        """Test a user criterion receiving the diagnostic column."""
        optimal = optimal_arguments(linear_result, lambda s: int(np.argmin(np.abs(s - 1.0))))

        assert optimal.loc[0, "mse"] == pytest.approx(1.0)
        assert optimal.loc[1, "bias"] == pytest.approx(1.0)

    def test_list_length_mismatch(self, linear_result):
        """Test a list must hold one criterion per diagnostic."""
        with pytest.raises(ValueError, match="one for each diagnostic"):
            optimal_arguments(linear_result, [which_min])

    def test_dict_names_mismatch(self, linear_result):
        """Test a dict must be keyed by exactly the diagnostic names."""
        with pytest.raises(ValueError, match="keys must be the diagnostic names"):
            optimal_arguments(linear_result, {"mse": which_min, "rmse": which_min})
        with pytest.raises(ValueError, match="keys must be the diagnostic names"):
            optimal_arguments(linear_result, {"mse": which_min})

    def test_non_integer_position(self, linear_result):
        """Test criteria must return an integer position."""
        with pytest.raises(ValueError, match="integer position"):
            optimal_arguments(linear_result, lambda s: s.min())

    def test_out_of_range_position(self, linear_result):
        """Test criteria must return a position inside the table."""
        with pytest.raises(ValueError, match="outside"):
            optimal_arguments(linear_result, lambda s: len(s))

    def test_requires_grid_result(self, linear_result):
        """Test that only grid results are accepted."""
        with pytest.raises(TypeError, match="GridResult"):
            optimal_arguments(linear_result.diagnostics_df)

    def test_nan_rows_are_skipped(self):
        """Test failed combinations (NaN diagnostics) are never picked by min/max."""
        result = GridResult(
            diagnostics_df=pd.DataFrame({"k": [1, 2, 3], "loss": [np.nan, 2.0, 1.0]}),
            arg_names=["k"],
            diagnostic_names=["loss"],
        )

        assert optimal_arguments(result).loc[0, "k"] == 3
        assert optimal_arguments(result, "max").loc[0, "k"] == 2


class TestCriteria:
    """Tests for the built-in criteria."""

    def test_which_min_max(self):
        values = pd.Series([3.0, 1.0, 2.0, 1.0])
        assert which_min(values) == 1
        assert which_max(values) == 0

    def test_all_nan(self):
        with pytest.raises(ValueError, match="all-NaN"):
            which_min(pd.Series([np.nan, np.nan]))

    def test_which_closest(self):
        assert which_closest(0.9)(pd.Series([0.5, 0.85, 0.99])) == 1

    def test_resolve_by_name(self):
        assert resolve_criterion("min") is which_min
        assert resolve_criterion(" MAX ") is which_max
        assert resolve_criterion("target:0.95")(pd.Series([0.8, 0.94, 1.0])) == 1

    def test_resolve_invalid(self):
        with pytest.raises(ValueError, match="Unknown optimality criterion"):
            resolve_criterion("median")
        with pytest.raises(ValueError, match="Invalid target"):
            resolve_criterion("target:high")
        with pytest.raises(ValueError, match="callable or a name"):
            resolve_criterion(3)


class TestDiagnosticsComparison:
    """Tests for DiagnosticsComparison helpers."""

    def test_rank_by_diagnostic(self, linear_result):
        """Test ranking puts the lowest value first by default."""
        ranked = DiagnosticsComparison.rank_by_diagnostic(linear_result.diagnostics_df, "mse")

        assert ranked.iloc[0][["a", "b"]].tolist() == [2, 1]
        assert ranked["rank"].iloc[0] == 1

    def test_rank_unknown_diagnostic(self, linear_result):
        with pytest.raises(ValueError, match="not found"):
            DiagnosticsComparison.rank_by_diagnostic(linear_result.diagnostics_df, "rmse")

    def test_get_top_n_descending(self, linear_result):
        """Test top N with higher values first."""
        top = DiagnosticsComparison.get_top_n(linear_result.diagnostics_df, "bias", n=2, ascending=False)

        assert len(top) == 2
        assert top["bias"].tolist() == pytest.approx([2.5, 1.5])

    def test_compute_summary_stats(self, linear_result):
        """Test summary statistics per diagnostic."""
        summary = DiagnosticsComparison.compute_summary_stats(linear_result)

        assert list(summary.index) == ["mse", "bias"]
        assert list(summary.columns) == ["mean", "median", "std", "min", "max"]
        assert summary.loc["mse", "min"] == pytest.approx(0.0)
        assert summary.loc["mse", "max"] == pytest.approx(7.5)

    def test_generate_leaderboard(self, linear_result):
        """Test the leaderboard is sorted by the primary diagnostic."""
        leaderboard = DiagnosticsComparison.generate_leaderboard(linear_result, "bias")

        assert list(leaderboard.columns) == ["rank", "a", "b", "bias", "mse"]
        assert leaderboard["rank"].tolist() == [1, 2, 3, 4, 5, 6]
        assert leaderboard["bias"].iloc[0] == pytest.approx(-1.5)

    def test_create_report(self, linear_result, tmp_path):
        """Test the text report includes the optimal arguments and is saved."""
        output_path = tmp_path / "report.txt"

        report = DiagnosticsComparison.create_report(linear_result, output_path=output_path)

        assert "ARGUMENT GRID REPORT" in report
        assert "OPTIMAL ARGUMENTS" in report
        assert "which_diagnostic_optimal" in report
        assert "TOP COMBINATIONS" in report
        assert "By mse:" in report
        assert output_path.read_text(encoding="utf-8") == report

    def test_summary_and_report_without_numeric_diagnostics(self):
        """Test non-numeric diagnostics are left out of the statistics."""
        result = GridResult(
            diagnostics_df=pd.DataFrame({"a": [1, 2], "label": ["good", "bad"]}),
            arg_names=["a"],
            diagnostic_names=["label"],
        )

        summary = DiagnosticsComparison.compute_summary_stats(result)
        report = DiagnosticsComparison.create_report(result, lambda values: 0)

        assert summary.empty
        assert list(summary.columns) == ["mean", "median", "std", "min", "max"]
        assert "good" in report
