"""Tests for the helper scripts."""
import pytest

from conftest import linear_pred, squared_error_diagnostics
from scripts.analyze_argument_stability import analyze_argument_stability, format_stability_report
from scripts.generate_grid_config import generate_grid_config, parse_argument_grid, parse_fixed_arguments
from testargs.grid import ArgumentGrid, GridRunner


class TestGenerateGridConfig:
    """Tests for grid config generation."""

    def test_parse_argument_grid(self):
        grid = parse_argument_grid(["degree=1,2,3", "ridge=0.1,1e-3", "robust=true,false", "method=ols,lasso"])

        assert grid == {
            "degree": [1, 2, 3],
            "ridge": [0.1, 0.001],
            "robust": [True, False],
            "method": ["ols", "lasso"],
        }

    def test_parse_invalid_spec(self):
        with pytest.raises(ValueError, match="Expected format"):
            parse_argument_grid(["degree"])

    def test_parse_fixed_arguments(self):
        assert parse_fixed_arguments(["level=0.9", "kernel=none"]) == {"level": 0.9, "kernel": None}

    def test_generate_builtin_config(self):
        config = generate_grid_config(
            predictor="smoothing/polynomial_v1/run_model.py:fit_predict",
            argument_grid={"degree": [1, 2]},
            train_data="train.csv",
            test_data="test.csv",
            builtin=["rmse"],
            response="y",
        )

        assert config["run_id"] == "run_model_grid"
        assert config["diagnostics"] == {"builtin": ["rmse"], "response": "y", "prediction": "pred"}

    def test_generate_requires_response(self):
        with pytest.raises(ValueError, match="--response"):
            generate_grid_config(
                predictor="m:f", argument_grid={"a": [1]}, train_data="a.csv", test_data="b.csv", builtin=["rmse"]
            )

    def test_generate_requires_diagnostics(self):
        with pytest.raises(ValueError, match="diagnostics"):
            generate_grid_config(predictor="m:f", argument_grid={"a": [1]}, train_data="a.csv", test_data="b.csv")


class TestArgumentStability:
    """Tests for optimal-argument stability analysis."""

    def test_counts_optimal_values(self, train_test, tmp_path):
        df_train, df_test = train_test
        grid = ArgumentGrid(arguments={"a": [1, 2, 3], "b": [0, 1]})
        run_dirs = []
        for name in ("split_1", "split_2"):
            output_dir = tmp_path / name
            GridRunner().run(
                linear_pred, squared_error_diagnostics, df_train, df_test, grid,
                record_time=False, output_dir=output_dir,
            )
            run_dirs.append(output_dir)

        analysis = analyze_argument_stability(run_dirs + [tmp_path / "missing"])

        assert analysis["runs_analyzed"] == 2
        assert analysis["combinations"]["mse"][(("a", 2), ("b", 1))] == 2
        assert analysis["value_frequencies"]["bias"]["a"][3] == 2
        assert "OPTIMAL COMBINATIONS FOR MSE" in format_stability_report(analysis)

    def test_no_runs(self, tmp_path):
        assert analyze_argument_stability([tmp_path]) == {}
