"""Tests for the command line interface."""
from pathlib import Path

import numpy as np
import pandas as pd
import pytest
import yaml
from typer.testing import CliRunner

from testargs.cli import app

MODEL_FILE = Path(__file__).resolve().parent.parent / "models" / "smoothing" / "polynomial_v1" / "run_model.py"

runner = CliRunner()


@pytest.fixture
def grid_yaml(tmp_path):
    rng = np.random.default_rng(0)
    x_train = rng.uniform(0, 2 * np.pi, 60)
    x_test = rng.uniform(0, 2 * np.pi, 30)
    pd.DataFrame({"x": x_train, "y": np.sin(x_train) + rng.normal(0, 0.2, 60)}).to_csv(
        tmp_path / "train.csv", index=False
    )
    pd.DataFrame({"x": x_test, "y": np.sin(x_test) + rng.normal(0, 0.2, 30)}).to_csv(
        tmp_path / "test.csv", index=False
    )

    config = {
        "run_id": "cli_poly",
        "description": "CLI test grid",
        "predictor": f"{MODEL_FILE}:fit_predict",
        "diagnostics": {
            "builtin": ["rmse", "coverage"],
            "response": "y",
            "lower": "lower",
            "upper": "upper",
        },
        "train_data": str(tmp_path / "train.csv"),
        "test_data": str(tmp_path / "test.csv"),
        "arguments": {"degree": [1, 3, 5], "ridge": [0.0, 1.0]},
        "criteria": {"coverage": "target:0.9"},
        "record_time": False,
    }
    path = tmp_path / "grid.yaml"
    path.write_text(yaml.safe_dump(config), encoding="utf-8")
    return path


@pytest.fixture
def run_dir(grid_yaml, tmp_path):
    output_dir = tmp_path / "out"
    result = runner.invoke(app, ["run", str(grid_yaml), "--output-dir", str(output_dir)])
    assert result.exit_code == 0, result.output
    return output_dir


class TestRunCommand:
    """Tests for the run command."""

    def test_run_saves_results(self, run_dir):
        assert (run_dir / "diagnostics.csv").exists()
        assert (run_dir / "results.json").exists()
        assert (run_dir / "config.json").exists()
        assert len(pd.read_csv(run_dir / "diagnostics.csv")) == 6

    def test_run_prints_tables(self, grid_yaml, tmp_path):
        result = runner.invoke(app, ["run", str(grid_yaml), "--output-dir", str(tmp_path / "o2")])
        assert result.exit_code == 0
        assert "Grid complete" in result.output
        assert "Optimal arguments" in result.output

    def test_run_missing_config(self, tmp_path):
        result = runner.invoke(app, ["run", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 1
        assert "Config file not found" in result.output

    def test_run_bad_predictor(self, grid_yaml, tmp_path):
        config = yaml.safe_load(grid_yaml.read_text())
        config["predictor"] = "no_such_module_xyz:fit"
        grid_yaml.write_text(yaml.safe_dump(config))

        result = runner.invoke(app, ["run", str(grid_yaml), "--output-dir", str(tmp_path / "bad")])

        assert result.exit_code == 1
        assert "Error running grid" in result.output


class TestResultCommands:
    """Tests for commands reading a saved run."""

    def test_show(self, run_dir):
        result = runner.invoke(app, ["show", str(run_dir), "--diagnostic", "rmse", "--top-n", "2"])
        assert result.exit_code == 0, result.output
        assert "Showing top 2 by rmse" in result.output

    def test_optimal(self, run_dir):
        result = runner.invoke(app, ["optimal", str(run_dir), "--criterion", "coverage=target:0.9"])
        assert result.exit_code == 0, result.output
        assert "coverage" in result.output

    def test_optimal_unknown_diagnostic(self, run_dir):
        result = runner.invoke(app, ["optimal", str(run_dir), "--criterion", "r2=max"])
        assert result.exit_code == 1
        assert "unknown diagnostics" in result.output

    def test_plot(self, run_dir, tmp_path):
        image = tmp_path / "plot.png"
        result = runner.invoke(
            app, ["plot", str(run_dir), "--focus", "degree", "--no-average", "--output-file", str(image)]
        )
        assert result.exit_code == 0, result.output
        assert image.exists()

    def test_report(self, run_dir):
        result = runner.invoke(app, ["report", str(run_dir)])
        assert result.exit_code == 0, result.output
        assert "ARGUMENT GRID REPORT" in result.output
        assert (run_dir / "report.txt").exists()

    def test_missing_output_dir(self, tmp_path):
        for command in ("show", "optimal", "plot", "report"):
            result = runner.invoke(app, [command, str(tmp_path / "nope")])
            assert result.exit_code == 1
            assert "Output directory not found" in result.output
