"""Grid execution engine: run a prediction function over every argument combination."""
from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

import numpy as np
import pandas as pd

from testargs.config import AppConfig
from testargs.evaluation.reports import make_diagnostic_fun, summarize_result
from testargs.registry.discovery import CallableRegistry
from .schema import ArgumentCombination, ArgumentGrid, BuiltinDiagnosticsSpec, GridConfig

logger = logging.getLogger(__name__)

TIME_DIAGNOSTIC = "time"

PredFun = Callable[..., Any]
DiagnosticFun = Callable[[Any, pd.DataFrame], Any]


class GridRunError(RuntimeError):
    """Raised when a prediction or diagnostic call fails or returns invalid output."""


@dataclass
class CombinationResult:
    """Results from a single argument combination."""

    combination: ArgumentCombination
    diagnostics: Dict[str, Any]
    elapsed: Optional[float]
    success: bool
    error: Optional[str] = None


@dataclass
class GridResult:
    """Diagnostics collected over a full argument grid."""

    diagnostics_df: pd.DataFrame
    arg_names: List[str]
    diagnostic_names: List[str]
    combination_results: List[CombinationResult] = field(default_factory=list)
    elapsed: float = 0.0
    output_dir: Optional[Path] = None

    @property
    def failures(self) -> List[CombinationResult]:
        return [r for r in self.combination_results if not r.success]


def _normalize_diagnostics(raw: Any) -> Dict[str, Any]:
    """Turn a diagnostic function's return value into an ordered name -> scalar mapping."""
    if isinstance(raw, pd.DataFrame):
        if len(raw) != 1:
            raise GridRunError(
                f"Diagnostic function returned a DataFrame with {len(raw)} rows; expected exactly one"
            )
        raw = raw.iloc[0]
    if isinstance(raw, pd.Series):
        raw = raw.to_dict()
    if not isinstance(raw, Mapping):
        raise GridRunError(
            f"Diagnostic function must return a mapping of name to value, got {type(raw).__name__}"
        )
    if not raw:
        raise GridRunError("Diagnostic function returned no diagnostics")

    diagnostics: Dict[str, Any] = {}
    for name, value in raw.items():
        if isinstance(value, np.ndarray) and value.size == 1:
            value = value.item()
        if not pd.api.types.is_scalar(value):
            raise GridRunError(f"Diagnostic '{name}' is not a scalar: {value!r}")
        diagnostics[str(name)] = value
    return diagnostics


def load_table(path: str | Path) -> pd.DataFrame:
    """Load a CSV or Parquet file into a DataFrame."""
    table_path = Path(path)
    if not table_path.exists():
        raise FileNotFoundError(f"Data file not found: {path}")

    suffix = table_path.suffix.lower()
    if suffix == ".csv":
        return pd.read_csv(table_path)
    if suffix in {".parquet", ".pq"}:
        return pd.read_parquet(table_path)
    raise ValueError(f"Unsupported data file type '{suffix}' (expected .csv or .parquet)")


class GridRunner:
    """Runs a prediction function over an argument grid and collects diagnostics."""

    def __init__(
        self,
        config: Optional[AppConfig] = None,
        registry: Optional[CallableRegistry] = None,
    ) -> None:
        self.config = config or AppConfig()
        self.registry = registry or CallableRegistry()

    def run(
        self,
        pred_fun: PredFun,
        diagnostic_fun: DiagnosticFun,
        df_train: Any,
        df_test: Any,
        grid: ArgumentGrid,
        record_time: Optional[bool] = None,
        on_error: Optional[str] = None,
        output_dir: Optional[str | Path] = None,
    ) -> GridResult:
        """Evaluate every combination of the grid.

        Args:
            pred_fun: Called as ``pred_fun(df_train, df_test, **parameters)``
            diagnostic_fun: Called as ``diagnostic_fun(prediction, df_test)``
            df_train: Training data, passed through unchanged
            df_test: Test data, passed through unchanged
            grid: Argument grid to sweep
            record_time: Append a 'time' diagnostic (uses config default if None)
            on_error: 'raise' or 'record' (uses config default if None)
            output_dir: Save results here when given

        Returns:
            GridResult with one row of diagnostics per combination
        """
        defaults = self.config.run_defaults
        record_time = defaults.record_time if record_time is None else record_time
        on_error = on_error or defaults.on_error
        if on_error not in {"raise", "record"}:
            raise ValueError(f"on_error must be 'raise' or 'record', got '{on_error}'")

        combinations = grid.generate_combinations()
        arg_names = grid.arg_names
        if record_time and TIME_DIAGNOSTIC in arg_names:
            raise ValueError(
                f"Argument name '{TIME_DIAGNOSTIC}' is reserved when prediction time is recorded"
            )

        total = len(combinations)
        logger.info("Evaluating %d argument combination(s) over %s", total, arg_names)

        run_start = time.perf_counter()
        combination_results: List[CombinationResult] = []
        diagnostic_names: Optional[List[str]] = None

        for combination in combinations:
            logger.info(
                "Running combination %d/%d: %s", combination.index + 1, total, combination.display_name
            )
            try:
                raw, elapsed = self._run_combination(pred_fun, diagnostic_fun, df_train, df_test, combination)
            except Exception as e:
                if on_error == "raise":
                    if isinstance(e, GridRunError):
                        raise
                    raise GridRunError(
                        f"Combination {combination.display_name} failed: {e}"
                    ) from e
                logger.exception("Error evaluating combination %s", combination.display_name)
                result = CombinationResult(
                    combination=combination,
                    diagnostics={},
                    elapsed=None,
                    success=False,
                    error=str(e),
                )
            else:
                # Invalid diagnostic output is fatal whatever the error policy
                result = CombinationResult(
                    combination=combination,
                    diagnostics=_normalize_diagnostics(raw),
                    elapsed=elapsed,
                    success=True,
                )

            if result.success:
                names = list(result.diagnostics.keys())
                if diagnostic_names is None:
                    self._check_names(names, arg_names, record_time)
                    diagnostic_names = names
                elif set(names) != set(diagnostic_names):
                    raise GridRunError(
                        f"Combination {combination.display_name} returned diagnostics {names}; "
                        f"expected {diagnostic_names}"
                    )

            combination_results.append(result)

        if diagnostic_names is None:
            raise GridRunError(f"All {total} argument combination(s) failed")

        if record_time:
            diagnostic_names = diagnostic_names + [TIME_DIAGNOSTIC]

        diagnostics_df = self._create_diagnostics_df(
            combination_results, arg_names, diagnostic_names, record_time
        )

        grid_result = GridResult(
            diagnostics_df=diagnostics_df,
            arg_names=arg_names,
            diagnostic_names=diagnostic_names,
            combination_results=combination_results,
            elapsed=time.perf_counter() - run_start,
        )

        if grid_result.failures:
            logger.warning(
                "%d of %d combination(s) failed", len(grid_result.failures), total
            )
        logger.info("Grid complete: %s", summarize_result(grid_result))

        if output_dir is not None:
            self.save_result(grid_result, output_dir, grid)

        return grid_result

    def run_config(self, grid_config: GridConfig) -> GridResult:
        """Execute a grid run described by a GridConfig.

        Loads the train/test data, resolves the prediction and diagnostic
        callables and runs the grid, saving results to the configured output
        directory.
        """
        logger.info("Starting grid run: %s", grid_config.run_id)
        grid_config.validate()

        pred_fun = self.registry.resolve(grid_config.predictor)
        if isinstance(grid_config.diagnostics, BuiltinDiagnosticsSpec):
            spec = grid_config.diagnostics
            diagnostic_fun = make_diagnostic_fun(
                spec.builtin,
                response=spec.response,
                prediction=spec.prediction,
                lower=spec.lower,
                upper=spec.upper,
                sd=spec.sd,
                alpha=spec.alpha,
            )
        else:
            diagnostic_fun = self.registry.resolve(grid_config.diagnostics)

        df_train = load_table(grid_config.train_data)
        df_test = load_table(grid_config.test_data)
        logger.info("Loaded %d training and %d test rows", len(df_train), len(df_test))

        output_dir = self.resolve_output_dir(grid_config)
        result = self.run(
            pred_fun,
            diagnostic_fun,
            df_train,
            df_test,
            grid_config.build_grid(),
            record_time=grid_config.record_time,
            on_error=grid_config.on_error,
            output_dir=output_dir,
        )

        if output_dir is not None:
            config_path = output_dir / "config.json"
            config_path.write_text(grid_config.model_dump_json(indent=2), encoding="utf-8")

        logger.info("Grid run complete: %s", grid_config.run_id)
        return result

    def resolve_output_dir(self, grid_config: GridConfig) -> Optional[Path]:
        if grid_config.output_dir:
            return Path(grid_config.output_dir)
        output_root = self.config.run_defaults.output_root
        if output_root:
            return Path(output_root) / grid_config.run_id
        return None

    @staticmethod
    def _run_combination(
        pred_fun: PredFun,
        diagnostic_fun: DiagnosticFun,
        df_train: Any,
        df_test: Any,
        combination: ArgumentCombination,
    ) -> Tuple[Any, float]:
        """Call the prediction and diagnostic functions; return raw diagnostics and prediction time."""
        start = time.perf_counter()
        prediction = pred_fun(df_train, df_test, **combination.parameters)
        elapsed = time.perf_counter() - start

        return diagnostic_fun(prediction, df_test), elapsed

    @staticmethod
    def _check_names(names: List[str], arg_names: List[str], record_time: bool) -> None:
        clashes = sorted(set(names) & set(arg_names))
        if clashes:
            raise GridRunError(f"Diagnostic names clash with argument names: {clashes}")
        if record_time and TIME_DIAGNOSTIC in names:
            raise GridRunError(
                f"Diagnostic name '{TIME_DIAGNOSTIC}' is reserved when prediction time is recorded"
            )

    @staticmethod
    def _create_diagnostics_df(
        combination_results: List[CombinationResult],
        arg_names: List[str],
        diagnostic_names: List[str],
        record_time: bool,
    ) -> pd.DataFrame:
        """Create the diagnostics table: argument columns, then diagnostic columns."""
        rows = []
        for result in combination_results:
            row: Dict[str, Any] = dict(result.combination.arguments)
            for name in diagnostic_names:
                if name == TIME_DIAGNOSTIC and record_time:
                    row[name] = result.elapsed if result.success else np.nan
                else:
                    row[name] = result.diagnostics.get(name, np.nan)
            rows.append(row)

        return pd.DataFrame(rows, columns=arg_names + diagnostic_names)

    def save_result(
        self,
        result: GridResult,
        output_dir: str | Path,
        grid: Optional[ArgumentGrid] = None,
    ) -> Path:
        """Save grid results to disk."""
        output_path = Path(output_dir)
        output_path.mkdir(parents=True, exist_ok=True)

        diagnostics_path = output_path / "diagnostics.csv"
        result.diagnostics_df.to_csv(diagnostics_path, index=False)
        logger.info("Saved diagnostics to %s", diagnostics_path)

        results_data = {
            "arg_names": result.arg_names,
            "diagnostic_names": result.diagnostic_names,
            "elapsed": result.elapsed,
            "fixed_arguments": grid.fixed_arguments if grid else {},
            "combinations": [
                {
                    "index": r.combination.index,
                    "name": r.combination.display_name,
                    "arguments": r.combination.arguments,
                    "success": r.success,
                    "error": r.error,
                    "elapsed": r.elapsed,
                }
                for r in result.combination_results
            ],
        }

        results_path = output_path / "results.json"
        with open(results_path, "w", encoding="utf-8") as f:
            json.dump(results_data, f, indent=2, default=str)
        logger.info("Saved run details to %s", results_path)

        result.output_dir = output_path
        return output_path


def test_arguments(
    pred_fun: PredFun,
    df_train: Any,
    df_test: Any,
    diagnostic_fun: DiagnosticFun,
    arguments: Mapping[str, List[Any]],
    fixed_arguments: Optional[Mapping[str, Any]] = None,
    config: Optional[AppConfig] = None,
    **run_options: Any,
) -> GridResult:
    """Evaluate ``pred_fun`` over every combination of ``arguments``.

    Example:
        >>> result = test_arguments(fit_predict, train, test, diagnose,
        ...                         {"degree": [1, 2, 3], "ridge": [0.0, 0.1]})
        >>> result.diagnostics_df
    """
    grid = ArgumentGrid(
        arguments={name: list(values) for name, values in arguments.items()},
        fixed_arguments=dict(fixed_arguments or {}),
    )
    return GridRunner(config).run(pred_fun, diagnostic_fun, df_train, df_test, grid, **run_options)


test_arguments.__test__ = False  # keep pytest from collecting it
