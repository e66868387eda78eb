"""Reporting utilities and built-in diagnostic functions."""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional

import numpy as np
import pandas as pd

from . import metrics

if TYPE_CHECKING:
    from testargs.grid.engine import GridResult

logger = logging.getLogger(__name__)

POINT_DIAGNOSTICS = {"rmse", "mae", "bias", "mape"}
INTERVAL_DIAGNOSTICS = {"coverage", "interval_score"}
DISTRIBUTION_DIAGNOSTICS = {"crps"}
BUILTIN_DIAGNOSTICS = POINT_DIAGNOSTICS | INTERVAL_DIAGNOSTICS | DISTRIBUTION_DIAGNOSTICS


def _column(prediction: Any, name: str) -> np.ndarray:
    if isinstance(prediction, pd.DataFrame):
        if name not in prediction.columns:
            raise ValueError(f"Prediction has no column '{name}'")
        return prediction[name].to_numpy()
    if isinstance(prediction, dict):
        if name not in prediction:
            raise ValueError(f"Prediction has no entry '{name}'")
        return np.asarray(prediction[name])
    raise ValueError(f"Cannot read '{name}' from a prediction of type {type(prediction).__name__}")


def make_diagnostic_fun(
    names: List[str],
    response: str,
    prediction: str = "pred",
    lower: Optional[str] = None,
    upper: Optional[str] = None,
    sd: Optional[str] = None,
    alpha: float = 0.1,
) -> Callable[[Any, pd.DataFrame], Dict[str, float]]:
    """Build a diagnostic function from built-in metric names.

    The returned function reads the observed response from ``df_test[response]``
    and the predictions from the prediction object, which may be a DataFrame or
    dict holding the named columns. A bare Series or array is taken as the
    point predictions.

    Example:
        >>> diagnose = make_diagnostic_fun(["rmse", "coverage"], response="y",
        ...                                lower="lower", upper="upper")
    """
    unknown = [n for n in names if n not in BUILTIN_DIAGNOSTICS]
    if unknown:
        raise ValueError(
            f"Unknown diagnostics {unknown}; available: {sorted(BUILTIN_DIAGNOSTICS)}"
        )
    if INTERVAL_DIAGNOSTICS.intersection(names) and (lower is None or upper is None):
        raise ValueError("coverage and interval_score need both 'lower' and 'upper' columns")
    if DISTRIBUTION_DIAGNOSTICS.intersection(names) and sd is None:
        raise ValueError("crps needs an 'sd' column")

    def diagnostic_fun(pred: Any, df_test: pd.DataFrame) -> Dict[str, float]:
        observed = df_test[response].to_numpy()
        if isinstance(pred, (pd.Series, np.ndarray, list)):
            pred = {prediction: np.asarray(pred)}

        results: Dict[str, float] = {}
        for name in names:
            if name in POINT_DIAGNOSTICS:
                fn = getattr(metrics, name)
                results[name] = fn(observed, _column(pred, prediction))
            elif name == "coverage":
                results[name] = metrics.coverage(observed, _column(pred, lower), _column(pred, upper))
            elif name == "interval_score":
                results[name] = metrics.interval_score(
                    observed, _column(pred, lower), _column(pred, upper), alpha=alpha
                )
            else:
                results[name] = metrics.crps_gaussian(observed, _column(pred, prediction), _column(pred, sd))
        return results

    return diagnostic_fun


def summarize_result(result: "GridResult") -> Dict[str, Any]:
    summary = {
        "combinations": len(result.diagnostics_df),
        "failed": len(result.failures),
        "arguments": result.arg_names,
        "diagnostics": result.diagnostic_names,
        "elapsed_secs": round(result.elapsed, 3),
    }
    logger.debug("Grid summary: %s", summary)
    return summary
