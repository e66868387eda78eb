"""Prediction diagnostics utilities."""
from __future__ import annotations

import numpy as np
from scipy import stats


def _as_arrays(*values) -> list[np.ndarray]:
    arrays = [np.asarray(v, dtype=float) for v in values]
    lengths = {a.shape for a in arrays}
    if len(lengths) > 1:
        raise ValueError(f"Inputs must have the same shape, got {sorted(lengths)}")
    return arrays


def rmse(observed, predicted) -> float:
    observed, predicted = _as_arrays(observed, predicted)
    if observed.size == 0:
        return float("nan")
    return float(np.sqrt(np.mean((observed - predicted) ** 2)))


def mae(observed, predicted) -> float:
    observed, predicted = _as_arrays(observed, predicted)
    if observed.size == 0:
        return float("nan")
    return float(np.mean(np.abs(observed - predicted)))


def bias(observed, predicted) -> float:
    """Mean of predicted minus observed."""
    observed, predicted = _as_arrays(observed, predicted)
    if observed.size == 0:
        return float("nan")
    return float(np.mean(predicted - observed))


def mape(observed, predicted) -> float:
    observed, predicted = _as_arrays(observed, predicted)
    nonzero = observed != 0
    if not nonzero.any():
        return float("nan")
    return float(np.mean(np.abs((observed[nonzero] - predicted[nonzero]) / observed[nonzero])) * 100)


def coverage(observed, lower, upper) -> float:
    """Fraction of observations falling inside their prediction interval."""
    observed, lower, upper = _as_arrays(observed, lower, upper)
    if observed.size == 0:
        return float("nan")
    return float(np.mean((observed >= lower) & (observed <= upper)))


def interval_score(observed, lower, upper, alpha: float = 0.1) -> float:
    """Mean interval score of central (1 - alpha) prediction intervals (lower is better)."""
    if not 0 < alpha < 1:
        raise ValueError(f"alpha must be in (0, 1), got {alpha}")
    observed, lower, upper = _as_arrays(observed, lower, upper)
    if observed.size == 0:
        return float("nan")
    width = upper - lower
    below = (2 / alpha) * (lower - observed) * (observed < lower)
    above = (2 / alpha) * (observed - upper) * (observed > upper)
    return float(np.mean(width + below + above))


def crps_gaussian(observed, mean, sd) -> float:
    """Mean continuous ranked probability score of Gaussian predictive distributions."""
    observed, mean, sd = _as_arrays(observed, mean, sd)
    if observed.size == 0:
        return float("nan")
    if (sd <= 0).any():
        raise ValueError("Predictive standard deviations must be positive")
    z = (observed - mean) / sd
    score = sd * (z * (2 * stats.norm.cdf(z) - 1) + 2 * stats.norm.pdf(z) - 1 / np.sqrt(np.pi))
    return float(np.mean(score))

