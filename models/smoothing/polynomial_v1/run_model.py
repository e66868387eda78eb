"""Polynomial ridge regression with Gaussian prediction intervals."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict

import numpy as np
import pandas as pd
from scipy import stats


@dataclass
class ModelParams:
    degree: int = 1
    ridge: float = 0.0
    response: str = "y"
    covariate: str = "x"
    level: float = 0.9

    @classmethod
    def from_payload(cls, params: Dict[str, object]) -> "ModelParams":
        return cls(
            degree=int(params.get("degree", cls.degree)),
            ridge=float(params.get("ridge", cls.ridge)),
            response=str(params.get("response", cls.response)),
            covariate=str(params.get("covariate", cls.covariate)),
            level=float(params.get("level", cls.level)),
        )


def _design(x: np.ndarray, degree: int) -> np.ndarray:
    return np.vander(x, degree + 1, increasing=True)


def fit_predict(df_train: pd.DataFrame, df_test: pd.DataFrame, **params) -> pd.DataFrame:
    p = ModelParams.from_payload(params)
    if p.degree < 0:
        raise ValueError(f"degree must be non-negative, got {p.degree}")

    x_train = df_train[p.covariate].to_numpy(dtype=float)
    y_train = df_train[p.response].to_numpy(dtype=float)
    X = _design(x_train, p.degree)

    # Intercept is not penalised
    penalty = p.ridge * np.eye(X.shape[1])
    penalty[0, 0] = 0.0
    beta = np.linalg.solve(X.T @ X + penalty, X.T @ y_train)

    residuals = y_train - X @ beta
    dof = max(len(y_train) - X.shape[1], 1)
    sigma = float(np.sqrt(residuals @ residuals / dof))

    pred = _design(df_test[p.covariate].to_numpy(dtype=float), p.degree) @ beta
    z = stats.norm.ppf(0.5 + p.level / 2)
    sd = np.full_like(pred, sigma)
    return pd.DataFrame({"pred": pred, "sd": sd, "lower": pred - z * sd, "upper": pred + z * sd})


def diagnose(prediction: pd.DataFrame, df_test: pd.DataFrame, response: str = "y") -> Dict[str, float]:
    """Minimal custom diagnostic function: root mean squared and maximum absolute error."""
    errors = df_test[response].to_numpy(dtype=float) - prediction["pred"].to_numpy()
    return {
        "rmse": float(np.sqrt(np.mean(errors ** 2))),
        "max_abs_error": float(np.max(np.abs(errors))),
    }
