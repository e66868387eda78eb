import matplotlib

matplotlib.use("Agg")

import pandas as pd
import pytest

from testargs.grid import ArgumentGrid, GridRunner


def linear_pred(df_train, df_test, a, b, offset=0.0):
    return df_test["x"] * a + b + offset


def squared_error_diagnostics(pred, df_test):
    err = df_test["y"] - pred
    return {"mse": float((err ** 2).mean()), "bias": float(err.mean())}


@pytest.fixture
def train_test():
    """Test data follows y = 2x + 1 exactly."""
    df_train = pd.DataFrame({"x": [0.0, 1.0, 2.0, 3.0, 4.0], "y": [1.0, 3.0, 5.0, 7.0, 9.0]})
    df_test = pd.DataFrame({"x": [0.0, 1.0, 2.0, 3.0], "y": [1.0, 3.0, 5.0, 7.0]})
    return df_train, df_test


@pytest.fixture
def linear_grid():
    return ArgumentGrid(arguments={"a": [1, 2, 3], "b": [0, 1]})


@pytest.fixture
def linear_result(train_test, linear_grid):
    """Grid result with rows (a, b) = (1,0) (1,1) (2,0) (2,1) (3,0) (3,1)."""
    df_train, df_test = train_test
    return GridRunner().run(
        linear_pred, squared_error_diagnostics, df_train, df_test, linear_grid, record_time=False
    )
