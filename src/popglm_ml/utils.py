from __future__ import annotations
import os
from pathlib import Path
import numpy as np
from numpy.typing import NDArray
from sklearn.metrics import mean_absolute_error, mean_squared_error, r2_score

from popglm_common.settings import is_truthy


def artifact_dir(base: str | None = None) -> Path:
    p = Path(base or os.getenv("POPGLM_ARTIFACTS_DIR", "artifacts"))
    p.mkdir(parents=True, exist_ok=True)
    return p


def warn(msg: str) -> None:
    # No terminal spam: only warn if POPGLM_VERBOSE=1
    if is_truthy(os.getenv("POPGLM_VERBOSE")):
        print(f"[WARN] {msg}")


def add_intercept(x: NDArray[np.float64]) -> NDArray[np.float64]:
    """Design matrix [1, x] for a single regressor."""
    x = np.asarray(x, dtype="float64").reshape(-1)
    return np.column_stack([np.ones_like(x), x])


def regression_metrics(y_true: NDArray, y_pred: NDArray) -> dict:
    mse = float(mean_squared_error(y_true, y_pred))
    mae = float(mean_absolute_error(y_true, y_pred))
    rmse = float(mse ** 0.5)
    r2 = float(r2_score(y_true, y_pred)) if len(y_true) > 1 else float("nan")
    # guard against division by ~0 in % errors on level data
    denom = np.where(np.abs(y_true) < 1e-12, np.nan, np.abs(y_true))
    mape = float(np.nanmean(np.abs((y_true - y_pred) / denom)) * 100.0)
    return {"mae": mae, "mse": mse, "rmse": rmse, "r2": r2, "mape": mape}


def check_design(x: NDArray[np.float64], y: NDArray[np.float64]) -> None:
    if x.shape[0] != y.shape[0]:
        raise ValueError(f"x and y lengths differ: {x.shape[0]} != {y.shape[0]}")
    if np.unique(x).size < 2:
        raise ValueError("Need at least two distinct years to fit a trend.")
