from __future__ import annotations
from dataclasses import dataclass
import numpy as np
from numpy.typing import NDArray
import pandas as pd
from scipy import stats
import statsmodels.api as sm
from statsmodels.regression.linear_model import RegressionResultsWrapper

from popglm_ml.dataset import design_arrays
from popglm_ml.fitted import FittedModel, build_fitted
from popglm_ml.utils import add_intercept, check_design, regression_metrics, warn


@dataclass(frozen=True)
class ResidualDiagnostics:
    fitted: NDArray[np.float64]
    residuals: NDArray[np.float64]
    std_residuals: NDArray[np.float64]
    leverage: NDArray[np.float64]
    cooks_distance: NDArray[np.float64]
    shapiro_w: float
    shapiro_p: float


@dataclass(frozen=True)
class LinearRunResult:
    model: FittedModel
    diagnostics: ResidualDiagnostics
    mae: float
    rmse: float
    r2: float


def fit_linear(x: NDArray[np.float64], y: NDArray[np.float64]) -> RegressionResultsWrapper:
    """Fit population ~ scaled_year by ordinary least squares."""
    x = np.asarray(x, dtype="float64")
    y = np.asarray(y, dtype="float64")
    check_design(x, y)
    return sm.OLS(y, add_intercept(x)).fit()


def predict(res: RegressionResultsWrapper, x: NDArray[np.float64]) -> NDArray[np.float64]:
    """Predict using a fitted OLS results object."""
    return np.asarray(res.predict(add_intercept(x)), dtype="float64")


def ols_fitted(res: RegressionResultsWrapper) -> FittedModel:
    return build_fitted(res, scale="linear")


def residual_diagnostics(res: RegressionResultsWrapper) -> ResidualDiagnostics:
    """
    Numbers behind the four classic lm() panels: residuals vs fitted,
    normal Q-Q, scale-location and residuals vs leverage. Shapiro-Wilk on
    the raw residuals stands in for eyeballing the Q-Q plot.
    """
    resid = np.asarray(res.resid, dtype="float64")
    n = resid.size

    # two points leave no residual degrees of freedom: scale is undefined
    with np.errstate(divide="ignore", invalid="ignore"):
        infl = res.get_influence()
        std_resid = np.asarray(infl.resid_studentized_internal, dtype="float64")
        cooks = np.asarray(infl.cooks_distance[0], dtype="float64")
    leverage = np.asarray(infl.hat_matrix_diag, dtype="float64")

    if n >= 3 and np.ptp(resid) > 0:
        w, pval = stats.shapiro(resid)
        shapiro_w, shapiro_p = float(w), float(pval)
    else:
        warn(f"Shapiro-Wilk skipped: {n} residuals, range={float(np.ptp(resid)):.3g}")
        shapiro_w, shapiro_p = float("nan"), float("nan")

    return ResidualDiagnostics(
        fitted=np.asarray(res.fittedvalues, dtype="float64"),
        residuals=resid,
        std_residuals=std_resid,
        leverage=leverage,
        cooks_distance=cooks,
        shapiro_w=shapiro_w,
        shapiro_p=shapiro_p,
    )


def residuals_look_normal(diag: ResidualDiagnostics, alpha: float = 0.05) -> bool:
    """False when Shapiro-Wilk rejects normality at `alpha` (or could not run)."""
    if np.isnan(diag.shapiro_p):
        return False
    return diag.shapiro_p >= alpha


def train_linear_on_frame(frame: pd.DataFrame) -> LinearRunResult:
    """
    Diagnostic OLS baseline of population on scaled year. Nothing downstream
    uses it; it exists to show where the linear model's assumptions break.
    """
    x, y = design_arrays(frame)
    if x.size == 0:
        raise ValueError("No trainable rows after filtering. Check the taxon/location selector.")

    res = fit_linear(x, y)
    diag = residual_diagnostics(res)
    m = regression_metrics(y, diag.fitted)

    return LinearRunResult(ols_fitted(res), diag, m["mae"], m["rmse"], m["r2"])
