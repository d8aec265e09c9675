from __future__ import annotations
from dataclasses import dataclass
from typing import Literal
import warnings
import numpy as np
from numpy.typing import NDArray
import pandas as pd
import statsmodels.api as sm
from statsmodels.tools.sm_exceptions import ConvergenceWarning

from popglm_common.errors import FitConvergenceError
from popglm_ml.dataset import design_arrays
from popglm_ml.fitted import FittedModel, build_fitted
from popglm_ml.utils import add_intercept, check_design, warn

MAX_ITER = 25
TOL      = 1e-8


@dataclass(frozen=True)
class PoissonFit:
    model: FittedModel
    deviance: float
    null_deviance: float
    log_likelihood: float
    aic: float
    pearson_chi2: float
    dispersion: float
    iterations: int
    fitted: NDArray[np.float64]
    z_values: NDArray[np.float64]
    p_values: NDArray[np.float64]


@dataclass(frozen=True)
class TrendInterpretation:
    baseline_population: float          # exp(intercept): expected count at scaled_year = 0
    annual_factor: float                # exp(slope): year-over-year multiplier
    annual_change: float                # fraction lost (decline) or gained (growth) per year
    direction: Literal["decline", "growth", "stable"]


def fit_poisson(
    x: NDArray[np.float64],
    y: NDArray[np.float64],
    max_iter: int = MAX_ITER,
    tol: float = TOL,
) -> PoissonFit:
    """
    Poisson GLM with log link, log(E[y]) = b0 + b1*x, fitted by statsmodels'
    iteratively reweighted least squares.

    Raises FitConvergenceError when IRLS has not settled after `max_iter`
    passes or the deviance stops being finite.
    """
    x = np.asarray(x, dtype="float64")
    y = np.asarray(y, dtype="float64")
    check_design(x, y)
    if (y < 0).any():
        raise ValueError("Poisson response must be non-negative counts.")
    if max_iter < 1:
        raise ValueError("max_iter must be >= 1")

    glm = sm.GLM(y, add_intercept(x), family=sm.families.Poisson())
    # non-convergence is reported through FitConvergenceError below
    with warnings.catch_warnings():
        warnings.simplefilter("ignore", ConvergenceWarning)
        res = glm.fit(maxiter=max_iter, tol=tol)

    iterations = int(res.fit_history["iteration"])
    deviance = float(res.deviance)
    if not np.isfinite(deviance):
        raise FitConvergenceError(iterations, deviance, "deviance became non-finite")
    if not res.converged:
        raise FitConvergenceError(iterations, deviance)

    model = build_fitted(res, scale="log")
    pearson = float(res.pearson_chi2)
    dispersion = pearson / model.df_resid if model.df_resid > 0 else float("nan")

    return PoissonFit(
        model=model,
        deviance=deviance,
        null_deviance=float(res.null_deviance),
        log_likelihood=float(res.llf),
        aic=float(res.aic),
        pearson_chi2=pearson,
        dispersion=dispersion,
        iterations=iterations,
        fitted=np.asarray(res.fittedvalues, dtype="float64"),
        z_values=np.asarray(res.tvalues, dtype="float64"),
        p_values=np.asarray(res.pvalues, dtype="float64"),
    )


def train_poisson_on_frame(
    frame: pd.DataFrame,
    max_iter: int = MAX_ITER,
    tol: float = TOL,
) -> PoissonFit:
    x, y = design_arrays(frame)
    if x.size == 0:
        raise ValueError("No trainable rows after filtering. Check the taxon/location selector.")
    fit = fit_poisson(x, y, max_iter=max_iter, tol=tol)
    if is_overdispersed(fit):
        warn(f"Pearson dispersion {fit.dispersion:.2f} > 1.5; Poisson SEs are likely too narrow")
    return fit


def interpret(fit: PoissonFit | FittedModel) -> TrendInterpretation:
    """
    Back-transform log-link coefficients.

    exp(intercept) is the expected population at scaled_year 0 and
    exp(slope) the multiplicative change per year. A factor below 1 is a
    decline of 1 - exp(slope) per year; above 1 a growth of exp(slope) - 1.
    """
    model = fit.model if isinstance(fit, PoissonFit) else fit
    if model.scale != "log":
        raise ValueError("interpret() expects log-link coefficients")

    factor = float(np.exp(model.slope))
    if factor < 1.0:
        return TrendInterpretation(float(np.exp(model.intercept)), factor, 1.0 - factor, "decline")
    if factor > 1.0:
        return TrendInterpretation(float(np.exp(model.intercept)), factor, factor - 1.0, "growth")
    return TrendInterpretation(float(np.exp(model.intercept)), factor, 0.0, "stable")


def is_overdispersed(fit: PoissonFit, threshold: float = 1.5) -> bool:
    return bool(np.isfinite(fit.dispersion) and fit.dispersion > threshold)
