from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Literal
import numpy as np
from numpy.typing import NDArray

Scale = Literal["log", "linear"]


@dataclass(frozen=True)
class FittedModel:
    """
    Intercept/slope of a single-regressor fit plus their covariance.
    scale="log" means the coefficients live on the log link (Poisson GLM);
    scale="linear" means plain OLS units. `results` is the statsmodels
    results object the numbers were read from; predictions go through it.
    """
    intercept: float
    slope: float
    intercept_se: float
    slope_se: float
    cov: tuple[tuple[float, float], tuple[float, float]]
    scale: Scale
    n_obs: int
    df_resid: int
    results: Any = field(default=None, compare=False, repr=False)

    @property
    def params(self) -> NDArray[np.float64]:
        return np.array([self.intercept, self.slope], dtype="float64")

    @property
    def cov_matrix(self) -> NDArray[np.float64]:
        return np.array(self.cov, dtype="float64")


def build_fitted(results: Any, scale: Scale) -> FittedModel:
    beta = np.asarray(results.params, dtype="float64")
    se = np.asarray(results.bse, dtype="float64")
    cov = np.asarray(results.cov_params(), dtype="float64")
    return FittedModel(
        intercept=float(beta[0]),
        slope=float(beta[1]),
        intercept_se=float(se[0]),
        slope_se=float(se[1]),
        cov=((float(cov[0, 0]), float(cov[0, 1])), (float(cov[1, 0]), float(cov[1, 1]))),
        scale=scale,
        n_obs=int(results.nobs),
        df_resid=int(results.df_resid),
        results=results,
    )
