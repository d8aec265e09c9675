from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable
import numpy as np
from numpy.typing import NDArray
import pandas as pd

from popglm_common.settings import BASE_YEAR
from popglm_ml.features import SCALED_COL
from popglm_ml.fitted import FittedModel
from popglm_ml.utils import add_intercept


@dataclass(frozen=True)
class Prediction:
    scaled_year: float
    predicted_population: float
    confidence_low: float
    confidence_high: float
    se_link: float


def predict(
    model: FittedModel,
    scaled_years: Iterable[float],
    level: float = 0.95,
) -> tuple[Prediction, ...]:
    """
    Point predictions with confidence intervals from the fitted statsmodels
    results.

    For log-link models the interval is built on the link scale,
    eta +/- z * se(eta), and back-transformed with exp, so it stays positive
    and asymmetric. OLS models get the usual t interval for the mean.
    """
    if not 0.0 < level < 1.0:
        raise ValueError(f"level must be in (0, 1), got {level}")
    if model.results is None:
        raise ValueError("model carries no fitted results to predict from")

    x = np.asarray(list(scaled_years), dtype="float64")
    sf = model.results.get_prediction(add_intercept(x)).summary_frame(alpha=1.0 - level)
    mean = sf["mean"].to_numpy(dtype="float64")
    lo = sf["mean_ci_lower"].to_numpy(dtype="float64")
    hi = sf["mean_ci_upper"].to_numpy(dtype="float64")
    se = sf["mean_se"].to_numpy(dtype="float64")
    if model.scale == "log":
        # delta method under the log link: se(mu) = mu * se(eta)
        se = se / mean

    return tuple(
        Prediction(float(xi), float(m), float(a), float(b), float(s))
        for xi, m, a, b, s in zip(x, mean, lo, hi, se)
    )


def observed_range(frame: pd.DataFrame, num: int = 100) -> NDArray[np.float64]:
    """Evenly spaced scaled years spanning the observed data."""
    lo, hi = float(frame[SCALED_COL].min()), float(frame[SCALED_COL].max())
    return np.linspace(lo, hi, num=num)


def link_centroid(model: FittedModel) -> float:
    """Scaled year where se(eta) is smallest; intervals widen away from it."""
    cov = model.cov_matrix
    return float(-cov[0, 1] / cov[1, 1])


def predictions_frame(predictions: Iterable[Prediction], base_year: int = BASE_YEAR) -> pd.DataFrame:
    rows = [
        {
            "year": p.scaled_year + base_year,
            "scaled_year": p.scaled_year,
            "yhat": p.predicted_population,
            "yhat_lo": p.confidence_low,
            "yhat_hi": p.confidence_high,
        }
        for p in predictions
    ]
    return pd.DataFrame(rows, columns=["year", "scaled_year", "yhat", "yhat_lo", "yhat_hi"])
