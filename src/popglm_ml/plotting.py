from __future__ import annotations
from pathlib import Path
from typing import Iterable
import numpy as np
import pandas as pd

import matplotlib
matplotlib.use("Agg")
import matplotlib.pyplot as plt
from scipy import stats

from popglm_common.settings import BASE_YEAR
from popglm_ml.features import TARGET_COL, YEAR_COL
from popglm_ml.linear_regression import LinearRunResult
from popglm_ml.predict import Prediction, predictions_frame


def render_trend_plot(
    frame: pd.DataFrame,
    predictions: Iterable[Prediction],
    out_path: Path,
    base_year: int = BASE_YEAR,
    title: str | None = None,
    level: float = 0.95,
) -> Path:
    """
    Observed log(population) as points, the GLM's log(yhat) as a line and
    the confidence band between log(yhat_lo) and log(yhat_hi) as a ribbon.
    """
    pred = predictions_frame(predictions, base_year)

    fig, ax = plt.subplots(figsize=(8, 5))
    ax.fill_between(pred["year"], np.log(pred["yhat_lo"]), np.log(pred["yhat_hi"]),
                    color="#9ecae1", alpha=0.5, label=f"{level:.0%} CI")
    ax.plot(pred["year"], np.log(pred["yhat"]), color="#08519c", linewidth=2, label="Poisson GLM")
    ax.scatter(frame[YEAR_COL], np.log(frame[TARGET_COL]), color="#252525", s=18, label="Observed")
    ax.set_xlabel("Year of study")
    ax.set_ylabel("log(Population)")
    if title:
        ax.set_title(title)
    ax.legend(loc="best", frameon=False)
    fig.tight_layout()

    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, dpi=170, bbox_inches="tight")
    plt.close(fig)
    return out_path


def render_diagnostics(result: LinearRunResult, out_path: Path) -> Path:
    """Residuals vs fitted, normal Q-Q, scale-location, residuals vs leverage."""
    d = result.diagnostics
    ok = np.isfinite(d.std_residuals)

    fig, axes = plt.subplots(2, 2, figsize=(10, 8))

    ax = axes[0, 0]
    ax.scatter(d.fitted, d.residuals, s=14)
    ax.axhline(0.0, color="grey", linestyle="--", linewidth=1)
    ax.set_title("Residuals vs Fitted")
    ax.set_xlabel("Fitted values")
    ax.set_ylabel("Residuals")

    ax = axes[0, 1]
    if ok.sum() >= 2:
        (osm, osr), (slope, intercept, _) = stats.probplot(d.std_residuals[ok], dist="norm")
        ax.scatter(osm, osr, s=14)
        ax.plot(osm, slope * osm + intercept, color="grey", linestyle="--", linewidth=1)
    title = "Normal Q-Q"
    if np.isfinite(d.shapiro_p):
        title += f" (Shapiro-Wilk p={d.shapiro_p:.3g})"
    ax.set_title(title)
    ax.set_xlabel("Theoretical quantiles")
    ax.set_ylabel("Standardized residuals")

    ax = axes[1, 0]
    ax.scatter(d.fitted[ok], np.sqrt(np.abs(d.std_residuals[ok])), s=14)
    ax.set_title("Scale-Location")
    ax.set_xlabel("Fitted values")
    ax.set_ylabel("sqrt(|Standardized residuals|)")

    ax = axes[1, 1]
    ax.scatter(d.leverage[ok], d.std_residuals[ok], s=14)
    ax.axhline(0.0, color="grey", linestyle="--", linewidth=1)
    ax.set_title("Residuals vs Leverage")
    ax.set_xlabel("Leverage")
    ax.set_ylabel("Standardized residuals")

    fig.tight_layout()
    out_path = Path(out_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(out_path, dpi=170, bbox_inches="tight")
    plt.close(fig)
    return out_path
