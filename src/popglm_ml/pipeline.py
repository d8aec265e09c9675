from __future__ import annotations
import sys
from dataclasses import dataclass
from pathlib import Path
import pandas as pd

from popglm_common.errors import DataNotFoundError, FitConvergenceError
from popglm_common.settings import Settings, load_settings
from popglm_ml.dataset import Observation, load_observations, observations_from_frame
from popglm_ml.linear_regression import LinearRunResult, residuals_look_normal, train_linear_on_frame
from popglm_ml.plotting import render_diagnostics, render_trend_plot
from popglm_ml.poisson_glm import PoissonFit, TrendInterpretation, interpret, train_poisson_on_frame
from popglm_ml.predict import Prediction, observed_range, predict
from popglm_ml.utils import artifact_dir


@dataclass(frozen=True)
class AnalysisResult:
    frame: pd.DataFrame
    observations: tuple[Observation, ...]
    linear: LinearRunResult
    glm: PoissonFit
    trend: TrendInterpretation
    predictions: tuple[Prediction, ...]
    trend_plot: Path
    diagnostics_plot: Path


def _slug(s: Settings) -> str:
    return "_".join(p.strip().replace(" ", "-").lower() for p in (s.genus, s.species, s.country))


def run_analysis(settings: Settings) -> AnalysisResult:
    """load -> OLS baseline -> Poisson GLM -> predict -> render."""
    frame = load_observations(
        settings.data_path, settings.genus, settings.species, settings.country,
        base_year=settings.base_year,
    )
    linear = train_linear_on_frame(frame)
    glm = train_poisson_on_frame(frame, max_iter=settings.max_iter, tol=settings.tol)
    preds = predict(glm.model, observed_range(frame), level=settings.confidence)

    out_dir = artifact_dir(settings.artifacts_dir)
    slug = _slug(settings)
    trend_png = render_trend_plot(
        frame, preds, out_dir / f"glm_trend_{slug}.png",
        base_year=settings.base_year,
        title=f"{settings.genus} {settings.species} ({settings.country})",
        level=settings.confidence,
    )
    diag_png = render_diagnostics(linear, out_dir / f"ols_diagnostics_{slug}.png")

    return AnalysisResult(
        frame=frame,
        observations=observations_from_frame(frame),
        linear=linear,
        glm=glm,
        trend=interpret(glm),
        predictions=preds,
        trend_plot=trend_png,
        diagnostics_plot=diag_png,
    )


def main() -> None:
    settings = load_settings()
    try:
        res = run_analysis(settings)
    except (DataNotFoundError, FitConvergenceError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        raise SystemExit(1) from e

    y0, y1 = int(res.frame["year"].min()), int(res.frame["year"].max())
    print(f"[LOAD] {settings.genus} {settings.species} @ {settings.country}: "
          f"{len(res.observations)} observations, {y0}–{y1}")

    d = res.linear.diagnostics
    print(f"[OLS] slope={res.linear.model.slope:.3f} (se={res.linear.model.slope_se:.3f}) "
          f"r2={res.linear.r2:.3f} shapiro_p={d.shapiro_p:.3g} "
          f"normal_residuals={residuals_look_normal(d)}")

    m = res.glm.model
    print(f"[GLM] intercept={m.intercept:.4f} (se={m.intercept_se:.4f}) "
          f"slope={m.slope:.4f} (se={m.slope_se:.4f}) "
          f"deviance={res.glm.deviance:.2f} aic={res.glm.aic:.2f} "
          f"dispersion={res.glm.dispersion:.2f} iterations={res.glm.iterations}")
    print(f"[GLM] expected population in {settings.base_year}: {res.trend.baseline_population:.1f}; "
          f"annual {res.trend.direction} of {res.trend.annual_change:.2%} "
          f"(factor {res.trend.annual_factor:.4f})")

    print(f"[ARTIFACT] {res.trend_plot}")
    print(f"[ARTIFACT] {res.diagnostics_plot}")


if __name__ == "__main__":
    main()
