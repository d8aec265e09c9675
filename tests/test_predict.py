from __future__ import annotations
import numpy as np
import pytest
from scipy import stats

from popglm_ml.linear_regression import train_linear_on_frame
from popglm_ml.poisson_glm import fit_poisson
from popglm_ml.fitted import FittedModel
from popglm_ml.predict import link_centroid, observed_range, predict, predictions_frame


@pytest.fixture
def glm():
    x = np.array([0, 2, 3, 6, 9, 11, 14, 17, 20, 24], dtype=float)
    y = np.array([120, 98, 110, 75, 80, 52, 61, 40, 33, 29], dtype=float)
    return fit_poisson(x, y)


def test_intervals_bracket_the_point_prediction(glm):
    preds = predict(glm.model, np.linspace(-5, 30, 36))
    for p in preds:
        assert 0 < p.confidence_low < p.predicted_population < p.confidence_high
        assert p.predicted_population == pytest.approx(np.exp(glm.model.intercept + glm.model.slope * p.scaled_year))


def test_link_width_grows_with_distance_from_centroid(glm):
    c = link_centroid(glm.model)
    grid = np.linspace(-10, 40, 101)
    preds = predict(glm.model, grid)

    order = np.argsort(np.abs(grid - c), kind="mergesort")
    widths = np.array([np.log(p.confidence_high) - np.log(p.confidence_low) for p in preds])[order]
    assert np.all(np.diff(widths) >= -1e-12)


def test_centroid_is_fitted_mean_weighted_year(glm):
    x = np.array([0, 2, 3, 6, 9, 11, 14, 17, 20, 24], dtype=float)
    expected = float(np.sum(glm.fitted * x) / np.sum(glm.fitted))
    assert link_centroid(glm.model) == pytest.approx(expected, rel=1e-8)


def test_wider_level_gives_wider_interval(glm):
    p90 = predict(glm.model, [5.0], level=0.90)[0]
    p99 = predict(glm.model, [5.0], level=0.99)[0]
    assert p99.confidence_low < p90.confidence_low
    assert p99.confidence_high > p90.confidence_high
    assert p99.predicted_population == pytest.approx(p90.predicted_population)


@pytest.mark.parametrize("level", [0.0, 1.0, 1.5, -0.1])
def test_level_must_be_a_probability(glm, level):
    with pytest.raises(ValueError):
        predict(glm.model, [0.0], level=level)


def test_linear_model_intervals_are_symmetric(shag_frame):
    model = train_linear_on_frame(shag_frame).model
    for p in predict(model, [0.0, 10.0, 21.0]):
        assert p.predicted_population - p.confidence_low == pytest.approx(p.confidence_high - p.predicted_population)


def test_observed_range_spans_the_data(shag_frame):
    grid = observed_range(shag_frame, num=50)
    assert grid.size == 50
    assert grid[0] == shag_frame["scaled_year"].min()
    assert grid[-1] == shag_frame["scaled_year"].max()


def test_predictions_frame_columns(glm):
    df = predictions_frame(predict(glm.model, [0.0, 16.0]), base_year=1974)
    assert list(df.columns) == ["year", "scaled_year", "yhat", "yhat_lo", "yhat_hi"]
    assert df["year"].tolist() == [1974.0, 1990.0]
    assert (df["yhat_lo"] < df["yhat"]).all() and (df["yhat"] < df["yhat_hi"]).all()


def test_log_scale_interval_is_link_scale_delta_method(glm):
    x = np.array([0.0, 7.5, 30.0])
    X = np.column_stack([np.ones_like(x), x])
    eta = X @ glm.model.params
    se = np.sqrt(np.einsum("ij,jk,ik->i", X, glm.model.cov_matrix, X))
    z = stats.norm.ppf(0.975)

    preds = predict(glm.model, x)
    np.testing.assert_allclose([p.se_link for p in preds], se, rtol=1e-8)
    np.testing.assert_allclose([p.confidence_low for p in preds], np.exp(eta - z * se), rtol=1e-8)
    np.testing.assert_allclose([p.confidence_high for p in preds], np.exp(eta + z * se), rtol=1e-8)


def test_predict_needs_fitted_results(glm):
    bare = FittedModel(
        intercept=glm.model.intercept,
        slope=glm.model.slope,
        intercept_se=glm.model.intercept_se,
        slope_se=glm.model.slope_se,
        cov=glm.model.cov,
        scale="log",
        n_obs=glm.model.n_obs,
        df_resid=glm.model.df_resid,
    )
    with pytest.raises(ValueError, match="no fitted results"):
        predict(bare, [0.0])
