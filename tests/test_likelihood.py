"""Tests for the likelihood decoder."""

import numpy as np
import pytest

from zeitlens.circular import circular_diff
from zeitlens.config import FitOptions
from zeitlens.errors import InvalidInput
from zeitlens.fit import fit_mean, fit_variance
from zeitlens.likelihood import (
    VAR_FLOOR,
    decode_likelihood,
    default_time_grid,
    feature_density,
    predict_time,
    predicted_moments,
)
from zeitlens.simulation.generator import periodic_features, train_test_split
from zeitlens.spline.periodic import PeriodicSpline


@pytest.fixture(scope="module")
def trained():
    data = periodic_features(n_obs=240, n_signal=8, n_noise=4, noise_sd=0.5, seed=21)
    split = train_test_split(data, test_frac=0.1, seed=3)
    train = split["train"]
    fit = fit_mean(train["x"], train["time"])
    var = fit_variance(train["time"], fit.residuals, const_var=True)
    return split, fit, var


class TestDecodeLikelihood:
    def test_log_scale_is_log_of_likelihood(self):
        data = periodic_features(n_obs=60, n_signal=2, n_noise=1, seed=4)
        fit = fit_mean(data["x"], data["time"])
        var = fit_variance(data["time"], fit.residuals)
        x_test = data["x"][:5]
        like = decode_likelihood(x_test, fit.models, var)
        loglike = decode_likelihood(x_test, fit.models, var, log_scale=True)
        assert like.shape == (5, 101)
        np.testing.assert_allclose(np.log(like), loglike, rtol=1e-10, atol=1e-10)

    def test_default_grid(self):
        grid = default_time_grid()
        assert len(grid) == 101
        assert grid[0] == 0.0
        assert grid[-1] == pytest.approx(1.0)
        np.testing.assert_allclose(default_time_grid(24.0)[[0, 50, 100]], [0.0, 12.0, 24.0])

    def test_grid_resolution_from_options(self, trained):
        split, fit, var = trained
        x_test = split["test"]["x"][:3]
        coarse = decode_likelihood(x_test, fit, var,
                                   options=FitOptions(likelihood_resolution=0.05),
                                   log_scale=True)
        fine = decode_likelihood(x_test, fit, var, log_scale=True)
        assert coarse.shape == (3, 21)
        np.testing.assert_allclose(coarse, fine[:, ::5], rtol=1e-9, atol=1e-9)

    def test_variance_floor(self):
        mean_models = [PeriodicSpline(np.full(4, 1.0)), PeriodicSpline(np.full(4, -2.0))]
        var_models = [PeriodicSpline(np.full(4, -0.3)), PeriodicSpline(np.full(4, 1e-6))]
        _, sd = predicted_moments([0.0, 0.4, 0.9], mean_models, var_models)
        np.testing.assert_allclose(sd, np.sqrt(VAR_FLOOR))
        assert np.all(sd >= 0.05 - 1e-15)

        loglike = decode_likelihood(np.array([[1.0, -2.0]]), mean_models, var_models,
                                    time_grid=[0.0, 0.5], log_scale=True)
        expected = 2 * (-np.log(0.05) - 0.5 * np.log(2 * np.pi))
        np.testing.assert_allclose(loglike, expected)

    def test_weights(self, trained):
        split, fit, var = trained
        x_test = split["test"]["x"]
        p = x_test.shape[1]
        zero = decode_likelihood(x_test, fit, var, beta=np.zeros(p), log_scale=True)
        np.testing.assert_allclose(zero, 0.0)
        full = decode_likelihood(x_test, fit, var, log_scale=True)
        double = decode_likelihood(x_test, fit, var, beta=np.full(p, 2.0), log_scale=True)
        np.testing.assert_allclose(double, 2 * full)

    def test_missing_test_cell_drops_feature(self, trained):
        split, fit, var = trained
        row = split["test"]["x"][0].copy()
        p = len(row)
        beta = np.ones(p)
        beta[0] = 0.0
        reference = decode_likelihood(row, fit, var, beta=beta, log_scale=True)
        row[0] = np.nan
        with_gap = decode_likelihood(row, fit, var, log_scale=True)
        np.testing.assert_allclose(with_gap, reference)

    def test_decodes_held_out_times(self, trained):
        split, fit, var = trained
        test = split["test"]
        grid = default_time_grid()
        like = decode_likelihood(test["x"], fit, var, time_grid=grid, log_scale=True)
        pred = predict_time(like, grid)
        err = np.abs(circular_diff(test["time"], pred["time_pred"]))
        assert np.median(err) < 0.05
        assert np.all(err < 0.15)

    def test_peak_matches_grid_maximum(self, trained):
        split, fit, var = trained
        grid = np.linspace(0, 1, 50, endpoint=False)
        like = decode_likelihood(split["test"]["x"], fit, var, time_grid=grid, log_scale=True)
        pred = predict_time(like, grid)
        np.testing.assert_allclose(pred["peak"], like.max(axis=1))

    def test_feature_density(self, trained):
        split, fit, var = trained
        row = split["test"]["x"][0]
        grid = [0.1, 0.2]
        dens = feature_density(row, grid, fit.models, var)
        logdens = feature_density(row, grid, fit.models, var, log_scale=True)
        assert dens.shape == (2, len(row))
        np.testing.assert_allclose(np.log(dens), logdens)
        total = decode_likelihood(row, fit, var, time_grid=grid, log_scale=True)
        np.testing.assert_allclose(total[0], logdens.sum(axis=1))

    def test_shape_errors(self, trained):
        split, fit, var = trained
        x_test = split["test"]["x"]
        with pytest.raises(InvalidInput):
            decode_likelihood(x_test[:, :-1], fit, var)
        with pytest.raises(InvalidInput):
            decode_likelihood(x_test, fit, var[:-1])
        with pytest.raises(InvalidInput):
            decode_likelihood(x_test, fit, var, beta=np.ones(3))
        with pytest.raises(InvalidInput):
            predict_time(np.zeros((2, 5)), np.zeros(4))
