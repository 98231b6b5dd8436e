"""Tests for components of time-dependent variation."""

import numpy as np
import pytest

from zeitlens.errors import InvalidInput
from zeitlens.fit import fit_mean
from zeitlens.project import discretize_means, project_components
from zeitlens.simulation.generator import periodic_features


@pytest.fixture(scope="module")
def fitted():
    data = periodic_features(n_obs=120, n_signal=6, n_noise=6, noise_sd=0.5, seed=7)
    return data, fit_mean(data["x"], data["time"])


def _manual_matrix(fit, n_time=10):
    phases = np.arange(n_time) / n_time
    x_mean = np.column_stack([m.predict(phases) for m in fit.models])
    x_mean = x_mean - x_mean.mean(axis=0)
    rms = np.sqrt(np.nanmean(fit.residuals.values ** 2, axis=0))
    return x_mean / rms


class TestDiscretize:
    def test_phases_cover_one_period(self, fitted):
        _, fit = fitted
        phases, x_mean = discretize_means(fit.models, n_time=8)
        np.testing.assert_allclose(phases, np.arange(8) / 8)
        assert x_mean.shape == (8, 12)

    def test_too_few_phases(self, fitted):
        _, fit = fitted
        with pytest.raises(InvalidInput):
            discretize_means(fit.models, n_time=1)


class TestProjectSvd:
    def test_equals_direct_svd(self, fitted):
        _, fit = fitted
        comps = project_components(fit.models, fit.residuals, n_time=10, use_spc=False)
        z = _manual_matrix(fit)
        s = np.linalg.svd(z, compute_uv=False)
        np.testing.assert_allclose(comps.d, s, atol=1e-10)
        recon = comps.u.dot(np.diag(comps.d)).dot(comps.v.T)
        np.testing.assert_allclose(recon, z, atol=1e-10)
        assert not comps.sparse

    def test_orthonormal(self, fitted):
        _, fit = fitted
        comps = project_components(fit, use_spc=False)
        k = comps.n_components
        np.testing.assert_allclose(comps.u.T.dot(comps.u), np.eye(k), atol=1e-10)
        np.testing.assert_allclose(comps.v.T.dot(comps.v), np.eye(k), atol=1e-10)

    def test_array_residuals_with_missing(self, fitted):
        _, fit = fitted
        comps_a = project_components(fit.models, fit.residuals.values, use_spc=False)
        comps_b = project_components(fit, use_spc=False)
        np.testing.assert_allclose(comps_a.d, comps_b.d)


class TestProjectSparse:
    def test_default_rank_and_shapes(self, fitted):
        _, fit = fitted
        comps = project_components(fit, n_time=10)
        assert comps.sparse
        assert comps.u.shape == (10, 10)
        assert comps.v.shape == (12, 10)
        assert len(comps.d) == 10

    def test_l1_budget_respected(self, fitted):
        _, fit = fitted
        comps = project_components(fit, n_time=12, sumabsv=2.0, rank=3)
        for k in range(3):
            v = comps.v[:, k]
            assert np.linalg.norm(v) == pytest.approx(1.0, abs=1e-8)
            assert np.sum(np.abs(v)) <= 2.0 + 1e-3

    def test_sparsest_budget_selects_few_signal_features(self, fitted):
        data, fit = fitted
        comps = project_components(fit, n_time=10, sumabsv=1.0, rank=2)
        v1 = comps.v[:, 0]
        nonzero = np.flatnonzero(np.abs(v1) > 1e-8)
        assert 1 <= len(nonzero) <= 2
        assert np.all(data["truth"]["signal"][nonzero])

    def test_orthogonal_scores(self, fitted):
        _, fit = fitted
        comps = project_components(fit, n_time=10, sumabsv=2.0, rank=4, orth=True)
        gram = comps.u.T.dot(comps.u)
        off = gram - np.diag(np.diag(gram))
        assert np.max(np.abs(off)) < 1e-8

    def test_signal_features_dominate_loadings(self, fitted):
        data, fit = fitted
        comps = project_components(fit, n_time=10, sumabsv=np.sqrt(12), rank=2)
        imp = np.abs(comps.v[:, :2]).sum(axis=1)
        signal = data["truth"]["signal"]
        assert imp[signal].min() > imp[~signal].max()

    def test_loadings_frame(self, fitted):
        _, fit = fitted
        comps = project_components(fit, n_time=10, rank=2)
        df = comps.loadings_frame()
        assert list(df.columns) == ["PC1", "PC2"]
        assert list(df.index) == fit.feature_names
        assert comps.feature_importance(0).index[0] in fit.feature_names

    def test_invalid_budget(self, fitted):
        _, fit = fitted
        with pytest.raises(InvalidInput):
            project_components(fit, sumabsv=0.5)
        with pytest.raises(InvalidInput):
            project_components(fit, sumabsv=10.0)

    def test_invalid_rank(self, fitted):
        _, fit = fitted
        with pytest.raises(InvalidInput):
            project_components(fit, n_time=5, rank=6)

    def test_list_without_residuals(self, fitted):
        _, fit = fitted
        with pytest.raises(InvalidInput):
            project_components(fit.models)
