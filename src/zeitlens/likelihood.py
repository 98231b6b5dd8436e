"""
Likelihood of candidate times for test observations.

Conditioned on the circular time, each feature is taken to be Gaussian with
the fitted time-dependent mean and variance, and features are taken to be
independent, so the log-likelihood of a time is a (weighted) sum of
per-feature Gaussian log-densities.
"""

import numpy as np
from scipy.stats import norm

from zeitlens.config import FitOptions
from zeitlens.errors import InvalidInput
from zeitlens.fit import MeanFit
from zeitlens.spline.periodic import PeriodicSpline

# Variance floor applied before a variance prediction is used as a scale;
# the smallest standard deviation is therefore 0.05.
VAR_FLOOR = 0.0025


def default_time_grid(time_max=1.0, resolution=0.01):
    """Candidate times from 0 to ``time_max`` inclusive."""
    return np.arange(0.0, 1.0 + resolution / 2.0, resolution) * time_max


def _period_of(models):
    first = models[0]
    if isinstance(first, PeriodicSpline):
        return first.period
    return 1.0


def predicted_moments(time_grid, mean_models, var_models):
    """Predicted means and floored standard deviations.

    Returns
    -------
    mean : array of shape (len(time_grid), p)
    sd : array of shape (len(time_grid), p)
    """
    time_grid = np.atleast_1d(np.asarray(time_grid, dtype=np.float64))
    mean = np.column_stack([m.predict(time_grid) for m in mean_models])
    var = np.column_stack([v.predict(time_grid) for v in var_models])
    sd = np.sqrt(np.maximum(var, VAR_FLOOR))
    return mean, sd


def feature_density(x, time_grid, mean_models, var_models, log_scale=False):
    """Per-feature density of one observation at each candidate time.

    Parameters
    ----------
    x : array of shape (p,)
        One observation; NaN cells give NaN densities.
    time_grid : array of shape (T,)
    mean_models, var_models : list of PeriodicSpline
    log_scale : bool

    Returns
    -------
    array of shape (T, p)
    """
    x = np.asarray(x, dtype=np.float64).ravel()
    if len(x) != len(mean_models):
        raise InvalidInput(
            f"x has {len(x)} features but {len(mean_models)} mean models were given."
        )
    mean, sd = predicted_moments(time_grid, mean_models, var_models)
    if log_scale:
        return norm.logpdf(x, loc=mean, scale=sd)
    return norm.pdf(x, loc=mean, scale=sd)


def decode_likelihood(x_test, mean_models, var_models, beta=None, time_grid=None,
                      log_scale=False, options=None):
    """Likelihood of each candidate time for each test observation.

    Parameters
    ----------
    x_test : pd.DataFrame or array of shape (n_test, p) or (p,)
        Test observations. A missing cell drops that feature from that
        observation's score.
    mean_models : list of PeriodicSpline or MeanFit
        Time-dependent means, one per feature.
    var_models : list of PeriodicSpline
        Time-dependent variances, one per feature. Predictions are floored
        at ``VAR_FLOOR``.
    beta : array of shape (p,), optional
        Feature weights. Default: every feature weighted 1.
    time_grid : array, optional
        Candidate times. Default: 0 to the period in steps of
        ``options.likelihood_resolution`` (1%) of it.
    log_scale : bool
        Return log-likelihoods instead of likelihoods.
    options : FitOptions, optional
        Only ``likelihood_resolution`` is read, as the step of the default
        time grid.

    Returns
    -------
    np.ndarray of shape (n_test, len(time_grid))
        Observations in rows, candidate times in columns.
    """
    if isinstance(mean_models, MeanFit):
        mean_models = mean_models.models
    mean_models = list(mean_models)
    var_models = list(var_models)
    p = len(mean_models)
    if p == 0:
        raise InvalidInput("At least one mean model is required.")
    if len(var_models) != p:
        raise InvalidInput(
            f"Got {p} mean models but {len(var_models)} variance models."
        )

    if hasattr(x_test, "to_numpy"):
        x_test = x_test.to_numpy(dtype=np.float64)
    x_test = np.asarray(x_test, dtype=np.float64)
    if x_test.ndim == 1:
        x_test = x_test[None, :]
    if x_test.ndim != 2 or x_test.shape[1] != p:
        raise InvalidInput(
            f"x_test must have {p} columns (one per feature), got shape {x_test.shape}."
        )

    if beta is None:
        beta = np.ones(p)
    beta = np.asarray(beta, dtype=np.float64)
    if beta.shape != (p,):
        raise InvalidInput(f"beta must have length {p}, got shape {beta.shape}.")

    if time_grid is None:
        if options is None:
            options = FitOptions()
        time_grid = default_time_grid(_period_of(mean_models),
                                      options.likelihood_resolution)
    time_grid = np.atleast_1d(np.asarray(time_grid, dtype=np.float64))

    mean, sd = predicted_moments(time_grid, mean_models, var_models)
    loglike = np.empty((x_test.shape[0], len(time_grid)))
    for ii in range(x_test.shape[0]):
        ld = norm.logpdf(x_test[ii], loc=mean, scale=sd)
        ld[:, np.isnan(x_test[ii])] = 0.0
        loglike[ii] = ld.dot(beta)

    if log_scale:
        return loglike
    return np.exp(loglike)


def predict_time(likelihood, time_grid):
    """Maximum-likelihood time for each observation.

    Parameters
    ----------
    likelihood : array of shape (n_test, T)
        Output of :func:`decode_likelihood` (either scale).
    time_grid : array of shape (T,)
        The grid the likelihood was computed on.

    Returns
    -------
    dict with time_pred (n_test,) and peak (n_test,)
    """
    likelihood = np.atleast_2d(np.asarray(likelihood, dtype=np.float64))
    time_grid = np.asarray(time_grid, dtype=np.float64)
    if likelihood.shape[1] != len(time_grid):
        raise InvalidInput(
            f"likelihood has {likelihood.shape[1]} columns but time_grid has "
            f"{len(time_grid)} values."
        )
    idx = np.argmax(likelihood, axis=1)
    return {
        "time_pred": time_grid[idx],
        "peak": likelihood[np.arange(likelihood.shape[0]), idx],
    }
