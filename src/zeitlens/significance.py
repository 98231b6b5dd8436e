"""
Permutation test for the periodicity of each feature.

The statistic is a signal-to-noise ratio: the peak-to-trough range of the
fitted mean curve divided by the root mean squared residual. Its null
distribution is obtained by refitting the mean curves after shuffling the
time labels across observations.

P-value convention: ``p_j = #{b : SNR_b,j >= SNR_obs,j} / n_iter`` over the
``n_iter`` permutations only. No pseudo-count is added, so a p-value of 0
is possible and means that no permutation reached the observed SNR; the
resolution of the test is ``1 / n_iter``.
"""

from functools import partial

import numpy as np
import pandas as pd

from zeitlens.config import FitOptions
from zeitlens.errors import InvalidInput
from zeitlens.fit import _fit_mean_matrix
from zeitlens.parallel import get_executor
from zeitlens.utils import as_observations, as_time, bh_fdr_correction


def snr(mean_fit, resolution=0.001):
    """Signal-to-noise ratio of each fitted feature.

    Parameters
    ----------
    mean_fit : MeanFit
        Output of :func:`zeitlens.fit.fit_mean`.
    resolution : float
        Grid step, as a fraction of the period, for the curve range.

    Returns
    -------
    np.ndarray of shape (p,)
        ``(max - min of the curve) / sqrt(mean squared residual)``. A feature
        fitted without error gets inf if its curve varies and 0 if it is
        flat, so a constant feature never looks periodic.
    """
    ranges = np.empty(len(mean_fit.models))
    for jj, model in enumerate(mean_fit.models):
        _, curve = model.grid(resolution)
        ranges[jj] = curve.max() - curve.min()
    rms = np.sqrt(mean_fit.residuals.mean_square())
    with np.errstate(divide="ignore", invalid="ignore"):
        out = ranges / rms
    exact = rms == 0
    out[exact] = np.where(ranges[exact] > 0, np.inf, 0.0)
    return out


def _permuted_snr(data, present, time_perm, feature_names, options):
    fit = _fit_mean_matrix(data, present, time_perm, feature_names, options)
    return snr(fit, options.snr_resolution)


def draw_permutations(n, n_iter, seed=None):
    """All label permutations of a test, fixed before any is evaluated."""
    if n < 1:
        raise InvalidInput("Cannot permute an empty set of time labels.")
    rng = np.random.RandomState(seed)
    return [rng.permutation(n) for _ in range(n_iter)]


def permutation_snr(x, time, options=None, n_iter=200, seed=None, executor=None,
                    n_jobs=1, verbose=False):
    """Observed and permuted SNR of every feature.

    Parameters
    ----------
    x : pd.DataFrame or array-like of shape (n, p)
        Observations in rows, features in columns; NaN marks missing cells.
    time : array-like of shape (n,)
        Circular time labels.
    options : FitOptions, optional
    n_iter : int
        Number of permutations.
    seed : int, optional
        Seed of the permutation generator. Results depend only on the seed
        and ``n_iter``, not on how the permutations are executed.
    executor : object with ``map(tasks)``, optional
        Where to run the permutations. Default: serial for ``n_jobs=1``,
        ``joblib`` otherwise.
    n_jobs : int
        Parallel jobs for the default executor (-1 = all cores).
    verbose : bool
        Print a summary and show a progress bar.

    Returns
    -------
    dict with snr_obs (p,), snr_null (n_iter, p), p_value (p,), feature_names
    """
    if options is None:
        options = FitOptions()
    if isinstance(n_iter, bool) or not isinstance(n_iter, (int, np.integer)) or n_iter < 1:
        raise InvalidInput(f"n_iter must be a positive integer, got {n_iter!r}.")
    data, present, feature_names = as_observations(x)
    n, p = data.shape
    t = as_time(time, n, options.time_max)

    observed = _fit_mean_matrix(data, present, t, feature_names, options)
    snr_obs = snr(observed, options.snr_resolution)

    perms = draw_permutations(n, n_iter, seed)
    tasks = [partial(_permuted_snr, data, present, t[perm], feature_names, options)
             for perm in perms]

    if verbose:
        print("zeitlens: %d permutations of %d observations, %d features..." % (n_iter, n, p))
    runner = get_executor(executor, n_jobs=n_jobs, verbose=verbose, desc="permutations")
    # any failed permutation propagates and aborts the test
    snr_null = np.vstack(runner.map(tasks))

    p_value = np.mean(snr_null >= snr_obs[None, :], axis=0)
    return {
        "snr_obs": snr_obs,
        "snr_null": snr_null,
        "p_value": p_value,
        "feature_names": feature_names,
    }


def test_significance(x, time, options=None, n_iter=200, seed=None, executor=None,
                      n_jobs=1, verbose=False):
    """Permutation p-value of periodicity for each feature.

    Same arguments as :func:`permutation_snr`.

    Returns
    -------
    np.ndarray of shape (p,)
        One-sided p-values in ``[0, 1]``, multiples of ``1 / n_iter``.
    """
    return permutation_snr(x, time, options=options, n_iter=n_iter, seed=seed,
                           executor=executor, n_jobs=n_jobs,
                           verbose=verbose)["p_value"]


# not a pytest test function
test_significance.__test__ = False


def significance_table(x, time, options=None, n_iter=200, seed=None, executor=None,
                       n_jobs=1, verbose=False):
    """Per-feature SNR, permutation p-value and BH-adjusted FDR.

    Returns
    -------
    pd.DataFrame indexed by feature with columns snr, p_value, fdr
    """
    res = permutation_snr(x, time, options=options, n_iter=n_iter, seed=seed,
                          executor=executor, n_jobs=n_jobs, verbose=verbose)
    df = pd.DataFrame({
        "snr": res["snr_obs"],
        "p_value": res["p_value"],
    }, index=res["feature_names"])
    df.index.name = "feature"
    df["fdr"] = bh_fdr_correction(df["p_value"].values)
    return df
