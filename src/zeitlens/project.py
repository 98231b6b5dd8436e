"""
Components of time-dependent variation.

The fitted mean curves are sampled at ``n_time`` phases over one period,
centred per feature and scaled by each feature's residual noise, and the
resulting ``n_time x p`` matrix is decomposed into sparse (or dense)
components. Loadings rank features by how much time-dependent signal they
carry relative to their noise.
"""

import numpy as np

from zeitlens.decomposition.spc import sparse_components, svd_components
from zeitlens.errors import InvalidInput
from zeitlens.fit import MeanFit
from zeitlens.residuals import ResidualStore


def discretize_means(mean_models, n_time=10, time_max=1.0):
    """Sample each mean curve at ``time_max * k / n_time``, k = 0..n_time-1.

    Returns
    -------
    phases : array of shape (n_time,)
    x_mean : array of shape (n_time, p)
    """
    if n_time < 2:
        raise InvalidInput(f"n_time must be >= 2, got {n_time}.")
    phases = np.arange(n_time) / float(n_time) * time_max
    x_mean = np.column_stack([m.predict(phases) for m in mean_models])
    return phases, x_mean


def scaled_mean_matrix(mean_models, residuals, n_time=10, time_max=1.0):
    """Centred, noise-scaled discretised mean matrix.

    Column j is centred on its own mean over the ``n_time`` phases and
    divided by the root mean squared residual of feature j.
    """
    phases, x_mean = discretize_means(mean_models, n_time, time_max)
    x_centred = x_mean - x_mean.mean(axis=0)
    rms = np.sqrt(residuals.mean_square())
    if np.any(~np.isfinite(rms)) or np.any(rms <= 0):
        bad = np.flatnonzero(~(np.isfinite(rms) & (rms > 0)))
        raise InvalidInput(
            "Residual noise must be positive and finite for every feature; "
            "offending feature(s): %s" % ", ".join(str(residuals.feature_names[j]) for j in bad)
        )
    return phases, x_centred / rms


def project_components(mean_models, residuals=None, n_time=10, sumabsv=1.0,
                       rank=None, orth=True, use_spc=True, time_max=None):
    """Sparse principal components of time-dependent variation.

    Parameters
    ----------
    mean_models : MeanFit or list of PeriodicSpline
        Fitted mean curves. When a MeanFit is given, ``residuals`` and
        ``time_max`` default to its own.
    residuals : ResidualStore or array of shape (n, p)
        Residuals of the mean fits; NaN marks absent cells in an array.
    n_time : int
        Number of phases at which each curve is discretised. Default 10.
    sumabsv : float
        L1 budget of each loading vector (sparse mode only).
    rank : int, optional
        Number of components. Default ``n_time``.
    orth : bool
        Orthogonal score vectors (sparse mode only).
    use_spc : bool
        Sparse components (default) or a plain SVD.
    time_max : float, optional
        Length of the period; default 1.0 unless taken from a MeanFit.

    Returns
    -------
    ComponentSet
        ``u`` (scores over the ``n_time`` phases), ``d``, ``v`` (loadings over
        features).
    """
    if isinstance(mean_models, MeanFit):
        if residuals is None:
            residuals = mean_models.residuals
        if time_max is None:
            time_max = mean_models.time_max
        mean_models = mean_models.models
    if residuals is None:
        raise InvalidInput("residuals are required when mean_models is a list.")
    if time_max is None:
        time_max = 1.0
    if not isinstance(residuals, ResidualStore):
        values = np.asarray(residuals, dtype=np.float64)
        if values.ndim != 2:
            raise InvalidInput(f"residuals must be 2-D, got shape {values.shape}.")
        residuals = ResidualStore(values, ~np.isnan(values))
    if residuals.shape[1] != len(mean_models):
        raise InvalidInput(
            f"residuals have {residuals.shape[1]} features but {len(mean_models)} "
            f"mean models were given."
        )

    _, z = scaled_mean_matrix(mean_models, residuals, n_time, time_max)
    names = residuals.feature_names
    if use_spc:
        return sparse_components(z, sumabsv=sumabsv,
                                 rank=n_time if rank is None else rank,
                                 orth=orth, feature_names=names)
    return svd_components(z, feature_names=names)
