"""
Time-dependent mean and variance of each feature.

Each feature is modelled independently as a periodic smoothing spline of
its observed value (mean model) or of its squared residual (variance
model) against the circular time label. Missing cells are skipped per
feature.
"""

import warnings

import numpy as np

from zeitlens.config import FitOptions
from zeitlens.errors import FitFailure, InsufficientData, InvalidInput
from zeitlens.residuals import ResidualStore
from zeitlens.spline.periodic import MIN_KNOTS, fit_periodic_spline
from zeitlens.utils import as_observations, as_time

# Anchor phases (fractions of the period) of the flat variance curve
CONST_VAR_ANCHORS = (0.0, 0.3, 0.7)


class MeanFit:
    """Result of :func:`fit_mean`.

    Attributes
    ----------
    models : list of PeriodicSpline
        One fitted mean curve per feature.
    residuals : ResidualStore
        ``predicted - observed`` at every present cell.
    time_max : float
    feature_names : list of str
    """

    def __init__(self, models, residuals, time_max, feature_names):
        self.models = list(models)
        self.residuals = residuals
        self.time_max = float(time_max)
        self.feature_names = list(feature_names)

    def __len__(self):
        return len(self.models)

    def predict(self, time):
        """Predicted means, array of shape (len(time), p)."""
        time = np.atleast_1d(np.asarray(time, dtype=np.float64))
        return np.column_stack([m.predict(time) for m in self.models])

    def __repr__(self):
        return "MeanFit(p=%d, time_max=%g)" % (len(self.models), self.time_max)


def _fit_feature(t, y, jj, name, options, lam=None, n_knots=None, min_points=None):
    """Fit one periodic curve, translating failures into zeitlens errors."""
    if min_points is None:
        min_points = options.min_points
    min_points = max(min_points, MIN_KNOTS)
    n_distinct = len(np.unique(t))
    if n_distinct < min_points:
        raise InsufficientData(jj, n_distinct, min_points, name=name)
    try:
        return fit_periodic_spline(
            t, y,
            xmin=0.0,
            xmax=options.time_max,
            n_knots=options.n_knots if n_knots is None else n_knots,
            lam=options.lam if lam is None else lam,
            lam_bounds=options.lam_bounds,
        )
    except np.linalg.LinAlgError as e:
        raise FitFailure(jj, str(e), name=name) from e


def _fit_mean_matrix(data, present, t, feature_names, options):
    """Fit all features of an already validated matrix."""
    n, p = data.shape
    models = []
    resid = np.full((n, p), np.nan)
    for jj in range(p):
        rows = present[:, jj]
        t_jj = t[rows]
        x_jj = data[rows, jj]
        model = _fit_feature(t_jj, x_jj, jj, feature_names[jj], options)
        models.append(model)
        resid[rows, jj] = model.predict(t_jj) - x_jj
    return MeanFit(models, ResidualStore(resid, present, feature_names),
                   options.time_max, feature_names)


def fit_mean(x, time, options=None):
    """Estimate the time-dependent mean of each feature.

    Parameters
    ----------
    x : pd.DataFrame or array-like of shape (n, p)
        Observations in rows, features in columns; NaN marks missing cells.
    time : array-like of shape (n,)
        Circular time label of each observation, in ``[0, options.time_max]``.
    options : FitOptions, optional
        Spline settings. Default ``FitOptions()``.

    Returns
    -------
    MeanFit

    Raises
    ------
    InvalidInput
        Malformed ``x`` or ``time``.
    InsufficientData
        A feature has fewer than ``options.min_points`` distinct present times.
    FitFailure
        The spline solve failed for a feature.
    """
    if options is None:
        options = FitOptions()
    data, present, feature_names = as_observations(x)
    t = as_time(time, data.shape[0], options.time_max)
    return _fit_mean_matrix(data, present, t, feature_names, options)


def fit_variance(time, residuals, const_var=True, options=None, quiet=True):
    """Estimate the time-dependent variance of each feature.

    Parameters
    ----------
    time : array-like of shape (n,)
        Time labels the residuals were computed at.
    residuals : ResidualStore, MeanFit or array of shape (n, p)
        Residuals from :func:`fit_mean`; NaN marks absent cells in an array.
    const_var : bool
        If True (default), each feature's variance is the constant mean
        squared residual, represented as a flat periodic curve.
    options : FitOptions, optional
    quiet : bool
        Suppress warnings raised while fitting (only for this call).

    Returns
    -------
    list of PeriodicSpline
        One variance curve per feature.

    Notes
    -----
    With ``const_var=False`` nothing keeps the fitted curve non-negative;
    a warning is emitted when it dips below zero. The likelihood decoder
    floors variances at evaluation time.
    """
    if isinstance(residuals, MeanFit):
        if options is None:
            options = FitOptions(time_max=residuals.time_max)
        residuals = residuals.residuals
    if options is None:
        options = FitOptions()
    if not isinstance(residuals, ResidualStore):
        values = np.asarray(residuals, dtype=np.float64)
        if values.ndim != 2:
            raise InvalidInput(f"residuals must be 2-D, got shape {values.shape}.")
        residuals = ResidualStore(values, ~np.isnan(values))
    n, p = residuals.shape
    t = as_time(time, n, options.time_max)
    names = residuals.feature_names

    fits = []
    with warnings.catch_warnings():
        if quiet:
            warnings.simplefilter("ignore")
        if const_var:
            sigma2 = residuals.mean_square()
            anchors = np.asarray(CONST_VAR_ANCHORS) * options.time_max
            for jj in range(p):
                if residuals.n_present[jj] == 0:
                    raise InsufficientData(jj, 0, 1, name=names[jj])
                fits.append(_fit_feature(anchors, np.repeat(sigma2[jj], 3), jj,
                                         names[jj], options, lam=1.0, n_knots=3,
                                         min_points=MIN_KNOTS))
        else:
            for jj in range(p):
                rows, resid = residuals.column(jj)
                model = _fit_feature(t[rows], resid ** 2, jj, names[jj], options)
                _, curve = model.grid(options.snr_resolution)
                if curve.min() < 0:
                    warnings.warn(
                        "Variance curve of %s is negative over part of the period "
                        "(min %.3g); it will be floored when evaluated."
                        % (names[jj], curve.min())
                    )
                fits.append(model)
    return fits
