"""
Periodic cubic smoothing spline.

The curve is a cubic B-spline on equally spaced knots over ``[xmin, xmax)``
whose coefficient vector wraps around, so value and first two derivatives
match at the domain ends. Roughness is penalised by squared second
differences of the (circular) coefficient vector; the smoothing parameter
is chosen by generalised cross-validation unless given.

    minimise  |y - B c|^2 + lam * |D c|^2

Constants lie in the null space of ``D``, so a constant response is
reproduced exactly for any ``lam``.
"""

import numpy as np
from scipy.interpolate import BSpline
from scipy.optimize import minimize_scalar

from zeitlens.errors import InvalidInput

DEGREE = 3
MIN_KNOTS = 3


# ============================================================================
# Basis and penalty
# ============================================================================

def _periodic_knots(n_knots, xmin, xmax):
    """Uniform knot vector of length ``n_knots + 2*DEGREE + 1``."""
    h = (xmax - xmin) / float(n_knots)
    idx = np.arange(-DEGREE, n_knots + DEGREE + 1, dtype=np.float64)
    return xmin + h * idx


def periodic_basis(x, n_knots, xmin=0.0, xmax=1.0):
    """Evaluate the periodic cubic B-spline basis.

    Parameters
    ----------
    x : array-like
        Evaluation points; wrapped into ``[xmin, xmax)``.
    n_knots : int
        Number of basis functions (equal to the number of knots per period).
    xmin, xmax : float
        Domain of one period.

    Returns
    -------
    B : array of shape (len(x), n_knots)
    """
    if n_knots < MIN_KNOTS:
        raise InvalidInput(f"n_knots must be >= {MIN_KNOTS}, got {n_knots}.")
    x = np.atleast_1d(np.asarray(x, dtype=np.float64))
    period = xmax - xmin
    x_wrapped = np.mod(x - xmin, period) + xmin
    # np.mod can round up to exactly one period
    x_wrapped = np.where(x_wrapped >= xmax, xmin, x_wrapped)

    knots = _periodic_knots(n_knots, xmin, xmax)
    eye = np.eye(n_knots)
    coef_ext = np.vstack([eye[-DEGREE:], eye])
    spline = BSpline(knots, coef_ext, DEGREE, extrapolate=False)
    return spline(x_wrapped)


def _difference_penalty(n_knots):
    """Circulant second-difference penalty matrix ``D'D``."""
    D = np.zeros((n_knots, n_knots))
    for i in range(n_knots):
        D[i, i] += 1.0
        D[i, (i + 1) % n_knots] += -2.0
        D[i, (i + 2) % n_knots] += 1.0
    return D.T.dot(D)


# ============================================================================
# Fitted curve
# ============================================================================

class PeriodicSpline:
    """A fitted periodic curve.

    Holds only the fitted numbers; evaluation is the pure method
    :meth:`predict`, so instances can be stored, compared and rebuilt from
    :meth:`to_dict` output.
    """

    def __init__(self, coef, xmin=0.0, xmax=1.0, lam=0.0, edf=np.nan,
                 gcv=np.nan, n_obs=0):
        coef = np.array(coef, dtype=np.float64)
        coef.setflags(write=False)
        self.coef = coef
        self.xmin = float(xmin)
        self.xmax = float(xmax)
        self.lam = float(lam)
        self.edf = float(edf)
        self.gcv = float(gcv)
        self.n_obs = int(n_obs)

    @property
    def n_knots(self):
        return len(self.coef)

    @property
    def period(self):
        return self.xmax - self.xmin

    def predict(self, x):
        """Evaluate the curve; scalars in, float out."""
        B = periodic_basis(x, self.n_knots, self.xmin, self.xmax)
        out = B.dot(self.coef)
        if np.ndim(x) == 0:
            return float(out[0])
        return out

    def grid(self, resolution=0.001):
        """Curve values on an evenly spaced grid over one closed period."""
        x = np.arange(0.0, 1.0 + resolution / 2.0, resolution) * self.period + self.xmin
        return x, self.predict(x)

    def to_dict(self):
        return {
            "coef": self.coef.tolist(),
            "xmin": self.xmin,
            "xmax": self.xmax,
            "lam": self.lam,
            "edf": self.edf,
            "gcv": self.gcv,
            "n_obs": self.n_obs,
        }

    @classmethod
    def from_dict(cls, d):
        return cls(**d)

    def __eq__(self, other):
        if not isinstance(other, PeriodicSpline):
            return NotImplemented
        return (self.xmin == other.xmin and self.xmax == other.xmax
                and np.array_equal(self.coef, other.coef))

    __hash__ = None

    def __repr__(self):
        return "PeriodicSpline(n_knots=%d, domain=[%g, %g), lam=%.3g, edf=%.2f)" % (
            self.n_knots, self.xmin, self.xmax, self.lam, self.edf)


# ============================================================================
# Fitting
# ============================================================================

def _penalised_solve(BtB, Bty, P, lam):
    A = BtB + lam * P
    coef = np.linalg.solve(A, Bty)
    edf = float(np.trace(np.linalg.solve(A, BtB)))
    return coef, edf


def _gcv_score(B, y, BtB, Bty, P, lam):
    n = len(y)
    coef, edf = _penalised_solve(BtB, Bty, P, lam)
    resid = y - B.dot(coef)
    rss = float(np.sum(resid ** 2))
    if n - edf <= 1e-8:
        return np.inf, coef, edf
    return n * rss / (n - edf) ** 2, coef, edf


def fit_periodic_spline(xs, ys, xmin=0.0, xmax=1.0, n_knots=20, lam=None,
                        lam_bounds=(-10.0, 4.0)):
    """Fit a periodic cubic smoothing spline.

    Parameters
    ----------
    xs, ys : array-like
        Abscissae and responses; must be finite and of equal length.
    xmin, xmax : float
        Domain of one period.
    n_knots : int
        Requested number of knots; capped at the number of distinct
        (wrapped) abscissae, never below 3.
    lam : float or None
        Smoothing parameter. ``None`` selects it by GCV over
        ``10**lam_bounds``.
    lam_bounds : tuple of float
        log10 search interval for GCV.

    Returns
    -------
    PeriodicSpline

    Raises
    ------
    InvalidInput
        Bad domain, mismatched or non-finite input, or fewer than 3 distinct
        abscissae.
    numpy.linalg.LinAlgError
        The penalised normal equations are singular.
    """
    xs = np.asarray(xs, dtype=np.float64)
    ys = np.asarray(ys, dtype=np.float64)
    if xs.ndim != 1 or ys.ndim != 1 or len(xs) != len(ys):
        raise InvalidInput(
            f"xs and ys must be 1-D of equal length, got {xs.shape} and {ys.shape}."
        )
    if not (np.all(np.isfinite(xs)) and np.all(np.isfinite(ys))):
        raise InvalidInput("xs and ys must be finite.")
    if not xmax > xmin:
        raise InvalidInput(f"xmax must exceed xmin, got [{xmin}, {xmax}).")

    n_distinct = len(np.unique(np.mod(xs - xmin, xmax - xmin)))
    if n_distinct < MIN_KNOTS:
        raise InvalidInput(
            f"At least {MIN_KNOTS} distinct abscissae are required, got {n_distinct}."
        )
    n_knots = int(max(MIN_KNOTS, min(n_knots, n_distinct)))

    B = periodic_basis(xs, n_knots, xmin, xmax)
    BtB = B.T.dot(B)
    Bty = B.T.dot(ys)
    P = _difference_penalty(n_knots)

    if lam is None:
        def objective(log_lam):
            score, _, _ = _gcv_score(B, ys, BtB, Bty, P, 10.0 ** log_lam)
            return score if np.isfinite(score) else 1e300

        opt = minimize_scalar(objective, bounds=lam_bounds, method="bounded")
        lam = 10.0 ** float(opt.x)

    gcv, coef, edf = _gcv_score(B, ys, BtB, Bty, P, float(lam))
    return PeriodicSpline(coef, xmin=xmin, xmax=xmax, lam=lam, edf=edf,
                          gcv=gcv, n_obs=len(ys))
