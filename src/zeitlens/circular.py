"""
Difference arithmetic on a periodic domain.

Values of the circular variable live in ``[0, time_max)``, with ``time_max``
identified with 0. The difference ``b - a`` is reported as the representative
closest to zero, so it always lies in ``(-time_max/2, time_max/2]``.
"""

import numpy as np

from zeitlens.errors import InvalidInput


def _check_period(time_max):
    time_max = float(time_max)
    if not np.isfinite(time_max) or time_max <= 0:
        raise InvalidInput(f"time_max must be a positive finite number, got {time_max}.")
    return time_max


def _as_finite(values, name):
    arr = np.asarray(values, dtype=np.float64)
    if arr.size == 0:
        raise InvalidInput(f"{name} is empty.")
    if not np.all(np.isfinite(arr)):
        raise InvalidInput(f"{name} contains non-finite values.")
    return arr


def _wrap_nearest(d):
    """Map fractional differences to the representative nearest zero.

    Among ``d``, ``d - 1`` and ``d + 1`` the one with the smallest absolute
    value is kept; an exact half period maps to ``+0.5``.
    """
    # inputs outside one period are brought into [-1, 1) first
    d = np.mod(d + 1.0, 2.0) - 1.0
    candidates = np.stack([d, d - 1.0, d + 1.0], axis=-1)
    idx = np.argmin(np.abs(candidates), axis=-1)
    nearest = np.take_along_axis(candidates, idx[..., None], axis=-1)[..., 0]
    return np.where(nearest == -0.5, 0.5, nearest)


def circular_diff(a, b, time_max=1.0):
    """Signed circular difference ``b - a``.

    Parameters
    ----------
    a, b : float or array-like
        Values of the periodic variable. Arrays must broadcast against each
        other.
    time_max : float
        Length of the period.

    Returns
    -------
    float or np.ndarray
        Difference in ``(-time_max/2, time_max/2]``; a float when both
        inputs are scalars.
    """
    time_max = _check_period(time_max)
    a_arr = _as_finite(a, "a")
    b_arr = _as_finite(b, "b")
    try:
        d = (b_arr - a_arr) / time_max
    except ValueError as e:
        raise InvalidInput(f"a and b do not broadcast: {e}") from e
    out = _wrap_nearest(d) * time_max
    if out.ndim == 0:
        return float(out)
    return out


def circular_diff_matrix(a, B, time_max=1.0):
    """Column-wise circular difference ``B[:, j] - a``.

    Parameters
    ----------
    a : float or array of shape (n,)
        Reference values, reused against every column of ``B``.
    B : array of shape (n, m)
        Values to compare.
    time_max : float
        Length of the period.

    Returns
    -------
    np.ndarray of shape (n, m)
    """
    time_max = _check_period(time_max)
    B_arr = _as_finite(B, "B")
    if B_arr.ndim != 2:
        raise InvalidInput(f"B must be 2-D, got shape {B_arr.shape}.")
    a_arr = _as_finite(a, "a")
    if a_arr.ndim == 0:
        a_arr = np.full(B_arr.shape[0], float(a_arr))
    if a_arr.ndim != 1 or len(a_arr) != B_arr.shape[0]:
        raise InvalidInput(
            f"a must be a scalar or have length {B_arr.shape[0]} (rows of B), "
            f"got shape {a_arr.shape}."
        )
    out = np.empty_like(B_arr)
    for jj in range(B_arr.shape[1]):
        out[:, jj] = _wrap_nearest((B_arr[:, jj] - a_arr) / time_max) * time_max
    return out
