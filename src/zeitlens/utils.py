"""
Shared input handling and multiple-testing helpers.
"""

import numpy as np
import pandas as pd

from zeitlens.errors import InvalidInput


def as_observations(x):
    """Coerce an observation matrix and derive its presence mask.

    Parameters
    ----------
    x : pd.DataFrame or array-like of shape (n, p)
        Observations in rows, features in columns. NaN marks a missing cell.
        If DataFrame, the columns are used as feature names.

    Returns
    -------
    data : np.ndarray of shape (n, p)
    present : bool np.ndarray of shape (n, p)
    feature_names : list of str
    """
    if isinstance(x, pd.DataFrame):
        feature_names = [str(c) for c in x.columns]
        data = x.to_numpy(dtype=np.float64)
    else:
        data = np.asarray(x, dtype=np.float64)
        feature_names = None

    if data.ndim != 2:
        raise InvalidInput(
            f"x must be 2-D (observations x features), got {data.ndim}-D array."
        )
    if data.shape[0] == 0 or data.shape[1] == 0:
        raise InvalidInput(f"x is empty, shape {data.shape}.")
    if np.any(np.isinf(data)):
        raise InvalidInput("x contains infinite values.")

    if feature_names is None:
        feature_names = ["feature_%d" % j for j in range(data.shape[1])]
    present = ~np.isnan(data)
    return data, present, feature_names


def as_time(time, n, time_max=1.0):
    """Validate circular time labels for ``n`` observations.

    Values must lie in ``[0, time_max]``; ``time_max`` itself is folded to 0.
    """
    time_max = float(time_max)
    if not np.isfinite(time_max) or time_max <= 0:
        raise InvalidInput(f"time_max must be a positive finite number, got {time_max}.")
    t = np.asarray(time, dtype=np.float64)
    if t.ndim != 1:
        raise InvalidInput(f"time must be 1-D, got shape {t.shape}.")
    if len(t) != n:
        raise InvalidInput(
            f"Length of time ({len(t)}) must match the number of observations ({n})."
        )
    if not np.all(np.isfinite(t)):
        raise InvalidInput("time contains non-finite values.")
    if np.any(t < 0) or np.any(t > time_max):
        raise InvalidInput(f"time values must lie in [0, {time_max}].")
    return np.where(t == time_max, 0.0, t)


def bh_fdr_correction(pvalues):
    """Benjamini-Hochberg FDR correction.

    Parameters
    ----------
    pvalues : array-like
        Raw p-values.

    Returns
    -------
    fdr : np.ndarray
        Adjusted p-values (same length as input). NaN inputs stay NaN.
    """
    pvalues = np.asarray(pvalues, dtype=np.float64)
    n = len(pvalues)
    valid = ~np.isnan(pvalues)
    fdr = np.full(n, np.nan)
    if not np.any(valid):
        return fdr
    pv = pvalues[valid]
    m = len(pv)
    order = np.argsort(pv)
    scaled = pv[order] * m / np.arange(1, m + 1)
    # running minimum from the largest p-value down
    scaled = np.minimum.accumulate(scaled[::-1])[::-1]
    adjusted = np.empty(m)
    adjusted[order] = np.minimum(scaled, 1.0)
    fdr[valid] = adjusted
    return fdr
