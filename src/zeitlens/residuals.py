"""
Residual matrix with an explicit presence mask.
"""

import numpy as np
import pandas as pd

from zeitlens.errors import InvalidInput


class ResidualStore:
    """Residuals of the mean fits, ``predicted - observed``.

    Parameters
    ----------
    values : array of shape (n, p)
        Residuals; entries where ``present`` is False are ignored and stored
        as NaN.
    present : bool array of shape (n, p)
        True where the observation existed.
    feature_names : list of str, optional
    """

    def __init__(self, values, present, feature_names=None):
        values = np.array(values, dtype=np.float64)
        present = np.array(present, dtype=bool)
        if values.ndim != 2 or values.shape != present.shape:
            raise InvalidInput(
                f"values and present must be 2-D of the same shape, "
                f"got {values.shape} and {present.shape}."
            )
        values[~present] = np.nan
        values.setflags(write=False)
        present.setflags(write=False)
        self.values = values
        self.present = present
        if feature_names is None:
            feature_names = ["feature_%d" % j for j in range(values.shape[1])]
        self.feature_names = list(feature_names)

    @property
    def shape(self):
        return self.values.shape

    @property
    def n_present(self):
        """Number of present cells per feature."""
        return self.present.sum(axis=0)

    def column(self, j):
        """Present residuals of feature ``j`` and the row indices they come from."""
        rows = np.flatnonzero(self.present[:, j])
        return rows, self.values[rows, j]

    def mean_square(self):
        """Mean squared residual per feature over present cells only."""
        sq = np.where(self.present, self.values, 0.0) ** 2
        with np.errstate(invalid="ignore", divide="ignore"):
            return sq.sum(axis=0) / self.n_present

    def to_frame(self):
        return pd.DataFrame(self.values, columns=self.feature_names)

    def __repr__(self):
        n, p = self.shape
        return "ResidualStore(n=%d, p=%d, missing=%d)" % (n, p, int((~self.present).sum()))
