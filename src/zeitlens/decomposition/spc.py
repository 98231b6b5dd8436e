"""
Sparse principal components by penalised matrix decomposition.

Each component is a rank-one approximation ``d u v'`` of the (deflated)
matrix with ``|u|_2 = |v|_2 = 1`` and an L1 budget ``|v|_1 <= sumabsv`` on
the right vector, computed by alternating power iterations with soft
thresholding (Witten, Tibshirani & Hastie 2009). With ``orth=True`` each
left vector is kept orthogonal to the previous ones.
"""

import numpy as np
import pandas as pd

from zeitlens.errors import InvalidInput


class ComponentSet:
    """Components of a time-by-feature matrix.

    Attributes
    ----------
    u : array of shape (n_time, K)
        Scores: waveform of each component over the discretised period.
    d : array of shape (K,)
        Component magnitudes.
    v : array of shape (p, K)
        Loadings: contribution of each feature to each component.
    sparse : bool
        True for penalised components, False for a plain SVD.
    """

    def __init__(self, u, d, v, sparse, sumabsv=None, orth=None, feature_names=None):
        self.u = np.asarray(u, dtype=np.float64)
        self.d = np.asarray(d, dtype=np.float64)
        self.v = np.asarray(v, dtype=np.float64)
        self.sparse = bool(sparse)
        self.sumabsv = sumabsv
        self.orth = orth
        if feature_names is None:
            feature_names = ["feature_%d" % j for j in range(self.v.shape[0])]
        self.feature_names = list(feature_names)

    @property
    def n_components(self):
        return len(self.d)

    def loadings_frame(self):
        """Loadings as a DataFrame indexed by feature name."""
        cols = ["PC%d" % (k + 1) for k in range(self.n_components)]
        df = pd.DataFrame(self.v, index=self.feature_names, columns=cols)
        df.index.name = "feature"
        return df

    def scores_frame(self, phases=None):
        """Scores as a DataFrame indexed by phase."""
        cols = ["PC%d" % (k + 1) for k in range(self.n_components)]
        df = pd.DataFrame(self.u, index=phases, columns=cols)
        df.index.name = "time"
        return df

    def feature_importance(self, component=0):
        """Absolute loadings of one component, largest first."""
        imp = pd.Series(np.abs(self.v[:, component]), index=self.feature_names)
        return imp.sort_values(ascending=False)

    def __repr__(self):
        kind = "sparse" if self.sparse else "svd"
        return "ComponentSet(%s, n_time=%d, p=%d, K=%d)" % (
            kind, self.u.shape[0], self.v.shape[0], self.n_components)


def _l2n(vec):
    a = np.sqrt(np.sum(vec ** 2))
    return a if a > 0 else 0.05


def _soft(x, lam):
    return np.sign(x) * np.maximum(np.abs(x) - lam, 0.0)


def _binary_search(argv, sumabsv, maxiter=150):
    """Soft threshold giving ``|v|_1 = sumabsv`` after normalisation."""
    norm = np.sqrt(np.sum(argv ** 2))
    if norm == 0 or np.sum(np.abs(argv / norm)) <= sumabsv:
        return 0.0
    lam1 = 0.0
    lam2 = np.max(np.abs(argv)) - 1e-5
    mid = (lam1 + lam2) / 2.0
    for _ in range(maxiter):
        mid = (lam1 + lam2) / 2.0
        su = _soft(argv, mid)
        if np.sum(np.abs(su / _l2n(su))) < sumabsv:
            lam2 = mid
        else:
            lam1 = mid
        if (lam2 - lam1) < 1e-6:
            break
    return mid


def sparse_components(z, sumabsv=1.0, rank=None, orth=True, niter=20,
                      feature_names=None):
    """Compute sparse principal components.

    Parameters
    ----------
    z : array of shape (n, p)
        Matrix to decompose (rows = discretised times, columns = features).
    sumabsv : float
        L1 budget on each loading vector, ``1 <= sumabsv <= sqrt(p)``.
        1 gives the sparsest components.
    rank : int, optional
        Number of components, at most ``n``. Default ``n``.
    orth : bool
        Keep score vectors mutually orthogonal.
    niter : int
        Power iterations per component.
    feature_names : list of str, optional

    Returns
    -------
    ComponentSet
    """
    z = np.asarray(z, dtype=np.float64)
    if z.ndim != 2:
        raise InvalidInput(f"z must be 2-D, got shape {z.shape}.")
    if not np.all(np.isfinite(z)):
        raise InvalidInput("z contains non-finite values.")
    n, p = z.shape
    if rank is None:
        rank = n
    if not 1 <= rank <= n:
        raise InvalidInput(f"rank must be between 1 and {n}, got {rank}.")
    if not 1.0 <= sumabsv <= np.sqrt(p):
        raise InvalidInput(
            f"sumabsv must be between 1 and sqrt(p)={np.sqrt(p):.3g}, got {sumabsv}."
        )

    U = np.zeros((n, rank))
    V = np.zeros((p, rank))
    d = np.zeros(rank)
    xres = z.copy()
    tol = 1e-12 * max(1.0, np.linalg.norm(z))

    for k in range(rank):
        if np.linalg.norm(xres) <= tol:
            # residual exhausted; remaining components stay zero
            break
        v = np.linalg.svd(xres, full_matrices=False)[2][0]
        if orth and k > 0:
            Q = np.linalg.qr(U[:, :k])[0]
        for _ in range(niter):
            v_old = v
            u = xres.dot(v)
            if orth and k > 0:
                u = u - Q.dot(Q.T.dot(u))
            u = u / _l2n(u)
            argv = xres.T.dot(u)
            lam = _binary_search(argv, sumabsv)
            sv = _soft(argv, lam)
            v = sv / _l2n(sv)
            if np.sum(np.abs(v - v_old)) < 1e-7:
                break
        d[k] = u.dot(xres).dot(v)
        xres = xres - d[k] * np.outer(u, v)
        U[:, k] = u
        V[:, k] = v

    return ComponentSet(U, d, V, sparse=True, sumabsv=sumabsv, orth=orth,
                        feature_names=feature_names)


def svd_components(z, feature_names=None):
    """Dense components from a thin singular value decomposition."""
    z = np.asarray(z, dtype=np.float64)
    if z.ndim != 2:
        raise InvalidInput(f"z must be 2-D, got shape {z.shape}.")
    u, s, vt = np.linalg.svd(z, full_matrices=False)
    return ComponentSet(u, s, vt.T, sparse=False, feature_names=feature_names)
