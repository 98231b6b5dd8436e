"""
zeitlens — phase prediction and periodicity testing for high-dimensional data.

Fits each feature's mean and variance as periodic functions of a circular
time label, decodes the time of new observations by maximum likelihood,
and tests which features track the time.

Main public API
---------------
fit_mean            : Periodic smoothing-spline mean of each feature.
fit_variance        : Constant or periodic variance of each feature.
project_components  : Sparse components of time-dependent variation.
decode_likelihood   : Likelihood of candidate times for test observations.
test_significance   : Permutation p-value of periodicity per feature.
circular_diff       : Signed difference on a periodic domain.
"""

__version__ = "0.3.0"


def __getattr__(name: str):
    """Lazy-import public API so importing the package stays cheap."""
    if name in ("fit_mean", "fit_variance"):
        from zeitlens import fit
        return getattr(fit, name)
    if name == "project_components":
        from zeitlens.project import project_components
        return project_components
    if name in ("decode_likelihood", "predict_time"):
        from zeitlens import likelihood
        return getattr(likelihood, name)
    if name in ("test_significance", "significance_table", "snr"):
        from zeitlens import significance
        return getattr(significance, name)
    if name in ("circular_diff", "circular_diff_matrix"):
        from zeitlens import circular
        return getattr(circular, name)
    if name == "FitOptions":
        from zeitlens.config import FitOptions
        return FitOptions
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "fit_mean",
    "fit_variance",
    "project_components",
    "decode_likelihood",
    "predict_time",
    "test_significance",
    "significance_table",
    "snr",
    "circular_diff",
    "circular_diff_matrix",
    "FitOptions",
    "__version__",
]
