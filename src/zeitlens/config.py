"""
User-configurable fitting options.
"""

import copy


class FitOptions:
    """Options for the periodic curve fits.

    Defaults suit a period scaled to ``[0, 1)`` and tens to hundreds of
    observations.

    Parameters
    ----------
    time_max : float
        Length of the period. Time labels live in ``[0, time_max)`` and
        ``time_max`` is identified with 0. Default 1.0.

    n_knots : int
        Number of equally spaced knots of the periodic cubic spline.
        Capped at the number of distinct observed times. Default 20.
        - Fewer knots (6-10): smoother curves, fast, suited to sparse
          sampling designs
        - More knots (30+): only useful with dense sampling; GCV still
          controls the effective smoothness

    lam : float or None
        Smoothing parameter of the second-difference penalty. ``None``
        (default) selects it by generalised cross-validation.

    lam_bounds : tuple of float
        Search interval for GCV, in log10 units. Default (-10, 4).

    min_points : int
        Minimum number of distinct non-missing time points per feature.
        Default 3.

    snr_resolution : float
        Grid step, as a fraction of the period, on which curve ranges are
        measured for the SNR statistic. Default 0.001.

    likelihood_resolution : float
        Step, as a fraction of the period, of the default candidate time
        grid for the likelihood decoder. Default 0.01.
    """
    def __init__(self, **kwargs):
        self.time_max = kwargs.get("time_max", 1.0)
        self.n_knots = kwargs.get("n_knots", 20)
        self.lam = kwargs.get("lam", None)
        self.lam_bounds = kwargs.get("lam_bounds", (-10.0, 4.0))
        self.min_points = kwargs.get("min_points", 3)
        self.snr_resolution = kwargs.get("snr_resolution", 0.001)
        self.likelihood_resolution = kwargs.get("likelihood_resolution", 0.01)

        unknown = set(kwargs) - set(vars(self))
        if unknown:
            raise TypeError("Unknown FitOptions parameter(s): %s" % ", ".join(sorted(unknown)))

    @classmethod
    def for_design(cls, n_samples, time_max=1.0):
        """Create options scaled to the number of observations.

        Parameters
        ----------
        n_samples : int
            Number of observations per feature.
        time_max : float
            Length of the period.

        Returns
        -------
        FitOptions
        """
        cfg = cls(time_max=time_max)
        if n_samples < 12:
            cfg.n_knots = 4
        elif n_samples < 30:
            cfg.n_knots = 8
        elif n_samples < 100:
            cfg.n_knots = 12
        return cfg

    def copy(self, **overrides):
        """Return a copy with some parameters replaced."""
        new = copy.copy(self)
        for key, value in overrides.items():
            if not hasattr(new, key):
                raise TypeError("Unknown FitOptions parameter: %s" % key)
            setattr(new, key, value)
        return new

    def __repr__(self):
        return "FitOptions(time_max=%r, n_knots=%r, lam=%r, min_points=%r)" % (
            self.time_max, self.n_knots, self.lam, self.min_points)
