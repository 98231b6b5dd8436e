"""Periodic smoothing splines used for all time-dependent curves."""

from zeitlens.spline.periodic import PeriodicSpline, fit_periodic_spline, periodic_basis

__all__ = ["PeriodicSpline", "fit_periodic_spline", "periodic_basis"]
