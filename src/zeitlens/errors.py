"""
Exception types raised by zeitlens.

All errors derive from ``ZeitlensError`` and from the builtin exception a
caller would otherwise expect (``ValueError`` for bad input, ``RuntimeError``
for numerical failure), so existing ``except ValueError`` code keeps working.
"""


class ZeitlensError(Exception):
    """Base class for zeitlens errors."""


class InvalidInput(ZeitlensError, ValueError):
    """Malformed shapes, non-finite circular values or bad parameters."""


class InsufficientData(ZeitlensError, ValueError):
    """A feature has too few usable observations to fit a periodic curve."""

    def __init__(self, feature, n_points, min_points, name=None):
        self.feature = feature
        self.name = name
        self.n_points = n_points
        self.min_points = min_points
        label = "feature %d" % feature if name is None else "feature %d (%s)" % (feature, name)
        super().__init__(
            "%s has %d distinct non-missing time points; at least %d are required."
            % (label, n_points, min_points)
        )


class FitFailure(ZeitlensError, RuntimeError):
    """The periodic spline solve failed for a feature."""

    def __init__(self, feature, reason, name=None):
        self.feature = feature
        self.name = name
        self.reason = reason
        label = "feature %d" % feature if name is None else "feature %d (%s)" % (feature, name)
        super().__init__("Periodic fit failed for %s: %s" % (label, reason))
