"""
Synthetic data generator for zeitlens validation.

Observations are sampled at circular times in ``[0, time_max)``; a subset of
features follows a sinusoid of the time plus Gaussian noise, the rest are
pure noise.
"""

import numpy as np
from typing import Any, Dict, Optional

# Type alias
Result = Dict[str, Any]


def _make_rng(seed: Optional[int] = None) -> np.random.RandomState:
    """Create a reproducible random state."""
    return np.random.RandomState(seed)


def periodic_features(
    n_obs: int = 50,
    n_signal: int = 10,
    n_noise: int = 10,
    amplitude: float = 2.0,
    noise_sd: float = 0.5,
    time_max: float = 1.0,
    missing_frac: float = 0.0,
    seed: Optional[int] = None,
) -> Result:
    """Sinusoidal signal features followed by pure-noise features.

    Parameters
    ----------
    n_obs : int
        Number of observations.
    n_signal : int
        Number of features carrying ``amplitude * cos(2 pi (t / time_max) - phi_j)``
        with phases ``phi_j`` spread evenly around the circle.
    n_noise : int
        Number of label-independent features.
    amplitude : float
        Signal amplitude.
    noise_sd : float
        Gaussian noise standard deviation.
    time_max : float
        Length of the period.
    missing_frac : float
        Fraction of cells set to NaN at random.
    seed : int, optional
        Random seed.

    Returns
    -------
    dict with keys x (n_obs, n_signal + n_noise), x_clean, time, truth
    """
    rng = _make_rng(seed)
    time = rng.uniform(0, time_max, n_obs)
    phases = 2 * np.pi * np.arange(n_signal) / max(n_signal, 1)
    p = n_signal + n_noise

    x_clean = np.zeros((n_obs, p))
    for j in range(n_signal):
        x_clean[:, j] = amplitude * np.cos(2 * np.pi * time / time_max - phases[j])
    x = x_clean + rng.normal(0, noise_sd, (n_obs, p))

    if missing_frac > 0:
        mask = rng.uniform(size=x.shape) < missing_frac
        x[mask] = np.nan

    return {
        "x": x,
        "x_clean": x_clean,
        "time": time,
        "truth": {
            "signal": np.arange(p) < n_signal,
            "phases": phases,
            "amplitude": amplitude,
            "noise_sd": noise_sd,
            "time_max": time_max,
        },
    }


def train_test_split(data: Result, test_frac: float = 0.2,
                     seed: Optional[int] = None) -> Dict[str, Result]:
    """Split a generated dataset into train and test observations."""
    rng = _make_rng(seed)
    n = len(data["time"])
    idx = rng.permutation(n)
    n_test = max(1, int(round(test_frac * n)))
    test, train = idx[:n_test], idx[n_test:]
    return {
        "train": {"x": data["x"][train], "time": data["time"][train]},
        "test": {"x": data["x"][test], "time": data["time"][test]},
    }
