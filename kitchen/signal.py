from __future__ import annotations

import numpy as np
from scipy.signal import detrend


def remove_trend(y):
    """Remove the linear trend and then the mean (SAC rtrend + rmean)."""
    y = np.asarray(y, dtype=float)
    if y.size == 0:
        return y.copy()
    y_d = detrend(y, type="linear")
    return y_d - np.mean(y_d)


def is_complete_zero(y, reference=None, rtol=1e-10) -> bool:
    """True for an empty or NaN waveform, or one with no amplitude left.

    ``reference`` is the waveform before trend removal; residue at or below
    ``rtol`` of its peak counts as zero.
    """
    y = np.asarray(y, dtype=float)
    if y.size == 0:
        return True
    peak = np.max(np.abs(y))
    if np.isnan(peak):
        return True
    scale = peak if reference is None else np.max(np.abs(np.asarray(reference, dtype=float)))
    return peak == 0 or peak <= rtol * scale


def taper_rising_sine(y, n_points):
    """Quarter-period sine ramp over the first ``n_points`` samples."""
    y = np.asarray(y, dtype=float).copy()
    m = min(int(n_points), y.size)
    if m <= 0:
        return y
    k = np.arange(m)
    y[:m] *= np.sin(k * np.pi / n_points / 2.0)
    return y


def taper_edges(y, ratio_percent=5, squared=False):
    """Sine (or sine squared) taper on both ends of the window.

    The taper length is ``ratio_percent`` of the trace, counted in whole
    hundreds of samples the same way for every trace length.
    """
    y = np.asarray(y, dtype=float).copy()
    n = y.size
    m = n // 100 * int(ratio_percent)
    if m == 0:
        return y

    w = np.sin(np.arange(m + 1) * np.pi / m / 2.0)
    if squared:
        w = w * w

    y[: m + 1] *= w
    y[n - 1 - np.arange(m + 1)] *= w
    return y


def highest_power_of_two(n: int) -> int:
    if n < 1:
        raise ValueError(f"Require n >= 1. Got n={n}.")
    return 1 << (int(n).bit_length() - 1)
