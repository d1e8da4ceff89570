"""
Small signal-conditioning primitives shared by the analysis modules.

Window generation, first-order pre-emphasis and the linear-interpolation
resampler used when frames are brought down to the LPC analysis rate.
"""

from functools import lru_cache
from typing import Literal

import numpy as np
from scipy import signal as scipy_signal

WindowType = Literal["hamming", "hann", "blackman"]

WINDOW_TYPES = ("hamming", "hann", "blackman")


@lru_cache(maxsize=64)
def _cached_window(kind: str, size: int) -> np.ndarray:
    w = scipy_signal.get_window(kind, size, fftbins=False).astype(np.float64)
    w.setflags(write=False)
    return w


def window(kind: WindowType, size: int) -> np.ndarray:
    """
    Symmetric analysis window of ``size`` points.

    Hamming is 0.54 - 0.46cos(2πi/(N-1)), Hann is 0.5(1 - cos(2πi/(N-1)))
    and Blackman is 0.42 - 0.5cos(x) + 0.08cos(2x) with x = 2πi/(N-1).

    Args:
        kind: One of "hamming", "hann", "blackman".
        size: Number of points.

    Returns:
        Read-only float64 array (cached per kind and size).
    """
    if kind not in WINDOW_TYPES:
        raise ValueError(f"Unknown window type: {kind!r} (expected one of {WINDOW_TYPES})")
    if size <= 0:
        return np.zeros(0, dtype=np.float64)
    return _cached_window(kind, int(size))


def pre_emphasis(samples: np.ndarray, alpha: float = 0.97) -> np.ndarray:
    """Apply y[n] = x[n] - alpha * x[n-1], leaving y[0] = x[0]."""
    x = np.asarray(samples, dtype=np.float64)
    if x.size == 0:
        return x.copy()
    return scipy_signal.lfilter([1.0, -float(alpha)], [1.0], x)


def resample_linear(data: np.ndarray, from_rate: float, to_rate: float) -> np.ndarray:
    """
    Resample by linear interpolation.

    The output holds floor(len(data) * to_rate / from_rate) samples. Positions
    past the last interpolatable index repeat the final input sample.

    Args:
        data: Input samples.
        from_rate: Source sample rate in Hz.
        to_rate: Target sample rate in Hz.

    Returns:
        Resampled float32 array.
    """
    x = np.asarray(data, dtype=np.float32)
    if from_rate == to_rate:
        return x.copy()

    ratio = float(to_rate) / float(from_rate)
    n_out = int(np.floor(x.size * ratio))
    if n_out <= 0 or x.size == 0:
        return np.zeros(0, dtype=np.float32)

    positions = np.arange(n_out, dtype=np.float64) / ratio
    # np.interp clamps to data[-1] past the right edge
    out = np.interp(positions, np.arange(x.size, dtype=np.float64), x.astype(np.float64))
    return out.astype(np.float32)
