"""
Linear Predictive Coding analysis.

Autocorrelation method with the Levinson-Durbin recursion, plus the
acoustic-tube view of the result: reflection coefficients are turned into a
normalized vocal-tract area function. Formants are picked from the LPC
envelope and an all-pole synthesis filter is provided for resynthesis.

Coefficient convention: ``coefficients`` holds a_1..a_p of
A(z) = 1 + sum(a_i z^-i); a_0 = 1 is implicit and not stored.
"""

import logging
from dataclasses import dataclass

import numpy as np
from scipy import signal as scipy_signal

from vocaltract.core.filters import pre_emphasis as _pre_emphasis

logger = logging.getLogger(__name__)

REFLECTION_LIMIT = 0.99
AREA_FLOOR = 1e-6
RESPONSE_FLOOR = 1e-12
FORMANT_RESPONSE_POINTS = 4096
MIN_FORMANT_HZ = 90.0


@dataclass
class LPCResult:
    """Output of the Levinson-Durbin recursion."""

    coefficients: np.ndarray             # (order,) a_1..a_p
    reflection_coefficients: np.ndarray  # (order,) PARCOR k_1..k_p
    prediction_error: float              # >= 0
    gain: float                          # sqrt(prediction_error)
    # Stages completed before the recursion stopped; < order for a
    # degenerate (silent or perfectly predictable) frame.
    stages: int = 0

    @property
    def order(self) -> int:
        return len(self.coefficients)

    @property
    def degenerate(self) -> bool:
        return self.stages < self.order or self.prediction_error <= 0.0


def autocorrelation(signal: np.ndarray, max_lag: int) -> np.ndarray:
    """
    Biased autocorrelation r[l] = sum_n x[n] x[n+l] for l in [0, max_lag).

    Lags at or beyond the signal length are zero.
    """
    x = np.asarray(signal, dtype=np.float64)
    n = x.size
    r = np.zeros(max(int(max_lag), 0), dtype=np.float64)
    for lag in range(min(r.size, n)):
        r[lag] = np.dot(x[: n - lag], x[lag:])
    return r


def levinson_durbin(autocorr: np.ndarray, order: int) -> LPCResult:
    """
    Solve the normal equations for the LPC coefficients.

    The recursion stops as soon as the prediction error is no longer
    positive. Coefficients of the stages that did not run stay zero and the
    result is still returned; ``LPCResult.stages`` tells how far it got.

    Args:
        autocorr: Autocorrelation values, at least ``order + 1`` of them.
        order: Prediction order p.

    Returns:
        LPCResult with coefficients and reflection coefficients of length p.
    """
    r = np.asarray(autocorr, dtype=np.float64)
    if r.size < order + 1:
        raise ValueError(f"need {order + 1} autocorrelation values, got {r.size}")

    a = np.zeros(order + 1, dtype=np.float64)
    k = np.zeros(order, dtype=np.float64)
    error = float(r[0])
    stages = 0

    for i in range(order):
        if error <= 0.0:
            break

        acc = np.dot(a[1 : i + 1], r[i:0:-1]) if i > 0 else 0.0
        k[i] = (r[i + 1] - acc) / error

        previous = a.copy()
        a[i + 1] = k[i]
        for j in range(i):
            a[j + 1] = previous[j + 1] - k[i] * previous[i - j]

        error *= 1.0 - k[i] * k[i]
        stages = i + 1

    if stages < order:
        logger.debug(
            "LPC recursion stopped after %d of %d stages (prediction error %.3g)",
            stages, order, error,
        )

    error = max(error, 0.0)
    return LPCResult(
        coefficients=a[1:].copy(),
        reflection_coefficients=k,
        prediction_error=error,
        gain=float(np.sqrt(error)),
        stages=stages,
    )


def apply_pre_emphasis(signal: np.ndarray, alpha: float) -> np.ndarray:
    """First-order pre-emphasis y[0] = x[0], y[n] = x[n] - alpha * x[n-1]."""
    return _pre_emphasis(signal, alpha)


def analyze(signal: np.ndarray, order: int, pre_emphasis: float = 0.97) -> LPCResult:
    """
    Full LPC analysis of one frame.

    Args:
        signal: Frame samples.
        order: Prediction order.
        pre_emphasis: Pre-emphasis coefficient (0 disables it).

    Returns:
        LPCResult for the pre-emphasized frame.
    """
    filtered = apply_pre_emphasis(signal, pre_emphasis)
    r = autocorrelation(filtered, order + 1)
    return levinson_durbin(r, order)


def reflection_to_area(reflection_coefficients: np.ndarray) -> np.ndarray:
    """
    Area function of the lossless tube described by the reflection coefficients.

    area[0] = 1 at the glottis and area[i+1] = area[i] * (1 - k_i) / (1 + k_i),
    with each k_i clipped to [-0.99, 0.99].
    """
    k = np.clip(np.asarray(reflection_coefficients, dtype=np.float64), -REFLECTION_LIMIT, REFLECTION_LIMIT)
    ratios = (1.0 - k) / (1.0 + k)
    return np.concatenate(([1.0], np.cumprod(ratios)))


def area_to_log_area(areas: np.ndarray) -> np.ndarray:
    """Natural log of the areas, floored at 1e-6."""
    return np.log(np.maximum(np.asarray(areas, dtype=np.float64), AREA_FLOOR))


def lpc_frequency_response(coefficients: np.ndarray, nfft: int = 512) -> np.ndarray:
    """
    LPC spectral envelope in dB.

    Evaluates -20·log10(|A(e^jω)| + 1e-12) at nfft // 2 + 1 points evenly
    spaced over [0, π].
    """
    omega = 2.0 * np.pi * np.arange(nfft // 2 + 1) / nfft
    poly = np.concatenate(([1.0], np.asarray(coefficients, dtype=np.float64)))
    _, a_response = scipy_signal.freqz(poly, [1.0], worN=omega)
    return -20.0 * np.log10(np.abs(a_response) + RESPONSE_FLOOR)


def estimate_formants(
    coefficients: np.ndarray,
    sample_rate: float,
    num_formants: int = 5,
) -> list[float]:
    """
    Estimate formant frequencies by peak picking on the LPC envelope.

    Local maxima of a 4096-point response are kept in ascending frequency
    order when they lie above 90 Hz and below Nyquist. This approximates the
    pole frequencies without root finding and can report spurious peaks on
    noisy envelopes.

    Args:
        coefficients: LPC coefficients a_1..a_p.
        sample_rate: Sample rate the coefficients were estimated at.
        num_formants: Maximum number of formants to return.

    Returns:
        Formant frequencies in Hz.
    """
    response = lpc_frequency_response(coefficients, FORMANT_RESPONSE_POINTS)
    peaks = scipy_signal.argrelmax(response)[0]
    freqs = peaks * sample_rate / (2.0 * (len(response) - 1))
    freqs = freqs[(freqs > MIN_FORMANT_HZ) & (freqs < sample_rate / 2.0)]
    return [float(f) for f in freqs[: max(int(num_formants), 0)]]


def synthesize(excitation: np.ndarray, coefficients: np.ndarray, gain: float) -> np.ndarray:
    """All-pole synthesis y[n] = gain·x[n] - sum_i a_i·y[n-i-1]."""
    x = np.asarray(excitation, dtype=np.float64)
    if x.size == 0:
        return x.copy()
    poly = np.concatenate(([1.0], np.asarray(coefficients, dtype=np.float64)))
    return scipy_signal.lfilter([float(gain)], poly, x)
