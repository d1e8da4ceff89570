"""
Fast Fourier Transform engine.

Radix-2 Cooley-Tukey transform for power-of-two sizes: a bit-reversal
permutation followed by iterative butterfly stages. Each stage is vectorized
with NumPy, and the transform runs along the last axis so a stack of frames
(see :mod:`vocaltract.core.stft`) is processed in one call.

Also provides the spectral helpers built on it: real-input transform, power
and dB spectra, windowing, zero padding and bin-frequency mapping.
"""

import math
from dataclasses import dataclass
from functools import lru_cache

import numpy as np

from vocaltract.core.filters import WindowType, window

# Floor added to power ratios before log10 so exact zeros stay finite.
DB_FLOOR = 1e-12


class InvalidSizeError(ValueError):
    """Raised when a transform is requested on a non-power-of-two length."""


@dataclass(frozen=True)
class Complex:
    """Minimal complex value with explicit arithmetic."""

    real: float
    imag: float

    @classmethod
    def from_builtin(cls, value: complex) -> "Complex":
        return cls(float(value.real), float(value.imag))

    def add(self, other: "Complex") -> "Complex":
        return Complex(self.real + other.real, self.imag + other.imag)

    def subtract(self, other: "Complex") -> "Complex":
        return Complex(self.real - other.real, self.imag - other.imag)

    def multiply(self, other: "Complex") -> "Complex":
        return Complex(
            self.real * other.real - self.imag * other.imag,
            self.real * other.imag + self.imag * other.real,
        )

    def magnitude(self) -> float:
        return math.hypot(self.real, self.imag)

    def phase(self) -> float:
        return math.atan2(self.imag, self.real)

    __add__ = add
    __sub__ = subtract
    __mul__ = multiply
    __abs__ = magnitude

    def __complex__(self) -> complex:
        return complex(self.real, self.imag)


def as_complex_pairs(spectrum: np.ndarray) -> list[Complex]:
    """Convert a 1-D complex spectrum into a list of :class:`Complex` values."""
    return [Complex.from_builtin(z) for z in np.asarray(spectrum, dtype=np.complex128)]


# ---------------------------------------------------------------------------
# Size helpers
# ---------------------------------------------------------------------------

def is_power_of_two(n: int) -> bool:
    return n > 0 and (n & (n - 1)) == 0


def next_power_of_two(n: int) -> int:
    """Smallest power of two >= n (1 for n <= 1)."""
    if n <= 1:
        return 1
    return 1 << (int(n) - 1).bit_length()


def _check_size(n: int) -> None:
    if not is_power_of_two(n):
        raise InvalidSizeError(f"FFT size must be a power of 2, got {n}")


@lru_cache(maxsize=32)
def _bit_reversal(n: int) -> np.ndarray:
    """Bit-reversed index permutation for an n-point transform."""
    bits = n.bit_length() - 1
    indices = np.arange(n)
    reversed_ = np.zeros(n, dtype=np.int64)
    for _ in range(bits):
        reversed_ = (reversed_ << 1) | (indices & 1)
        indices = indices >> 1
    reversed_.setflags(write=False)
    return reversed_


@lru_cache(maxsize=64)
def _twiddles(m: int) -> np.ndarray:
    half = m // 2
    tw = np.exp(-2j * np.pi * np.arange(half) / m)
    tw.setflags(write=False)
    return tw


def _radix2(z: np.ndarray) -> np.ndarray:
    """In-order iterative Cooley-Tukey over the last axis of a complex array."""
    n = z.shape[-1]
    lead = z.shape[:-1]
    out = z[..., _bit_reversal(n)]

    m = 2
    while m <= n:
        half = m // 2
        blocks = out.reshape(*lead, n // m, m)
        u = blocks[..., :half]
        t = blocks[..., half:] * _twiddles(m)
        out = np.concatenate((u + t, u - t), axis=-1).reshape(*lead, n)
        m *= 2
    return out


# ---------------------------------------------------------------------------
# Transforms
# ---------------------------------------------------------------------------

def fft(signal: np.ndarray) -> np.ndarray:
    """
    Forward FFT.

    Args:
        signal: Real or complex samples; the last axis must have a
            power-of-two length.

    Returns:
        complex128 array with the same shape as ``signal``.

    Raises:
        InvalidSizeError: If the transform length is not a power of two.
    """
    z = np.asarray(signal).astype(np.complex128)
    _check_size(z.shape[-1] if z.ndim else 0)
    return _radix2(z)


def ifft(spectrum: np.ndarray) -> np.ndarray:
    """
    Inverse FFT returning the real part of the reconstructed signal.

    Conjugates, runs the forward transform, conjugates back and scales by
    1/N. Hermitian symmetry is not enforced; for a spectrum produced by
    :func:`fft` of a real signal the real part is the input signal.
    """
    z = np.asarray(spectrum, dtype=np.complex128)
    n = z.shape[-1] if z.ndim else 0
    _check_size(n)
    return np.conj(_radix2(np.conj(z))).real / n


def rfft(signal: np.ndarray) -> np.ndarray:
    """Non-negative frequency bins [0, N/2] of :func:`fft`."""
    result = fft(signal)
    n = result.shape[-1]
    return result[..., : n // 2 + 1]


def power_spectrum(signal: np.ndarray) -> np.ndarray:
    """Squared magnitude of :func:`rfft`."""
    return np.abs(rfft(signal)) ** 2


def power_to_db(power: np.ndarray, reference: float = 1.0) -> np.ndarray:
    return 10.0 * np.log10(np.asarray(power) / (reference * reference) + DB_FLOOR)


def magnitude_spectrum_db(signal: np.ndarray, reference: float = 1.0) -> np.ndarray:
    """
    Power spectrum in dB: 10·log10(power / reference² + 1e-12).

    Args:
        signal: Power-of-two length samples.
        reference: Amplitude that maps to 0 dB.

    Returns:
        dB values for bins [0, N/2].
    """
    return power_to_db(power_spectrum(signal), reference)


# ---------------------------------------------------------------------------
# Framing helpers
# ---------------------------------------------------------------------------

def apply_window(signal: np.ndarray, window_type: WindowType = "hamming") -> np.ndarray:
    """Multiply a signal element-wise by the named window (float32 result)."""
    x = np.asarray(signal, dtype=np.float64)
    return (x * window(window_type, x.shape[-1])).astype(np.float32)


def zero_pad(signal: np.ndarray) -> np.ndarray:
    """Extend the last axis with trailing zeros up to the next power of two."""
    x = np.asarray(signal)
    n = x.shape[-1]
    padded_size = next_power_of_two(n)
    if padded_size == n:
        return x
    pad = [(0, 0)] * (x.ndim - 1) + [(0, padded_size - n)]
    return np.pad(x, pad)


def frequency_bins(fft_size: int, sample_rate: float) -> np.ndarray:
    """Bin-center frequencies i * sample_rate / fft_size for i in [0, fft_size // 2]."""
    return np.arange(fft_size // 2 + 1, dtype=np.float64) * float(sample_rate) / fft_size
