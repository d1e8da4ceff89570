"""
Per-frame acoustic feature extraction.

Combines time-domain measures (RMS, zero-crossing rate, autocorrelation
pitch), FFT spectral descriptors (centroid, spread, flux, rolloff) and the
LPC vocal-tract analysis into one :class:`AudioFeatures` record per frame.

The extractor is stateful in exactly one way: spectral flux compares each
frame with the previous one, so one extractor serves one stream.
"""

from dataclasses import dataclass
from typing import Literal, Optional

import librosa
import numpy as np
from scipy import signal as scipy_signal

from vocaltract.core import fft as fft_engine
from vocaltract.core.filters import resample_linear
from vocaltract.core.tract import RealtimeLPCAnalyzer

VoiceQuality = Literal["voiced", "unvoiced", "silent"]

# Voice-quality policy
SILENCE_INTENSITY = 0.02
VOICED_MIN_INTENSITY = 0.03
VOICED_MAX_ZCR = 0.3
PITCH_MIN_HZ = 50.0
PITCH_MAX_HZ = 500.0
# Fraction of the zero-lag energy the pitch peak must reach.
PITCH_CORRELATION_THRESHOLD = 0.3

ROLLOFF_FRACTION = 0.85
# LPC runs on frames resampled to this rate.
LPC_SAMPLE_RATE = 8000


@dataclass
class AudioFeatures:
    """Acoustic features of one analysis frame."""

    fundamental_frequency: Optional[float]  # Hz; None = unvoiced/undetermined
    intensity: float                        # RMS
    voice_quality: VoiceQuality

    spectral_centroid: float   # Hz
    spectral_spread: float     # Hz
    spectral_flux: float
    spectral_rolloff: float    # Hz

    formants: list[float]      # ascending, Hz
    zero_crossing_rate: float

    lpc_coefficients: np.ndarray
    reflection_coefficients: np.ndarray
    vocal_tract_areas: np.ndarray
    log_vocal_tract_areas: np.ndarray
    lpc_gain: float = 0.0


# ---------------------------------------------------------------------------
# Time-domain measures
# ---------------------------------------------------------------------------

def rms(frame: np.ndarray) -> float:
    x = np.asarray(frame, dtype=np.float64)
    if x.size == 0:
        return 0.0
    return float(np.sqrt(np.mean(x * x)))


def zero_crossing_rate(frame: np.ndarray) -> float:
    """
    Fraction of adjacent sample pairs whose sign class differs.

    A sample is "positive" when x >= 0, so a step from -0.1 to 0.0 counts
    as a crossing and a step from 0.0 to 0.1 does not.
    """
    x = np.asarray(frame)
    if x.size < 2:
        return 0.0
    non_negative = x >= 0
    return float(np.count_nonzero(non_negative[1:] != non_negative[:-1]) / (x.size - 1))


def estimate_pitch(frame: np.ndarray, sample_rate: float) -> Optional[float]:
    """
    Autocorrelation pitch estimate in the 50-500 Hz range.

    Searches lags [floor(sr/500), floor(sr/50)) for the largest
    autocorrelation value (first one on ties).

    Returns:
        sample_rate / lag, or None when the peak is not positive or falls
        below 0.3 times the zero-lag energy.
    """
    x = np.asarray(frame, dtype=np.float64)
    if x.size == 0:
        return None

    min_period = max(1, int(sample_rate // PITCH_MAX_HZ))
    max_period = int(sample_rate // PITCH_MIN_HZ)
    if max_period <= min_period:
        return None

    # r[lag] for lag in [0, len - 1]; longer lags have no overlap
    r = scipy_signal.correlate(x, x, mode="full")[x.size - 1 :]
    if r.size < max_period:
        r = np.pad(r, (0, max_period - r.size))

    candidates = r[min_period:max_period]
    best = int(np.argmax(candidates))
    peak = float(candidates[best])
    if peak <= 0.0 or peak < PITCH_CORRELATION_THRESHOLD * float(r[0]):
        return None
    return float(sample_rate) / (min_period + best)


def classify_voice(
    intensity: float,
    zcr: float,
    f0: Optional[float],
) -> VoiceQuality:
    """Three-way voiced / unvoiced / silent decision with fixed thresholds."""
    if intensity < SILENCE_INTENSITY:
        return "silent"
    if (
        f0 is not None
        and PITCH_MIN_HZ < f0 < PITCH_MAX_HZ
        and zcr < VOICED_MAX_ZCR
        and intensity > VOICED_MIN_INTENSITY
    ):
        return "voiced"
    return "unvoiced"


# ---------------------------------------------------------------------------
# Spectral descriptors
# ---------------------------------------------------------------------------

def spectral_centroid(power: np.ndarray, frequencies: np.ndarray) -> float:
    total = float(np.sum(power))
    if total <= 0.0:
        return 0.0
    return float(np.sum(frequencies * power) / total)


def spectral_spread(power: np.ndarray, frequencies: np.ndarray, centroid: float) -> float:
    total = float(np.sum(power))
    if total <= 0.0:
        return 0.0
    return float(np.sqrt(np.sum((frequencies - centroid) ** 2 * power) / total))


def spectral_flux(power: np.ndarray, previous: np.ndarray) -> float:
    """Sum of positive bin-wise power increases since the previous frame."""
    return float(np.sum(np.maximum(power - previous, 0.0)))


def spectral_rolloff(
    power: np.ndarray,
    frequencies: np.ndarray,
    fraction: float = ROLLOFF_FRACTION,
) -> float:
    """
    Lowest bin frequency where cumulative power reaches ``fraction`` of the total.

    Falls back to the highest bin when rounding keeps the cumulative sum
    below the target.
    """
    cumulative = np.cumsum(power)
    target = float(cumulative[-1]) * fraction
    reached = np.nonzero(cumulative >= target)[0]
    if reached.size == 0:
        return float(frequencies[-1])
    return float(frequencies[reached[0]])


# ---------------------------------------------------------------------------
# Extractors
# ---------------------------------------------------------------------------

class FeatureExtractor:
    """
    Extracts one :class:`AudioFeatures` record per frame.

    Holds the previous power spectrum for spectral flux and an LPC analyzer
    running at 8 kHz. Not safe to share between concurrent streams.
    """

    def __init__(
        self,
        sample_rate: int = 44100,
        frame_size: int = 2048,
        lpc_order: int = 14,
        pre_emphasis: float = 0.97,
    ):
        """
        Initialize the extractor.

        Args:
            sample_rate: Rate of the incoming frames in Hz.
            frame_size: Expected frame length in samples.
            lpc_order: LPC prediction order.
            pre_emphasis: Pre-emphasis applied before LPC.
        """
        self.sample_rate = sample_rate
        self.frame_size = frame_size
        self.lpc_analyzer = RealtimeLPCAnalyzer(
            order=lpc_order,
            pre_emphasis=pre_emphasis,
            frame_size=frame_size,
            sample_rate=LPC_SAMPLE_RATE,
        )
        self._previous_spectrum: Optional[np.ndarray] = None

    @property
    def has_history(self) -> bool:
        return self._previous_spectrum is not None

    def extract_features(self, frame: np.ndarray) -> AudioFeatures:
        """
        Analyze one frame.

        Args:
            frame: 1-D samples at ``self.sample_rate``.

        Returns:
            AudioFeatures for the frame.
        """
        x = np.asarray(frame, dtype=np.float32)
        if x.size == 0:
            raise ValueError("frame must contain at least one sample")

        intensity = rms(x)
        zcr = zero_crossing_rate(x)

        # FFT path
        windowed = fft_engine.zero_pad(fft_engine.apply_window(x, "hamming"))
        power = fft_engine.power_spectrum(windowed)
        frequencies = fft_engine.frequency_bins(windowed.size, self.sample_rate)

        centroid = spectral_centroid(power, frequencies)
        spread = spectral_spread(power, frequencies, centroid)
        flux = self._update_flux(power)
        rolloff = spectral_rolloff(power, frequencies)

        f0 = estimate_pitch(x, self.sample_rate)
        voice_quality = classify_voice(intensity, zcr, f0)

        # LPC path
        downsampled = resample_linear(x, self.sample_rate, LPC_SAMPLE_RATE)
        tract = self.lpc_analyzer.analyze_frame(downsampled)

        return AudioFeatures(
            fundamental_frequency=f0,
            intensity=intensity,
            voice_quality=voice_quality,
            spectral_centroid=centroid,
            spectral_spread=spread,
            spectral_flux=flux,
            spectral_rolloff=rolloff,
            formants=tract.formants,
            zero_crossing_rate=zcr,
            lpc_coefficients=tract.lpc.coefficients,
            reflection_coefficients=tract.lpc.reflection_coefficients,
            vocal_tract_areas=tract.areas,
            log_vocal_tract_areas=tract.log_areas,
            lpc_gain=tract.lpc.gain,
        )

    def _update_flux(self, power: np.ndarray) -> float:
        previous = self._previous_spectrum
        self._previous_spectrum = power.copy()
        # First frame (or a new transform size) only seeds the history
        if previous is None or previous.shape != power.shape:
            return 0.0
        return spectral_flux(power, previous)

    def update_parameters(
        self,
        sample_rate: Optional[int] = None,
        frame_size: Optional[int] = None,
        lpc_order: Optional[int] = None,
    ) -> None:
        if sample_rate is not None:
            self.sample_rate = sample_rate
        if frame_size is not None:
            self.frame_size = frame_size
        if lpc_order is not None:
            self.lpc_analyzer.update_parameters(order=lpc_order)

    def reset(self) -> None:
        """Forget the spectral-flux history."""
        self._previous_spectrum = None


class BatchFeatureExtractor:
    """
    Slides a window over a whole signal and extracts features per frame.

    Window and hop sizes below one sample are clamped to one.
    """

    def __init__(
        self,
        sample_rate: int = 44100,
        window_size: int = 2048,
        hop_size: int = 512,
        lpc_order: int = 14,
        pre_emphasis: float = 0.97,
    ):
        self.window_size = max(1, int(window_size))
        self.hop_size = max(1, int(hop_size))
        self.sample_rate = sample_rate
        self.extractor = FeatureExtractor(sample_rate, self.window_size, lpc_order, pre_emphasis)

    def extract(self, signal: np.ndarray) -> list[AudioFeatures]:
        """
        Extract features from every full window of ``signal``.

        Flux history carries across the frames of one call and is cleared
        at the start of each call.
        """
        y = np.ascontiguousarray(signal, dtype=np.float32)
        if y.shape[0] < self.window_size:
            return []

        self.extractor.reset()
        frames = librosa.util.frame(
            y, frame_length=self.window_size, hop_length=self.hop_size, axis=0
        )
        return [self.extractor.extract_features(frame) for frame in frames]

    def frame_times(self, n_frames: int) -> np.ndarray:
        """Start time in seconds of each extracted frame."""
        return librosa.frames_to_time(
            np.arange(n_frames), sr=self.sample_rate, hop_length=self.hop_size
        )
