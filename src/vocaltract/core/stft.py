"""
Short-Time Fourier Transform.

Frames a signal at a fixed hop, windows each frame, zero-pads to the next
power of two and keeps the non-negative frequency bins. The magnitude and dB
spectrograms are what a time-frequency renderer consumes.
"""

import librosa
import numpy as np

from vocaltract.core import fft as fft_engine
from vocaltract.core.filters import WindowType, window


class STFT:
    """
    Framed FFT analysis with overlapping windows.

    Frame count is floor((len - window_size) / hop_size) + 1; signals shorter
    than one window produce zero frames.
    """

    def __init__(
        self,
        window_size: int = 2048,
        hop_size: int = 512,
        window_type: WindowType = "hamming",
    ):
        """
        Initialize the STFT.

        Args:
            window_size: Samples per frame (clamped to at least 1).
            hop_size: Samples between frame starts (clamped to at least 1).
            window_type: Analysis window ("hamming", "hann", "blackman").
        """
        # Non-positive sizes are clamped to one sample
        self.window_size = max(1, int(window_size))
        self.hop_size = max(1, int(hop_size))
        self.window_type = window_type
        self.fft_size = fft_engine.next_power_of_two(self.window_size)
        # Validates the window name up front.
        self._window = window(window_type, self.window_size)

    @property
    def n_bins(self) -> int:
        return self.fft_size // 2 + 1

    def frames(self, signal: np.ndarray) -> np.ndarray:
        """Raw (unwindowed) frames, shape (n_frames, window_size)."""
        y = np.ascontiguousarray(signal, dtype=np.float32)
        if y.shape[0] < self.window_size:
            return np.zeros((0, self.window_size), dtype=np.float32)
        return librosa.util.frame(
            y, frame_length=self.window_size, hop_length=self.hop_size, axis=0
        )

    def process(self, signal: np.ndarray) -> np.ndarray:
        """
        Compute the complex STFT.

        Args:
            signal: 1-D audio samples.

        Returns:
            complex128 array of shape (n_frames, fft_size // 2 + 1).
        """
        framed = self.frames(signal)
        if framed.shape[0] == 0:
            return np.zeros((0, self.n_bins), dtype=np.complex128)

        windowed = framed.astype(np.float64) * self._window
        padded = fft_engine.zero_pad(windowed)
        return fft_engine.rfft(padded)

    def magnitude_spectrogram(self, signal: np.ndarray) -> np.ndarray:
        """Per-frame bin magnitudes."""
        return np.abs(self.process(signal))

    def power_spectrogram_db(self, signal: np.ndarray, reference: float = 1.0) -> np.ndarray:
        """Per-frame power in dB with the same 1e-12 floor as the FFT engine."""
        return fft_engine.power_to_db(np.abs(self.process(signal)) ** 2, reference)

    def frequencies(self, sample_rate: float) -> np.ndarray:
        """Bin-center frequencies of each spectrogram row."""
        return fft_engine.frequency_bins(self.fft_size, sample_rate)

    def frame_times(self, n_frames: int, sample_rate: float) -> np.ndarray:
        """Start time in seconds of each frame."""
        return librosa.frames_to_time(
            np.arange(n_frames), sr=sample_rate, hop_length=self.hop_size
        )
