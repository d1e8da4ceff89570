"""
Real-time analysis stream for live visualization.

Architecture Overview
---------------------
::

    Capture callback
        │
        ▼  process_chunk(chunk)          (writer side)
    AudioBufferProcessor ── CircularBuffer (e.g. 16 384 samples @ 44 100 Hz)
        │
        ▼  poll()                        (reader side, fixed-period timer)
    latest frame ──► activity gate ──► FeatureExtractor
        │                                   ├─► FFT spectral descriptors
        │                                   └─► RealtimeLPCAnalyzer @ 8 kHz
        ▼
    LiveFeatures  (returned to the caller for rendering)

Design Goals
------------
* **Any polling rate**: polling faster than audio arrives re-analyzes the
  latest frame; polling slower lets the ring buffer overwrite old samples
  (counted in ``overflow_count``).
* **Thread-safe**: process_chunk() may run on a capture thread while poll()
  runs on the analysis thread; one lock serializes the two buffer sides and
  a second one guards the extractor, so capture never waits on analysis.
* **One stream per instance**: spectral-flux history and LPC parameters
  belong to this analyzer only.
"""

import threading
from dataclasses import dataclass
from typing import Optional

import numpy as np

from vocaltract.config import AnalysisConfig
from vocaltract.core.buffer import AudioBufferProcessor
from vocaltract.core.features import AudioFeatures, FeatureExtractor


@dataclass
class LiveFeatures:
    """
    Snapshot produced by one poll.

    ``features`` is None when the latest frame was too quiet to analyze.
    """

    chunk_index: int = 0
    time_sec: float = 0.0
    peak: float = 0.0
    features: Optional[AudioFeatures] = None


class RealtimeAnalyzer:
    """
    Polling driver around one buffer processor and one feature extractor.

    Parameters
    ----------
    config:
        Stream configuration; sizes are clamped into their valid ranges.
    """

    def __init__(self, config: Optional[AnalysisConfig] = None):
        self.config = (config or AnalysisConfig()).clamped()
        self._lock = threading.Lock()
        self._analysis_lock = threading.Lock()
        self._samples_written = 0
        self._chunk_index = 0

        self.processor = AudioBufferProcessor(
            buffer_size=self.config.buffer_size,
            frame_size=self.config.frame_size,
            hop_size=self.config.hop_size,
            window_type=self.config.window_type,
        )
        self.extractor = FeatureExtractor(
            sample_rate=self.config.sample_rate,
            frame_size=self.processor.frame_size,
            lpc_order=self.config.lpc_order,
            pre_emphasis=self.config.pre_emphasis,
        )

    @property
    def chunk_index(self) -> int:
        return self._chunk_index

    @property
    def overflow_count(self) -> int:
        return self.processor.buffer.overflow_count

    def process_chunk(self, chunk: np.ndarray) -> None:
        """
        Push one capture block into the ring buffer.

        Parameters
        ----------
        chunk:
            1-D float samples in [-1, 1] at ``config.sample_rate``.
        """
        data = np.asarray(chunk, dtype=np.float32).ravel()
        with self._lock:
            self.processor.add_audio_data(data)
            self._samples_written += data.size
            self._chunk_index += 1

    def poll(self) -> Optional[LiveFeatures]:
        """
        Analyze the most recent frame.

        Returns
        -------
        LiveFeatures | None
            None until a full frame has been buffered. Quiet frames yield a
            snapshot with ``features=None``.
        """
        # Lock order: analysis, then buffer (same as reset)
        with self._analysis_lock:
            with self._lock:
                frames = self.processor.get_frames()
                chunk_index = self._chunk_index
                time_sec = self._samples_written / float(self.config.sample_rate)
            if not frames:
                return None

            frame = frames[-1]
            peak = float(np.max(np.abs(frame)))
            snapshot = LiveFeatures(chunk_index=chunk_index, time_sec=time_sec, peak=peak)
            if peak > self.config.activity_threshold:
                snapshot.features = self.extractor.extract_features(frame)
            return snapshot

    def drain_windowed_frames(self) -> list[np.ndarray]:
        """Consume all complete hop-spaced analysis frames from the buffer."""
        with self._lock:
            return self.processor.get_windowed_frames()

    def reset(self) -> None:
        """Clear the buffer, counters and spectral-flux history."""
        with self._analysis_lock, self._lock:
            self.processor.clear()
            self._samples_written = 0
            self._chunk_index = 0
            self.extractor.reset()
