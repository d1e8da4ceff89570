"""Real-time vocal-tract analysis: FFT, LPC and per-frame acoustic features."""

from vocaltract.config import AnalysisConfig
from vocaltract.core.buffer import AudioBufferProcessor, CircularBuffer
from vocaltract.core.features import AudioFeatures, BatchFeatureExtractor, FeatureExtractor
from vocaltract.core.fft import InvalidSizeError
from vocaltract.core.stft import STFT
from vocaltract.core.stream import LiveFeatures, RealtimeAnalyzer
from vocaltract.core.tract import RealtimeLPCAnalyzer
from vocaltract.io.exporter import FeatureExporter

__version__ = "0.1.0"
__all__ = [
    "AnalysisConfig",
    "AudioBufferProcessor",
    "CircularBuffer",
    "AudioFeatures",
    "BatchFeatureExtractor",
    "FeatureExtractor",
    "InvalidSizeError",
    "STFT",
    "LiveFeatures",
    "RealtimeAnalyzer",
    "RealtimeLPCAnalyzer",
    "FeatureExporter",
]
