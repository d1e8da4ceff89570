"""Core signal processing modules."""

from vocaltract.core.buffer import AudioBufferProcessor, CircularBuffer
from vocaltract.core.features import BatchFeatureExtractor, FeatureExtractor
from vocaltract.core.stft import STFT
from vocaltract.core.tract import RealtimeLPCAnalyzer

__all__ = [
    "AudioBufferProcessor",
    "CircularBuffer",
    "BatchFeatureExtractor",
    "FeatureExtractor",
    "STFT",
    "RealtimeLPCAnalyzer",
]
