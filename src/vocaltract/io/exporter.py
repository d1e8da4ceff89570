"""
Feature-record serialization.

Turns per-frame :class:`AudioFeatures` into JSON-ready dictionaries for
visualization layers: scalar descriptors, formants and the vocal-tract area
function per frame, under a small metadata header.
"""

import json
from dataclasses import dataclass
from typing import Any, Optional, Sequence

import numpy as np

from vocaltract.core.features import AudioFeatures


@dataclass
class FeatureMetadata:
    """Metadata header for a feature document."""

    sample_rate: int
    frame_size: int
    hop_size: int
    lpc_order: int
    n_frames: int
    duration: float
    schema_version: str = "1.0"


class FeatureExporter:
    """
    Exports feature records to plain dictionaries / JSON text.

    NaN and infinite values become ``null``; arrays become lists.
    """

    def __init__(self, precision: int = 4):
        """
        Initialize the exporter.

        Args:
            precision: Decimal places for floating point values.
        """
        self.precision = precision

    def _round(self, value: float) -> Optional[float]:
        """Round to configured precision; non-finite values map to None."""
        f = float(value)
        if np.isnan(f) or np.isinf(f):
            return None
        return round(f, self.precision)

    def _round_array(self, values: np.ndarray) -> list[Optional[float]]:
        return [self._round(v) for v in np.asarray(values, dtype=np.float64)]

    def frame_to_dict(
        self,
        features: AudioFeatures,
        index: int = 0,
        time: Optional[float] = None,
    ) -> dict[str, Any]:
        """
        Build a single frame's data dictionary.

        Args:
            features: Source feature record.
            index: Frame index.
            time: Frame start time in seconds, if known.

        Returns:
            Dictionary with all frame data.
        """
        f0 = features.fundamental_frequency
        return {
            "frame_index": index,
            "time": self._round(time) if time is not None else None,
            "fundamental_frequency": self._round(f0) if f0 is not None else None,
            "intensity": self._round(features.intensity),
            "voice_quality": features.voice_quality,
            "zero_crossing_rate": self._round(features.zero_crossing_rate),

            # Spectral descriptors
            "spectral_centroid": self._round(features.spectral_centroid),
            "spectral_spread": self._round(features.spectral_spread),
            "spectral_flux": self._round(features.spectral_flux),
            "spectral_rolloff": self._round(features.spectral_rolloff),

            # Vocal tract
            "formants": [self._round(f) for f in features.formants],
            "lpc_gain": self._round(features.lpc_gain),
            "lpc_coefficients": self._round_array(features.lpc_coefficients),
            "reflection_coefficients": self._round_array(features.reflection_coefficients),
            "vocal_tract_areas": self._round_array(features.vocal_tract_areas),
            "log_vocal_tract_areas": self._round_array(features.log_vocal_tract_areas),
        }

    def build_document(
        self,
        frames: Sequence[AudioFeatures],
        metadata: FeatureMetadata,
        frame_times: Optional[Sequence[float]] = None,
    ) -> dict[str, Any]:
        """
        Build the complete feature document.

        Args:
            frames: One record per analysis frame.
            metadata: Header describing the analysis.
            frame_times: Optional start time of each frame.

        Returns:
            Document dictionary with "metadata" and "frames".
        """
        return {
            "metadata": {
                "sample_rate": metadata.sample_rate,
                "frame_size": metadata.frame_size,
                "hop_size": metadata.hop_size,
                "lpc_order": metadata.lpc_order,
                "n_frames": metadata.n_frames,
                "duration": self._round(metadata.duration),
                "schema_version": metadata.schema_version,
            },
            "frames": [
                self.frame_to_dict(
                    feat,
                    index=i,
                    time=frame_times[i] if frame_times is not None else None,
                )
                for i, feat in enumerate(frames)
            ],
        }

    def to_json(
        self,
        frames: Sequence[AudioFeatures],
        metadata: FeatureMetadata,
        frame_times: Optional[Sequence[float]] = None,
        indent: Optional[int] = 2,
    ) -> str:
        """Serialize :meth:`build_document` to JSON text."""
        return json.dumps(self.build_document(frames, metadata, frame_times), indent=indent)
