"""Analysis configuration shared by the realtime stream and the CLI."""

from dataclasses import dataclass, fields, replace

import numpy as np

from vocaltract.core.buffer import BUFFER_SIZE_RANGE, FRAME_SIZE_RANGE, MIN_HOP_SIZE
from vocaltract.core.filters import WindowType


@dataclass
class AnalysisConfig:
    """Construction-time parameters of one analysis stream."""

    sample_rate: int = 44100
    frame_size: int = 2048
    hop_size: int = 512
    buffer_size: int = 16384
    lpc_order: int = 14
    pre_emphasis: float = 0.97
    window_type: WindowType = "blackman"
    # Latest frames whose peak |x| stays at or below this are not analyzed.
    activity_threshold: float = 0.01

    def clamped(self) -> "AnalysisConfig":
        """
        Copy with buffer, frame and hop sizes forced into their valid ranges.

        The frame never exceeds the buffer and the hop never exceeds the frame.
        """
        buffer_size = int(np.clip(self.buffer_size, *BUFFER_SIZE_RANGE))
        frame_size = min(int(np.clip(self.frame_size, *FRAME_SIZE_RANGE)), buffer_size)
        return replace(
            self,
            buffer_size=buffer_size,
            frame_size=frame_size,
            hop_size=int(np.clip(self.hop_size, MIN_HOP_SIZE, frame_size)),
            lpc_order=max(1, int(self.lpc_order)),
        )

    def updated(self, **changes) -> "AnalysisConfig":
        """Copy with the given non-None fields replaced."""
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"Unknown config fields: {sorted(unknown)}")
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
