"""
Frame-by-frame vocal-tract analysis.

Bundles an LPC analysis with the derived area function, log areas and
formant estimates. :func:`analyze_vocal_tract` is the pure form taking its
parameters explicitly; :class:`RealtimeLPCAnalyzer` holds one parameter set
for a single analysis stream.
"""

from dataclasses import dataclass, replace
from typing import Optional

import numpy as np

from vocaltract.core import lpc


@dataclass
class LPCParameters:
    """Analysis parameters for one stream."""

    order: int = 14
    pre_emphasis: float = 0.97
    frame_size: int = 512
    sample_rate: int = 8000


@dataclass
class VocalTractFrame:
    """LPC analysis of one frame plus its acoustic-tube interpretation."""

    lpc: lpc.LPCResult
    areas: np.ndarray      # (order + 1,) glottis-normalized
    log_areas: np.ndarray  # (order + 1,)
    formants: list[float]


def analyze_vocal_tract(
    frame: np.ndarray,
    params: LPCParameters,
    num_formants: int = 5,
) -> VocalTractFrame:
    """
    Run LPC on a frame and derive the vocal-tract description.

    Args:
        frame: Samples at ``params.sample_rate``.
        params: Order, pre-emphasis and sample rate to use.
        num_formants: Maximum number of formants to estimate.

    Returns:
        VocalTractFrame for the frame.
    """
    result = lpc.analyze(frame, params.order, params.pre_emphasis)
    areas = lpc.reflection_to_area(result.reflection_coefficients)
    return VocalTractFrame(
        lpc=result,
        areas=areas,
        log_areas=lpc.area_to_log_area(areas),
        formants=lpc.estimate_formants(result.coefficients, params.sample_rate, num_formants),
    )


class RealtimeLPCAnalyzer:
    """
    Parameterized LPC analyzer for a single stream.

    Holds no history beyond its parameters. Use one instance per stream:
    :meth:`update_parameters` mutates the shared parameter set.
    """

    def __init__(
        self,
        order: int = 14,
        pre_emphasis: float = 0.97,
        frame_size: int = 512,
        sample_rate: int = 8000,
        num_formants: int = 5,
    ):
        self._params = LPCParameters(
            order=order,
            pre_emphasis=pre_emphasis,
            frame_size=frame_size,
            sample_rate=sample_rate,
        )
        self.num_formants = num_formants

    @property
    def parameters(self) -> LPCParameters:
        """Snapshot of the current parameters."""
        return replace(self._params)

    def analyze_frame(self, frame: np.ndarray) -> VocalTractFrame:
        return analyze_vocal_tract(frame, self._params, self.num_formants)

    def update_parameters(
        self,
        order: Optional[int] = None,
        pre_emphasis: Optional[float] = None,
        frame_size: Optional[int] = None,
        sample_rate: Optional[int] = None,
    ) -> None:
        """Change only the parameters that are given."""
        if order is not None:
            self._params.order = order
        if pre_emphasis is not None:
            self._params.pre_emphasis = pre_emphasis
        if frame_size is not None:
            self._params.frame_size = frame_size
        if sample_rate is not None:
            self._params.sample_rate = sample_rate
