"""
Circular audio buffering between a capture source and frame analysis.

:class:`CircularBuffer` absorbs samples at the capture cadence with lossy
overwrite on overflow (no backpressure); :class:`AudioBufferProcessor`
carves analysis frames out of it.

Neither class locks. One writer and one reader are expected, with the
caller serializing access (see :class:`vocaltract.core.stream.RealtimeAnalyzer`).
"""

import logging
from typing import Callable, Optional

import numpy as np

from vocaltract.core.filters import WindowType, pre_emphasis, resample_linear, window

logger = logging.getLogger(__name__)

FALLBACK_SIZES = (8192, 4096, 2048, 1024, 512)
MIN_CAPACITY = 256

BUFFER_SIZE_RANGE = (2048, 65536)
FRAME_SIZE_RANGE = (256, 4096)
MIN_HOP_SIZE = 128

Allocator = Callable[[int], np.ndarray]


def _allocate(size: int) -> np.ndarray:
    return np.zeros(size, dtype=np.float32)


def negotiate_capacity(
    requested: int,
    allocator: Optional[Allocator] = None,
) -> tuple[int, np.ndarray]:
    """
    Allocate backing storage, degrading to smaller sizes on failure.

    Tries ``requested`` and then each fallback size not larger than it, and
    settles for 256 samples if none can be allocated. Never raises.

    Args:
        requested: Desired capacity in samples.
        allocator: Callable returning storage of the given length.

    Returns:
        Tuple of (capacity, storage).
    """
    allocate = allocator or _allocate
    candidates = [requested, *FALLBACK_SIZES]

    for size in candidates:
        if size > requested or size <= 0:
            continue
        try:
            storage = allocate(size)
        except (MemoryError, ValueError) as e:
            logger.warning("Failed to allocate %d samples (%s), trying smaller", size, e)
            continue
        logger.debug("CircularBuffer allocated with size %d", size)
        return size, storage

    logger.warning("Using minimum buffer size: %d", MIN_CAPACITY)
    return MIN_CAPACITY, _allocate(MIN_CAPACITY)


class CircularBuffer:
    """
    Fixed-capacity ring buffer of float32 samples.

    The buffer becomes full when the write cursor catches the read cursor.
    Writing into a full buffer overwrites the oldest sample, pushes the read
    cursor forward by one and counts the drop in ``overflow_count``. Reading
    from an empty buffer yields zeros.
    """

    def __init__(self, size: int, allocator: Optional[Allocator] = None):
        self._size, self._buffer = negotiate_capacity(int(size), allocator)
        self._write_index = 0
        self._read_index = 0
        self._filled = False
        self.overflow_count = 0

    @property
    def capacity(self) -> int:
        return self._size

    @property
    def write_index(self) -> int:
        return self._write_index

    @property
    def read_index(self) -> int:
        return self._read_index

    def is_full(self) -> bool:
        return self._filled

    def available(self) -> int:
        """Unread samples: capacity when full, else the wrapped read-to-write distance."""
        if self._filled:
            return self._size
        return (self._write_index - self._read_index) % self._size

    def write(self, data: np.ndarray) -> None:
        """Append samples in order, overwriting the oldest ones on overflow."""
        x = np.asarray(data, dtype=np.float32).ravel()
        n = x.size
        if n == 0:
            return

        size = self._size
        free = size - self.available()
        start = self._write_index

        if n <= free:
            self._buffer[(start + np.arange(n)) % size] = x
            self._write_index = (start + n) % size
            if n == free:
                self._filled = True
            return

        # Overflow: only the newest `size` samples survive and the read
        # cursor ends up on the write cursor.
        if n >= size:
            self._buffer[(start + n - size + np.arange(size)) % size] = x[-size:]
        else:
            self._buffer[(start + np.arange(n)) % size] = x
        self._write_index = (start + n) % size
        self._read_index = self._write_index
        self._filled = True
        self.overflow_count += n - free

    def read(self, length: int) -> np.ndarray:
        """Consume up to ``length`` samples; missing samples read as 0."""
        length = max(int(length), 0)
        out = np.zeros(length, dtype=np.float32)
        count = min(length, self.available())
        if count == 0:
            return out

        out[:count] = self._buffer[(self._read_index + np.arange(count)) % self._size]
        self._read_index = (self._read_index + count) % self._size
        self._filled = False
        return out

    def peek(self, length: int, offset: int = 0) -> np.ndarray:
        """
        Copy ``length`` samples ending ``offset`` samples behind the write cursor.

        Cursors are left untouched.
        """
        length = max(int(length), 0)
        start = self._write_index - length - int(offset)
        return self._buffer[(start + np.arange(length)) % self._size].copy()

    def clear(self) -> None:
        self._buffer.fill(0)
        self._write_index = 0
        self._read_index = 0
        self._filled = False
        self.overflow_count = 0


class AudioBufferProcessor:
    """
    Produces analysis frames from a circular buffer.

    Sizes are clamped into their valid ranges rather than rejected: buffer
    2048-65536, frame 256-4096 (and at most the negotiated buffer
    capacity) and hop 128-frame_size samples.
    """

    def __init__(
        self,
        buffer_size: int = 16384,
        frame_size: int = 2048,
        hop_size: int = 512,
        window_type: WindowType = "blackman",
        allocator: Optional[Allocator] = None,
    ):
        """
        Initialize the processor.

        Args:
            buffer_size: Requested ring capacity in samples.
            frame_size: Samples per analysis frame.
            hop_size: Samples the read cursor advances per windowed frame.
            window_type: Window applied by :meth:`get_windowed_frames`.
            allocator: Storage allocator forwarded to the ring buffer.
        """
        valid_buffer = int(np.clip(buffer_size, *BUFFER_SIZE_RANGE))
        self._buffer = CircularBuffer(valid_buffer, allocator)

        # A frame never exceeds the capacity actually negotiated
        valid_frame = min(int(np.clip(frame_size, *FRAME_SIZE_RANGE)), self._buffer.capacity)
        valid_hop = int(np.clip(hop_size, MIN_HOP_SIZE, valid_frame))

        self._frame_size = valid_frame
        self._hop_size = valid_hop
        self._window = window(window_type, valid_frame)

    @property
    def buffer(self) -> CircularBuffer:
        return self._buffer

    @property
    def frame_size(self) -> int:
        return self._frame_size

    @property
    def hop_size(self) -> int:
        return self._hop_size

    def add_audio_data(self, data: np.ndarray) -> None:
        self._buffer.write(data)

    def get_frames(self) -> list[np.ndarray]:
        """The most recent frame (for display), or nothing if too little is buffered."""
        if self._buffer.available() < self._frame_size:
            return []
        return [self._buffer.peek(self._frame_size)]

    def get_windowed_frames(self) -> list[np.ndarray]:
        """
        Drain overlapping windowed frames.

        Each frame starts at the read cursor; after it is taken the cursor
        advances by ``hop_size``. Stops once fewer than ``frame_size``
        samples remain unread.
        """
        frames = []
        while self._buffer.available() >= self._frame_size:
            offset = self._buffer.available() - self._frame_size
            frame = self._buffer.peek(self._frame_size, offset)
            frames.append((frame * self._window).astype(np.float32))
            self._buffer.read(self._hop_size)
        return frames

    @staticmethod
    def create_hamming_window(size: int) -> np.ndarray:
        return window("hamming", size).astype(np.float32)

    @staticmethod
    def create_hann_window(size: int) -> np.ndarray:
        return window("hann", size).astype(np.float32)

    @staticmethod
    def apply_preemphasis(data: np.ndarray, alpha: float = 0.97) -> np.ndarray:
        return pre_emphasis(data, alpha).astype(np.float32)

    @staticmethod
    def resample(data: np.ndarray, from_rate: float, to_rate: float) -> np.ndarray:
        return resample_linear(data, from_rate, to_rate)

    def clear(self) -> None:
        self._buffer.clear()
