"""Bounded, decimated history of stabilized detections."""

from __future__ import annotations

from collections import deque
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from steadyface.stabilizer.types import DetectionResult

DEFAULT_CAPACITY: int = 30
DEFAULT_SAMPLE_EVERY: int = 5


class HistoryBuffer:
    """FIFO ring of the primary subject's detection, one sample every K frames.

    Only the first detection of a sampled frame is kept (single dominant
    subject). Frames without detections still advance the frame counter but
    never add an entry.
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY, sample_every: int = DEFAULT_SAMPLE_EVERY) -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        if sample_every < 1:
            raise ValueError(f"sample_every must be >= 1, got {sample_every}")
        self._capacity = capacity
        self._entries: deque[DetectionResult] = deque(maxlen=capacity)
        self._sample_every = sample_every
        self._frame_count: int = 0

    def offer(self, detections: Sequence[DetectionResult]) -> bool:
        """Record one processed frame.

        Returns:
            True if the buffer contents changed.
        """
        sampled = self._frame_count % self._sample_every == 0
        self._frame_count += 1
        if not sampled or not detections:
            return False
        self._entries.append(detections[0])
        return True

    def push(self, detection: DetectionResult) -> None:
        """Append a detection, evicting the oldest entry at capacity."""
        self._entries.append(detection)

    def snapshot(self) -> tuple[DetectionResult, ...]:
        """Return the entries, oldest first."""
        return tuple(self._entries)

    def clear(self) -> None:
        """Drop all entries and restart the frame counter."""
        self._entries.clear()
        self._frame_count = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def sample_every(self) -> int:
        return self._sample_every

    @property
    def frame_count(self) -> int:
        """Number of frames offered since creation or the last ``clear``."""
        return self._frame_count

    def __len__(self) -> int:
        return len(self._entries)
