"""
Rolling window of recent frame metrics
"""
from collections import deque
from typing import Tuple

from ..models.data_models import FrameMetrics


class FrameHistory:
    """
    Fixed-capacity FIFO buffer of the most recent frames.

    Evaluators read the buffer through `snapshot()`, which returns an
    immutable tuple so readers can never mutate the live window.
    """

    def __init__(self, capacity: int = 30):
        if capacity < 1:
            raise ValueError(f"History capacity must be at least 1, got {capacity}")
        self._frames = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._frames.maxlen

    def push(self, frame: FrameMetrics) -> None:
        """Append a frame, evicting the oldest one once the window is full."""
        self._frames.append(frame)

    def snapshot(self) -> Tuple[FrameMetrics, ...]:
        return tuple(self._frames)

    def clear(self) -> None:
        self._frames.clear()

    def __len__(self) -> int:
        return len(self._frames)
