"""
Unit tests for FrameHistory
"""
import pytest
from hypothesis import given, strategies as st

from livecheck.services.frame_history import FrameHistory
from tests.conftest import make_frame


class TestFrameHistory:
    """Test suite for FrameHistory class"""

    def setup_method(self):
        self.history = FrameHistory(capacity=3)

    def test_starts_empty(self):
        assert len(self.history) == 0
        assert self.history.snapshot() == ()

    def test_default_capacity(self):
        assert FrameHistory().capacity == 30

    def test_rejects_non_positive_capacity(self):
        with pytest.raises(ValueError):
            FrameHistory(capacity=0)

    def test_push_keeps_arrival_order(self):
        frames = [make_frame(t) for t in (0, 100, 200)]
        for frame in frames:
            self.history.push(frame)

        assert self.history.snapshot() == tuple(frames)

    def test_evicts_oldest_when_full(self):
        """The oldest frame is dropped once the window is full"""
        frames = [make_frame(t) for t in (0, 100, 200, 300)]
        for frame in frames:
            self.history.push(frame)

        assert len(self.history) == 3
        assert [f.timestamp for f in self.history.snapshot()] == [100, 200, 300]

    def test_snapshot_is_detached_from_window(self):
        self.history.push(make_frame(0))
        snapshot = self.history.snapshot()
        self.history.push(make_frame(100))

        assert isinstance(snapshot, tuple)
        assert len(snapshot) == 1

    def test_clear(self):
        self.history.push(make_frame(0))
        self.history.clear()

        assert len(self.history) == 0


@given(
    capacity=st.integers(min_value=1, max_value=40),
    count=st.integers(min_value=0, max_value=100)
)
def test_window_holds_most_recent_frames(capacity, count):
    """
    Property: after N pushes the window holds the last min(N, capacity)
    frames in order.
    """
    history = FrameHistory(capacity)
    for i in range(count):
        history.push(make_frame(i))

    expected = list(range(count))[-capacity:] if count else []
    assert len(history) == min(count, capacity)
    assert [f.timestamp for f in history.snapshot()] == expected
