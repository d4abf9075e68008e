"""
Shared fixtures and synthetic frame scripts for liveness tests
"""
from typing import List

import pytest

from livecheck.models.data_models import ChallengeType, FrameMetrics

FRAME_INTERVAL_MS = 100


class FakeClock:
    """Millisecond clock whose time is set explicitly by the test"""

    def __init__(self, now: int = 0):
        self.now = now

    def __call__(self) -> int:
        return self.now


def make_frame(timestamp: int, **overrides) -> FrameMetrics:
    """Build a neutral, face-detected frame with open eyes."""
    values = {
        "face_detected": True,
        "left_eye_open": 0.95,
        "right_eye_open": 0.95,
        "smiling": 0.05,
        "head_yaw": 0.0,
        "head_pitch": 0.0,
        "head_roll": 0.0,
        "face_area": 40000.0,
        "timestamp": timestamp,
    }
    values.update(overrides)
    return FrameMetrics(**values)


def blink_frames(start: int) -> List[FrameMetrics]:
    """10 open, 3 closed, 5 open frames, 100ms apart."""
    frames = []
    for i in range(18):
        eye = 0.05 if 10 <= i < 13 else 0.95
        frames.append(make_frame(start + i * FRAME_INTERVAL_MS, left_eye_open=eye, right_eye_open=eye))
    return frames


def smile_frames(start: int) -> List[FrameMetrics]:
    frames = []
    for i in range(15):
        smiling = 0.9 if i >= 5 else 0.05
        frames.append(make_frame(start + i * FRAME_INTERVAL_MS, smiling=smiling))
    return frames


def turn_frames(start: int, yaw: float) -> List[FrameMetrics]:
    frames = []
    for i in range(8):
        frames.append(make_frame(start + i * FRAME_INTERVAL_MS, head_yaw=0.0 if i < 5 else yaw))
    return frames


def nod_frames(start: int) -> List[FrameMetrics]:
    frames = []
    for i in range(8):
        pitch = 0.0 if i < 5 else 25.0
        frames.append(make_frame(start + i * FRAME_INTERVAL_MS, head_pitch=pitch))
    return frames


def frames_for(challenge_type: ChallengeType, start: int) -> List[FrameMetrics]:
    """Synthetic frames that satisfy the given challenge."""
    if challenge_type == ChallengeType.BLINK:
        return blink_frames(start)
    if challenge_type == ChallengeType.SMILE:
        return smile_frames(start)
    if challenge_type == ChallengeType.TURN_LEFT:
        return turn_frames(start, -40.0)
    if challenge_type == ChallengeType.TURN_RIGHT:
        return turn_frames(start, 40.0)
    return nod_frames(start)


@pytest.fixture
def clock():
    return FakeClock()
