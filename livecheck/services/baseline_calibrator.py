"""
Baseline Calibrator for subject-specific resting-state reference values
"""
import logging
from typing import Optional, Sequence

import numpy as np

from ..models.data_models import Baseline, FrameMetrics

logger = logging.getLogger(__name__)


class BaselineCalibrator:
    """
    Derives a resting reference from the first stable frames of a challenge.

    The first `min_frames` frames with a detected face are averaged into a
    Baseline. Once computed the baseline is latched: later calls return the
    same value until `reset()` is called for the next challenge.
    """

    def __init__(self, min_frames: int = 5):
        if min_frames < 1:
            raise ValueError(f"min_frames must be at least 1, got {min_frames}")
        self.min_frames = min_frames
        self._baseline: Optional[Baseline] = None

    @property
    def baseline(self) -> Optional[Baseline]:
        return self._baseline

    @property
    def is_ready(self) -> bool:
        return self._baseline is not None

    def calibrate(self, snapshot: Sequence[FrameMetrics]) -> Optional[Baseline]:
        """
        Compute the baseline from a history snapshot.

        Args:
            snapshot: Ordered frames since the history was last cleared

        Returns:
            Baseline once enough face-detected frames exist, otherwise None
        """
        if self._baseline is not None:
            return self._baseline

        qualifying = [frame for frame in snapshot if frame.face_detected]
        if len(qualifying) < self.min_frames:
            return None

        window = qualifying[:self.min_frames]
        values = np.array([
            [
                frame.eye_open_average,
                frame.smiling,
                frame.head_yaw,
                frame.head_pitch,
                frame.head_roll,
            ]
            for frame in window
        ])
        ear, mar, yaw, pitch, roll = values.mean(axis=0)

        self._baseline = Baseline(
            eye_aspect_ratio=float(ear),
            mouth_aspect_ratio=float(mar),
            yaw=float(yaw),
            pitch=float(pitch),
            roll=float(roll),
            frame_count=len(window),
        )
        logger.debug(
            f"Baseline calibrated from {len(window)} frames: "
            f"ear={ear:.3f}, yaw={yaw:.1f}, pitch={pitch:.1f}"
        )
        return self._baseline

    def reset(self) -> None:
        self._baseline = None
