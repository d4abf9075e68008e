"""
Gesture evaluators for liveness challenges.

Every evaluator is a pure function of the frame history snapshot, the
challenge baseline and the challenge clock:

    (snapshot, baseline, elapsed_ms, duration_ms) -> EvaluationResult

Frames without a detected face carry no signal and are skipped. While the
baseline is not yet calibrated the evaluators report "waiting_for_face"
instead of failing. Once `elapsed_ms` reaches `duration_ms` without a
success, the evaluation resolves to a ChallengeTimeout failure.

Head yaw is negative when the subject turns left and positive when turning
right. Pitch is the vertical head angle.
"""
import logging
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..models.data_models import (
    Baseline,
    ChallengeType,
    EvaluationResult,
    EvaluationStatus,
    FailureReason,
    FrameMetrics,
)

logger = logging.getLogger(__name__)

# Blink thresholds on the averaged eye-open probability
EYE_CLOSED_THRESHOLD = 0.3
EYE_OPEN_THRESHOLD = 0.7
MIN_BLINK_DURATION_MS = 100
MAX_BLINK_DURATION_MS = 1000
NATURAL_CLOSED_RATIO = (0.10, 0.40)

SMILE_WINDOW = 10
SMILE_PROBABILITY_THRESHOLD = 0.6
SMILE_RATIO_THRESHOLD = 0.6

HEAD_TURN_THRESHOLD_DEG = 30.0
HEAD_TURN_NORMALIZATION_DEG = 60.0
NOD_THRESHOLD_DEG = 20.0
NOD_NORMALIZATION_DEG = 40.0

WAITING_FOR_FACE = "waiting_for_face"
TOO_CLOSE = "too_close"
TOO_FAR = "too_far"

EYE_OPEN = "open"
EYE_CLOSED = "closed"


def _detected(snapshot: Sequence[FrameMetrics]) -> List[FrameMetrics]:
    return [frame for frame in snapshot if frame.face_detected]


def _unresolved(elapsed_ms: int, duration_ms: int, detail: Optional[str] = None) -> EvaluationResult:
    """Pending until the challenge clock runs out, then a timeout failure."""
    if elapsed_ms >= duration_ms:
        return EvaluationResult(
            status=EvaluationStatus.FAILURE,
            confidence=0.0,
            failure_reason=FailureReason.CHALLENGE_TIMEOUT,
            detail=detail,
        )
    return EvaluationResult(status=EvaluationStatus.PENDING, detail=detail)


def face_position(frame: FrameMetrics, min_area: float, max_area: float) -> Optional[str]:
    """
    Check the size of the reported face box.

    A face larger than `max_area` is too close and one smaller than
    `min_area` is too far. An area of 0 means the client did not report one,
    and a bound of 0 is disabled.

    Returns:
        "too_close", "too_far", or None when the face is positioned well
    """
    if not frame.face_detected or frame.face_area <= 0:
        return None
    if max_area and frame.face_area > max_area:
        return TOO_CLOSE
    if min_area and frame.face_area < min_area:
        return TOO_FAR
    return None


def evaluate_positioning(
    frame: FrameMetrics,
    elapsed_ms: int,
    duration_ms: int,
    min_area: float,
    max_area: float,
) -> Optional[EvaluationResult]:
    """Hold the challenge while the face is mispositioned; None once it is in range."""
    detail = face_position(frame, min_area, max_area)
    if detail is None:
        return None
    return _unresolved(elapsed_ms, duration_ms, detail)


def eye_state(frame: FrameMetrics) -> Optional[str]:
    """
    Classify a frame as open, closed, or ambiguous (None).

    Both endpoints are inclusive: an average of exactly 0.3 is closed and
    exactly 0.7 is open.
    """
    average = frame.eye_open_average
    if average <= EYE_CLOSED_THRESHOLD:
        return EYE_CLOSED
    if average >= EYE_OPEN_THRESHOLD:
        return EYE_OPEN
    return None


def count_blink_cycles(frames: Sequence[FrameMetrics]) -> Tuple[int, float]:
    """
    Count natural open -> closed -> open cycles.

    Ambiguous frames are dropped and consecutive equal states are collapsed
    into runs. A cycle's duration is measured from the first closed frame to
    the first reopened frame and must lie in [100, 1000] ms.

    Returns:
        (number of valid cycles, closed-frame ratio over non-ambiguous frames)
    """
    states = []
    for frame in frames:
        state = eye_state(frame)
        if state is not None:
            states.append((frame.timestamp, state))

    if not states:
        return 0, 0.0

    # Each run is (state, timestamp of the run's first frame)
    runs = []
    for timestamp, state in states:
        if runs and runs[-1][0] == state:
            continue
        runs.append((state, timestamp))

    cycles = 0
    for i in range(1, len(runs) - 1):
        before, current, after = runs[i - 1], runs[i], runs[i + 1]
        if before[0] == EYE_OPEN and current[0] == EYE_CLOSED and after[0] == EYE_OPEN:
            closed_duration = after[1] - current[1]
            if MIN_BLINK_DURATION_MS <= closed_duration <= MAX_BLINK_DURATION_MS:
                cycles += 1
            else:
                logger.debug(f"Rejected blink cycle lasting {closed_duration}ms")

    closed_frames = sum(1 for _, state in states if state == EYE_CLOSED)
    return cycles, closed_frames / len(states)


def evaluate_blink(
    snapshot: Sequence[FrameMetrics],
    baseline: Optional[Baseline],
    elapsed_ms: int,
    duration_ms: int,
) -> EvaluationResult:
    """
    Detect at least one natural blink in the window.

    Confidence grows with the number of cycles seen and gets a bonus when
    the share of closed frames looks like natural blinking (10-40%).
    """
    if baseline is None:
        return _unresolved(elapsed_ms, duration_ms, WAITING_FOR_FACE)

    cycles, closed_ratio = count_blink_cycles(_detected(snapshot))
    logger.debug(f"blink: cycles={cycles}, closed_ratio={closed_ratio:.3f}")

    if cycles > 0:
        confidence = min(0.5 + 0.25 * (cycles - 1), 0.8)
        low, high = NATURAL_CLOSED_RATIO
        if low <= closed_ratio <= high:
            confidence += 0.2
        return EvaluationResult(
            status=EvaluationStatus.SUCCESS,
            confidence=min(confidence, 1.0),
        )

    return _unresolved(elapsed_ms, duration_ms)


def evaluate_smile(
    snapshot: Sequence[FrameMetrics],
    baseline: Optional[Baseline],
    elapsed_ms: int,
    duration_ms: int,
) -> EvaluationResult:
    """Require a sustained smile across the most recent detected frames."""
    if baseline is None:
        return _unresolved(elapsed_ms, duration_ms, WAITING_FOR_FACE)

    frames = _detected(snapshot)[-SMILE_WINDOW:]
    if len(frames) < SMILE_WINDOW:
        return _unresolved(elapsed_ms, duration_ms)

    smiling = np.array([frame.smiling for frame in frames])
    smile_ratio = float(np.mean(smiling >= SMILE_PROBABILITY_THRESHOLD))
    logger.debug(f"smile: ratio={smile_ratio:.2f}")

    if smile_ratio > SMILE_RATIO_THRESHOLD:
        return EvaluationResult(
            status=EvaluationStatus.SUCCESS,
            confidence=min(smile_ratio, 1.0),
        )

    return _unresolved(elapsed_ms, duration_ms)


def _evaluate_head_turn(
    snapshot: Sequence[FrameMetrics],
    baseline: Optional[Baseline],
    elapsed_ms: int,
    duration_ms: int,
    direction: str,
    fail_fast_on_mismatch: bool = True,
) -> EvaluationResult:
    if baseline is None:
        return _unresolved(elapsed_ms, duration_ms, WAITING_FOR_FACE)

    frames = _detected(snapshot)
    if not frames:
        return _unresolved(elapsed_ms, duration_ms)

    yaws = np.array([frame.head_yaw for frame in frames])
    yaw_range = float(yaws.max() - yaws.min())
    left_displacement = baseline.yaw - float(yaws.min())
    right_displacement = float(yaws.max()) - baseline.yaw

    if direction == "left":
        commanded, opposite = left_displacement, right_displacement
    else:
        commanded, opposite = right_displacement, left_displacement

    logger.debug(
        f"turn_{direction}: range={yaw_range:.1f}, commanded={commanded:.1f}, "
        f"opposite={opposite:.1f}, baseline_yaw={baseline.yaw:.1f}"
    )

    if yaw_range > HEAD_TURN_THRESHOLD_DEG and commanded > HEAD_TURN_THRESHOLD_DEG:
        return EvaluationResult(
            status=EvaluationStatus.SUCCESS,
            confidence=min(yaw_range / HEAD_TURN_NORMALIZATION_DEG, 1.0),
        )

    if fail_fast_on_mismatch and opposite > HEAD_TURN_THRESHOLD_DEG:
        return EvaluationResult(
            status=EvaluationStatus.FAILURE,
            confidence=0.0,
            failure_reason=FailureReason.GESTURE_MISMATCH,
            detail="head turned the wrong way",
        )

    return _unresolved(elapsed_ms, duration_ms)


def evaluate_turn_left(snapshot, baseline, elapsed_ms, duration_ms, fail_fast_on_mismatch=True) -> EvaluationResult:
    return _evaluate_head_turn(snapshot, baseline, elapsed_ms, duration_ms, "left", fail_fast_on_mismatch)


def evaluate_turn_right(snapshot, baseline, elapsed_ms, duration_ms, fail_fast_on_mismatch=True) -> EvaluationResult:
    return _evaluate_head_turn(snapshot, baseline, elapsed_ms, duration_ms, "right", fail_fast_on_mismatch)


def evaluate_nod(
    snapshot: Sequence[FrameMetrics],
    baseline: Optional[Baseline],
    elapsed_ms: int,
    duration_ms: int,
) -> EvaluationResult:
    """Require vertical head movement wider than the nod threshold."""
    if baseline is None:
        return _unresolved(elapsed_ms, duration_ms, WAITING_FOR_FACE)

    frames = _detected(snapshot)
    if not frames:
        return _unresolved(elapsed_ms, duration_ms)

    pitches = np.array([frame.head_pitch for frame in frames])
    pitch_range = float(pitches.max() - pitches.min())
    logger.debug(f"nod: pitch_range={pitch_range:.1f}")

    if pitch_range > NOD_THRESHOLD_DEG:
        return EvaluationResult(
            status=EvaluationStatus.SUCCESS,
            confidence=min(pitch_range / NOD_NORMALIZATION_DEG, 1.0),
        )

    return _unresolved(elapsed_ms, duration_ms)


EVALUATORS: Dict[ChallengeType, Callable[..., EvaluationResult]] = {
    ChallengeType.BLINK: evaluate_blink,
    ChallengeType.SMILE: evaluate_smile,
    ChallengeType.TURN_LEFT: evaluate_turn_left,
    ChallengeType.TURN_RIGHT: evaluate_turn_right,
    ChallengeType.NOD: evaluate_nod,
}


def evaluate(
    challenge_type: ChallengeType,
    snapshot: Sequence[FrameMetrics],
    baseline: Optional[Baseline],
    elapsed_ms: int,
    duration_ms: int,
    fail_fast_on_mismatch: bool = True,
) -> EvaluationResult:
    """Route an evaluation to the evaluator for the challenge type."""
    evaluator = EVALUATORS[ChallengeType(challenge_type)]
    if challenge_type in (ChallengeType.TURN_LEFT, ChallengeType.TURN_RIGHT):
        return evaluator(
            snapshot, baseline, elapsed_ms, duration_ms,
            fail_fast_on_mismatch=fail_fast_on_mismatch,
        )
    return evaluator(snapshot, baseline, elapsed_ms, duration_ms)
