"""
Liveness session state machine.

Drives a session through its challenges:

    Idle -> Active(challenge i) -> Active(challenge i+1) | Completed | Failed

Frames are pushed in arrival order through `ingest`, which returns an
IngestOutcome describing what happened. The manager never calls back into
UI code; the caller decides how to surface each outcome.
"""
import logging
import threading
import time
from typing import Callable, Iterable, Optional

from ..config import config
from ..exceptions import InvalidSessionState
from ..models.data_models import (
    Challenge,
    ChallengeResult,
    EvaluationResult,
    EvaluationStatus,
    FailureReason,
    FrameMetrics,
    IngestEvent,
    IngestOutcome,
    Session,
    SessionState,
    SessionSummary,
)
from . import gesture_evaluators
from .baseline_calibrator import BaselineCalibrator
from .challenge_engine import ChallengeEngine
from .frame_history import FrameHistory
from .result_aggregator import ResultAggregator

logger = logging.getLogger(__name__)

COMPLETED_MESSAGE = "All checks passed successfully"


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


class LivenessSessionManager:
    """
    Owns one liveness session at a time, plus its history, baseline and timers.

    Ingestion is single-writer: frames of a session must be fed from one
    stream in arrival order. Session-level operations take the same lock as
    ingestion, so a reset tears down history, baseline and timers together.
    """

    def __init__(
        self,
        challenge_engine: Optional[ChallengeEngine] = None,
        aggregator: Optional[ResultAggregator] = None,
        history_size: Optional[int] = None,
        baseline_min_frames: Optional[int] = None,
        face_loss_timeout_ms: Optional[int] = None,
        fail_fast_on_mismatch: Optional[bool] = None,
        min_face_area: Optional[float] = None,
        max_face_area: Optional[float] = None,
        clock: Optional[Callable[[], int]] = None,
    ):
        """
        Args:
            challenge_engine: Selector used to draw challenge sequences
            aggregator: Combines results into a SessionSummary
            history_size: Frames kept in the rolling window
            baseline_min_frames: Face-detected frames needed for a baseline
            face_loss_timeout_ms: Face absence that fails the current challenge
            fail_fast_on_mismatch: Fail head turns made in the wrong direction
            min_face_area: Smallest face box, in px², accepted as in range
            max_face_area: Largest face box, in px², accepted as in range
            clock: Returns the current time in milliseconds
        """
        self.challenge_engine = challenge_engine or ChallengeEngine()
        self.aggregator = aggregator or ResultAggregator()
        self.face_loss_timeout_ms = (
            face_loss_timeout_ms if face_loss_timeout_ms is not None else config.FACE_LOSS_TIMEOUT_MS
        )
        self.fail_fast_on_mismatch = (
            fail_fast_on_mismatch if fail_fast_on_mismatch is not None else config.GESTURE_MISMATCH_FAIL_FAST
        )
        self.min_face_area = min_face_area if min_face_area is not None else config.MIN_FACE_AREA_PX
        self.max_face_area = max_face_area if max_face_area is not None else config.MAX_FACE_AREA_PX
        self._clock = clock or wall_clock_ms

        self._history = FrameHistory(history_size or config.HISTORY_WINDOW_SIZE)
        self._calibrator = BaselineCalibrator(baseline_min_frames or config.BASELINE_MIN_FRAMES)
        self._lock = threading.Lock()

        self._session: Optional[Session] = None
        self._state = SessionState.IDLE
        self._face_last_seen_ms: Optional[int] = None
        self._last_elapsed_ms = 0

    @property
    def state(self) -> SessionState:
        with self._lock:
            return self._state

    @property
    def session(self) -> Optional[Session]:
        """A copy of the current session, or None when idle."""
        with self._lock:
            return self._session.model_copy(deep=True) if self._session else None

    @property
    def history_size(self) -> int:
        with self._lock:
            return len(self._history)

    @property
    def baseline(self):
        with self._lock:
            return self._calibrator.baseline

    @property
    def status_message(self) -> str:
        with self._lock:
            return self._session.status_message if self._session else ""

    def start_session(
        self,
        required_challenge_count: Optional[int] = None,
        candidate_pool: Optional[Iterable] = None,
    ) -> Session:
        """
        Start a new session and activate its first challenge.

        A finished (completed or failed) session is discarded implicitly.

        Args:
            required_challenge_count: Challenges to pass (defaults from config)
            candidate_pool: Challenge types to draw from (defaults to all)

        Returns:
            Session: Copy of the freshly started session

        Raises:
            InvalidSessionState: If a session is already active
            ValueError: If the count or pool is invalid
        """
        with self._lock:
            if self._state == SessionState.ACTIVE:
                raise InvalidSessionState(
                    "A liveness session is already active; call reset() before starting another"
                )

            count = (
                required_challenge_count if required_challenge_count is not None
                else config.REQUIRED_CHALLENGE_COUNT
            )
            session_id = self.challenge_engine.generate_session_id()
            challenges = self.challenge_engine.generate_challenge_sequence(
                session_id, count, candidate_pool
            )

            now = self._clock()
            self._session = Session(
                session_id=session_id,
                challenges=challenges,
                started_at=now,
                required_count=count,
            )
            self._state = SessionState.ACTIVE
            self._begin_challenge(now)

            logger.info(
                f"Liveness session {session_id} started with challenges "
                f"{[c.type.value for c in challenges]}"
            )
            return self._session.model_copy(deep=True)

    def ingest(self, frame: FrameMetrics) -> IngestOutcome:
        """
        Feed one frame to the active challenge.

        Returns:
            IngestOutcome: pending, challenge_succeeded or challenge_failed

        Raises:
            InvalidSessionState: If no session is active; nothing is mutated
        """
        with self._lock:
            if self._state != SessionState.ACTIVE or self._session is None:
                raise InvalidSessionState("No active liveness session; call start_session() first")

            challenge = self._session.challenges[self._session.current_index]
            now = self._clock()
            elapsed_ms = max(now - challenge.started_at, 0)
            self._last_elapsed_ms = elapsed_ms

            # Mispositioned frames hold the challenge and are kept out of the window
            positioning = gesture_evaluators.evaluate_positioning(
                frame, elapsed_ms, challenge.duration_ms, self.min_face_area, self.max_face_area
            )
            if positioning is None:
                self._history.push(frame)
            if frame.face_detected:
                self._face_last_seen_ms = now

            snapshot = self._history.snapshot()
            baseline = self._calibrator.calibrate(snapshot)

            if not frame.face_detected and now - self._face_last_seen_ms >= self.face_loss_timeout_ms:
                evaluation = EvaluationResult(
                    status=EvaluationStatus.FAILURE,
                    failure_reason=FailureReason.FACE_NOT_DETECTED,
                    detail="face lost",
                )
            elif positioning is not None:
                evaluation = positioning
            else:
                evaluation = gesture_evaluators.evaluate(
                    challenge.type,
                    snapshot,
                    baseline,
                    elapsed_ms,
                    challenge.duration_ms,
                    fail_fast_on_mismatch=self.fail_fast_on_mismatch,
                )

            if evaluation.status == EvaluationStatus.SUCCESS:
                return self._complete_challenge(challenge, evaluation, elapsed_ms, now)
            if evaluation.status == EvaluationStatus.FAILURE:
                return self._fail_challenge(challenge, evaluation, elapsed_ms)

            self._session.status_message = self.challenge_engine.pending_instruction(
                challenge, evaluation.detail
            )
            return IngestOutcome(
                event=IngestEvent.PENDING,
                detail=evaluation.detail,
                state=self._state,
            )

    def get_current_challenge(self) -> Optional[Challenge]:
        with self._lock:
            if self._state != SessionState.ACTIVE or self._session is None:
                return None
            return self._session.challenges[self._session.current_index].model_copy()

    def progress(self) -> float:
        """
        Progress in [0, 1] for display.

        The larger of the elapsed ratio of the current challenge (as of the
        last ingest) and the ratio of challenges already passed.
        """
        with self._lock:
            if self._session is None or self._state == SessionState.IDLE:
                return 0.0
            if self._state == SessionState.COMPLETED:
                return 1.0

            session = self._session
            passed = sum(1 for r in session.results if r.success)
            completed_ratio = passed / len(session.challenges)

            challenge = session.challenges[session.current_index]
            time_ratio = min(self._last_elapsed_ms / challenge.duration_ms, 1.0)
            return max(time_ratio, completed_ratio)

    def summary(self) -> Optional[SessionSummary]:
        with self._lock:
            if self._session is None:
                return None
            return self.aggregator.aggregate(self._session, self._clock())

    def reset(self) -> None:
        """Return to Idle from any state, discarding all session data."""
        with self._lock:
            if self._session is not None:
                logger.info(f"Liveness session {self._session.session_id} reset from {self._state.value}")
            self._session = None
            self._state = SessionState.IDLE
            self._history.clear()
            self._calibrator.reset()
            self._face_last_seen_ms = None
            self._last_elapsed_ms = 0

    def _begin_challenge(self, now: int) -> None:
        challenge = self._session.challenges[self._session.current_index]
        challenge.started_at = now
        self._history.clear()
        self._calibrator.reset()
        self._face_last_seen_ms = now
        self._last_elapsed_ms = 0
        self._session.status_message = challenge.instruction
        logger.debug(f"Challenge {challenge.challenge_id} started: {challenge.instruction}")

    def _complete_challenge(
        self,
        challenge: Challenge,
        evaluation: EvaluationResult,
        elapsed_ms: int,
        now: int,
    ) -> IngestOutcome:
        session = self._session
        result = ChallengeResult(
            challenge_id=challenge.challenge_id,
            type=challenge.type,
            success=True,
            confidence=evaluation.confidence,
            elapsed_ms=elapsed_ms,
        )
        challenge.completed = True
        session.results.append(result)
        logger.info(
            f"Challenge {challenge.type.value} passed in {elapsed_ms}ms "
            f"(confidence={evaluation.confidence:.2f})"
        )

        session.current_index += 1
        if session.current_index < len(session.challenges):
            self._begin_challenge(now)
        else:
            session.active = False
            session.state = SessionState.COMPLETED
            session.status_message = COMPLETED_MESSAGE
            self._state = SessionState.COMPLETED
            logger.info(f"Liveness session {session.session_id} completed")

        return IngestOutcome(
            event=IngestEvent.CHALLENGE_SUCCEEDED,
            result=result,
            state=self._state,
        )

    def _fail_challenge(
        self,
        challenge: Challenge,
        evaluation: EvaluationResult,
        elapsed_ms: int,
    ) -> IngestOutcome:
        session = self._session
        reason = evaluation.failure_reason
        result = ChallengeResult(
            challenge_id=challenge.challenge_id,
            type=challenge.type,
            success=False,
            confidence=evaluation.confidence,
            elapsed_ms=elapsed_ms,
            failure_reason=reason,
        )
        session.results.append(result)
        session.active = False
        session.state = SessionState.FAILED
        session.status_message = self.challenge_engine.failure_instruction(reason)
        self._state = SessionState.FAILED

        logger.info(
            f"Liveness session {session.session_id} failed on {challenge.type.value}: "
            f"{reason.value} after {elapsed_ms}ms"
        )
        return IngestOutcome(
            event=IngestEvent.CHALLENGE_FAILED,
            result=result,
            detail=evaluation.detail,
            state=self._state,
        )
