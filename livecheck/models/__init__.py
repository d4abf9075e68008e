from .data_models import (
    Baseline,
    Challenge,
    ChallengeResult,
    ChallengeType,
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

__all__ = [
    "Baseline",
    "Challenge",
    "ChallengeResult",
    "ChallengeType",
    "EvaluationResult",
    "EvaluationStatus",
    "FailureReason",
    "FrameMetrics",
    "IngestEvent",
    "IngestOutcome",
    "Session",
    "SessionState",
    "SessionSummary",
]
