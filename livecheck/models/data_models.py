"""
Data models for the liveness challenge flow
"""
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ChallengeType(str, Enum):
    """Face-metric driven challenge types"""
    BLINK = "blink"
    SMILE = "smile"
    TURN_LEFT = "turn_left"
    TURN_RIGHT = "turn_right"
    NOD = "nod"


class SessionState(str, Enum):
    """Lifecycle states of a liveness session"""
    IDLE = "idle"
    ACTIVE = "active"
    COMPLETED = "completed"
    FAILED = "failed"


class FailureReason(str, Enum):
    """Reasons a challenge can end unsuccessfully"""
    FACE_NOT_DETECTED = "FaceNotDetected"
    CHALLENGE_TIMEOUT = "ChallengeTimeout"
    GESTURE_MISMATCH = "GestureMismatch"


class EvaluationStatus(str, Enum):
    PENDING = "pending"
    SUCCESS = "success"
    FAILURE = "failure"


class IngestEvent(str, Enum):
    PENDING = "pending"
    CHALLENGE_SUCCEEDED = "challenge_succeeded"
    CHALLENGE_FAILED = "challenge_failed"


class FrameMetrics(BaseModel):
    """
    One observation of facial metrics produced by the face detector.

    Probabilities are in [0, 1], angles in degrees, timestamp in milliseconds.
    """
    model_config = ConfigDict(frozen=True)

    face_detected: bool
    left_eye_open: float = Field(default=0.0, ge=0.0, le=1.0)
    right_eye_open: float = Field(default=0.0, ge=0.0, le=1.0)
    smiling: float = Field(default=0.0, ge=0.0, le=1.0)
    head_yaw: float = 0.0
    head_pitch: float = 0.0
    head_roll: float = 0.0
    face_area: float = Field(default=0.0, ge=0.0)
    timestamp: int

    @property
    def eye_open_average(self) -> float:
        """Eye-aspect-ratio proxy: mean open probability of both eyes"""
        return (self.left_eye_open + self.right_eye_open) / 2.0


class Baseline(BaseModel):
    """Resting-state reference computed once per challenge"""
    model_config = ConfigDict(frozen=True)

    eye_aspect_ratio: float
    mouth_aspect_ratio: float
    yaw: float
    pitch: float
    roll: float
    frame_count: int


class Challenge(BaseModel):
    challenge_id: str
    type: ChallengeType
    instruction: str
    duration_ms: int = Field(gt=0)
    started_at: Optional[int] = None
    completed: bool = False


class ChallengeResult(BaseModel):
    challenge_id: str
    type: ChallengeType
    success: bool
    confidence: float = Field(ge=0.0, le=1.0)
    elapsed_ms: int
    failure_reason: Optional[FailureReason] = None


class Session(BaseModel):
    session_id: str
    challenges: List[Challenge]
    results: List[ChallengeResult] = Field(default_factory=list)
    current_index: int = 0
    active: bool = True
    state: SessionState = SessionState.ACTIVE
    started_at: int
    required_count: int
    status_message: str = ""


class EvaluationResult(BaseModel):
    status: EvaluationStatus
    confidence: float = 0.0
    failure_reason: Optional[FailureReason] = None
    detail: Optional[str] = None


class IngestOutcome(BaseModel):
    event: IngestEvent
    result: Optional[ChallengeResult] = None
    detail: Optional[str] = None
    state: SessionState


class SessionSummary(BaseModel):
    session_id: str
    overall_success: bool
    average_confidence: float
    total_elapsed_ms: int
    session_duration_ms: int
    total_challenges: int
    completed_challenges: int
    failed_challenges: int
    required_count: int
    failure_reason: Optional[FailureReason] = None


class FeedbackType(str, Enum):
    """Message types pushed to the client over the websocket"""
    CHALLENGE_ISSUED = "challenge_issued"
    CHALLENGE_COMPLETED = "challenge_completed"
    CHALLENGE_FAILED = "challenge_failed"
    PROGRESS_UPDATE = "progress_update"
    VERIFICATION_SUCCESS = "verification_success"
    VERIFICATION_FAILED = "verification_failed"
    ERROR = "error"


class VerificationFeedback(BaseModel):
    type: FeedbackType
    message: str
    data: Dict[str, Any] = Field(default_factory=dict)


class ApiResponse(BaseModel):
    """Common envelope of the FlashBack mobile API"""
    model_config = ConfigDict(extra="allow", populate_by_name=True)

    success: bool
    message: str = ""


class SendOtpResponse(ApiResponse):
    pass


class VerifyOtpResponse(ApiResponse):
    token: Optional[str] = None
    access_token: Optional[str] = Field(default=None, alias="accessToken")
    refresh_token: Optional[str] = Field(default=None, alias="refreshToken")

    @property
    def auth_token(self) -> Optional[str]:
        """The backend returns the JWT under either `token` or `accessToken`"""
        return self.token or self.access_token


class UploadSelfieResponse(ApiResponse):
    image_url: Optional[str] = Field(default=None, alias="imageUrl")
