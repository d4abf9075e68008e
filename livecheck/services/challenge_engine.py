"""
Challenge Engine for generating randomized liveness challenge sequences
"""
import secrets
from typing import Dict, Iterable, List, Optional

from ..config import config
from ..models.data_models import Challenge, ChallengeType, FailureReason
from .gesture_evaluators import TOO_CLOSE, TOO_FAR


class ChallengeEngine:
    """
    Selects unpredictable sequences of face-metric challenges.

    Sequences never repeat a challenge type back to back, and they prefer
    distinct types while the candidate pool still has unused ones.
    """

    CHALLENGE_POOL = [
        ChallengeType.BLINK,
        ChallengeType.SMILE,
        ChallengeType.TURN_LEFT,
        ChallengeType.TURN_RIGHT,
        ChallengeType.NOD,
    ]

    # Human-readable instructions for each challenge
    CHALLENGE_INSTRUCTIONS = {
        ChallengeType.BLINK: "Please blink your eyes naturally",
        ChallengeType.SMILE: "Please smile for the camera",
        ChallengeType.TURN_LEFT: "Slowly turn your head to the left",
        ChallengeType.TURN_RIGHT: "Slowly turn your head to the right",
        ChallengeType.NOD: "Nod your head up and down",
    }

    # Instruction shown once a session fails, keyed by failure reason
    FAILURE_INSTRUCTIONS = {
        FailureReason.FACE_NOT_DETECTED: "No face detected. Please position your face in the frame and retry",
        FailureReason.CHALLENGE_TIMEOUT: "Too slow, please retry",
        FailureReason.GESTURE_MISMATCH: "Wrong movement detected, please retry",
    }

    # Shown while the face box is outside the accepted size range
    POSITIONING_INSTRUCTIONS = {
        TOO_CLOSE: "Please move back a little, you are too close",
        TOO_FAR: "Please move closer to the camera",
    }

    def __init__(
        self,
        durations: Optional[Dict[str, int]] = None,
        min_required: Optional[int] = None,
        rng=None,
    ):
        """
        Args:
            durations: Per-type challenge duration in ms (defaults from config)
            min_required: Smallest sequence length accepted (defaults from config)
            rng: random.Random compatible source; cryptographic by default
        """
        self.durations = durations or config.challenge_durations()
        self.min_required = min_required if min_required is not None else config.MIN_REQUIRED_CHALLENGES
        self._rng = rng or secrets.SystemRandom()

    def generate_session_id(self) -> str:
        """
        Generate an unguessable session identifier.

        Returns:
            str: A 32-character hexadecimal id
        """
        return secrets.token_hex(16)  # 16 bytes = 32 hex characters

    def _normalize_pool(self, candidate_pool: Optional[Iterable]) -> List[ChallengeType]:
        if candidate_pool is None:
            return list(self.CHALLENGE_POOL)

        pool = []
        for entry in candidate_pool:
            try:
                challenge_type = ChallengeType(entry)
            except ValueError:
                raise ValueError(f"Unknown challenge type: {entry!r}") from None
            if challenge_type not in pool:
                pool.append(challenge_type)

        if not pool:
            raise ValueError("Candidate pool must contain at least one challenge type")
        return pool

    def generate_challenge_sequence(
        self,
        session_id: str,
        num_challenges: int,
        candidate_pool: Optional[Iterable] = None,
    ) -> List[Challenge]:
        """
        Draw a randomized sequence of challenges.

        Args:
            session_id: Identifier of the owning session
            num_challenges: Number of challenges to draw
            candidate_pool: Challenge types to draw from (defaults to all)

        Returns:
            List[Challenge]: Ordered challenges, not yet started

        Raises:
            ValueError: If the count is below the minimum or the pool cannot
                satisfy it without immediate repeats
        """
        if num_challenges < self.min_required:
            raise ValueError(
                f"At least {self.min_required} challenges are required, got {num_challenges}"
            )

        pool = self._normalize_pool(candidate_pool)
        if len(pool) < 2 and num_challenges > 1:
            raise ValueError("Candidate pool needs at least 2 distinct types to avoid repeats")

        unused = list(pool)
        self._rng.shuffle(unused)

        sequence: List[ChallengeType] = []
        while len(sequence) < num_challenges:
            if unused:
                challenge_type = unused.pop()
            else:
                options = [t for t in pool if not sequence or t != sequence[-1]]
                challenge_type = self._rng.choice(options)
            sequence.append(challenge_type)

        return [
            Challenge(
                challenge_id=f"{session_id}_{index}_{challenge_type.value}",
                type=challenge_type,
                instruction=self.CHALLENGE_INSTRUCTIONS[challenge_type],
                duration_ms=self.durations[challenge_type.value],
            )
            for index, challenge_type in enumerate(sequence)
        ]

    def failure_instruction(self, reason: FailureReason) -> str:
        return self.FAILURE_INSTRUCTIONS[reason]

    def pending_instruction(self, challenge: Challenge, detail: Optional[str] = None) -> str:
        """Positioning hint while the face is out of range, otherwise the challenge instruction."""
        return self.POSITIONING_INSTRUCTIONS.get(detail, challenge.instruction)
