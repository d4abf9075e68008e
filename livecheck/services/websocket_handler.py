"""
WebSocket handler for streaming frame metrics into a liveness session.

This module provides the WebSocketHandler class that manages WebSocket connections,
frame metrics reception, challenge delivery, and real-time feedback during verification.
"""
from fastapi import WebSocket, WebSocketDisconnect
from pydantic import ValidationError
from typing import Optional
import logging
import json

from livecheck.models.data_models import (
    Challenge,
    FeedbackType,
    FrameMetrics,
    SessionSummary,
    VerificationFeedback,
)

logger = logging.getLogger(__name__)

FRAME_METRICS_MESSAGE = "frame_metrics"


class WebSocketHandler:
    """
    Manages WebSocket communication for real-time liveness verification.

    This class encapsulates all WebSocket-related functionality including:
    - Connection lifecycle management
    - Frame metrics reception and validation
    - Challenge transmission
    - Real-time feedback delivery
    """

    async def handle_connection(
        self,
        websocket: WebSocket,
        session_id: str
    ) -> None:
        """
        Accept and manage WebSocket connection lifecycle.

        Args:
            websocket: FastAPI WebSocket connection object
            session_id: Unique session identifier
        """
        await websocket.accept()
        logger.info(f"WebSocket connection established for session {session_id}")

    async def receive_frame_metrics(self, websocket: WebSocket) -> Optional[FrameMetrics]:
        """
        Receive and validate one frame metrics message from the client.

        The client sends JSON of the form
        {"type": "frame_metrics", "metrics": {...}} once per analysed frame.

        Args:
            websocket: FastAPI WebSocket connection object

        Returns:
            FrameMetrics, or None if:
            - Message is not a frame metrics message
            - JSON or metrics validation fails
        """
        try:
            data = await websocket.receive_text()
            message = json.loads(data)

            if isinstance(message, dict) and message.get("type") == FRAME_METRICS_MESSAGE:
                metrics = message.get("metrics")
                if metrics:
                    return FrameMetrics.model_validate(metrics)

            return None

        except WebSocketDisconnect:
            logger.info("WebSocket disconnected while receiving frame metrics")
            raise

        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON received: {e}")
            return None

        except ValidationError as e:
            logger.error(f"Invalid frame metrics received: {e}")
            return None

    async def send_challenge(
        self,
        websocket: WebSocket,
        challenge: Challenge,
        progress: float = 0.0
    ) -> None:
        """
        Send a challenge instruction to the client.

        Args:
            websocket: FastAPI WebSocket connection object
            challenge: Challenge to display
            progress: Current session progress in [0, 1]
        """
        await self.send_feedback(
            websocket,
            VerificationFeedback(
                type=FeedbackType.CHALLENGE_ISSUED,
                message=f"Challenge: {challenge.instruction}",
                data={
                    "challenge_id": challenge.challenge_id,
                    "instruction": challenge.instruction,
                    "duration_ms": challenge.duration_ms,
                    "type": challenge.type.value,
                    "progress": progress
                }
            )
        )
        logger.debug(f"Sent challenge {challenge.challenge_id}: {challenge.instruction}")

    async def send_feedback(
        self,
        websocket: WebSocket,
        feedback: VerificationFeedback
    ) -> None:
        """
        Send real-time feedback to the client.

        Args:
            websocket: FastAPI WebSocket connection object
            feedback: VerificationFeedback object containing message details
        """
        try:
            await websocket.send_json(feedback.model_dump(mode="json"))
            logger.debug(f"Sent feedback: {feedback.type.value}")

        except Exception as e:
            logger.error(f"Error sending feedback: {e}")
            raise

    async def send_summary(
        self,
        websocket: WebSocket,
        summary: SessionSummary,
        message: str
    ) -> None:
        """
        Send the final session verdict.

        Args:
            websocket: FastAPI WebSocket connection object
            summary: Aggregated session result
            message: Instruction text shown to the user
        """
        feedback_type = (
            FeedbackType.VERIFICATION_SUCCESS if summary.overall_success
            else FeedbackType.VERIFICATION_FAILED
        )
        await self.send_feedback(
            websocket,
            VerificationFeedback(
                type=feedback_type,
                message=message,
                data=summary.model_dump(mode="json")
            )
        )

    async def close_connection(
        self,
        websocket: WebSocket,
        code: int = 1000,
        reason: str = "Normal closure"
    ) -> None:
        """
        Close the WebSocket connection gracefully.

        Args:
            websocket: FastAPI WebSocket connection object
            code: WebSocket close code (default: 1000 for normal closure)
            reason: Human-readable reason for closure
        """
        try:
            await websocket.close(code=code, reason=reason)
            logger.info(f"WebSocket closed: {reason} (code: {code})")
        except Exception as e:
            logger.error(f"Error closing WebSocket: {e}")
