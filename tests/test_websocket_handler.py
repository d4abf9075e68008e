"""
Unit tests for WebSocketHandler class.

Tests cover:
- Connection handling
- Frame metrics reception and validation
- Challenge transmission
- Feedback and summary delivery
- Connection closure
"""
import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import WebSocket, WebSocketDisconnect
from hypothesis import given, strategies as st, settings

from livecheck.models.data_models import (
    Challenge,
    ChallengeType,
    FeedbackType,
    FrameMetrics,
    SessionSummary,
    VerificationFeedback,
)
from livecheck.services.websocket_handler import WebSocketHandler


@pytest.fixture
def websocket_handler():
    """Create WebSocketHandler instance for testing."""
    return WebSocketHandler()


@pytest.fixture
def mock_websocket():
    """Create mock WebSocket for testing."""
    return AsyncMock(spec=WebSocket)


@pytest.fixture
def sample_challenge():
    return Challenge(
        challenge_id="abc_0_nod",
        type=ChallengeType.NOD,
        instruction="Nod your head up and down",
        duration_ms=5000,
    )


def metrics_message(**metrics):
    values = {"face_detected": True, "timestamp": 1000}
    values.update(metrics)
    return json.dumps({"type": "frame_metrics", "metrics": values})


class TestHandleConnection:
    """Tests for handle_connection method."""

    @pytest.mark.asyncio
    async def test_accepts_websocket_connection(self, websocket_handler, mock_websocket):
        await websocket_handler.handle_connection(mock_websocket, "session_123")

        mock_websocket.accept.assert_called_once()

    @pytest.mark.asyncio
    async def test_logs_connection_establishment(self, websocket_handler, mock_websocket):
        """Test that connection establishment is logged."""
        with patch("livecheck.services.websocket_handler.logger") as mock_logger:
            await websocket_handler.handle_connection(mock_websocket, "session_456")

            mock_logger.info.assert_called_once()
            log_message = mock_logger.info.call_args[0][0]
            assert "session_456" in log_message
            assert "established" in log_message.lower()


class TestReceiveFrameMetrics:
    """Tests for receive_frame_metrics method."""

    @pytest.mark.asyncio
    async def test_parses_valid_metrics(self, websocket_handler, mock_websocket):
        mock_websocket.receive_text.return_value = metrics_message(
            left_eye_open=0.9, right_eye_open=0.8, head_yaw=-12.5
        )

        frame = await websocket_handler.receive_frame_metrics(mock_websocket)

        assert isinstance(frame, FrameMetrics)
        assert frame.face_detected is True
        assert frame.head_yaw == -12.5
        assert frame.timestamp == 1000

    @pytest.mark.asyncio
    async def test_returns_none_for_other_message_types(self, websocket_handler, mock_websocket):
        mock_websocket.receive_text.return_value = json.dumps({"type": "ping"})

        assert await websocket_handler.receive_frame_metrics(mock_websocket) is None

    @pytest.mark.asyncio
    async def test_returns_none_for_invalid_json(self, websocket_handler, mock_websocket):
        mock_websocket.receive_text.return_value = "not valid json {"

        assert await websocket_handler.receive_frame_metrics(mock_websocket) is None

    @pytest.mark.asyncio
    async def test_returns_none_for_out_of_range_metrics(self, websocket_handler, mock_websocket):
        """Probabilities outside [0, 1] are rejected"""
        mock_websocket.receive_text.return_value = metrics_message(smiling=1.5)

        assert await websocket_handler.receive_frame_metrics(mock_websocket) is None

    @pytest.mark.asyncio
    async def test_returns_none_for_missing_metrics(self, websocket_handler, mock_websocket):
        mock_websocket.receive_text.return_value = json.dumps({"type": "frame_metrics"})

        assert await websocket_handler.receive_frame_metrics(mock_websocket) is None

    @pytest.mark.asyncio
    async def test_propagates_disconnect(self, websocket_handler, mock_websocket):
        mock_websocket.receive_text.side_effect = WebSocketDisconnect()

        with pytest.raises(WebSocketDisconnect):
            await websocket_handler.receive_frame_metrics(mock_websocket)


class TestSendChallenge:
    """Tests for send_challenge method."""

    @pytest.mark.asyncio
    async def test_sends_challenge_issued(self, websocket_handler, mock_websocket, sample_challenge):
        await websocket_handler.send_challenge(mock_websocket, sample_challenge, 0.5)

        mock_websocket.send_json.assert_called_once()
        sent = mock_websocket.send_json.call_args[0][0]
        assert sent["type"] == "challenge_issued"
        assert sent["data"] == {
            "challenge_id": "abc_0_nod",
            "instruction": "Nod your head up and down",
            "duration_ms": 5000,
            "type": "nod",
            "progress": 0.5,
        }


class TestSendFeedback:
    """Tests for send_feedback method."""

    @pytest.mark.asyncio
    async def test_sends_serialized_feedback(self, websocket_handler, mock_websocket):
        feedback = VerificationFeedback(
            type=FeedbackType.PROGRESS_UPDATE,
            message="Nod your head up and down",
            data={"progress": 0.25},
        )

        await websocket_handler.send_feedback(mock_websocket, feedback)

        mock_websocket.send_json.assert_called_once_with({
            "type": "progress_update",
            "message": "Nod your head up and down",
            "data": {"progress": 0.25},
        })

    @pytest.mark.asyncio
    async def test_reraises_send_errors(self, websocket_handler, mock_websocket):
        mock_websocket.send_json.side_effect = RuntimeError("socket closed")
        feedback = VerificationFeedback(type=FeedbackType.ERROR, message="boom")

        with pytest.raises(RuntimeError):
            await websocket_handler.send_feedback(mock_websocket, feedback)


class TestSendSummary:
    """Tests for send_summary method."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("overall_success, expected_type", [
        (True, "verification_success"),
        (False, "verification_failed"),
    ])
    async def test_summary_type_follows_verdict(
        self, websocket_handler, mock_websocket, overall_success, expected_type
    ):
        summary = SessionSummary(
            session_id="abc",
            overall_success=overall_success,
            average_confidence=0.8,
            total_elapsed_ms=3000,
            session_duration_ms=3200,
            total_challenges=2,
            completed_challenges=2,
            failed_challenges=0,
            required_count=2,
        )

        await websocket_handler.send_summary(mock_websocket, summary, "done")

        sent = mock_websocket.send_json.call_args[0][0]
        assert sent["type"] == expected_type
        assert sent["message"] == "done"
        assert sent["data"]["session_id"] == "abc"
        assert sent["data"]["overall_success"] is overall_success


class TestCloseConnection:
    """Tests for close_connection method."""

    @pytest.mark.asyncio
    async def test_closes_with_defaults(self, websocket_handler, mock_websocket):
        await websocket_handler.close_connection(mock_websocket)

        mock_websocket.close.assert_called_once_with(code=1000, reason="Normal closure")

    @pytest.mark.asyncio
    async def test_close_errors_are_logged(self, websocket_handler, mock_websocket):
        mock_websocket.close.side_effect = RuntimeError("already closed")

        with patch("livecheck.services.websocket_handler.logger") as mock_logger:
            await websocket_handler.close_connection(mock_websocket, code=1008, reason="Policy")

            mock_logger.error.assert_called_once()


@given(
    yaw=st.floats(min_value=-90, max_value=90),
    pitch=st.floats(min_value=-90, max_value=90),
    eye=st.floats(min_value=0.0, max_value=1.0),
    timestamp=st.integers(min_value=0, max_value=2**41)
)
@settings(max_examples=50, deadline=None)
def test_valid_metrics_always_parse(yaw, pitch, eye, timestamp):
    """
    Property: any in-range metrics message is parsed into an equal FrameMetrics.
    """
    handler = WebSocketHandler()
    websocket = AsyncMock(spec=WebSocket)
    websocket.receive_text.return_value = metrics_message(
        head_yaw=yaw, head_pitch=pitch, left_eye_open=eye, right_eye_open=eye, timestamp=timestamp
    )

    frame = asyncio.run(handler.receive_frame_metrics(websocket))

    assert frame.head_yaw == yaw
    assert frame.head_pitch == pitch
    assert frame.left_eye_open == eye
    assert frame.timestamp == timestamp
