"""
FastAPI application exposing the liveness challenge flow over a websocket
"""
import asyncio
import logging
import time
from typing import Optional

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from livecheck.config import config
from livecheck.models.data_models import (
    FeedbackType,
    IngestEvent,
    SessionState,
    VerificationFeedback,
)
from livecheck.services.session_manager import LivenessSessionManager
from livecheck.services.websocket_handler import WebSocketHandler

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Liveness Check API",
    description="Challenge-response liveness verification for selfie capture",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

websocket_handler = WebSocketHandler()


@app.get("/")
async def root():
    return {
        "message": "Liveness Check API",
        "status": "running",
        "version": "1.0.0"
    }


@app.get("/health")
async def health_check():
    return {
        "status": "healthy",
        "services": {
            "api": "operational",
            "liveness": "operational"
        }
    }


@app.websocket("/ws/liveness")
async def liveness_websocket(websocket: WebSocket, challenges: Optional[int] = None):
    """
    Run one liveness session over a websocket.

    The client streams frame metrics; the server answers with challenge
    instructions, per-frame progress and the final verdict, then closes.
    """
    manager = LivenessSessionManager()

    try:
        session = manager.start_session(required_challenge_count=challenges)
    except ValueError as e:
        await websocket.accept()
        await websocket_handler.send_feedback(
            websocket,
            VerificationFeedback(type=FeedbackType.ERROR, message=str(e))
        )
        await websocket_handler.close_connection(websocket, code=1008, reason="Invalid session parameters")
        return

    await websocket_handler.handle_connection(websocket, session.session_id)
    await websocket_handler.send_challenge(websocket, manager.get_current_challenge())

    deadline = time.monotonic() + config.MAX_SESSION_DURATION_SECONDS

    try:
        while manager.state == SessionState.ACTIVE:
            remaining = deadline - time.monotonic()
            try:
                if remaining <= 0:
                    raise asyncio.TimeoutError
                frame = await asyncio.wait_for(
                    websocket_handler.receive_frame_metrics(websocket),
                    timeout=remaining
                )
            except asyncio.TimeoutError:
                logger.warning(f"Session {session.session_id} expired without frames")
                manager.reset()
                await websocket_handler.send_feedback(
                    websocket,
                    VerificationFeedback(
                        type=FeedbackType.VERIFICATION_FAILED,
                        message="Session expired, please retry"
                    )
                )
                break

            if frame is None:
                continue

            outcome = manager.ingest(frame)

            if outcome.event == IngestEvent.CHALLENGE_SUCCEEDED:
                await websocket_handler.send_feedback(
                    websocket,
                    VerificationFeedback(
                        type=FeedbackType.CHALLENGE_COMPLETED,
                        message=f"Challenge passed: {outcome.result.type.value}",
                        data=outcome.result.model_dump(mode="json")
                    )
                )
                if manager.state == SessionState.ACTIVE:
                    await websocket_handler.send_challenge(
                        websocket, manager.get_current_challenge(), manager.progress()
                    )

            elif outcome.event == IngestEvent.CHALLENGE_FAILED:
                await websocket_handler.send_feedback(
                    websocket,
                    VerificationFeedback(
                        type=FeedbackType.CHALLENGE_FAILED,
                        message=manager.status_message,
                        data=outcome.result.model_dump(mode="json")
                    )
                )

            else:
                await websocket_handler.send_feedback(
                    websocket,
                    VerificationFeedback(
                        type=FeedbackType.PROGRESS_UPDATE,
                        message=manager.status_message,
                        data={"progress": manager.progress(), "detail": outcome.detail}
                    )
                )

        if manager.state in (SessionState.COMPLETED, SessionState.FAILED):
            await websocket_handler.send_summary(websocket, manager.summary(), manager.status_message)

        await websocket_handler.close_connection(websocket)

    except WebSocketDisconnect:
        logger.info(f"Client left session {session.session_id} while {manager.state.value}")
        manager.reset()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("livecheck.main:app", host=config.HOST, port=config.PORT)
