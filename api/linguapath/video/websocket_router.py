"""WebSocket API for embedded video players.

Provides:
- WS /ws/player - Player commands out, native player events and progress in
"""

import asyncio
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from linguapath.access.dependencies import get_access_engine
from linguapath.access.models import AccessDenied
from linguapath.access.presentation import present_denial
from linguapath.auth.dependencies import authenticate_token
from linguapath.config import get_settings
from linguapath.core.context import set_lesson_context
from linguapath.core.logging import get_logger
from linguapath.courses.dependencies import get_course_directory
from linguapath.progress.dependencies import get_progress_store

from .adapters import create_adapter
from .dependencies import get_sdk_loader
from .errors import PlayerError, PlayerInitError, VideoPlayerError
from .models import PlayerOptions, VideoMetadata
from .schemas import PlayerControlMessage, PlayerInitMessage
from .session import PlayerSession
from .tracker import VideoProgressTracker
from .transport import WebSocketPlayerTransport


logger = get_logger(__name__)

router = APIRouter(tags=["video-ws"])

# Close codes
CLOSE_AUTH_FAILED = 4001
CLOSE_INVALID_INIT = 4002
CLOSE_ACCESS_DENIED = 4003
CLOSE_NO_VIDEO = 4004

INIT_TIMEOUT_SECONDS = 30


async def _apply_control(tracker: VideoProgressTracker, control: PlayerControlMessage) -> Any:
    if control.action == "play":
        return await tracker.play()
    if control.action == "pause":
        return await tracker.pause()
    if control.value is None:
        msg = f"'{control.action}' needs a value"
        raise ValueError(msg)
    if control.action == "seek":
        return await tracker.seek(control.value)
    if control.action == "set_volume":
        return await tracker.set_volume(int(control.value))
    return await tracker.set_playback_rate(control.value)


def _ready_message(metadata: VideoMetadata, start_at: float) -> dict[str, Any]:
    return {
        "type": "ready",
        "provider": metadata.provider.value,
        "video_id": metadata.video_id,
        "title": metadata.title,
        "duration": metadata.duration,
        "thumbnail_url": metadata.thumbnail_url,
        "start_at": start_at,
    }


async def _start_session(
    websocket: WebSocket, user_id: UUID, init: PlayerInitMessage
) -> PlayerSession | None:
    """Check access, then build and start the player session.

    Returns None after closing the socket when the lesson cannot be played.
    """
    settings = get_settings()
    engine = get_access_engine()
    directory = get_course_directory()
    store = get_progress_store()

    result = await engine.check_lesson_access(user_id, init.course_id, init.lesson_id)
    if isinstance(result, AccessDenied):
        await websocket.send_json({"type": "denied", "view": present_denial(result).to_dict()})
        await websocket.close(code=CLOSE_ACCESS_DENIED, reason=result.reason.value)
        return None

    lesson = await directory.get_lesson(init.course_id, init.lesson_id)
    if lesson is None or lesson.video_provider is None or not lesson.video_id:
        await websocket.close(code=CLOSE_NO_VIDEO, reason="Lesson has no video")
        return None

    start_at = init.options.start_at
    if start_at is None:
        existing = await store.get_progress(user_id, init.course_id, init.lesson_id)
        start_at = float(existing.resume_position) if existing else 0.0

    options = PlayerOptions(
        autoplay=init.options.autoplay,
        start_at=start_at,
        volume=init.options.volume,
        playback_rate=init.options.playback_rate,
        completion_threshold=await directory.get_completion_threshold(init.course_id),
        poll_interval_seconds=settings.video_poll_interval_seconds,
    )

    tracker = VideoProgressTracker(create_adapter(lesson.video_provider, get_sdk_loader()))
    session = PlayerSession(
        tracker=tracker,
        progress_store=store,
        transport=WebSocketPlayerTransport(websocket),
        user_id=user_id,
        course_id=init.course_id,
        lesson_id=init.lesson_id,
    )

    try:
        metadata = await session.start(lesson.video_id, options)
    except VideoPlayerError:
        # Reported to the client through the tracker's error event; retry allowed
        return session

    await websocket.send_json(_ready_message(metadata, start_at))
    return session


async def _handle_message(websocket: WebSocket, session: PlayerSession, message: dict) -> None:
    tracker = session.tracker
    kind = message.get("type")

    if kind == "player":
        await tracker.handle_message(message)
    elif kind == "control":
        control = PlayerControlMessage.model_validate(message)
        applied = await _apply_control(tracker, control)
        await websocket.send_json(
            {"type": "control_ack", "action": control.action, "value": applied}
        )
    elif kind == "retry":
        try:
            metadata = await tracker.retry()
        except (PlayerError, PlayerInitError):
            # Already sent through the tracker's error event
            return
        await websocket.send_json(_ready_message(metadata, tracker.options.start_at))
    elif kind == "ping":
        await websocket.send_json({"type": "pong"})


@router.websocket("/ws/player")
async def player_websocket(
    websocket: WebSocket,
    token: str = Query(..., description="JWT access token"),
) -> None:
    """WebSocket endpoint driving one embedded player.

    Connect with: ws://host/ws/player?token=<jwt_token>

    Messages you send:
    - {"type": "init", "course_id", "lesson_id", "options": {...}} - first message
    - {"type": "player", "event": ..., ...} - native player message
    - {"type": "control", "action": "play|pause|seek|set_volume|set_playback_rate",
       "value": N}
    - {"type": "retry"} - re-initialize after an error
    - {"type": "ping"}

    Messages received:
    - {"type": "command", "provider", "action", "args"} - forward to the player
    - {"type": "ready", ...} - player initialized
    - {"type": "progress" | "completion" | "state" | "error", ...}
    - {"type": "denied", "view": {...}} - lesson access refused (then closed)
    """
    user = authenticate_token(token)
    if user is None:
        await websocket.close(code=CLOSE_AUTH_FAILED, reason="Authentication failed")
        return

    await websocket.accept()

    try:
        raw = await asyncio.wait_for(websocket.receive_json(), timeout=INIT_TIMEOUT_SECONDS)
        init = PlayerInitMessage.model_validate(raw)
    except (TimeoutError, ValidationError, ValueError) as e:
        logger.warning("player_ws_invalid_init", user_id=str(user.id), error=str(e))
        await websocket.close(code=CLOSE_INVALID_INIT, reason="Invalid init message")
        return
    except WebSocketDisconnect:
        return

    set_lesson_context(init.course_id, init.lesson_id)
    session = await _start_session(websocket, user.id, init)
    if session is None:
        return

    logger.info(
        "player_ws_connected",
        user_id=str(user.id),
        course_id=str(init.course_id),
        lesson_id=str(init.lesson_id),
    )

    try:
        while True:
            try:
                message = await websocket.receive_json()
                await _handle_message(websocket, session, message)
            except (VideoPlayerError, ValidationError, ValueError) as e:
                code = getattr(e, "code", "invalid_message")
                await websocket.send_json({"type": "error", "code": code, "error": str(e)})
    except WebSocketDisconnect:
        pass
    finally:
        await session.close()
        logger.info(
            "player_ws_disconnected",
            user_id=str(user.id),
            lesson_id=str(init.lesson_id),
            saves=session.saves,
            queued_saves=session.queued_saves,
        )
