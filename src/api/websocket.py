"""WebSocket chat endpoint.

Frames from the client: ``{"type": "chat", "message": "..."}``.
Frames to the client: ``{"type": "thinking"}`` once work on a turn starts,
then ``{"type": "response", "message": "..."}``, or
``{"type": "error", "message": "..."}`` with a user-safe text.
"""

import asyncio
import json
from typing import Any, Dict, Optional, Set

import structlog
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from ..exceptions import USER_SAFE_ERROR, InvalidPayloadError, TurnProcessingError
from .schemas import DEFAULT_SESSION, ChatFrame

router = APIRouter()
logger = structlog.get_logger()

INVALID_FRAME_MESSAGE = "Invalid message format. Send {\"type\": \"chat\", \"message\": \"...\"}."


def parse_frame(raw: str) -> ChatFrame:
    """Validate an inbound frame; raises InvalidPayloadError."""
    try:
        frame = ChatFrame.model_validate(json.loads(raw))
    except (json.JSONDecodeError, ValidationError, TypeError) as exc:
        raise InvalidPayloadError(str(exc)) from exc
    if frame.type != "chat":
        raise InvalidPayloadError(f"unsupported frame type: {frame.type}")
    return frame


async def _send(websocket: WebSocket, payload: Dict[str, Any]) -> None:
    try:
        await websocket.send_text(json.dumps(payload))
    except (RuntimeError, WebSocketDisconnect) as exc:
        logger.debug("WebSocket send skipped", error=str(exc))


async def _run_turn(
    websocket: WebSocket, conversation: Any, session_id: str, message: str
) -> None:
    async def notify_processing() -> None:
        await _send(websocket, {"type": "thinking"})

    try:
        reply = await conversation.handle_turn(
            session_id, message, on_processing=notify_processing
        )
    except InvalidPayloadError:
        await _send(websocket, {"type": "error", "message": INVALID_FRAME_MESSAGE})
        return
    except TurnProcessingError:
        await _send(websocket, {"type": "error", "message": USER_SAFE_ERROR})
        return
    except asyncio.CancelledError:
        logger.info("Turn cancelled", session_id=session_id)
        raise
    except Exception:
        logger.exception("Unexpected WebSocket turn failure", session_id=session_id)
        await _send(websocket, {"type": "error", "message": USER_SAFE_ERROR})
        return

    await _send(websocket, {"type": "response", "message": reply})


@router.websocket("/ws")
async def chat_socket(
    websocket: WebSocket,
    agent_id: Optional[str] = Query(None, alias="agentId"),
) -> None:
    services = websocket.app.state.services
    session_id = agent_id or DEFAULT_SESSION
    pending: Set[asyncio.Task] = set()  # type: ignore[type-arg]

    await websocket.accept()
    logger.info("WebSocket connected", session_id=session_id)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            raw = message.get("text")
            try:
                if raw is None:
                    raise InvalidPayloadError("binary frames are not supported")
                frame = parse_frame(raw)
            except InvalidPayloadError as exc:
                logger.info("Rejected WebSocket frame", session_id=session_id, error=str(exc))
                await _send(websocket, {"type": "error", "message": INVALID_FRAME_MESSAGE})
                continue

            task = asyncio.create_task(
                _run_turn(websocket, services.conversation, session_id, frame.message),
                name=f"ws-turn-{session_id}",
            )
            pending.add(task)
            task.add_done_callback(pending.discard)
    except WebSocketDisconnect:
        logger.info("WebSocket disconnected", session_id=session_id)
    finally:
        for task in list(pending):
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
