# chatrelay/api/websocket.py

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from chatrelay.core import state
from chatrelay.core.config import settings

logger = logging.getLogger(__name__)

router = APIRouter()


def parse_frame(raw: str) -> Optional[Tuple[str, Any]]:
    """
    Decode one inbound frame into ``(event, data)``.

    Returns None for anything that is not a JSON object with a string
    ``event`` field.
    """
    try:
        message = json.loads(raw)
    except json.JSONDecodeError:
        logger.warning("Received non-JSON frame (%d chars)", len(raw))
        return None

    if not isinstance(message, dict) or not isinstance(message.get("event"), str):
        logger.warning("Received frame without an event name")
        return None
    return message["event"], message.get("data")


def frame_text(message: Dict[str, Any], max_bytes: int) -> Optional[str]:
    """
    Pull the text out of one ASGI ``websocket.receive`` message.

    Returns None for frames larger than ``max_bytes`` (measured in UTF-8
    bytes) and for binary frames that are not valid UTF-8.
    """
    text = message.get("text")
    data = message.get("bytes")

    if text is not None:
        size = len(text.encode("utf-8"))
    elif data is not None:
        size = len(data)
    else:
        return None

    if size > max_bytes:
        logger.warning("Dropping oversized frame (%d bytes)", size)
        return None

    if text is None:
        try:
            text = data.decode("utf-8")
        except UnicodeDecodeError:
            logger.warning("Dropping binary frame that is not valid UTF-8")
            return None
    return text


# ============================================================================
# WEBSOCKET ENDPOINT
# ============================================================================

@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for the chat event channel.

    Protocol:
    =========

    Every frame, in both directions, is a JSON object:
        {"event": "<name>", "data": <payload>}

    Client -> Server Events:
    ------------------------
    join            {"username": "alice", "room": "general"}   (room optional)
    send-message    {"text": "hello"}
    send-media      {"url": "...", "filename": "...", "originalname": "...",
                     "mimetype": "...", "size": 123, "caption": "..."}
    typing          (no payload)
    stop-typing     (no payload)
    switch-room     "random"  or  {"room": "random"}

    Server -> Client Events:
    ------------------------
    user-joined          {"username", "message", "timestamp"}
    user-left            {"username", "message", "timestamp"}
    room-users           [{"id", "username", "room"}, ...]
    new-message          text or media message
    user-typing          {"username"}
    user-stopped-typing  {"username"}

    Error Handling:
        - Invalid JSON, unknown events, bad payloads: logged and ignored
        - Oversized frames: logged and ignored
        - Connection errors: logged, connection cleaned up once
    """
    manager = state.connection_manager
    connection_id = await manager.connect(websocket)

    try:
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break

            raw = frame_text(message, settings.MAX_EVENT_BYTES)
            if raw is None:
                continue

            frame = parse_frame(raw)
            if frame is None:
                continue

            event, data = frame
            logger.debug("Websocket input: connection=%s event=%s", connection_id, event)
            manager.dispatch(connection_id, event, data)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error("WebSocket error on %s: %s", connection_id, e)
    finally:
        manager.disconnect(connection_id)
