"""
Chat Router - WebSocket Handler

Accepts the realtime transport at /ws/chat and feeds inbound frames to a
RealtimeSession. All delivery and AI orchestration lives in routers/realtime/.

Frames are JSON objects in both directions:

    {"event": "send_message", "data": {"conversationId": "...", "body": "@ai hi"}}
"""

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from errors import ErrorCode, ValidationError

from .realtime import Connection, RealtimeCore, RealtimeSession

logger = logging.getLogger(__name__)

router = APIRouter()


def _get_client_ip(websocket: WebSocket) -> str:
    """Extract client IP from WebSocket, handling proxies."""
    forwarded = websocket.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = websocket.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    if websocket.client:
        return websocket.client.host

    return "unknown"


@router.websocket("/ws/chat")
async def chat_websocket(websocket: WebSocket):
    """WebSocket endpoint for chat."""
    await websocket.accept()

    core: RealtimeCore = websocket.app.state.realtime
    connection = Connection(websocket)
    core.hub.attach(connection)
    session = RealtimeSession(connection, core)

    logger.info(f"Chat connected from {_get_client_ip(websocket)} ({connection.id})")

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await session.emit_error(
                    ValidationError("Malformed frame", details="Expected JSON", code=ErrorCode.VALIDATION_INVALID_FORMAT)
                )
                continue

            if not isinstance(message, dict):
                await session.emit_error(
                    ValidationError("Malformed frame", details="Expected an object", code=ErrorCode.VALIDATION_INVALID_FORMAT)
                )
                continue

            await session.dispatch(message.get("event"), message.get("data"))

    except WebSocketDisconnect:
        logger.info(f"Chat disconnected: {connection.id} ({connection.identity or 'anonymous'})")
    except Exception as e:
        logger.error(f"Chat connection {connection.id} failed: {e}", exc_info=True)
    finally:
        await session.close()
