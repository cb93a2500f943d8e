"""
Realtime wire protocol - event names and inbound payload models.

Every WebSocket frame, in both directions, is a JSON object:

    {"event": "<name>", "data": {...}}
"""

from typing import Any, Dict, Optional, Type, TypeVar

import pydantic
from pydantic import BaseModel, Field

from errors import ErrorCode, ValidationError
from services.chat_models import MessageKind

# Inbound (client -> server)
AUTHENTICATE = "authenticate"
SEND_MESSAGE = "send_message"
TYPING_START = "typing_start"
TYPING_STOP = "typing_stop"
MARK_READ = "mark_read"

# Outbound (server -> client)
AUTHENTICATED = "authenticated"
ERROR = "error"
NEW_MESSAGE = "new_message"
USER_ONLINE = "user_online"
USER_OFFLINE = "user_offline"
TYPING = "typing"
TYPING_STOPPED = "typing_stop"
MESSAGE_READ = "message_read"
AI_THINKING = "ai_thinking"
AI_THINKING_DONE = "ai_thinking_done"

ROOM_PREFIX = "chat:"


class AuthenticatePayload(BaseModel):
    token: str


class ConversationPayload(BaseModel):
    conversationId: str = Field(min_length=1)


class SendMessagePayload(ConversationPayload):
    body: str
    kind: Optional[MessageKind] = None


P = TypeVar("P", bound=BaseModel)


def parse_payload(model: Type[P], data: Any) -> P:
    """Validate an inbound payload, raising ValidationError with the first problem."""
    if data is None:
        data = {}
    try:
        return model.model_validate(data)
    except pydantic.ValidationError as e:
        first = e.errors()[0] if e.errors() else {}
        location = ".".join(str(part) for part in first.get("loc", ())) or None
        raise ValidationError(
            "Invalid payload",
            details=first.get("msg"),
            parameter=location,
            code=ErrorCode.VALIDATION_INVALID_FORMAT,
        ) from e


def room_name(conversation_id: str) -> str:
    return f"{ROOM_PREFIX}{conversation_id}"


def frame(event: str, data: Dict[str, Any]) -> Dict[str, Any]:
    return {"event": event, "data": data}
