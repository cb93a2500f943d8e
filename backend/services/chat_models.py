"""
Chat data model shared by the realtime core and the persistence adapter.

- MessageKind: TEXT / SYSTEM / AI_REPLY
- ChatEvent: one persisted message, serialized with to_wire() for `new_message`
- AIConfig: per-identity provider selection (credential masked on read)
- AIRunRecord: audit entry for one completed AI run
- ContextLine: one transcript line sent to the completion provider
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

CONTEXT_TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MessageKind(str, Enum):
    TEXT = "TEXT"
    SYSTEM = "SYSTEM"
    AI_REPLY = "AI_REPLY"


@dataclass
class ChatEvent:
    """A persisted chat message.

    Attributes:
        id: Storage-assigned message id
        conversation_id: Conversation (room) the message belongs to
        author_id: Identity that sent it (AI replies use the triggering identity)
        author_name: Display name of the author, when known
        body: Message text
        kind: MessageKind
        created_at: Persistence timestamp (UTC)
    """

    id: str
    conversation_id: str
    author_id: str
    body: str
    kind: MessageKind = MessageKind.TEXT
    author_name: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)

    def to_wire(self) -> Dict[str, Any]:
        """Serialize for the `new_message` event."""
        return {
            "id": self.id,
            "conversationId": self.conversation_id,
            "sender": {"id": self.author_id, "username": self.author_name},
            "body": self.body,
            "kind": self.kind.value,
            "createdAt": self.created_at.isoformat(),
        }


@dataclass
class ContextLine:
    sender: str
    body: str
    time: str

    @classmethod
    def from_event(cls, event: ChatEvent) -> "ContextLine":
        return cls(
            sender=event.author_name or event.author_id,
            body=event.body,
            time=event.created_at.strftime(CONTEXT_TIME_FORMAT),
        )


def mask_api_key(api_key: str) -> str:
    """Show only the first 8 characters of a credential."""
    if len(api_key) > 8:
        return api_key[:8] + "********"
    return "********"


@dataclass
class AIConfig:
    """Per-identity AI provider selection (at most one per identity)."""

    identity: str
    provider: str
    model: str
    api_key: str = field(repr=False)
    base_url: Optional[str] = None

    def masked(self) -> Dict[str, Any]:
        """Public view: the credential is write-only."""
        return {
            "provider": self.provider,
            "model": self.model,
            "apiKey": mask_api_key(self.api_key),
            "baseUrl": self.base_url,
        }


@dataclass
class AIRunRecord:
    conversation_id: str
    triggered_by: str
    message_count: int
    payload: Dict[str, Any]
    created_at: datetime = field(default_factory=utcnow)
