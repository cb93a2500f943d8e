"""
Chat Store - persistence contract consumed by the realtime core.

ChatStore is the abstract interface (membership, messages, read markers,
presence timestamps, AI configs and AI run records). PostgresChatStore
implements it over DatabaseManager. Tests use an in-memory fake.
"""

import json
import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from services.chat_models import AIConfig, AIRunRecord, ChatEvent, MessageKind
from services.database import DatabaseManager

logger = logging.getLogger(__name__)


def new_id() -> str:
    return uuid.uuid4().hex


class ChatStore(ABC):
    """Persistence operations used by sessions and the AI workflow."""

    @abstractmethod
    async def find_memberships_for_identity(self, identity: str) -> List[str]:
        """Conversation ids the identity belongs to."""
        ...

    @abstractmethod
    async def is_member(self, identity: str, conversation_id: str) -> bool:
        ...

    @abstractmethod
    async def create_chat_event(
        self,
        conversation_id: str,
        author_id: str,
        body: str,
        kind: MessageKind = MessageKind.TEXT,
    ) -> ChatEvent:
        """Durably persist a message and return it with its id and timestamp."""
        ...

    @abstractmethod
    async def touch_conversation(self, conversation_id: str) -> None:
        """Bump the conversation's recency marker (chat list ordering)."""
        ...

    @abstractmethod
    async def update_read_marker(self, identity: str, conversation_id: str) -> bool:
        """Set the member's read marker to now. False if there is no membership."""
        ...

    @abstractmethod
    async def update_last_seen(self, identity: str) -> None:
        ...

    @abstractmethod
    async def get_ai_config(self, identity: str) -> Optional[AIConfig]:
        ...

    @abstractmethod
    async def upsert_ai_config(self, config: AIConfig) -> AIConfig:
        ...

    @abstractmethod
    async def recent_text_events(self, conversation_id: str, limit: int) -> List[ChatEvent]:
        """Most recent TEXT messages, newest first."""
        ...

    @abstractmethod
    async def append_ai_run_record(self, record: AIRunRecord) -> None:
        ...


def _row_to_event(row: Dict[str, Any]) -> ChatEvent:
    return ChatEvent(
        id=row["id"],
        conversation_id=row["conversation_id"],
        author_id=row["author_id"],
        author_name=row.get("author_name"),
        body=row["body"],
        kind=MessageKind(row["kind"]),
        created_at=row["created_at"],
    )


def _row_to_config(row: Dict[str, Any]) -> AIConfig:
    return AIConfig(
        identity=row["user_id"],
        provider=row["provider"],
        model=row["model"],
        api_key=row["api_key"],
        base_url=row.get("base_url"),
    )


def _affected_rows(status: str) -> int:
    """Parse the row count from an asyncpg status string ("UPDATE 1")."""
    try:
        return int(status.rsplit(" ", 1)[-1])
    except (ValueError, AttributeError, IndexError):
        return 0


class PostgresChatStore(ChatStore):
    """ChatStore backed by PostgreSQL via DatabaseManager."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    async def find_memberships_for_identity(self, identity: str) -> List[str]:
        rows = await self.db.fetch(
            "SELECT conversation_id FROM conversation_members WHERE user_id = $1",
            identity,
        )
        return [row["conversation_id"] for row in rows]

    async def is_member(self, identity: str, conversation_id: str) -> bool:
        found = await self.db.fetchval(
            "SELECT 1 FROM conversation_members WHERE user_id = $1 AND conversation_id = $2",
            identity,
            conversation_id,
        )
        return found is not None

    async def create_chat_event(
        self,
        conversation_id: str,
        author_id: str,
        body: str,
        kind: MessageKind = MessageKind.TEXT,
    ) -> ChatEvent:
        row = await self.db.fetchrow(
            """
            WITH inserted AS (
                INSERT INTO chat_events (id, conversation_id, author_id, body, kind)
                VALUES ($1, $2, $3, $4, $5)
                RETURNING id, conversation_id, author_id, body, kind, created_at
            )
            SELECT inserted.*, users.username AS author_name
            FROM inserted LEFT JOIN users ON users.id = inserted.author_id
            """,
            new_id(),
            conversation_id,
            author_id,
            body,
            kind.value,
        )
        return _row_to_event(row)

    async def touch_conversation(self, conversation_id: str) -> None:
        await self.db.execute(
            "UPDATE conversations SET updated_at = NOW() WHERE id = $1",
            conversation_id,
        )

    async def update_read_marker(self, identity: str, conversation_id: str) -> bool:
        status = await self.db.execute(
            "UPDATE conversation_members SET last_read_at = NOW() "
            "WHERE user_id = $1 AND conversation_id = $2",
            identity,
            conversation_id,
        )
        return _affected_rows(status) > 0

    async def update_last_seen(self, identity: str) -> None:
        await self.db.execute("UPDATE users SET last_seen_at = NOW() WHERE id = $1", identity)

    async def get_ai_config(self, identity: str) -> Optional[AIConfig]:
        row = await self.db.fetchrow(
            "SELECT user_id, provider, model, api_key, base_url FROM ai_configs WHERE user_id = $1",
            identity,
        )
        return _row_to_config(row) if row else None

    async def upsert_ai_config(self, config: AIConfig) -> AIConfig:
        row = await self.db.fetchrow(
            """
            INSERT INTO ai_configs (user_id, provider, model, api_key, base_url)
            VALUES ($1, $2, $3, $4, $5)
            ON CONFLICT (user_id) DO UPDATE SET
                provider = EXCLUDED.provider,
                model = EXCLUDED.model,
                api_key = EXCLUDED.api_key,
                base_url = EXCLUDED.base_url,
                updated_at = NOW()
            RETURNING user_id, provider, model, api_key, base_url
            """,
            config.identity,
            config.provider,
            config.model,
            config.api_key,
            config.base_url,
        )
        return _row_to_config(row)

    async def recent_text_events(self, conversation_id: str, limit: int) -> List[ChatEvent]:
        rows = await self.db.fetch(
            """
            SELECT e.id, e.conversation_id, e.author_id, e.body, e.kind, e.created_at,
                   u.username AS author_name
            FROM chat_events e LEFT JOIN users u ON u.id = e.author_id
            WHERE e.conversation_id = $1 AND e.kind = 'TEXT'
            ORDER BY e.created_at DESC
            LIMIT $2
            """,
            conversation_id,
            limit,
        )
        return [_row_to_event(row) for row in rows]

    async def append_ai_run_record(self, record: AIRunRecord) -> None:
        await self.db.execute(
            "INSERT INTO ai_runs (id, conversation_id, triggered_by, message_count, payload, created_at) "
            "VALUES ($1, $2, $3, $4, $5::jsonb, $6)",
            new_id(),
            record.conversation_id,
            record.triggered_by,
            record.message_count,
            json.dumps(record.payload, ensure_ascii=False),
            record.created_at,
        )
