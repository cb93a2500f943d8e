"""
Shared pytest fixtures for the chat service tests.

- InMemoryChatStore: ChatStore fake with per-method failure injection
- FakeWebSocket: records every frame sent to it
- core: RealtimeCore wired to the fake store and a mocked completion client
"""

import asyncio
import itertools
import random
from datetime import timedelta
from typing import Dict, List, Optional, Set
from unittest.mock import AsyncMock

import pytest

from config import RuntimeConfig
from errors import PersistenceError
from routers.realtime import Connection, RealtimeSession, build_core
from services.auth import TokenVerifier
from services.chat_models import AIConfig, AIRunRecord, ChatEvent, MessageKind, utcnow
from services.chat_store import ChatStore
from services.completion_client import CompletionClient

TEST_SECRET = "test-secret"


class InMemoryChatStore(ChatStore):
    """ChatStore fake. Add a method name to ``failing`` to make it raise.

    Set ``jitter`` to a seeded Random to make writes yield for varying
    delays so concurrent publishes interleave.
    """

    def __init__(self):
        self.members: Dict[str, Set[str]] = {}
        self.usernames: Dict[str, str] = {}
        self.events: List[ChatEvent] = []
        self.configs: Dict[str, AIConfig] = {}
        self.runs: List[AIRunRecord] = []
        self.read_markers: Dict[tuple, object] = {}
        self.last_seen: Dict[str, object] = {}
        self.touched: List[str] = []
        self.failing: Set[str] = set()
        self.jitter: Optional[random.Random] = None
        self._ids = itertools.count(1)
        self._clock = utcnow()

    # --- test setup helpers ---

    def add_member(self, identity: str, conversation_id: str, username: Optional[str] = None) -> None:
        self.members.setdefault(conversation_id, set()).add(identity)
        if username:
            self.usernames[identity] = username

    def set_config(self, identity: str, provider: str = "openai", model: str = "gpt-4o-mini", api_key: str = "sk-test-key-123456", base_url: Optional[str] = None) -> AIConfig:
        config = AIConfig(identity=identity, provider=provider, model=model, api_key=api_key, base_url=base_url)
        self.configs[identity] = config
        return config

    def events_in(self, conversation_id: str, kind: Optional[MessageKind] = None) -> List[ChatEvent]:
        return [
            e for e in self.events
            if e.conversation_id == conversation_id and (kind is None or e.kind == kind)
        ]

    def _check(self, name: str) -> None:
        if name in self.failing:
            raise PersistenceError(f"{name} failed", details="injected")

    async def _pause(self) -> None:
        if self.jitter is not None:
            await asyncio.sleep(self.jitter.random() / 200)

    # --- ChatStore ---

    async def find_memberships_for_identity(self, identity: str) -> List[str]:
        self._check("find_memberships_for_identity")
        return sorted(cid for cid, ids in self.members.items() if identity in ids)

    async def is_member(self, identity: str, conversation_id: str) -> bool:
        self._check("is_member")
        return identity in self.members.get(conversation_id, set())

    async def create_chat_event(self, conversation_id, author_id, body, kind=MessageKind.TEXT) -> ChatEvent:
        self._check("create_chat_event")
        await self._pause()
        # Strictly increasing timestamps keep ordering assertions stable
        self._clock += timedelta(milliseconds=1)
        event = ChatEvent(
            id=f"evt-{next(self._ids)}",
            conversation_id=conversation_id,
            author_id=author_id,
            author_name=self.usernames.get(author_id),
            body=body,
            kind=kind,
            created_at=self._clock,
        )
        self.events.append(event)
        return event

    async def touch_conversation(self, conversation_id: str) -> None:
        self._check("touch_conversation")
        await self._pause()
        self.touched.append(conversation_id)

    async def update_read_marker(self, identity: str, conversation_id: str) -> bool:
        self._check("update_read_marker")
        if identity not in self.members.get(conversation_id, set()):
            return False
        self.read_markers[(identity, conversation_id)] = utcnow()
        return True

    async def update_last_seen(self, identity: str) -> None:
        self._check("update_last_seen")
        self.last_seen[identity] = utcnow()

    async def get_ai_config(self, identity: str) -> Optional[AIConfig]:
        self._check("get_ai_config")
        return self.configs.get(identity)

    async def upsert_ai_config(self, config: AIConfig) -> AIConfig:
        self._check("upsert_ai_config")
        self.configs[config.identity] = config
        return config

    async def recent_text_events(self, conversation_id: str, limit: int) -> List[ChatEvent]:
        self._check("recent_text_events")
        texts = self.events_in(conversation_id, MessageKind.TEXT)
        return list(reversed(texts))[:limit]

    async def append_ai_run_record(self, record: AIRunRecord) -> None:
        self._check("append_ai_run_record")
        self.runs.append(record)


class FakeWebSocket:
    """Records frames sent by a Connection."""

    def __init__(self, fail: bool = False):
        self.sent: List[dict] = []
        self.fail = fail

    async def send_json(self, data: dict) -> None:
        if self.fail:
            raise RuntimeError("socket closed")
        self.sent.append(data)

    def events(self, name: Optional[str] = None) -> List[dict]:
        """Payloads of received frames, optionally filtered by event name."""
        return [f["data"] for f in self.sent if name is None or f["event"] == name]

    def names(self) -> List[str]:
        return [f["event"] for f in self.sent]

    def clear(self) -> None:
        self.sent.clear()


@pytest.fixture
def store():
    return InMemoryChatStore()


@pytest.fixture
def verifier():
    return TokenVerifier(secret=TEST_SECRET, algorithm="HS256")


@pytest.fixture
def completion():
    """Mocked CompletionClient; set completion.complete.return_value / side_effect."""
    client = AsyncMock(spec=CompletionClient)
    client.complete.return_value = "Hello from the assistant"
    return client


@pytest.fixture
def config():
    return RuntimeConfig()


@pytest.fixture
def core(store, completion, verifier, config):
    return build_core(store, completion, verifier=verifier, config=config)


def open_session(core):
    """Create an attached, unauthenticated session."""
    ws = FakeWebSocket()
    connection = Connection(ws)
    core.hub.attach(connection)
    return RealtimeSession(connection, core), ws


async def authenticated_session(core, identity: str):
    """Create a session and authenticate it as ``identity``."""
    session, ws = open_session(core)
    await session.dispatch("authenticate", {"token": core.verifier.create_token(identity)})
    return session, ws
