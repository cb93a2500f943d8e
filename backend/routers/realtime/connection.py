"""
Connections and rooms.

Connection wraps one live WebSocket. RoomHub tracks every attached connection
and the rooms they joined, fans events out, and hands out a per-room lock so
that messages are broadcast in the order they were persisted.
"""

import asyncio
import logging
import uuid
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Iterable, List, Optional, Set

from logging_config import log_broadcast
from services.chat_models import utcnow

from .events import frame

logger = logging.getLogger(__name__)


class Connection:
    """One transport session.

    Attributes:
        id: Short random id used in logs
        websocket: Anything with an async send_json(dict)
        identity: Set once the session authenticates
        rooms: Room names this connection joined
        created_at: Connect time (UTC)
    """

    def __init__(self, websocket: Any, connection_id: Optional[str] = None):
        self.id = connection_id or uuid.uuid4().hex[:12]
        self.websocket = websocket
        self.identity: Optional[str] = None
        self.rooms: Set[str] = set()
        self.created_at = utcnow()
        self.closed = False

    async def send(self, event: str, data: Dict[str, Any]) -> bool:
        """Send one event. Returns False if the transport is gone."""
        if self.closed:
            return False
        try:
            await self.websocket.send_json(frame(event, data))
            return True
        except Exception as e:
            logger.debug(f"Send to {self.id} failed ({event}): {e}")
            return False

    def __repr__(self) -> str:
        return f"Connection(id={self.id!r}, identity={self.identity!r})"


class RoomHub:
    """In-process room membership and broadcast."""

    def __init__(self):
        self._connections: Dict[str, Connection] = {}
        self._rooms: Dict[str, Set[str]] = {}
        self._room_locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    # === Membership ===

    def attach(self, connection: Connection) -> None:
        self._connections[connection.id] = connection

    def detach(self, connection: Connection) -> None:
        """Forget a connection and drop it from every room."""
        connection.closed = True
        self._connections.pop(connection.id, None)
        for room in list(connection.rooms):
            self.leave(connection, room)

    def join(self, connection: Connection, room: str) -> None:
        self._rooms.setdefault(room, set()).add(connection.id)
        connection.rooms.add(room)

    def leave(self, connection: Connection, room: str) -> None:
        members = self._rooms.get(room)
        if members is not None:
            members.discard(connection.id)
            if not members:
                del self._rooms[room]
        connection.rooms.discard(room)

    def members(self, room: str) -> List[Connection]:
        ids = self._rooms.get(room, ())
        return [self._connections[cid] for cid in ids if cid in self._connections]

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    # === Broadcast ===

    async def _fan_out(
        self, targets: Iterable[Connection], event: str, data: Dict[str, Any], exclude: Optional[Connection]
    ) -> int:
        recipients = [c for c in targets if c is not exclude]
        if not recipients:
            return 0
        results = await asyncio.gather(*(c.send(event, data) for c in recipients))
        return sum(1 for ok in results if ok)

    async def emit_to_room(
        self, room: str, event: str, data: Dict[str, Any], exclude: Optional[Connection] = None
    ) -> int:
        """Send to every connection in a room (optionally skipping one).

        Returns:
            Number of connections the event was delivered to
        """
        delivered = await self._fan_out(self.members(room), event, data, exclude)
        log_broadcast(logger, event, room, delivered)
        return delivered

    async def emit_to_all(self, event: str, data: Dict[str, Any], exclude: Optional[Connection] = None) -> int:
        """Send to every attached connection (optionally skipping one)."""
        return await self._fan_out(list(self._connections.values()), event, data, exclude)

    # === Ordering ===

    @asynccontextmanager
    async def sequenced(self, room: str) -> AsyncIterator[None]:
        """Serialize persist-then-broadcast sections for one room."""
        lock = self._room_locks.get(room)
        if lock is None:
            lock = self._room_locks[room] = asyncio.Lock()
        self._lock_users[room] = self._lock_users.get(room, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[room] -= 1
            if self._lock_users[room] == 0:
                del self._lock_users[room]
                self._room_locks.pop(room, None)
