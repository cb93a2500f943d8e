"""
Delivery pipeline - the single path by which chat messages reach a room.

publish() persists first and broadcasts second, inside the room's lock, so
per-room broadcast order always matches persistence order. User messages and
AI replies both go through here. signal() sends transient events (thinking
indicators) that are never persisted.
"""

import logging
from typing import Any, Dict, Optional

from errors import log_error
from services.chat_models import ChatEvent, MessageKind
from services.chat_store import ChatStore

from .connection import Connection, RoomHub
from .events import NEW_MESSAGE, room_name

logger = logging.getLogger(__name__)


class DeliveryPipeline:
    def __init__(self, store: ChatStore, hub: RoomHub):
        self.store = store
        self.hub = hub

    async def publish(
        self,
        conversation_id: str,
        author_id: str,
        body: str,
        kind: MessageKind = MessageKind.TEXT,
        touch: bool = True,
    ) -> ChatEvent:
        """Persist a message, bump conversation recency, broadcast `new_message`.

        Raises whatever the store raises from create_chat_event; nothing is
        broadcast in that case. A failed recency update is logged only.
        """
        room = room_name(conversation_id)
        async with self.hub.sequenced(room):
            event = await self.store.create_chat_event(conversation_id, author_id, body, kind)

            if touch:
                try:
                    await self.store.touch_conversation(conversation_id)
                except Exception as e:
                    log_error(logger, e, context="touch_conversation", include_traceback=False)

            await self.hub.emit_to_room(room, NEW_MESSAGE, {"event": event.to_wire()})
        return event

    async def signal(
        self,
        conversation_id: str,
        event: str,
        data: Dict[str, Any],
        exclude: Optional[Connection] = None,
    ) -> int:
        """Broadcast a transient (never persisted) event to a room."""
        return await self.hub.emit_to_room(room_name(conversation_id), event, data, exclude=exclude)
