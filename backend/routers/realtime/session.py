"""
Realtime Session - per-connection state machine and event handlers.

    Connected --authenticate ok--> Authenticated --disconnect--> Closed
    Connected --disconnect-------> Closed

Domain events (send_message, typing_*, mark_read) are rejected with an
`error` event until the session is Authenticated. Events are handled one at
a time in arrival order; AI runs are detached so they never block the
sender.
"""

import logging
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional

from errors import (
    AuthenticationError,
    AuthorizationError,
    ChatError,
    ErrorCode,
    ValidationError,
    error_event,
    handle_event_errors,
    log_error,
)
from logging_config import log_message_in, log_presence
from services.chat_models import MessageKind
from services.wake_phrase import extract_command

from .connection import Connection
from .core import RealtimeCore
from .events import (
    AUTHENTICATE,
    AUTHENTICATED,
    ERROR,
    MARK_READ,
    MESSAGE_READ,
    SEND_MESSAGE,
    TYPING,
    TYPING_START,
    TYPING_STOP,
    TYPING_STOPPED,
    USER_OFFLINE,
    USER_ONLINE,
    AuthenticatePayload,
    ConversationPayload,
    SendMessagePayload,
    parse_payload,
    room_name,
)

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    CONNECTED = "connected"
    AUTHENTICATED = "authenticated"
    CLOSED = "closed"


class RealtimeSession:
    """Handles every inbound event for one connection."""

    def __init__(self, connection: Connection, core: RealtimeCore):
        self.connection = connection
        self.core = core
        self.state = ConnectionState.CONNECTED
        self._handlers: Dict[str, Callable[[Any], Awaitable[Any]]] = {
            AUTHENTICATE: self.on_authenticate,
            SEND_MESSAGE: self.on_send_message,
            TYPING_START: self.on_typing_start,
            TYPING_STOP: self.on_typing_stop,
            MARK_READ: self.on_mark_read,
        }

    @property
    def identity(self) -> Optional[str]:
        return self.connection.identity

    # === Outbound ===

    async def emit(self, event: str, data: Dict[str, Any]) -> bool:
        return await self.connection.send(event, data)

    async def emit_error(self, error: Exception, fallback_message: Optional[str] = None) -> None:
        await self.emit(ERROR, error_event(error, fallback_message))

    # === Dispatch ===

    async def dispatch(self, event: Any, data: Any = None) -> None:
        """Route one inbound event to its handler."""
        if self.state is ConnectionState.CLOSED:
            return
        handler = self._handlers.get(event) if isinstance(event, str) else None
        if handler is None:
            logger.debug(f"Unknown event from {self.connection.id}: {event!r}")
            await self.emit_error(
                ValidationError(f"Unknown event: {event}", code=ErrorCode.VALIDATION_UNKNOWN_EVENT)
            )
            return
        await handler(data)

    def _require_identity(self) -> str:
        if self.state is not ConnectionState.AUTHENTICATED or not self.identity:
            raise AuthorizationError("Please authenticate first", code=ErrorCode.AUTH_REQUIRED)
        return self.identity

    # === Handlers ===

    @handle_event_errors(AUTHENTICATE, "Authentication failed")
    async def on_authenticate(self, data: Any) -> None:
        if self.state is ConnectionState.AUTHENTICATED:
            raise AuthenticationError(
                "Already authenticated",
                code=ErrorCode.AUTH_ALREADY_AUTHENTICATED,
                recoverable=False,
            )

        try:
            payload = parse_payload(AuthenticatePayload, data)
        except ValidationError as e:
            raise AuthenticationError("Authentication failed", details="Missing token") from e

        identity = self.core.verifier.authenticate(payload.token)

        # Memberships are loaded once; conversations joined later are not
        # picked up until the client reconnects.
        conversation_ids = await self.core.store.find_memberships_for_identity(identity)

        self.connection.identity = identity
        self.core.registry.put(identity, self.connection)
        for conversation_id in conversation_ids:
            self.core.hub.join(self.connection, room_name(conversation_id))
        self.state = ConnectionState.AUTHENTICATED

        await self.emit(AUTHENTICATED, {"identity": identity})
        await self.core.hub.emit_to_all(USER_ONLINE, {"identity": identity}, exclude=self.connection)
        log_presence(logger, identity, online=True)

    @handle_event_errors(SEND_MESSAGE, "Failed to send message")
    async def on_send_message(self, data: Any) -> None:
        identity = self._require_identity()
        payload = parse_payload(SendMessagePayload, data)
        conversation_id = payload.conversationId
        body = payload.body

        if not body.strip():
            raise ValidationError("Message body is empty", parameter="body")
        max_length = self.core.config.message_max_length
        if len(body) > max_length:
            raise ValidationError(
                f"Message is too long (max {max_length} characters)",
                parameter="body",
                code=ErrorCode.VALIDATION_TOO_LONG,
            )

        if not await self.core.store.is_member(identity, conversation_id):
            raise AuthorizationError(
                "You are not a member of this conversation",
                conversation_id=conversation_id,
            )

        kind = payload.kind or MessageKind.TEXT
        log_message_in(logger, body, conversation=conversation_id, sender=identity, kind=kind.value)
        event = await self.core.pipeline.publish(conversation_id, identity, body, kind=kind)

        command = extract_command(body, self.core.config.wake_word)
        if command is not None:
            self.core.workflow.schedule(identity, conversation_id, command, trigger_event_id=event.id)

    @handle_event_errors(TYPING_START)
    async def on_typing_start(self, data: Any) -> None:
        await self._relay_typing(data, TYPING)

    @handle_event_errors(TYPING_STOP)
    async def on_typing_stop(self, data: Any) -> None:
        await self._relay_typing(data, TYPING_STOPPED)

    async def _relay_typing(self, data: Any, event: str) -> None:
        identity = self._require_identity()
        payload = parse_payload(ConversationPayload, data)
        room = room_name(payload.conversationId)
        if room not in self.connection.rooms:
            logger.debug(f"Typing from {identity} dropped: not in {room}")
            return
        await self.core.hub.emit_to_room(
            room,
            event,
            {"conversationId": payload.conversationId, "identity": identity},
            exclude=self.connection,
        )

    @handle_event_errors(MARK_READ)
    async def on_mark_read(self, data: Any) -> None:
        identity = self._require_identity()
        payload = parse_payload(ConversationPayload, data)
        conversation_id = payload.conversationId

        try:
            updated = await self.core.store.update_read_marker(identity, conversation_id)
        except Exception as e:
            log_error(logger, e, context=MARK_READ, include_traceback=not isinstance(e, ChatError))
            return
        if not updated:
            logger.warning(f"Read marker not updated: {identity} has no membership in {conversation_id}")
            return

        await self.core.hub.emit_to_room(
            room_name(conversation_id),
            MESSAGE_READ,
            {"conversationId": conversation_id, "identity": identity},
            exclude=self.connection,
        )

    # === Teardown ===

    async def close(self) -> None:
        """Tear down after the transport closed. Safe to call more than once.

        A stale connection closing while a newer one holds the identity
        leaves the registry entry alone and broadcasts no user_offline.
        """
        if self.state is ConnectionState.CLOSED:
            return
        was_authenticated = self.state is ConnectionState.AUTHENTICATED
        self.state = ConnectionState.CLOSED
        self.core.hub.detach(self.connection)

        identity = self.identity
        if not was_authenticated or not identity:
            return

        removed = self.core.registry.remove(identity, self.connection)

        try:
            await self.core.store.update_last_seen(identity)
        except Exception as e:
            log_error(logger, e, context="update_last_seen", include_traceback=False)

        # A newer connection for the same identity keeps it online
        if removed and not self.core.registry.is_online(identity):
            await self.core.hub.emit_to_all(USER_OFFLINE, {"identity": identity})
            log_presence(logger, identity, online=False)
