"""
Chat Service Error Handling Module

Provides standardized error codes, exceptions, and payload builders
for consistent error handling across the realtime core and REST routes.

Usage:
    from errors import (
        # Error codes
        ErrorCode,

        # Exceptions
        ChatError,
        AuthenticationError,
        AuthorizationError,
        ValidationError,
        NotFoundError,
        PersistenceError,
        UpstreamProviderError,

        # Payload builders
        error_event,
        format_provider_failure,

        # Decorators
        handle_event_errors,
        log_error,
    )

Example:
    from errors import handle_event_errors, AuthorizationError

    class RealtimeSession:
        @handle_event_errors("send_message", "Failed to send message")
        async def on_send_message(self, data):
            if not await self.store.is_member(self.identity, data["conversationId"]):
                raise AuthorizationError("You are not a member of this conversation")
            ...
"""

from .codes import ErrorCode
from .exceptions import (
    ChatError,
    AuthenticationError,
    AuthorizationError,
    ValidationError,
    NotFoundError,
    PersistenceError,
    UpstreamProviderError,
)
from .response import (
    error_event,
    format_provider_failure,
)
from .handlers import (
    handle_event_errors,
    log_error,
)

__all__ = [
    # Error codes
    "ErrorCode",
    # Exceptions
    "ChatError",
    "AuthenticationError",
    "AuthorizationError",
    "ValidationError",
    "NotFoundError",
    "PersistenceError",
    "UpstreamProviderError",
    # Payload builders
    "error_event",
    "format_provider_failure",
    # Decorators
    "handle_event_errors",
    "log_error",
]
