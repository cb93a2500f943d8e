"""
Error handling decorators and utilities.

Provides a decorator for consistent error handling across realtime event
handlers.
"""

import logging
from functools import wraps
from typing import Any, Callable, Optional, TypeVar

from .exceptions import ChatError

# Type variable for decorated functions
F = TypeVar("F", bound=Callable[..., Any])


def handle_event_errors(
    event_name: str,
    failure_message: str = "Request failed",
    logger: Optional[logging.Logger] = None,
):
    """Decorator that turns exceptions raised by an event handler into `error` events.

    The decorated coroutine must be a method of an object exposing
    ``emit_error(error, fallback_message=None)``. ChatError subclasses are
    expected (bad token, not a member, ...) and logged at warning level;
    anything else is logged with a stack trace and reported to the client
    with ``failure_message`` so internals are not leaked.

    Args:
        event_name: Inbound event name, used for log context
        failure_message: Client-facing message for unexpected errors
        logger: Optional logger instance (defaults to an event-specific logger)

    Example:
        >>> class Session:
        ...     @handle_event_errors("send_message", "Failed to send message")
        ...     async def on_send_message(self, data):
        ...         raise AuthorizationError("You are not a member of this conversation")
    """

    def decorator(func: F) -> F:
        log = logger or logging.getLogger(f"chat.{event_name}")

        @wraps(func)
        async def wrapper(self, *args: Any, **kwargs: Any) -> Any:
            try:
                return await func(self, *args, **kwargs)
            except ChatError as e:
                log.warning(f"[{event_name}] {e.code.value}: {e.message}")
                await self.emit_error(e)
            except Exception as e:
                log.error(f"[{event_name}] Unexpected error: {e}", exc_info=True)
                await self.emit_error(e, fallback_message=failure_message)
            return None

        return wrapper  # type: ignore

    return decorator


def log_error(
    logger: logging.Logger, error: Exception, context: Optional[str] = None, include_traceback: bool = True
) -> None:
    """Log an error with consistent formatting.

    Args:
        logger: Logger instance to use
        error: The exception to log
        context: Optional context string to prefix the message
        include_traceback: Whether to include the full stack trace

    Example:
        >>> log_error(logger, err, context="mark_read")
        # Logs: "[mark_read] PERSISTENCE_WRITE_FAILED: Could not update read marker"
    """
    if isinstance(error, ChatError):
        message = f"{error.code.value}: {error.message}"
    else:
        message = str(error)

    if context:
        message = f"[{context}] {message}"

    logger.error(message, exc_info=include_traceback)
