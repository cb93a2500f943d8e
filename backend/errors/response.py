"""
Standard error payload builders.

Provides consistent payload formats for the outbound `error` event and for
REST error bodies.
"""

from typing import Optional
from .codes import ErrorCode
from .exceptions import ChatError


def error_event(error: ChatError | Exception, fallback_message: Optional[str] = None) -> dict:
    """Build the payload of an outbound `error` event.

    Args:
        error: The exception to convert
        fallback_message: Message used for non-ChatError exceptions, so that
            internal details are not leaked to clients

    Returns:
        Dict with `message` and `code` keys

    Example:
        >>> from errors import AuthorizationError, error_event
        >>> error_event(AuthorizationError("You are not a member of this conversation"))
        {"message": "You are not a member of this conversation", "code": "AUTH_NOT_MEMBER"}
    """
    if isinstance(error, ChatError):
        return {"message": error.message, "code": error.code.value}

    return {
        "message": fallback_message or "Internal server error",
        "code": ErrorCode.INTERNAL_UNEXPECTED.value,
    }


def format_provider_failure(error: ChatError | Exception) -> str:
    """Format a completion failure as a chat-visible notice.

    The notice includes the upstream detail so the user can fix their
    credential or model selection.
    """
    if isinstance(error, ChatError):
        detail = str(error)
    else:
        detail = str(error) or "unknown error"
    return (
        f"AI request failed: {detail}. "
        "Please check the API key and model in your AI settings."
    )
