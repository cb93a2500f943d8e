"""
Custom exception hierarchy for the chat service.

All exceptions inherit from ChatError and include:
- code: ErrorCode for categorization
- message: Human-readable error message
- details: Optional additional context
- recoverable: Whether the user can retry/fix the issue
- context: Additional key-value pairs for debugging
"""

from typing import Any, Optional
from .codes import ErrorCode


class ChatError(Exception):
    """Base exception for all chat service errors.

    Attributes:
        code: The ErrorCode categorizing this error
        message: Human-readable error message
        details: Optional additional context for the user
        recoverable: Whether the error can be resolved by user action
        context: Additional debugging information
    """

    code: ErrorCode = ErrorCode.INTERNAL_UNEXPECTED
    recoverable: bool = False

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        recoverable: Optional[bool] = None,
        **context: Any,
    ):
        self.message = message
        self.details = details
        self.context = context if context else None

        # Allow overriding class defaults
        if code is not None:
            self.code = code
        if recoverable is not None:
            self.recoverable = recoverable

        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} - {self.details}"
        return self.message

    def to_dict(self) -> dict:
        """Convert exception to dictionary for JSON serialization."""
        return {
            "code": self.code.value,
            "message": self.message,
            "details": self.details,
            "recoverable": self.recoverable,
            "context": self.context,
        }


class AuthenticationError(ChatError):
    """Credential token missing, invalid or expired."""

    code = ErrorCode.AUTH_INVALID_TOKEN
    recoverable = True


class AuthorizationError(ChatError):
    """Identity is not allowed to act on a conversation (or is not signed in)."""

    code = ErrorCode.AUTH_NOT_MEMBER
    recoverable = False

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        conversation_id: Optional[str] = None,
        code: Optional[ErrorCode] = None,
        **context: Any,
    ):
        ctx = {**context}
        if conversation_id:
            ctx["conversation_id"] = conversation_id
        super().__init__(message, details, code=code, **ctx)


class ValidationError(ChatError):
    """Error during inbound payload validation."""

    code = ErrorCode.VALIDATION_MISSING_PARAM
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        parameter: Optional[str] = None,
        expected: Optional[str] = None,
        received: Optional[str] = None,
        **context: Any,
    ):
        ctx = {**context}
        if parameter:
            ctx["parameter"] = parameter
        if expected:
            ctx["expected"] = expected
        if received:
            ctx["received"] = received
        super().__init__(message, details, **ctx)


class NotFoundError(ChatError):
    """Error when a required resource is not found."""

    code = ErrorCode.NOT_FOUND_PROVIDER
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        resource_type: Optional[str] = None,
        resource_id: Optional[str] = None,
        **context: Any,
    ):
        if resource_type == "config":
            code = ErrorCode.NOT_FOUND_CONFIG
        else:
            code = ErrorCode.NOT_FOUND_PROVIDER

        ctx = {**context}
        if resource_type:
            ctx["resource_type"] = resource_type
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message, details, code=code, **ctx)


class PersistenceError(ChatError):
    """Error reading from or writing to the database."""

    code = ErrorCode.PERSISTENCE_WRITE_FAILED
    recoverable = True


class UpstreamProviderError(ChatError):
    """A completion provider call failed (status, timeout or transport)."""

    code = ErrorCode.PROVIDER_FAILED
    recoverable = True

    def __init__(
        self,
        message: str,
        details: Optional[str] = None,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        error_type: Optional[str] = None,
        **context: Any,
    ):
        if error_type == "timeout":
            code = ErrorCode.PROVIDER_TIMEOUT
        elif error_type == "network":
            code = ErrorCode.PROVIDER_NETWORK_ERROR
        elif error_type == "invalid":
            code = ErrorCode.PROVIDER_RESPONSE_INVALID
        else:
            code = ErrorCode.PROVIDER_FAILED

        self.status_code = status_code
        self.body = body

        ctx = {**context}
        if provider:
            ctx["provider"] = provider
        if status_code:
            ctx["status_code"] = status_code
        super().__init__(message, details, code=code, **ctx)
