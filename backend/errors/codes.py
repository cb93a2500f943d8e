"""
Error codes for the chat service.

Provides a standardized taxonomy of error codes organized by category.
Use these codes consistently across all error events and responses.
"""

from enum import Enum


class ErrorCode(str, Enum):
    """Standardized error codes.

    Categories:
    - AUTH_*: Authentication and authorization errors
    - VALIDATION_*: Inbound payload validation errors
    - NOT_FOUND_*: Resource not found errors
    - PERSISTENCE_*: Database errors
    - PROVIDER_*: Completion provider errors
    - INTERNAL_*: Internal/unexpected errors
    """

    # Authentication / authorization
    AUTH_INVALID_TOKEN = "AUTH_INVALID_TOKEN"
    AUTH_REQUIRED = "AUTH_REQUIRED"
    AUTH_ALREADY_AUTHENTICATED = "AUTH_ALREADY_AUTHENTICATED"
    AUTH_NOT_MEMBER = "AUTH_NOT_MEMBER"

    # Validation errors (inbound events)
    VALIDATION_MISSING_PARAM = "VALIDATION_MISSING_PARAM"
    VALIDATION_INVALID_FORMAT = "VALIDATION_INVALID_FORMAT"
    VALIDATION_TOO_LONG = "VALIDATION_TOO_LONG"
    VALIDATION_UNKNOWN_EVENT = "VALIDATION_UNKNOWN_EVENT"

    # Not found errors
    NOT_FOUND_PROVIDER = "NOT_FOUND_PROVIDER"
    NOT_FOUND_CONFIG = "NOT_FOUND_CONFIG"

    # Persistence errors
    PERSISTENCE_UNAVAILABLE = "PERSISTENCE_UNAVAILABLE"
    PERSISTENCE_WRITE_FAILED = "PERSISTENCE_WRITE_FAILED"

    # Completion provider errors
    PROVIDER_FAILED = "PROVIDER_FAILED"
    PROVIDER_TIMEOUT = "PROVIDER_TIMEOUT"
    PROVIDER_NETWORK_ERROR = "PROVIDER_NETWORK_ERROR"
    PROVIDER_RESPONSE_INVALID = "PROVIDER_RESPONSE_INVALID"

    # Internal errors (unexpected failures)
    INTERNAL_UNEXPECTED = "INTERNAL_UNEXPECTED"
    INTERNAL_CONFIG_ERROR = "INTERNAL_CONFIG_ERROR"
