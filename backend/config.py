"""
Runtime Configuration for the chat service.

Provides a singleton RuntimeConfig class. Values default from environment
variables and a few of them (AI call limits, wake word) can be adjusted at
runtime without a restart.

Usage:
    from config import runtime_config
    limit = runtime_config.ai_context_limit
    runtime_config.update(ai_temperature=0.5)
"""

import os
import logging
from dataclasses import dataclass, field
from typing import Any, ClassVar, Dict, Tuple
from threading import Lock
from urllib.parse import quote_plus

logger = logging.getLogger(__name__)


def _first_env(*keys: str, default: str) -> str:
    """Return the first non-empty environment value from keys, else default."""
    for key in keys:
        value = os.environ.get(key, "").strip()
        if value:
            return value
    return default


def _env_bool(key: str, default: str = "true") -> bool:
    return os.environ.get(key, default).lower() == "true"


def _build_database_url_default() -> str:
    """
    Build a PostgreSQL URL from env vars when DATABASE_URL is not explicitly set.

    Password is URL-encoded to avoid auth breakage with special characters.
    """
    explicit = os.environ.get("DATABASE_URL", "").strip()
    if explicit:
        return explicit

    user = os.environ.get("POSTGRES_USER", "chat").strip() or "chat"
    password = os.environ.get("POSTGRES_PASSWORD", "chat-local-dev")
    host = os.environ.get("POSTGRES_HOST", "localhost").strip() or "localhost"
    port = os.environ.get("POSTGRES_PORT", "5432").strip() or "5432"
    db = os.environ.get("POSTGRES_DB", "chat").strip() or "chat"

    safe_password = quote_plus(password)
    return f"postgresql://{user}:{safe_password}@{host}:{port}/{db}"


@dataclass
class RuntimeConfig:
    """
    Singleton configuration for the realtime core.

    All values have defaults from environment variables, but can be
    changed at runtime via the update() method.
    """

    # Authentication (tokens are issued by the login service)
    jwt_secret: str = field(default_factory=lambda: _first_env("JWT_SECRET", default="dev-secret"))
    jwt_algorithm: str = field(default_factory=lambda: _first_env("JWT_ALGORITHM", default="HS256"))

    # Database
    database_url: str = field(default_factory=_build_database_url_default)
    database_enabled: bool = field(default_factory=lambda: _env_bool("DATABASE_ENABLED"))
    database_pool_size: int = field(
        default_factory=lambda: int(os.environ.get("DATABASE_POOL_SIZE", "10"))
    )

    # Wake word and AI call limits
    wake_word: str = field(default_factory=lambda: _first_env("AI_WAKE_WORD", default="@ai"))
    ai_context_limit: int = field(
        default_factory=lambda: int(os.environ.get("AI_CONTEXT_LIMIT", "30"))
    )  # Recent TEXT messages sent as context
    ai_max_tokens: int = field(
        default_factory=lambda: int(os.environ.get("AI_MAX_TOKENS", "1000"))
    )
    ai_temperature: float = field(
        default_factory=lambda: float(os.environ.get("AI_TEMPERATURE", "0.7"))
    )
    ai_request_timeout: float = field(
        default_factory=lambda: float(os.environ.get("AI_REQUEST_TIMEOUT", "60"))
    )  # Seconds, per httpx phase (connect, read, write, pool)
    anthropic_version: str = field(
        default_factory=lambda: _first_env("ANTHROPIC_VERSION", default="2023-06-01")
    )

    # Inbound message limits
    message_max_length: int = field(
        default_factory=lambda: int(os.environ.get("MESSAGE_MAX_LENGTH", "4000"))
    )

    log_level: str = field(default_factory=lambda: _first_env("LOG_LEVEL", default="INFO"))

    # Internal state
    _lock: Lock = field(default_factory=Lock, repr=False, compare=False)
    _update_count: int = field(default=0, repr=False)

    _VALIDATION_RANGES: ClassVar[Dict[str, Tuple[float, float]]] = {
        "ai_context_limit": (0, 200),
        "ai_max_tokens": (1, 32000),
        "ai_temperature": (0.0, 2.0),
        "ai_request_timeout": (1.0, 600.0),
        "message_max_length": (1, 100000),
    }

    # Never changed at runtime: connections and tokens depend on them
    _IMMUTABLE: ClassVar[Tuple[str, ...]] = ("jwt_secret", "jwt_algorithm", "database_url")

    def update(self, **kwargs) -> Dict[str, Any]:
        """
        Update configuration values at runtime.

        Args:
            **kwargs: Key-value pairs to update (e.g., ai_temperature=0.5)

        Returns:
            Dict with 'updated' (changed keys) and 'ignored' (unknown or rejected keys)
        """
        updated = []
        ignored = []

        with self._lock:
            for key, value in kwargs.items():
                if key.startswith("_") or key in self._IMMUTABLE:
                    ignored.append(key)
                    continue

                if not hasattr(self, key):
                    ignored.append(key)
                    logger.warning(f"Config ignored unknown key: {key}")
                    continue

                if key == "wake_word":
                    value = str(value).strip()
                    if not value or " " in value:
                        ignored.append(key)
                        logger.warning(f"Config rejected invalid wake word: {value!r}")
                        continue

                if key in self._VALIDATION_RANGES:
                    lo, hi = self._VALIDATION_RANGES[key]
                    if not (lo <= value <= hi):
                        ignored.append(key)
                        logger.warning(f"Config rejected {key}={value} (must be {lo}-{hi})")
                        continue

                old_value = getattr(self, key)
                setattr(self, key, value)
                updated.append(key)
                logger.info(f"Config updated: {key} = {value} (was {old_value})")

            self._update_count += 1

        return {"updated": updated, "ignored": ignored, "update_count": self._update_count}

    def to_dict(self) -> Dict[str, Any]:
        """Export current config as dict (excludes internal fields and secrets)."""
        from dataclasses import fields as dataclass_fields

        result = {}
        for field_info in dataclass_fields(self):
            if field_info.name.startswith("_") or field_info.name in ("jwt_secret", "database_url"):
                continue
            result[field_info.name] = getattr(self, field_info.name)
        return result


# Singleton instance
runtime_config = RuntimeConfig()


def get_config() -> RuntimeConfig:
    """Get the singleton config instance."""
    return runtime_config
