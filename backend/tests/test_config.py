"""
Tests for RuntimeConfig and logging setup.
"""

import logging

from config import RuntimeConfig, _build_database_url_default
from logging_config import ColorFormatter, setup_logging


class TestDefaults:
    def test_env_defaults(self, monkeypatch):
        for key in ("AI_WAKE_WORD", "AI_CONTEXT_LIMIT", "MESSAGE_MAX_LENGTH", "JWT_SECRET"):
            monkeypatch.delenv(key, raising=False)
        config = RuntimeConfig()
        assert config.wake_word == "@ai"
        assert config.ai_context_limit == 30
        assert config.ai_max_tokens == 1000
        assert config.ai_temperature == 0.7
        assert config.anthropic_version == "2023-06-01"
        assert config.message_max_length == 4000

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("AI_WAKE_WORD", "@bot")
        monkeypatch.setenv("AI_CONTEXT_LIMIT", "5")
        config = RuntimeConfig()
        assert config.wake_word == "@bot"
        assert config.ai_context_limit == 5

    def test_database_url_from_parts(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setenv("POSTGRES_USER", "svc")
        monkeypatch.setenv("POSTGRES_PASSWORD", "p@ss word")
        monkeypatch.setenv("POSTGRES_HOST", "db")
        assert _build_database_url_default() == "postgresql://svc:p%40ss+word@db:5432/chat"

    def test_explicit_database_url(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "postgresql://x@y/z")
        assert _build_database_url_default() == "postgresql://x@y/z"


class TestUpdate:
    def test_updates_and_rejections(self):
        config = RuntimeConfig()
        result = config.update(ai_temperature=0.2, ai_context_limit=999, jwt_secret="x", bogus=1)
        assert result["updated"] == ["ai_temperature"]
        assert set(result["ignored"]) == {"ai_context_limit", "jwt_secret", "bogus"}
        assert config.ai_temperature == 0.2

    def test_wake_word_validation(self):
        config = RuntimeConfig()
        assert config.update(wake_word="  ")["ignored"] == ["wake_word"]
        assert config.update(wake_word="hey ai")["ignored"] == ["wake_word"]
        assert config.update(wake_word=" !bot ")["updated"] == ["wake_word"]
        assert config.wake_word == "!bot"

    def test_to_dict_hides_secrets(self):
        data = RuntimeConfig().to_dict()
        assert "jwt_secret" not in data
        assert "database_url" not in data
        assert "_lock" not in data
        assert data["wake_word"]


class TestLogging:
    def test_setup_logging_installs_color_formatter(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging("DEBUG")
            assert root.level == logging.DEBUG
            assert isinstance(root.handlers[0].formatter, ColorFormatter)
            assert logging.getLogger("httpx").level == logging.WARNING
        finally:
            root.handlers = saved_handlers
            root.setLevel(saved_level)
