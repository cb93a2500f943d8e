"""
Tests for the AI settings REST API.
"""

from contextlib import asynccontextmanager

import pytest
from fastapi import FastAPI
from starlette.testclient import TestClient

from errors import ChatError
from services.auth import get_token_verifier


def _build_test_app(core, verifier):
    @asynccontextmanager
    async def noop_lifespan(app):
        yield

    app = FastAPI(lifespan=noop_lifespan)

    from routers.ai_config import router as ai_router
    app.include_router(ai_router)
    app.state.realtime = core
    app.dependency_overrides[get_token_verifier] = lambda: verifier
    return app


@pytest.fixture()
def client(core, verifier):
    with TestClient(_build_test_app(core, verifier)) as c:
        yield c


@pytest.fixture()
def auth(verifier):
    return {"Authorization": f"Bearer {verifier.create_token('u1')}"}


class TestProviders:
    def test_public_catalogue(self, client):
        resp = client.get("/api/ai/providers")
        assert resp.status_code == 200
        data = resp.json()
        assert [p["id"] for p in data["providers"]] == ["deepseek", "openai", "kimi", "doubao", "claude"]
        assert data["wakeWord"] == "@ai"


class TestGetConfig:
    def test_requires_auth(self, client):
        assert client.get("/api/ai/config").status_code == 401
        resp = client.get("/api/ai/config", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401

    def test_none_configured(self, client, auth):
        resp = client.get("/api/ai/config", headers=auth)
        assert resp.status_code == 200
        assert resp.json() == {"config": None}

    def test_masked_key(self, client, auth, store):
        store.set_config("u1", provider="kimi", model="moonshot-v1-8k", api_key="sk-abcdefgh12345")
        resp = client.get("/api/ai/config", headers=auth)
        assert resp.json() == {
            "config": {
                "provider": "kimi",
                "model": "moonshot-v1-8k",
                "apiKey": "sk-abcde********",
                "baseUrl": None,
            }
        }


class TestPutConfig:
    def test_create_and_read_back(self, client, auth, store):
        body = {"provider": "claude", "model": "claude-haiku-4-5-20251001", "apiKey": " sk-ant-123456789 ", "baseUrl": ""}
        resp = client.put("/api/ai/config", json=body, headers=auth)
        assert resp.status_code == 200
        assert resp.json()["config"]["apiKey"] == "sk-ant-1********"

        saved = store.configs["u1"]
        assert saved.api_key == "sk-ant-123456789"
        assert saved.base_url is None

        again = client.get("/api/ai/config", headers=auth).json()["config"]
        assert (again["provider"], again["model"], again["baseUrl"]) == ("claude", "claude-haiku-4-5-20251001", None)

    def test_replaces_existing(self, client, auth, store):
        store.set_config("u1")
        body = {"provider": "deepseek", "model": "deepseek-chat", "apiKey": "sk-new-key-000", "baseUrl": "https://proxy.local"}
        client.put("/api/ai/config", json=body, headers=auth)
        assert store.configs["u1"].provider == "deepseek"
        assert store.configs["u1"].base_url == "https://proxy.local"
        assert len(store.configs) == 1

    @pytest.mark.parametrize(
        "body",
        [
            {"provider": "", "model": "m", "apiKey": "k"},
            {"provider": "openai", "model": "  ", "apiKey": "k"},
            {"provider": "openai", "model": "m"},
        ],
    )
    def test_missing_fields(self, client, auth, store, body):
        resp = client.put("/api/ai/config", json=body, headers=auth)
        assert resp.status_code == 400
        assert store.configs == {}

    def test_unknown_provider(self, client, auth, store):
        body = {"provider": "mystery", "model": "m", "apiKey": "k"}
        resp = client.put("/api/ai/config", json=body, headers=auth)
        assert resp.status_code == 400
        assert "mystery" in resp.json()["detail"]
        assert store.configs == {}

    def test_requires_auth(self, client):
        resp = client.put("/api/ai/config", json={"provider": "openai", "model": "m", "apiKey": "k"})
        assert resp.status_code == 401


class TestErrorMapping:
    """The app-level handler turns service errors into JSON responses."""

    def test_persistence_error_is_503(self, core, verifier, store, auth):
        from main import chat_error_handler

        app = _build_test_app(core, verifier)
        app.add_exception_handler(ChatError, chat_error_handler)
        store.failing.add("get_ai_config")

        with TestClient(app) as c:
            resp = c.get("/api/ai/config", headers=auth)

        assert resp.status_code == 503
        assert resp.json()["code"] == "PERSISTENCE_WRITE_FAILED"
