"""
Tests for the AI wake-up workflow.

Runs are triggered through real sessions (send_message with the wake word)
and awaited with workflow.drain(). The completion client is an AsyncMock.
"""

import asyncio

from conftest import authenticated_session
from errors import UpstreamProviderError
from routers.realtime import NOT_CONFIGURED_NOTICE
from services.chat_models import MessageKind
from services.completion_client import CompletionRequest
from services.providers import WireFormat


def _send(conversation_id: str, body: str) -> dict:
    return {"conversationId": conversation_id, "body": body}


def _thinking_pairs(ws, conversation_id: str):
    return (
        ws.events("ai_thinking").count({"conversationId": conversation_id}),
        ws.events("ai_thinking_done").count({"conversationId": conversation_id}),
    )


class TestNotConfigured:
    """Identity without an AIConfig."""

    def test_setup_notice(self, core, store, completion):
        store.add_member("u1", "c1")

        async def scenario():
            session, ws = await authenticated_session(core, "u1")
            await session.dispatch("send_message", _send("c1", "@ai hello"))
            await core.workflow.drain()
            return ws

        ws = asyncio.run(scenario())

        replies = store.events_in("c1", MessageKind.AI_REPLY)
        assert len(replies) == 1
        assert replies[0].body == NOT_CONFIGURED_NOTICE
        assert replies[0].author_id == "u1"

        broadcast = [m["event"] for m in ws.events("new_message") if m["event"]["kind"] == "AI_REPLY"]
        assert [m["body"] for m in broadcast] == [NOT_CONFIGURED_NOTICE]
        assert _thinking_pairs(ws, "c1") == (1, 1)
        assert store.runs == []
        completion.complete.assert_not_awaited()


class TestSuccessfulRun:
    """Configured identity, provider answers."""

    def test_reply_context_and_run_record(self, core, store, completion):
        store.add_member("u2", "c1", username="bob")
        store.add_member("u9", "c1", username="carol")
        store.set_config("u2", provider="deepseek", model="deepseek-chat", api_key="sk-deepseek-0001")
        completion.complete.return_value = "你好"

        async def scenario():
            session, ws = await authenticated_session(core, "u2")
            other, other_ws = await authenticated_session(core, "u9")
            await other.dispatch("send_message", _send("c1", "first"))
            await session.dispatch("send_message", _send("c1", "second"))
            await other.dispatch("send_message", _send("c1", "third"))

            await session.dispatch("send_message", _send("c1", "@ai translate: hi"))
            await core.workflow.drain()
            return ws, other_ws

        ws, other_ws = asyncio.run(scenario())

        completion.complete.assert_awaited_once()
        request: CompletionRequest = completion.complete.call_args.args[0]
        assert request.command == "translate: hi"
        assert [line.body for line in request.context] == ["first", "second", "third"]
        assert [line.sender for line in request.context] == ["carol", "bob", "carol"]
        assert request.wire_format == WireFormat.COMPLETIONS
        assert request.endpoint == "https://api.deepseek.com"
        assert request.model == "deepseek-chat"
        assert request.api_key == "sk-deepseek-0001"

        replies = store.events_in("c1", MessageKind.AI_REPLY)
        assert [r.body for r in replies] == ["你好"]

        for socket in (ws, other_ws):
            bodies = [m["event"]["body"] for m in socket.events("new_message")]
            assert bodies[-1] == "你好"
            assert _thinking_pairs(socket, "c1") == (1, 1)

        assert len(store.runs) == 1
        run = store.runs[0]
        assert run.message_count == 3
        assert run.triggered_by == "u2"
        assert run.payload == {"command": "translate: hi", "text": "你好"}

    def test_context_limit_and_oldest_first(self, core, store, completion):
        store.add_member("u1", "c1")
        store.set_config("u1")
        core.workflow._context_limit = 2

        async def scenario():
            session, _ = await authenticated_session(core, "u1")
            for body in ("one", "two", "three"):
                await session.dispatch("send_message", _send("c1", body))
            await session.dispatch("send_message", _send("c1", "@ai"))
            await core.workflow.drain()

        asyncio.run(scenario())

        request = completion.complete.call_args.args[0]
        assert request.command == ""
        assert [line.body for line in request.context] == ["two", "three"]

    def test_ai_replies_excluded_from_context(self, core, store, completion):
        store.add_member("u1", "c1")
        store.set_config("u1")
        completion.complete.return_value = "first answer"

        async def scenario():
            session, _ = await authenticated_session(core, "u1")
            await session.dispatch("send_message", _send("c1", "@ai one"))
            await core.workflow.drain()
            await session.dispatch("send_message", _send("c1", "@ai two"))
            await core.workflow.drain()

        asyncio.run(scenario())

        second = completion.complete.call_args_list[1].args[0]
        assert [line.body for line in second.context] == ["@ai one"]

    def test_base_url_override_and_messages_format(self, core, store, completion):
        store.add_member("u1", "c1")
        store.set_config("u1", provider="claude", model="claude-haiku-4-5-20251001", base_url="https://proxy.internal")

        async def scenario():
            session, _ = await authenticated_session(core, "u1")
            await session.dispatch("send_message", _send("c1", "@ai summarize"))
            await core.workflow.drain()

        asyncio.run(scenario())

        request = completion.complete.call_args.args[0]
        assert request.wire_format == WireFormat.MESSAGES
        assert request.endpoint == "https://proxy.internal"

    def test_run_record_failure_keeps_reply(self, core, store, completion):
        store.add_member("u1", "c1")
        store.set_config("u1")
        store.failing.add("append_ai_run_record")

        async def scenario():
            session, ws = await authenticated_session(core, "u1")
            await session.dispatch("send_message", _send("c1", "@ai hi"))
            await core.workflow.drain()
            return ws

        ws = asyncio.run(scenario())

        replies = store.events_in("c1", MessageKind.AI_REPLY)
        assert [r.body for r in replies] == ["Hello from the assistant"]
        assert _thinking_pairs(ws, "c1") == (1, 1)


class TestFailures:
    """Failures become one chat-visible notice; thinking always ends."""

    def test_provider_timeout(self, core, store, completion):
        store.add_member("u1", "c1")
        store.set_config("u1")
        completion.complete.side_effect = UpstreamProviderError(
            "OpenAI request timed out after 60s", error_type="timeout"
        )

        async def scenario():
            session, ws = await authenticated_session(core, "u1")
            await session.dispatch("send_message", _send("c1", "@ai summarize"))
            await core.workflow.drain()
            return ws

        ws = asyncio.run(scenario())

        replies = store.events_in("c1", MessageKind.AI_REPLY)
        assert len(replies) == 1
        assert replies[0].body.startswith("AI request failed: OpenAI request timed out after 60s")
        assert "API key" in replies[0].body
        assert store.runs == []
        assert _thinking_pairs(ws, "c1") == (1, 1)
        assert ws.events("error") == []

    def test_provider_error_includes_detail(self, core, store, completion):
        store.add_member("u1", "c1")
        store.set_config("u1")
        completion.complete.side_effect = UpstreamProviderError(
            "OpenAI API error (401)", details="invalid api key", status_code=401, body="invalid api key"
        )

        async def scenario():
            session, _ = await authenticated_session(core, "u1")
            await session.dispatch("send_message", _send("c1", "@ai hi"))
            await core.workflow.drain()

        asyncio.run(scenario())

        body = store.events_in("c1", MessageKind.AI_REPLY)[0].body
        assert "OpenAI API error (401) - invalid api key" in body

    def test_unknown_provider_in_stored_config(self, core, store, completion):
        store.add_member("u1", "c1")
        store.set_config("u1", provider="retired-provider")

        async def scenario():
            session, ws = await authenticated_session(core, "u1")
            await session.dispatch("send_message", _send("c1", "@ai hi"))
            await core.workflow.drain()
            return ws

        ws = asyncio.run(scenario())

        completion.complete.assert_not_awaited()
        replies = store.events_in("c1", MessageKind.AI_REPLY)
        assert len(replies) == 1
        assert "retired-provider" in replies[0].body
        assert _thinking_pairs(ws, "c1") == (1, 1)

    def test_config_lookup_failure(self, core, store, completion):
        store.add_member("u1", "c1")
        store.failing.add("get_ai_config")

        async def scenario():
            session, ws = await authenticated_session(core, "u1")
            await session.dispatch("send_message", _send("c1", "@ai hi"))
            await core.workflow.drain()
            return ws

        ws = asyncio.run(scenario())

        assert len(store.events_in("c1", MessageKind.AI_REPLY)) == 1
        assert _thinking_pairs(ws, "c1") == (1, 1)
        assert ws.events("error") == []

    def test_run_never_raises(self, core, store, completion):
        """Even when nothing can be persisted, run() returns and thinking ends."""
        store.add_member("u1", "c1")
        store.set_config("u1")
        completion.complete.side_effect = RuntimeError("boom")

        async def scenario():
            _, ws = await authenticated_session(core, "u1")
            store.failing.add("create_chat_event")
            outcome = await core.workflow.run("u1", "c1", "hi")
            return outcome, ws

        outcome, ws = asyncio.run(scenario())

        assert outcome == "failed"
        assert store.events == []
        assert _thinking_pairs(ws, "c1") == (1, 1)


class TestNonBlocking:
    """The sender's handler returns before the provider answers."""

    def test_send_returns_before_completion(self, core, store, completion):
        store.add_member("u1", "c1")
        store.set_config("u1")

        async def scenario():
            release = asyncio.Event()

            async def slow_complete(request):
                await release.wait()
                return "late answer"

            completion.complete.side_effect = slow_complete

            session, ws = await authenticated_session(core, "u1")
            await session.dispatch("send_message", _send("c1", "@ai think hard"))

            # The wake-up message is delivered, the AI run is still pending
            assert [m["event"]["body"] for m in ws.events("new_message")] == ["@ai think hard"]
            await asyncio.sleep(0)
            assert core.workflow.pending == 1

            # Other traffic is not held up meanwhile
            await session.dispatch("send_message", _send("c1", "meanwhile"))
            assert [m["event"]["body"] for m in ws.events("new_message")] == ["@ai think hard", "meanwhile"]

            release.set()
            await core.workflow.drain()
            return ws

        ws = asyncio.run(scenario())

        bodies = [m["event"]["body"] for m in ws.events("new_message")]
        assert bodies == ["@ai think hard", "meanwhile", "late answer"]
        assert core.workflow.pending == 0

    def test_drain_timeout_cancels(self, core, store, completion):
        store.add_member("u1", "c1")
        store.set_config("u1")

        async def scenario():
            async def never(request):
                await asyncio.Event().wait()

            completion.complete.side_effect = never
            session, ws = await authenticated_session(core, "u1")
            await session.dispatch("send_message", _send("c1", "@ai stuck"))
            await asyncio.sleep(0)
            await core.workflow.drain(timeout=0.05)
            # Let the cancellation unwind
            await asyncio.sleep(0.01)
            return ws

        ws = asyncio.run(scenario())
        assert core.workflow.pending == 0
        assert _thinking_pairs(ws, "c1") == (1, 1)
        assert store.events_in("c1", MessageKind.AI_REPLY) == []
