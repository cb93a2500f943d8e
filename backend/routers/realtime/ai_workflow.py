"""
AI wake-up workflow.

Runs detached from the sender's handler once a message starting with the
wake word has been persisted and broadcast:

    1. ai_thinking to the room
    2. Load the triggering identity's AIConfig (missing -> setup notice, stop)
    3. Load recent TEXT messages as context (oldest first)
    4. Resolve the provider and endpoint, call the completion client
    5. Publish the reply as AI_REPLY and append an AIRunRecord
       (provider failure -> publish a failure notice instead, no record)
    6. ai_thinking_done to the room, always

Nothing here raises back into the event loop; every failure ends up as a
chat-visible notice and a log line.
"""

import asyncio
import logging
from typing import List, Optional, Set

from config import runtime_config
from errors import ChatError, NotFoundError, format_provider_failure, log_error
from logging_config import log_thinking
from services.chat_models import AIRunRecord, ContextLine, MessageKind
from services.chat_store import ChatStore
from services.completion_client import CompletionClient, CompletionRequest
from services.providers import lookup

from .delivery import DeliveryPipeline
from .events import AI_THINKING, AI_THINKING_DONE

logger = logging.getLogger(__name__)

NOT_CONFIGURED_NOTICE = (
    "You haven't configured an AI service yet. "
    "Open AI Settings, pick a provider and model, enter your API key, then try again."
)


class AIWorkflow:
    def __init__(
        self,
        store: ChatStore,
        pipeline: DeliveryPipeline,
        completion_client: CompletionClient,
        context_limit: Optional[int] = None,
    ):
        self.store = store
        self.pipeline = pipeline
        self.client = completion_client
        self._context_limit = context_limit
        self._tasks: Set[asyncio.Task] = set()

    @property
    def context_limit(self) -> int:
        if self._context_limit is not None:
            return self._context_limit
        return runtime_config.ai_context_limit

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def schedule(
        self,
        identity: str,
        conversation_id: str,
        command: str,
        trigger_event_id: Optional[str] = None,
    ) -> asyncio.Task:
        """Start a run in the background and return its task."""
        task = asyncio.create_task(
            self.run(identity, conversation_id, command, trigger_event_id),
            name=f"ai-wakeup-{conversation_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self, timeout: Optional[float] = None) -> None:
        """Wait for in-flight runs (shutdown and tests)."""
        if not self._tasks:
            return
        done, pending = await asyncio.wait(set(self._tasks), timeout=timeout)
        for task in pending:
            task.cancel()
        if pending:
            logger.warning(f"Cancelled {len(pending)} AI run(s) still in flight")

    async def run(
        self,
        identity: str,
        conversation_id: str,
        command: str,
        trigger_event_id: Optional[str] = None,
    ) -> str:
        """Execute one wake-up. Returns the outcome label (for logs and tests)."""
        outcome = "failed"
        log_thinking(logger, "start", conversation_id=conversation_id)
        try:
            await self.pipeline.signal(conversation_id, AI_THINKING, {"conversationId": conversation_id})
            outcome = await self._respond(identity, conversation_id, command, trigger_event_id)
        except asyncio.CancelledError:
            outcome = "cancelled"
            raise
        except Exception as e:
            log_error(logger, e, context="ai_wakeup", include_traceback=not isinstance(e, ChatError))
            await self._post_notice(conversation_id, identity, format_provider_failure(e))
        finally:
            try:
                await self.pipeline.signal(conversation_id, AI_THINKING_DONE, {"conversationId": conversation_id})
            except Exception as e:
                log_error(logger, e, context="ai_thinking_done", include_traceback=False)
            log_thinking(logger, "end", conversation_id=conversation_id, outcome=outcome)
        return outcome

    async def _respond(
        self,
        identity: str,
        conversation_id: str,
        command: str,
        trigger_event_id: Optional[str],
    ) -> str:
        config = await self.store.get_ai_config(identity)
        if config is None:
            await self._post_notice(conversation_id, identity, NOT_CONFIGURED_NOTICE)
            return "not configured"

        context = await self._load_context(conversation_id, trigger_event_id)

        provider = lookup(config.provider)
        if provider is None:
            raise NotFoundError(
                f"Unknown AI provider '{config.provider}'",
                resource_type="provider",
                resource_id=config.provider,
            )

        request = CompletionRequest(
            wire_format=provider.wire_format,
            endpoint=config.base_url or provider.default_endpoint,
            api_key=config.api_key,
            model=config.model,
            command=command,
            context=context,
            provider=provider.display_name,
        )
        reply = await self.client.complete(request)

        await self.pipeline.publish(conversation_id, identity, reply, kind=MessageKind.AI_REPLY)

        record = AIRunRecord(
            conversation_id=conversation_id,
            triggered_by=identity,
            message_count=len(context),
            payload={"command": command, "text": reply},
        )
        try:
            await self.store.append_ai_run_record(record)
        except Exception as e:
            # Reply already delivered; the audit entry is best effort
            log_error(logger, e, context="ai_run_record", include_traceback=False)
        return "replied"

    async def _load_context(self, conversation_id: str, trigger_event_id: Optional[str]) -> List[ContextLine]:
        limit = self.context_limit
        if limit <= 0:
            return []
        fetch = limit + 1 if trigger_event_id else limit
        recent = await self.store.recent_text_events(conversation_id, fetch)
        if trigger_event_id:
            recent = [event for event in recent if event.id != trigger_event_id]
        recent = recent[:limit]
        return [ContextLine.from_event(event) for event in reversed(recent)]

    async def _post_notice(self, conversation_id: str, identity: str, body: str) -> None:
        try:
            await self.pipeline.publish(conversation_id, identity, body, kind=MessageKind.AI_REPLY, touch=False)
        except Exception as e:
            log_error(logger, e, context="ai_notice", include_traceback=False)
