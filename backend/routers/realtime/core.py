"""
Realtime core wiring.

One RealtimeCore is built at startup and shared by every WebSocket session
through ``app.state.realtime``.
"""

from dataclasses import dataclass, field
from typing import Optional

from config import RuntimeConfig, runtime_config
from services.auth import TokenVerifier, get_token_verifier
from services.chat_store import ChatStore
from services.completion_client import CompletionClient
from services.connection_registry import ConnectionRegistry

from .ai_workflow import AIWorkflow
from .connection import RoomHub
from .delivery import DeliveryPipeline


@dataclass
class RealtimeCore:
    store: ChatStore
    hub: RoomHub
    registry: ConnectionRegistry
    verifier: TokenVerifier
    pipeline: DeliveryPipeline
    workflow: AIWorkflow
    config: RuntimeConfig = field(default_factory=lambda: runtime_config)


def build_core(
    store: ChatStore,
    completion_client: CompletionClient,
    verifier: Optional[TokenVerifier] = None,
    config: Optional[RuntimeConfig] = None,
) -> RealtimeCore:
    """Assemble the shared realtime components around a store and client."""
    config = config or runtime_config
    hub = RoomHub()
    pipeline = DeliveryPipeline(store, hub)
    return RealtimeCore(
        store=store,
        hub=hub,
        registry=ConnectionRegistry(),
        verifier=verifier or get_token_verifier(),
        pipeline=pipeline,
        workflow=AIWorkflow(store, pipeline, completion_client),
        config=config,
    )
