"""
Realtime Core - message delivery and AI wake-up orchestration

Components:
- Connection / RoomHub: live transports, room membership, fan-out
- DeliveryPipeline: persist -> touch -> broadcast, serialized per room
- RealtimeSession: per-connection state machine and event handlers
- AIWorkflow: detached wake-up runs (thinking pair, context, provider call)
- RealtimeCore: shared wiring, built once at startup

Ordering:
    Each room has one lock. A message is persisted and broadcast while the
    lock is held, so every member observes messages in persistence order.
    AI replies go through the same pipeline, so they are ordered with
    regular traffic. Typing and thinking indicators bypass the lock and are
    never persisted.
"""

from .ai_workflow import AIWorkflow, NOT_CONFIGURED_NOTICE
from .connection import Connection, RoomHub
from .core import RealtimeCore, build_core
from .delivery import DeliveryPipeline
from .events import room_name
from .session import ConnectionState, RealtimeSession

__all__ = [
    "AIWorkflow",
    "NOT_CONFIGURED_NOTICE",
    "Connection",
    "RoomHub",
    "RealtimeCore",
    "build_core",
    "DeliveryPipeline",
    "room_name",
    "ConnectionState",
    "RealtimeSession",
]
