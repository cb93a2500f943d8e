"""
Chat Service - realtime messaging with an in-line AI assistant
FastAPI Backend: WebSocket delivery core + AI settings API
"""

from contextlib import asynccontextmanager
import logging
import os
import uuid

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from routers import ai_config, chat
from routers.realtime import build_core
from errors import ChatError, PersistenceError
from logging_config import setup_logging
from config import runtime_config

setup_logging(runtime_config.log_level)
logger = logging.getLogger(__name__)

# Instance ID - changes on every startup, used by clients to detect restarts
INSTANCE_ID = str(uuid.uuid4())

SHUTDOWN_DRAIN_TIMEOUT_S = float(os.environ.get("SHUTDOWN_DRAIN_TIMEOUT_S", "10"))


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown events"""
    from services.database import get_database, close_database
    from services.chat_store import PostgresChatStore
    from services.completion_client import CompletionClient

    # Startup
    db = await get_database()
    if db.available:
        logger.info("PostgreSQL ready")
    else:
        logger.warning("PostgreSQL unavailable; messages will be rejected until it recovers")

    completion_client = CompletionClient()
    app.state.realtime = build_core(PostgresChatStore(db), completion_client)
    logger.info(f"Chat service started (instance {INSTANCE_ID[:8]}, wake word {runtime_config.wake_word!r})")

    yield

    # Shutdown
    logger.info("Shutting down...")
    await app.state.realtime.workflow.drain(timeout=SHUTDOWN_DRAIN_TIMEOUT_S)
    await completion_client.aclose()
    await close_database()


app = FastAPI(
    title="Chat Service",
    description="Realtime chat with an on-demand AI assistant",
    version="1.0.0",
    lifespan=lifespan,
)


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        return response


app.add_middleware(SecurityHeadersMiddleware)

# CORS - origins from CORS_ORIGINS (comma separated), local dev frontends by default
_cors_origins = [
    o.strip()
    for o in os.environ.get("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000").split(",")
    if o.strip()
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ChatError)
async def chat_error_handler(request: Request, exc: ChatError):
    """Map service errors raised inside REST routes to JSON responses."""
    status_code = 503 if isinstance(exc, PersistenceError) else 400
    logger.warning(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code.value},
    )


# Chat router is mounted WITHOUT /api prefix so WebSocket is at /ws/chat
app.include_router(chat.router, tags=["chat"])
# AI settings router (already has /api/ai prefix)
app.include_router(ai_config.router)


@app.get("/health")
async def health():
    """Health check - pings the database and reports realtime load."""
    checks = {}

    try:
        from services.database import get_database
        db = await get_database()
        db_health = await db.health_check()
        checks["postgres"] = "ok" if db_health.get("status") == "connected" else "down"
    except Exception:
        checks["postgres"] = "down"

    core = getattr(app.state, "realtime", None)
    all_ok = all(v == "ok" for v in checks.values())
    return {
        "status": "healthy" if all_ok else "degraded",
        "instance_id": INSTANCE_ID,
        "checks": checks,
        "connections": core.hub.connection_count if core else 0,
        "online": len(core.registry) if core else 0,
        "ai_runs_in_flight": core.workflow.pending if core else 0,
    }
