"""
AI Settings Router - provider catalogue and per-user AI configuration.

Endpoints:
    GET /api/ai/providers  - public provider/model catalogue and the wake word
    GET /api/ai/config     - caller's config, credential masked (or null)
    PUT /api/ai/config     - create or replace the caller's config
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel

from config import runtime_config
from services.auth import verify_user
from services.chat_models import AIConfig
from services.chat_store import ChatStore
from services.providers import list_providers, lookup

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai", tags=["ai"])


class AIConfigUpdate(BaseModel):
    provider: str = ""
    model: str = ""
    apiKey: str = ""
    baseUrl: Optional[str] = None


def get_store(request: Request) -> ChatStore:
    return request.app.state.realtime.store


@router.get("/providers")
async def get_providers():
    """List supported providers and their models."""
    return {
        "providers": [provider.to_dict() for provider in list_providers()],
        "wakeWord": runtime_config.wake_word,
    }


@router.get("/config")
async def get_ai_config(identity: str = Depends(verify_user), store: ChatStore = Depends(get_store)):
    """Return the caller's AI config with the API key masked."""
    config = await store.get_ai_config(identity)
    return {"config": config.masked() if config else None}


@router.put("/config")
async def put_ai_config(
    update: AIConfigUpdate,
    identity: str = Depends(verify_user),
    store: ChatStore = Depends(get_store),
):
    """Create or replace the caller's AI config."""
    provider = update.provider.strip()
    model = update.model.strip()
    api_key = update.apiKey.strip()

    if not provider or not model or not api_key:
        raise HTTPException(status_code=400, detail="provider, model and apiKey are required")
    if lookup(provider) is None:
        raise HTTPException(status_code=400, detail=f"Unknown AI provider: {provider}")

    base_url = (update.baseUrl or "").strip() or None
    saved = await store.upsert_ai_config(
        AIConfig(identity=identity, provider=provider, model=model, api_key=api_key, base_url=base_url)
    )
    logger.info(f"AI config saved for {identity}: {provider}/{model}")
    return {"config": saved.masked()}
