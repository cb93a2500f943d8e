"""
Completion Provider Registry - static catalog of supported AI providers.

Every provider speaks one of two wire formats:
- completions: OpenAI-style POST {endpoint}/chat/completions
  (DeepSeek, OpenAI, Kimi and Doubao all accept it)
- messages: Anthropic-style POST {endpoint}/v1/messages

The catalog is immutable after import. It is used to validate AI config
writes and to resolve the wire format and default endpoint for a call.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class WireFormat(str, Enum):
    COMPLETIONS = "completions"
    MESSAGES = "messages"


@dataclass(frozen=True)
class ModelInfo:
    id: str
    display_name: str


@dataclass(frozen=True)
class ProviderDescriptor:
    """One completion provider.

    Attributes:
        id: Stable identifier stored in AI configs
        display_name: Name shown in the settings UI
        default_endpoint: Base URL used when the config has no override
        wire_format: Request/response family
        models: Suggested models (custom model ids are still accepted)
        note: Optional hint shown next to the provider
    """

    id: str
    display_name: str
    default_endpoint: str
    wire_format: WireFormat
    models: Tuple[ModelInfo, ...] = field(default_factory=tuple)
    note: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "displayName": self.display_name,
            "defaultEndpoint": self.default_endpoint,
            "wireFormat": self.wire_format.value,
            "models": [{"id": m.id, "displayName": m.display_name} for m in self.models],
        }
        if self.note:
            data["note"] = self.note
        return data


PROVIDERS: Tuple[ProviderDescriptor, ...] = (
    ProviderDescriptor(
        id="deepseek",
        display_name="DeepSeek",
        default_endpoint="https://api.deepseek.com",
        wire_format=WireFormat.COMPLETIONS,
        models=(
            ModelInfo("deepseek-chat", "DeepSeek V3 (Chat)"),
            ModelInfo("deepseek-reasoner", "DeepSeek R1 (Reasoner)"),
        ),
    ),
    ProviderDescriptor(
        id="openai",
        display_name="OpenAI",
        default_endpoint="https://api.openai.com/v1",
        wire_format=WireFormat.COMPLETIONS,
        models=(
            ModelInfo("gpt-4.1", "GPT-4.1"),
            ModelInfo("gpt-4.1-mini", "GPT-4.1 Mini"),
            ModelInfo("gpt-4.1-nano", "GPT-4.1 Nano"),
            ModelInfo("gpt-4o", "GPT-4o"),
            ModelInfo("gpt-4o-mini", "GPT-4o Mini"),
            ModelInfo("o3-mini", "o3-mini (reasoning)"),
        ),
    ),
    ProviderDescriptor(
        id="kimi",
        display_name="Kimi (Moonshot)",
        default_endpoint="https://api.moonshot.ai/v1",
        wire_format=WireFormat.COMPLETIONS,
        models=(
            ModelInfo("moonshot-v1-8k", "Moonshot v1 8K"),
            ModelInfo("moonshot-v1-32k", "Moonshot v1 32K"),
            ModelInfo("moonshot-v1-128k", "Moonshot v1 128K"),
        ),
    ),
    ProviderDescriptor(
        id="doubao",
        display_name="Doubao",
        default_endpoint="https://ark.cn-beijing.volces.com/api/v3",
        wire_format=WireFormat.COMPLETIONS,
        models=(
            ModelInfo("doubao-pro-32k", "Doubao Pro 32K"),
            ModelInfo("doubao-lite-32k", "Doubao Lite 32K"),
        ),
        note="A Volcengine endpoint id (ep-...) can be entered as a custom model id",
    ),
    ProviderDescriptor(
        id="claude",
        display_name="Claude (Anthropic)",
        default_endpoint="https://api.anthropic.com",
        wire_format=WireFormat.MESSAGES,
        models=(
            ModelInfo("claude-opus-4-1-20250805", "Claude Opus 4.1"),
            ModelInfo("claude-sonnet-4-5-20250929", "Claude Sonnet 4.5"),
            ModelInfo("claude-haiku-4-5-20251001", "Claude Haiku 4.5"),
        ),
    ),
)

_BY_ID: Dict[str, ProviderDescriptor] = {p.id: p for p in PROVIDERS}


def list_providers() -> List[ProviderDescriptor]:
    """All providers in display order."""
    return list(PROVIDERS)


def lookup(provider_id: str) -> Optional[ProviderDescriptor]:
    """Find a provider by id. Returns None when unknown."""
    return _BY_ID.get(provider_id)
