"""
Completion Client - one outbound provider call per invocation.

Two wire formats are supported, selected by the provider's WireFormat:

    completions: POST {endpoint}/chat/completions
        headers: Authorization: Bearer <key>
        body:    {model, messages: [{system}, {user}], max_tokens, temperature}
        reply:   choices[0].message.content

    messages:    POST {endpoint}/v1/messages
        headers: x-api-key: <key>, anthropic-version: <version>
        body:    {model, system, messages: [{user}], max_tokens, temperature}
        reply:   content[0].text

Any non-2xx status, timeout or transport error raises UpstreamProviderError.
There are no retries; the caller decides what the user sees.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import httpx

from config import runtime_config
from errors import UpstreamProviderError
from logging_config import log_llm
from services.chat_models import ContextLine
from services.providers import WireFormat

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = """You are the group assistant embedded in an instant-messaging chat.

What you know:
- You can see the recent chat history as context
- Users wake you with @ai; whatever follows @ai is their request to you
- Your reply is posted as a chat message visible to every member

Things you can help with:
- Summarizing the conversation ("@ai summarize")
- Translating ("@ai translate to English: ...")
- Answering questions and explaining concepts mentioned in the chat
- Drafting messages or announcements
- Any other text task

Guidelines:
- Reply in the language the user writes in, unless asked otherwise
- Keep it short and friendly, like a helpful member of the group
- If the user only sent @ai without a request, greet them and ask what they need
- Keep replies under about 300 words"""

GREETING_INSTRUCTION = (
    "The user woke you without a specific request. "
    "Greet them briefly and ask what they need help with."
)

EMPTY_REPLY = "The assistant did not produce a reply."


@dataclass
class CompletionRequest:
    """Everything needed for one provider call."""

    wire_format: WireFormat
    endpoint: str
    api_key: str = field(repr=False)
    model: str
    command: str
    context: List[ContextLine] = field(default_factory=list)
    system_prompt: str = SYSTEM_PROMPT
    provider: str = ""


def build_user_message(context: List[ContextLine], command: str) -> str:
    """Combine the transcript and the command into a single user payload."""
    parts = []
    if context:
        transcript = "\n".join(f"[{line.time}] {line.sender}: {line.body}" for line in context)
        parts.append(f"[Recent chat history]\n{transcript}\n\n")

    if command:
        parts.append(f"[User request] {command}")
    else:
        parts.append(f"[User request] {GREETING_INSTRUCTION}")
    return "".join(parts)


def _extract_completions_text(data: Any) -> str:
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return EMPTY_REPLY
    return content or EMPTY_REPLY


def _extract_messages_text(data: Any) -> str:
    try:
        text = data["content"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return EMPTY_REPLY
    return text or EMPTY_REPLY


class CompletionClient:
    """Stateless adapter over the two provider wire formats."""

    def __init__(
        self,
        http_client: Optional[httpx.AsyncClient] = None,
        timeout: Optional[float] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
        anthropic_version: Optional[str] = None,
    ):
        """
        Args:
            http_client: Shared AsyncClient (created and owned here when omitted)
            timeout: Per-phase httpx timeout in seconds (connect, read, write, pool)
            max_tokens: Output cap sent to the provider
            temperature: Sampling temperature sent to the provider
            anthropic_version: Version header for the messages format

        Arguments left as None follow runtime_config on every call.
        """
        self._timeout_override = timeout
        self._max_tokens_override = max_tokens
        self._temperature_override = temperature
        self._anthropic_version_override = anthropic_version
        self._owns_client = http_client is None
        self._http = http_client or httpx.AsyncClient()

    @property
    def timeout(self) -> float:
        if self._timeout_override is not None:
            return self._timeout_override
        return runtime_config.ai_request_timeout

    @property
    def max_tokens(self) -> int:
        if self._max_tokens_override is not None:
            return self._max_tokens_override
        return runtime_config.ai_max_tokens

    @property
    def temperature(self) -> float:
        if self._temperature_override is not None:
            return self._temperature_override
        return runtime_config.ai_temperature

    @property
    def anthropic_version(self) -> str:
        return self._anthropic_version_override or runtime_config.anthropic_version

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    def build_http_request(self, request: CompletionRequest) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        """Return (url, headers, json body) for a request."""
        base = request.endpoint.rstrip("/")
        user_message = build_user_message(request.context, request.command)

        if request.wire_format == WireFormat.MESSAGES:
            url = f"{base}/v1/messages"
            headers = {
                "Content-Type": "application/json",
                "x-api-key": request.api_key,
                "anthropic-version": self.anthropic_version,
            }
            payload = {
                "model": request.model,
                "system": request.system_prompt,
                "messages": [{"role": "user", "content": user_message}],
                "max_tokens": self.max_tokens,
                "temperature": self.temperature,
            }
        else:
            url = f"{base}/chat/completions"
            headers = {
                "Content-Type": "application/json",
                "Authorization": f"Bearer {request.api_key}",
            }
            payload = {
                "model": request.model,
                "messages": [
                    {"role": "system", "content": request.system_prompt},
                    {"role": "user", "content": user_message},
                ],
                "max_tokens": self.max_tokens,
                "temperature": self.temperature,
            }
        return url, headers, payload

    async def complete(self, request: CompletionRequest) -> str:
        """Issue exactly one provider call and return the reply text.

        Raises:
            UpstreamProviderError: non-2xx status (with status code and raw
                body), timeout, transport failure or a non-JSON body
        """
        url, headers, payload = self.build_http_request(request)
        label = request.provider or request.wire_format.value

        log_llm(logger, "start", model=request.model)
        timeout = self.timeout
        start = time.monotonic()
        try:
            resp = await self._http.post(url, json=payload, headers=headers, timeout=timeout)
        except httpx.TimeoutException as e:
            raise UpstreamProviderError(
                f"{label} request timed out after {timeout:.0f}s",
                provider=request.provider,
                error_type="timeout",
            ) from e
        except httpx.HTTPError as e:
            raise UpstreamProviderError(
                f"{label} request failed",
                details=str(e) or type(e).__name__,
                provider=request.provider,
                error_type="network",
            ) from e

        if not resp.is_success:
            body = resp.text
            raise UpstreamProviderError(
                f"{label} API error ({resp.status_code})",
                details=body,
                provider=request.provider,
                status_code=resp.status_code,
                body=body,
            )

        try:
            data = resp.json()
        except ValueError as e:
            raise UpstreamProviderError(
                f"{label} returned a non-JSON response",
                details=resp.text[:500],
                provider=request.provider,
                status_code=resp.status_code,
                error_type="invalid",
            ) from e

        log_llm(logger, "end", model=request.model, duration=time.monotonic() - start)

        if request.wire_format == WireFormat.MESSAGES:
            return _extract_messages_text(data)
        return _extract_completions_text(data)
