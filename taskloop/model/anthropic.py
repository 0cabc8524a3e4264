"""Anthropic Messages API client producing one action per call.

Streams the response over SSE with httpx, forwards each text delta as a
chunk, and parses the accumulated text as a single JSON action object.
No retries: a failed call surfaces as ModelError and ends the run.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import AsyncGenerator
from contextlib import aclosing
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

import httpx

from taskloop.config import Settings
from taskloop.engine.conversation import Conversation
from taskloop.engine.errors import EmptyResponse, ModelError
from taskloop.model.base import ChunkSink

if TYPE_CHECKING:
    from taskloop.engine.registry import ActionRegistry

logger = logging.getLogger(__name__)

_API_VERSION = "2023-06-01"

_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


@dataclass
class StreamEvent:
    """A single event from the streaming API response."""

    type: str  # text_delta, done, message_stop, error
    text: str = ""
    stop_reason: str = ""


def _parse_sse_event(data: dict[str, Any]) -> StreamEvent | None:
    """Parse an Anthropic SSE event dict into a StreamEvent.

    Pings and non-text blocks are skipped. Errors can arrive in-stream
    after an HTTP 200.
    """
    event_type = data.get("type")

    if event_type == "error":
        error = data.get("error", {})
        return StreamEvent(
            type="error",
            text=f"{error.get('type', 'unknown')}: {error.get('message', '')}",
        )

    if event_type == "content_block_delta":
        delta = data.get("delta", {})
        if delta.get("type") == "text_delta":
            return StreamEvent(type="text_delta", text=delta.get("text", ""))
        return None

    if event_type == "message_delta":
        return StreamEvent(
            type="done",
            stop_reason=data.get("delta", {}).get("stop_reason", ""),
        )

    if event_type == "message_stop":
        return StreamEvent(type="message_stop")

    return None


def extract_action_json(text: str) -> dict[str, Any]:
    """Pull one JSON object out of model text.

    Accepts bare JSON, a fenced ```json block, or prose around a single
    object. Raises ModelError when no object can be decoded.
    """
    candidates = [text.strip()]
    candidates.extend(m.strip() for m in _FENCE_RE.findall(text))
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start : end + 1])

    for candidate in candidates:
        if not candidate:
            continue
        try:
            value = json.loads(candidate)
        except json.JSONDecodeError:
            continue
        if isinstance(value, dict):
            return value

    raise ModelError(f"model response is not a JSON action object: {text[:200]!r}")


def schema_prompt(registry: ActionRegistry) -> str:
    """System text carrying the JSON schema of every registered action."""
    schema = json.dumps(registry.json_schema(), separators=(",", ":"))
    return f"Every response must be one JSON object valid against this schema:\n{schema}"


def format_messages(conversation: Conversation) -> list[dict[str, Any]]:
    """Conversation as Messages API input; actions become their JSON text."""
    return [{"role": m.role, "content": m.text} for m in conversation]


class AnthropicClient:
    """Streams actions from the Anthropic Messages API.

    Call start() before use and close() afterwards, or use it as an async
    context manager.
    """

    def __init__(
        self,
        settings: Settings,
        system_prompt: str,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._system_prompt = system_prompt
        self._transport = transport
        self._http: httpx.AsyncClient | None = None

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    async def start(self) -> None:
        """Initialize the httpx client with auth and timeout settings."""
        settings = self._settings
        headers: dict[str, str] = {
            "anthropic-version": _API_VERSION,
            "content-type": "application/json",
        }

        # OAT tokens (sk-ant-oat*) require Bearer auth plus beta headers.
        api_key = settings.anthropic_api_key or ""
        auth_token = settings.anthropic_auth_token or ""

        if auth_token:
            headers["authorization"] = f"Bearer {auth_token}"
            if "sk-ant-oat" in auth_token:
                headers["anthropic-beta"] = "oauth-2025-04-20"
        elif api_key:
            if "sk-ant-oat" in api_key:
                headers["authorization"] = f"Bearer {api_key}"
                headers["anthropic-beta"] = "oauth-2025-04-20"
            else:
                headers["x-api-key"] = api_key
        else:
            logger.warning(
                "Neither ANTHROPIC_API_KEY nor ANTHROPIC_AUTH_TOKEN is set -- "
                "API calls will fail"
            )

        timeout = httpx.Timeout(
            connect=settings.api_timeout_connect,
            read=settings.api_timeout_read,
            write=10.0,
            pool=10.0,
        )
        self._http = httpx.AsyncClient(
            base_url=settings.api_base_url,
            headers=headers,
            timeout=timeout,
            transport=self._transport,
        )
        logger.info("Anthropic client initialized (model: %s)", settings.model)

    async def close(self) -> None:
        if self._http:
            await self._http.aclose()
            self._http = None

    async def __aenter__(self) -> AnthropicClient:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    def _build_payload(
        self, conversation: Conversation, registry: ActionRegistry
    ) -> dict[str, Any]:
        # Both system blocks are fixed for a run; one cache breakpoint covers them.
        return {
            "model": self._settings.model,
            "max_tokens": self._settings.max_tokens,
            "system": [
                {"type": "text", "text": self._system_prompt},
                {
                    "type": "text",
                    "text": schema_prompt(registry),
                    "cache_control": {"type": "ephemeral"},
                },
            ],
            "messages": format_messages(conversation),
            "stream": True,
        }

    async def _stream(self, payload: dict[str, Any]) -> AsyncGenerator[StreamEvent, None]:
        if not self._http:
            raise ModelError("httpx client not initialized -- call start() first")

        try:
            async with self._http.stream("POST", "/v1/messages", json=payload) as response:
                if response.status_code != 200:
                    body = await response.aread()
                    raise ModelError(
                        f"Anthropic API error ({response.status_code}): "
                        f"{body.decode(errors='replace')[:500]}"
                    )
                async for line in response.aiter_lines():
                    if not line.startswith("data: "):
                        continue
                    try:
                        data = json.loads(line[6:])
                    except json.JSONDecodeError:
                        logger.debug("Skipping malformed SSE line: %s", line[:200])
                        continue
                    event = _parse_sse_event(data)
                    if event:
                        yield event
        except httpx.TimeoutException as e:
            raise ModelError(f"API request timed out: {e}") from e
        except httpx.HTTPError as e:
            raise ModelError(f"HTTP error: {e}") from e

    async def call(
        self,
        conversation: Conversation,
        registry: ActionRegistry,
        on_chunk: ChunkSink | None = None,
    ) -> dict[str, Any]:
        """Stream one response and return the raw action mapping."""
        text_parts: list[str] = []

        async with aclosing(self._stream(self._build_payload(conversation, registry))) as events:
            async for event in events:
                if event.type == "error":
                    raise ModelError(f"stream error: {event.text}")
                if event.type == "text_delta" and event.text:
                    text_parts.append(event.text)
                    if on_chunk:
                        on_chunk(event.text)
                elif event.type == "done" and event.stop_reason == "max_tokens":
                    logger.warning("Response hit max_tokens=%d", self._settings.max_tokens)

        text = "".join(text_parts)
        if not text.strip():
            raise EmptyResponse()
        return extract_action_json(text)
