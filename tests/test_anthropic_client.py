"""Tests for the streaming Anthropic client.

Covers:
- SSE event parsing (_parse_sse_event pure function)
- JSON action extraction from model text
- call() end to end over an httpx.MockTransport
"""

import json

import httpx
import pytest

from taskloop.config import Settings
from taskloop.engine.actions import Finish
from taskloop.engine.conversation import Conversation
from taskloop.engine.errors import EmptyResponse, ModelError
from taskloop.engine.registry import build_registry
from taskloop.model.anthropic import (
    AnthropicClient,
    _parse_sse_event,
    extract_action_json,
    format_messages,
)
from tests.conftest import ListDirPlugin


def _sse_body(texts: list[str], stop_reason: str = "end_turn") -> bytes:
    events = [
        {"type": "message_start", "message": {"id": "msg_1"}},
        {"type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": ""}},
        {"type": "ping"},
    ]
    for text in texts:
        events.append({
            "type": "content_block_delta",
            "index": 0,
            "delta": {"type": "text_delta", "text": text},
        })
    events += [
        {"type": "content_block_stop", "index": 0},
        {"type": "message_delta", "delta": {"stop_reason": stop_reason}},
        {"type": "message_stop"},
    ]
    lines = []
    for event in events:
        lines.append(f"event: {event['type']}")
        lines.append(f"data: {json.dumps(event)}")
        lines.append("")
    return "\n".join(lines).encode()


def _client(handler, **settings_kwargs) -> AnthropicClient:
    settings = Settings(ANTHROPIC_API_KEY="test-key", **settings_kwargs)
    return AnthropicClient(settings, "system prompt", transport=httpx.MockTransport(handler))


def _conversation() -> Conversation:
    conversation = Conversation()
    conversation.add("user", "Do it")
    return conversation


class TestParseSSEEvent:
    def test_text_delta(self):
        event = _parse_sse_event({
            "type": "content_block_delta",
            "index": 0,
            "delta": {"type": "text_delta", "text": "Hello"},
        })
        assert event.type == "text_delta"
        assert event.text == "Hello"

    def test_ping_skipped(self):
        assert _parse_sse_event({"type": "ping"}) is None

    def test_error_event(self):
        event = _parse_sse_event({
            "type": "error",
            "error": {"type": "overloaded_error", "message": "Overloaded"},
        })
        assert event.type == "error"
        assert event.text == "overloaded_error: Overloaded"

    def test_message_delta_stop_reason(self):
        event = _parse_sse_event({"type": "message_delta", "delta": {"stop_reason": "end_turn"}})
        assert event.type == "done"
        assert event.stop_reason == "end_turn"

    def test_non_text_delta_skipped(self):
        assert _parse_sse_event({
            "type": "content_block_delta",
            "delta": {"type": "input_json_delta", "partial_json": "{"},
        }) is None


class TestExtractActionJson:
    def test_bare_json(self):
        assert extract_action_json('{"type": "done", "message": "hi"}') == {
            "type": "done",
            "message": "hi",
        }

    def test_fenced_json(self):
        text = 'Here you go:\n```json\n{"type": "shell", "command": "ls"}\n```'
        assert extract_action_json(text) == {"type": "shell", "command": "ls"}

    def test_prose_around_object(self):
        text = 'I will read it. {"type": "read_file", "path": "/a"} Thanks.'
        assert extract_action_json(text)["path"] == "/a"

    def test_not_json(self):
        with pytest.raises(ModelError):
            extract_action_json("I cannot do that.")

    def test_json_array_rejected(self):
        with pytest.raises(ModelError):
            extract_action_json("[1, 2]")


class TestFormatMessages:
    def test_actions_become_json_text(self):
        conversation = _conversation()
        conversation.add("assistant", Finish(message="ok"))
        assert format_messages(conversation) == [
            {"role": "user", "content": "Do it"},
            {"role": "assistant", "content": '{"type":"done","message":"ok"}'},
        ]


class TestCall:
    @pytest.mark.asyncio
    async def test_streams_chunks_and_returns_action(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, content=_sse_body(['{"type": "done", ', '"message": "ok"}']))

        chunks = []
        async with _client(handler) as client:
            raw = await client.call(_conversation(), build_registry(), chunks.append)

        assert raw == {"type": "done", "message": "ok"}
        assert chunks == ['{"type": "done", ', '"message": "ok"}']

        request = requests[0]
        assert request.url.path == "/v1/messages"
        assert request.headers["x-api-key"] == "test-key"
        payload = json.loads(request.content)
        assert payload["stream"] is True
        assert payload["system"][0]["text"] == "system prompt"
        assert payload["messages"] == [{"role": "user", "content": "Do it"}]

    @pytest.mark.asyncio
    async def test_request_carries_plugin_action_schema(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, content=_sse_body(['{"type": "done", "message": "ok"}']))

        async with _client(handler) as client:
            await client.call(_conversation(), build_registry([ListDirPlugin()]))

        system = json.loads(requests[0].content)["system"]
        assert system[0] == {"type": "text", "text": "system prompt"}
        assert system[1]["cache_control"] == {"type": "ephemeral"}
        header, _, schema_text = system[1]["text"].partition("\n")
        assert "JSON object" in header
        schema = json.loads(schema_text)
        list_dir = schema["$defs"]["ListDirAction"]
        assert "list_dir" in json.dumps(list_dir["properties"]["type"])
        assert "path" in list_dir["required"]

    @pytest.mark.asyncio
    async def test_empty_stream_raises_empty_response(self):
        def handler(request):
            return httpx.Response(200, content=_sse_body([]))

        async with _client(handler) as client:
            with pytest.raises(EmptyResponse):
                await client.call(_conversation(), build_registry())

    @pytest.mark.asyncio
    async def test_http_error_raises_model_error(self):
        def handler(request):
            return httpx.Response(529, json={"error": {"type": "overloaded_error"}})

        async with _client(handler) as client:
            with pytest.raises(ModelError, match="529"):
                await client.call(_conversation(), build_registry())

    @pytest.mark.asyncio
    async def test_in_stream_error_raises_model_error(self):
        body = (
            'data: {"type": "error", "error": {"type": "api_error", "message": "boom"}}\n\n'
        ).encode()

        def handler(request):
            return httpx.Response(200, content=body)

        async with _client(handler) as client:
            with pytest.raises(ModelError, match="api_error: boom"):
                await client.call(_conversation(), build_registry())

    @pytest.mark.asyncio
    async def test_transport_failure_raises_model_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with _client(handler) as client:
            with pytest.raises(ModelError, match="HTTP error"):
                await client.call(_conversation(), build_registry())

    @pytest.mark.asyncio
    async def test_not_started(self):
        client = _client(lambda request: httpx.Response(200))
        with pytest.raises(ModelError, match="start"):
            await client.call(_conversation(), build_registry())

    @pytest.mark.asyncio
    async def test_bearer_auth_token(self):
        seen = {}

        def handler(request):
            seen.update(request.headers)
            return httpx.Response(200, content=_sse_body(['{"type": "done", "message": "x"}']))

        settings = Settings(ANTHROPIC_AUTH_TOKEN="tok")
        client = AnthropicClient(settings, "p", transport=httpx.MockTransport(handler))
        async with client:
            await client.call(_conversation(), build_registry())

        assert seen["authorization"] == "Bearer tok"
        assert "x-api-key" not in seen
