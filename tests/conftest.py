"""Shared fixtures: scripted model client, recording executor, test plugins."""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Literal

import pytest

from taskloop.engine.actions import Action
from taskloop.engine.conversation import Conversation, Message
from taskloop.engine.errors import ModelError
from taskloop.engine.registry import ActionRegistry
from taskloop.engine.results import Error, Halt
from taskloop.plugins import Plugin

# ---------------------------------------------------------------------------
# Scripted model client
# ---------------------------------------------------------------------------


class ScriptedModel:
    """Replays a fixed list of responses, then an optional default.

    Each response is a raw action dict, an Action, or an exception instance
    to raise. chunks are streamed to on_chunk on every call.
    """

    def __init__(
        self,
        responses: list[Any],
        default: Any = None,
        chunks: list[str] | None = None,
    ) -> None:
        self._responses = list(responses)
        self._default = default
        self._chunks = chunks or []
        self.calls: list[tuple[Message, ...]] = []

    @property
    def call_count(self) -> int:
        return len(self.calls)

    async def call(
        self,
        conversation: Conversation,
        registry: ActionRegistry,
        on_chunk=None,
    ) -> Action | Mapping[str, Any]:
        self.calls.append(conversation.messages)
        if self._responses:
            response = self._responses.pop(0)
        elif self._default is not None:
            response = self._default
        else:
            raise ModelError("scripted model exhausted")

        if on_chunk:
            for chunk in self._chunks:
                on_chunk(chunk)
        if isinstance(response, BaseException):
            raise response
        return response


# ---------------------------------------------------------------------------
# Recording executor
# ---------------------------------------------------------------------------


class RecordingExecutor:
    """In-memory executor that records every call."""

    def __init__(self, files: dict[str, str] | None = None) -> None:
        self.files: dict[str, str] = dict(files or {})
        self.calls: list[tuple[str, tuple[Any, ...], Mapping[str, Any]]] = []

    def calls_to(self, method: str) -> list[tuple[Any, ...]]:
        return [args for name, args, _ in self.calls if name == method]

    async def read_file(self, path: str, opts: Mapping[str, Any]) -> str:
        self.calls.append(("read_file", (path,), opts))
        if path not in self.files:
            raise FileNotFoundError(2, "No such file or directory", path)
        return self.files[path]

    async def write_file(self, path: str, content: str, opts: Mapping[str, Any]) -> None:
        self.calls.append(("write_file", (path, content), opts))
        self.files[path] = content

    async def edit_file(
        self, path: str, old_string: str, new_string: str, opts: Mapping[str, Any]
    ) -> None:
        self.calls.append(("edit_file", (path, old_string, new_string), opts))
        self.files[path] = self.files[path].replace(old_string, new_string, 1)

    async def exec(self, command: str, opts: Mapping[str, Any]) -> str:
        self.calls.append(("exec", (command,), opts))
        return f"ran: {command}\n"


# ---------------------------------------------------------------------------
# Test plugins
# ---------------------------------------------------------------------------


class ListDirAction(Action):
    type: Literal["list_dir"] = "list_dir"
    path: str


class ListDirPlugin(Plugin):
    name = "list_dir"
    description = "List files in a directory. Params: path (string)."
    schema = ListDirAction

    async def execute(self, action, executor_opts, plugin_opts):
        try:
            return "\n".join(sorted(os.listdir(action.path)))
        except OSError as e:
            return Error(str(e))

    def summarize(self, action):
        return f"dir {action.path}"


class HaltAction(Action):
    type: Literal["halt_me"] = "halt_me"
    reason: str
    seconds: int


class HaltPlugin(Plugin):
    name = "halt_me"
    description = "Halts the agent loop for testing."
    schema = HaltAction
    can_halt = True

    async def execute(self, action, executor_opts, plugin_opts):
        return Halt("Halt recorded.", {"reason": action.reason, "seconds": action.seconds})


class CaptureAction(Action):
    type: Literal["capture"] = "capture"
    value: str


class OptsCapturePlugin(Plugin):
    name = "capture"
    description = "Captures opts for testing."
    schema = CaptureAction

    def __init__(self) -> None:
        self.captured: list[tuple[str, Mapping[str, Any], Mapping[str, Any]]] = []

    async def execute(self, action, executor_opts, plugin_opts):
        self.captured.append((action.value, executor_opts, plugin_opts))
        return "captured"


class BoomAction(Action):
    type: Literal["boom"] = "boom"


class BoomPlugin(Plugin):
    name = "boom"
    description = "Always raises."
    schema = BoomAction

    async def execute(self, action, executor_opts, plugin_opts):
        raise RuntimeError("plugin exploded")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def executor() -> RecordingExecutor:
    return RecordingExecutor()


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch):
    """Keep host credentials and TASKLOOP_* overrides out of tests."""
    for key in list(os.environ):
        if key.startswith("TASKLOOP_") or key.startswith("ANTHROPIC_"):
            monkeypatch.delenv(key, raising=False)
