"""Public entry point: run a task to completion.

    result = await run("Add a test for the User module")
    if isinstance(result, Completed):
        print(result.message)

With plugins and a custom working directory:

    result = await run(
        "Check if example.com is up",
        plugins=[HttpGet()],
        executor_opts={"cwd": "/my/project"},
    )
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from taskloop.config import Settings
from taskloop.engine.conversation import Conversation
from taskloop.engine.loop import DEFAULT_MAX_TURNS, OnChunk, OnResponse, run_loop
from taskloop.engine.registry import build_registry
from taskloop.engine.results import RunResult
from taskloop.executors.base import Executor
from taskloop.executors.local import LocalExecutor
from taskloop.model.anthropic import AnthropicClient
from taskloop.model.base import ModelClient
from taskloop.plugins import PluginEntry, plugin_instructions
from taskloop.skills import Skill, skills_prompt

logger = logging.getLogger(__name__)

_BASE_PROMPT = """\
You are an expert coding agent. You modify codebases by reading files, writing files, editing files, and running shell commands.

Available actions (respond with exactly one JSON object per turn):
- {"type": "read_file", "path": "<absolute path>"} - Read a file.
- {"type": "write_file", "path": "<absolute path>", "content": "<full content>"} - Write a file (creates if needed).
- {"type": "edit_file", "path": "<absolute path>", "old_string": "<exact match>", "new_string": "<replacement>"} - Replace first occurrence of old_string.
- {"type": "shell", "command": "<command>"} - Execute a shell command.
- {"type": "done", "message": "<summary>"} - Signal task completion.

Any action except done may include a "description" field: a brief status shown to the user.

Guidelines:
- Read files before editing to understand current content.
- Use edit_file for surgical changes. Use write_file only for new files or complete rewrites.
- Run tests after making changes when applicable.
- If an action fails, read the error and try a different approach.
"""


def default_system_prompt(
    plugins: Iterable[PluginEntry] = (),
    instructions: str | None = None,
    skills: Iterable[Skill] = (),
) -> str:
    """System prompt listing built-in actions, plugin actions and skills."""
    parts = [_BASE_PROMPT]

    plugin_text = plugin_instructions(plugins)
    if plugin_text:
        parts.append(f"Additional actions:\n{plugin_text}\n")

    skill_text = skills_prompt(skills)
    if skill_text:
        parts.append(skill_text + "\n")

    if instructions:
        parts.append(f"Additional instructions:\n{instructions.strip()}\n")

    return "\n".join(parts)


async def run(
    task: str,
    *,
    model: ModelClient | None = None,
    settings: Settings | None = None,
    max_turns: int | None = None,
    executor: Executor | None = None,
    executor_opts: Mapping[str, Any] | None = None,
    plugins: Iterable[PluginEntry] = (),
    on_chunk: OnChunk | None = None,
    on_response: OnResponse | None = None,
    seed_conversation: Conversation | None = None,
    instructions: str | None = None,
    skills: Iterable[Skill] = (),
) -> RunResult:
    """Run the agent on a task.

    Args:
        task: What to do, sent as the first user message
        model: Model client; defaults to an AnthropicClient built from settings
        settings: Defaults for max_turns, executor_opts and the default client
        max_turns: Maximum model round trips (default 200)
        executor: Executor for built-in actions (default LocalExecutor)
        executor_opts: Options forwarded to every executor/plugin call
        plugins: Plugins, bare or as (plugin, opts) pairs
        on_chunk: fn(chunk, conversation) per streamed model fragment
        on_response: fn(action, conversation, turn) per parsed action
        seed_conversation: Conversation to resume from (copied)
        instructions: Extra instructions for the default system prompt
        skills: Skills listed in the default system prompt

    Returns:
        Completed, Halted, TurnLimitExceeded or Failed.

    Raises:
        ConfigurationError: duplicate discriminators or an invalid plugin
            schema, before any model call.
    """
    plugins = list(plugins)
    registry = build_registry(plugins)

    if max_turns is None:
        max_turns = settings.max_turns if settings is not None else DEFAULT_MAX_TURNS
    if executor_opts is None:
        executor_opts = settings.executor_opts() if settings is not None else {}

    loop_kwargs: dict[str, Any] = dict(
        registry=registry,
        executor=executor or LocalExecutor(),
        executor_opts=executor_opts,
        max_turns=max_turns,
        on_chunk=on_chunk,
        on_response=on_response,
        conversation=seed_conversation,
    )

    if model is not None:
        return await run_loop(task, model=model, **loop_kwargs)

    settings = settings or Settings()
    if instructions is None:
        instructions = settings.instructions or None
    prompt = default_system_prompt(plugins, instructions, skills)
    async with AnthropicClient(settings, prompt) as client:
        return await run_loop(task, model=client, **loop_kwargs)
