"""taskloop -- an autonomous coding agent turn loop.

The model emits one JSON action per turn; the runtime executes it
against an executor (filesystem, shell) or a plugin and feeds the
outcome back until the model finishes, a plugin halts the run, or the
turn budget runs out.

Public API:
    run                - Run a task (async)
    default_system_prompt
    Plugin, PluginSpec - Custom action types
    Action             - Base class for plugin action schemas
    Error, Halt        - Plugin execute() return values
    Completed, Halted, TurnLimitExceeded, Failed - Run results
    Conversation, Message
    build_registry, run_loop - Lower-level engine access
"""

from taskloop.agent import default_system_prompt, run
from taskloop.engine.actions import Action, EditFile, Finish, ReadFile, Shell, WriteFile
from taskloop.engine.conversation import Conversation, Message
from taskloop.engine.errors import (
    ConfigurationError,
    DuplicateDiscriminator,
    InvalidPluginSchema,
    ModelError,
)
from taskloop.engine.loop import run_loop
from taskloop.engine.registry import ActionRegistry, build_registry
from taskloop.engine.results import (
    Completed,
    Error,
    Failed,
    Halt,
    Halted,
    Ok,
    RunResult,
    TurnLimitExceeded,
)
from taskloop.plugins import Plugin, PluginSpec

__all__ = [
    "Action",
    "ActionRegistry",
    "Completed",
    "ConfigurationError",
    "Conversation",
    "DuplicateDiscriminator",
    "EditFile",
    "Error",
    "Failed",
    "Finish",
    "Halt",
    "Halted",
    "InvalidPluginSchema",
    "Message",
    "ModelError",
    "Ok",
    "Plugin",
    "PluginSpec",
    "ReadFile",
    "RunResult",
    "Shell",
    "TurnLimitExceeded",
    "WriteFile",
    "build_registry",
    "default_system_prompt",
    "run",
    "run_loop",
]
