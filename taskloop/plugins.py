"""Plugin base class for adding custom action types.

A plugin is a value bundle: a unique name (the action discriminator), a
one-line description injected into the model instructions, an Action
schema, and an async execute function. Plugins are passed to run() either
bare or paired with per-run options:

    run(task, plugins=[HttpGet(), (Deploy(), {"env": "staging"})])

There is no global plugin registry.

Example::

    class ListDirAction(Action):
        type: Literal["list_dir"] = "list_dir"
        path: str

    class ListDir(Plugin):
        name = "list_dir"
        description = "List files in a directory. Params: path (string)."
        schema = ListDirAction

        async def execute(self, action, executor_opts, plugin_opts):
            return "\\n".join(sorted(os.listdir(action.path)))
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, ClassVar, Union

from taskloop.engine.actions import Action
from taskloop.engine.results import Error, Halt


class Plugin(ABC):
    """Capability bundle for one plugin-defined action type."""

    name: ClassVar[str]
    description: ClassVar[str]
    schema: ClassVar[type[Action]]
    # Whether execute() may return Halt. A Halt from a plugin that does not
    # declare it is fed back to the model as an error.
    can_halt: ClassVar[bool] = False

    @abstractmethod
    async def execute(
        self,
        action: Action,
        executor_opts: Mapping[str, Any],
        plugin_opts: Mapping[str, Any],
    ) -> str | None | Error | Halt:
        """Execute a parsed action.

        Return output text, None for success without output, Error for a
        recoverable failure, or Halt to stop the run. Exceptions are
        caught by dispatch and reported to the model as errors.
        """

    def summarize(self, action: Action) -> str | None:
        """Custom summary for the feedback line. None uses the default."""
        return None

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {getattr(self, 'name', '?')!r}>"


@dataclass(frozen=True)
class PluginSpec:
    """A plugin paired with its per-run options."""

    plugin: Plugin
    opts: Mapping[str, Any] = field(default_factory=dict)


PluginEntry = Union[Plugin, tuple[Plugin, Mapping[str, Any]], PluginSpec]


def normalize_plugin(entry: PluginEntry) -> PluginSpec:
    """Normalize a bare plugin or a (plugin, opts) pair to a PluginSpec."""
    if isinstance(entry, PluginSpec):
        return entry
    if isinstance(entry, Plugin):
        return PluginSpec(entry, {})
    if isinstance(entry, tuple) and len(entry) == 2 and isinstance(entry[0], Plugin):
        plugin, opts = entry
        return PluginSpec(plugin, dict(opts or {}))
    raise TypeError(
        f"plugin entries must be Plugin instances or (plugin, opts) pairs, got {entry!r}"
    )


def plugin_instructions(plugins: Iterable[PluginEntry]) -> str:
    """Render one '- name: description' line per plugin."""
    specs = [normalize_plugin(p) for p in plugins]
    return "\n".join(f"- {s.plugin.name}: {s.plugin.description}" for s in specs)
