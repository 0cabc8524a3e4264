"""Action registry: combined schema plus discriminator lookup for one run.

build_registry() merges the built-in actions with plugin-supplied schemas
and validates the result up front, so configuration mistakes surface
before the first model call rather than at dispatch time.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Annotated, Any, Literal, Union, get_args, get_origin

from pydantic import Field, TypeAdapter

from taskloop.engine.actions import (
    BUILTIN_ACTIONS,
    DISCRIMINATOR,
    Action,
    EditFile,
    ReadFile,
    Shell,
    UnknownAction,
    WriteFile,
)
from taskloop.engine.errors import DuplicateDiscriminator, InvalidPluginSchema
from taskloop.executors.base import Executor
from taskloop.plugins import Plugin, PluginEntry, PluginSpec, normalize_plugin

logger = logging.getLogger(__name__)

BuiltinHandler = Callable[[Action, Executor, Mapping[str, Any]], Awaitable[str | None]]


# ---------------------------------------------------------------------------
# Built-in handlers
# ---------------------------------------------------------------------------


async def _read_file(action: ReadFile, executor: Executor, opts: Mapping[str, Any]) -> str | None:
    return await executor.read_file(action.path, opts)


async def _write_file(action: WriteFile, executor: Executor, opts: Mapping[str, Any]) -> str | None:
    return await executor.write_file(action.path, action.content, opts)


async def _edit_file(action: EditFile, executor: Executor, opts: Mapping[str, Any]) -> str | None:
    return await executor.edit_file(action.path, action.old_string, action.new_string, opts)


async def _shell(action: Shell, executor: Executor, opts: Mapping[str, Any]) -> str | None:
    return await executor.exec(action.command, opts)


_BUILTIN_HANDLERS: dict[str, BuiltinHandler] = {
    "read_file": _read_file,
    "write_file": _write_file,
    "edit_file": _edit_file,
    "shell": _shell,
}


# ---------------------------------------------------------------------------
# Bindings
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class BuiltinBinding:
    """A built-in action executed through the Executor capability.

    handler is None for the terminal done action, which the loop handles
    itself and never dispatches.
    """

    schema: type[Action]
    handler: BuiltinHandler | None


@dataclass(frozen=True)
class PluginBinding:
    """A plugin action executed by the plugin with its per-run options."""

    schema: type[Action]
    plugin: Plugin
    opts: Mapping[str, Any]


Binding = Union[BuiltinBinding, PluginBinding]


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class ActionRegistry:
    """Recognized action shapes and their execution bindings for one run.

    Build with build_registry(); instances are not meant to be mutated.
    """

    def __init__(self, bindings: dict[str, Binding], plugins: tuple[PluginSpec, ...]) -> None:
        self._bindings = bindings
        self._plugins = plugins
        schemas = tuple(b.schema for b in bindings.values())
        union = Union[schemas]  # type: ignore[valid-type]
        self._adapter: TypeAdapter[Action] = TypeAdapter(
            Annotated[union, Field(discriminator=DISCRIMINATOR)]
        )

    @property
    def discriminators(self) -> tuple[str, ...]:
        return tuple(self._bindings)

    @property
    def plugins(self) -> tuple[PluginSpec, ...]:
        return self._plugins

    def lookup(self, discriminator: str) -> Binding | None:
        return self._bindings.get(discriminator)

    def parse(self, raw: Action | Mapping[str, Any]) -> Action:
        """Validate model output into an Action.

        A mapping whose discriminator is a string this registry does not
        know becomes an UnknownAction, which dispatch reports back to the
        model as an error. Any other invalid shape raises
        pydantic.ValidationError.
        """
        if isinstance(raw, Action):
            return raw
        discriminator = raw.get(DISCRIMINATOR) if isinstance(raw, Mapping) else None
        if isinstance(discriminator, str) and discriminator not in self._bindings:
            fields = {k: v for k, v in raw.items() if k != DISCRIMINATOR}
            return UnknownAction(type=discriminator, fields=fields)
        return self._adapter.validate_python(raw)

    def json_schema(self) -> dict[str, Any]:
        """JSON schema for the combined action union."""
        return self._adapter.json_schema()

    def __contains__(self, discriminator: object) -> bool:
        return discriminator in self._bindings

    def __repr__(self) -> str:
        return f"ActionRegistry({', '.join(self._bindings)})"


def _schema_discriminator(plugin: Plugin) -> str:
    """Return the plugin name after checking its schema can carry it."""
    name = getattr(plugin, "name", None)
    if not isinstance(name, str) or not name:
        raise InvalidPluginSchema(repr(plugin), "plugin name must be a non-empty string")

    schema = getattr(plugin, "schema", None)
    if not (isinstance(schema, type) and issubclass(schema, Action)):
        raise InvalidPluginSchema(name, "schema must be an Action subclass")

    field_info = schema.model_fields.get(DISCRIMINATOR)
    if field_info is None:
        raise InvalidPluginSchema(name, f"schema has no {DISCRIMINATOR!r} field")

    annotation = field_info.annotation
    if get_origin(annotation) is not Literal or get_args(annotation) != (name,):
        raise InvalidPluginSchema(
            name,
            f"{DISCRIMINATOR!r} field must be annotated Literal[{name!r}], got {annotation!r}",
        )
    return name


def build_registry(plugins: Iterable[PluginEntry] = ()) -> ActionRegistry:
    """Combine built-in actions with plugin schemas.

    Raises DuplicateDiscriminator when two entries share a discriminator
    and InvalidPluginSchema when a plugin schema cannot describe its
    discriminator field.
    """
    bindings: dict[str, Binding] = {}
    for schema in BUILTIN_ACTIONS:
        discriminator = schema.model_fields[DISCRIMINATOR].default
        bindings[discriminator] = BuiltinBinding(schema, _BUILTIN_HANDLERS.get(discriminator))

    specs = tuple(normalize_plugin(p) for p in plugins)
    for spec in specs:
        discriminator = _schema_discriminator(spec.plugin)
        if discriminator in bindings:
            raise DuplicateDiscriminator(discriminator)
        bindings[discriminator] = PluginBinding(spec.plugin.schema, spec.plugin, spec.opts)

    logger.debug("Built action registry: %s", ", ".join(bindings))
    return ActionRegistry(bindings, specs)
