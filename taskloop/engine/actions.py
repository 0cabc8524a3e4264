"""Pydantic models for the actions a model can emit.

Every action is a JSON object identified by its ``type`` field. The
built-in set is closed; plugins add their own Action subclasses whose
``type`` is a single-valued Literal equal to the plugin name.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

DISCRIMINATOR = "type"


class Action(BaseModel):
    """Base class for every action, built-in or plugin-defined."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    @property
    def discriminator(self) -> str:
        return getattr(self, DISCRIMINATOR)

    def to_wire(self) -> dict[str, Any]:
        """Serialize back to the JSON shape the model produced."""
        return self.model_dump(mode="json", exclude_none=True)


class ReadFile(Action):
    type: Literal["read_file"] = "read_file"
    path: str
    description: str | None = Field(
        None, description="Brief user-friendly status shown to the user"
    )


class WriteFile(Action):
    type: Literal["write_file"] = "write_file"
    path: str
    content: str
    description: str | None = Field(
        None, description="Brief user-friendly status shown to the user"
    )


class EditFile(Action):
    type: Literal["edit_file"] = "edit_file"
    path: str
    old_string: str
    new_string: str
    description: str | None = Field(
        None, description="Brief user-friendly status shown to the user"
    )


class Shell(Action):
    type: Literal["shell"] = "shell"
    command: str
    description: str | None = Field(
        None, description="Brief user-friendly status shown to the user"
    )


class Finish(Action):
    """Terminal action: the task is complete."""

    type: Literal["done"] = "done"
    message: str


class UnknownAction(Action):
    """An action whose discriminator is not registered for this run.

    Not part of the model-facing schema. The registry produces it so the
    loop can feed the mistake back to the model instead of failing.
    """

    type: str
    fields: dict[str, Any] = Field(default_factory=dict)

    def to_wire(self) -> dict[str, Any]:
        return {DISCRIMINATOR: self.type, **self.fields}


BUILTIN_ACTIONS: tuple[type[Action], ...] = (ReadFile, WriteFile, EditFile, Shell, Finish)
