"""Append-only conversation owned by the turn loop."""

from __future__ import annotations

import json
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Literal

from taskloop.engine.actions import Action

Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class Message:
    """A single message in a conversation."""

    role: Role
    content: str | Action

    @property
    def text(self) -> str:
        """Content as plain text; actions are rendered as their JSON wire form."""
        if isinstance(self.content, Action):
            return json.dumps(self.content.to_wire(), ensure_ascii=False, separators=(",", ":"))
        return self.content


class Conversation:
    """Ordered message history. Messages are only ever appended."""

    def __init__(self, messages: Iterable[Message] = ()) -> None:
        self._messages: list[Message] = list(messages)

    @property
    def messages(self) -> tuple[Message, ...]:
        return tuple(self._messages)

    def add(self, role: Role, content: str | Action) -> Message:
        if role not in ("user", "assistant"):
            raise ValueError(f"invalid role: {role!r}")
        message = Message(role=role, content=content)
        self._messages.append(message)
        return message

    def copy(self) -> Conversation:
        return Conversation(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[Message]:
        return iter(tuple(self._messages))

    def __repr__(self) -> str:
        return f"Conversation({len(self._messages)} messages)"
