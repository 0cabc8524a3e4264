"""Dispatch outcomes and terminal run results."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

from taskloop.engine.conversation import Conversation

# ---------------------------------------------------------------------------
# Dispatch outcomes
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Ok:
    """Successful execution. output is None when the action produced nothing."""

    output: str | None = None


@dataclass(frozen=True)
class Error:
    """Recoverable execution failure, fed back to the model."""

    reason: str


@dataclass(frozen=True)
class Halt:
    """Plugin-requested early termination of the run."""

    message: str
    metadata: dict[str, Any] = field(default_factory=dict)


Outcome = Union[Ok, Error, Halt]


# ---------------------------------------------------------------------------
# Run results
# ---------------------------------------------------------------------------


@dataclass
class Completed:
    """The model emitted the terminal done action."""

    message: str
    turns: int
    conversation: Conversation

    @property
    def ok(self) -> bool:
        return True


@dataclass
class Halted:
    """A plugin stopped the run early."""

    message: str
    turns: int
    conversation: Conversation
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return True


@dataclass
class TurnLimitExceeded:
    """The turn budget ran out before the model finished."""

    turns: int
    conversation: Conversation

    @property
    def ok(self) -> bool:
        return False


@dataclass
class Failed:
    """Unrecoverable model failure (transport, empty stream, invalid action)."""

    reason: str
    turns: int = 0
    conversation: Conversation | None = None

    @property
    def ok(self) -> bool:
        return False


RunResult = Union[Completed, Halted, TurnLimitExceeded, Failed]
