"""Executor capability: where built-in actions actually run."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class Executor(Protocol):
    """Performs built-in actions against a concrete environment.

    Methods return output text (or None for success without output) and
    raise on failure. opts is the run's executor_opts mapping, forwarded
    unchanged (for example cwd and timeout).
    """

    async def read_file(self, path: str, opts: Mapping[str, Any]) -> str:
        ...

    async def write_file(self, path: str, content: str, opts: Mapping[str, Any]) -> None:
        ...

    async def edit_file(
        self, path: str, old_string: str, new_string: str, opts: Mapping[str, Any]
    ) -> None:
        """Replace the first occurrence of old_string.

        Raises EditTargetNotFound when old_string is absent.
        """
        ...

    async def exec(self, command: str, opts: Mapping[str, Any]) -> str:
        """Run a shell command and return combined stdout/stderr.

        Raises CommandTimeout when opts["timeout"] elapses.
        """
        ...
