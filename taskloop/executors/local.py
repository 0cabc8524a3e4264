"""Local executor: files and shell commands on this machine.

Options read from executor_opts:
    cwd      Working directory for shell commands and relative paths
             (default: the process working directory).
    timeout  Shell command timeout in seconds (default 60).
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from taskloop.engine.errors import CommandFailed, CommandTimeout, EditTargetNotFound

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60.0  # seconds
_MAX_OUTPUT_CHARS = 100 * 1024  # 100KB


def _cwd(opts: Mapping[str, Any]) -> Path:
    return Path(opts.get("cwd") or os.getcwd())


def _resolve(path: str, opts: Mapping[str, Any]) -> Path:
    target = Path(path).expanduser()
    if not target.is_absolute():
        target = _cwd(opts) / target
    return target


class LocalExecutor:
    """Executes built-in actions directly on the local filesystem."""

    def __init__(self, max_output_chars: int = _MAX_OUTPUT_CHARS) -> None:
        self._max_output_chars = max_output_chars

    async def read_file(self, path: str, opts: Mapping[str, Any]) -> str:
        target = _resolve(path, opts)
        return await asyncio.to_thread(target.read_text, encoding="utf-8", errors="replace")

    async def write_file(self, path: str, content: str, opts: Mapping[str, Any]) -> None:
        target = _resolve(path, opts)
        await asyncio.to_thread(target.parent.mkdir, parents=True, exist_ok=True)
        await asyncio.to_thread(target.write_text, content, encoding="utf-8")

    async def edit_file(
        self, path: str, old_string: str, new_string: str, opts: Mapping[str, Any]
    ) -> None:
        target = _resolve(path, opts)
        content = await asyncio.to_thread(target.read_text, encoding="utf-8")
        if old_string not in content:
            raise EditTargetNotFound(path)
        await asyncio.to_thread(
            target.write_text, content.replace(old_string, new_string, 1), encoding="utf-8"
        )

    async def exec(self, command: str, opts: Mapping[str, Any]) -> str:
        timeout = float(opts.get("timeout") or DEFAULT_TIMEOUT)
        cwd = _cwd(opts)
        cwd.mkdir(parents=True, exist_ok=True)

        proc = await asyncio.create_subprocess_shell(
            command,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=str(cwd),
            start_new_session=True,
        )
        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            # Kill the whole group; grandchildren would hold the pipe open.
            try:
                os.killpg(proc.pid, signal.SIGKILL)
            except ProcessLookupError:
                pass
            await proc.wait()
            logger.warning("Command timed out after %.1fs: %s", timeout, command)
            raise CommandTimeout(timeout) from None

        output = stdout.decode("utf-8", errors="replace")
        if len(output) > self._max_output_chars:
            output = output[: self._max_output_chars] + "\n... [output truncated]"

        if proc.returncode != 0:
            raise CommandFailed(proc.returncode, output)
        return output
