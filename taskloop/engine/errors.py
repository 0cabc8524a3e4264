"""Exception hierarchy for taskloop.

Three families, each handled at a different seam:

- ConfigurationError: raised while building the action registry, before
  any model call. Fatal; propagates to the caller of run().
- ModelError: raised by model clients. The turn loop converts it into a
  Failed result.
- ExecutionError: raised by executors. Dispatch converts it into an
  Error outcome that is fed back to the model.
"""

from __future__ import annotations


class TaskloopError(Exception):
    """Base class for all taskloop errors."""


class ConfigurationError(TaskloopError, ValueError):
    """Invalid run configuration."""


class DuplicateDiscriminator(ConfigurationError):
    """Two registered actions share the same discriminator."""

    def __init__(self, discriminator: str) -> None:
        self.discriminator = discriminator
        super().__init__(f"duplicate action discriminator: {discriminator!r}")


class InvalidPluginSchema(ConfigurationError):
    """A plugin schema cannot describe its discriminator field."""

    def __init__(self, plugin_name: str, detail: str) -> None:
        self.plugin_name = plugin_name
        super().__init__(f"invalid schema for plugin {plugin_name!r}: {detail}")


class ModelError(TaskloopError):
    """The model capability could not produce an action."""


class EmptyResponse(ModelError):
    """The model stream ended without any content."""

    def __init__(self, message: str = "empty response") -> None:
        super().__init__(message)


class ExecutionError(TaskloopError):
    """An executor could not complete an action."""


class EditTargetNotFound(ExecutionError):
    """edit_file was asked to replace text that is not in the file."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"old_string not found in {path}")


class CommandFailed(ExecutionError):
    """A shell command exited with a nonzero status."""

    def __init__(self, status: int, output: str) -> None:
        self.status = status
        self.output = output
        super().__init__(f"exit status {status}: {output}")


class CommandTimeout(ExecutionError):
    """A shell command exceeded its timeout and was killed."""

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(f"command timed out after {timeout:g}s")
