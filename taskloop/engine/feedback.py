"""Turn dispatch outcomes into the next user message for the model."""

from __future__ import annotations

import logging

from taskloop.engine.actions import Action, EditFile, ReadFile, Shell, WriteFile
from taskloop.engine.registry import ActionRegistry, PluginBinding
from taskloop.engine.results import Error, Halt, Ok, Outcome

logger = logging.getLogger(__name__)


def default_summary(action: Action) -> str:
    """Path for file actions, command for shell, empty otherwise."""
    if isinstance(action, (ReadFile, WriteFile, EditFile)):
        return action.path
    if isinstance(action, Shell):
        return action.command
    return ""


def summarize(action: Action, registry: ActionRegistry) -> str:
    """Plugin summarizer output when the plugin defines one, else the default."""
    binding = registry.lookup(action.discriminator)
    if isinstance(binding, PluginBinding):
        try:
            summary = binding.plugin.summarize(action)
        except Exception:
            logger.exception("summarize() failed for plugin %s", binding.plugin.name)
            summary = None
        if summary is not None:
            return str(summary)
    return default_summary(action)


def format_feedback(label: str, summary: str, outcome: Outcome) -> str:
    """Render '[label] summary' followed by the outcome body.

    Body is the output text for Ok, 'OK' for success without output and
    '[ERROR] reason' for errors.
    """
    if isinstance(outcome, Ok):
        body = outcome.output if outcome.output is not None else "OK"
    elif isinstance(outcome, Error):
        body = f"[ERROR] {outcome.reason}"
    elif isinstance(outcome, Halt):
        body = outcome.message
    else:
        raise TypeError(f"unexpected outcome: {outcome!r}")
    return f"[{label}] {summary}\n{body}"
