"""Route a validated action to its binding and normalize the outcome.

dispatch() never raises for execution problems: executor and plugin
exceptions become Error outcomes so one misbehaving integration cannot
crash the run. Only cancellation propagates.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from taskloop.engine.actions import Action
from taskloop.engine.registry import ActionRegistry, BuiltinBinding, PluginBinding
from taskloop.engine.results import Error, Halt, Ok, Outcome
from taskloop.executors.base import Executor

logger = logging.getLogger(__name__)


def _error_reason(exc: BaseException) -> str:
    text = str(exc)
    if isinstance(exc, OSError) and exc.strerror:
        # "[Errno 2] No such file or directory: 'x'" -> keep the filename part
        text = f"{exc.strerror}: {exc.filename}" if exc.filename else exc.strerror
    return text or type(exc).__name__


def _normalize(result: Any, binding: PluginBinding | None = None) -> Outcome:
    if isinstance(result, Halt):
        if binding is not None and not binding.plugin.can_halt:
            return Error(f"plugin {binding.plugin.name!r} is not allowed to halt the run")
        return result
    if isinstance(result, (Ok, Error)):
        return result
    if result is None:
        return Ok(None)
    return Ok(str(result))


async def dispatch(
    action: Action,
    registry: ActionRegistry,
    executor: Executor,
    executor_opts: Mapping[str, Any],
) -> Outcome:
    """Execute one action and return Ok, Error or Halt."""
    binding = registry.lookup(action.discriminator)

    if binding is None:
        return Error(f"unknown action: {action.discriminator}")

    try:
        if isinstance(binding, PluginBinding):
            result = await binding.plugin.execute(action, executor_opts, binding.opts)
            return _normalize(result, binding)

        if isinstance(binding, BuiltinBinding) and binding.handler is not None:
            result = await binding.handler(action, executor, executor_opts)
            return _normalize(result)

        return Error(f"action {action.discriminator!r} cannot be dispatched")

    except Exception as e:
        logger.warning("Action %s failed: %s", action.discriminator, e)
        logger.debug("Action failure detail", exc_info=True)
        return Error(_error_reason(e))
