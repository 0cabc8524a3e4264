"""Turn loop: ask the model, dispatch its action, feed the outcome back.

Each iteration:
1. Stop with TurnLimitExceeded if the turn budget is spent (checked
   before the model call, so max_turns bounds model calls)
2. Call the model with the conversation and the registry's schema
3. Validate the action; model or validation errors end the run as Failed
4. Append the action as an assistant message, count the turn, fire
   on_response
5. Return Completed on the done action
6. Dispatch; a plugin Halt ends the run as Halted
7. Append the formatted outcome as a user message and loop

Observability callbacks run synchronously between steps. Their
exceptions are logged and swallowed; they never change the result.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from typing import Any

from pydantic import ValidationError

from taskloop.engine.actions import Action, Finish
from taskloop.engine.conversation import Conversation
from taskloop.engine.dispatch import dispatch
from taskloop.engine.errors import ModelError
from taskloop.engine.feedback import format_feedback, summarize
from taskloop.engine.registry import ActionRegistry
from taskloop.engine.results import (
    Completed,
    Error,
    Failed,
    Halt,
    Halted,
    RunResult,
    TurnLimitExceeded,
)
from taskloop.executors.base import Executor
from taskloop.model.base import ModelClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_TURNS = 200

OnChunk = Callable[[str, Conversation], Any]
OnResponse = Callable[[Action, Conversation, int], Any]


def _fire(name: str, callback: Callable[..., Any] | None, *args: Any) -> None:
    """Invoke an observability callback, isolating its failures."""
    if callback is None:
        return
    try:
        callback(*args)
    except Exception:
        logger.exception("%s callback raised; ignoring", name)


async def run_loop(
    task: str,
    *,
    model: ModelClient,
    registry: ActionRegistry,
    executor: Executor,
    executor_opts: Mapping[str, Any] | None = None,
    max_turns: int = DEFAULT_MAX_TURNS,
    on_chunk: OnChunk | None = None,
    on_response: OnResponse | None = None,
    conversation: Conversation | None = None,
) -> RunResult:
    """Drive the model until it finishes, halts, fails or runs out of turns.

    The seed conversation, if given, is copied; the caller's object is
    never mutated. The final conversation is returned on the result.
    """
    opts: Mapping[str, Any] = dict(executor_opts or {})
    conversation = conversation.copy() if conversation is not None else Conversation()
    conversation.add("user", task)
    turn = 0

    def chunk_sink(chunk: str) -> None:
        _fire("on_chunk", on_chunk, chunk, conversation)

    logger.debug("Starting run: max_turns=%d, actions=%s", max_turns, registry.discriminators)

    while True:
        if turn >= max_turns:
            logger.warning("Turn limit reached: %d", turn)
            return TurnLimitExceeded(turns=turn, conversation=conversation)

        try:
            raw = await model.call(conversation, registry, chunk_sink if on_chunk else None)
            action = registry.parse(raw)
        except ValidationError as e:
            logger.error("Model returned an invalid action: %s", e)
            return Failed(reason=f"invalid action: {e}", turns=turn, conversation=conversation)
        except ModelError as e:
            logger.error("Model call failed: %s", e)
            return Failed(reason=str(e), turns=turn, conversation=conversation)
        except Exception as e:
            logger.exception("Model call raised unexpectedly")
            return Failed(
                reason=f"{type(e).__name__}: {e}", turns=turn, conversation=conversation
            )

        conversation.add("assistant", action)
        turn += 1
        _fire("on_response", on_response, action, conversation, turn)

        if isinstance(action, Finish):
            logger.info("Run completed after %d turn(s)", turn)
            return Completed(message=action.message, turns=turn, conversation=conversation)

        label = action.discriminator
        summary = summarize(action, registry)
        logger.info("Turn %d: %s %s", turn, label, summary)
        outcome = await dispatch(action, registry, executor, opts)

        if isinstance(outcome, Halt):
            logger.info("Run halted by %s after %d turn(s)", label, turn)
            return Halted(
                message=outcome.message,
                turns=turn,
                conversation=conversation,
                metadata=outcome.metadata,
            )

        if isinstance(outcome, Error):
            logger.warning("Turn %d: %s failed: %s", turn, label, outcome.reason)

        conversation.add("user", format_feedback(label, summary, outcome))
