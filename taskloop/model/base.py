"""Model capability consumed by the turn loop."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from taskloop.engine.actions import Action
from taskloop.engine.conversation import Conversation

if TYPE_CHECKING:
    from taskloop.engine.registry import ActionRegistry

ChunkSink = Callable[[str], None]


@runtime_checkable
class ModelClient(Protocol):
    """Given a conversation and the action schema, produce one action.

    Implementations may stream; each text fragment is passed to on_chunk
    as it arrives. Return a raw mapping (validated by the loop against the
    registry) or an already-parsed Action. Raise ModelError on transport
    failures or when the stream produced no content.
    """

    async def call(
        self,
        conversation: Conversation,
        registry: ActionRegistry,
        on_chunk: ChunkSink | None = None,
    ) -> Action | Mapping[str, Any]:
        ...
