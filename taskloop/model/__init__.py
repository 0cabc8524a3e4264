"""Model capability: conversation + action schema in, one action out.

Public API:
    ModelClient      - Protocol consumed by the turn loop
    AnthropicClient  - Streaming Anthropic Messages API implementation
"""

from taskloop.model.anthropic import AnthropicClient
from taskloop.model.base import ModelClient

__all__ = ["AnthropicClient", "ModelClient"]
