"""Pure transformation adapters for the supported LLM providers."""

from .openai import OpenAIRequestAdapter
from .anthropic import AnthropicRequestAdapter

__all__ = [
    "OpenAIRequestAdapter",
    "AnthropicRequestAdapter",
]
