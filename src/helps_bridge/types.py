"""
Core types for helps-bridge.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any, Optional

from helps_bridge._exceptions import invalid_upstream_response

__all__ = [
    "ChatMessage",
    "TextContent",
    "text_block",
    "Tool",
    "ToolCallRequest",
    "ToolCallResult",
    "FinishReason",
    "Usage",
    "ChatResult",
]


# Type alias for chat messages
ChatMessage = dict[str, Any]

# One canonical content block: {"type": "text", "text": "..."}
TextContent = dict[str, str]


def text_block(text: str) -> TextContent:
    """Return a canonical text content block."""
    return {"type": "text", "text": text}


@dataclass(frozen=True, slots=True)
class Tool:
    """A named upstream operation and its JSON input schema."""

    name: str
    description: str
    input_schema: dict[str, Any]

    @property
    def properties(self) -> dict[str, Any]:
        return self.input_schema.get("properties") or {}

    @property
    def required(self) -> list[str]:
        return list(self.input_schema.get("required") or [])

    @classmethod
    def from_dict(cls, data: Any) -> "Tool":
        """Build a Tool from one entry of the upstream ``tools`` array."""
        if not isinstance(data, dict) or not isinstance(data.get("name"), str):
            raise invalid_upstream_response(f"Malformed tool entry from upstream: {data!r}")
        schema = data.get("inputSchema")
        if not isinstance(schema, dict):
            schema = {"type": "object", "properties": {}, "required": []}
        return cls(
            name=data["name"],
            description=data.get("description") or "",
            input_schema=schema,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


@dataclass(slots=True)
class ToolCallRequest:
    """A model-agnostic request emitted by the LLM to call a tool."""

    id: str
    name: str
    arguments: dict[str, Any]


@dataclass(slots=True)
class ToolCallResult:
    """Payload sent back to the LLM after the tool finished running."""

    id: str  # must match the request id
    name: str
    content: str
    is_error: bool = False


class FinishReason(StrEnum):
    STOP = "stop"
    LENGTH = "length"
    TOOL_CALLS = "tool_calls"
    MAX_TOKENS = "max_tokens"
    CONTENT_FILTER = "content_filter"


@dataclass(frozen=True, slots=True)
class Usage:
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


@dataclass
class ChatResult:
    """Unified response object for both LLM providers."""

    message: ChatMessage
    finish_reason: Optional[FinishReason] = None
    tool_calls: list[ToolCallRequest] | None = None
    usage: Optional[Usage] = None
    id: Optional[str] = None
    model: Optional[str] = None
    raw: Any = field(default=None, repr=False)

    @property
    def content(self) -> str:
        return self.message.get("content") or ""

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)
