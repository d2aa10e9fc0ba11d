"""Anthropic adapter for pure request/response transformations."""

from __future__ import annotations

from typing import Any, Final, Optional, Sequence

from anthropic.types import Message

from helps_bridge._exceptions import provider_error
from helps_bridge.types import (
    ChatMessage,
    ChatResult,
    FinishReason,
    Tool,
    ToolCallRequest,
    Usage,
)

DEFAULT_MAX_TOKENS: Final = 4096

_STOP_REASONS: Final[dict[str, FinishReason]] = {
    "end_turn": FinishReason.STOP,
    "stop_sequence": FinishReason.STOP,
    "tool_use": FinishReason.TOOL_CALLS,
    "max_tokens": FinishReason.MAX_TOKENS,
}


def tool_definition(tool: Tool) -> dict[str, Any]:
    """Render a Tool in Anthropic's tool format."""
    return {
        "name": tool.name,
        "description": tool.description,
        "input_schema": {
            "type": "object",
            "properties": tool.properties,
            "required": tool.required,
        },
    }


def _assistant_content(msg: ChatMessage) -> str | list[dict[str, Any]]:
    if not msg.get("tool_calls"):
        return msg.get("content") or ""
    blocks: list[dict[str, Any]] = []
    if msg.get("content"):
        blocks.append({"type": "text", "text": msg["content"]})
    for call in msg["tool_calls"]:
        blocks.append({"type": "tool_use", "id": call.id, "name": call.name, "input": call.arguments})
    return blocks


def _tool_result_block(msg: ChatMessage) -> dict[str, Any]:
    block: dict[str, Any] = {
        "type": "tool_result",
        "tool_use_id": msg["tool_call_id"],
        "content": msg.get("content") or "",
    }
    if msg.get("is_error"):
        block["is_error"] = True
    return block


class AnthropicRequestAdapter:
    """Adapter for converting between generic format and Anthropic format."""

    def to_provider(
        self,
        messages: Sequence[ChatMessage],
        tools: Optional[Sequence[Tool]],
        params: dict[str, Any],
    ) -> dict[str, Any]:
        """Convert generic messages, tools and normalized params to an Anthropic request."""
        anthropic_messages: list[dict[str, Any]] = []
        system_parts: list[str] = []

        for msg in messages:
            role = msg["role"]

            # Anthropic expects the system prompt as a top-level parameter
            if role == "system":
                if msg.get("content"):
                    system_parts.append(str(msg["content"]))
                continue

            if role == "tool":
                block = _tool_result_block(msg)
                previous = anthropic_messages[-1] if anthropic_messages else None
                # Results for one assistant turn share a single user turn
                if (
                    previous is not None
                    and previous["role"] == "user"
                    and isinstance(previous["content"], list)
                    and all(b.get("type") == "tool_result" for b in previous["content"])
                ):
                    previous["content"].append(block)
                else:
                    anthropic_messages.append({"role": "user", "content": [block]})
                continue

            if role == "assistant":
                anthropic_messages.append({"role": "assistant", "content": _assistant_content(msg)})
            else:
                anthropic_messages.append({"role": role, "content": msg.get("content") or ""})

        base_params = dict(params)
        extras = base_params.pop("extra", {})

        # Anthropic requires max_tokens
        base_params.setdefault("max_tokens", DEFAULT_MAX_TOKENS)

        if "stop" in base_params:
            stop = base_params.pop("stop")
            base_params["stop_sequences"] = stop if isinstance(stop, list) else [stop]

        # OpenAI-only options have no Anthropic counterpart
        base_params.pop("response_format", None)
        base_params.pop("seed", None)
        if "user" in base_params:
            base_params["metadata"] = {"user_id": base_params.pop("user")}

        if tools:
            base_params["tools"] = [tool_definition(tool) for tool in tools]
            if isinstance(base_params.get("tool_choice"), str):
                base_params["tool_choice"] = {"type": base_params["tool_choice"]}
        else:
            base_params.pop("tool_choice", None)

        for k, v in extras.items():
            base_params.setdefault(k, v)

        request: dict[str, Any] = {"messages": anthropic_messages, **base_params}
        if system_parts:
            request["system"] = "\n\n".join(system_parts)
        return request

    def from_provider(self, raw: Message) -> ChatResult:
        """Convert an Anthropic response to a unified ChatResult."""
        blocks = getattr(raw, "content", None)
        if blocks is None:
            raise provider_error("No output in Anthropic response: missing content")

        text_parts: list[str] = []
        tool_calls: list[ToolCallRequest] = []
        for block in blocks:
            if block.type == "text":
                text_parts.append(block.text)
            elif block.type == "tool_use":
                arguments = block.input
                if not isinstance(arguments, dict):
                    arguments = dict(arguments) if hasattr(arguments, "items") else {}
                tool_calls.append(ToolCallRequest(id=block.id, name=block.name, arguments=arguments))

        usage = None
        raw_usage = getattr(raw, "usage", None)
        if raw_usage is not None:
            usage = Usage(
                prompt_tokens=raw_usage.input_tokens,
                completion_tokens=raw_usage.output_tokens,
                total_tokens=raw_usage.input_tokens + raw_usage.output_tokens,
            )

        return ChatResult(
            message={"role": "assistant", "content": "".join(text_parts)},
            finish_reason=_STOP_REASONS.get(getattr(raw, "stop_reason", None) or ""),
            tool_calls=tool_calls or None,
            usage=usage,
            id=getattr(raw, "id", None),
            model=getattr(raw, "model", None),
            raw=raw,
        )
