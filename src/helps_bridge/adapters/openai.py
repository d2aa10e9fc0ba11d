"""OpenAI adapter for pure request/response transformations."""

from __future__ import annotations

import json
from typing import Any, Final, Optional, Sequence

from openai.types.chat import ChatCompletion

from helps_bridge._exceptions import provider_error
from helps_bridge.types import (
    ChatMessage,
    ChatResult,
    FinishReason,
    Tool,
    ToolCallRequest,
    Usage,
)

_FINISH_REASONS: Final[dict[str, FinishReason]] = {
    "stop": FinishReason.STOP,
    "length": FinishReason.LENGTH,
    "tool_calls": FinishReason.TOOL_CALLS,
    "function_call": FinishReason.TOOL_CALLS,
    "content_filter": FinishReason.CONTENT_FILTER,
}


def tool_definition(tool: Tool) -> dict[str, Any]:
    """Render a Tool as an OpenAI function tool."""
    return {
        "type": "function",
        "function": {
            "name": tool.name,
            "description": tool.description,
            "parameters": {
                "type": "object",
                "properties": tool.properties,
                "required": tool.required,
                "additionalProperties": False,
            },
        },
    }


def _tool_call_dict(call: ToolCallRequest) -> dict[str, Any]:
    return {
        "id": call.id,
        "type": "function",
        "function": {"name": call.name, "arguments": json.dumps(call.arguments)},
    }


class OpenAIRequestAdapter:
    """Adapter for converting between generic format and OpenAI format."""

    def to_provider(
        self,
        messages: Sequence[ChatMessage],
        tools: Optional[Sequence[Tool]],
        params: dict[str, Any],
    ) -> dict[str, Any]:
        """Convert generic messages, tools and normalized params to an OpenAI request."""
        openai_messages: list[dict[str, Any]] = []
        for msg in messages:
            role = msg["role"]

            if role == "tool":
                openai_messages.append(
                    {
                        "role": "tool",
                        "tool_call_id": msg["tool_call_id"],
                        "content": msg.get("content") or "",
                    }
                )
                continue

            openai_msg: dict[str, Any] = {"role": role, "content": msg.get("content") or ""}
            if role == "assistant" and msg.get("tool_calls"):
                openai_msg["tool_calls"] = [_tool_call_dict(tc) for tc in msg["tool_calls"]]
                # OpenAI expects null content when tool_calls carry the turn
                if not msg.get("content"):
                    openai_msg["content"] = None
            openai_messages.append(openai_msg)

        base_params = dict(params)
        extras = base_params.pop("extra", {})

        if tools:
            base_params["tools"] = [tool_definition(tool) for tool in tools]
            base_params.setdefault("tool_choice", "auto")
        else:
            base_params.pop("tool_choice", None)

        for k, v in extras.items():
            base_params.setdefault(k, v)

        return {"messages": openai_messages, **base_params}

    def from_provider(self, raw: ChatCompletion) -> ChatResult:
        """Convert an OpenAI response to a unified ChatResult."""
        choices = getattr(raw, "choices", None)
        if not choices or getattr(choices[0], "message", None) is None:
            raise provider_error("No output in OpenAI response: missing choices")

        choice = choices[0]
        message = choice.message
        tool_calls = self._parse_tool_calls(message.tool_calls) if message.tool_calls else None

        usage = None
        if getattr(raw, "usage", None) is not None:
            usage = Usage(
                prompt_tokens=raw.usage.prompt_tokens,
                completion_tokens=raw.usage.completion_tokens,
                total_tokens=raw.usage.total_tokens,
            )

        return ChatResult(
            message={"role": "assistant", "content": message.content or ""},
            finish_reason=_FINISH_REASONS.get(choice.finish_reason or ""),
            tool_calls=tool_calls,
            usage=usage,
            id=getattr(raw, "id", None),
            model=getattr(raw, "model", None),
            raw=raw,
        )

    def _parse_tool_calls(self, raw_calls: Sequence[Any]) -> list[ToolCallRequest]:
        calls = []
        for tc in raw_calls:
            function = getattr(tc, "function", None)
            if function is None:
                continue  # non-function tool types are not ours
            raw_args = function.arguments
            if isinstance(raw_args, dict):
                arguments = raw_args
            elif isinstance(raw_args, str) and raw_args.strip():
                try:
                    arguments = json.loads(raw_args)
                except json.JSONDecodeError as exc:
                    raise provider_error(
                        f"Invalid tool call arguments for {function.name}: {exc}", exc=exc
                    ) from exc
                if not isinstance(arguments, dict):
                    raise provider_error(
                        f"Invalid tool call arguments for {function.name}: expected a JSON object"
                    )
            else:
                arguments = {}
            calls.append(ToolCallRequest(id=tc.id, name=function.name, arguments=arguments))
        return calls

