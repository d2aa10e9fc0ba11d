"""
Operator filters: tool allow-list, hidden parameters, intro-note removal and
baked-in argument defaults.

The module-level functions are pure; `FilterEngine` holds the current
`FilterConfig` and adds logging.
"""

from __future__ import annotations

import json
import logging
from dataclasses import replace
from typing import Any, Optional, Sequence

from helps_bridge.config import FilterConfig
from helps_bridge.types import Tool

__all__ = [
    "FilterEngine",
    "filter_tools",
    "filter_arguments",
    "filter_book_chapter_notes",
    "hide_parameters",
    "is_intro_reference",
]

_log = logging.getLogger(__name__)


def hide_parameters(tool: Tool, hidden: Optional[frozenset[str]]) -> Tool:
    """Return *tool* with *hidden* keys removed from ``properties`` and ``required``."""
    if not hidden:
        return tool
    schema = dict(tool.input_schema)
    if isinstance(schema.get("properties"), dict):
        schema["properties"] = {k: v for k, v in schema["properties"].items() if k not in hidden}
    if isinstance(schema.get("required"), list):
        schema["required"] = [k for k in schema["required"] if k not in hidden]
    return replace(tool, input_schema=schema)


def filter_tools(tools: Sequence[Tool], config: FilterConfig) -> list[Tool]:
    selected = list(tools)
    if config.enabled_tools:
        selected = [tool for tool in selected if tool.name in config.enabled_tools]
    return [hide_parameters(tool, config.hidden_params) for tool in selected]


def filter_arguments(arguments: dict[str, Any], config: FilterConfig) -> dict[str, Any]:
    if not config.hidden_params:
        return dict(arguments)
    return {k: v for k, v in arguments.items() if k not in config.hidden_params}


def is_intro_reference(reference: Any) -> bool:
    """True for book-level (``front:intro``) and chapter-level (``N:intro``) notes."""
    return isinstance(reference, str) and (reference == "front:intro" or reference.endswith(":intro"))


def _filter_items(data: Any) -> Any:
    if not isinstance(data, dict) or not isinstance(data.get("items"), list):
        return data
    items = data["items"]
    kept = [
        item
        for item in items
        if not (isinstance(item, dict) and is_intro_reference(item.get("Reference")))
    ]
    filtered = {**data, "items": kept}
    metadata = data.get("metadata")
    if (
        isinstance(metadata, dict)
        and isinstance(metadata.get("totalCount"), (int, float))
        and not isinstance(metadata.get("totalCount"), bool)
    ):
        filtered["metadata"] = {**metadata, "totalCount": len(kept)}
    _log.debug("Filtered notes: %d -> %d", len(items), len(kept))
    return filtered


def filter_book_chapter_notes(payload: Any, config: FilterConfig) -> Any:
    """Drop book- and chapter-intro notes from an ``items`` payload.

    Passthrough payloads whose first text block holds JSON are unwrapped,
    filtered and re-wrapped.
    """
    if not config.filter_book_chapter_notes:
        return payload

    content = payload.get("content") if isinstance(payload, dict) else None
    if isinstance(content, list) and content:
        first = content[0]
        if isinstance(first, dict) and first.get("type") == "text" and isinstance(first.get("text"), str):
            try:
                data = json.loads(first["text"])
            except ValueError:
                _log.warning("Failed to parse passthrough content for note filtering")
                return payload
            return {
                **payload,
                "content": [{"type": "text", "text": json.dumps(_filter_items(data))}],
            }

    return _filter_items(payload)


class FilterEngine:
    """Applies the current `FilterConfig` to tools, arguments and payloads."""

    def __init__(
        self,
        config: Optional[FilterConfig] = None,
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.config = config or FilterConfig()
        self.logger = logger or _log

    def is_tool_enabled(self, name: str) -> bool:
        if not self.config.enabled_tools:
            return True
        return name in self.config.enabled_tools

    def filter_tools(self, tools: Sequence[Tool]) -> list[Tool]:
        filtered = filter_tools(tools, self.config)
        self.logger.debug(
            "Filtered %d tools to %d: %s",
            len(tools),
            len(filtered),
            ", ".join(tool.name for tool in filtered),
        )
        return filtered

    def filter_arguments(self, arguments: dict[str, Any]) -> dict[str, Any]:
        filtered = filter_arguments(arguments, self.config)
        removed = sorted(set(arguments) - set(filtered))
        if removed:
            self.logger.debug("Removed hidden parameters from arguments: %s", ", ".join(removed))
        return filtered

    def filter_book_chapter_notes(self, payload: Any) -> Any:
        return filter_book_chapter_notes(payload, self.config)

    def apply_defaults(
        self,
        tool: Optional[Tool],
        arguments: dict[str, Any],
        defaults: dict[str, Any],
    ) -> dict[str, Any]:
        """Fill baked-in defaults the tool accepts but the call left empty."""
        if tool is None:
            return dict(arguments)
        merged = dict(arguments)
        for key, value in defaults.items():
            if key in tool.properties and merged.get(key) in (None, ""):
                merged[key] = value
        return merged

    def update_config(self, **changes: Any) -> FilterConfig:
        self.config = self.config.update(**changes)
        self.logger.info("Updated filter configuration: %s", self.config)
        return self.config
