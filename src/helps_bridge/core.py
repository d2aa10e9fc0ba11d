"""
TranslationHelpsClient: the call surface exposed to transport front-ends.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import replace
from typing import Any, Optional, Self

from helps_bridge._cancel import raise_if_cancelled
from helps_bridge._exceptions import (
    config_error,
    invalid_arguments,
    tool_disabled,
    tool_not_found,
)
from helps_bridge.catalog import CacheStatus, ToolCatalog
from helps_bridge.config import ClientConfig
from helps_bridge.filters import FilterEngine
from helps_bridge.normalizer import normalize
from helps_bridge.router import ToolRouter
from helps_bridge.types import TextContent, Tool

__all__ = ["TranslationHelpsClient"]

_FILTER_KEYS = frozenset({"enabled_tools", "hidden_params", "filter_book_chapter_notes"})
_CLIENT_KEYS = frozenset({"language", "organization"})


class TranslationHelpsClient:
    """
    Filtered, normalized access to the upstream Translation Helps tools.

    Owns one `ToolRouter`, one `ToolCatalog` and one `FilterEngine`. The
    catalog cache is shared by every call made through this client.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        *,
        router: Optional[ToolRouter] = None,
        catalog: Optional[ToolCatalog] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self.config = config or ClientConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__
        self.router = router or ToolRouter(self.config.upstream, logger=self.logger)
        self.catalog = catalog or ToolCatalog(self.router, logger=self.logger)
        self.filters = FilterEngine(self.config.filters, logger=self.logger)
        self._log(
            f"Initialized for {self.config.upstream.upstream_url} "
            f"(enabled tools: {len(self.config.filters.enabled_tools or ()) or 'all'}, "
            f"hidden params: {len(self.config.filters.hidden_params or ()) or 'none'}, "
            f"filter book/chapter notes: {self.config.filters.filter_book_chapter_notes})"
        )

    async def list_tools(self, *, cancel: Optional[asyncio.Event] = None) -> list[Tool]:
        """Return the tools visible under the current filters."""
        tools = self.filters.filter_tools(await self.catalog.get_all_tools(cancel=cancel))
        self._log(f"Listed {len(tools)} filtered tools", logging.DEBUG)
        return tools

    async def call_tool(
        self,
        name: str,
        arguments: dict[str, Any],
        *,
        cancel: Optional[asyncio.Event] = None,
    ) -> list[TextContent]:
        """
        Call a tool by name and return its normalized content.

        Raises:
            HelpsBridgeError: TOOL_DISABLED, TOOL_NOT_FOUND or INVALID_ARGUMENTS
                for caller errors; CONNECTION, RESPONSE or
                INVALID_UPSTREAM_RESPONSE for upstream failures.
        """
        raise_if_cancelled(cancel)
        if not self.filters.is_tool_enabled(name):
            raise tool_disabled(name)

        if await self.catalog.get_tool(name, cancel=cancel) is None:
            raise tool_not_found(name)

        missing = await self.catalog.validate_arguments(name, arguments, cancel=cancel)
        if missing:
            raise invalid_arguments(name, missing)

        self._log(f"Calling tool {name} with {sorted(arguments)}", logging.DEBUG)
        payload = await self.router.call(name, arguments, cancel=cancel)
        payload = self.filters.filter_book_chapter_notes(payload)
        content = normalize(payload)
        self._log(f"Tool {name} completed", logging.DEBUG)
        return content

    def update_config(self, **changes: Any) -> ClientConfig:
        """
        Update filter settings and baked-in defaults in place.

        Accepts ``enabled_tools``, ``hidden_params``,
        ``filter_book_chapter_notes``, ``language`` and ``organization``.
        """
        unknown = set(changes) - _FILTER_KEYS - _CLIENT_KEYS
        if unknown:
            raise config_error(f"Cannot update settings: {', '.join(sorted(unknown))}")

        # Build everything before assigning so a rejected value changes nothing.
        filter_changes = {k: v for k, v in changes.items() if k in _FILTER_KEYS}
        filters = self.config.filters.update(**filter_changes)
        config = replace(
            self.config,
            filters=filters,
            **{k: v for k, v in changes.items() if k in _CLIENT_KEYS},
        )
        self.config = config
        self.filters.config = filters
        self._log(f"Configuration updated: {', '.join(sorted(changes))}")
        return self.config

    def get_config(self) -> ClientConfig:
        return self.config

    async def test_connection(self) -> bool:
        """Return True if the upstream tool list can be fetched."""
        try:
            await self.list_tools()
        except Exception:
            self.logger.error(f"[{self.name}] Connection test failed", exc_info=True)
            return False
        return True

    def clear_cache(self) -> None:
        self.catalog.clear_cache()

    def get_cache_status(self) -> CacheStatus:
        return self.catalog.get_cache_status()

    def _log(self, message: str, level: int = logging.INFO) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    async def aclose(self) -> None:
        await self.router.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()
