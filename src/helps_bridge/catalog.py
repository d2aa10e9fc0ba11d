"""
Short-term cache of the upstream tool list.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Final, Optional

from helps_bridge._exceptions import ErrorKind, HelpsBridgeError
from helps_bridge.router import ToolRouter
from helps_bridge.types import Tool

__all__ = ["CACHE_TTL", "CacheStatus", "ToolCatalog"]

CACHE_TTL: Final = 300.0  # seconds


@dataclass(frozen=True, slots=True)
class _CacheEntry:
    tools: tuple[Tool, ...]
    fetched_at: float


@dataclass(frozen=True, slots=True)
class CacheStatus:
    has_cache: bool
    age: float
    tool_count: int


class ToolCatalog:
    """
    Tool list with a single cache slot.

    A fresh snapshot (younger than ``ttl``) is served as-is. Otherwise the list
    is refetched; if that fails, the stale snapshot is served when one exists.
    """

    def __init__(
        self,
        router: ToolRouter,
        *,
        ttl: float = CACHE_TTL,
        clock: Callable[[], float] = time.monotonic,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.router = router
        self.ttl = ttl
        self._clock = clock
        self._entry: Optional[_CacheEntry] = None
        self.logger = logger or logging.getLogger(__name__)

    async def get_all_tools(self, *, cancel: Optional[asyncio.Event] = None) -> list[Tool]:
        entry = self._entry
        now = self._clock()
        if entry is not None and now - entry.fetched_at < self.ttl:
            return list(entry.tools)

        try:
            tools = await self.router.list_tools(cancel=cancel)
        except Exception as exc:
            stale = self._entry
            cancelled = isinstance(exc, HelpsBridgeError) and exc.kind is ErrorKind.CANCELLED
            if stale is not None and not cancelled:
                self.logger.warning(
                    "Failed to refresh tool list, serving %d cached tools", len(stale.tools), exc_info=True
                )
                return list(stale.tools)
            raise

        self._entry = _CacheEntry(tools=tuple(tools), fetched_at=now)
        self.logger.info("Loaded %d tools into catalog", len(tools))
        return list(tools)

    async def get_tool(self, name: str, *, cancel: Optional[asyncio.Event] = None) -> Optional[Tool]:
        for tool in await self.get_all_tools(cancel=cancel):
            if tool.name == name:
                return tool
        return None

    async def has_tool(self, name: str) -> bool:
        return await self.get_tool(name) is not None

    async def tool_names(self) -> list[str]:
        return [tool.name for tool in await self.get_all_tools()]

    async def validate_arguments(
        self, name: str, arguments: dict[str, Any], *, cancel: Optional[asyncio.Event] = None
    ) -> list[str]:
        """Return the required fields of *name* missing from *arguments*."""
        tool = await self.get_tool(name, cancel=cancel)
        if tool is None:
            return []
        missing = [field for field in tool.required if field not in arguments]
        if missing:
            self.logger.debug("Tool %s missing required field(s): %s", name, ", ".join(missing))
        return missing

    def clear_cache(self) -> None:
        self._entry = None
        self.logger.debug("Tool catalog cache cleared")

    def get_cache_status(self) -> CacheStatus:
        entry = self._entry
        if entry is None:
            return CacheStatus(has_cache=False, age=0.0, tool_count=0)
        return CacheStatus(has_cache=True, age=self._clock() - entry.fetched_at, tool_count=len(entry.tools))
