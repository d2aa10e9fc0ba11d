"""
Routing of tool calls to concrete upstream HTTP calls.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Final, Optional
from urllib.parse import quote

import httpx

from helps_bridge._exceptions import invalid_upstream_response
from helps_bridge.config import UpstreamConfig
from helps_bridge.http import RetryingHTTPInvoker
from helps_bridge.types import Tool

__all__ = ["Route", "RoutedCall", "ToolRouter", "ROUTES", "build_query_string"]

# encodeURIComponent leaves these unescaped
_URI_COMPONENT_SAFE: Final = "-_.!~*'()"
_RPC_SUFFIX: Final = "/api/mcp"


@dataclass(frozen=True, slots=True)
class Route:
    path: str
    params: tuple[str, ...]


_REFERENCE_PARAMS: Final = ("reference", "language", "organization")

ROUTES: Final[dict[str, Route]] = {
    "fetch_scripture": Route("/api/fetch-scripture", _REFERENCE_PARAMS),
    "fetch_translation_notes": Route("/api/translation-notes", _REFERENCE_PARAMS),
    "fetch_translation_questions": Route("/api/translation-questions", _REFERENCE_PARAMS),
    "get_translation_word": Route(
        "/api/fetch-translation-words", ("reference", "wordId", "language", "organization")
    ),
    "fetch_translation_words": Route(
        "/api/fetch-translation-words", ("reference", "wordId", "language", "organization")
    ),
    "browse_translation_words": Route(
        "/api/browse-translation-words", ("language", "organization", "category", "search", "limit")
    ),
    "get_context": Route("/api/get-context", _REFERENCE_PARAMS),
    "extract_references": Route("/api/extract-references", ("text", "includeContext")),
}


@dataclass(frozen=True, slots=True)
class RoutedCall:
    """The concrete HTTP call a tool invocation resolves to."""

    method: str
    url: str
    json_body: Optional[dict[str, Any]] = None


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def build_query_string(params: dict[str, Any]) -> str:
    """Percent-encode non-null *params* in insertion order."""
    return "&".join(
        f"{quote(key, safe=_URI_COMPONENT_SAFE)}={quote(_stringify(value), safe=_URI_COMPONENT_SAFE)}"
        for key, value in params.items()
        if value is not None
    )


class ToolRouter:
    """
    Maps tool names to upstream endpoints and performs the calls.

    Known tools go to their REST endpoint with arguments as query parameters.
    Anything else is sent to the RPC endpoint in a ``tools/call`` envelope.
    """

    def __init__(
        self,
        config: Optional[UpstreamConfig] = None,
        *,
        invoker: Optional[RetryingHTTPInvoker] = None,
        logger: Optional[logging.Logger] = None,
        name: Optional[str] = None,
    ) -> None:
        self.config = config or UpstreamConfig()
        self.logger = logger or logging.getLogger(__name__)
        self.name = name or self.__class__.__name__
        self.invoker = invoker or RetryingHTTPInvoker(
            timeout=self.config.timeout,
            retry=self.config.retry,
            logger=self.logger,
        )

    @property
    def rpc_url(self) -> str:
        return self.config.upstream_url

    @property
    def base_url(self) -> str:
        url = self.config.upstream_url.rstrip("/")
        if url.endswith(_RPC_SUFFIX):
            url = url[: -len(_RPC_SUFFIX)]
        return url

    def route(self, tool_name: str, arguments: dict[str, Any]) -> RoutedCall:
        """Resolve a tool call to its HTTP method, URL and body."""
        route = ROUTES.get(tool_name)
        if route is None:
            return RoutedCall(
                method="POST",
                url=self.rpc_url,
                json_body={
                    "method": "tools/call",
                    "params": {"name": tool_name, "arguments": arguments},
                },
            )
        query = build_query_string({key: arguments.get(key) for key in route.params})
        return RoutedCall(method="GET", url=f"{self.base_url}{route.path}?{query}")

    def _headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json", **self.config.headers}

    def _build_request(self, call: RoutedCall) -> httpx.Request:
        return self.invoker.client.build_request(
            call.method,
            call.url,
            headers=self._headers(),
            json=call.json_body,
        )

    async def call(
        self,
        tool_name: str,
        arguments: dict[str, Any],
        *,
        cancel: Optional[asyncio.Event] = None,
    ) -> Any:
        """Call *tool_name* upstream and return the decoded JSON payload."""
        call = self.route(tool_name, arguments)
        self._log(f"Calling tool {tool_name}: {call.method} {call.url}")
        response = await self.invoker.invoke(self._build_request(call), cancel=cancel)
        if not response.content.strip():
            return None
        return self._decode(response, f"calling tool '{tool_name}'")

    async def list_tools(self, *, cancel: Optional[asyncio.Event] = None) -> list[Tool]:
        """Fetch the upstream tool list."""
        call = RoutedCall(method="GET", url=f"{self.rpc_url}?method=tools/list")
        response = await self.invoker.invoke(self._build_request(call), cancel=cancel)
        data = self._decode(response, "listing tools")
        if not isinstance(data, dict) or not isinstance(data.get("tools"), list):
            raise invalid_upstream_response("Invalid tools response from upstream: missing 'tools' array")
        tools = [Tool.from_dict(entry) for entry in data["tools"]]
        self._log(f"Retrieved {len(tools)} tools from upstream", logging.INFO)
        return tools

    def _decode(self, response: httpx.Response, operation: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise invalid_upstream_response(
                f"Invalid response from upstream during {operation}: body is not JSON", exc
            ) from exc

    def _log(self, message: str, level: int = logging.DEBUG) -> None:
        self.logger.log(level, f"[{self.name}] {message}")

    async def aclose(self) -> None:
        await self.invoker.aclose()
