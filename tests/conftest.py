"""Shared fixtures: a fake Translation Helps upstream served through httpx.MockTransport."""

from __future__ import annotations

import json
from typing import Any, Callable, Optional, Union

import httpx
import pytest

from helps_bridge.config import ClientConfig, RetryConfig, UpstreamConfig
from helps_bridge.core import TranslationHelpsClient
from helps_bridge.http import RetryingHTTPInvoker
from helps_bridge.router import ToolRouter

UPSTREAM_URL = "https://helps.example.org/api/mcp"

_REFERENCE_SCHEMA = {
    "type": "object",
    "properties": {
        "reference": {"type": "string"},
        "language": {"type": "string"},
        "organization": {"type": "string"},
    },
    "required": ["reference"],
}

TOOLS: list[dict[str, Any]] = [
    {"name": "fetch_scripture", "description": "Fetch scripture text", "inputSchema": _REFERENCE_SCHEMA},
    {"name": "fetch_translation_notes", "description": "Fetch notes", "inputSchema": _REFERENCE_SCHEMA},
    {
        "name": "browse_translation_words",
        "description": "Browse words",
        "inputSchema": {
            "type": "object",
            "properties": {"language": {"type": "string"}, "category": {"type": "string"}},
            "required": [],
        },
    },
]

Reply = Union[httpx.Response, dict, list, Callable[[httpx.Request], httpx.Response]]


class FakeUpstream:
    """Answers tools/list with TOOLS and per-path replies queued by the test."""

    def __init__(self, tools: Optional[list[dict[str, Any]]] = None) -> None:
        self.tools = TOOLS if tools is None else tools
        self.requests: list[httpx.Request] = []
        self.replies: dict[str, list[Reply]] = {}

    def reply(self, path: str, *replies: Reply) -> None:
        """Queue replies for *path*; the last one repeats."""
        self.replies[path] = list(replies)

    def calls_to(self, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.url.path == path and r.url.params.get("method") != "tools/list"]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.params.get("method") == "tools/list":
            return httpx.Response(200, json={"tools": self.tools})

        queue = self.replies.get(request.url.path)
        if not queue:
            return httpx.Response(404, json={"error": "not found"})
        reply = queue.pop(0) if len(queue) > 1 else queue[0]
        if callable(reply):
            return reply(request)
        if isinstance(reply, httpx.Response):
            return reply
        return httpx.Response(200, content=json.dumps(reply).encode(), headers={"content-type": "application/json"})


async def no_sleep(delay, cancel=None):
    return None


def make_router(upstream: FakeUpstream, config: Optional[UpstreamConfig] = None, sleep=no_sleep) -> ToolRouter:
    config = config or UpstreamConfig(upstream_url=UPSTREAM_URL, retry=RetryConfig(max_retries=2))
    invoker = RetryingHTTPInvoker(
        timeout=config.timeout,
        retry=config.retry,
        client=httpx.AsyncClient(transport=httpx.MockTransport(upstream.handle)),
        sleep=sleep,
    )
    return ToolRouter(config, invoker=invoker)


def make_client(upstream: FakeUpstream, config: Optional[ClientConfig] = None) -> TranslationHelpsClient:
    config = config or ClientConfig(
        upstream=UpstreamConfig(upstream_url=UPSTREAM_URL, retry=RetryConfig(max_retries=2))
    )
    return TranslationHelpsClient(config, router=make_router(upstream, config.upstream))


@pytest.fixture
def upstream():
    return FakeUpstream()
