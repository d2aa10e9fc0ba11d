"""Tests for the cached tool catalog."""

import asyncio

import httpx
import pytest

from helps_bridge._exceptions import ErrorKind, HelpsBridgeError
from helps_bridge.catalog import CACHE_TTL, ToolCatalog

from conftest import FakeUpstream, make_router


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def tools_list_count(upstream):
    return sum(1 for r in upstream.requests if r.url.params.get("method") == "tools/list")


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def catalog(upstream, clock):
    return ToolCatalog(make_router(upstream), clock=clock)


class TestCaching:
    @pytest.mark.asyncio
    async def test_fresh_cache_is_reused(self, catalog, upstream, clock):
        await catalog.get_all_tools()
        clock.now += CACHE_TTL - 1
        await catalog.get_all_tools()
        assert tools_list_count(upstream) == 1

    @pytest.mark.asyncio
    async def test_expired_cache_is_refetched(self, catalog, upstream, clock):
        await catalog.get_all_tools()
        clock.now += CACHE_TTL
        await catalog.get_all_tools()
        assert tools_list_count(upstream) == 2

    @pytest.mark.asyncio
    async def test_stale_snapshot_served_when_refresh_fails(self, catalog, upstream, clock):
        first = await catalog.get_all_tools()
        clock.now += CACHE_TTL + 1
        upstream.tools = None  # tools/list now answers {"tools": null}

        assert await catalog.get_all_tools() == first

    @pytest.mark.asyncio
    async def test_failure_without_cache_propagates(self, clock):
        upstream = FakeUpstream()
        upstream.handle = lambda request: httpx.Response(404)
        catalog = ToolCatalog(make_router(upstream), clock=clock)

        with pytest.raises(HelpsBridgeError) as excinfo:
            await catalog.get_all_tools()
        assert excinfo.value.kind is ErrorKind.RESPONSE

    @pytest.mark.asyncio
    async def test_cancellation_is_not_masked_by_stale_cache(self, catalog, clock):
        await catalog.get_all_tools()
        clock.now += CACHE_TTL + 1
        cancel = asyncio.Event()
        cancel.set()

        with pytest.raises(HelpsBridgeError) as excinfo:
            await catalog.get_all_tools(cancel=cancel)
        assert excinfo.value.kind is ErrorKind.CANCELLED

    @pytest.mark.asyncio
    async def test_clear_cache_and_status(self, catalog, upstream, clock):
        status = catalog.get_cache_status()
        assert (status.has_cache, status.age, status.tool_count) == (False, 0.0, 0)

        await catalog.get_all_tools()
        clock.now += 12.5
        status = catalog.get_cache_status()
        assert (status.has_cache, status.age, status.tool_count) == (True, 12.5, 3)

        catalog.clear_cache()
        assert not catalog.get_cache_status().has_cache
        await catalog.get_all_tools()
        assert tools_list_count(upstream) == 2


class TestLookup:
    @pytest.mark.asyncio
    async def test_get_and_has_tool(self, catalog):
        assert (await catalog.get_tool("fetch_scripture")).name == "fetch_scripture"
        assert await catalog.get_tool("nope") is None
        assert await catalog.has_tool("browse_translation_words")
        assert await catalog.tool_names() == [
            "fetch_scripture",
            "fetch_translation_notes",
            "browse_translation_words",
        ]

    @pytest.mark.asyncio
    async def test_validate_arguments(self, catalog):
        assert await catalog.validate_arguments("fetch_scripture", {}) == ["reference"]
        assert await catalog.validate_arguments("fetch_scripture", {"reference": "Gen 1:1"}) == []
        assert await catalog.validate_arguments("unknown", {}) == []
