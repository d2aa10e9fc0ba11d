"""Tests for tool routing."""

import json

import httpx
import pytest

from helps_bridge._exceptions import ErrorKind, HelpsBridgeError
from helps_bridge.config import UpstreamConfig
from helps_bridge.router import ToolRouter, build_query_string

from conftest import UPSTREAM_URL, FakeUpstream, make_router


class TestRoute:
    @pytest.fixture
    def router(self):
        return ToolRouter(UpstreamConfig(upstream_url=UPSTREAM_URL))

    def test_scripture_reference_is_uri_encoded(self, router):
        call = router.route("fetch_scripture", {"reference": "John 3:16"})
        assert call.method == "GET"
        assert call.url == "https://helps.example.org/api/fetch-scripture?reference=John%203%3A16"

    def test_only_declared_params_in_table_order(self, router):
        call = router.route(
            "fetch_translation_notes",
            {"organization": "unfoldingWord", "reference": "Rom 1:1", "language": "en", "extra": "x"},
        )
        assert call.url.endswith(
            "/api/translation-notes?reference=Rom%201%3A1&language=en&organization=unfoldingWord"
        )

    def test_word_tools_share_endpoint(self, router):
        a = router.route("get_translation_word", {"wordId": "love"})
        b = router.route("fetch_translation_words", {"wordId": "love"})
        assert a.url == b.url == "https://helps.example.org/api/fetch-translation-words?wordId=love"

    def test_booleans_and_numbers(self, router):
        call = router.route("extract_references", {"text": "see Gen 1", "includeContext": True})
        assert call.url.endswith("/api/extract-references?text=see%20Gen%201&includeContext=true")
        call = router.route("browse_translation_words", {"limit": 10})
        assert call.url.endswith("/api/browse-translation-words?limit=10")

    def test_unknown_tool_uses_rpc_envelope(self, router):
        call = router.route("new_tool", {"q": 1})
        assert call.method == "POST"
        assert call.url == UPSTREAM_URL
        assert call.json_body == {"method": "tools/call", "params": {"name": "new_tool", "arguments": {"q": 1}}}

    def test_base_url_without_rpc_suffix(self):
        router = ToolRouter(UpstreamConfig(upstream_url="https://helps.example.org/"))
        assert router.base_url == "https://helps.example.org"

    def test_build_query_string_skips_none(self):
        assert build_query_string({"a": None, "b": "x y", "c": "(ok)!"}) == "b=x%20y&c=(ok)!"


class TestCalls:
    @pytest.mark.asyncio
    async def test_call_returns_decoded_json(self, upstream):
        upstream.reply("/api/fetch-scripture", {"scripture": [{"text": "For God so loved"}]})
        router = make_router(upstream)

        payload = await router.call("fetch_scripture", {"reference": "John 3:16"})

        assert payload == {"scripture": [{"text": "For God so loved"}]}
        (request,) = upstream.calls_to("/api/fetch-scripture")
        assert request.url.params["reference"] == "John 3:16"

    @pytest.mark.asyncio
    async def test_fallback_posts_envelope(self, upstream):
        upstream.reply("/api/mcp", {"result": "ok"})
        router = make_router(upstream)

        assert await router.call("mystery", {"x": 1}) == {"result": "ok"}
        (request,) = upstream.calls_to("/api/mcp")
        assert request.method == "POST"
        assert json.loads(request.content) == {
            "method": "tools/call",
            "params": {"name": "mystery", "arguments": {"x": 1}},
        }

    @pytest.mark.asyncio
    async def test_empty_body_is_none(self, upstream):
        upstream.reply("/api/get-context", httpx.Response(200, content=b""))
        router = make_router(upstream)
        assert await router.call("get_context", {"reference": "Gen 1:1"}) is None

    @pytest.mark.asyncio
    async def test_non_json_body(self, upstream):
        upstream.reply("/api/get-context", httpx.Response(200, content=b"<html>"))
        router = make_router(upstream)
        with pytest.raises(HelpsBridgeError) as excinfo:
            await router.call("get_context", {"reference": "Gen 1:1"})
        assert excinfo.value.kind is ErrorKind.INVALID_UPSTREAM_RESPONSE

    @pytest.mark.asyncio
    async def test_list_tools(self, upstream):
        tools = await make_router(upstream).list_tools()
        assert [t.name for t in tools] == ["fetch_scripture", "fetch_translation_notes", "browse_translation_words"]
        assert tools[0].required == ["reference"]

    @pytest.mark.asyncio
    async def test_list_tools_without_tools_array(self):
        upstream = FakeUpstream()

        def handle(request):
            return httpx.Response(200, json={"items": []})

        upstream.handle = handle
        with pytest.raises(HelpsBridgeError) as excinfo:
            await make_router(upstream).list_tools()
        assert excinfo.value.kind is ErrorKind.INVALID_UPSTREAM_RESPONSE
