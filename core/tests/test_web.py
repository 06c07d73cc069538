"""Tests for the HTTP, scraper, search and Wikipedia kinds.

Requests go through ``httpx.MockTransport`` so nothing leaves the process.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

pytest_plugins = ('pytest_asyncio',)

from conduit.errors import ExecutionCancelledError, NodeExecutionError
from conduit.execution.cancellation import CancellationToken
from conduit.executors.web import execute_http, execute_scraper, execute_search, execute_wikipedia, strip_html
from conduit.ports import Collaborators
from conftest import make_request


def _collaborators(handler):
    return Collaborators(
        http_client_factory=lambda: httpx.AsyncClient(transport=httpx.MockTransport(handler))
    )


class Recorder:
    """Handler that records requests and replies from a callable."""

    def __init__(self, reply):
        self.reply = reply
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.reply(request)


class TestHTTPNode:
    @pytest.mark.asyncio
    async def test_get_with_input_in_url(self):
        recorder = Recorder(lambda r: httpx.Response(200, text="plain body"))
        request = make_request(
            "HTTPNode",
            {"url": "https://api.test/search?q={{input}}"},
            "hello world",
            collaborators=_collaborators(recorder),
        )

        assert await execute_http(request) == "plain body"
        sent = recorder.requests[0]
        assert sent.method == "GET"
        assert sent.url.params["q"] == "hello world"

    @pytest.mark.asyncio
    async def test_json_response_is_pretty_printed(self):
        recorder = Recorder(lambda r: httpx.Response(200, json={"ok": True}))
        request = make_request("HTTPNode", {"url": "https://api.test/x"}, collaborators=_collaborators(recorder))

        assert await execute_http(request) == '{\n  "ok": true\n}'

    @pytest.mark.asyncio
    async def test_post_object_body_is_json(self):
        recorder = Recorder(lambda r: httpx.Response(201, text="created"))
        request = make_request(
            "HTTPNode",
            {"url": "https://api.test/items", "method": "post", "body": {"name": "widget"}},
            collaborators=_collaborators(recorder),
        )

        await execute_http(request)

        sent = recorder.requests[0]
        assert sent.method == "POST"
        assert json.loads(sent.content) == {"name": "widget"}
        assert sent.headers["content-type"] == "application/json"

    @pytest.mark.asyncio
    async def test_post_template_body(self):
        recorder = Recorder(lambda r: httpx.Response(200, text="ok"))
        request = make_request(
            "HTTPNode",
            {"url": "https://api.test/items", "method": "PUT", "body": "value={{input}}"},
            "42",
            collaborators=_collaborators(recorder),
        )

        await execute_http(request)

        assert recorder.requests[0].content == b"value=42"

    @pytest.mark.asyncio
    async def test_post_without_body_sends_input(self):
        recorder = Recorder(lambda r: httpx.Response(200, text="ok"))
        request = make_request(
            "HTTPNode",
            {"url": "https://api.test/items", "method": "PATCH"},
            "raw input",
            collaborators=_collaborators(recorder),
        )

        await execute_http(request)

        assert recorder.requests[0].content == b"raw input"

    @pytest.mark.asyncio
    async def test_custom_headers(self):
        recorder = Recorder(lambda r: httpx.Response(200, text="ok"))
        request = make_request(
            "HTTPNode",
            {"url": "https://api.test/x", "headers": {"X-Token": "abc"}},
            collaborators=_collaborators(recorder),
        )

        await execute_http(request)

        assert recorder.requests[0].headers["x-token"] == "abc"

    @pytest.mark.asyncio
    async def test_error_status_fails_node(self):
        recorder = Recorder(lambda r: httpx.Response(404, json={"error": "missing"}))
        request = make_request("HTTPNode", {"url": "https://api.test/gone"}, collaborators=_collaborators(recorder))

        with pytest.raises(NodeExecutionError, match="GET https://api.test/gone returned 404"):
            await execute_http(request)

    @pytest.mark.asyncio
    async def test_missing_url(self):
        with pytest.raises(NodeExecutionError, match="no URL"):
            await execute_http(make_request("HTTPNode", {}))

    @pytest.mark.asyncio
    async def test_cancel_aborts_request(self):
        async def slow(request):
            await asyncio.sleep(10)
            return httpx.Response(200, text="late")

        token = CancellationToken()
        request = make_request(
            "HTTPNode",
            {"url": "https://api.test/slow"},
            token=token,
            collaborators=_collaborators(slow),
        )
        asyncio.get_running_loop().call_later(0.01, token.cancel)

        with pytest.raises(ExecutionCancelledError):
            await execute_http(request)


PAGE = """
<html>
  <head><style>body { color: red; }</style><script>var x = 1;</script></head>
  <body>
    <nav>Menu</nav>
    <div class="main-content"><h1>Title</h1><p>Body   text.</p></div>
  </body>
</html>
"""


class TestScraperNode:
    def test_strip_html(self):
        assert strip_html(PAGE) == "Menu Title Body text."

    @pytest.mark.asyncio
    async def test_scrapes_url_from_input(self):
        recorder = Recorder(lambda r: httpx.Response(200, text=PAGE))
        request = make_request(
            "ScraperNode", {}, " https://site.test/page ", collaborators=_collaborators(recorder)
        )

        assert await execute_scraper(request) == "Menu Title Body text."
        assert "Conduit" in recorder.requests[0].headers["user-agent"]

    @pytest.mark.asyncio
    async def test_selector_and_json_format(self):
        recorder = Recorder(lambda r: httpx.Response(200, text=PAGE))
        request = make_request(
            "ScraperNode",
            {"url": "https://site.test/page", "selector": "main", "format": "json"},
            collaborators=_collaborators(recorder),
        )

        assert await execute_scraper(request) == {"url": "https://site.test/page", "text": "Title Body text."}

    @pytest.mark.asyncio
    async def test_http_error(self):
        recorder = Recorder(lambda r: httpx.Response(500, text="oops"))
        request = make_request("ScraperNode", {"url": "https://site.test/"}, collaborators=_collaborators(recorder))

        with pytest.raises(NodeExecutionError, match="HTTP 500"):
            await execute_scraper(request)


RESULTS = """
<div class="result">
  <a class="result__a" href="https://one.test">First result</a>
  <a class="result__snippet">About the first.</a>
</div>
<div class="result">
  <a class="result__a" href="https://two.test">Second result</a>
  <a class="result__snippet">About the second.</a>
</div>
"""


class TestSearchNode:
    @pytest.mark.asyncio
    async def test_formats_results(self):
        recorder = Recorder(lambda r: httpx.Response(200, text=RESULTS))
        request = make_request("SearchNode", {}, "python", collaborators=_collaborators(recorder))

        result = await execute_search(request)

        assert result == "1. First result\n   About the first.\n\n2. Second result\n   About the second."
        assert recorder.requests[0].url.params["q"] == "python"

    @pytest.mark.asyncio
    async def test_max_results(self):
        recorder = Recorder(lambda r: httpx.Response(200, text=RESULTS))
        request = make_request("SearchNode", {"maxResults": 1}, "python", collaborators=_collaborators(recorder))

        assert (await execute_search(request)).startswith("1. First result")
        assert "2." not in await execute_search(request)

    @pytest.mark.asyncio
    async def test_no_results(self):
        recorder = Recorder(lambda r: httpx.Response(200, text="<html></html>"))
        request = make_request("SearchNode", {}, "zzz", collaborators=_collaborators(recorder))

        assert await execute_search(request) == "No search results found for: zzz"

    @pytest.mark.asyncio
    async def test_transport_failure_is_reported(self):
        def down(request):
            raise httpx.ConnectError("network down")

        request = make_request("SearchNode", {}, "q", collaborators=_collaborators(down))

        assert await execute_search(request) == "Search failed: network down"


class TestWikipediaNode:
    @pytest.mark.asyncio
    async def test_summary(self):
        recorder = Recorder(
            lambda r: httpx.Response(200, json={"title": "Ada Lovelace", "extract": "English mathematician."})
        )
        request = make_request("WikipediaNode", {}, "Ada Lovelace", collaborators=_collaborators(recorder))

        assert await execute_wikipedia(request) == "# Ada Lovelace\n\nEnglish mathematician."
        url = recorder.requests[0].url
        assert url.host == "en.wikipedia.org"
        assert url.path.endswith("/summary/Ada Lovelace")

    @pytest.mark.asyncio
    async def test_full_article(self):
        def reply(r):
            if "/summary/" in r.url.path:
                return httpx.Response(200, json={"title": "Python"})
            return httpx.Response(200, text="<p>" + "x" * 6000 + "</p>")

        recorder = Recorder(reply)
        request = make_request(
            "WikipediaNode",
            {"sections": "full", "language": "de"},
            "Python",
            collaborators=_collaborators(recorder),
        )

        result = await execute_wikipedia(request)

        assert result == "# Python\n\n" + "x" * 5000
        assert recorder.requests[1].url.host == "de.wikipedia.org"
        assert "/html/Python" in recorder.requests[1].url.path

    @pytest.mark.asyncio
    async def test_not_found(self):
        recorder = Recorder(lambda r: httpx.Response(404, json={"type": "not_found"}))
        request = make_request("WikipediaNode", {}, "Nothing here", collaborators=_collaborators(recorder))

        assert await execute_wikipedia(request) == 'Wikipedia: No article found for "Nothing here"'

    @pytest.mark.asyncio
    async def test_transport_failure_is_reported(self):
        def down(request):
            raise httpx.ConnectError("offline")

        request = make_request("WikipediaNode", {}, "x", collaborators=_collaborators(down))

        assert await execute_wikipedia(request) == "Wikipedia lookup failed: offline"
