"""Kinds that reach out over HTTP.

All of them go through the collaborators' ``http_client_factory`` and abort the
in-flight request when the run's token is cancelled.
"""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote

import httpx
from bs4 import BeautifulSoup

from conduit.errors import NodeExecutionError
from conduit.execution.cancellation import run_cancellable
from conduit.execution.resolver import render_value
from conduit.executors.helpers import fill_template
from conduit.registry import NodeRequest, register_node_kind

USER_AGENT = "Mozilla/5.0 (compatible; Conduit/0.1; +https://example.com)"
BODY_METHODS = ("POST", "PUT", "PATCH")
WIKIPEDIA_ARTICLE_LIMIT = 5000


async def fetch(request: NodeRequest, method: str, url: str, **kwargs: Any) -> httpx.Response:
    """Issue one request with a fresh client, cancellable through the run's token."""
    async with request.collaborators.http_client_factory() as client:
        return await run_cancellable(
            client.request(method, url, follow_redirects=True, **kwargs),
            request.token,
        )


def strip_html(html: str) -> str:
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return " ".join(soup.get_text(separator=" ", strip=True).split())


def _select(html: str, selector: str) -> str:
    """Keep only elements whose id or class mentions ``selector``."""
    soup = BeautifulSoup(html, "html.parser")

    def matches(tag: Any) -> bool:
        if selector in (tag.get("id") or ""):
            return True
        return any(selector in name for name in tag.get("class") or [])

    found = soup.find_all(matches)
    if not found:
        return html
    return "\n".join(str(tag) for tag in found)


@register_node_kind("HTTPNode")
async def execute_http(request: NodeRequest) -> str:
    data = request.data
    method = (data.get("method") or "GET").upper()
    url = data.get("url") or ""
    if not url:
        raise NodeExecutionError("HTTPNode: no URL provided.")

    url = url.replace("{{input}}", quote(render_value(request.input), safe="-_.!~*'()"))
    headers = dict(data.get("headers") or {})

    content: str | None = None
    if method in BODY_METHODS:
        body = data.get("body")
        if isinstance(body, str):
            content = fill_template(body, request.input)
        elif isinstance(body, (dict, list)) and body:
            content = json.dumps(body)
            headers.setdefault("Content-Type", "application/json")
        elif request.input:
            content = render_value(request.input)

    response = await fetch(request, method, url, headers=headers, content=content)

    result = response.text
    if "application/json" in response.headers.get("content-type", ""):
        try:
            result = json.dumps(response.json(), indent=2, ensure_ascii=False)
        except ValueError:
            pass

    if response.is_error:
        raise NodeExecutionError(
            f"HTTPNode: {method} {url} returned {response.status_code}: {result[:500]}"
        )
    return result


@register_node_kind("ScraperNode")
async def execute_scraper(request: NodeRequest) -> Any:
    url = request.data.get("url") or render_value(request.input).strip()
    if not url:
        raise NodeExecutionError("ScraperNode: no URL provided.")

    response = await fetch(request, "GET", url, headers={"User-Agent": USER_AGENT})
    if response.is_error:
        raise NodeExecutionError(f"ScraperNode: HTTP {response.status_code} for {url}")

    html = response.text
    selector = request.data.get("selector")
    if selector:
        html = _select(html, selector)

    text = strip_html(html)
    if request.data.get("format") == "json":
        return {"url": url, "text": text}
    return text


@register_node_kind("SearchNode")
async def execute_search(request: NodeRequest) -> str:
    query = request.input if isinstance(request.input, str) else json.dumps(request.input)
    max_results = int(request.data.get("maxResults") or 5)

    try:
        response = await fetch(
            request,
            "GET",
            "https://html.duckduckgo.com/html/",
            params={"q": query},
            headers={"User-Agent": USER_AGENT},
        )
    except httpx.HTTPError as e:
        return f"Search failed: {e}"

    soup = BeautifulSoup(response.text, "html.parser")
    results = []
    for link in soup.select("a.result__a"):
        if len(results) >= max_results:
            break
        snippet = link.find_next("a", class_="result__snippet")
        results.append(
            (link.get_text(strip=True), snippet.get_text(" ", strip=True) if snippet else "")
        )

    if not results:
        return f"No search results found for: {query}"
    return "\n\n".join(
        f"{i}. {title}\n   {snippet}" for i, (title, snippet) in enumerate(results, start=1)
    )


@register_node_kind("WikipediaNode")
async def execute_wikipedia(request: NodeRequest) -> str:
    query = render_value(request.input).strip()
    lang = request.data.get("language") or "en"
    sections = request.data.get("sections") or "summary"
    base = f"https://{lang}.wikipedia.org/api/rest_v1/page"

    try:
        response = await fetch(request, "GET", f"{base}/summary/{quote(query, safe='')}")
        if response.is_error:
            return f'Wikipedia: No article found for "{query}"'

        summary = response.json()
        title = summary.get("title") or query
        if sections == "summary":
            return f"# {title}\n\n{summary.get('extract', '')}"

        article = await fetch(request, "GET", f"{base}/html/{quote(title, safe='')}")
        text = strip_html(article.text)
        return f"# {title}\n\n{text[:WIKIPEDIA_ARTICLE_LIMIT]}"
    except (httpx.HTTPError, ValueError) as e:
        return f"Wikipedia lookup failed: {e}"
