"""Premium search and scrape tools backed by the Firecrawl REST API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ai_agent.errors import describe_error
from ai_agent.tools.base import (
    MAX_CONTENT_CHARS,
    http_client,
    json_object,
    json_objects,
    json_text,
    truncate,
)
from ai_agent.tools.web import NO_RESULTS, TRUNCATION_MARKER, SearchResult, format_results

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.firecrawl.dev"


def _headers(api_key: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {api_key}", "Content-Type": "application/json"}


async def _post(
    client: httpx.AsyncClient | None, url: str, api_key: str, payload: dict[str, Any]
) -> httpx.Response:
    async with http_client(client) as http:
        return await http.post(url, headers=_headers(api_key), json=payload)


async def firecrawl_search(
    query: str,
    *,
    api_key: str,
    base_url: str = DEFAULT_BASE_URL,
    client: httpx.AsyncClient | None = None,
) -> str:
    try:
        response = await _post(client, f"{base_url}/v1/search", api_key, {"query": query, "limit": 5})
        response.raise_for_status()
        items = json_objects(json_object(response).get("data"))
    except (httpx.HTTPError, httpx.InvalidURL, ValueError) as exc:
        logger.warning("Firecrawl search failed for %r: %s", query, describe_error(exc))
        return NO_RESULTS

    results = [
        SearchResult(
            title=json_text(item.get("title")) or item["url"],
            snippet=json_text(item.get("description")),
            url=item["url"],
        )
        for item in items
        if json_text(item.get("url"))
    ]
    return format_results(results)


async def firecrawl_scrape(
    url: str,
    *,
    api_key: str,
    base_url: str = DEFAULT_BASE_URL,
    client: httpx.AsyncClient | None = None,
) -> str:
    payload = {"url": url, "formats": ["markdown"], "onlyMainContent": True}
    try:
        response = await _post(client, f"{base_url}/v1/scrape", api_key, payload)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.debug("Firecrawl scrape of %s failed: %s", url, exc)
        return f"Failed to scrape URL: {describe_error(exc)}"

    if not response.is_success:
        return f"Failed to scrape URL: HTTP {response.status_code} {response.reason_phrase}".rstrip()

    try:
        body = json_object(response)
    except ValueError:
        return "Failed to scrape URL: invalid response from Firecrawl"
    if not body.get("success", True):
        return f"Failed to scrape URL: {json_text(body.get('error')) or 'unknown Firecrawl error'}"

    data = body.get("data") if isinstance(body.get("data"), dict) else {}
    markdown = json_text(data.get("markdown")).strip()
    if not markdown:
        return "Could not extract content from URL"
    metadata = data.get("metadata") if isinstance(data.get("metadata"), dict) else {}
    title = json_text(metadata.get("title"))
    text = f"Title: {title}\n\n{markdown}" if title else markdown
    return truncate(text, MAX_CONTENT_CHARS, TRUNCATION_MARKER)
