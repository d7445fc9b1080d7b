"""Native web tools: multi-source search, page scraping and raw HTTP requests."""

from __future__ import annotations

import html
import logging
import re
from dataclasses import dataclass
from typing import Any

import httpx

from ai_agent.errors import describe_error
from ai_agent.tools.base import (
    BROWSER_HEADERS,
    MAX_CONTENT_CHARS,
    http_client,
    json_object,
    json_objects,
    json_text,
    truncate,
)

logger = logging.getLogger(__name__)

NO_RESULTS = "No results found. Try a different search query."
TRUNCATION_MARKER = "\n\n[Content truncated]"
MAX_SEARCH_RESULTS = 5

_WIKIPEDIA_API = "https://en.wikipedia.org/w/api.php"
_DUCKDUCKGO_API = "https://api.duckduckgo.com/"
_STACKEXCHANGE_API = "https://api.stackexchange.com/2.3/search/advanced"

_TECHNICAL_QUERY = re.compile(
    r"\b(python|javascript|typescript|java|rust|golang|sql|api|sdk|error|exception|bug|"
    r"code|coding|programming|function|library|framework|package|npm|pip|docker|kubernetes|"
    r"git|linux|bash|regex|react|django|flask|node(\.js)?|compile[rd]?|debug(ging)?)\b",
    re.IGNORECASE,
)


@dataclass(frozen=True)
class SearchResult:
    title: str
    snippet: str
    url: str


def is_technical_query(query: str) -> bool:
    return _TECHNICAL_QUERY.search(query) is not None


def _strip_tags(text: str) -> str:
    return html.unescape(re.sub(r"<[^>]+>", "", text)).strip()


async def _search_wikipedia(client: httpx.AsyncClient, query: str) -> list[SearchResult]:
    response = await client.get(
        _WIKIPEDIA_API,
        params={"action": "query", "list": "search", "srsearch": query, "format": "json", "srlimit": 3},
        headers=BROWSER_HEADERS,
    )
    response.raise_for_status()
    found = json_object(response).get("query")
    hits = json_objects(found.get("search") if isinstance(found, dict) else None)
    return [
        SearchResult(
            title=hit["title"],
            snippet=_strip_tags(json_text(hit.get("snippet"))),
            url="https://en.wikipedia.org/wiki/" + hit["title"].replace(" ", "_"),
        )
        for hit in hits
        if json_text(hit.get("title"))
    ]


def _flatten_topics(topics: list[dict[str, Any]]) -> list[dict[str, Any]]:
    flat: list[dict[str, Any]] = []
    for topic in topics:
        # disambiguation groups nest their entries one level down
        if "Topics" in topic:
            flat.extend(json_objects(topic["Topics"]))
        else:
            flat.append(topic)
    return flat


async def _search_duckduckgo(client: httpx.AsyncClient, query: str) -> list[SearchResult]:
    response = await client.get(
        _DUCKDUCKGO_API,
        params={"q": query, "format": "json", "no_html": 1, "skip_disambig": 1},
    )
    response.raise_for_status()
    data = json_object(response)

    results: list[SearchResult] = []
    abstract, abstract_url = json_text(data.get("Abstract")), json_text(data.get("AbstractURL"))
    if abstract and abstract_url:
        heading = json_text(data.get("Heading")) or query
        results.append(SearchResult(title=heading, snippet=abstract, url=abstract_url))
    for topic in _flatten_topics(json_objects(data.get("RelatedTopics")))[:3]:
        text, url = json_text(topic.get("Text")), json_text(topic.get("FirstURL"))
        if text and url:
            results.append(SearchResult(title=text.split(" - ")[0], snippet=text, url=url))
    return results


async def _search_stackoverflow(client: httpx.AsyncClient, query: str) -> list[SearchResult]:
    response = await client.get(
        _STACKEXCHANGE_API,
        params={"order": "desc", "sort": "relevance", "q": query, "site": "stackoverflow", "pagesize": 3},
    )
    response.raise_for_status()
    results: list[SearchResult] = []
    for item in json_objects(json_object(response).get("items")):
        title, link = json_text(item.get("title")), json_text(item.get("link"))
        if not (title and link):
            continue
        raw_tags = item.get("tags") if isinstance(item.get("tags"), list) else []
        tags = ", ".join(tag for tag in raw_tags if isinstance(tag, str))
        answered = "yes" if item.get("is_answered") else "no"
        results.append(
            SearchResult(title=html.unescape(title), snippet=f"Tags: {tags}; answered: {answered}", url=link)
        )
    return results


def format_results(results: list[SearchResult], limit: int = MAX_SEARCH_RESULTS) -> str:
    seen: set[str] = set()
    unique: list[SearchResult] = []
    for result in results:
        if result.url in seen:
            continue
        seen.add(result.url)
        unique.append(result)
    if not unique:
        return NO_RESULTS
    return "\n\n".join(
        f"{i}. {r.title}\n   {r.snippet}\n   Source: {r.url}" for i, r in enumerate(unique[:limit], start=1)
    )


async def web_search(query: str, client: httpx.AsyncClient | None = None) -> str:
    """Search encyclopedic, instant-answer and (for technical queries) Q&A sources."""
    sources = [_search_wikipedia, _search_duckduckgo]
    if is_technical_query(query):
        sources.append(_search_stackoverflow)

    results: list[SearchResult] = []
    async with http_client(client) as http:
        for source in sources:
            try:
                results.extend(await source(http, query))
            except (httpx.HTTPError, httpx.InvalidURL, ValueError, KeyError) as exc:
                logger.debug("Search source %s failed for %r: %s", source.__name__, query, exc)
    return format_results(results)


_REMOVED_BLOCKS = re.compile(
    r"<(script|style|noscript|svg|nav|header|footer|aside|iframe)\b[^>]*>.*?</\1\s*>",
    re.IGNORECASE | re.DOTALL,
)
_COMMENTS = re.compile(r"<!--.*?-->", re.DOTALL)
_TITLE = re.compile(r"<title[^>]*>(.*?)</title\s*>", re.IGNORECASE | re.DOTALL)
_CONTAINERS = (
    re.compile(r"<main\b[^>]*>(.*?)</main\s*>", re.IGNORECASE | re.DOTALL),
    re.compile(r"<article\b[^>]*>(.*?)</article\s*>", re.IGNORECASE | re.DOTALL),
    re.compile(
        r"<div\b[^>]*class=[\"'][^\"']*\b(?:content|post|entry|article)[^\"']*[\"'][^>]*>(.*)",
        re.IGNORECASE | re.DOTALL,
    ),
)
_BLOCK_TAGS = re.compile(
    r"</?(?:p|div|br|hr|h[1-6]|li|ul|ol|tr|table|section|blockquote|pre|dt|dd)\b[^>]*>",
    re.IGNORECASE,
)
_ANY_TAG = re.compile(r"<[^>]+>")


def html_to_text(page: str) -> str:
    """Reduce an HTML page to readable text, preferring the main content region."""
    title_match = _TITLE.search(page)
    title = " ".join(html.unescape(title_match.group(1)).split()) if title_match else ""

    body = _COMMENTS.sub("", page)
    body = _REMOVED_BLOCKS.sub("", body)
    for container in _CONTAINERS:
        match = container.search(body)
        if match and match.group(1).strip():
            body = match.group(1)
            break

    text = _BLOCK_TAGS.sub("\n", body)
    text = _ANY_TAG.sub(" ", text)
    text = html.unescape(text)
    lines = (" ".join(line.split()) for line in text.splitlines())
    text = re.sub(r"\n{3,}", "\n\n", "\n".join(lines)).strip()

    if title and text:
        return f"Title: {title}\n\n{text}"
    return text


async def scrape_url(url: str, client: httpx.AsyncClient | None = None) -> str:
    """Fetch a page and return its readable text."""
    try:
        async with http_client(client) as http:
            response = await http.get(url, headers=BROWSER_HEADERS, follow_redirects=True)
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.debug("Scrape of %s failed: %s", url, exc)
        return f"Failed to scrape URL: {describe_error(exc)}"

    if not response.is_success:
        return f"Failed to scrape URL: HTTP {response.status_code} {response.reason_phrase}".rstrip()

    text = html_to_text(response.text)
    if not text:
        return "Could not extract content from URL"
    return truncate(text, MAX_CONTENT_CHARS, TRUNCATION_MARKER)


async def http_request(
    url: str,
    method: str = "GET",
    body: str | None = None,
    client: httpx.AsyncClient | None = None,
) -> str:
    """Issue an arbitrary request and return the (truncated) response body."""
    method = method.upper()
    content = body.encode() if body and method != "GET" else None
    try:
        async with http_client(client) as http:
            response = await http.request(
                method, url, content=content, headers={"Content-Type": "application/json"}
            )
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        logger.debug("%s %s failed: %s", method, url, exc)
        return f"HTTP request failed: {describe_error(exc)}"
    return truncate(response.text, MAX_CONTENT_CHARS)
