"""Tool registry: input schemas and selection of the active tool set."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import replace
from functools import partial
from typing import Annotated, Literal

import httpx
from pydantic import AfterValidator, AnyHttpUrl, BaseModel, Field, TypeAdapter, ValidationError

from ai_agent.tools.base import AgentTool
from ai_agent.tools.calculator import calculate
from ai_agent.tools.firecrawl import DEFAULT_BASE_URL, firecrawl_scrape, firecrawl_search
from ai_agent.tools.web import http_request, scrape_url, web_search

__all__ = ["AgentTool", "build_tools", "FIRECRAWL_KEY", "NATIVE_FALLBACKS"]

logger = logging.getLogger(__name__)

FIRECRAWL_KEY = "FIRECRAWL_API_KEY"

_HTTP_URL = TypeAdapter(AnyHttpUrl)


def _check_http_url(value: str) -> str:
    try:
        _HTTP_URL.validate_python(value)
    except ValidationError as exc:
        raise ValueError("must be an absolute http(s) URL") from exc
    return value


# validated as an http(s) URL but passed on exactly as the model wrote it
HttpUrlString = Annotated[str, AfterValidator(_check_http_url)]


class WebSearchInput(BaseModel):
    query: str = Field(description="The search query")


class ScrapeUrlInput(BaseModel):
    url: HttpUrlString = Field(description="The URL to scrape")


class HttpRequestInput(BaseModel):
    url: HttpUrlString = Field(description="The URL to request")
    method: Literal["GET", "POST", "PUT", "DELETE"] = Field(description="HTTP method")
    body: str | None = Field(default=None, description="Request body as JSON string")


class CalculateInput(BaseModel):
    expression: str = Field(description="Math expression to evaluate (e.g., 2+2, 100*0.15)")


_SEARCH_DESCRIPTION = "Search the web for information. Returns relevant results."
_SCRAPE_DESCRIPTION = "Fetch and extract text content from a URL."

# premium tool -> native tool standing in for it when no key is configured
NATIVE_FALLBACKS = {
    "firecrawl_search": "web_search",
    "firecrawl_scrape": "scrape_url",
}


def _native_tools(client: httpx.AsyncClient | None) -> dict[str, AgentTool]:
    return {
        "web_search": AgentTool(
            name="web_search",
            description=_SEARCH_DESCRIPTION,
            input_model=WebSearchInput,
            execute=partial(web_search, client=client),
        ),
        "scrape_url": AgentTool(
            name="scrape_url",
            description=_SCRAPE_DESCRIPTION,
            input_model=ScrapeUrlInput,
            execute=partial(scrape_url, client=client),
        ),
        "http_request": AgentTool(
            name="http_request",
            description="Make an HTTP request to any API endpoint.",
            input_model=HttpRequestInput,
            execute=partial(http_request, client=client),
        ),
        "calculate": AgentTool(
            name="calculate",
            description="Perform mathematical calculations.",
            input_model=CalculateInput,
            execute=calculate,
        ),
    }


def _premium_tools(api_key: str, base_url: str, client: httpx.AsyncClient | None) -> dict[str, AgentTool]:
    return {
        "firecrawl_search": AgentTool(
            name="firecrawl_search",
            description=_SEARCH_DESCRIPTION,
            input_model=WebSearchInput,
            execute=partial(firecrawl_search, api_key=api_key, base_url=base_url, client=client),
        ),
        "firecrawl_scrape": AgentTool(
            name="firecrawl_scrape",
            description=_SCRAPE_DESCRIPTION,
            input_model=ScrapeUrlInput,
            execute=partial(firecrawl_scrape, api_key=api_key, base_url=base_url, client=client),
        ),
    }


def build_tools(
    selected: Iterable[str],
    credentials: Mapping[str, str] | None = None,
    *,
    client: httpx.AsyncClient | None = None,
    firecrawl_base_url: str = DEFAULT_BASE_URL,
) -> dict[str, AgentTool]:
    """Return the active tools, keyed by name, in selection order.

    Unknown names are skipped. Premium tools without a key are served by their
    native counterpart under the premium name, so the model sees the same list.
    """
    credentials = credentials or {}
    native = _native_tools(client)
    api_key = credentials.get(FIRECRAWL_KEY)
    premium = _premium_tools(api_key, firecrawl_base_url, client) if api_key else {}

    tools: dict[str, AgentTool] = {}
    for name in selected:
        if name in tools:
            continue
        if name in native:
            tools[name] = native[name]
        elif name in premium:
            tools[name] = premium[name]
        elif name in NATIVE_FALLBACKS:
            logger.warning("No %s configured; %s runs the native %s tool", FIRECRAWL_KEY, name, NATIVE_FALLBACKS[name])
            tools[name] = replace(native[NATIVE_FALLBACKS[name]], name=name)
    return tools
