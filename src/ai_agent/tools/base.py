"""Tool descriptor and helpers shared by the tool implementations."""

from __future__ import annotations

from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from ai_agent.errors import ToolArgumentsError
from ai_agent.types import ToolDef

DEFAULT_TIMEOUT_S = 20.0
MAX_CONTENT_CHARS = 5000

BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    ),
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}


@dataclass(frozen=True)
class AgentTool:
    """A named, schema-validated function the model may call."""

    name: str
    description: str
    input_model: type[BaseModel]
    execute: Callable[..., Awaitable[str]]

    def definition(self) -> ToolDef:
        schema = self.input_model.model_json_schema()
        schema.pop("title", None)
        return ToolDef(name=self.name, description=self.description, json_schema=schema)

    def parse_arguments(self, arguments: dict[str, Any]) -> dict[str, Any]:
        try:
            parsed = self.input_model.model_validate(arguments)
        except ValidationError as exc:
            detail = "; ".join(
                f"{'.'.join(str(p) for p in err['loc']) or 'input'}: {err['msg']}" for err in exc.errors()
            )
            raise ToolArgumentsError(self.name, detail) from exc
        return parsed.model_dump(mode="json", exclude_none=True)

    async def run(self, arguments: dict[str, Any]) -> str:
        return await self.execute(**self.parse_arguments(arguments))


@asynccontextmanager
async def http_client(
    client: httpx.AsyncClient | None = None, timeout_s: float = DEFAULT_TIMEOUT_S
) -> AsyncIterator[httpx.AsyncClient]:
    """Yield the shared client when given, otherwise a short-lived one."""
    if client is not None:
        yield client
        return
    async with httpx.AsyncClient(timeout=timeout_s, follow_redirects=True) as owned:
        yield owned


def truncate(text: str, limit: int = MAX_CONTENT_CHARS, marker: str = "") -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + marker


def json_object(response: httpx.Response) -> dict[str, Any]:
    """Decode a JSON body that must be an object; anything else is a ValueError."""
    data = response.json()
    if not isinstance(data, dict):
        raise ValueError(f"expected a JSON object, got {type(data).__name__}")
    return data


def json_objects(value: Any) -> list[dict[str, Any]]:
    """Keep the object entries of a JSON array; non-arrays yield nothing."""
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


def json_text(value: Any) -> str:
    return value if isinstance(value, str) else ""
