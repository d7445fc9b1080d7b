"""Model catalog: per-provider model lists with a 24 hour in-memory cache."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

from ai_agent.errors import ProviderError, describe_error
from ai_agent.types import ModelInfo, ModelsResponse

logger = logging.getLogger(__name__)

CACHE_TTL_SECONDS = 24 * 60 * 60
_OPENAI_MODELS_URL = "https://api.openai.com/v1/models"


def _models(provider: str, *entries: tuple[str, str, dict[str, bool]]) -> list[ModelInfo]:
    return [ModelInfo(id=f"{provider}/{slug}", name=name, provider=provider, **flags) for slug, name, flags in entries]


_TOOLS = {"supports_tools": True}
_TOOLS_VISION = {"supports_tools": True, "supports_vision": True}
_REASONING = {"is_reasoning": True}

FALLBACK_MODELS: dict[str, list[ModelInfo]] = {
    "openai": _models(
        "openai",
        ("gpt-4o", "GPT-4o", _TOOLS_VISION),
        ("gpt-4o-mini", "GPT-4o Mini", _TOOLS),
        ("gpt-4-turbo", "GPT-4 Turbo", _TOOLS_VISION),
        ("gpt-3.5-turbo", "GPT-3.5 Turbo", _TOOLS),
        ("o1", "o1", _REASONING),
        ("o1-mini", "o1 Mini", _REASONING),
        ("o3-mini", "o3 Mini", _REASONING),
    ),
    "anthropic": _models(
        "anthropic",
        ("claude-opus-4.5", "Claude Opus 4.5", _TOOLS_VISION),
        ("claude-sonnet-4.0", "Claude Sonnet 4.0", _TOOLS_VISION),
        ("claude-3.7-sonnet", "Claude 3.7 Sonnet", _TOOLS_VISION),
        ("claude-3.5-sonnet-20241022", "Claude 3.5 Sonnet", _TOOLS_VISION),
        ("claude-3-haiku", "Claude 3 Haiku", _TOOLS),
    ),
    "google": _models(
        "google",
        ("gemini-2.5-pro", "Gemini 2.5 Pro", _TOOLS_VISION),
        ("gemini-2.5-flash", "Gemini 2.5 Flash", _TOOLS_VISION),
        ("gemini-2.0-flash", "Gemini 2.0 Flash", _TOOLS_VISION),
        ("gemini-2.0-flash-lite", "Gemini 2.0 Flash Lite", _TOOLS),
    ),
    "meta": _models(
        "meta",
        ("llama-4-maverick", "Llama 4 Maverick", _TOOLS),
        ("llama-4-scout", "Llama 4 Scout", _TOOLS),
        ("llama-3.3-70b", "Llama 3.3 70B", _TOOLS),
        ("llama-3.1-8b", "Llama 3.1 8B", {}),
    ),
    "mistral": _models(
        "mistral",
        ("mistral-large", "Mistral Large", _TOOLS),
        ("mistral-medium", "Mistral Medium", _TOOLS),
        ("mistral-small", "Mistral Small", _TOOLS),
        ("codestral", "Codestral", {}),
    ),
    "groq": _models(
        "groq",
        ("llama-3.3-70b", "Llama 3.3 70B", _TOOLS),
        ("llama-3.1-8b", "Llama 3.1 8B", {}),
        ("mixtral-8x7b", "Mixtral 8x7B", {}),
        ("gemma2-9b", "Gemma 2 9B", {}),
    ),
}


@dataclass(frozen=True)
class CacheEntry:
    models: tuple[ModelInfo, ...]
    fetched_at: float


class ModelCache:
    """Provider-keyed TTL map; expired entries are dropped when next read."""

    def __init__(self, ttl_seconds: float = CACHE_TTL_SECONDS, clock: Callable[[], float] = time.time) -> None:
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    def get(self, provider: str) -> list[ModelInfo] | None:
        with self._lock:
            entry = self._entries.get(provider)
            if entry is None:
                return None
            if self._clock() - entry.fetched_at >= self._ttl:
                del self._entries[provider]
                return None
            return list(entry.models)

    def set(self, provider: str, models: list[ModelInfo]) -> None:
        with self._lock:
            self._entries[provider] = CacheEntry(models=tuple(models), fetched_at=self._clock())

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, provider: str) -> bool:
        with self._lock:
            return provider in self._entries


def _openai_model(raw: dict[str, Any]) -> ModelInfo:
    model_id: str = raw["id"]
    reasoning = model_id.startswith(("o1", "o3"))
    return ModelInfo(
        id=f"openai/{model_id}",
        name=model_id.replace("gpt-", "GPT-").replace("-turbo", " Turbo"),
        provider="openai",
        supports_tools=not reasoning,
        is_reasoning=reasoning,
    )


async def fetch_openai_models(api_key: str, client: httpx.AsyncClient | None = None) -> list[ModelInfo]:
    """List OpenAI chat models, falling back to the static list when none match."""
    headers = {"Authorization": f"Bearer {api_key}"}
    if client is None:
        async with httpx.AsyncClient(timeout=30.0) as owned:
            response = await owned.get(_OPENAI_MODELS_URL, headers=headers)
    else:
        response = await client.get(_OPENAI_MODELS_URL, headers=headers)

    if response.status_code >= 400:
        raise ProviderError("openai", "models API error", status_code=response.status_code)

    body = response.json()
    entries = body.get("data") if isinstance(body, dict) else None
    if not isinstance(entries, list) or not all(
        isinstance(raw, dict) and isinstance(raw.get("id"), str) for raw in entries
    ):
        raise ProviderError("openai", "unexpected models response")

    chat_models = [_openai_model(raw) for raw in entries if raw["id"].startswith(("gpt-", "o1", "o3"))]
    return chat_models or list(FALLBACK_MODELS["openai"])


class ModelCatalog:
    """Cache-or-fetch lookup of the models a provider offers."""

    def __init__(self, cache: ModelCache | None = None, client: httpx.AsyncClient | None = None) -> None:
        self._cache = cache or ModelCache()
        self._client = client

    async def get(self, provider: str = "openai", api_key: str | None = None) -> ModelsResponse:
        cached = self._cache.get(provider)
        if cached is not None:
            return ModelsResponse(models=cached, provider=provider, cached=True)

        try:
            models = await self._fetch(provider, api_key)
        except (httpx.HTTPError, ProviderError, ValueError, KeyError) as exc:
            logger.warning("Model list fetch for %s failed: %s", provider, exc)
            return ModelsResponse(
                models=list(FALLBACK_MODELS.get(provider, [])),
                provider=provider,
                cached=False,
                error=describe_error(exc),
            )

        self._cache.set(provider, models)
        return ModelsResponse(models=models, provider=provider, cached=False)

    async def _fetch(self, provider: str, api_key: str | None) -> list[ModelInfo]:
        # only OpenAI exposes a public models endpoint
        if provider == "openai" and api_key:
            return await fetch_openai_models(api_key, self._client)
        return list(FALLBACK_MODELS.get(provider, []))


default_catalog = ModelCatalog()
