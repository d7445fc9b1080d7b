"""Provider definitions for ai_agent."""

from __future__ import annotations

import httpx

from ai_agent.config import ResolvedCredential
from ai_agent.errors import UnsupportedProviderError
from ai_agent.settings import AgentSettings

from .anthropic import AnthropicProvider
from .base import BaseProvider
from .openai import OpenAIProvider

__all__ = [
    "BaseProvider",
    "OpenAIProvider",
    "AnthropicProvider",
    "create_provider",
]

# vendors reachable with their own key through an OpenAI-compatible endpoint
_COMPATIBLE_ENDPOINTS: dict[str, tuple[str, str]] = {
    "openai": ("https://api.openai.com", "/v1/chat/completions"),
    "google": ("https://generativelanguage.googleapis.com", "/v1beta/openai/chat/completions"),
    "mistral": ("https://api.mistral.ai", "/v1/chat/completions"),
    "groq": ("https://api.groq.com", "/openai/v1/chat/completions"),
}


def create_provider(
    provider: str,
    credential: ResolvedCredential,
    settings: AgentSettings | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> BaseProvider:
    """Build the generation backend matching where the credential came from."""
    settings = settings or AgentSettings()
    timeout_s = settings.request_timeout_s

    if credential.source == "gateway":
        return OpenAIProvider(
            api_key=credential.api_key,
            base_url=settings.gateway_base_url,
            name="gateway",
            vendor_model_ids=False,
            timeout_s=timeout_s,
            transport=transport,
        )

    if provider == "anthropic":
        return AnthropicProvider(api_key=credential.api_key, timeout_s=timeout_s, transport=transport)

    try:
        base_url, chat_path = _COMPATIBLE_ENDPOINTS[provider]
    except KeyError as exc:
        raise UnsupportedProviderError(provider) from exc
    return OpenAIProvider(
        api_key=credential.api_key,
        base_url=base_url,
        chat_path=chat_path,
        name=provider,
        timeout_s=timeout_s,
        transport=transport,
    )
