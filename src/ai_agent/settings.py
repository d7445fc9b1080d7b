"""Process-level settings for the agent step."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping

from pydantic import BaseModel

logger = logging.getLogger(__name__)

_DEFAULT_GATEWAY_BASE_URL = "https://ai-gateway.vercel.sh"
_DEFAULT_FIRECRAWL_BASE_URL = "https://api.firecrawl.dev"


class AgentSettings(BaseModel):
    """Endpoints and timeouts shared by providers, tools and the model catalog.

    Settings are passed explicitly; `from_env` is the only place that reads the
    environment.
    """

    gateway_base_url: str = _DEFAULT_GATEWAY_BASE_URL
    firecrawl_base_url: str = _DEFAULT_FIRECRAWL_BASE_URL
    request_timeout_s: float = 60.0
    tool_timeout_s: float = 20.0

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> AgentSettings:
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            gateway_base_url=env.get("AI_GATEWAY_BASE_URL") or defaults.gateway_base_url,
            firecrawl_base_url=env.get("FIRECRAWL_BASE_URL") or defaults.firecrawl_base_url,
            request_timeout_s=_env_float(env, "AI_AGENT_REQUEST_TIMEOUT", defaults.request_timeout_s),
            tool_timeout_s=_env_float(env, "AI_AGENT_TOOL_TIMEOUT", defaults.tool_timeout_s),
        )


def _env_float(env: Mapping[str, str], key: str, default: float) -> float:
    raw = env.get(key)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        logger.warning("Ignoring non-numeric %s=%r", key, raw)
        return default
    return value if value > 0 else default
