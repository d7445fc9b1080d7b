"""OpenAI-compatible chat completions provider (OpenAI, AI Gateway and compatible vendors)."""

from __future__ import annotations

import json
import logging
from typing import Any, cast

import httpx

from ai_agent.errors import ProviderError
from ai_agent.providers.base import BaseProvider, strip_vendor_prefix
from ai_agent.types import ChatRequest, ChatResponse, Message, ToolCall, ToolDef

_DEFAULT_BASE_URL = "https://api.openai.com"
_CHAT_PATH = "/v1/chat/completions"


class OpenAIProvider(BaseProvider):
    """Minimal async wrapper for an OpenAI-style Chat Completions API with tool calling."""

    name = "openai"
    _logger = logging.getLogger(__name__)

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str | None = None,
        chat_path: str = _CHAT_PATH,
        name: str | None = None,
        vendor_model_ids: bool = True,
        timeout_s: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url or _DEFAULT_BASE_URL,
            timeout=timeout_s,
            transport=transport,
        )
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self._chat_path = chat_path
        # gateways route on the full "vendor/model" id, vendors want the bare id
        self._vendor_model_ids = vendor_model_ids
        if name is not None:
            self.name = name

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def chat(self, req: ChatRequest) -> ChatResponse:
        """Call Chat Completions and normalize text and tool calls."""
        payload = self.build_payload(req)
        response = await self._client.post(self._chat_path, headers=self._headers, json=payload)
        data = self._json_or_error(response)

        choices = data.get("choices", [])
        choice = choices[0] if choices else {}
        message = choice.get("message", {})
        text = message.get("content") or ""
        tool_calls = [self._parse_tool_call(tc) for tc in message.get("tool_calls") or []]

        return ChatResponse(
            provider=self.name,
            model=req.model,
            text=text,
            tool_calls=tool_calls,
            finish_reason=choice.get("finish_reason"),
            raw=data,
        )

    def build_payload(self, req: ChatRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "model": strip_vendor_prefix(req.model) if self._vendor_model_ids else req.model,
            "messages": [self._serialize_message(m) for m in req.messages],
        }

        if req.reasoning:
            # reasoning models reject sampling parameters and the legacy token cap
            if req.max_tokens is not None:
                payload["max_completion_tokens"] = req.max_tokens
        else:
            for key in ("temperature", "top_p", "frequency_penalty", "presence_penalty", "max_tokens"):
                value = getattr(req, key)
                if value is not None:
                    payload[key] = value

        if req.stop:
            payload["stop"] = req.stop

        options = req.provider_options.get("openai", {})
        if "reasoningEffort" in options:
            payload["reasoning_effort"] = options["reasoningEffort"]
        if "responseFormat" in options:
            payload["response_format"] = options["responseFormat"]

        if req.tool_mode != "off" and req.tools:
            payload.update(self._serialize_tools(req.tools, req.tool_mode))

        return payload

    @staticmethod
    def _serialize_message(message: Message) -> dict[str, Any]:
        if message.role == "tool":
            return {"role": "tool", "tool_call_id": message.tool_call_id, "content": message.content}
        if message.role == "assistant" and message.tool_calls:
            return {
                "role": "assistant",
                "content": message.content or None,
                "tool_calls": [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {"name": tc.name, "arguments": json.dumps(tc.arguments)},
                    }
                    for tc in message.tool_calls
                ],
            }
        return {"role": message.role, "content": message.content}

    @staticmethod
    def _serialize_tools(tools: list[ToolDef], tool_mode: str) -> dict[str, Any]:
        tool_payload = [
            {
                "type": "function",
                "function": {
                    "name": t.name,
                    "description": t.description or "",
                    "parameters": t.json_schema,
                },
            }
            for t in tools
        ]

        payload: dict[str, Any] = {"tools": tool_payload}

        if tool_mode == "auto":
            payload["tool_choice"] = "auto"
        elif tool_mode == "required":
            payload["tool_choice"] = "required"

        return payload

    @classmethod
    def _parse_tool_call(cls, raw: dict[str, Any]) -> ToolCall:
        function = raw.get("function", {})
        arguments_text = function.get("arguments") or "{}"
        try:
            arguments = json.loads(arguments_text)
        except json.JSONDecodeError:
            cls._logger.debug("Tool call arguments are not JSON: %s", arguments_text)
            arguments = {}
        if not isinstance(arguments, dict):
            arguments = {}
        return ToolCall(id=raw.get("id", ""), name=function.get("name", ""), arguments=arguments)

    def _json_or_error(self, response: httpx.Response) -> dict[str, Any]:
        if response.status_code >= 400:
            raise ProviderError(
                self.name,
                response.text or response.reason_phrase,
                status_code=response.status_code,
            )
        return cast(dict[str, Any], response.json())
