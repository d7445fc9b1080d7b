"""Anthropic provider implementation."""

from __future__ import annotations

from typing import Any, cast

import httpx

from ai_agent.errors import ProviderError
from ai_agent.providers.base import BaseProvider, strip_vendor_prefix
from ai_agent.types import ChatRequest, ChatResponse, Message, ToolCall, ToolDef

_DEFAULT_BASE_URL = "https://api.anthropic.com"
_MESSAGES_PATH = "/v1/messages"
_API_VERSION = "2023-06-01"
_DEFAULT_MAX_TOKENS = 4096

# gateway-style ids use dots where Anthropic's own ids use dashes
_MODEL_ALIASES = {
    "claude-opus-4.5": "claude-opus-4-5",
    "claude-sonnet-4.0": "claude-sonnet-4-0",
    "claude-3.7-sonnet": "claude-3-7-sonnet-latest",
    "claude-3.5-sonnet-20241022": "claude-3-5-sonnet-20241022",
    "claude-3-haiku": "claude-3-haiku-20240307",
}


class AnthropicProvider(BaseProvider):
    """Minimal async wrapper for the Anthropic Messages API with tool use."""

    name = "anthropic"

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str | None = None,
        timeout_s: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=base_url or _DEFAULT_BASE_URL,
            timeout=timeout_s,
            transport=transport,
        )
        self._headers = {
            "x-api-key": api_key,
            "anthropic-version": _API_VERSION,
            "content-type": "application/json",
        }

    async def aclose(self) -> None:
        await self._client.aclose()

    async def chat(self, req: ChatRequest) -> ChatResponse:
        payload = self.build_payload(req)
        response = await self._client.post(_MESSAGES_PATH, headers=self._headers, json=payload)
        data = self._json_or_error(response)
        text, tool_calls = self._extract_content(data)
        return ChatResponse(
            provider=self.name,
            model=req.model,
            text=text,
            tool_calls=tool_calls,
            finish_reason=data.get("stop_reason"),
            raw=data,
        )

    def build_payload(self, req: ChatRequest) -> dict[str, Any]:
        system_text, msgs = self._split_system(req.messages)
        model = strip_vendor_prefix(req.model)

        payload: dict[str, Any] = {
            "model": _MODEL_ALIASES.get(model, model),
            "max_tokens": req.max_tokens or _DEFAULT_MAX_TOKENS,
            "messages": self._serialize_messages(msgs),
        }

        if system_text:
            payload["system"] = system_text
        if not req.reasoning:
            # no frequency/presence penalties on this API
            if req.temperature is not None:
                payload["temperature"] = req.temperature
            if req.top_p is not None:
                payload["top_p"] = req.top_p
        if req.stop:
            payload["stop_sequences"] = req.stop

        if req.tool_mode != "off" and req.tools:
            payload.update(self._serialize_tools(req.tools, req.tool_mode))

        return payload

    @staticmethod
    def _split_system(messages: list[Message]) -> tuple[str, list[Message]]:
        system_parts: list[str] = []
        rest: list[Message] = []
        for m in messages:
            if m.role == "system":
                system_parts.append(m.content)
            else:
                rest.append(m)
        return ("\n".join(system_parts), rest)

    @staticmethod
    def _serialize_messages(messages: list[Message]) -> list[dict[str, Any]]:
        """Map the transcript onto user/assistant turns; tool results ride in user turns."""
        out: list[dict[str, Any]] = []
        for m in messages:
            if m.role == "tool":
                block = {"type": "tool_result", "tool_use_id": m.tool_call_id, "content": m.content}
                # results of one assistant turn share a single user turn
                if out and out[-1]["role"] == "user" and out[-1]["content"][-1]["type"] == "tool_result":
                    out[-1]["content"].append(block)
                else:
                    out.append({"role": "user", "content": [block]})
                continue

            content: list[dict[str, Any]] = []
            if m.content:
                content.append({"type": "text", "text": m.content})
            for tc in m.tool_calls:
                content.append({"type": "tool_use", "id": tc.id, "name": tc.name, "input": tc.arguments})
            out.append({"role": m.role, "content": content})
        return out

    @staticmethod
    def _serialize_tools(tools: list[ToolDef], tool_mode: str) -> dict[str, Any]:
        payload_tools = [
            {
                "name": t.name,
                "description": t.description or "",
                "input_schema": t.json_schema,
            }
            for t in tools
        ]
        payload: dict[str, Any] = {"tools": payload_tools}

        if tool_mode == "auto":
            payload["tool_choice"] = {"type": "auto"}
        elif tool_mode == "required":
            payload["tool_choice"] = {"type": "any"}

        return payload

    @staticmethod
    def _json_or_error(response: httpx.Response) -> dict[str, Any]:
        if response.status_code >= 400:
            raise ProviderError(
                "anthropic",
                response.text or response.reason_phrase,
                status_code=response.status_code,
            )
        return cast(dict[str, Any], response.json())

    @staticmethod
    def _extract_content(data: dict[str, Any]) -> tuple[str, list[ToolCall]]:
        parts: list[str] = []
        calls: list[ToolCall] = []
        for b in data.get("content") or []:
            if b.get("type") == "text":
                parts.append(b.get("text", ""))
            elif b.get("type") == "tool_use":
                calls.append(ToolCall(id=b.get("id", ""), name=b.get("name", ""), arguments=b.get("input") or {}))
        return "".join(parts), calls
