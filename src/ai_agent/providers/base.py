"""Provider-agnostic base interface for single-turn generation."""

from __future__ import annotations

from abc import ABC, abstractmethod

from ai_agent.types import ChatRequest, ChatResponse


class BaseProvider(ABC):
    """Abstract base class for provider implementations."""

    name: str

    @abstractmethod
    async def chat(self, req: ChatRequest) -> ChatResponse:
        """Run one model turn and return its text and requested tool calls."""
        raise NotImplementedError

    async def aclose(self) -> None:
        """Release network resources held by the provider."""


def strip_vendor_prefix(model: str) -> str:
    """Turn a gateway model id such as ``openai/gpt-4o`` into the vendor's own id."""
    return model.split("/", 1)[1] if "/" in model else model
