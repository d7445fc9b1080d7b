"""Provider-agnostic request/response models and agent output records."""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

ToolMode = Literal["off", "auto", "required"]
ReasoningEffort = Literal["low", "medium", "high"]
ResponseFormat = Literal["text", "json"]


class ToolDef(BaseModel):
    """Simple JSON-schema tool definition."""

    name: str
    description: str | None = None
    json_schema: dict[str, Any] = Field(default_factory=dict)


class ToolCall(BaseModel):
    """A tool invocation requested by the model."""

    id: str
    name: str
    arguments: dict[str, Any] = Field(default_factory=dict)


class ToolResult(BaseModel):
    """Text output of one executed tool call."""

    call_id: str
    tool_name: str
    output: str


class Message(BaseModel):
    """Single chat message."""

    role: Literal["system", "user", "assistant", "tool"]
    content: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    tool_call_id: str | None = None


class ChatRequest(BaseModel):
    """Normalized single-turn request shared by all providers."""

    model: str
    messages: list[Message]
    tools: list[ToolDef] = Field(default_factory=list)
    tool_mode: ToolMode = "off"
    temperature: float | None = None
    top_p: float | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    max_tokens: int | None = None
    stop: list[str] | None = None
    reasoning: bool = False
    # opaque per-vendor options, e.g. {"openai": {"reasoningEffort": "high"}}
    provider_options: dict[str, dict[str, Any]] = Field(default_factory=dict)


class ChatResponse(BaseModel):
    """Simplified chat response for one model turn."""

    provider: str
    model: str
    text: str
    tool_calls: list[ToolCall] = Field(default_factory=list)
    finish_reason: str | None = None
    # provider-specific payload kept for debugging or advanced use
    raw: dict[str, Any]


class _StepBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ToolCallStep(_StepBase):
    type: Literal["tool_call"] = "tool_call"
    tool_name: str = Field(alias="toolName")
    input: dict[str, Any] = Field(default_factory=dict)


class ToolResultStep(_StepBase):
    type: Literal["tool_result"] = "tool_result"
    tool_name: str = Field(alias="toolName")
    output: str


class TextStep(_StepBase):
    type: Literal["text"] = "text"
    text: str


AgentStep = Annotated[Union[ToolCallStep, ToolResultStep, TextStep], Field(discriminator="type")]


class AgentResult(BaseModel):
    """Final answer, transcript and tool-call count of one agent run."""

    model_config = ConfigDict(populate_by_name=True)

    result: str
    steps: list[AgentStep] = Field(default_factory=list)
    tool_calls: int = Field(default=0, alias="toolCalls")

    @classmethod
    def from_steps(cls, result: str, steps: list[AgentStep]) -> AgentResult:
        count = sum(1 for step in steps if step.type == "tool_call")
        return cls(result=result, steps=steps, tool_calls=count)

    @model_validator(mode="after")
    def _check_tool_call_count(self) -> AgentResult:
        count = sum(1 for step in self.steps if step.type == "tool_call")
        if self.tool_calls != count:
            raise ValueError(f"toolCalls is {self.tool_calls} but steps hold {count} tool calls")
        return self


class ErrorInfo(BaseModel):
    message: str


class StepSuccess(BaseModel):
    success: Literal[True] = True
    data: AgentResult


class StepFailure(BaseModel):
    success: Literal[False] = False
    error: ErrorInfo

    @classmethod
    def from_message(cls, message: str) -> StepFailure:
        return cls(error=ErrorInfo(message=message))


StepOutcome = Union[StepSuccess, StepFailure]


class ModelInfo(BaseModel):
    """Catalog entry describing one selectable model."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    provider: str
    context_window: int | None = Field(default=None, alias="contextWindow")
    max_output: int | None = Field(default=None, alias="maxOutput")
    supports_tools: bool | None = Field(default=None, alias="supportsTools")
    supports_vision: bool | None = Field(default=None, alias="supportsVision")
    is_reasoning: bool | None = Field(default=None, alias="isReasoning")


class ModelsResponse(BaseModel):
    """Model-catalog lookup result."""

    models: list[ModelInfo]
    provider: str
    cached: bool
    error: str | None = None
