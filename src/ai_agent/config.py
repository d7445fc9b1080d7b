"""Resolution of the host's flat string record into a validated agent request."""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from ai_agent.descriptor import DEFAULT_MODEL_ID, DEFAULT_PROVIDER, DEFAULT_TOOLS, MODEL_FIELD_BY_PROVIDER
from ai_agent.errors import MissingCredentialsError, MissingGoalError
from ai_agent.types import ChatRequest, Message, ReasoningEffort, ResponseFormat, ToolDef

DEFAULT_SYSTEM_PROMPT = """You are an autonomous AI agent that accomplishes goals by using available tools.

Instructions:
- Break down complex goals into steps
- Use tools to gather information and take actions
- Be thorough but efficient - don't make unnecessary tool calls
- When you have enough information to answer, provide a clear final response
- If a tool fails, try an alternative approach"""

DEFAULT_MAX_STEPS = 10
MAX_STEPS_LIMIT = 50

GATEWAY_KEY = "AI_GATEWAY_API_KEY"
PROVIDER_KEYS: dict[str, str] = {
    "openai": "OPENAI_API_KEY",
    "anthropic": "ANTHROPIC_API_KEY",
    "google": "GOOGLE_GENERATIVE_AI_API_KEY",
    "mistral": "MISTRAL_API_KEY",
    "groq": "GROQ_API_KEY",
}

_REASONING_MARKERS = ("/o1", "/o3")
_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


class RunAgentInput(BaseModel):
    """Flat configuration record handed over by the workflow engine."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", coerce_numbers_to_str=True)

    provider: str | None = Field(default=None, alias="agentProvider")
    model_openai: str | None = Field(default=None, alias="agentModelOpenai")
    model_anthropic: str | None = Field(default=None, alias="agentModelAnthropic")
    model_google: str | None = Field(default=None, alias="agentModelGoogle")
    model_meta: str | None = Field(default=None, alias="agentModelMeta")
    model_mistral: str | None = Field(default=None, alias="agentModelMistral")
    model_groq: str | None = Field(default=None, alias="agentModelGroq")

    show_advanced: str | None = Field(default=None, alias="agentShowAdvanced")
    temperature: str | None = Field(default=None, alias="agentTemperature")
    max_tokens: str | None = Field(default=None, alias="agentMaxTokens")
    top_p: str | None = Field(default=None, alias="agentTopP")
    frequency_penalty: str | None = Field(default=None, alias="agentFrequencyPenalty")
    presence_penalty: str | None = Field(default=None, alias="agentPresencePenalty")
    reasoning_effort: str | None = Field(default=None, alias="agentReasoningEffort")
    stop_sequences: str | None = Field(default=None, alias="agentStopSequences")
    response_format: str | None = Field(default=None, alias="agentResponseFormat")

    goal: str | None = Field(default=None, alias="agentGoal")
    tools: str | None = Field(default=None, alias="agentTools")
    max_steps: str | None = Field(default=None, alias="agentMaxSteps")
    system_prompt: str | None = Field(default=None, alias="agentSystemPrompt")

    integration_id: str | None = Field(default=None, alias="integrationId")

    def model_for(self, provider: str) -> str | None:
        """Return the model id entered in the given provider's own field."""
        field_key = MODEL_FIELD_BY_PROVIDER.get(provider)
        if field_key is None:
            return None
        return self.model_dump(by_alias=True).get(field_key) or None


class SamplingParams(BaseModel):
    temperature: float = Field(default=0.7, ge=0, le=2)
    top_p: float = Field(default=1.0, ge=0, le=1)
    frequency_penalty: float = Field(default=0.0, ge=-2, le=2)
    presence_penalty: float = Field(default=0.0, ge=-2, le=2)
    max_output_tokens: int = Field(default=4096, ge=1)


class AgentRequest(BaseModel):
    """Fully resolved configuration of one agent run."""

    goal: str = Field(min_length=1)
    provider: str = DEFAULT_PROVIDER
    model_id: str = DEFAULT_MODEL_ID
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    max_steps: int = Field(default=DEFAULT_MAX_STEPS, ge=1, le=MAX_STEPS_LIMIT)
    selected_tools: list[str] = Field(default_factory=list)
    sampling: SamplingParams = Field(default_factory=SamplingParams)
    reasoning_effort: ReasoningEffort = "medium"
    response_format: ResponseFormat = "text"
    stop_sequences: list[str] | None = None

    @property
    def is_reasoning(self) -> bool:
        return is_reasoning_model(self.model_id)


class GenerationOptions(BaseModel):
    """Outbound request handed to the tool-calling loop."""

    model: str
    system: str
    prompt: str
    max_steps: int
    max_output_tokens: int
    temperature: float | None = None
    top_p: float | None = None
    frequency_penalty: float | None = None
    presence_penalty: float | None = None
    stop_sequences: list[str] | None = None
    reasoning: bool = False
    provider_options: dict[str, dict[str, Any]] | None = None

    def chat_request(self, messages: list[Message], tools: list[ToolDef]) -> ChatRequest:
        return ChatRequest(
            model=self.model,
            messages=messages,
            tools=tools,
            tool_mode="auto" if tools else "off",
            temperature=self.temperature,
            top_p=self.top_p,
            frequency_penalty=self.frequency_penalty,
            presence_penalty=self.presence_penalty,
            max_tokens=self.max_output_tokens,
            stop=self.stop_sequences,
            reasoning=self.reasoning,
            provider_options=self.provider_options or {},
        )


@dataclass(frozen=True)
class ResolvedCredential:
    """API key picked for a run and where it came from."""

    api_key: str
    source: Literal["provider", "gateway"]


def is_reasoning_model(model_id: str) -> bool:
    return any(marker in model_id for marker in _REASONING_MARKERS)


def parse_int(value: str | None, default: int) -> int:
    """Parse a leading integer the way form values are typed; fall back to default."""
    match = _INT_PREFIX.match(value or "")
    return int(match.group(1)) if match else default


def parse_float(value: str | None, default: float) -> float:
    match = _FLOAT_PREFIX.match(value or "")
    return float(match.group(1)) if match else default


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def parse_tool_selection(value: str | None) -> list[str]:
    """Split a comma separated tool list, keeping first occurrences in order."""
    names = [name.strip() for name in (value or DEFAULT_TOOLS).split(",")]
    return list(dict.fromkeys(name for name in names if name))


def resolve_api_key(credentials: Mapping[str, str], provider: str) -> ResolvedCredential:
    """Prefer the provider's own key, then the universal gateway key."""
    key_name = PROVIDER_KEYS.get(provider)
    if key_name and credentials.get(key_name):
        return ResolvedCredential(api_key=credentials[key_name], source="provider")
    if credentials.get(GATEWAY_KEY):
        return ResolvedCredential(api_key=credentials[GATEWAY_KEY], source="gateway")
    raise MissingCredentialsError(provider)


def resolve_provider(data: RunAgentInput) -> tuple[str, str]:
    """Return (provider, model id) for the run."""
    provider = data.provider or DEFAULT_PROVIDER
    return provider, data.model_for(provider) or DEFAULT_MODEL_ID


def resolve_sampling(data: RunAgentInput) -> SamplingParams:
    defaults = SamplingParams()
    if data.show_advanced != "true":
        return defaults
    return SamplingParams(
        temperature=clamp(parse_float(data.temperature, defaults.temperature), 0, 2),
        top_p=clamp(parse_float(data.top_p, defaults.top_p), 0, 1),
        frequency_penalty=clamp(parse_float(data.frequency_penalty, defaults.frequency_penalty), -2, 2),
        presence_penalty=clamp(parse_float(data.presence_penalty, defaults.presence_penalty), -2, 2),
        max_output_tokens=max(1, parse_int(data.max_tokens, defaults.max_output_tokens)),
    )


def resolve_request(data: RunAgentInput) -> AgentRequest:
    """Merge the record's overrides over defaults and clamp numeric fields."""
    goal = (data.goal or "").strip()
    if not goal:
        raise MissingGoalError()

    provider, model_id = resolve_provider(data)
    max_steps = int(clamp(parse_int(data.max_steps, DEFAULT_MAX_STEPS), 1, MAX_STEPS_LIMIT))

    effort = data.reasoning_effort if data.reasoning_effort in ("low", "medium", "high") else "medium"
    response_format = "json" if data.response_format == "json" else "text"
    stop_sequences = None
    if data.stop_sequences:
        stop_sequences = [s.strip() for s in data.stop_sequences.split(",") if s.strip()] or None

    return AgentRequest(
        goal=goal,
        provider=provider,
        model_id=model_id,
        system_prompt=data.system_prompt or DEFAULT_SYSTEM_PROMPT,
        max_steps=max_steps,
        selected_tools=parse_tool_selection(data.tools),
        sampling=resolve_sampling(data),
        reasoning_effort=effort,
        response_format=response_format,
        stop_sequences=stop_sequences,
    )


def build_generation_options(request: AgentRequest) -> GenerationOptions:
    """Shape the outbound request; reasoning models get effort instead of sampling."""
    provider_options: dict[str, dict[str, Any]] = {}
    if request.is_reasoning:
        provider_options["openai"] = {"reasoningEffort": request.reasoning_effort}
    if request.response_format == "json":
        provider_options["openai"] = {
            **provider_options.get("openai", {}),
            "responseFormat": {"type": "json_object"},
        }

    sampling: dict[str, float] = {}
    if not request.is_reasoning:
        sampling = {
            "temperature": request.sampling.temperature,
            "top_p": request.sampling.top_p,
            "frequency_penalty": request.sampling.frequency_penalty,
            "presence_penalty": request.sampling.presence_penalty,
        }

    return GenerationOptions(
        model=request.model_id,
        system=request.system_prompt,
        prompt=request.goal,
        max_steps=request.max_steps,
        max_output_tokens=request.sampling.max_output_tokens,
        stop_sequences=request.stop_sequences or None,
        reasoning=request.is_reasoning,
        provider_options=provider_options or None,
        **sampling,
    )
