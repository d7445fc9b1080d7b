"""Workflow step entry point: run an agent for a goal and shape its transcript."""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

import httpx
from pydantic import ValidationError

from ai_agent.config import (
    GATEWAY_KEY,
    ResolvedCredential,
    RunAgentInput,
    build_generation_options,
    resolve_api_key,
    resolve_provider,
    resolve_request,
)
from ai_agent.descriptor import INTEGRATION_TYPE
from ai_agent.errors import ConfigurationError, describe_error
from ai_agent.generation import StepRecord, generate_text
from ai_agent.providers import BaseProvider, create_provider
from ai_agent.settings import AgentSettings
from ai_agent.tools import build_tools
from ai_agent.tools.base import http_client
from ai_agent.types import (
    AgentResult,
    AgentStep,
    ChatRequest,
    Message,
    StepFailure,
    StepOutcome,
    StepSuccess,
    TextStep,
    ToolCallStep,
    ToolResultStep,
)

logger = logging.getLogger(__name__)

NO_FINAL_RESPONSE = "Agent completed without a final response"
CONNECTION_CHECK_MODEL = "openai/gpt-4o-mini"

ProviderFactory = Callable[[str, ResolvedCredential, AgentSettings], BaseProvider]
CredentialFetcher = Callable[[str], Awaitable[Mapping[str, str]]]


def transcript_entries(step: StepRecord) -> list[AgentStep]:
    """Flatten one turn: each tool call followed by its result, then the turn's text."""
    entries: list[AgentStep] = []
    for call, result in zip(step.tool_calls, step.tool_results):
        entries.append(ToolCallStep(tool_name=call.name, input=call.arguments))
        entries.append(ToolResultStep(tool_name=call.name, output=result.output))
    if step.text:
        entries.append(TextStep(text=step.text))
    return entries


async def step_handler(
    data: RunAgentInput,
    credentials: Mapping[str, str],
    *,
    settings: AgentSettings | None = None,
    provider_factory: ProviderFactory = create_provider,
    client: httpx.AsyncClient | None = None,
) -> StepOutcome:
    """Resolve configuration, run the tool-calling loop and build the output record."""
    settings = settings or AgentSettings()
    provider_name, _ = resolve_provider(data)
    try:
        credential = resolve_api_key(credentials, provider_name)
        request = resolve_request(data)
    except ConfigurationError as exc:
        return StepFailure.from_message(str(exc))

    transcript: list[AgentStep] = []

    def record(step: StepRecord) -> None:
        transcript.extend(transcript_entries(step))

    try:
        async with http_client(client, settings.tool_timeout_s) as tool_client:
            tools = build_tools(
                request.selected_tools,
                credentials,
                client=tool_client,
                firecrawl_base_url=settings.firecrawl_base_url,
            )
            provider = provider_factory(provider_name, credential, settings)
            try:
                result = await generate_text(provider, build_generation_options(request), tools, record)
            finally:
                await provider.aclose()
    except Exception as exc:  # noqa: BLE001 - every generation failure is reported, not raised
        logger.warning("Agent run with %s failed: %s", request.model_id, exc, exc_info=True)
        return StepFailure.from_message(f"Agent execution failed: {describe_error(exc)}")

    return StepSuccess(data=AgentResult.from_steps(result.text or NO_FINAL_RESPONSE, transcript))


async def _with_step_logging(
    data: RunAgentInput, handler: Callable[[], Awaitable[StepOutcome]]
) -> StepOutcome:
    started = time.perf_counter()
    logger.info("Starting %s step (provider=%s)", INTEGRATION_TYPE, data.provider or "default")
    outcome = await handler()
    elapsed = time.perf_counter() - started
    if isinstance(outcome, StepSuccess):
        logger.info("%s step succeeded in %.2fs with %d tool call(s)", INTEGRATION_TYPE, elapsed, outcome.data.tool_calls)
    else:
        logger.warning("%s step failed in %.2fs: %s", INTEGRATION_TYPE, elapsed, outcome.error.message)
    return outcome


async def run_agent_step(
    step_input: Mapping[str, Any],
    *,
    fetch_credentials: CredentialFetcher | None = None,
    settings: AgentSettings | None = None,
    provider_factory: ProviderFactory = create_provider,
) -> dict[str, Any]:
    """Host entry point; always returns a tagged success/failure record."""
    try:
        data = RunAgentInput.model_validate(dict(step_input))
    except ValidationError as exc:
        failure = StepFailure.from_message(f"Invalid step input: {exc.error_count()} invalid field(s)")
        return failure.model_dump(by_alias=True)

    async def handle() -> StepOutcome:
        credentials: Mapping[str, str] = {}
        if data.integration_id and fetch_credentials is not None:
            try:
                credentials = await fetch_credentials(data.integration_id)
            except Exception as exc:  # noqa: BLE001 - lookup failures are reported to the host
                return StepFailure.from_message(f"Failed to load credentials: {describe_error(exc)}")
        return await step_handler(data, credentials, settings=settings, provider_factory=provider_factory)

    outcome = await _with_step_logging(data, handle)
    return outcome.model_dump(by_alias=True)


# a failed run is reported, never retried by the host
run_agent_step.max_retries = 0  # type: ignore[attr-defined]


async def check_connection(
    credentials: Mapping[str, str],
    *,
    settings: AgentSettings | None = None,
    provider_factory: ProviderFactory = create_provider,
) -> dict[str, Any]:
    """Verify a gateway key with one small generation."""
    api_key = credentials.get(GATEWAY_KEY)
    if not api_key:
        return {"success": False, "error": f"{GATEWAY_KEY} is required"}

    provider = provider_factory(
        "openai", ResolvedCredential(api_key=api_key, source="gateway"), settings or AgentSettings()
    )
    try:
        await provider.chat(
            ChatRequest(
                model=CONNECTION_CHECK_MODEL,
                messages=[Message(role="user", content="Say 'agent ready' if you can read this.")],
            )
        )
    except Exception as exc:  # noqa: BLE001
        return {"success": False, "error": describe_error(exc)}
    finally:
        await provider.aclose()
    return {"success": True}
