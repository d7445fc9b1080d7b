"""Bounded, model-driven tool-calling loop."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping

from pydantic import BaseModel, Field

from ai_agent.config import GenerationOptions
from ai_agent.errors import ToolArgumentsError
from ai_agent.providers.base import BaseProvider
from ai_agent.tools.base import AgentTool
from ai_agent.types import Message, ToolCall, ToolResult

logger = logging.getLogger(__name__)


class StepRecord(BaseModel):
    """One model turn: its text plus index-aligned tool calls and results."""

    number: int
    text: str = ""
    tool_calls: list[ToolCall] = Field(default_factory=list)
    tool_results: list[ToolResult] = Field(default_factory=list)
    finish_reason: str | None = None


class GenerationResult(BaseModel):
    text: str
    steps: list[StepRecord] = Field(default_factory=list)


StepCallback = Callable[[StepRecord], None]


async def execute_tool_call(tools: Mapping[str, AgentTool], call: ToolCall) -> str:
    """Run one requested tool; failures become the tool's output text."""
    tool = tools.get(call.name)
    if tool is None:
        return f"Tool '{call.name}' is not available"
    try:
        return await tool.run(call.arguments)
    except ToolArgumentsError as exc:
        return str(exc)
    except Exception as exc:  # noqa: BLE001 - a broken tool must not end the run
        logger.warning("Tool %s raised: %s", call.name, exc, exc_info=True)
        return f"Tool '{call.name}' failed: {exc}"


async def generate_text(
    provider: BaseProvider,
    options: GenerationOptions,
    tools: Mapping[str, AgentTool],
    on_step_finish: StepCallback | None = None,
) -> GenerationResult:
    """Drive at most ``options.max_steps`` model turns.

    Each turn the model either answers in text, which ends the loop, or
    requests tools; requested tools run one after another in request order
    and their outputs are fed back for the next turn. Provider errors
    propagate to the caller.
    """
    definitions = [tool.definition() for tool in tools.values()]
    messages = [
        Message(role="system", content=options.system),
        Message(role="user", content=options.prompt),
    ]
    steps: list[StepRecord] = []
    text = ""

    for number in range(1, options.max_steps + 1):
        response = await provider.chat(options.chat_request(messages, definitions))
        results = [
            ToolResult(call_id=call.id, tool_name=call.name, output=await execute_tool_call(tools, call))
            for call in response.tool_calls
        ]
        step = StepRecord(
            number=number,
            text=response.text,
            tool_calls=response.tool_calls,
            tool_results=results,
            finish_reason=response.finish_reason,
        )
        steps.append(step)
        if on_step_finish is not None:
            on_step_finish(step)

        text = response.text
        logger.debug("Step %d: %d tool call(s), %d chars of text", number, len(results), len(text))
        if not response.tool_calls:
            break

        messages.append(Message(role="assistant", content=response.text, tool_calls=response.tool_calls))
        messages.extend(
            Message(role="tool", content=result.output, tool_call_id=result.call_id) for result in results
        )
    else:
        logger.info("Stopped after reaching the %d step limit", options.max_steps)

    return GenerationResult(text=text, steps=steps)
