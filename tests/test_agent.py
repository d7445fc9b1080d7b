import asyncio
import unittest

from ai_agent.agent import NO_FINAL_RESPONSE, check_connection, run_agent_step, step_handler
from ai_agent.config import ResolvedCredential, RunAgentInput
from ai_agent.errors import ProviderError
from ai_agent.providers.base import BaseProvider
from ai_agent.settings import AgentSettings
from ai_agent.types import ChatRequest, ChatResponse, StepFailure, StepSuccess, ToolCall

GATEWAY = {"AI_GATEWAY_API_KEY": "gw-key"}


class ScriptedProvider(BaseProvider):
    name = "scripted"

    def __init__(self, responses: list[ChatResponse | Exception]) -> None:
        self._responses = list(responses)
        self.requests: list[ChatRequest] = []
        self.closed = False

    async def chat(self, req: ChatRequest) -> ChatResponse:
        self.requests.append(req)
        item = self._responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    async def aclose(self) -> None:
        self.closed = True


class RecordingFactory:
    def __init__(self, provider: ScriptedProvider) -> None:
        self.provider = provider
        self.calls: list[tuple[str, ResolvedCredential]] = []

    def __call__(self, provider: str, credential: ResolvedCredential, settings: AgentSettings) -> BaseProvider:
        self.calls.append((provider, credential))
        return self.provider


def reply(text: str = "", *calls: ToolCall) -> ChatResponse:
    return ChatResponse(provider="scripted", model="m", text=text, tool_calls=list(calls), raw={})


def calc(call_id: str, expression: str) -> ToolCall:
    return ToolCall(id=call_id, name="calculate", arguments={"expression": expression})


def handle(fields: dict, credentials: dict, provider: ScriptedProvider):
    factory = RecordingFactory(provider)
    data = RunAgentInput.model_validate(fields)
    return asyncio.run(step_handler(data, credentials, provider_factory=factory)), factory


class StepHandlerTests(unittest.TestCase):
    def test_successful_run_shapes_the_transcript(self) -> None:
        provider = ScriptedProvider(
            [
                reply("Let me compute.", calc("a", "2+2"), calc("b", "100*0.15")),
                reply("4 and 15."),
            ]
        )
        outcome, factory = handle({"agentGoal": "Do maths", "agentTools": "calculate"}, GATEWAY, provider)

        self.assertIsInstance(outcome, StepSuccess)
        dumped = outcome.model_dump(by_alias=True)
        self.assertTrue(dumped["success"])
        self.assertEqual(dumped["data"]["result"], "4 and 15.")
        self.assertEqual(
            dumped["data"]["steps"],
            [
                {"type": "tool_call", "toolName": "calculate", "input": {"expression": "2+2"}},
                {"type": "tool_result", "toolName": "calculate", "output": "4"},
                {"type": "tool_call", "toolName": "calculate", "input": {"expression": "100*0.15"}},
                {"type": "tool_result", "toolName": "calculate", "output": "15"},
                {"type": "text", "text": "Let me compute."},
                {"type": "text", "text": "4 and 15."},
            ],
        )
        self.assertEqual(dumped["data"]["toolCalls"], 2)
        self.assertTrue(provider.closed)
        self.assertEqual(factory.calls, [("openai", ResolvedCredential(api_key="gw-key", source="gateway"))])

    def test_step_cap_without_final_text_uses_placeholder(self) -> None:
        provider = ScriptedProvider([reply("", calc("a", "1+1"))])
        outcome, _ = handle({"agentGoal": "loop", "agentTools": "calculate", "agentMaxSteps": "1"}, GATEWAY, provider)

        self.assertIsInstance(outcome, StepSuccess)
        self.assertEqual(outcome.data.result, NO_FINAL_RESPONSE)
        self.assertEqual(outcome.data.tool_calls, 1)

    def test_missing_credentials_fail_before_generation(self) -> None:
        provider = ScriptedProvider([])
        outcome, factory = handle({"agentGoal": "x", "agentProvider": "anthropic"}, {}, provider)

        self.assertIsInstance(outcome, StepFailure)
        self.assertIn("Anthropic", outcome.error.message)
        self.assertEqual(factory.calls, [])

    def test_empty_goal_fails(self) -> None:
        outcome, _ = handle({"agentGoal": "   "}, GATEWAY, ScriptedProvider([]))
        self.assertEqual(outcome.error.message, "Goal is required for the agent")

    def test_generation_error_discards_partial_transcript(self) -> None:
        provider = ScriptedProvider([reply("", calc("a", "1+1")), ProviderError("gateway", "model not found", 404)])
        outcome, _ = handle({"agentGoal": "x", "agentTools": "calculate"}, GATEWAY, provider)

        self.assertIsInstance(outcome, StepFailure)
        self.assertEqual(outcome.error.message, "Agent execution failed: gateway: model not found (status 404)")
        self.assertNotIn("data", outcome.model_dump())
        self.assertTrue(provider.closed)

    def test_reasoning_model_request_omits_sampling(self) -> None:
        provider = ScriptedProvider([reply("ok")])
        handle({"agentGoal": "x", "agentModelOpenai": "openai/o1", "agentReasoningEffort": "low"}, GATEWAY, provider)

        request = provider.requests[0]
        self.assertTrue(request.reasoning)
        self.assertIsNone(request.temperature)
        self.assertIsNone(request.top_p)
        self.assertEqual(request.provider_options, {"openai": {"reasoningEffort": "low"}})


class RunAgentStepTests(unittest.TestCase):
    def test_credentials_are_fetched_by_integration_id(self) -> None:
        requested: list[str] = []

        async def fetch(integration_id: str) -> dict:
            requested.append(integration_id)
            return GATEWAY

        provider = ScriptedProvider([reply("hello")])
        result = asyncio.run(
            run_agent_step(
                {"agentGoal": "greet", "integrationId": "int_1", "nodeId": "n1"},
                fetch_credentials=fetch,
                provider_factory=RecordingFactory(provider),
            )
        )
        self.assertEqual(requested, ["int_1"])
        self.assertEqual(result, {"success": True, "data": {"result": "hello", "steps": [{"type": "text", "text": "hello"}], "toolCalls": 0}})

    def test_no_integration_means_no_credentials(self) -> None:
        result = asyncio.run(run_agent_step({"agentGoal": "greet"}))
        self.assertFalse(result["success"])
        self.assertIn("Openai", result["error"]["message"])

    def test_credential_lookup_failure_is_reported(self) -> None:
        async def fetch(integration_id: str) -> dict:
            raise LookupError("integration revoked")

        result = asyncio.run(run_agent_step({"agentGoal": "x", "integrationId": "i"}, fetch_credentials=fetch))
        self.assertEqual(result, {"success": False, "error": {"message": "Failed to load credentials: integration revoked"}})

    def test_step_is_never_retried(self) -> None:
        self.assertEqual(run_agent_step.max_retries, 0)


class CheckConnectionTests(unittest.TestCase):
    def test_requires_gateway_key(self) -> None:
        result = asyncio.run(check_connection({}))
        self.assertEqual(result, {"success": False, "error": "AI_GATEWAY_API_KEY is required"})

    def test_runs_one_generation_through_the_gateway(self) -> None:
        provider = ScriptedProvider([reply("agent ready")])
        factory = RecordingFactory(provider)
        result = asyncio.run(check_connection(GATEWAY, provider_factory=factory))

        self.assertEqual(result, {"success": True})
        self.assertEqual(factory.calls[0][1].source, "gateway")
        self.assertEqual(provider.requests[0].model, "openai/gpt-4o-mini")
        self.assertTrue(provider.closed)

    def test_reports_generation_errors(self) -> None:
        provider = ScriptedProvider([ProviderError("gateway", "invalid key", 401)])
        result = asyncio.run(check_connection(GATEWAY, provider_factory=RecordingFactory(provider)))
        self.assertEqual(result, {"success": False, "error": "gateway: invalid key (status 401)"})


if __name__ == "__main__":
    unittest.main()
