import unittest

from ai_agent.config import (
    DEFAULT_SYSTEM_PROMPT,
    RunAgentInput,
    build_generation_options,
    parse_float,
    parse_int,
    resolve_api_key,
    resolve_request,
)
from ai_agent.descriptor import MODEL_FIELD_BY_PROVIDER, PLUGIN
from ai_agent.errors import MissingCredentialsError, MissingGoalError
from ai_agent.settings import AgentSettings


def make_input(**fields: str) -> RunAgentInput:
    return RunAgentInput.model_validate({"agentGoal": "Find the answer", **fields})


class ParsingTests(unittest.TestCase):
    def test_parse_int_reads_leading_digits(self) -> None:
        self.assertEqual(parse_int("12abc", 10), 12)
        self.assertEqual(parse_int(" -3", 10), -3)
        self.assertEqual(parse_int("abc", 10), 10)
        self.assertEqual(parse_int(None, 10), 10)

    def test_parse_float_reads_leading_number(self) -> None:
        self.assertEqual(parse_float("0.25x", 1.0), 0.25)
        self.assertEqual(parse_float(".5", 1.0), 0.5)
        self.assertEqual(parse_float("1e-1", 1.0), 0.1)
        self.assertEqual(parse_float("warm", 0.7), 0.7)


class ResolveRequestTests(unittest.TestCase):
    def test_max_steps_is_clamped(self) -> None:
        cases = {"0": 1, "-5": 1, "999": 50, "abc": 10, "25": 25}
        for raw, expected in cases.items():
            with self.subTest(raw=raw):
                self.assertEqual(resolve_request(make_input(agentMaxSteps=raw)).max_steps, expected)
        self.assertEqual(resolve_request(make_input()).max_steps, 10)

    def test_sampling_is_clamped_when_advanced(self) -> None:
        request = resolve_request(
            make_input(
                agentShowAdvanced="true",
                agentTemperature="5",
                agentTopP="-1",
                agentFrequencyPenalty="-9",
                agentPresencePenalty="3.5",
                agentMaxTokens="0",
            )
        )
        self.assertEqual(request.sampling.temperature, 2)
        self.assertEqual(request.sampling.top_p, 0)
        self.assertEqual(request.sampling.frequency_penalty, -2)
        self.assertEqual(request.sampling.presence_penalty, 2)
        self.assertEqual(request.sampling.max_output_tokens, 1)

    def test_unparsable_sampling_falls_back_to_defaults(self) -> None:
        request = resolve_request(
            make_input(agentShowAdvanced="true", agentTemperature="hot", agentTopP="", agentMaxTokens="lots")
        )
        self.assertEqual(request.sampling.temperature, 0.7)
        self.assertEqual(request.sampling.top_p, 1.0)
        self.assertEqual(request.sampling.max_output_tokens, 4096)

    def test_advanced_fields_ignored_unless_enabled(self) -> None:
        request = resolve_request(make_input(agentTemperature="1.5"))
        self.assertEqual(request.sampling.temperature, 0.7)

    def test_model_is_taken_from_the_selected_providers_field(self) -> None:
        request = resolve_request(
            make_input(
                agentProvider="anthropic",
                agentModelOpenai="openai/gpt-4o-mini",
                agentModelAnthropic="anthropic/claude-3-haiku",
            )
        )
        self.assertEqual(request.provider, "anthropic")
        self.assertEqual(request.model_id, "anthropic/claude-3-haiku")

    def test_model_falls_back_to_default(self) -> None:
        request = resolve_request(make_input(agentProvider="groq", agentModelOpenai="openai/o1"))
        self.assertEqual(request.model_id, "openai/gpt-4o")
        self.assertEqual(resolve_request(make_input()).provider, "openai")

    def test_goal_is_trimmed_and_required(self) -> None:
        self.assertEqual(resolve_request(make_input(agentGoal="  do it  ")).goal, "do it")
        with self.assertRaises(MissingGoalError):
            resolve_request(make_input(agentGoal="   "))

    def test_tool_selection_and_stop_sequences(self) -> None:
        request = resolve_request(
            make_input(agentTools="calculate, web_search,,calculate", agentStopSequences="END, ,STOP")
        )
        self.assertEqual(request.selected_tools, ["calculate", "web_search"])
        self.assertEqual(request.stop_sequences, ["END", "STOP"])
        default = resolve_request(make_input())
        self.assertEqual(default.selected_tools, ["web_search", "scrape_url", "calculate"])
        self.assertIsNone(default.stop_sequences)
        self.assertEqual(default.system_prompt, DEFAULT_SYSTEM_PROMPT)

    def test_numeric_host_values_are_accepted(self) -> None:
        data = RunAgentInput.model_validate({"agentGoal": "x", "agentMaxSteps": 3})
        self.assertEqual(resolve_request(data).max_steps, 3)


class GenerationOptionsTests(unittest.TestCase):
    def test_reasoning_model_drops_sampling_fields(self) -> None:
        request = resolve_request(
            make_input(agentModelOpenai="openai/o3-mini", agentReasoningEffort="high", agentShowAdvanced="true")
        )
        options = build_generation_options(request).model_dump(exclude_none=True)
        for key in ("temperature", "top_p", "frequency_penalty", "presence_penalty"):
            self.assertNotIn(key, options)
        self.assertEqual(options["provider_options"], {"openai": {"reasoningEffort": "high"}})
        self.assertEqual(options["max_output_tokens"], 4096)

    def test_standard_model_ignores_effort(self) -> None:
        options = build_generation_options(resolve_request(make_input(agentReasoningEffort="high")))
        self.assertEqual(options.temperature, 0.7)
        self.assertEqual(options.top_p, 1.0)
        self.assertIsNone(options.provider_options)

    def test_json_format_merges_onto_reasoning_options(self) -> None:
        request = resolve_request(make_input(agentModelOpenai="openai/o1", agentResponseFormat="json"))
        options = build_generation_options(request)
        self.assertEqual(
            options.provider_options,
            {"openai": {"reasoningEffort": "medium", "responseFormat": {"type": "json_object"}}},
        )


class CredentialTests(unittest.TestCase):
    def test_provider_key_wins_over_gateway(self) -> None:
        credential = resolve_api_key({"ANTHROPIC_API_KEY": "a", "AI_GATEWAY_API_KEY": "g"}, "anthropic")
        self.assertEqual((credential.api_key, credential.source), ("a", "provider"))

    def test_gateway_key_is_the_fallback(self) -> None:
        credential = resolve_api_key({"AI_GATEWAY_API_KEY": "g"}, "meta")
        self.assertEqual((credential.api_key, credential.source), ("g", "gateway"))

    def test_missing_keys_name_the_provider(self) -> None:
        with self.assertRaises(MissingCredentialsError) as ctx:
            resolve_api_key({}, "mistral")
        self.assertIn("Mistral", str(ctx.exception))


class SettingsTests(unittest.TestCase):
    def test_from_env_reads_overrides_and_ignores_bad_numbers(self) -> None:
        settings = AgentSettings.from_env(
            {"AI_GATEWAY_BASE_URL": "http://gateway.local", "AI_AGENT_TOOL_TIMEOUT": "soon"}
        )
        self.assertEqual(settings.gateway_base_url, "http://gateway.local")
        self.assertEqual(settings.tool_timeout_s, 20.0)


class DescriptorTests(unittest.TestCase):
    def test_model_fields_follow_provider_selection(self) -> None:
        action = PLUGIN.action("run-agent")
        field = action.field("agentModelAnthropic")

        self.assertEqual(MODEL_FIELD_BY_PROVIDER["groq"], "agentModelGroq")
        self.assertEqual(len(MODEL_FIELD_BY_PROVIDER), 6)
        self.assertEqual(field.show_when.equals, "anthropic")
        self.assertEqual(action.field("agentTools").default_value, "web_search,scrape_url,calculate")

    def test_model_for_reads_the_selected_provider_field(self) -> None:
        data = make_input(agentProvider="meta", agentModelMeta="meta/llama-4-scout")
        self.assertEqual(data.model_for("meta"), "meta/llama-4-scout")
        self.assertIsNone(data.model_for("unknown"))


if __name__ == "__main__":
    unittest.main()
