"""Static plugin metadata consumed by the host's form renderer."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

INTEGRATION_TYPE = "ai-agent"
DEFAULT_PROVIDER = "openai"
DEFAULT_MODEL_ID = "openai/gpt-4o"
DEFAULT_TOOLS = "web_search,scrape_url,calculate"


class SelectOption(BaseModel):
    value: str
    label: str


class ShowWhen(BaseModel):
    field: str
    equals: str


class ConfigField(BaseModel):
    """One input in the action's configuration form."""

    model_config = ConfigDict(populate_by_name=True)

    key: str
    label: str
    type: str
    default_value: str | None = Field(default=None, alias="defaultValue")
    placeholder: str | None = None
    options: list[SelectOption] = Field(default_factory=list)
    show_when: ShowWhen | None = Field(default=None, alias="showWhen")
    rows: int | None = None
    required: bool = False


class OutputField(BaseModel):
    field: str
    description: str


class CredentialField(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    label: str
    type: str
    env_var: str = Field(alias="envVar")
    placeholder: str | None = None


class ActionDescriptor(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    slug: str
    label: str
    description: str
    step_function: str = Field(alias="stepFunction")
    output_fields: list[OutputField] = Field(default_factory=list, alias="outputFields")
    config_fields: list[ConfigField] = Field(default_factory=list, alias="configFields")

    def field(self, key: str) -> ConfigField | None:
        return next((f for f in self.config_fields if f.key == key), None)


class PluginDescriptor(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str
    label: str
    description: str
    form_fields: list[CredentialField] = Field(default_factory=list, alias="formFields")
    actions: list[ActionDescriptor] = Field(default_factory=list)

    def action(self, slug: str) -> ActionDescriptor:
        for action in self.actions:
            if action.slug == slug:
                return action
        raise KeyError(slug)


def _options(*pairs: tuple[str, str]) -> list[SelectOption]:
    return [SelectOption(value=value, label=label) for value, label in pairs]


def _model_field(provider: str, default: str, options: list[SelectOption]) -> ConfigField:
    return ConfigField(
        key=f"agentModel{provider.capitalize()}",
        label="Model",
        type="select",
        default_value=default,
        show_when=ShowWhen(field="agentProvider", equals=provider),
        options=options,
    )


PROVIDER_OPTIONS = _options(
    ("openai", "OpenAI"),
    ("anthropic", "Anthropic"),
    ("google", "Google"),
    ("meta", "Meta (Llama)"),
    ("mistral", "Mistral"),
    ("groq", "Groq"),
)

_MODEL_FIELDS = [
    _model_field(
        "openai",
        "openai/gpt-4o",
        _options(
            ("openai/gpt-4o", "GPT-4o (Recommended)"),
            ("openai/gpt-4o-mini", "GPT-4o Mini (Fast)"),
            ("openai/gpt-4-turbo", "GPT-4 Turbo"),
            ("openai/gpt-3.5-turbo", "GPT-3.5 Turbo (Cheapest)"),
            ("openai/o1", "o1 (Reasoning)"),
            ("openai/o1-mini", "o1 Mini"),
            ("openai/o3-mini", "o3 Mini (Latest)"),
        ),
    ),
    _model_field(
        "anthropic",
        "anthropic/claude-sonnet-4.0",
        _options(
            ("anthropic/claude-opus-4.5", "Claude Opus 4.5 (Best)"),
            ("anthropic/claude-sonnet-4.0", "Claude Sonnet 4.0"),
            ("anthropic/claude-3.7-sonnet", "Claude 3.7 Sonnet"),
            ("anthropic/claude-3.5-sonnet-20241022", "Claude 3.5 Sonnet"),
            ("anthropic/claude-3-haiku", "Claude 3 Haiku (Fast)"),
        ),
    ),
    _model_field(
        "google",
        "google/gemini-2.0-flash",
        _options(
            ("google/gemini-2.5-pro", "Gemini 2.5 Pro (Best)"),
            ("google/gemini-2.5-flash", "Gemini 2.5 Flash"),
            ("google/gemini-2.0-flash", "Gemini 2.0 Flash"),
            ("google/gemini-2.0-flash-lite", "Gemini 2.0 Flash Lite"),
        ),
    ),
    _model_field(
        "meta",
        "meta/llama-4-scout",
        _options(
            ("meta/llama-4-maverick", "Llama 4 Maverick (Best)"),
            ("meta/llama-4-scout", "Llama 4 Scout"),
            ("meta/llama-3.3-70b", "Llama 3.3 70B"),
            ("meta/llama-3.1-8b", "Llama 3.1 8B (Fast)"),
        ),
    ),
    _model_field(
        "mistral",
        "mistral/mistral-large",
        _options(
            ("mistral/mistral-large", "Mistral Large"),
            ("mistral/mistral-medium", "Mistral Medium"),
            ("mistral/mistral-small", "Mistral Small"),
            ("mistral/codestral", "Codestral (Code)"),
        ),
    ),
    _model_field(
        "groq",
        "groq/llama-3.3-70b",
        _options(
            ("groq/llama-3.3-70b", "Llama 3.3 70B (Fast)"),
            ("groq/llama-3.1-8b", "Llama 3.1 8B (Fastest)"),
            ("groq/mixtral-8x7b", "Mixtral 8x7B"),
            ("groq/gemma2-9b", "Gemma 2 9B"),
        ),
    ),
]

# provider -> host field holding that provider's model id
MODEL_FIELD_BY_PROVIDER: dict[str, str] = {
    f.show_when.equals: f.key for f in _MODEL_FIELDS if f.show_when is not None
}

PLUGIN = PluginDescriptor(
    type=INTEGRATION_TYPE,
    label="AI Agent",
    description="Autonomous AI agent that can use tools to accomplish goals",
    form_fields=[
        CredentialField(
            id="aiGatewayApiKey",
            label="API Key",
            type="password",
            env_var="AI_GATEWAY_API_KEY",
            placeholder="Your AI Gateway API key",
        )
    ],
    actions=[
        ActionDescriptor(
            slug="run-agent",
            label="Run Agent",
            description="Run an autonomous AI agent that uses tools to accomplish a goal",
            step_function="run_agent_step",
            output_fields=[
                OutputField(field="result", description="The final result from the agent"),
                OutputField(field="steps", description="Array of steps the agent took"),
                OutputField(field="toolCalls", description="Number of tool calls made"),
            ],
            config_fields=[
                ConfigField(
                    key="agentProvider",
                    label="Provider",
                    type="select",
                    default_value=DEFAULT_PROVIDER,
                    options=PROVIDER_OPTIONS,
                ),
                *_MODEL_FIELDS,
                ConfigField(
                    key="agentGoal",
                    label="Goal / Objective",
                    type="template-textarea",
                    placeholder="Describe what you want the agent to accomplish. "
                    "Use {{NodeName.field}} for dynamic values.",
                    rows=4,
                    required=True,
                ),
                ConfigField(
                    key="agentTools",
                    label="Available Tools",
                    type="select",
                    default_value=DEFAULT_TOOLS,
                    options=_options(
                        (DEFAULT_TOOLS, "Search + Scrape + Calculate (Default)"),
                        ("web_search,scrape_url,http_request,calculate", "All Tools"),
                        ("firecrawl_search,firecrawl_scrape,calculate", "Firecrawl Search + Scrape"),
                        ("web_search", "Web Search Only"),
                        ("web_search,scrape_url", "Search + Scrape"),
                        ("http_request", "HTTP Request Only"),
                    ),
                ),
                ConfigField(
                    key="agentMaxSteps",
                    label="Max Steps (1-50)",
                    type="template-input",
                    default_value="10",
                    placeholder="10",
                ),
                ConfigField(
                    key="agentSystemPrompt",
                    label="System Prompt (Optional)",
                    type="template-textarea",
                    placeholder="Custom instructions for the agent behavior...",
                    rows=3,
                ),
            ],
        )
    ],
)
