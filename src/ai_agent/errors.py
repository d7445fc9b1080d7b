"""Package specific exception hierarchy."""


class AgentError(Exception):
    """Base exception for ai_agent package."""


class ConfigurationError(AgentError):
    """Raised when an agent run cannot start because of its configuration."""


class MissingCredentialsError(ConfigurationError):
    """Raised when neither a provider key nor a gateway key is available."""

    def __init__(self, provider: str) -> None:
        name = provider[:1].upper() + provider[1:]
        super().__init__(
            f"No API key configured for {name}. Please add either a {name} API key "
            "or an AI Gateway key in Project Integrations."
        )
        self.provider = provider


class MissingGoalError(ConfigurationError):
    """Raised when the goal is empty after trimming."""

    def __init__(self) -> None:
        super().__init__("Goal is required for the agent")


class UnsupportedProviderError(AgentError):
    """Raised when a provider has no generation backend."""

    def __init__(self, provider: str) -> None:
        super().__init__(f"Provider '{provider}' is not available.")


class ProviderError(AgentError):
    """Represents provider-specific HTTP or API errors."""

    def __init__(self, provider: str, message: str, status_code: int | None = None) -> None:
        suffix = f" (status {status_code})" if status_code is not None else ""
        super().__init__(f"{provider}: {message}{suffix}")
        self.provider = provider
        self.status_code = status_code


class ToolArgumentsError(AgentError):
    """Raised when a model supplies arguments that fail a tool's input schema."""

    def __init__(self, tool: str, detail: str) -> None:
        super().__init__(f"Invalid arguments for tool '{tool}': {detail}")
        self.tool = tool


def describe_error(exc: BaseException) -> str:
    """Human-readable message for an exception, falling back to its type name."""
    return str(exc) or type(exc).__name__
