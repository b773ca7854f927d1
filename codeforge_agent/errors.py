"""Structured error types for the agent system."""


class AgentError(Exception):
    """Base error for all agent operations."""
    pass


class ValidationError(AgentError):
    """Input rejected before any network call is made."""
    pass


class EmptyPromptError(ValidationError):
    def __init__(self):
        super().__init__("Please enter a prompt")


class MissingCredentialError(ValidationError):
    """Raised when no API key (stored or shared) is available."""

    def __init__(self, provider: str = "groq"):
        self.provider = provider
        super().__init__(f"API key not set. Please set your {provider.capitalize()} API key first.")


class MissingModelError(ValidationError):
    def __init__(self):
        super().__init__("No model selected")


class AgentBusyError(AgentError):
    """Raised when a message is submitted while another run is in flight."""

    def __init__(self):
        super().__init__("Agent is busy with another request")


class CompletionError(AgentError):
    """Remote completion endpoint failed (status, transport or body)."""

    def __init__(self, message: str, rate_limited: bool = False):
        self.message = message
        self.rate_limited = rate_limited
        super().__init__(message)


class ToolError(AgentError):
    """Error raised during tool execution."""

    def __init__(self, tool_name: str, message: str):
        self.tool_name = tool_name
        self.message = message
        super().__init__(f"{tool_name} error: {message}")
