"""
Workflow Exceptions

Error taxonomy shared by the execution layer and its adapters. The engine
treats the three families differently:

- ConfigurationError: a bug in how workflows or tools are wired together.
  Always propagated to the caller.
- ProviderError: an external API call failed (timeout, auth, rate limit...).
  Recorded on the step, the run continues.
- ValidationError: bad template, bad condition or unparseable model output.
  Recorded on the step, the run continues.
"""

from typing import Optional


class WorkflowError(Exception):
    """Base class for every error raised by the execution layer."""
    pass


# --- Configuration (fatal) ---

class ConfigurationError(WorkflowError):
    """Workflows or tools are wired incorrectly."""
    pass


class WorkflowNotFoundError(ConfigurationError):
    """Raised when a workflow name is not registered."""

    def __init__(self, name: str):
        super().__init__(f"Workflow '{name}' not found.")
        self.name = name


class UnknownToolError(ConfigurationError):
    """Raised when a step references a tool that is not registered."""

    def __init__(self, tool_name: str, step_id: Optional[str] = None):
        where = f" (step '{step_id}')" if step_id else ""
        super().__init__(f"Tool '{tool_name}' is not registered{where}.")
        self.tool_name = tool_name
        self.step_id = step_id


# --- Provider (recorded per step) ---

class ProviderError(WorkflowError):
    """
    An external call failed.

    Attributes:
        kind: Short machine-readable category: "timeout", "auth", "rate_limit",
            "not_found", "network", "bad_response" or "api_error".
        provider: Name of the failing collaborator (e.g. "openai", "openweathermap").
    """

    def __init__(self, message: str, kind: str = "api_error", provider: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.provider = provider


# --- Validation (recorded per step) ---

class ValidationError(WorkflowError):
    """Malformed template, condition or structured output."""
    pass


class TemplateSyntaxError(ValidationError):
    pass


class ConditionSyntaxError(ValidationError):
    pass


class ConditionEvaluationError(ValidationError):
    """A numeric comparison was requested on a value that is not a number."""
    pass


class OutputParseError(ValidationError):
    """Model output could not be parsed into the declared schema."""
    pass
