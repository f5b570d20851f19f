"""
Weather Assistant

A natural-language weather assistant built on a small declarative workflow
engine: LLM steps and tool steps run in order, with placeholder templates
and conditions threading each step's output into the next.
"""

__version__ = "1.0.0"

from weather_assistant.domain import (
    LLMStep,
    StepDefinition,
    ToolStep,
    WorkflowDefinition,
)
from weather_assistant.exceptions import (
    ConfigurationError,
    ProviderError,
    ValidationError,
    WorkflowError,
)
from weather_assistant.state import (
    NOT_RUN,
    RunState,
    StepResult,
    StepStatus,
    WorkflowRun,
)
from weather_assistant.execution import WorkflowEngine

__all__ = [
    # Domain Layer
    "LLMStep",
    "StepDefinition",
    "ToolStep",
    "WorkflowDefinition",
    # Errors
    "ConfigurationError",
    "ProviderError",
    "ValidationError",
    "WorkflowError",
    # State Layer
    "NOT_RUN",
    "RunState",
    "StepResult",
    "StepStatus",
    "WorkflowRun",
    # Execution Layer
    "WorkflowEngine",
]
