"""
Domain Layer - Static Workflow Definitions

Defines the declarative structure of workflows: LLM steps, tool steps
and the ordered WorkflowDefinition that groups them.
"""

from weather_assistant.domain.models import (
    INPUT_KEY,
    LLMStep,
    StepDefinition,
    ToolStep,
    WorkflowDefinition,
)

__all__ = [
    "INPUT_KEY",
    "LLMStep",
    "StepDefinition",
    "ToolStep",
    "WorkflowDefinition",
]
