"""
Execution Layer - Workflow Orchestration and Step Execution

Defines the WorkflowEngine (sequential state machine), the LLM and tool step
executors, and the template/condition micro-parsers they rely on.
"""

from weather_assistant.execution.conditions import evaluate_condition, parse_condition
from weather_assistant.execution.engine import WorkflowEngine
from weather_assistant.execution.executor import (
    LLMStepExecutor,
    StepExecutor,
    ToolStepExecutor,
)
from weather_assistant.execution.interpolation import (
    interpolate,
    interpolate_value,
    parse_template,
)


__all__ = [
    "LLMStepExecutor",
    "StepExecutor",
    "ToolStepExecutor",
    "WorkflowEngine",
    "evaluate_condition",
    "interpolate",
    "interpolate_value",
    "parse_condition",
    "parse_template",
]
