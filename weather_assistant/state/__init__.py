"""
State Layer - Runtime Data Models

Defines the per-run state model: the RunContext threaded through the steps,
step results, warnings and the WorkflowRun snapshot returned to callers.
"""

from weather_assistant.state.models import (
    NOT_RUN,
    RunContext,
    RunState,
    RunWarning,
    StepResult,
    StepStatus,
    WorkflowRun,
)

__all__ = [
    "NOT_RUN",
    "RunContext",
    "RunState",
    "RunWarning",
    "StepResult",
    "StepStatus",
    "WorkflowRun",
]
