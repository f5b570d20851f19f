"""
State Layer - Runtime Data Models

This module defines the runtime state of a single workflow run: the mutable
RunContext the engine threads through the steps, the StepResult each executor
produces, and the immutable WorkflowRun snapshot returned to callers.

A RunContext is created fresh for every run and is never shared between runs.
"""

import logging
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from ..domain.models import INPUT_KEY
from ..llm.interface import TokenUsage

logger = logging.getLogger(__name__)


class _NotRun:
    """Marker stored in the context slot of a step that was skipped or failed."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_RUN"


NOT_RUN = _NotRun()


class StepStatus(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


class RunState(str, Enum):
    """
    Lifecycle of a run: PENDING -> RUNNING -> COMPLETED, or RUNNING -> FAILED.
    FAILED is reserved for errors the engine cannot classify; ordinary step
    failures still end in COMPLETED.
    """
    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class RunWarning(BaseModel):
    step_id: Optional[str] = None
    kind: str
    message: str


class StepResult(BaseModel):
    """
    Outcome of one step.

    Only SUCCESS results expose their value to later steps. FAILURE carries a
    human-readable message and the error category; SKIPPED means the step's
    condition was false.
    """
    step_id: str
    status: StepStatus
    value: Any = None
    message: Optional[str] = None
    error_type: Optional[str] = None
    structured: Optional[bool] = None
    token_usage: Optional[TokenUsage] = None

    @classmethod
    def success(cls, step_id: str, value: Any, **extra) -> "StepResult":
        return cls(step_id=step_id, status=StepStatus.SUCCESS, value=value, **extra)

    @classmethod
    def failure(cls, step_id: str, message: str, error_type: str = "error") -> "StepResult":
        return cls(
            step_id=step_id,
            status=StepStatus.FAILURE,
            message=message,
            error_type=error_type,
        )

    @classmethod
    def skipped(cls, step_id: str, message: str = "Condition evaluated to false.") -> "StepResult":
        return cls(step_id=step_id, status=StepStatus.SKIPPED, message=message)

    @property
    def ok(self) -> bool:
        return self.status == StepStatus.SUCCESS


class WorkflowRun(BaseModel):
    """
    Snapshot of a finished (or aborted) run, as returned to the caller.
    """
    workflow: str
    input: str
    state: RunState
    current_step: Optional[int] = None
    step_ids: List[str] = Field(default_factory=list)
    steps: Dict[str, StepResult] = Field(default_factory=dict)
    warnings: List[RunWarning] = Field(default_factory=list)
    output_step: Optional[str] = None
    error: Optional[str] = None

    @property
    def context(self) -> Dict[str, Any]:
        """The run context with NOT_RUN slots rendered as None."""
        values: Dict[str, Any] = {INPUT_KEY: self.input}
        for step_id, result in self.steps.items():
            values[step_id] = result.value if result.ok else None
        return values

    def value_of(self, step_id: str) -> Any:
        result = self.steps.get(step_id)
        if result is None or not result.ok:
            return None
        return result.value

    @property
    def last_value(self) -> Any:
        if not self.step_ids:
            return None
        return self.value_of(self.step_ids[-1])

    @property
    def output(self) -> Any:
        if self.output_step:
            return self.value_of(self.output_step)
        return self.last_value


class RunContext:
    """
    Mutable, per-run record of step outputs.

    `values` is what templates resolve against: the caller's input plus one
    entry per executed step. A step that failed or was skipped holds NOT_RUN,
    so later placeholders pointing at it resolve to the missing-value policy
    instead of raising.
    """

    def __init__(self, workflow_name: str, user_input: str, step_ids: Optional[List[str]] = None):
        self.workflow_name = workflow_name
        self.user_input = user_input
        self.step_ids = list(step_ids or [])
        self.values: Dict[str, Any] = {INPUT_KEY: user_input}
        self.results: Dict[str, StepResult] = {}
        self.warnings: List[RunWarning] = []
        self.state = RunState.PENDING
        self.current_step: Optional[int] = None
        self.error: Optional[str] = None

    def __getitem__(self, key: str) -> Any:
        return self.values[key]

    def __contains__(self, key: str) -> bool:
        return key in self.values

    @property
    def current_step_id(self) -> Optional[str]:
        if self.current_step is None or self.current_step >= len(self.step_ids):
            return None
        return self.step_ids[self.current_step]

    def transition(self, state: RunState, step_index: Optional[int] = None):
        logger.debug(
            f"Run '{self.workflow_name}': {self.state.value} -> {state.value}"
            + (f" (step {step_index})" if step_index is not None else "")
        )
        self.state = state
        if step_index is not None:
            self.current_step = step_index

    def record(self, result: StepResult):
        self.results[result.step_id] = result
        self.values[result.step_id] = result.value if result.ok else NOT_RUN

    def warn(self, kind: str, message: str, step_id: Optional[str] = None):
        step_id = step_id or self.current_step_id
        logger.info(f"Run '{self.workflow_name}' warning [{kind}] at {step_id}: {message}")
        self.warnings.append(RunWarning(step_id=step_id, kind=kind, message=message))

    def snapshot(self, output_step: Optional[str] = None) -> WorkflowRun:
        return WorkflowRun(
            workflow=self.workflow_name,
            input=self.user_input,
            state=self.state,
            current_step=self.current_step,
            step_ids=list(self.step_ids),
            steps=dict(self.results),
            warnings=list(self.warnings),
            output_step=output_step,
            error=self.error,
        )
