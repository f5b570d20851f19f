"""
Domain Layer - Static Workflow Definitions

This module defines the static structure of workflows: an ordered list of
steps, each either a language-model call (LLMStep) or a tool call (ToolStep).
Definitions are built once at startup and never mutated afterwards.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Type, Union

from pydantic import BaseModel

from ..exceptions import ConfigurationError

# Context key holding the caller's raw input. Step ids may not shadow it.
INPUT_KEY = "input"


@dataclass(frozen=True)
class LLMStep:
    """
    A single request/response call to the language model.

    Attributes:
        id: Unique identifier within the workflow. The step's value is stored
            under this key in the RunContext.
        prompt_template: User message, with {{path}} placeholders resolved
            against the RunContext.
        output_schema: Optional pydantic model. When present, the reply is
            parsed as JSON and validated against it.
        system_prompt: Optional system message, interpolated the same way.
        temperature: Overrides the provider default for this step.
        max_tokens: Overrides the provider default for this step.
    """
    id: str
    prompt_template: str
    output_schema: Optional[Type[BaseModel]] = None
    system_prompt: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None


@dataclass(frozen=True)
class ToolStep:
    """
    An invocation of a registered tool.

    Attributes:
        id: Unique identifier within the workflow.
        tool_name: Name of a tool in the engine's ToolRegistry.
        input_template: Maps each tool input field to a template string.
        condition: Optional "<template> <op> <literal>" expression. The step
            is skipped when it evaluates to False.
    """
    id: str
    tool_name: str
    input_template: Dict[str, str] = field(default_factory=dict)
    condition: Optional[str] = None


StepDefinition = Union[LLMStep, ToolStep]


@dataclass(frozen=True)
class WorkflowDefinition:
    """
    Ordered sequence of steps executed once per request.

    Attributes:
        name: Unique identifier used by run_workflow().
        steps: Steps in execution order.
        description: Human-readable summary.
        output_step: Step whose value is the run's designated output. Defaults
            to the last step.
    """
    name: str
    steps: Tuple[StepDefinition, ...]
    description: str = ""
    output_step: Optional[str] = None

    def __post_init__(self):
        # Accept any sequence but store an immutable tuple.
        object.__setattr__(self, "steps", tuple(self.steps))

        if not self.steps:
            raise ConfigurationError(f"Workflow '{self.name}' has no steps.")

        seen = set()
        for step in self.steps:
            if not isinstance(step, (LLMStep, ToolStep)):
                raise ConfigurationError(
                    f"Workflow '{self.name}' contains an unsupported step: {step!r}"
                )
            if step.id == INPUT_KEY:
                raise ConfigurationError(
                    f"Workflow '{self.name}': step id '{INPUT_KEY}' is reserved."
                )
            if step.id in seen:
                raise ConfigurationError(
                    f"Workflow '{self.name}': duplicate step id '{step.id}'."
                )
            seen.add(step.id)

        if self.output_step is not None and self.output_step not in seen:
            raise ConfigurationError(
                f"Workflow '{self.name}': output_step '{self.output_step}' is not a step."
            )

    @property
    def step_ids(self) -> Tuple[str, ...]:
        return tuple(step.id for step in self.steps)
