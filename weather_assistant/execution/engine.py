"""
Engine - Workflow Orchestration Layer

The WorkflowEngine runs a workflow's steps strictly in declaration order and
threads each step's output into the RunContext so that later templates and
conditions can see it.
-----------------------------------------------

Per-run state machine:

    PENDING -> RUNNING(step index) -> COMPLETED
                      |
                      +-----------> FAILED

The engine only advances once the current executor has settled. Executors
report ordinary problems (API failures, timeouts, bad model output, skipped
conditions) as StepResults, which are recorded and do not stop the run.
Two kinds of exception escape an executor:

1. ConfigurationError: a wiring bug. The run is marked FAILED and the error
   is re-raised to the caller.
2. Anything else: an error the engine cannot classify. The run is marked
   FAILED and the partial WorkflowRun is returned with `error` set.

Executors are compiled once at construction; an unknown tool name fails
there, not in the middle of a request.
"""

import logging
from typing import Any, Dict, List, Mapping, Tuple

from ..domain.models import INPUT_KEY, LLMStep, StepDefinition, ToolStep, WorkflowDefinition
from ..exceptions import ConfigurationError, ValidationError
from ..llm.interface import LLMProvider
from ..repositories.workflow import WorkflowRepository
from ..state.models import RunContext, RunState, StepResult, StepStatus, WorkflowRun
from ..tools.registry import ToolRegistry
from .executor import DEFAULT_CALL_TIMEOUT, LLMStepExecutor, StepExecutor, ToolStepExecutor

logger = logging.getLogger(__name__)


class WorkflowEngine:
    def __init__(
        self,
        repository: WorkflowRepository,
        llm_provider: LLMProvider,
        tools: ToolRegistry,
        call_timeout: float = DEFAULT_CALL_TIMEOUT,
    ):
        self.repository = repository
        self.llm_provider = llm_provider
        self.tools = tools
        self.call_timeout = call_timeout

        self._compiled: Dict[str, Tuple[WorkflowDefinition, List[StepExecutor]]] = {}
        for workflow in repository.list_workflows():
            self._compiled[workflow.name] = (workflow, self._build_executors(workflow))

    # ==========================================================================
    # Public API
    # ==========================================================================

    def list_workflows(self) -> List[str]:
        return list(self._compiled)

    def get_workflow(self, name: str) -> WorkflowDefinition:
        """Raises WorkflowNotFoundError for unknown names."""
        return self.repository.get_workflow(name)

    async def run_workflow(self, name: str, payload: Mapping[str, Any]) -> WorkflowRun:
        """
        Entry point for callers: `run_workflow("weather_query", {"input": "..."})`.

        Raises:
            WorkflowNotFoundError: unknown workflow name.
            ValidationError: payload has no string 'input'.
            ConfigurationError: wiring bug discovered during the run.
        """
        workflow = self.get_workflow(name)
        user_input = payload.get(INPUT_KEY) if isinstance(payload, Mapping) else None
        if not isinstance(user_input, str):
            raise ValidationError(f"Workflow payload requires a string '{INPUT_KEY}' field.")
        return await self.run(workflow, user_input)

    async def run(self, workflow: WorkflowDefinition, user_input: str) -> WorkflowRun:
        executors = self._executors_for(workflow)
        context = RunContext(workflow.name, user_input, list(workflow.step_ids))
        logger.info(f"Running workflow '{workflow.name}' ({len(executors)} steps)")

        for index, executor in enumerate(executors):
            # 1. Advance the pointer
            context.transition(RunState.RUNNING, index)

            # 2. Execute Step (Worker)
            try:
                result = await executor.execute(context)
            except ConfigurationError:
                context.transition(RunState.FAILED)
                logger.error(f"Workflow '{workflow.name}' misconfigured at step '{executor.step.id}'")
                raise
            except Exception as e:
                logger.exception(f"Workflow '{workflow.name}' aborted at step '{executor.step.id}'")
                context.error = f"{type(e).__name__}: {e}"
                context.transition(RunState.FAILED)
                return context.snapshot(workflow.output_step)

            # 3. Record the result for downstream templates
            context.record(result)
            self._log_result(workflow, result)

        context.transition(RunState.COMPLETED)
        logger.info(
            f"Workflow '{workflow.name}' completed with {len(context.warnings)} warning(s)"
        )
        return context.snapshot(workflow.output_step)

    # ==========================================================================
    # Compilation
    # ==========================================================================

    def _executors_for(self, workflow: WorkflowDefinition) -> List[StepExecutor]:
        compiled = self._compiled.get(workflow.name)
        if compiled is not None and compiled[0] is workflow:
            return compiled[1]
        # Ad-hoc definition not served by the repository.
        return self._build_executors(workflow)

    def _build_executors(self, workflow: WorkflowDefinition) -> List[StepExecutor]:
        return [self._build_executor(step) for step in workflow.steps]

    def _build_executor(self, step: StepDefinition) -> StepExecutor:
        match step:
            case LLMStep():
                return LLMStepExecutor(step, self.llm_provider, self.call_timeout)
            case ToolStep():
                tool = self.tools.get(step.tool_name, step_id=step.id)
                return ToolStepExecutor(step, tool, self.call_timeout)
            case _:
                raise ConfigurationError(f"Unsupported step type: {type(step).__name__}")

    # ==========================================================================
    # Standard Helpers
    # ==========================================================================

    def _log_result(self, workflow: WorkflowDefinition, result: StepResult):
        if result.status == StepStatus.FAILURE:
            logger.warning(
                f"Workflow '{workflow.name}' step '{result.step_id}' failed "
                f"({result.error_type}): {result.message}"
            )
        else:
            logger.debug(f"Workflow '{workflow.name}' step '{result.step_id}': {result.status.value}")
