"""
Executor - Step Execution Layer

One executor per step definition. Executors are stateless: everything a run
needs lives in the RunContext passed to execute(), so a single executor can
serve concurrent runs.

Both variants share the contract `execute(context) -> StepResult` and turn
ProviderError and ValidationError into FAILURE results. Anything else
(e.g. a ConfigurationError or a programming error) propagates to the engine.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from typing import Any, List, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..domain.models import LLMStep, StepDefinition, ToolStep
from ..exceptions import OutputParseError, ProviderError, ValidationError
from ..llm.interface import LLMProvider
from ..state.models import RunContext, StepResult
from ..tools.registry import Tool
from .conditions import evaluate_condition
from .interpolation import interpolate, interpolate_value
from .timeouts import call_with_timeout

logger = logging.getLogger(__name__)

DEFAULT_CALL_TIMEOUT = 30.0

_CODE_FENCE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL | re.IGNORECASE)


class StepExecutor(ABC):
    def __init__(self, step: StepDefinition, call_timeout: float = DEFAULT_CALL_TIMEOUT):
        self.step = step
        self.call_timeout = call_timeout

    @abstractmethod
    async def execute(self, context: RunContext) -> StepResult:
        pass


class LLMStepExecutor(StepExecutor):
    def __init__(
        self,
        step: LLMStep,
        llm_provider: LLMProvider,
        call_timeout: float = DEFAULT_CALL_TIMEOUT,
    ):
        super().__init__(step, call_timeout)
        self.llm = llm_provider

    async def execute(self, context: RunContext) -> StepResult:
        step = self.step

        try:
            messages = self._build_messages(context)
            completion = await call_with_timeout(
                self.llm.complete(
                    messages,
                    temperature=step.temperature,
                    max_tokens=step.max_tokens,
                ),
                self.call_timeout,
                f"LLM call for step '{step.id}'",
            )
        except ProviderError as e:
            logger.warning(f"Step '{step.id}' failed ({e.kind}): {e.message}")
            return StepResult.failure(step.id, e.message, error_type=e.kind)
        except ValidationError as e:
            logger.warning(f"Step '{step.id}' has an invalid template: {e}")
            return StepResult.failure(step.id, str(e), error_type="validation")

        if step.output_schema is None:
            return StepResult.success(step.id, completion.text, token_usage=completion.token_usage)

        try:
            parsed = parse_structured_output(completion.text, step.output_schema)
        except OutputParseError as e:
            # Free-form replies are still a usable result.
            context.warn("unstructured_output", str(e), step_id=step.id)
            return StepResult.success(
                step.id,
                completion.text,
                structured=False,
                token_usage=completion.token_usage,
            )

        return StepResult.success(
            step.id,
            parsed.model_dump(mode="json"),
            structured=True,
            token_usage=completion.token_usage,
        )

    def _build_messages(self, context: RunContext) -> List[dict]:
        messages = []
        if self.step.system_prompt:
            messages.append({"role": "system", "content": interpolate(self.step.system_prompt, context)})
        messages.append({"role": "user", "content": interpolate(self.step.prompt_template, context)})
        return messages


class ToolStepExecutor(StepExecutor):
    def __init__(
        self,
        step: ToolStep,
        tool: Tool,
        call_timeout: float = DEFAULT_CALL_TIMEOUT,
    ):
        super().__init__(step, call_timeout)
        self.tool = tool

    async def execute(self, context: RunContext) -> StepResult:
        step = self.step

        try:
            should_run = evaluate_condition(step.condition, context)
        except ValidationError as e:
            logger.warning(f"Step '{step.id}' has an invalid condition: {e}")
            return StepResult.failure(step.id, str(e), error_type="validation")

        if not should_run:
            logger.info(f"Step '{step.id}' skipped: condition '{step.condition}' is false")
            return StepResult.skipped(step.id, f"Condition '{step.condition}' evaluated to false.")

        try:
            payload = {
                field: interpolate_value(template, context)
                for field, template in step.input_template.items()
            }
            result = await call_with_timeout(
                self.tool.invoke(payload),
                self.call_timeout,
                f"Tool '{self.tool.name}'",
            )
        except ProviderError as e:
            logger.warning(f"Step '{step.id}' failed ({e.kind}): {e.message}")
            return StepResult.failure(step.id, e.message, error_type=e.kind)
        except ValidationError as e:
            logger.warning(f"Step '{step.id}' has an invalid input template: {e}")
            return StepResult.failure(step.id, str(e), error_type="validation")

        if not result.success:
            logger.warning(f"Tool '{self.tool.name}' reported failure: {result.error}")
            return StepResult.failure(
                step.id,
                result.error or "Tool call failed.",
                error_type=result.error_kind or "tool_error",
            )
        return StepResult.success(step.id, result.data)


# ==========================================================================
# Structured output
# ==========================================================================

def extract_json(text: str) -> Any:
    """
    Pulls a JSON document out of a model reply. Tries, in order: a fenced
    ```json block, the whole reply, and the outermost {...} span.
    """
    candidates = []
    fenced = _CODE_FENCE.search(text)
    if fenced:
        candidates.append(fenced.group(1))
    candidates.append(text)
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        candidates.append(text[start:end + 1])

    for candidate in candidates:
        try:
            return json.loads(candidate.strip())
        except json.JSONDecodeError:
            continue
    raise OutputParseError("Model reply is not valid JSON.")


def parse_structured_output(text: str, schema: Type[BaseModel]) -> BaseModel:
    data = extract_json(text)
    try:
        return schema.model_validate(data)
    except PydanticValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(loc) for loc in err['loc']) or '<root>'}: {err['msg']}"
            for err in e.errors()
        )
        raise OutputParseError(f"Model reply does not match {schema.__name__}: {problems}") from e
