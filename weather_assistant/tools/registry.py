"""
Tool Registry

Tools are the non-LLM capabilities a workflow can call (e.g. the weather
lookup). Each tool takes a plain dict of inputs and returns a ToolResult with a
uniform success/error shape, so executors never deal with provider-specific
exceptions.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional

from pydantic import BaseModel

from ..exceptions import ConfigurationError, UnknownToolError

logger = logging.getLogger(__name__)


class ToolResult(BaseModel):
    success: bool
    data: Any = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @classmethod
    def ok(cls, data: Any) -> "ToolResult":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, kind: Optional[str] = None) -> "ToolResult":
        return cls(success=False, error=error, error_kind=kind)


class Tool(ABC):
    """
    Interface for a callable tool.

    Implementations should report expected failures (bad input, upstream API
    errors) through ToolResult.fail rather than raising.
    """

    name: str
    description: str = ""

    @abstractmethod
    async def invoke(self, payload: Dict[str, Any]) -> ToolResult:
        pass


class FunctionTool(Tool):
    """Wraps an async callable. Plain return values are treated as success."""

    def __init__(
        self,
        name: str,
        func: Callable[[Dict[str, Any]], Awaitable[Any]],
        description: str = "",
    ):
        self.name = name
        self.func = func
        self.description = description

    async def invoke(self, payload: Dict[str, Any]) -> ToolResult:
        result = await self.func(payload)
        if isinstance(result, ToolResult):
            return result
        return ToolResult.ok(result)


class ToolRegistry:
    def __init__(self, tools: Iterable[Tool] = ()):
        self._tools: Dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool):
        if tool.name in self._tools:
            raise ConfigurationError(f"Tool '{tool.name}' is already registered.")
        logger.debug(f"Registered tool '{tool.name}'")
        self._tools[tool.name] = tool

    def get(self, name: str, step_id: Optional[str] = None) -> Tool:
        try:
            return self._tools[name]
        except KeyError:
            raise UnknownToolError(name, step_id=step_id) from None

    def names(self) -> List[str]:
        return list(self._tools)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)
