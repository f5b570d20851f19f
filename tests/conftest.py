# tests/conftest.py
"""
Pytest configuration and shared fixtures.

The fakes here stand in for the two external collaborators (the LLM and
OpenWeatherMap) so the engine, services and API can be tested offline.
"""

import asyncio
import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from weather_assistant.llm.interface import Completion, LLMProvider, TokenUsage
from weather_assistant.exceptions import ProviderError
from weather_assistant.repositories.workflow import StaticWorkflowRepository
from weather_assistant.execution.engine import WorkflowEngine
from weather_assistant.tools.registry import FunctionTool, ToolRegistry
from weather_assistant.tools.weather import WeatherTool
from weather_assistant.weather.schemas import (
    Coordinates,
    Location,
    Weather,
    WeatherQuery,
    WeatherReport,
)


# =============================================================================
# Fakes
# =============================================================================

class FakeLLMProvider(LLMProvider):
    """
    Replays queued replies in order. A queued exception is raised instead of
    returned; a queued float is a delay in seconds before an empty reply.
    `responder`, when given, computes each reply from the messages instead.
    """

    def __init__(self, replies=(), structured=(), healthy: bool = True, responder=None):
        self.replies = list(replies)
        self.responder = responder
        self.structured = list(structured)
        self.healthy = healthy
        self.calls: List[Dict[str, Any]] = []

    async def complete(self, messages, temperature=None, max_tokens=None) -> Completion:
        self.calls.append({"messages": messages, "temperature": temperature, "max_tokens": max_tokens})
        if self.responder is not None:
            reply = self.responder(messages)
        else:
            reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, BaseException):
            raise reply
        if isinstance(reply, float):
            await asyncio.sleep(reply)
            reply = ""
        return Completion(
            text=reply,
            model="fake-model",
            token_usage=TokenUsage(prompt_tokens=10, completion_tokens=5, total_tokens=15),
        )

    async def generate_structured_output(self, messages, response_model, temperature=0.0):
        self.calls.append({"messages": messages, "temperature": temperature})
        reply = self.structured.pop(0)
        if isinstance(reply, BaseException):
            raise reply
        return response_model.model_validate(reply)

    async def check_health(self) -> bool:
        return self.healthy

    @property
    def prompts(self) -> List[str]:
        """User message of every call, in order."""
        return [call["messages"][-1]["content"] for call in self.calls]


def make_report(city: str = "Beijing", country: str = "CN", temperature: int = 25) -> WeatherReport:
    return WeatherReport(
        location=Location(city=city, country=country, coordinates=Coordinates(lat=39.9, lon=116.4)),
        weather=Weather(
            temperature=temperature,
            feels_like=temperature - 1,
            humidity=40,
            pressure=1012,
            wind_speed=3.2,
            wind_direction=180,
            visibility=10000,
            description="晴",
            main="Clear",
            icon="01d",
        ),
        timestamp=datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc),
    )


class FakeWeatherClient:
    """
    Duck-typed WeatherClient. `errors` maps a city to the ProviderError it
    raises; `delays` maps a city to seconds to sleep before answering.
    """

    def __init__(
        self,
        errors: Optional[Dict[str, ProviderError]] = None,
        delays: Optional[Dict[str, float]] = None,
        healthy: bool = True,
    ):
        self.errors = errors or {}
        self.delays = delays or {}
        self.healthy = healthy
        self.queries: List[WeatherQuery] = []
        self.closed = False

    async def get_current_weather(self, query: WeatherQuery) -> WeatherReport:
        self.queries.append(query)
        if query.city in self.delays:
            await asyncio.sleep(self.delays[query.city])
        if query.city in self.errors:
            raise self.errors[query.city]
        return make_report(query.city, query.country)

    async def get_weather_by_coordinates(self, lat: float, lon: float, units: str = "metric") -> WeatherReport:
        report = make_report("Coordinates")
        report.location.coordinates = Coordinates(lat=lat, lon=lon)
        return report

    async def check_health(self) -> bool:
        return self.healthy

    async def aclose(self):
        self.closed = True


# =============================================================================
# Fixtures
# =============================================================================

def location_reply(city: str, country: str = "CN", confidence: float = 0.95) -> str:
    return json.dumps({"city": city, "country": country, "confidence": confidence}, ensure_ascii=False)


@pytest.fixture
def weather_client() -> FakeWeatherClient:
    return FakeWeatherClient()


@pytest.fixture
def tool_registry(weather_client) -> ToolRegistry:
    return ToolRegistry([WeatherTool(weather_client)])


@pytest.fixture
def make_engine(tool_registry):
    """Builds an engine over the built-in workflows with the given fake LLM."""

    def _make(llm: LLMProvider, call_timeout: float = 5.0, tools: Optional[ToolRegistry] = None) -> WorkflowEngine:
        return WorkflowEngine(
            repository=StaticWorkflowRepository(),
            llm_provider=llm,
            tools=tool_registry if tools is None else tools,
            call_timeout=call_timeout,
        )

    return _make


@pytest.fixture
def recording_tool():
    """A FunctionTool named "record" that remembers every payload it receives."""
    calls: List[Dict[str, Any]] = []

    async def _record(payload):
        calls.append(payload)
        return {"received": payload}

    tool = FunctionTool("record", _record, description="Records its input.")
    tool.calls = calls
    return tool
