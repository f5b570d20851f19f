import logging
from typing import Any, Dict

from pydantic import ValidationError as PydanticValidationError

from ..exceptions import ProviderError
from ..weather.client import WeatherClient
from ..weather.schemas import WeatherQuery
from .registry import Tool, ToolResult

logger = logging.getLogger(__name__)


class WeatherTool(Tool):
    """
    Current weather for a city.

    Input: {"city": str, "country": str = "CN", "units": "metric" | "imperial" | "kelvin"}
    Output: a WeatherReport as a JSON-ready dict.
    """

    name = "weather"
    description = "Current weather for a city: temperature, feels-like, humidity, pressure, wind and conditions."

    def __init__(self, client: WeatherClient):
        self.client = client

    async def invoke(self, payload: Dict[str, Any]) -> ToolResult:
        try:
            query = WeatherQuery.model_validate(payload)
        except PydanticValidationError as e:
            problems = ", ".join(err["msg"] for err in e.errors())
            logger.warning(f"Invalid weather query {payload!r}: {problems}")
            return ToolResult.fail(f"Invalid weather query: {problems}", kind="validation")

        try:
            report = await self.client.get_current_weather(query)
        except ProviderError as e:
            return ToolResult.fail(e.message, kind=e.kind)

        return ToolResult.ok(report.model_dump(mode="json"))
