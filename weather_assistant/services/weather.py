"""
Weather Assistant Service - Application Orchestration Layer

Entry point for every weather operation exposed by the API. Natural-language
queries go through the workflow engine by default; the "direct" mode chains
the same three stages (parse location, fetch weather, format reply) as plain
service calls. City, coordinate and batch lookups bypass the LLM entirely.
"""

import asyncio
import json
import logging
from typing import List, Literal, Optional, Sequence, Union

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from ..data.builtin_workflows import WEATHER_QUERY
from ..exceptions import ProviderError
from ..execution.engine import WorkflowEngine
from ..execution.timeouts import call_with_timeout
from ..llm.interface import LLMProvider
from ..prompts import Template, render
from ..schemas.location import LocationExtraction
from ..state.models import RunState, WorkflowRun
from ..weather.client import WeatherClient
from ..weather.schemas import DEFAULT_COUNTRY, Units, WeatherQuery, WeatherReport
from .exceptions import BatchLimitError, LocationNotResolvedError, WorkflowRunFailedError

logger = logging.getLogger(__name__)

NO_REPLY_FALLBACK = "Sorry, I could not generate a weather reply."
FORMAT_FAILURE_FALLBACK = "Sorry, I could not generate a weather reply right now. Please try again later."


class CityQuery(BaseModel):
    city: str
    country: str = DEFAULT_COUNTRY


CitySpec = Union[str, CityQuery]


class QueryAnswer(BaseModel):
    response: str
    method: Literal["workflow", "direct"]
    run: Optional[WorkflowRun] = None
    location: Optional[LocationExtraction] = None
    weather: Optional[WeatherReport] = None


class BatchItemResult(BaseModel):
    city: CitySpec
    success: bool
    data: Optional[WeatherReport] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None


class BatchResult(BaseModel):
    results: List[BatchItemResult]
    total: int
    successful: int


class WeatherAssistantService:
    def __init__(
        self,
        engine: WorkflowEngine,
        llm_provider: LLMProvider,
        weather_client: WeatherClient,
        workflow_name: str = WEATHER_QUERY,
        confidence_threshold: float = 0.5,
        batch_max_cities: int = 10,
        call_timeout: float = 30.0,
    ):
        self.engine = engine
        self.llm = llm_provider
        self.weather = weather_client
        self.workflow_name = workflow_name
        self.confidence_threshold = confidence_threshold
        self.batch_max_cities = batch_max_cities
        self.call_timeout = call_timeout

    # ==========================================================================
    # Natural-language queries
    # ==========================================================================

    async def answer_query(self, query: str, use_workflow: bool = True) -> QueryAnswer:
        logger.info(f"Weather query received (workflow={use_workflow}): {query!r}")
        if use_workflow:
            return await self._answer_with_workflow(query)
        return await self._answer_directly(query)

    async def _answer_with_workflow(self, query: str) -> QueryAnswer:
        run = await self.engine.run_workflow(self.workflow_name, {"input": query})
        if run.state == RunState.FAILED:
            raise WorkflowRunFailedError(run)

        output = run.output
        response = output if isinstance(output, str) and output.strip() else NO_REPLY_FALLBACK
        return QueryAnswer(response=response, method="workflow", run=run)

    async def _answer_directly(self, query: str) -> QueryAnswer:
        # 1. Location
        location = await self.parse_location(query)
        if location.confidence < self.confidence_threshold or not location.city:
            raise LocationNotResolvedError(
                "Could not identify a location in the query. Please name a specific city."
            )

        # 2. Weather (ProviderError propagates to the API layer)
        report = await self.get_city_weather(location.city, location.country)

        # 3. Reply
        response = await self.format_weather_response(report, query)
        return QueryAnswer(
            response=response,
            method="direct",
            location=location,
            weather=report,
        )

    async def parse_location(self, query: str) -> LocationExtraction:
        """Structured-output location extraction. Never raises; failures yield confidence 0."""
        messages = [
            {"role": "system", "content": render(Template.LOCATION_SYSTEM)},
            {"role": "user", "content": render(Template.LOCATION_REQUEST, query=query)},
        ]
        try:
            return await call_with_timeout(
                self.llm.generate_structured_output(
                    messages=messages,
                    response_model=LocationExtraction,
                    temperature=0.3,
                ),
                self.call_timeout,
                "Location parsing",
            )
        except ProviderError as e:
            logger.error(f"Location parsing failed ({e.kind}): {e.message}")
            return LocationExtraction(city="", country=DEFAULT_COUNTRY, confidence=0.0)

    async def format_weather_response(self, report: Optional[WeatherReport], query: str) -> str:
        weather_json = (
            json.dumps(report.model_dump(mode="json"), ensure_ascii=False, indent=2)
            if report is not None
            else "null"
        )
        messages = [
            {"role": "system", "content": render(Template.WEATHER_REPLY_SYSTEM)},
            {
                "role": "user",
                "content": render(Template.WEATHER_REPLY_REQUEST, weather_json=weather_json, query=query),
            },
        ]
        try:
            completion = await call_with_timeout(
                self.llm.complete(messages, temperature=0.8, max_tokens=500),
                self.call_timeout,
                "Weather reply formatting",
            )
        except ProviderError as e:
            logger.error(f"Formatting weather reply failed ({e.kind}): {e.message}")
            return FORMAT_FAILURE_FALLBACK
        return completion.text or FORMAT_FAILURE_FALLBACK

    # ==========================================================================
    # Direct lookups
    # ==========================================================================

    async def get_city_weather(
        self,
        city: str,
        country: str = DEFAULT_COUNTRY,
        units: Units = "metric",
    ) -> WeatherReport:
        query = WeatherQuery(city=city, country=country, units=units)
        return await call_with_timeout(
            self.weather.get_current_weather(query),
            self.call_timeout,
            f"Weather lookup for {query.city}",
            provider="openweathermap",
        )

    async def get_coordinates_weather(self, lat: float, lon: float, units: Units = "metric") -> WeatherReport:
        return await call_with_timeout(
            self.weather.get_weather_by_coordinates(lat, lon, units),
            self.call_timeout,
            f"Weather lookup for ({lat}, {lon})",
            provider="openweathermap",
        )

    async def batch_weather(self, cities: Sequence[CitySpec], units: Units = "metric") -> BatchResult:
        """
        Looks up every city concurrently. Each entry succeeds or fails on its
        own; one slow or failing city never affects the others.
        """
        if not cities:
            raise BatchLimitError("Provide a non-empty list of cities.")
        if len(cities) > self.batch_max_cities:
            raise BatchLimitError(f"Batch queries support at most {self.batch_max_cities} cities.")

        logger.info(f"Batch weather query for {len(cities)} cities")
        outcomes = await asyncio.gather(
            *(self._batch_item(city, units) for city in cities),
            return_exceptions=True,
        )

        results = []
        for city, outcome in zip(cities, outcomes):
            if isinstance(outcome, Exception):
                logger.error(f"Batch lookup for {city!r} crashed: {outcome!r}")
                outcome = BatchItemResult(
                    city=city,
                    success=False,
                    error=f"Lookup failed: {outcome}",
                    error_kind="internal",
                )
            results.append(outcome)

        return BatchResult(
            results=results,
            total=len(results),
            successful=sum(1 for r in results if r.success),
        )

    async def _batch_item(self, city: CitySpec, units: Units) -> BatchItemResult:
        if isinstance(city, CityQuery):
            name, country = city.city, city.country
        else:
            name, country = city, DEFAULT_COUNTRY

        try:
            report = await self.get_city_weather(name, country, units)
        except PydanticValidationError as e:
            problems = ", ".join(err["msg"] for err in e.errors())
            return BatchItemResult(city=city, success=False, error=problems, error_kind="validation")
        except ProviderError as e:
            return BatchItemResult(city=city, success=False, error=e.message, error_kind=e.kind)
        return BatchItemResult(city=city, success=True, data=report)
