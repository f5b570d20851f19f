"""
Dependency Injection Wiring (Composition Root).

This module acts as the central "container" for the application's services.
It is responsible for:
1. Instantiating the core Singleton services (LLM adapter, weather client,
   tool registry, workflow repository and engine).
2. Wiring them together (e.g., injecting the repository, LLM adapter and
   tools into the Engine).
3. Managing the lifecycle of these objects using @lru_cache so they are
   created only once per application process.

Tests replace any of these through `app.dependency_overrides`.
"""

from functools import lru_cache

from fastapi import Depends

from .. import __version__
from ..config import get_settings
from ..execution.engine import WorkflowEngine
from ..llm.adapters.openai_adapter import OpenAIAdapter
from ..llm.interface import LLMProvider
from ..repositories.workflow import StaticWorkflowRepository, WorkflowRepository
from ..data.builtin_workflows import builtin_workflows
from ..services.health import HealthService
from ..services.weather import WeatherAssistantService
from ..tools.registry import ToolRegistry
from ..tools.weather import WeatherTool
from ..weather.client import WeatherClient


# LLM Provider (Singleton)
@lru_cache()
def get_llm_provider() -> LLMProvider:
    settings = get_settings()
    return OpenAIAdapter(
        api_key=settings.OPENAI_API_KEY,
        model_name=settings.OPENAI_MODEL,
        temperature=settings.LLM_TEMPERATURE,
        max_tokens=settings.LLM_MAX_TOKENS,
        timeout=settings.LLM_TIMEOUT_SECONDS,
    )


# OpenWeatherMap Client (Singleton)
# Holds the shared httpx connection pool; closed on application shutdown.
@lru_cache()
def get_weather_client() -> WeatherClient:
    settings = get_settings()
    return WeatherClient(
        api_key=settings.WEATHER_API_KEY,
        base_url=settings.WEATHER_API_URL,
        geo_url=settings.WEATHER_GEO_URL,
        lang=settings.WEATHER_LANG,
        timeout=settings.WEATHER_TIMEOUT_SECONDS,
    )


# Tool Registry (Singleton)
@lru_cache()
def get_tool_registry(
    weather_client: WeatherClient = Depends(get_weather_client),
) -> ToolRegistry:
    return ToolRegistry([WeatherTool(weather_client)])


# Workflow Repository (Singleton)
@lru_cache()
def get_workflow_repository() -> WorkflowRepository:
    threshold = get_settings().LOCATION_CONFIDENCE_THRESHOLD
    return StaticWorkflowRepository(builtin_workflows(confidence_threshold=threshold))


# The Engine (Singleton Service)
@lru_cache()
def get_workflow_engine(
    llm: LLMProvider = Depends(get_llm_provider),
    repo: WorkflowRepository = Depends(get_workflow_repository),
    tools: ToolRegistry = Depends(get_tool_registry),
) -> WorkflowEngine:
    return WorkflowEngine(
        repository=repo,
        llm_provider=llm,
        tools=tools,
        call_timeout=get_settings().STEP_TIMEOUT_SECONDS,
    )


# The Weather Service (Singleton Service)
@lru_cache()
def get_weather_service(
    engine: WorkflowEngine = Depends(get_workflow_engine),
    llm: LLMProvider = Depends(get_llm_provider),
    weather_client: WeatherClient = Depends(get_weather_client),
) -> WeatherAssistantService:
    settings = get_settings()
    return WeatherAssistantService(
        engine=engine,
        llm_provider=llm,
        weather_client=weather_client,
        confidence_threshold=settings.LOCATION_CONFIDENCE_THRESHOLD,
        batch_max_cities=settings.BATCH_MAX_CITIES,
        call_timeout=settings.STEP_TIMEOUT_SECONDS,
    )


# Health Service (Singleton Service)
# Singleton so uptime is measured from the first request, not per call.
# Client getters are passed uncalled; a missing API key becomes an unhealthy check.
@lru_cache()
def get_health_service() -> HealthService:
    settings = get_settings()
    return HealthService(
        weather_client=get_weather_client,
        llm_provider=get_llm_provider,
        version=__version__,
        environment=settings.ENVIRONMENT,
        has_openai_key=bool(settings.OPENAI_API_KEY),
        has_weather_key=bool(settings.WEATHER_API_KEY),
    )
