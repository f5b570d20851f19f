"""
Health Service

Probes the external collaborators (OpenWeatherMap and the LLM provider)
concurrently and summarizes their status for the health endpoints.

Collaborators are resolved lazily per check, so a missing API key shows up as
an unhealthy service in the report instead of failing the request.
"""

import asyncio
import logging
import os
import platform
import sys
import time
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Literal, Optional

import psutil
from pydantic import BaseModel, Field

from ..exceptions import ConfigurationError
from ..llm.interface import LLMProvider
from ..weather.client import WeatherClient

logger = logging.getLogger(__name__)


class ServiceCheck(BaseModel):
    name: str
    description: str
    healthy: bool
    response_time_ms: float
    error: Optional[str] = None


class HealthReport(BaseModel):
    status: Literal["healthy", "unhealthy", "degraded"]
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str
    response_time_ms: float
    uptime_seconds: int
    services: Dict[str, ServiceCheck]
    summary: Optional[Dict[str, int]] = None
    environment: Dict[str, Any] = Field(default_factory=dict)

    @property
    def healthy(self) -> bool:
        return self.status == "healthy"


class SystemMetrics(BaseModel):
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    process: Dict[str, Any]
    memory: Dict[str, int]
    cpu: Dict[str, List[float]]
    environment: Dict[str, Any]


class HealthService:
    def __init__(
        self,
        weather_client: Callable[[], WeatherClient],
        llm_provider: Callable[[], LLMProvider],
        version: str,
        environment: str = "development",
        has_openai_key: bool = False,
        has_weather_key: bool = False,
    ):
        self.weather_client = weather_client
        self.llm_provider = llm_provider
        self.version = version
        self.environment = environment
        self.has_openai_key = has_openai_key
        self.has_weather_key = has_weather_key
        self._started = time.monotonic()

    async def check(self) -> HealthReport:
        return await self._run_checks(detailed=False)

    async def check_detailed(self) -> HealthReport:
        return await self._run_checks(detailed=True)

    def metrics(self) -> SystemMetrics:
        """Process-level figures for the metrics endpoint. Makes no upstream calls."""
        process = psutil.Process(os.getpid())
        memory = process.memory_info()
        return SystemMetrics(
            process={
                "pid": process.pid,
                "uptime_seconds": int(time.monotonic() - self._started),
                "python_version": platform.python_version(),
                "platform": sys.platform,
                "arch": platform.machine(),
            },
            memory={"rss": memory.rss, "vms": memory.vms},
            cpu={"load_average": [round(load, 2) for load in psutil.getloadavg()]},
            environment={
                "env": self.environment,
                "has_openai": self.has_openai_key,
                "has_weather_api": self.has_weather_key,
            },
        )

    async def _run_checks(self, detailed: bool) -> HealthReport:
        start = time.perf_counter()
        weather, openai = await asyncio.gather(
            self._check_service(
                "Weather Service",
                "OpenWeatherMap API connectivity",
                lambda: self.weather_client().check_health(),
            ),
            self._check_service(
                "OpenAI Service",
                "OpenAI API connectivity",
                lambda: self.llm_provider().check_health(),
            ),
        )
        services = {"weather": weather, "openai": openai}
        all_healthy = all(check.healthy for check in services.values())

        report = HealthReport(
            status="healthy" if all_healthy else ("degraded" if detailed else "unhealthy"),
            version=self.version,
            response_time_ms=_elapsed_ms(start),
            uptime_seconds=int(time.monotonic() - self._started),
            services=services,
            environment={
                "python_version": platform.python_version(),
                "platform": sys.platform,
                "env": self.environment,
            },
        )
        if detailed:
            healthy_count = sum(1 for check in services.values() if check.healthy)
            report.summary = {
                "total": len(services),
                "healthy": healthy_count,
                "unhealthy": len(services) - healthy_count,
            }

        logger.info(
            f"Health check: {report.status} "
            f"(weather={weather.healthy}, openai={openai.healthy}, {report.response_time_ms:.0f}ms)"
        )
        return report

    async def _check_service(
        self,
        name: str,
        description: str,
        check: Callable[[], Awaitable[bool]],
    ) -> ServiceCheck:
        start = time.perf_counter()
        error = None
        try:
            healthy = await check()
        except ConfigurationError as e:
            logger.warning(f"{name} is not configured: {e}")
            healthy = False
            error = str(e)
        return ServiceCheck(
            name=name,
            description=description,
            healthy=healthy,
            response_time_ms=_elapsed_ms(start),
            error=error,
        )


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 1)
