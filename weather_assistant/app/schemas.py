"""
API Layer - Request/Response Schemas

Pydantic models for API request and response validation. Every response is
wrapped in the same envelope: `{success, data, timestamp}` on success and
`{success: false, error, timestamp}` on failure.
"""

from datetime import datetime, timezone
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field

from ..services.weather import CitySpec
from ..state.models import WorkflowRun
from ..weather.schemas import Units

T = TypeVar("T")


def _now() -> datetime:
    return datetime.now(timezone.utc)


class ApiResponse(BaseModel, Generic[T]):
    success: bool = True
    data: T
    timestamp: datetime = Field(default_factory=_now)


class ErrorResponse(BaseModel):
    success: bool = False
    error: str
    error_kind: Optional[str] = None
    details: Optional[Any] = None
    timestamp: datetime = Field(default_factory=_now)


# --- Requests ---

class WeatherQueryRequest(BaseModel):
    query: str = Field(min_length=1, max_length=500)
    use_workflow: bool = True


class BatchRequest(BaseModel):
    cities: List[CitySpec]
    units: Units = "metric"


class RunWorkflowRequest(BaseModel):
    input: str


# --- Response payloads ---

class QueryResponseData(BaseModel):
    query: str
    response: str
    method: str
    run: Optional[WorkflowRun] = None


class WorkflowSummary(BaseModel):
    name: str
    description: Optional[str] = None
    steps: List[str]
    output_step: Optional[str] = None


class RunWorkflowData(BaseModel):
    output: Any = None
    run: WorkflowRun
