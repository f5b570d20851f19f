import logging
import time
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Path, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import __version__
from ..config import get_settings
from ..exceptions import (
    ConfigurationError,
    ProviderError,
    ValidationError,
    WorkflowNotFoundError,
)
from ..execution.engine import WorkflowEngine
from ..logging_setup import configure_logging
from ..services.exceptions import BatchLimitError, LocationNotResolvedError, WorkflowRunFailedError
from ..services.health import HealthReport, HealthService, SystemMetrics
from ..services.weather import BatchResult, WeatherAssistantService
from ..state.models import RunState
from ..weather.schemas import DEFAULT_COUNTRY, Units, WeatherReport
from .dependencies import (
    get_health_service,
    get_weather_client,
    get_weather_service,
    get_workflow_engine,
)
from .schemas import (
    ApiResponse,
    BatchRequest,
    ErrorResponse,
    QueryResponseData,
    RunWorkflowData,
    RunWorkflowRequest,
    WeatherQueryRequest,
    WorkflowSummary,
)

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(settings.LOG_LEVEL)
    logger.info(f"Weather assistant {__version__} starting ({settings.ENVIRONMENT})")
    yield
    # Only close the client if a request actually created it.
    if get_weather_client.cache_info().currsize:
        await get_weather_client().aclose()
    logger.info("Weather assistant stopped")


app = FastAPI(title="Weather Assistant", version=__version__, lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.0f}ms)")
    return response


# --- Error Mapping ---

def _error(status_code: int, message: str, kind: str | None = None, details=None) -> JSONResponse:
    body = ErrorResponse(error=message, error_kind=kind, details=details)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@app.exception_handler(WorkflowNotFoundError)
async def workflow_not_found_handler(request: Request, exc: WorkflowNotFoundError):
    return _error(status.HTTP_404_NOT_FOUND, str(exc), kind="not_found")


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error on {request.url.path}: {exc}")
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc), kind="configuration")


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return _error(status.HTTP_400_BAD_REQUEST, str(exc), kind="validation")


@app.exception_handler(PydanticValidationError)
async def model_validation_error_handler(request: Request, exc: PydanticValidationError):
    problems = ", ".join(err["msg"] for err in exc.errors())
    return _error(status.HTTP_400_BAD_REQUEST, f"Invalid parameters: {problems}", kind="validation")


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    return _error(
        status.HTTP_400_BAD_REQUEST,
        "Invalid request.",
        kind="validation",
        details=[{"loc": list(err["loc"]), "msg": err["msg"]} for err in exc.errors()],
    )


@app.exception_handler(LocationNotResolvedError)
@app.exception_handler(BatchLimitError)
async def bad_request_handler(request: Request, exc: Exception):
    return _error(status.HTTP_400_BAD_REQUEST, str(exc), kind="bad_request")


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError):
    if exc.kind == "not_found":
        return _error(status.HTTP_404_NOT_FOUND, exc.message, kind=exc.kind)
    return _error(status.HTTP_502_BAD_GATEWAY, exc.message, kind=exc.kind)


@app.exception_handler(WorkflowRunFailedError)
async def run_failed_handler(request: Request, exc: WorkflowRunFailedError):
    return _error(
        status.HTTP_500_INTERNAL_SERVER_ERROR,
        str(exc),
        kind="workflow_failed",
        details=exc.run.model_dump(mode="json"),
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    kind = "not_found" if exc.status_code == status.HTTP_404_NOT_FOUND else "http_error"
    return _error(exc.status_code, str(exc.detail), kind=kind)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error.", kind="internal")


# --- Endpoints ---

@app.get("/")
def index():
    return {
        "name": "Weather Assistant",
        "version": __version__,
        "endpoints": {
            "health": "GET /api/health",
            "health_detailed": "GET /api/health/detailed",
            "health_metrics": "GET /api/health/metrics",
            "query": "POST /api/weather",
            "city": "GET /api/weather/city/{city}",
            "coordinates": "GET /api/weather/coordinates/{lat}/{lon}",
            "batch": "POST /api/weather/batch",
            "workflows": "GET /api/workflows",
            "run_workflow": "POST /api/workflows/{name}/run",
        },
    }


def _health_response(report: HealthReport) -> JSONResponse:
    code = status.HTTP_200_OK if report.status != "unhealthy" else status.HTTP_503_SERVICE_UNAVAILABLE
    body = ApiResponse[HealthReport](success=report.status != "unhealthy", data=report)
    return JSONResponse(status_code=code, content=body.model_dump(mode="json"))


@app.get("/api/health")
async def health(service: HealthService = Depends(get_health_service)):
    return _health_response(await service.check())


@app.get("/api/health/detailed")
async def health_detailed(service: HealthService = Depends(get_health_service)):
    return _health_response(await service.check_detailed())


@app.get("/api/health/metrics", response_model=ApiResponse[SystemMetrics])
def health_metrics(service: HealthService = Depends(get_health_service)):
    return ApiResponse[SystemMetrics](data=service.metrics())


@app.post("/api/weather", response_model=ApiResponse[QueryResponseData])
async def query_weather(
    request: WeatherQueryRequest,
    service: WeatherAssistantService = Depends(get_weather_service),
):
    answer = await service.answer_query(request.query, use_workflow=request.use_workflow)
    return ApiResponse[QueryResponseData](
        data=QueryResponseData(
            query=request.query,
            response=answer.response,
            method=answer.method,
            run=answer.run,
        )
    )


@app.get("/api/weather/city/{city}", response_model=ApiResponse[WeatherReport])
async def city_weather(
    city: str,
    country: str = DEFAULT_COUNTRY,
    units: Units = "metric",
    service: WeatherAssistantService = Depends(get_weather_service),
):
    report = await service.get_city_weather(city, country, units)
    return ApiResponse[WeatherReport](data=report)


@app.get("/api/weather/coordinates/{lat}/{lon}", response_model=ApiResponse[WeatherReport])
async def coordinates_weather(
    lat: float = Path(ge=-90, le=90),
    lon: float = Path(ge=-180, le=180),
    units: Units = "metric",
    service: WeatherAssistantService = Depends(get_weather_service),
):
    report = await service.get_coordinates_weather(lat, lon, units)
    return ApiResponse[WeatherReport](data=report)


@app.post("/api/weather/batch", response_model=ApiResponse[BatchResult])
async def batch_weather(
    request: BatchRequest,
    service: WeatherAssistantService = Depends(get_weather_service),
):
    result = await service.batch_weather(request.cities, request.units)
    return ApiResponse[BatchResult](data=result)


@app.get("/api/workflows", response_model=ApiResponse[list[WorkflowSummary]])
def list_workflows(engine: WorkflowEngine = Depends(get_workflow_engine)):
    summaries = []
    for name in engine.list_workflows():
        workflow = engine.get_workflow(name)
        summaries.append(
            WorkflowSummary(
                name=workflow.name,
                description=workflow.description or None,
                steps=list(workflow.step_ids),
                output_step=workflow.output_step,
            )
        )
    return ApiResponse[list[WorkflowSummary]](data=summaries)


@app.post("/api/workflows/{name}/run", response_model=ApiResponse[RunWorkflowData])
async def run_workflow(
    name: str,
    request: RunWorkflowRequest,
    engine: WorkflowEngine = Depends(get_workflow_engine),
):
    run = await engine.run_workflow(name, {"input": request.input})
    if run.state == RunState.FAILED:
        raise WorkflowRunFailedError(run)
    return ApiResponse[RunWorkflowData](data=RunWorkflowData(output=run.output, run=run))
