"""
HTTP layer tests. Services are built from the offline fakes and injected
through FastAPI dependency overrides.
"""

import pytest
from fastapi.testclient import TestClient

from weather_assistant.app.dependencies import (
    get_health_service,
    get_llm_provider,
    get_weather_client,
    get_weather_service,
    get_workflow_engine,
)
from weather_assistant.app.main import app
from weather_assistant.config import get_settings
from weather_assistant.data.builtin_workflows import WEATHER_QUERY
from weather_assistant.exceptions import ConfigurationError, ProviderError
from weather_assistant.services.health import HealthService
from weather_assistant.services.weather import WeatherAssistantService

from conftest import FakeLLMProvider, location_reply


@pytest.fixture
def llm():
    return FakeLLMProvider()


@pytest.fixture
def client(llm, make_engine, weather_client):
    engine = make_engine(llm, call_timeout=0.2)
    service = WeatherAssistantService(
        engine=engine,
        llm_provider=llm,
        weather_client=weather_client,
        batch_max_cities=3,
        call_timeout=0.2,
    )
    health = HealthService(lambda: weather_client, lambda: llm, version="1.0.0", environment="test")

    app.dependency_overrides[get_workflow_engine] = lambda: engine
    app.dependency_overrides[get_weather_service] = lambda: service
    app.dependency_overrides[get_health_service] = lambda: health
    yield TestClient(app)
    app.dependency_overrides.clear()


def _clear_singletons():
    for getter in (get_settings, get_weather_client, get_llm_provider, get_health_service):
        getter.cache_clear()


@pytest.fixture
def unconfigured_client(monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("WEATHER_API_KEY", "")
    _clear_singletons()
    yield TestClient(app)
    _clear_singletons()


def test_index(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["name"] == "Weather Assistant"


class TestHealthEndpoints:
    def test_healthy(self, client):
        response = client.get("/api/health")
        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["data"]["status"] == "healthy"
        assert "timestamp" in body

    def test_unhealthy_returns_503(self, client, weather_client):
        weather_client.healthy = False
        response = client.get("/api/health")
        assert response.status_code == 503
        assert response.json()["data"]["services"]["weather"]["healthy"] is False

    def test_detailed_degraded_returns_200(self, client, llm):
        llm.healthy = False
        response = client.get("/api/health/detailed")
        body = response.json()
        assert response.status_code == 200
        assert body["data"]["status"] == "degraded"
        assert body["data"]["summary"]["unhealthy"] == 1

    def test_metrics(self, client):
        response = client.get("/api/health/metrics")
        data = response.json()["data"]
        assert response.status_code == 200
        assert data["process"]["pid"] > 0
        assert len(data["cpu"]["load_average"]) == 3
        assert set(data["environment"]) == {"env", "has_openai", "has_weather_api"}

    def test_missing_api_keys_return_503(self, unconfigured_client):
        response = unconfigured_client.get("/api/health")
        body = response.json()

        assert response.status_code == 503
        assert body["success"] is False
        assert body["data"]["status"] == "unhealthy"
        assert body["data"]["services"]["weather"]["error"] == "OpenWeatherMap API key is required."
        assert body["data"]["services"]["openai"]["error"] == "OpenAI API key is required."

    def test_metrics_report_missing_api_keys(self, unconfigured_client):
        environment = unconfigured_client.get("/api/health/metrics").json()["data"]["environment"]
        assert environment["has_openai"] is False
        assert environment["has_weather_api"] is False


class TestQueryEndpoint:
    def test_workflow_query(self, client, llm):
        llm.replies = [location_reply("北京"), "北京今天晴, 25°C。"]
        response = client.post("/api/weather", json={"query": "北京天气怎么样?"})
        body = response.json()

        assert response.status_code == 200
        assert body["success"] is True
        assert body["data"]["response"] == "北京今天晴, 25°C。"
        assert body["data"]["method"] == "workflow"
        assert body["data"]["run"]["state"] == "COMPLETED"

    @pytest.mark.parametrize("payload", [{"query": ""}, {"query": "x" * 501}, {}])
    def test_invalid_query(self, client, payload):
        response = client.post("/api/weather", json=payload)
        body = response.json()
        assert response.status_code == 400
        assert body["success"] is False
        assert body["error_kind"] == "validation"

    def test_direct_mode_unresolved_location(self, client, llm):
        llm.structured = [{"city": "", "country": "CN", "confidence": 0.0}]
        response = client.post("/api/weather", json={"query": "asdkjasd", "use_workflow": False})
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_failed_run_returns_partial_run(self, client, llm, weather_client, monkeypatch):
        llm.replies = [location_reply("北京")]

        async def crash(query):
            raise RuntimeError("socket exploded")

        monkeypatch.setattr(weather_client, "get_current_weather", crash)
        response = client.post("/api/weather", json={"query": "北京天气"})
        body = response.json()

        assert response.status_code == 500
        assert body["error_kind"] == "workflow_failed"
        assert body["details"]["state"] == "FAILED"
        assert "parseLocation" in body["details"]["steps"]


class TestLookupEndpoints:
    def test_city(self, client, weather_client):
        response = client.get("/api/weather/city/Tokyo", params={"country": "JP"})
        assert response.status_code == 200
        assert response.json()["data"]["location"]["country"] == "JP"
        assert weather_client.queries[0].country == "JP"

    def test_city_not_found(self, client, weather_client):
        weather_client.errors["Atlantis"] = ProviderError("City not found", kind="not_found")
        response = client.get("/api/weather/city/Atlantis")
        assert response.status_code == 404
        assert response.json()["error"] == "City not found"

    def test_upstream_failure_is_bad_gateway(self, client, weather_client):
        weather_client.errors["Beijing"] = ProviderError("Weather API key is invalid", kind="auth")
        response = client.get("/api/weather/city/Beijing")
        assert response.status_code == 502
        assert response.json()["error_kind"] == "auth"

    def test_coordinates(self, client):
        response = client.get("/api/weather/coordinates/39.9/116.4")
        assert response.status_code == 200
        assert response.json()["data"]["location"]["coordinates"] == {"lat": 39.9, "lon": 116.4}

    def test_coordinates_out_of_range(self, client):
        assert client.get("/api/weather/coordinates/95/116.4").status_code == 400
        assert client.get("/api/weather/coordinates/39.9/200").status_code == 400

    def test_batch(self, client, weather_client):
        weather_client.delays["上海"] = 1.0
        response = client.post("/api/weather/batch", json={
            "cities": ["北京", "上海", {"city": "Tokyo", "country": "JP"}],
        })
        data = response.json()["data"]

        assert response.status_code == 200
        assert data["total"] == 3
        assert data["successful"] == 2
        assert data["results"][1]["error_kind"] == "timeout"

    @pytest.mark.parametrize("cities", [[], ["a", "b", "c", "d"]])
    def test_batch_limits(self, client, cities):
        response = client.post("/api/weather/batch", json={"cities": cities})
        assert response.status_code == 400


class TestWorkflowEndpoints:
    def test_list(self, client):
        response = client.get("/api/workflows")
        workflows = response.json()["data"]
        assert response.status_code == 200
        assert workflows[0]["name"] == WEATHER_QUERY
        assert workflows[0]["steps"] == ["parseLocation", "getWeather", "formatResponse"]
        assert workflows[0]["output_step"] == "formatResponse"

    def test_run(self, client, llm):
        llm.replies = [location_reply("", confidence=0.0), "I could not tell which city you meant."]
        response = client.post(f"/api/workflows/{WEATHER_QUERY}/run", json={"input": "asdkjasd"})
        data = response.json()["data"]

        assert response.status_code == 200
        assert data["output"] == "I could not tell which city you meant."
        assert data["run"]["steps"]["getWeather"]["status"] == "skipped"

    def test_unknown_workflow(self, client):
        response = client.post("/api/workflows/forecast/run", json={"input": "hi"})
        assert response.status_code == 404
        assert response.json()["error_kind"] == "not_found"

    def test_configuration_error_is_500(self, client):
        def misconfigured():
            raise ConfigurationError("OpenAI API key is required.")

        app.dependency_overrides[get_workflow_engine] = misconfigured
        response = client.get("/api/workflows")
        assert response.status_code == 500
        assert response.json()["error"] == "OpenAI API key is required."


class TestErrorEnvelope:
    def test_unknown_route(self, client):
        response = client.get("/api/nope")
        body = response.json()
        assert response.status_code == 404
        assert body["success"] is False
        assert body["error_kind"] == "not_found"
        assert "timestamp" in body

    def test_unexpected_exception_is_json_500(self, client):
        class BrokenService:
            async def batch_weather(self, cities, units):
                raise RuntimeError("boom")

        app.dependency_overrides[get_weather_service] = lambda: BrokenService()
        response = TestClient(app, raise_server_exceptions=False).post(
            "/api/weather/batch", json={"cities": ["北京"]}
        )
        body = response.json()

        assert response.status_code == 500
        assert response.headers["content-type"] == "application/json"
        assert body["success"] is False
        assert body["error"] == "Internal server error."
        assert body["error_kind"] == "internal"
