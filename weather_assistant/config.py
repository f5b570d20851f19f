from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Secrets: read from the environment or .env. Empty keys fail when the
    # corresponding client is first built, not at import.
    OPENAI_API_KEY: str = ""
    WEATHER_API_KEY: str = ""

    # Model Configuration
    OPENAI_MODEL: str = "gpt-3.5-turbo"
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = 1000
    LLM_TIMEOUT_SECONDS: float = 30.0

    # OpenWeatherMap
    WEATHER_API_URL: str = "https://api.openweathermap.org/data/2.5"
    WEATHER_GEO_URL: str = "https://api.openweathermap.org/geo/1.0"
    WEATHER_LANG: str = "zh_cn"
    WEATHER_TIMEOUT_SECONDS: float = 10.0

    # Workflow execution
    STEP_TIMEOUT_SECONDS: float = 30.0
    LOCATION_CONFIDENCE_THRESHOLD: float = 0.5
    BATCH_MAX_CITIES: int = 10

    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3000
    CORS_ORIGIN: str = "*"
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    ENVIRONMENT: str = "development"

    # Loads from a .env file in the root directory
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def cors_origins(self) -> list[str]:
        return [origin.strip() for origin in self.CORS_ORIGIN.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    return Settings()
