"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings
from pydantic import Field
from functools import lru_cache


class Settings(BaseSettings):
    """Centralised settings — no hardcoded values anywhere else."""

    # Database
    database_url: str = Field("sqlite+aiosqlite:///./planit.db", env="DATABASE_URL")

    # Google AI
    google_api_key: str = Field("", env="GOOGLE_API_KEY")
    gemini_model: str = Field("gemini-2.5-flash", env="GEMINI_MODEL")
    gemini_fallback_model: str = Field("gemma-3-12b-it", env="GEMINI_FALLBACK_MODEL")

    # Google Places
    google_places_api_key: str = Field("", env="GOOGLE_PLACES_API_KEY")
    places_base_url: str = Field(
        "https://maps.googleapis.com/maps/api/place", env="PLACES_BASE_URL"
    )
    places_timeout_seconds: float = Field(15.0, env="PLACES_TIMEOUT_SECONDS")

    # Weather
    openweather_api_key: str = Field("", env="OPENWEATHER_API_KEY")
    weather_base_url: str = Field(
        "https://api.openweathermap.org/data/2.5", env="WEATHER_BASE_URL"
    )
    weather_timeout_seconds: float = Field(10.0, env="WEATHER_TIMEOUT_SECONDS")

    # Recommendation pipeline
    default_radius_miles: float = Field(2.0, env="DEFAULT_RADIUS_MILES")
    min_category_count: int = Field(3, env="MIN_CATEGORY_COUNT")
    interaction_log_limit: int = Field(200, env="INTERACTION_LOG_LIMIT")
    feed_cache_ttl_seconds: int = Field(1800, env="FEED_CACHE_TTL_SECONDS")

    # Security
    service_token: str = Field("", env="SERVICE_TOKEN")
    allowed_origins: str = Field("http://localhost:3000", env="ALLOWED_ORIGINS")

    # App
    app_env: str = Field("development", env="APP_ENV")
    log_level: str = Field("INFO", env="LOG_LEVEL")

    # Derived
    @property
    def allowed_origins_list(self) -> list[str]:
        """Return ALLOWED_ORIGINS as a list."""
        return [o.strip() for o in self.allowed_origins.split(",")]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached Settings instance."""
    return Settings()


settings = get_settings()
