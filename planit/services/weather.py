"""
Weather context for category generation.

Current conditions come from OpenWeatherMap (imperial units). When the API is
unavailable a coarse seasonal guess is used instead so prompt building never
waits on, or fails because of, the weather.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

import httpx

from planit.config import settings
from planit.schemas.place import Coordinates

logger = logging.getLogger(__name__)


class WeatherError(Exception):
    """Raised when the weather API cannot produce a usable reading."""


def seasonal_weather(now: datetime) -> str:
    """Guess conditions from month and hour."""
    month, hour = now.month, now.hour
    if month in (12, 1, 2):
        return "cold"
    if month in (3, 4, 5) and 6 <= hour < 18:
        return "spring_mild"
    if month in (6, 7, 8) and 6 <= hour < 18:
        return "sunny_warm"
    if month in (6, 7, 8) and hour >= 18:
        return "warm_evening"
    if month in (9, 10, 11):
        return "autumn_cool"
    return "moderate"


class WeatherService:
    """Fetches a one-line weather summary such as 'Clear, 72°F'."""

    def __init__(
        self,
        api_key: str = settings.openweather_api_key,
        base_url: str = settings.weather_base_url,
        timeout: float = settings.weather_timeout_seconds,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def current_conditions(self, location: Coordinates) -> str:
        """Raises WeatherError on any failure."""
        if not self._api_key:
            raise WeatherError("OpenWeather API key is missing")

        params = {
            "lat": location.lat,
            "lon": location.lng,
            "appid": self._api_key,
            "units": "imperial",
        }
        try:
            resp = await self._client.get(f"{self._base_url}/weather", params=params)
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise WeatherError(f"Weather request failed: {exc!r}") from exc

        try:
            condition = str(data["weather"][0]["main"])
            temp = float(data["main"]["temp"])
        except (KeyError, IndexError, TypeError, ValueError) as exc:
            raise WeatherError(f"Unexpected weather payload: {exc!r}") from exc

        return f"{condition}, {temp:.0f}°F"

    async def describe(self, location: Coordinates, now: datetime) -> str:
        """Current conditions, or the seasonal guess. Never raises."""
        try:
            return await self.current_conditions(location)
        except WeatherError as exc:
            logger.warning("Weather unavailable, using seasonal guess: %s", exc)
            return seasonal_weather(now)
