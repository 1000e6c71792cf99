"""
Service container and FastAPI dependencies.

Services are built once in the application lifespan and stored on
``app.state.services``; route handlers receive them through the getters below.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from planit.config import settings
from planit.services.category_generator import TextGenerator
from planit.services.category_manager import CategoryManager
from planit.services.fingerprint_store import FingerprintRepository
from planit.services.gemini import call_gemini
from planit.services.interaction_recorder import InteractionRecorder
from planit.services.places import PlacesClient
from planit.services.preferences import PreferenceStore
from planit.services.weather import WeatherService


@dataclass
class Services:
    session_factory: async_sessionmaker[AsyncSession]
    fingerprints: FingerprintRepository
    preferences: PreferenceStore
    recorder: InteractionRecorder
    categories: CategoryManager
    places: Optional[PlacesClient] = None
    weather: Optional[WeatherService] = None

    async def aclose(self) -> None:
        """Close the outbound HTTP clients."""
        if self.places is not None:
            await self.places.aclose()
        if self.weather is not None:
            await self.weather.aclose()


def build_services(
    session_factory: async_sessionmaker[AsyncSession],
    generate: TextGenerator = call_gemini,
) -> Services:
    """Wire the production object graph from settings."""
    fingerprints = FingerprintRepository(session_factory, log_limit=settings.interaction_log_limit)
    preferences = PreferenceStore(session_factory, default_radius_miles=settings.default_radius_miles)
    places = PlacesClient()
    weather = WeatherService()
    categories = CategoryManager(
        places=places,
        fingerprints=fingerprints,
        preferences=preferences,
        weather=weather,
        generate=generate,
        min_categories=settings.min_category_count,
        cache_ttl=settings.feed_cache_ttl_seconds,
    )
    return Services(
        session_factory=session_factory,
        fingerprints=fingerprints,
        preferences=preferences,
        recorder=InteractionRecorder(fingerprints),
        categories=categories,
        places=places,
        weather=weather,
    )


def get_services(request: Request) -> Services:
    return request.app.state.services


# ── Auth dependencies ─────────────────────────────────────────────────────────


async def verify_service_token(
    x_service_token: str = Header(..., alias="X-Service-Token"),
) -> None:
    """Verify that the inter-service token matches the configured secret."""
    if not settings.service_token or x_service_token != settings.service_token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid service token",
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_user(uid: str, x_user_id: str = Header(..., alias="X-User-ID")) -> str:
    """
    The caller must identify as the user in the path.
    400 for a blank header, 403 for a mismatch.
    """
    caller = x_user_id.strip()
    if not caller:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing user ID",
            headers={"X-Error-Code": "MISSING_USER_ID"},
        )
    if caller != uid:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="X-User-ID does not match uid in path",
        )
    return caller


CurrentUser = Depends(require_user)
