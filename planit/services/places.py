"""
Google Places client — text search plus conversion to Place.

Text search honours `radius` only as a location bias, so every result set is
re-filtered client-side by straight-line distance before it leaves this module.
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import httpx

from planit.config import settings
from planit.schemas.place import (
    Coordinates,
    Place,
    PlaceCategory,
    derive_descriptive_tags,
)
from planit.utils.geo import filter_within_radius, miles_to_meters

logger = logging.getLogger(__name__)

# Google `types` → PlaceCategory, checked in this order
_TYPE_RULES: list[tuple[tuple[str, ...], PlaceCategory]] = [
    (("restaurant", "food", "meal_takeaway"), PlaceCategory.RESTAURANTS),
    (("cafe", "bakery"), PlaceCategory.CAFES),
    (("bar", "night_club", "liquor_store"), PlaceCategory.BARS),
    (("shopping_mall", "store", "clothing_store"), PlaceCategory.SHOPPING),
    (("tourist_attraction", "amusement_park", "museum"), PlaceCategory.VENUES),
]

_PRICE_LEVELS: dict[int, str] = {0: "$", 1: "$", 2: "$$", 3: "$$$", 4: "$$$$"}

DEFAULT_IMAGES: dict[PlaceCategory, str] = {
    PlaceCategory.RESTAURANTS: "https://images.unsplash.com/photo-1517248135467-4c7edcad34c4?w=800&h=600&fit=crop",
    PlaceCategory.CAFES: "https://images.unsplash.com/photo-1501339847302-ac426a4a7cbb?w=800&h=600&fit=crop",
    PlaceCategory.BARS: "https://images.unsplash.com/photo-1514933651103-005eec06c04b?w=800&h=600&fit=crop",
    PlaceCategory.VENUES: "https://images.unsplash.com/photo-1492684223066-81342ee5ff30?w=800&h=600&fit=crop",
    PlaceCategory.SHOPPING: "https://images.unsplash.com/photo-1441986300917-64674bd600d8?w=800&h=600&fit=crop",
}

_OK_STATUSES = ("OK", "ZERO_RESULTS")


class PlacesError(Exception):
    """Raised for transport, HTTP or API-status failures from Google Places."""


def category_from_types(types: Optional[list[str]]) -> PlaceCategory:
    lowered = {t.lower() for t in (types or []) if isinstance(t, str)}
    for keys, category in _TYPE_RULES:
        if lowered.intersection(keys):
            return category
    return PlaceCategory.RESTAURANTS


def price_range_from_level(level: Any) -> str:
    if isinstance(level, bool) or not isinstance(level, int):
        return "$$"
    return _PRICE_LEVELS.get(level, "$$")


class PlacesClient:
    """Thin async wrapper around the Places Text Search endpoint."""

    def __init__(
        self,
        api_key: str = settings.google_places_api_key,
        base_url: str = settings.places_base_url,
        timeout: float = settings.places_timeout_seconds,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._client = http_client or httpx.AsyncClient(timeout=timeout)

    async def aclose(self) -> None:
        await self._client.aclose()

    def photo_url(self, photo_reference: str, max_width: int = 1200) -> str:
        return (
            f"{self._base_url}/photo?maxwidth={max_width}"
            f"&photoreference={photo_reference}&key={self._api_key}"
        )

    async def text_search(
        self,
        query: str,
        location: Coordinates,
        radius_meters: int,
    ) -> list[dict[str, Any]]:
        """
        Raw text search. Returns the `results` array.
        Raises PlacesError on any failure.
        """
        if not self._api_key:
            raise PlacesError("Google Places API key is missing")
        if not query.strip():
            raise PlacesError("Empty search query")

        params = {
            "query": query,
            "location": f"{location.lat},{location.lng}",
            "radius": radius_meters,
            "key": self._api_key,
        }
        try:
            resp = await self._client.get(f"{self._base_url}/textsearch/json", params=params)
            resp.raise_for_status()
            data = resp.json()
        except httpx.HTTPStatusError as exc:
            raise PlacesError(f"HTTP {exc.response.status_code} from Places API") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise PlacesError(f"Places request failed: {exc!r}") from exc

        if not isinstance(data, dict):
            raise PlacesError("Places response is not a JSON object")

        status = data.get("status")
        if status not in _OK_STATUSES:
            raise PlacesError(f"Places API status {status}: {data.get('error_message', '')}")

        results = data.get("results") or []
        logger.debug("Places text search '%s' returned %d results", query, len(results))
        return results

    def to_place(self, raw: dict[str, Any]) -> Optional[Place]:
        """Convert one Google result; None when it lacks an id, name or geometry or is malformed."""
        try:
            return self._convert(raw)
        except (TypeError, ValueError, AttributeError, KeyError) as exc:
            logger.debug("Skipping malformed Places result %r: %r", raw.get("place_id"), exc)
            return None

    def _convert(self, raw: dict[str, Any]) -> Optional[Place]:
        place_id = raw.get("place_id")
        name = raw.get("name")
        loc = (raw.get("geometry") or {}).get("location") or {}
        lat, lng = loc.get("lat"), loc.get("lng")
        if not place_id or not name or lat is None or lng is None:
            return None

        coordinates = Coordinates(lat=float(lat), lng=float(lng))

        category = category_from_types(raw.get("types"))
        rating = raw.get("rating")
        rating = float(rating) if isinstance(rating, (int, float)) else 0.0
        rating = max(0.0, min(5.0, rating))
        price_range = price_range_from_level(raw.get("price_level"))

        photos = raw.get("photos") or []
        first_ref = photos[0].get("photo_reference") if photos and isinstance(photos[0], dict) else None
        images = [self.photo_url(first_ref)] if first_ref else [DEFAULT_IMAGES[category]]

        address = raw.get("formatted_address") or raw.get("vicinity") or ""

        return Place(
            google_place_id=str(place_id),
            name=str(name),
            description=address,
            address=address,
            category=category,
            rating=rating,
            review_count=int(raw.get("user_ratings_total") or 0),
            price_range=price_range,
            descriptive_tags=derive_descriptive_tags(category, rating, price_range),
            coordinates=coordinates,
            images=images,
            is_open_now=bool((raw.get("opening_hours") or {}).get("open_now", True)),
        )

    async def search_places(
        self,
        query: str,
        location: Coordinates,
        radius_miles: float,
    ) -> list[Place]:
        """
        Search, convert and distance-filter.
        Never raises — any failure returns an empty list.
        """
        try:
            results = await self.text_search(query, location, miles_to_meters(radius_miles))
        except PlacesError as exc:
            logger.warning("Places search failed for '%s': %s", query, exc)
            return []

        converted = [
            p for p in (self.to_place(r) for r in results if isinstance(r, dict)) if p is not None
        ]
        within = filter_within_radius(converted, location, radius_miles)
        logger.info(
            "Places '%s': %d results, %d converted, %d within %.1f mi",
            query, len(results), len(converted), len(within), radius_miles,
        )
        return within
