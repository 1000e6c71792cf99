"""
Category manager — personalised recommendation categories for one user.

Pipeline (one generation cycle):
  1. Read the user's fingerprint and the current weather (concurrently)
  2. Build the category prompt and ask Gemini for 12 descriptors
  3. Search places for every descriptor concurrently (distance-filtered)
  4. Rank each place list with PlaceScorer
  5. Drop empty categories; below MIN_CATEGORY_COUNT switch to the five
     fixed templates, and if those are empty too, to synthetic demo data
  6. Order categories by confidence, shuffle places inside each category
  7. Publish the feed unless a newer cycle for the same user started meanwhile

Caching:
  Key:  sha256(uid + rounded location + radius)
  TTL:  FEED_CACHE_TTL_SECONDS (default 30 min)
  Bypass: refresh=True deletes the key before computing
"""

from __future__ import annotations

import asyncio
import hashlib
import itertools
import logging
import math
import random
from datetime import datetime, timezone
from typing import Optional, Protocol, Sequence

from cachetools import TTLCache

from planit.config import settings
from planit.schemas.category import CategoryDescriptor, CategoryFeed, FeedSource
from planit.schemas.fingerprint import UserFingerprint
from planit.schemas.place import Coordinates, Place, PlaceCategory, derive_descriptive_tags
from planit.services.category_generator import TextGenerator, generate_categories
from planit.services.fingerprint_store import FingerprintRepository
from planit.services.gemini import call_gemini
from planit.services.place_scorer import FingerprintSnapshot, PlaceScorer
from planit.services.places import DEFAULT_IMAGES
from planit.services.preferences import PreferenceStore
from planit.services.weather import WeatherService, seasonal_weather
from planit.utils.geo import format_distance, place_distance
from planit.utils.prompts import build_category_prompt

logger = logging.getLogger(__name__)

MORE_PLACES_PAGE_SIZE = 10


class PlaceSearcher(Protocol):
    async def search_places(
        self, query: str, location: Coordinates, radius_miles: float
    ) -> list[Place]: ...


class CategoryNotFound(Exception):
    """Raised when a category id is not part of the user's current feed."""


# ── Fixed category sets ───────────────────────────────────────────────────────

FALLBACK_TEMPLATES: list[CategoryDescriptor] = [
    CategoryDescriptor(
        id="top_restaurants",
        title="Top Restaurants",
        subtitle="Highly rated dining near you",
        reasoning="Based on high ratings and reviews",
        search_query="restaurant",
        category=PlaceCategory.RESTAURANTS,
        confidence=0.85,
        personalized_emoji="🍽️",
        vibe_description="Exceptional dining experiences",
    ),
    CategoryDescriptor(
        id="coffee_shops",
        title="Coffee & Cafes",
        subtitle="Perfect spots for coffee",
        reasoning="Great for coffee lovers",
        search_query="cafe",
        category=PlaceCategory.CAFES,
        confidence=0.9,
        personalized_emoji="☕",
        vibe_description="Quality coffee experiences",
    ),
    CategoryDescriptor(
        id="bars_lounges",
        title="Bars & Lounges",
        subtitle="Perfect for drinks",
        reasoning="Great for evening entertainment",
        search_query="bar",
        category=PlaceCategory.BARS,
        confidence=0.8,
        personalized_emoji="🍸",
        vibe_description="Quality nightlife venues",
    ),
    CategoryDescriptor(
        id="entertainment",
        title="Entertainment",
        subtitle="Fun activities & venues",
        reasoning="For fun and entertainment",
        search_query="entertainment",
        category=PlaceCategory.VENUES,
        confidence=0.75,
        personalized_emoji="🎭",
        vibe_description="Live entertainment venues",
    ),
    CategoryDescriptor(
        id="shopping",
        title="Shopping",
        subtitle="Stores & boutiques",
        reasoning="Shopping experiences",
        search_query="store",
        category=PlaceCategory.SHOPPING,
        confidence=0.7,
        personalized_emoji="🛍️",
        vibe_description="Local shopping destinations",
    ),
]

# (id, title, subtitle, category, emoji, vibe, place name, place description, rating, price)
_DEMO_SPECS: list[tuple[str, str, str, PlaceCategory, str, str, str, str, float, str]] = [
    ("demo_restaurants", "Recommended Restaurants", "Great dining options nearby",
     PlaceCategory.RESTAURANTS, "🍽️", "Great local dining",
     "Great Local Restaurant", "Delicious food and great atmosphere", 4.5, "$$"),
    ("demo_cafes", "Coffee & Cafes", "Perfect for coffee lovers",
     PlaceCategory.CAFES, "☕", "Cozy coffee spots",
     "Amazing Coffee Shop", "Perfect coffee and cozy vibes", 4.3, "$"),
    ("demo_bars", "Bars & Nightlife", "Great for evening drinks",
     PlaceCategory.BARS, "🍸", "Lively nightlife",
     "Popular Bar & Lounge", "Great drinks and atmosphere", 4.2, "$$"),
]

# Wider queries used to page more places into an existing category
BROADER_QUERIES: dict[PlaceCategory, list[str]] = {
    PlaceCategory.RESTAURANTS: [
        "restaurant dining food near",
        "eatery bistro grill near",
        "cuisine kitchen dining near",
        "food restaurant meal near",
    ],
    PlaceCategory.CAFES: [
        "cafe coffee shop near",
        "coffee espresso latte near",
        "coffeehouse brew near",
        "cafe breakfast pastry near",
    ],
    PlaceCategory.BARS: [
        "bar pub drinks near",
        "cocktail lounge bar near",
        "brewery taproom near",
        "nightlife bar drinks near",
    ],
    PlaceCategory.VENUES: [
        "entertainment venue near",
        "event space venue near",
        "theater concert venue near",
        "music venue entertainment near",
    ],
    PlaceCategory.SHOPPING: [
        "shop store retail near",
        "boutique shopping store near",
        "market shopping retail near",
        "store shopping boutique near",
    ],
}

# Demo places are scattered at most this far from the user, as a share of the radius
_DEMO_SPREAD = 0.5
_MILES_PER_DEGREE_LAT = 69.0


def _with_distance(place: Place, origin: Coordinates) -> Place:
    miles = place_distance(place, origin)
    if miles is None:
        return place
    return place.model_copy(update={"distance": format_distance(miles)})


def _feed_cache_key(uid: str, location: Coordinates, radius_miles: float) -> str:
    """Location is rounded to ~100 m so small GPS jitter reuses the feed."""
    raw = f"{uid}:{location.lat:.3f}:{location.lng:.3f}:{radius_miles:.2f}"
    return hashlib.sha256(raw.encode()).hexdigest()[:20]


class CategoryManager:
    """
    Builds, caches and pages recommendation feeds.
    All collaborators are injected; nothing here reaches for global clients.
    """

    def __init__(
        self,
        places: PlaceSearcher,
        fingerprints: FingerprintRepository,
        preferences: PreferenceStore,
        weather: Optional[WeatherService] = None,
        generate: TextGenerator = call_gemini,
        scorer: Optional[PlaceScorer] = None,
        rng: Optional[random.Random] = None,
        min_categories: int = settings.min_category_count,
        cache_ttl: int = settings.feed_cache_ttl_seconds,
    ) -> None:
        self._places = places
        self._fingerprints = fingerprints
        self._preferences = preferences
        self._weather = weather
        self._generate = generate
        self._scorer = scorer or PlaceScorer()
        self._rng = rng or random.Random()
        self._min_categories = min_categories

        # cache key → CategoryFeed JSON
        self._feed_cache: TTLCache = TTLCache(maxsize=1_000, ttl=cache_ttl)
        # uid → (cache key, CategoryFeed JSON) of the newest published feed
        self._current: TTLCache = TTLCache(maxsize=1_000, ttl=cache_ttl)
        # uid → sequence number of the newest generation cycle
        self._cycles: TTLCache = TTLCache(maxsize=10_000, ttl=cache_ttl)
        self._cycle_counter = itertools.count(1)

    # ── Public API ─────────────────────────────────────────────────────────────

    async def generate_feed(
        self,
        uid: str,
        location: Coordinates,
        refresh: bool = False,
        now: Optional[datetime] = None,
    ) -> CategoryFeed:
        """Return the user's feed, from cache unless refresh=True."""
        now = now or datetime.now(timezone.utc)
        radius_miles = await self._preferences.get_radius_miles(uid)
        cache_key = _feed_cache_key(uid, location, radius_miles)

        if refresh and cache_key in self._feed_cache:
            del self._feed_cache[cache_key]
            logger.debug("Feed cache INVALIDATED (uid=%s)", uid)

        if cache_key in self._feed_cache:
            logger.debug("Feed cache HIT (uid=%s)", uid)
            return CategoryFeed.model_validate_json(self._feed_cache[cache_key])

        cycle = next(self._cycle_counter)
        self._cycles[uid] = cycle

        fingerprint, weather = await asyncio.gather(
            self._read_fingerprint(uid),
            self._describe_weather(location, now),
        )

        categories, source = await self.build_categories(
            fingerprint=fingerprint,
            location=location,
            radius_miles=radius_miles,
            now=now,
            weather=weather,
        )

        feed = CategoryFeed(
            uid=uid,
            generated_at=now,
            source=source,
            radius_miles=radius_miles,
            categories=categories,
        )

        if self._cycles.get(uid) == cycle:
            payload = feed.model_dump_json()
            self._feed_cache[cache_key] = payload
            self._current[uid] = (cache_key, payload)
        else:
            logger.info("Discarding superseded feed (uid=%s, cycle=%d)", uid, cycle)

        logger.info(
            "Feed generated for uid=%s: %d categories, %d places (source=%s)",
            uid,
            len(categories),
            sum(len(c.places) for c in categories),
            source,
        )
        return feed

    def current_feed(self, uid: str) -> Optional[CategoryFeed]:
        """The newest published feed for the user, if any."""
        entry = self._current.get(uid)
        if entry is None:
            return None
        return CategoryFeed.model_validate_json(entry[1])

    async def build_categories(
        self,
        fingerprint: Optional[UserFingerprint],
        location: Coordinates,
        radius_miles: float,
        now: datetime,
        weather: str,
    ) -> tuple[list[CategoryDescriptor], FeedSource]:
        """Run generation → search → scoring → assembly for one snapshot."""
        snapshot = FingerprintSnapshot.from_fingerprint(fingerprint)

        prompt = build_category_prompt(fingerprint, location, now, weather)
        generated = await generate_categories(prompt, self._generate)

        populated: list[CategoryDescriptor] = []
        if generated:
            populated = await self._populate(generated, location, radius_miles, snapshot)

        if len(populated) >= self._min_categories:
            return self._arrange(populated), "ai"

        logger.warning(
            "Only %d usable generated categories (of %d), using fallback templates",
            len(populated),
            len(generated),
        )
        fallback = await self._populate(FALLBACK_TEMPLATES, location, radius_miles, snapshot)
        if fallback:
            return self._arrange(fallback), "fallback"

        logger.error("Fallback templates returned no places, serving demo categories")
        return self._arrange(self.demo_categories(location, radius_miles)), "demo"

    async def fetch_places_for_category(
        self,
        descriptor: CategoryDescriptor,
        location: Coordinates,
        radius_miles: float,
        snapshot: FingerprintSnapshot,
    ) -> list[Place]:
        """Search the descriptor's query and rank the distance-filtered results."""
        places = await self._places.search_places(descriptor.search_query, location, radius_miles)
        ranked = [
            _with_distance(p, location) for p in self._scorer.rank(places, location, snapshot)
        ]
        logger.debug("Category '%s': %d places", descriptor.title, len(ranked))
        return ranked

    async def fetch_more_places(
        self,
        uid: str,
        category_id: str,
        location: Coordinates,
    ) -> list[Place]:
        """
        Page up to 10 new places into a category of the current feed using
        broader queries. New places are appended to the stored category.
        """
        entry = self._current.get(uid)
        if entry is None:
            raise CategoryNotFound(category_id)
        cache_key, payload = entry
        feed = CategoryFeed.model_validate_json(payload)

        category = next((c for c in feed.categories if c.id == category_id), None)
        if category is None:
            raise CategoryNotFound(category_id)

        queries = BROADER_QUERIES[category.category]
        results = await asyncio.gather(
            *(self._places.search_places(q, location, feed.radius_miles) for q in queries),
            return_exceptions=True,
        )

        seen = {p.google_place_id for p in category.places if p.google_place_id}
        fresh: list[Place] = []
        for query, result in zip(queries, results):
            if isinstance(result, BaseException):
                logger.warning("More-places search '%s' failed: %r", query, result)
                continue
            for place in result:
                if place.google_place_id:
                    if place.google_place_id in seen:
                        continue
                    seen.add(place.google_place_id)
                fresh.append(place)

        def _distance(place: Place) -> float:
            miles = place_distance(place, location)
            return math.inf if miles is None else miles

        fresh.sort(key=_distance)
        page = [_with_distance(p, location) for p in fresh[:MORE_PLACES_PAGE_SIZE]]

        if page:
            category.places.extend(page)
            updated = feed.model_dump_json()
            self._current[uid] = (cache_key, updated)
            if cache_key in self._feed_cache:
                self._feed_cache[cache_key] = updated

        logger.info("Paged %d more places into '%s' (uid=%s)", len(page), category_id, uid)
        return page

    def demo_categories(
        self,
        location: Coordinates,
        radius_miles: float,
    ) -> list[CategoryDescriptor]:
        """Synthetic categories used when no real places are reachable."""
        categories: list[CategoryDescriptor] = []
        for (cid, title, subtitle, category, emoji, vibe,
             place_name, description, rating, price) in _DEMO_SPECS:
            place = Place(
                name=place_name,
                description=description,
                address="Near your location",
                category=category,
                rating=rating,
                review_count=self._rng.randint(50, 500),
                price_range=price,
                descriptive_tags=derive_descriptive_tags(category, rating, price),
                coordinates=self._demo_coordinates(location, radius_miles),
                images=[DEFAULT_IMAGES[category]],
            )
            categories.append(
                CategoryDescriptor(
                    id=cid,
                    title=title,
                    subtitle=subtitle,
                    reasoning="Sample recommendations",
                    search_query=category.value,
                    category=category,
                    confidence=0.8,
                    personalized_emoji=emoji,
                    vibe_description=vibe,
                    places=[_with_distance(place, location)],
                )
            )
        return categories

    # ── Helpers ────────────────────────────────────────────────────────────────

    async def _read_fingerprint(self, uid: str) -> Optional[UserFingerprint]:
        try:
            return await self._fingerprints.get(uid)
        except Exception as exc:
            logger.warning("Fingerprint read failed for uid=%s: %r", uid, exc)
            return None

    async def _describe_weather(self, location: Coordinates, now: datetime) -> str:
        if self._weather is None:
            return seasonal_weather(now)
        return await self._weather.describe(location, now)

    async def _populate(
        self,
        descriptors: Sequence[CategoryDescriptor],
        location: Coordinates,
        radius_miles: float,
        snapshot: FingerprintSnapshot,
    ) -> list[CategoryDescriptor]:
        """Search all descriptors concurrently; keep only non-empty ones."""
        results = await asyncio.gather(
            *(
                self.fetch_places_for_category(d, location, radius_miles, snapshot)
                for d in descriptors
            ),
            return_exceptions=True,
        )

        populated: list[CategoryDescriptor] = []
        for descriptor, result in zip(descriptors, results):
            if isinstance(result, BaseException):
                logger.warning("Search for '%s' failed: %r", descriptor.id, result)
                continue
            if not result:
                logger.debug("Dropping empty category '%s'", descriptor.id)
                continue
            populated.append(descriptor.model_copy(update={"places": result}))
        return populated

    def _arrange(self, categories: list[CategoryDescriptor]) -> list[CategoryDescriptor]:
        """Highest confidence first; places shuffled within each category."""
        ordered = sorted(categories, key=lambda c: c.confidence, reverse=True)
        arranged: list[CategoryDescriptor] = []
        for category in ordered:
            places = list(category.places)
            self._rng.shuffle(places)
            arranged.append(category.model_copy(update={"places": places}))
        return arranged

    def _demo_coordinates(self, origin: Coordinates, radius_miles: float) -> Coordinates:
        spread = min(0.01, radius_miles * _DEMO_SPREAD / _MILES_PER_DEGREE_LAT)
        lat = max(-90.0, min(90.0, origin.lat + self._rng.uniform(-spread, spread)))
        lng = origin.lng + self._rng.uniform(-spread, spread)
        lng = (lng + 180.0) % 360.0 - 180.0
        return Coordinates(lat=lat, lng=lng)
