import json
import math
import random
from typing import Optional

import pytest

from planit.database import build_engine, build_session_factory, create_all
from planit.schemas.place import Coordinates, Place, PlaceCategory, derive_descriptive_tags
from planit.services.category_manager import CategoryManager
from planit.services.fingerprint_store import FingerprintRepository
from planit.services.preferences import PreferenceStore
from planit.utils.geo import EARTH_RADIUS_MILES

ORIGIN = Coordinates(lat=40.7128, lng=-74.0060)


# Helpers

def offset_north(origin: Coordinates, miles: float) -> Coordinates:
    """A point exactly `miles` due north of origin along the meridian."""
    return Coordinates(lat=origin.lat + math.degrees(miles / EARTH_RADIUS_MILES), lng=origin.lng)


def make_place(
    name: str,
    miles: Optional[float] = 0.5,
    google_id: Optional[str] = None,
    category: PlaceCategory = PlaceCategory.RESTAURANTS,
    rating: float = 4.5,
    price: str = "$$",
    tags: Optional[list[str]] = None,
) -> Place:
    return Place(
        google_place_id=google_id if google_id is not None else f"gid-{name}",
        name=name,
        category=category,
        rating=rating,
        price_range=price,
        descriptive_tags=tags if tags is not None else derive_descriptive_tags(category, rating, price),
        coordinates=offset_north(ORIGIN, miles) if miles is not None else None,
    )


def category_json(cid: str, query: str, confidence: float = 0.8, category: str = "restaurants") -> dict:
    return {
        "id": cid,
        "title": cid.replace("_", " ").title(),
        "subtitle": "Picked for you",
        "reasoning": "You like this kind of place",
        "searchQuery": query,
        "category": category,
        "confidence": confidence,
        "personalizedEmoji": "✨",
        "vibeDescription": "Good vibes",
    }


class FakePlaces:
    """In-process stand-in for PlacesClient.search_places."""

    def __init__(self, results: Optional[dict[str, list[Place]]] = None):
        self.results = results or {}
        self.queries: list[str] = []

    async def search_places(self, query, location, radius_miles):
        self.queries.append(query)
        return list(self.results.get(query, []))


class StubGenerator:
    """Returns canned replies in order; the last reply repeats."""

    def __init__(self, *replies):
        self.replies = list(replies)
        self.prompts: list[str] = []

    async def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        reply = self.replies[min(len(self.prompts), len(self.replies)) - 1]
        if isinstance(reply, BaseException):
            raise reply
        return reply if isinstance(reply, str) else json.dumps(reply)


# Fixtures

@pytest.fixture
async def session_factory(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'planit-test.db'}")
    await create_all(engine)
    yield build_session_factory(engine)
    await engine.dispose()


@pytest.fixture
def fingerprints(session_factory):
    return FingerprintRepository(session_factory, log_limit=5)


@pytest.fixture
def preferences(session_factory):
    return PreferenceStore(session_factory, default_radius_miles=2.0)


@pytest.fixture
def make_manager(fingerprints, preferences):
    def _make(places, generate, rng=None, **kwargs):
        return CategoryManager(
            places=places,
            fingerprints=fingerprints,
            preferences=preferences,
            weather=None,
            generate=generate,
            rng=rng or random.Random(7),
            **kwargs,
        )

    return _make
