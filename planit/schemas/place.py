"""Pydantic schemas for places returned in recommendation categories."""

from __future__ import annotations

from enum import Enum
from typing import Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, computed_field

PriceRange = Literal["$", "$$", "$$$", "$$$$"]


class PlaceCategory(str, Enum):
    """The five top-level place categories."""

    RESTAURANTS = "restaurants"
    CAFES = "cafes"
    BARS = "bars"
    VENUES = "venues"
    SHOPPING = "shopping"

    @classmethod
    def parse(cls, value: str) -> Optional["PlaceCategory"]:
        """Match a singular or plural name case-insensitively; None if unknown."""
        return _CATEGORY_ALIASES.get(value.strip().lower())


_CATEGORY_ALIASES: dict[str, PlaceCategory] = {
    "restaurant": PlaceCategory.RESTAURANTS,
    "restaurants": PlaceCategory.RESTAURANTS,
    "cafe": PlaceCategory.CAFES,
    "cafes": PlaceCategory.CAFES,
    "bar": PlaceCategory.BARS,
    "bars": PlaceCategory.BARS,
    "venue": PlaceCategory.VENUES,
    "venues": PlaceCategory.VENUES,
    "shopping": PlaceCategory.SHOPPING,
}


class Coordinates(BaseModel):
    """A WGS84 latitude/longitude pair."""

    lat: float = Field(..., ge=-90.0, le=90.0)
    lng: float = Field(..., ge=-180.0, le=180.0)


class Place(BaseModel):
    """
    A single venue. Places without a google_place_id are synthesized demo
    entries and are flagged through is_demo.
    """

    id: str = Field(default_factory=lambda: str(uuid4()))
    google_place_id: Optional[str] = None
    name: str
    description: str = ""
    address: str = ""
    category: PlaceCategory
    rating: float = Field(0.0, ge=0.0, le=5.0)
    review_count: int = 0
    price_range: PriceRange = "$$"
    descriptive_tags: list[str] = Field(default_factory=list)
    coordinates: Optional[Coordinates] = None
    images: list[str] = Field(default_factory=list)
    is_open_now: bool = True
    # Human-readable distance from the requesting user, e.g. "0.4 mi"
    distance: str = ""

    @computed_field
    @property
    def is_demo(self) -> bool:
        return self.google_place_id is None


def derive_descriptive_tags(
    category: PlaceCategory, rating: float, price_range: str
) -> list[str]:
    """Tags used for affinity learning: category, rating band, price band."""
    tags = [category.value]
    if rating >= 4.5:
        tags.append("highly_rated")
    if price_range == "$":
        tags.append("budget_friendly")
    elif price_range == "$$$$":
        tags.append("luxury")
    return tags
