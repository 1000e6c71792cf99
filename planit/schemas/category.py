"""Pydantic schemas for AI-generated recommendation categories."""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

from planit.schemas.place import Place, PlaceCategory

# Defaults applied when the generator omits an optional field or sends the wrong type.
DEFAULT_CONFIDENCE = 0.8
DEFAULT_EMOJI = "📍"
DEFAULT_VIBE = "Great local spot"


class CategoryDescriptor(BaseModel):
    """A thematic grouping of places with its own search query."""

    id: str
    title: str
    subtitle: str
    reasoning: str
    search_query: str
    category: PlaceCategory
    confidence: float = DEFAULT_CONFIDENCE
    personalized_emoji: str = DEFAULT_EMOJI
    vibe_description: str = DEFAULT_VIBE
    social_proof_text: Optional[str] = None
    psychology_hook: Optional[str] = None
    places: list[Place] = Field(default_factory=list)


FeedSource = Literal["ai", "fallback", "demo"]


class CategoryFeed(BaseModel):
    """Top-level recommendations response."""

    uid: str
    generated_at: datetime
    source: FeedSource
    radius_miles: float
    categories: list[CategoryDescriptor]


class MorePlacesResponse(BaseModel):
    """Response for the infinite-scroll endpoint."""

    category_id: str
    places: list[Place]
