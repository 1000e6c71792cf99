"""Pydantic schemas for user fingerprints, interactions and settings."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

from planit.schemas.place import Coordinates, Place


class InteractionKind(str, Enum):
    """Every reaction a user can have to a place."""

    VIEWED = "viewed"
    LIKED = "liked"
    DISLIKED = "disliked"
    SHARED = "shared"
    VISITED = "visited"
    BOOKMARKED = "bookmarked"
    CALLED = "called"
    NAVIGATED = "navigated"
    REVIEWED = "reviewed"
    PHOTOGRAPHED = "photographed"
    RECOMMENDED = "recommended"


class OnboardingResponse(BaseModel):
    """One onboarding question and the options the user picked."""

    question_id: str
    selected_options: list[str] = Field(default_factory=list)


class UserFingerprint(BaseModel):
    """Snapshot of a user's preference/interaction profile."""

    model_config = ConfigDict(from_attributes=True)

    uid: str
    likes: list[str] = Field(default_factory=list)
    dislikes: list[str] = Field(default_factory=list)
    like_count: int = 0
    dislike_count: int = 0
    tag_affinities: dict[str, int] = Field(default_factory=dict)
    interaction_logs: list[dict[str, Any]] = Field(default_factory=list)
    onboarding_responses: list[OnboardingResponse] = Field(default_factory=list)
    total_place_views: int = 0
    total_thumbs_up: int = 0
    total_thumbs_down: int = 0
    last_interaction_at: Optional[datetime] = None


class FingerprintCreate(BaseModel):
    """Body for POST /users/{uid}/fingerprint — sent once after signup."""

    onboarding_responses: list[OnboardingResponse] = Field(default_factory=list)


class InteractionRequest(BaseModel):
    """Body for POST /recommendations/{uid}/interactions."""

    place: Place
    interaction: InteractionKind
    user_location: Optional[Coordinates] = None


class RadiusSetting(BaseModel):
    """The user's selected search radius."""

    radius_miles: float = Field(..., gt=0.0, le=50.0)
