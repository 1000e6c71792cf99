"""Pydantic schemas package."""

from planit.schemas.place import (
    Coordinates,
    Place,
    PlaceCategory,
    derive_descriptive_tags,
)
from planit.schemas.category import (
    CategoryDescriptor,
    CategoryFeed,
    MorePlacesResponse,
)
from planit.schemas.fingerprint import (
    FingerprintCreate,
    InteractionKind,
    InteractionRequest,
    OnboardingResponse,
    RadiusSetting,
    UserFingerprint,
)

__all__ = [
    "Coordinates", "Place", "PlaceCategory", "derive_descriptive_tags",
    "CategoryDescriptor", "CategoryFeed", "MorePlacesResponse",
    "FingerprintCreate", "InteractionKind", "InteractionRequest",
    "OnboardingResponse", "RadiusSetting", "UserFingerprint",
]
