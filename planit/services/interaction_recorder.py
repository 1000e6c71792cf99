"""
Interaction recorder — feeds user reactions back into the fingerprint.

Fire-and-forget: store failures are logged and swallowed. A missed write only
means the next generation cycle works from a slightly stale fingerprint.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Optional

from planit.schemas.fingerprint import InteractionKind
from planit.schemas.place import Coordinates, Place, derive_descriptive_tags
from planit.services.fingerprint_store import FingerprintRepository, FingerprintUpdate

logger = logging.getLogger(__name__)

# Kinds that teach the fingerprint which tags the user enjoys
_TAG_LEARNING = {
    InteractionKind.LIKED,
    InteractionKind.SHARED,
    InteractionKind.VISITED,
    InteractionKind.REVIEWED,
}


def build_log_entry(
    place: Place,
    interaction: InteractionKind,
    user_location: Optional[Coordinates],
    now: datetime,
) -> dict:
    return {
        "place_id": place.google_place_id or "",
        "place_name": place.name,
        "category": place.category.value,
        "interaction": interaction.value,
        "timestamp": now.isoformat(),
        "location": {
            "lat": user_location.lat if user_location else 0.0,
            "lng": user_location.lng if user_location else 0.0,
        },
        "rating": place.rating,
        "price_range": place.price_range,
    }


def build_fingerprint_update(
    place: Place,
    interaction: InteractionKind,
    user_location: Optional[Coordinates] = None,
    now: Optional[datetime] = None,
) -> FingerprintUpdate:
    """Translate one interaction into the incremental fingerprint change."""
    now = now or datetime.now(timezone.utc)
    update = FingerprintUpdate(
        log_entry=build_log_entry(place, interaction, user_location, now),
        place_views_delta=1,
        touched_at=now,
    )

    if interaction is InteractionKind.LIKED:
        update.add_likes = [place.name]
        update.remove_dislikes = [place.name]
        update.like_count_delta = 1
        update.thumbs_up_delta = 1
    elif interaction is InteractionKind.DISLIKED:
        update.add_dislikes = [place.name]
        update.remove_likes = [place.name]
        update.dislike_count_delta = 1
        update.thumbs_down_delta = 1
    elif interaction is InteractionKind.BOOKMARKED:
        update.add_likes = [place.name]
        update.like_count_delta = 1

    if interaction in _TAG_LEARNING:
        tags = derive_descriptive_tags(place.category, place.rating, place.price_range)
        update.tag_increments = {tag: 1 for tag in tags}

    return update


class InteractionRecorder:
    """Applies interaction updates to the fingerprint store."""

    def __init__(self, repository: FingerprintRepository) -> None:
        self._repository = repository

    async def record(
        self,
        uid: str,
        place: Place,
        interaction: InteractionKind,
        user_location: Optional[Coordinates] = None,
    ) -> bool:
        """
        Record one interaction. Returns True when the write succeeded.
        Never raises.
        """
        logger.debug("Recording %s interaction for %s (uid=%s)", interaction.value, place.name, uid)
        try:
            update = build_fingerprint_update(place, interaction, user_location)
            await self._repository.apply_update(uid, update)
        except Exception as exc:
            logger.error(
                "Failed to record %s interaction for uid=%s: %r",
                interaction.value, uid, exc,
            )
            return False

        logger.info("Fingerprint updated with %s interaction (uid=%s)", interaction.value, uid)
        return True
