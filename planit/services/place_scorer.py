"""
PlaceScorer — pure algorithmic ranker.
No LLM calls. No DB calls. Ranks places against a fingerprint snapshot.

score = distance_score * tag_boost * like_ratio_boost

  distance_score   = 1 / (miles + 0.2) ** 1.3
  tag_boost        = 1 + sum(affinity[tag] for tag in place tags) / 10
  like_ratio_boost = 0.8 + like_ratio * 0.4        (0.8 – 1.2)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence

from planit.schemas.fingerprint import UserFingerprint
from planit.schemas.place import Coordinates, Place
from planit.utils.geo import place_distance

# Places without coordinates are ranked as if they were this far away.
MISSING_DISTANCE_MILES = 9999.0

DISTANCE_OFFSET = 0.2
DISTANCE_EXPONENT = 1.3
NEUTRAL_LIKE_RATIO = 0.5


@dataclass(frozen=True)
class FingerprintSnapshot:
    """The slice of a fingerprint the scorer needs, captured once per cycle."""

    tag_affinities: dict[str, int] = field(default_factory=dict)
    like_ratio: float = NEUTRAL_LIKE_RATIO

    @classmethod
    def from_fingerprint(cls, fingerprint: Optional[UserFingerprint]) -> "FingerprintSnapshot":
        if fingerprint is None:
            return cls()
        likes = fingerprint.like_count
        dislikes = fingerprint.dislike_count
        if likes + dislikes > 0:
            ratio = likes / max(1, likes + dislikes)
        else:
            ratio = NEUTRAL_LIKE_RATIO
        return cls(tag_affinities=dict(fingerprint.tag_affinities), like_ratio=ratio)


@dataclass
class ScoredPlace:
    """Output of PlaceScorer.score()."""

    place: Place
    distance_miles: float
    score: float


def distance_score(miles: float) -> float:
    return 1.0 / (miles + DISTANCE_OFFSET) ** DISTANCE_EXPONENT


def tag_boost(tags: Sequence[str], affinities: dict[str, int]) -> float:
    total = sum(affinities.get(tag, 0) for tag in tags)
    return 1 + total / 10.0


def like_ratio_boost(like_ratio: float) -> float:
    return 0.8 + like_ratio * 0.4


class PlaceScorer:
    """
    Pure Python scorer. Receives pre-fetched places and a fingerprint snapshot.
    Deterministic: equal inputs always produce the same order.
    """

    def score(
        self,
        place: Place,
        origin: Coordinates,
        snapshot: FingerprintSnapshot,
    ) -> ScoredPlace:
        """Score a single place against the snapshot."""
        dist = place_distance(place, origin)
        if dist is None:
            dist = MISSING_DISTANCE_MILES

        value = (
            distance_score(dist)
            * tag_boost(place.descriptive_tags, snapshot.tag_affinities)
            * like_ratio_boost(snapshot.like_ratio)
        )
        return ScoredPlace(place=place, distance_miles=dist, score=value)

    def rank(
        self,
        places: Sequence[Place],
        origin: Coordinates,
        snapshot: FingerprintSnapshot,
    ) -> list[Place]:
        """Return places sorted by score DESC; ties keep their input order."""
        scored = [self.score(p, origin, snapshot) for p in places]
        # list.sort is stable, so equal scores retain encounter order
        scored.sort(key=lambda s: s.score, reverse=True)
        return [s.place for s in scored]
