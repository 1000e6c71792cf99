"""
Fingerprint store — reads and atomically updates user fingerprints.

Updates are expressed as a FingerprintUpdate (set unions/removals, counter
increments, one log entry) and applied to the locked row inside a single
transaction, giving the same guarantees as document-store field transforms.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from planit.config import settings
from planit.models.fingerprint import UserFingerprintRecord
from planit.schemas.fingerprint import OnboardingResponse, UserFingerprint

logger = logging.getLogger(__name__)


class FingerprintNotFound(Exception):
    """Raised when an update targets a user without a fingerprint row."""


@dataclass
class FingerprintUpdate:
    """Incremental changes to apply to one fingerprint."""

    add_likes: list[str] = field(default_factory=list)
    remove_likes: list[str] = field(default_factory=list)
    add_dislikes: list[str] = field(default_factory=list)
    remove_dislikes: list[str] = field(default_factory=list)
    like_count_delta: int = 0
    dislike_count_delta: int = 0
    tag_increments: dict[str, int] = field(default_factory=dict)
    log_entry: Optional[dict[str, Any]] = None
    place_views_delta: int = 0
    thumbs_up_delta: int = 0
    thumbs_down_delta: int = 0
    touched_at: Optional[datetime] = None


def _union(existing: list[str], additions: list[str]) -> list[str]:
    return list(dict.fromkeys(existing + additions))  # deduplicate preserving order


def _remove(existing: list[str], removals: list[str]) -> list[str]:
    drop = set(removals)
    return [item for item in existing if item not in drop]


def _to_schema(record: UserFingerprintRecord) -> UserFingerprint:
    return UserFingerprint(
        uid=record.uid,
        likes=list(record.likes or []),
        dislikes=list(record.dislikes or []),
        like_count=record.like_count or 0,
        dislike_count=record.dislike_count or 0,
        tag_affinities=dict(record.tag_affinities or {}),
        interaction_logs=list(record.interaction_logs or []),
        onboarding_responses=[
            OnboardingResponse.model_validate(r) for r in (record.onboarding_responses or [])
        ],
        total_place_views=record.total_place_views or 0,
        total_thumbs_up=record.total_thumbs_up or 0,
        total_thumbs_down=record.total_thumbs_down or 0,
        last_interaction_at=record.last_interaction_at,
    )


class FingerprintRepository:
    """Async access to the user_fingerprints table."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        log_limit: int = settings.interaction_log_limit,
    ) -> None:
        self._session_factory = session_factory
        self._log_limit = log_limit

    async def get(self, uid: str) -> Optional[UserFingerprint]:
        async with self._session_factory() as session:
            record = await session.get(UserFingerprintRecord, uid)
            return _to_schema(record) if record else None

    async def create(
        self,
        uid: str,
        onboarding_responses: list[OnboardingResponse],
    ) -> tuple[UserFingerprint, bool]:
        """
        Create the fingerprint if absent (idempotent).
        Returns (fingerprint, created).
        """
        async with self._session_factory() as session, session.begin():
            existing = await session.get(UserFingerprintRecord, uid)
            if existing is not None:
                return _to_schema(existing), False

            record = UserFingerprintRecord(
                uid=uid,
                likes=[],
                dislikes=[],
                like_count=0,
                dislike_count=0,
                tag_affinities={},
                interaction_logs=[],
                onboarding_responses=[r.model_dump() for r in onboarding_responses],
                total_place_views=0,
                total_thumbs_up=0,
                total_thumbs_down=0,
                last_interaction_at=None,
            )
            session.add(record)
            await session.flush()
            logger.info("Created fingerprint for uid=%s", uid)
            return _to_schema(record), True

    async def apply_update(self, uid: str, update: FingerprintUpdate) -> UserFingerprint:
        """
        Apply the update to the locked row and commit.
        Raises FingerprintNotFound when the user has no fingerprint.
        """
        async with self._session_factory() as session, session.begin():
            result = await session.execute(
                select(UserFingerprintRecord)
                .where(UserFingerprintRecord.uid == uid)
                .with_for_update()
            )
            record = result.scalar_one_or_none()
            if record is None:
                raise FingerprintNotFound(uid)

            # JSON columns are reassigned, never mutated in place, so the
            # ORM sees every change.
            likes = _union(list(record.likes or []), update.add_likes)
            record.likes = _remove(likes, update.remove_likes)
            dislikes = _union(list(record.dislikes or []), update.add_dislikes)
            record.dislikes = _remove(dislikes, update.remove_dislikes)

            record.like_count = (record.like_count or 0) + update.like_count_delta
            record.dislike_count = (record.dislike_count or 0) + update.dislike_count_delta

            if update.tag_increments:
                affinities = dict(record.tag_affinities or {})
                for tag, delta in update.tag_increments.items():
                    affinities[tag] = affinities.get(tag, 0) + delta
                record.tag_affinities = affinities

            if update.log_entry is not None:
                logs = list(record.interaction_logs or []) + [update.log_entry]
                record.interaction_logs = logs[-self._log_limit:]

            record.total_place_views = (record.total_place_views or 0) + update.place_views_delta
            record.total_thumbs_up = (record.total_thumbs_up or 0) + update.thumbs_up_delta
            record.total_thumbs_down = (record.total_thumbs_down or 0) + update.thumbs_down_delta

            if update.touched_at is not None:
                record.last_interaction_at = update.touched_at

            await session.flush()
            return _to_schema(record)
