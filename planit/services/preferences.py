"""Per-user key/value preferences backed by the user_settings table."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from planit.config import settings
from planit.models.user_setting import UserSetting

logger = logging.getLogger(__name__)

RADIUS_KEY = "selected_radius_miles"


class PreferenceStore:
    """Small async key/value store scoped per user."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        default_radius_miles: float = settings.default_radius_miles,
    ) -> None:
        self._session_factory = session_factory
        self._default_radius = default_radius_miles

    async def get_value(self, uid: str, key: str, default: Any = None) -> Any:
        async with self._session_factory() as session:
            row = await session.get(UserSetting, (uid, key))
            return row.value if row is not None and row.value is not None else default

    async def set_value(self, uid: str, key: str, value: Any) -> None:
        async with self._session_factory() as session, session.begin():
            await session.merge(UserSetting(uid=uid, key=key, value=value))

    async def get_radius_miles(self, uid: str) -> float:
        """The user's search radius; unset, zero or invalid values use the default."""
        try:
            value = await self.get_value(uid, RADIUS_KEY)
        except Exception as exc:
            logger.warning("Could not read radius for uid=%s: %r", uid, exc)
            return self._default_radius

        if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
            return self._default_radius
        return float(value)

    async def set_radius_miles(self, uid: str, miles: float) -> None:
        await self.set_value(uid, RADIUS_KEY, float(miles))
