"""SQLAlchemy ORM models package."""

from planit.database import Base
from planit.models.fingerprint import UserFingerprintRecord
from planit.models.user_setting import UserSetting

__all__ = ["Base", "UserFingerprintRecord", "UserSetting"]
