"""Per-user key/value settings (e.g. the selected search radius)."""

from sqlalchemy import Column, String, JSON, TIMESTAMP, PrimaryKeyConstraint, func

from planit.database import Base


class UserSetting(Base):
    """A single user preference value, keyed by (uid, key)."""

    __tablename__ = "user_settings"
    __table_args__ = (PrimaryKeyConstraint("uid", "key"),)

    uid = Column(String(128), nullable=False)
    key = Column(String(64), nullable=False)
    value = Column(JSON, nullable=True)

    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
