"""UserFingerprint ORM model — one row per user, mutated by the interaction recorder."""

from sqlalchemy import Column, Integer, String, JSON, TIMESTAMP, func

from planit.database import Base


class UserFingerprintRecord(Base):
    """
    Preference/interaction profile used to personalise category generation
    and place ranking. List and mapping fields are stored as JSON so the
    same schema works on SQLite and Postgres.
    """

    __tablename__ = "user_fingerprints"

    uid = Column(String(128), primary_key=True)

    likes = Column(JSON, nullable=False, default=list)
    dislikes = Column(JSON, nullable=False, default=list)
    like_count = Column(Integer, nullable=False, default=0, server_default="0")
    dislike_count = Column(Integer, nullable=False, default=0, server_default="0")

    tag_affinities = Column(JSON, nullable=False, default=dict)
    interaction_logs = Column(JSON, nullable=False, default=list)
    onboarding_responses = Column(JSON, nullable=False, default=list)

    # Aggregate behaviour counters
    total_place_views = Column(Integer, nullable=False, default=0, server_default="0")
    total_thumbs_up = Column(Integer, nullable=False, default=0, server_default="0")
    total_thumbs_down = Column(Integer, nullable=False, default=0, server_default="0")

    last_interaction_at = Column(TIMESTAMP(timezone=True), nullable=True)
    created_at = Column(
        TIMESTAMP(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
        onupdate=func.now(),
    )
