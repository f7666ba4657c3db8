from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from match_engine.models.base import Base
from match_engine.models.interest import Interest, user_interests


class User(Base):
    """A person seeking matches.  Owned by the registration service; read-only here."""

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(sa.String, primary_key=True)
    display_name: Mapped[str | None] = mapped_column(sa.String, nullable=True)
    age: Mapped[int | None] = mapped_column(sa.Integer, nullable=True)
    gender: Mapped[str | None] = mapped_column(sa.String, nullable=True)

    # Location
    latitude: Mapped[float | None] = mapped_column(sa.Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(sa.Float, nullable=True)

    # Stated preferences (all optional)
    age_min: Mapped[int | None] = mapped_column(sa.Integer, nullable=True)
    age_max: Mapped[int | None] = mapped_column(sa.Integer, nullable=True)
    gender_preference: Mapped[str | None] = mapped_column(sa.String, nullable=True)
    max_distance_km: Mapped[float | None] = mapped_column(sa.Float, nullable=True)

    # Timestamps
    last_active_at: Mapped[datetime | None] = mapped_column(sa.DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP"))

    interests: Mapped[list[Interest]] = relationship("Interest", secondary=user_interests)

    __table_args__ = (
        sa.Index("ix_users_lat_lon", "latitude", "longitude"),
        sa.Index("ix_users_age", "age"),
    )
