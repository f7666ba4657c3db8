"""Interest taxonomy and the user <-> interest association table."""

from __future__ import annotations

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from match_engine.models.base import Base

user_interests = sa.Table(
    "user_interests",
    Base.metadata,
    sa.Column("user_id", sa.String, sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True),
    sa.Column(
        "interest_id", sa.String, sa.ForeignKey("interests.id", ondelete="CASCADE"), primary_key=True
    ),
)


class Interest(Base):
    """Static reference entry such as "Travel" or "Music"."""

    __tablename__ = "interests"

    id: Mapped[str] = mapped_column(sa.String, primary_key=True)
    label: Mapped[str] = mapped_column(sa.String, unique=True)
