"""Mutual match model."""

from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from match_engine.models.base import Base


class Match(Base):
    """A pair of users who liked each other.

    Canonical ordering is enforced (user_a_id < user_b_id) so a pair has at
    most one row.  ``active`` is cleared when a re-swipe breaks reciprocity.
    """

    __tablename__ = "matches"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    user_a_id: Mapped[str] = mapped_column(sa.String, sa.ForeignKey("users.id", ondelete="CASCADE"))
    user_b_id: Mapped[str] = mapped_column(sa.String, sa.ForeignKey("users.id", ondelete="CASCADE"))
    active: Mapped[bool] = mapped_column(sa.Boolean, default=True)
    created_at: Mapped[datetime] = mapped_column(sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP"))
    updated_at: Mapped[datetime | None] = mapped_column(sa.DateTime, nullable=True)

    __table_args__ = (
        sa.UniqueConstraint("user_a_id", "user_b_id", name="uq_matches_user_pair"),
        sa.CheckConstraint("user_a_id < user_b_id", name="canonical_ordering"),
        sa.Index("ix_matches_user_b_id", "user_b_id"),
    )
