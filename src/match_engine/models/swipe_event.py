"""Swipe event model: one current decision per (actor, target) pair."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column, relationship

from match_engine.models.base import Base

if TYPE_CHECKING:
    from match_engine.models.user import User

LIKE = "like"
DISLIKE = "dislike"
SUPER_LIKE = "super_like"

SWIPE_DIRECTIONS = frozenset({LIKE, DISLIKE, SUPER_LIKE})
POSITIVE_DIRECTIONS = frozenset({LIKE, SUPER_LIKE})


class SwipeEvent(Base):
    """The latest decision by ``actor_id`` about ``target_id``.

    A repeat swipe on the same pair overwrites ``direction``, ``swiped_at``
    and the interaction metadata instead of adding a row.
    """

    __tablename__ = "swipe_events"

    id: Mapped[int] = mapped_column(sa.Integer, primary_key=True, autoincrement=True)
    actor_id: Mapped[str] = mapped_column(sa.String, sa.ForeignKey("users.id", ondelete="CASCADE"))
    target_id: Mapped[str] = mapped_column(sa.String, sa.ForeignKey("users.id", ondelete="CASCADE"))
    direction: Mapped[str] = mapped_column(sa.String)
    swiped_at: Mapped[datetime] = mapped_column(sa.DateTime)

    # Interaction metadata
    swipe_latency_ms: Mapped[int | None] = mapped_column(sa.Integer, nullable=True)
    profile_view_duration_ms: Mapped[int | None] = mapped_column(sa.Integer, nullable=True)
    viewed_sections: Mapped[list | None] = mapped_column(sa.JSON, nullable=True)

    created_at: Mapped[datetime] = mapped_column(sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP"))
    updated_at: Mapped[datetime | None] = mapped_column(sa.DateTime, nullable=True)

    target: Mapped[User] = relationship("User", foreign_keys=[target_id])

    __table_args__ = (
        sa.UniqueConstraint("actor_id", "target_id", name="uq_swipe_events_pair"),
        sa.CheckConstraint("actor_id <> target_id", name="no_self_swipe"),
        sa.CheckConstraint("direction IN ('like', 'dislike', 'super_like')", name="valid_direction"),
        sa.Index("ix_swipe_events_actor_swiped_at", "actor_id", "swiped_at"),
    )
