"""Per-user swipe counters and behavioural aggregates."""

from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from match_engine.models.base import Base


class UserSwipeStats(Base):
    __tablename__ = "user_swipe_stats"

    user_id: Mapped[str] = mapped_column(
        sa.String, sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    swipe_count: Mapped[int] = mapped_column(sa.Integer, default=0)
    # Lowered by the learner by the number of swipes each run consumed
    swipes_since_refresh: Mapped[int] = mapped_column(sa.Integer, default=0)
    like_count: Mapped[int] = mapped_column(sa.Integer, default=0)
    dislike_count: Mapped[int] = mapped_column(sa.Integer, default=0)
    super_like_count: Mapped[int] = mapped_column(sa.Integer, default=0)
    # Averages are total / samples; swipes without the metadata are not samples
    latency_total_ms: Mapped[int] = mapped_column(sa.BigInteger, default=0)
    latency_samples: Mapped[int] = mapped_column(sa.Integer, default=0)
    view_total_ms: Mapped[int] = mapped_column(sa.BigInteger, default=0)
    view_samples: Mapped[int] = mapped_column(sa.Integer, default=0)
    active_hours: Mapped[list | None] = mapped_column(sa.JSON, nullable=True)
    updated_at: Mapped[datetime | None] = mapped_column(sa.DateTime, nullable=True)

    __table_args__ = (
        sa.Index("ix_user_swipe_stats_swipes_since_refresh", "swipes_since_refresh"),
    )

    @property
    def avg_swipe_latency_ms(self) -> float | None:
        if not self.latency_samples:
            return None
        return self.latency_total_ms / self.latency_samples

    @property
    def avg_profile_view_ms(self) -> float | None:
        if not self.view_samples:
            return None
        return self.view_total_ms / self.view_samples

    @property
    def like_ratio(self) -> float | None:
        """Share of swipes that were likes or super-likes."""
        if not self.swipe_count:
            return None
        return (self.like_count + self.super_like_count) / self.swipe_count
