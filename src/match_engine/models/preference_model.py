from __future__ import annotations

from datetime import datetime

import sqlalchemy as sa
from sqlalchemy.orm import Mapped, mapped_column

from match_engine.models.base import Base


class PreferenceModel(Base):
    """Stored implicit preference model, one row per user.

    The row is replaced wholesale by the learner; ``version`` is bumped on
    every replace so concurrent writers can detect a lost update.
    """

    __tablename__ = "preference_models"

    user_id: Mapped[str] = mapped_column(
        sa.String, sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    tag_weights: Mapped[dict] = mapped_column(sa.JSON, default=dict)
    age_center: Mapped[float | None] = mapped_column(sa.Float, nullable=True)
    age_spread: Mapped[float | None] = mapped_column(sa.Float, nullable=True)
    sample_count: Mapped[int] = mapped_column(sa.Integer, default=0)
    version: Mapped[int] = mapped_column(sa.Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(sa.DateTime, server_default=sa.text("CURRENT_TIMESTAMP"))
