"""Initial schema: users, interests, swipes, preference models, matches.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

revision = "001_initial"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("display_name", sa.String(), nullable=True),
        sa.Column("age", sa.Integer(), nullable=True),
        sa.Column("gender", sa.String(), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("age_min", sa.Integer(), nullable=True),
        sa.Column("age_max", sa.Integer(), nullable=True),
        sa.Column("gender_preference", sa.String(), nullable=True),
        sa.Column("max_distance_km", sa.Float(), nullable=True),
        sa.Column("last_active_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP")),
    )
    op.create_index("ix_users_lat_lon", "users", ["latitude", "longitude"])
    op.create_index("ix_users_age", "users", ["age"])

    op.create_table(
        "interests",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("label", sa.String(), nullable=False, unique=True),
    )

    op.create_table(
        "user_interests",
        sa.Column(
            "user_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
        ),
        sa.Column(
            "interest_id",
            sa.String(),
            sa.ForeignKey("interests.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "swipe_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("actor_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("target_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("direction", sa.String(), nullable=False),
        sa.Column("swiped_at", sa.DateTime(), nullable=False),
        sa.Column("swipe_latency_ms", sa.Integer(), nullable=True),
        sa.Column("profile_view_duration_ms", sa.Integer(), nullable=True),
        sa.Column("viewed_sections", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("actor_id", "target_id", name="uq_swipe_events_pair"),
        sa.CheckConstraint("actor_id <> target_id", name="no_self_swipe"),
        sa.CheckConstraint("direction IN ('like', 'dislike', 'super_like')", name="valid_direction"),
    )
    op.create_index("ix_swipe_events_actor_swiped_at", "swipe_events", ["actor_id", "swiped_at"])

    op.create_table(
        "preference_models",
        sa.Column(
            "user_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
        ),
        sa.Column("tag_weights", sa.JSON(), nullable=False, server_default="{}"),
        sa.Column("age_center", sa.Float(), nullable=True),
        sa.Column("age_spread", sa.Float(), nullable=True),
        sa.Column("sample_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP")),
    )

    op.create_table(
        "matches",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_a_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("user_b_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), nullable=False),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP")),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
        sa.UniqueConstraint("user_a_id", "user_b_id", name="uq_matches_user_pair"),
        sa.CheckConstraint("user_a_id < user_b_id", name="canonical_ordering"),
    )
    op.create_index("ix_matches_user_b_id", "matches", ["user_b_id"])

    op.create_table(
        "user_swipe_stats",
        sa.Column(
            "user_id", sa.String(), sa.ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
        ),
        sa.Column("swipe_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("swipes_since_refresh", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("like_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("dislike_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("super_like_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("latency_total_ms", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("latency_samples", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("view_total_ms", sa.BigInteger(), nullable=False, server_default="0"),
        sa.Column("view_samples", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("active_hours", sa.JSON(), nullable=True),
        sa.Column("updated_at", sa.DateTime(), nullable=True),
    )
    op.create_index(
        "ix_user_swipe_stats_swipes_since_refresh", "user_swipe_stats", ["swipes_since_refresh"]
    )


def downgrade() -> None:
    op.drop_index("ix_user_swipe_stats_swipes_since_refresh")
    op.drop_table("user_swipe_stats")
    op.drop_index("ix_matches_user_b_id")
    op.drop_table("matches")
    op.drop_table("preference_models")
    op.drop_index("ix_swipe_events_actor_swiped_at")
    op.drop_table("swipe_events")
    op.drop_table("user_interests")
    op.drop_table("interests")
    op.drop_index("ix_users_age")
    op.drop_index("ix_users_lat_lon")
    op.drop_table("users")
