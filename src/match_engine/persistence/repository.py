"""Persistence adapter between the engine and the database.

Every function takes an open ``AsyncSession``; callers own the transaction
boundaries.  Profiles leave this module as plain dicts so the scoring code
never touches ORM objects.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased, selectinload

from match_engine.errors import StaleModelError
from match_engine.learning.model import ImplicitPreferenceModel, LabeledSwipe
from match_engine.models.match import Match
from match_engine.models.preference_model import PreferenceModel
from match_engine.models.swipe_event import (
    DISLIKE,
    LIKE,
    POSITIVE_DIRECTIONS,
    SUPER_LIKE,
    SwipeEvent,
)
from match_engine.models.user import User
from match_engine.models.user_swipe_stats import UserSwipeStats
from match_engine.ranking.candidate_pool import CandidateFilters


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the ``sa.DateTime`` columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def canonical_pair(user_x: str, user_y: str) -> tuple[str, str]:
    """Order a pair of user ids so the smaller id comes first."""
    return (user_x, user_y) if user_x < user_y else (user_y, user_x)


def dialect_insert(session: AsyncSession):
    """Return the ``insert`` construct of the bound dialect, for ON CONFLICT clauses."""
    if session.get_bind().dialect.name == "postgresql":
        return postgresql.insert
    return sqlite.insert


@dataclass(frozen=True)
class SwipeMetadata:
    """Interaction details captured by the client alongside a swipe."""

    swipe_latency_ms: int | None = None
    profile_view_duration_ms: int | None = None
    viewed_sections: tuple[str, ...] = ()


# ---------------------------------------------------------------------------
# Profiles
# ---------------------------------------------------------------------------


def user_to_dict(user: User) -> dict:
    """Convert a ``User`` (with interests loaded) into a scoring profile dict."""
    return {
        "id": user.id,
        "display_name": user.display_name,
        "age": user.age,
        "gender": user.gender,
        "latitude": user.latitude,
        "longitude": user.longitude,
        "interests": frozenset(i.id for i in user.interests),
        "preferences": {
            "age_min": user.age_min,
            "age_max": user.age_max,
            "gender_preference": user.gender_preference,
            "max_distance_km": user.max_distance_km,
        },
        "last_active_at": user.last_active_at,
    }


async def fetch_user_profile(session: AsyncSession, user_id: str) -> dict | None:
    """Load one user profile, or ``None`` if the user does not exist."""
    result = await session.execute(
        sa.select(User).where(User.id == user_id).options(selectinload(User.interests))
    )
    user = result.scalar_one_or_none()
    return user_to_dict(user) if user is not None else None


async def fetch_candidate_pool(
    session: AsyncSession, viewer_id: str, filters: CandidateFilters
) -> list[dict]:
    """Return a bounded pool of candidate profiles for ``viewer_id``.

    Applies only cheap pre-filters; scoring happens in the ranker.  Users
    with missing age or coordinates pass the corresponding filter.  Pool
    order is most recently active first, then id.
    """
    stmt = sa.select(User).options(selectinload(User.interests)).where(User.id != viewer_id)

    if filters.exclude_ids:
        stmt = stmt.where(User.id.not_in(sorted(filters.exclude_ids)))

    if filters.exclude_swiped:
        swiped = sa.select(SwipeEvent.target_id).where(SwipeEvent.actor_id == viewer_id)
        stmt = stmt.where(User.id.not_in(swiped))

    box = filters.bounding_box
    if box is not None:
        if box.wraps_antimeridian:
            lon_clause = sa.or_(User.longitude >= box.min_lon, User.longitude <= box.max_lon)
        else:
            lon_clause = User.longitude.between(box.min_lon, box.max_lon)
        stmt = stmt.where(
            sa.or_(
                User.latitude.is_(None),
                User.longitude.is_(None),
                sa.and_(User.latitude.between(box.min_lat, box.max_lat), lon_clause),
            )
        )

    if filters.age_min is not None:
        stmt = stmt.where(sa.or_(User.age.is_(None), User.age >= filters.age_min))
    if filters.age_max is not None:
        stmt = stmt.where(sa.or_(User.age.is_(None), User.age <= filters.age_max))

    if filters.gender is not None:
        stmt = stmt.where(sa.func.lower(User.gender) == filters.gender.lower())

    stmt = stmt.order_by(User.last_active_at.desc().nulls_last(), User.id).limit(filters.limit)

    result = await session.execute(stmt)
    return [user_to_dict(u) for u in result.scalars().all()]


# ---------------------------------------------------------------------------
# Swipes
# ---------------------------------------------------------------------------


async def find_swipe_event(
    session: AsyncSession, actor_id: str, target_id: str
) -> SwipeEvent | None:
    result = await session.execute(
        sa.select(SwipeEvent).where(
            SwipeEvent.actor_id == actor_id,
            SwipeEvent.target_id == target_id,
        )
    )
    return result.scalar_one_or_none()


async def upsert_swipe_event(
    session: AsyncSession,
    actor_id: str,
    target_id: str,
    direction: str,
    metadata: SwipeMetadata,
    swiped_at: datetime,
) -> tuple[SwipeEvent, str | None]:
    """Insert or overwrite the swipe for ``(actor_id, target_id)``.

    Returns:
        The stored row and the direction it replaced (``None`` on insert).
    """
    event = await find_swipe_event(session, actor_id, target_id)
    previous = None

    if event is None:
        event = SwipeEvent(actor_id=actor_id, target_id=target_id)
        session.add(event)
    else:
        previous = event.direction
        event.updated_at = swiped_at

    event.direction = direction
    event.swiped_at = swiped_at
    event.swipe_latency_ms = metadata.swipe_latency_ms
    event.profile_view_duration_ms = metadata.profile_view_duration_ms
    event.viewed_sections = list(metadata.viewed_sections)
    await session.flush()
    return event, previous


async def fetch_swipe_history(
    session: AsyncSession, user_id: str, limit: int
) -> list[LabeledSwipe]:
    """Load the user's ``limit`` most recent swipes joined with target attributes."""
    result = await session.execute(
        sa.select(SwipeEvent)
        .where(SwipeEvent.actor_id == user_id)
        .options(selectinload(SwipeEvent.target).selectinload(User.interests))
        .order_by(SwipeEvent.swiped_at.desc(), SwipeEvent.id.desc())
        .limit(limit)
    )
    return [
        LabeledSwipe(
            direction=evt.direction,
            swiped_at=evt.swiped_at,
            target_age=evt.target.age if evt.target else None,
            target_interests=frozenset(i.id for i in evt.target.interests) if evt.target else frozenset(),
        )
        for evt in result.scalars().all()
    ]


async def is_reciprocal_like(session: AsyncSession, actor_id: str, target_id: str) -> bool:
    """True iff both directions of the pair are like/super-like."""
    result = await session.execute(
        sa.select(sa.func.count())
        .select_from(SwipeEvent)
        .where(
            sa.or_(
                sa.and_(SwipeEvent.actor_id == actor_id, SwipeEvent.target_id == target_id),
                sa.and_(SwipeEvent.actor_id == target_id, SwipeEvent.target_id == actor_id),
            ),
            SwipeEvent.direction.in_(sorted(POSITIVE_DIRECTIONS)),
        )
    )
    return result.scalar_one() == 2


async def fetch_reciprocal_like_pairs(session: AsyncSession) -> set[tuple[str, str]]:
    """Return every canonically ordered pair that currently likes each other."""
    forward = aliased(SwipeEvent)
    reverse = aliased(SwipeEvent)
    positive = sorted(POSITIVE_DIRECTIONS)

    result = await session.execute(
        sa.select(forward.actor_id, forward.target_id)
        .join(
            reverse,
            sa.and_(reverse.actor_id == forward.target_id, reverse.target_id == forward.actor_id),
        )
        .where(
            forward.actor_id < forward.target_id,
            forward.direction.in_(positive),
            reverse.direction.in_(positive),
        )
    )
    return {(a, b) for a, b in result.all()}


# ---------------------------------------------------------------------------
# Swipe stats
# ---------------------------------------------------------------------------

_DIRECTION_COUNTERS = {
    LIKE: "like_count",
    SUPER_LIKE: "super_like_count",
    DISLIKE: "dislike_count",
}


async def _ensure_swipe_stats(session: AsyncSession, user_id: str) -> None:
    stmt = dialect_insert(session)(UserSwipeStats).values(
        user_id=user_id,
        swipe_count=0,
        swipes_since_refresh=0,
        like_count=0,
        dislike_count=0,
        super_like_count=0,
        latency_total_ms=0,
        latency_samples=0,
        view_total_ms=0,
        view_samples=0,
        active_hours=[0] * 24,
    )
    await session.execute(stmt.on_conflict_do_nothing(index_elements=["user_id"]))


async def record_swipe_stats(
    session: AsyncSession,
    user_id: str,
    direction: str,
    metadata: SwipeMetadata,
    swiped_at: datetime,
) -> UserSwipeStats:
    """Increment the user's swipe counters and behavioural aggregates.

    Counters and metric totals are incremented in SQL so concurrent writers
    never lose an increment.  The active-hour histogram is a JSON column and
    is read-modify-written, so callers serialize swipes per actor.
    """
    await _ensure_swipe_stats(session, user_id)

    columns = UserSwipeStats.__table__.c
    counter = _DIRECTION_COUNTERS[direction]
    values = {
        "swipe_count": columns.swipe_count + 1,
        "swipes_since_refresh": columns.swipes_since_refresh + 1,
        counter: columns[counter] + 1,
        "updated_at": swiped_at,
    }
    if metadata.swipe_latency_ms is not None:
        values["latency_total_ms"] = columns.latency_total_ms + metadata.swipe_latency_ms
        values["latency_samples"] = columns.latency_samples + 1
    if metadata.profile_view_duration_ms is not None:
        values["view_total_ms"] = columns.view_total_ms + metadata.profile_view_duration_ms
        values["view_samples"] = columns.view_samples + 1

    await session.execute(
        sa.update(UserSwipeStats)
        .where(UserSwipeStats.user_id == user_id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )

    stats = await session.get(UserSwipeStats, user_id, populate_existing=True)
    # Reassign so the JSON column is flagged dirty
    hours = list(stats.active_hours or [0] * 24)
    hours[swiped_at.hour] += 1
    stats.active_hours = hours

    await session.flush()
    return stats


async def load_swipe_stats(session: AsyncSession, user_id: str) -> UserSwipeStats | None:
    return await session.get(UserSwipeStats, user_id)


async def consume_refresh_counter(session: AsyncSession, user_id: str, observed: int) -> None:
    """Subtract the swipes a learner run consumed from the refresh counter.

    Swipes recorded after the run read its counter stay counted.
    """
    await session.execute(
        sa.update(UserSwipeStats)
        .where(UserSwipeStats.user_id == user_id)
        .values(
            swipes_since_refresh=sa.case(
                (
                    UserSwipeStats.swipes_since_refresh > observed,
                    UserSwipeStats.swipes_since_refresh - observed,
                ),
                else_=0,
            )
        )
        .execution_options(synchronize_session=False)
    )


async def fetch_refresh_counter(session: AsyncSession, user_id: str) -> int:
    result = await session.execute(
        sa.select(UserSwipeStats.swipes_since_refresh).where(UserSwipeStats.user_id == user_id)
    )
    return result.scalar_one_or_none() or 0


async def fetch_users_due_for_refresh(session: AsyncSession, threshold: int) -> list[str]:
    """Return ids of users whose unprocessed swipe count reached ``threshold``."""
    result = await session.execute(
        sa.select(UserSwipeStats.user_id)
        .where(UserSwipeStats.swipes_since_refresh >= threshold)
        .order_by(UserSwipeStats.user_id)
    )
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Preference models
# ---------------------------------------------------------------------------


def _row_to_model(row: PreferenceModel) -> ImplicitPreferenceModel:
    return ImplicitPreferenceModel(
        user_id=row.user_id,
        tag_weights=dict(row.tag_weights or {}),
        age_center=row.age_center,
        age_spread=row.age_spread,
        sample_count=row.sample_count or 0,
        version=row.version or 0,
        updated_at=row.updated_at,
    )


async def load_preference_model(
    session: AsyncSession, user_id: str
) -> ImplicitPreferenceModel | None:
    row = await session.get(PreferenceModel, user_id)
    return _row_to_model(row) if row is not None else None


async def ensure_preference_model(session: AsyncSession, user_id: str) -> ImplicitPreferenceModel:
    """Load the user's model, lazily creating an empty one on first use.

    Concurrent first requests for the same user both succeed; the insert of
    the loser is a no-op and it reads the row the winner created.
    """
    model = await load_preference_model(session, user_id)
    if model is not None:
        return model

    stmt = dialect_insert(session)(PreferenceModel).values(
        user_id=user_id,
        tag_weights={},
        sample_count=0,
        version=0,
        updated_at=utcnow(),
    )
    await session.execute(stmt.on_conflict_do_nothing(index_elements=["user_id"]))
    row = await session.get(PreferenceModel, user_id, populate_existing=True)
    return _row_to_model(row)


async def save_preference_model(
    session: AsyncSession, model: ImplicitPreferenceModel
) -> ImplicitPreferenceModel:
    """Replace the stored model as a whole unit.

    ``model.version`` must equal the stored version (0 when no row exists);
    the stored version is then bumped by one.

    Raises:
        StaleModelError: If another writer replaced the model in between.
    """
    now = utcnow()
    new_version = model.version + 1
    values = {
        "tag_weights": dict(model.tag_weights),
        "age_center": model.age_center,
        "age_spread": model.age_spread,
        "sample_count": model.sample_count,
        "version": new_version,
        "updated_at": now,
    }

    existing = await session.get(PreferenceModel, model.user_id)
    if existing is None:
        if model.version != 0:
            raise StaleModelError(f"preference model for {model.user_id} was deleted")
        session.add(PreferenceModel(user_id=model.user_id, **values))
        await session.flush()
    else:
        result = await session.execute(
            sa.update(PreferenceModel)
            .where(
                PreferenceModel.user_id == model.user_id,
                PreferenceModel.version == model.version,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount == 0:
            raise StaleModelError(
                f"preference model for {model.user_id} changed since version {model.version}"
            )
        await session.refresh(existing)

    return ImplicitPreferenceModel(
        user_id=model.user_id,
        tag_weights=dict(model.tag_weights),
        age_center=model.age_center,
        age_spread=model.age_spread,
        sample_count=model.sample_count,
        version=new_version,
        updated_at=now,
    )


# ---------------------------------------------------------------------------
# Matches
# ---------------------------------------------------------------------------


async def find_match(session: AsyncSession, user_x: str, user_y: str) -> Match | None:
    user_a, user_b = canonical_pair(user_x, user_y)
    result = await session.execute(
        sa.select(Match).where(Match.user_a_id == user_a, Match.user_b_id == user_b)
    )
    return result.scalar_one_or_none()


async def set_match_state(
    session: AsyncSession, user_x: str, user_y: str, active: bool, now: datetime
) -> Match | None:
    """Create, re-activate or deactivate the match row for a pair.

    Returns the row, or ``None`` when deactivating a pair that never matched.
    """
    match = await find_match(session, user_x, user_y)

    if match is None:
        if not active:
            return None
        user_a, user_b = canonical_pair(user_x, user_y)
        match = Match(user_a_id=user_a, user_b_id=user_b, active=True, created_at=now)
        session.add(match)
    elif match.active != active:
        match.active = active
        match.updated_at = now

    await session.flush()
    return match


async def fetch_active_matches(session: AsyncSession, user_id: str) -> list[Match]:
    result = await session.execute(
        sa.select(Match)
        .where(
            Match.active == True,  # noqa: E712
            sa.or_(Match.user_a_id == user_id, Match.user_b_id == user_id),
        )
        .order_by(Match.created_at.desc(), Match.id.desc())
    )
    return list(result.scalars().all())


async def fetch_active_match_pairs(session: AsyncSession) -> set[tuple[str, str]]:
    result = await session.execute(
        sa.select(Match.user_a_id, Match.user_b_id).where(Match.active == True)  # noqa: E712
    )
    return {(a, b) for a, b in result.all()}
