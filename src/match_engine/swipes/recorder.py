"""Swipe recording and mutual-match detection.

A swipe is an idempotent upsert keyed by ``(actor_id, target_id)``: swiping
the same person again overwrites the earlier decision, which is how a user
"undoes" a dislike.  After the write commits, the reciprocal record decides
whether the pair is a mutual match, and the pair's ``Match`` row is brought
in line with that.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import structlog
from sqlalchemy.ext.asyncio import async_sessionmaker

from match_engine.errors import InvalidArgumentError, NotFoundError
from match_engine.learning.scheduler import LearnerScheduler
from match_engine.locks import KeyedLocks
from match_engine.matching.config import LearnerConfig
from match_engine.models.swipe_event import POSITIVE_DIRECTIONS, SWIPE_DIRECTIONS
from match_engine.models.user import User
from match_engine.persistence.repository import (
    SwipeMetadata,
    canonical_pair,
    fetch_active_matches,
    is_reciprocal_like,
    load_swipe_stats,
    record_swipe_stats,
    set_match_state,
    upsert_swipe_event,
    utcnow,
)

logger = structlog.get_logger()

# Both directions of a pair share one lock, so the reciprocal read always
# sees a reverse swipe that committed first.
_pair_locks = KeyedLocks()
# The active-hour histogram on the actor's stats row is read-modify-written.
# Always taken after the pair lock.
_actor_locks = KeyedLocks()


@dataclass(frozen=True)
class SwipeResult:
    is_match: bool
    match_id: int | None = None
    previous_direction: str | None = None
    learner_scheduled: bool = False


@dataclass(frozen=True)
class MatchSummary:
    match_id: int
    user_id: str
    created_at: datetime


@dataclass(frozen=True)
class SwipeStatsSummary:
    user_id: str
    swipe_count: int = 0
    like_count: int = 0
    dislike_count: int = 0
    super_like_count: int = 0
    like_ratio: float | None = None
    avg_swipe_latency_ms: float | None = None
    avg_profile_view_ms: float | None = None
    active_hours: tuple[int, ...] = (0,) * 24


def validate_swipe(actor_id: str, target_id: str, direction: str) -> None:
    """Reject malformed swipes before anything is written."""
    if not actor_id or not target_id:
        raise InvalidArgumentError("actor_id and target_id are required")
    if actor_id == target_id:
        raise InvalidArgumentError("users cannot swipe on themselves")
    if direction not in SWIPE_DIRECTIONS:
        raise InvalidArgumentError(
            f"direction must be one of {sorted(SWIPE_DIRECTIONS)}, got {direction!r}"
        )


async def record_swipe(
    session_factory: async_sessionmaker,
    actor_id: str,
    target_id: str,
    direction: str,
    metadata: SwipeMetadata | None = None,
    config: LearnerConfig | None = None,
    scheduler: LearnerScheduler | None = None,
) -> SwipeResult:
    """Record one swipe decision and report whether it completes a match.

    Args:
        session_factory: Async session factory for DB access.
        actor_id: The user swiping.
        target_id: The user being swiped on.
        direction: ``"like"``, ``"dislike"`` or ``"super_like"``.
        metadata: Optional interaction metadata (latency, view duration).
        config: Learner configuration (refresh threshold).
        scheduler: If given, a learner run is enqueued once the actor's
            swipe counter reaches the refresh threshold.

    Raises:
        InvalidArgumentError: Self-swipe or unknown direction; nothing is written.
        NotFoundError: Either user does not exist.
    """
    validate_swipe(actor_id, target_id, direction)
    metadata = metadata or SwipeMetadata()
    config = config or LearnerConfig()
    log = logger.bind(actor_id=actor_id, target_id=target_id, direction=direction)

    async with _pair_locks.hold(canonical_pair(actor_id, target_id)):
        now = utcnow()

        async with _actor_locks.hold(actor_id), session_factory() as session, session.begin():
            for user_id in (actor_id, target_id):
                if await session.get(User, user_id) is None:
                    raise NotFoundError(f"user {user_id} not found")

            _, previous = await upsert_swipe_event(
                session, actor_id, target_id, direction, metadata, now
            )
            stats = await record_swipe_stats(session, actor_id, direction, metadata, now)
            learner_due = stats.swipes_since_refresh >= config.refresh_threshold

        # Reciprocal check reads the committed state
        async with session_factory() as session, session.begin():
            is_match = await is_reciprocal_like(session, actor_id, target_id)
            match = await set_match_state(session, actor_id, target_id, is_match, now)
            match_id = match.id if match is not None and match.active else None

    if previous is not None and previous != direction:
        log.info("swipe_overwritten", previous_direction=previous)

    if is_match:
        log.info("mutual_match_detected", match_id=match_id)
    elif match is not None and previous in POSITIVE_DIRECTIONS:
        log.info("match_deactivated", match_id=match.id)

    scheduled = False
    if learner_due and scheduler is not None:
        scheduled = scheduler.schedule(actor_id)

    log.info("swipe_recorded", is_match=is_match, learner_scheduled=scheduled)
    return SwipeResult(
        is_match=is_match,
        match_id=match_id,
        previous_direction=previous,
        learner_scheduled=scheduled,
    )


async def list_matches(session_factory: async_sessionmaker, user_id: str) -> list[MatchSummary]:
    """Return the user's active matches, newest first."""
    async with session_factory() as session:
        matches = await fetch_active_matches(session, user_id)

    return [
        MatchSummary(
            match_id=m.id,
            user_id=m.user_b_id if m.user_a_id == user_id else m.user_a_id,
            created_at=m.created_at,
        )
        for m in matches
    ]


async def swipe_stats(session_factory: async_sessionmaker, user_id: str) -> SwipeStatsSummary:
    """Return the user's swipe counters and behavioural aggregates.

    A user who never swiped gets zero counters and no averages.

    Raises:
        NotFoundError: The user does not exist.
    """
    async with session_factory() as session:
        if await session.get(User, user_id) is None:
            raise NotFoundError(f"user {user_id} not found")
        stats = await load_swipe_stats(session, user_id)

    if stats is None:
        return SwipeStatsSummary(user_id=user_id)

    return SwipeStatsSummary(
        user_id=user_id,
        swipe_count=stats.swipe_count,
        like_count=stats.like_count,
        dislike_count=stats.dislike_count,
        super_like_count=stats.super_like_count,
        like_ratio=stats.like_ratio,
        avg_swipe_latency_ms=stats.avg_swipe_latency_ms,
        avg_profile_view_ms=stats.avg_profile_view_ms,
        active_hours=tuple(stats.active_hours or [0] * 24),
    )
