"""Recommendation ranker.

Retrieves a bounded candidate pool, scores it concurrently on a thread
pool (fan-out/fan-in), sorts deterministically and paginates.

Sort order: overall score descending, then most recently active, then
candidate id ascending, so the same data always yields the same pages.
"""

from __future__ import annotations

import asyncio
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, timezone

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import async_sessionmaker

from match_engine.errors import (
    InvalidArgumentError,
    NotFoundError,
    RankingTimeoutError,
    ServiceUnavailableError,
)
from match_engine.learning.model import ImplicitPreferenceModel
from match_engine.matching.combiner import CompatibilityScore
from match_engine.matching.compatibility import score_pair
from match_engine.matching.config import MatchingConfig
from match_engine.persistence.repository import (
    ensure_preference_model,
    fetch_candidate_pool,
    fetch_user_profile,
    load_preference_model,
)
from match_engine.ranking.candidate_pool import (
    CandidatePoolStats,
    build_candidate_filters,
    effective_preferences,
    within_max_distance,
)

logger = structlog.get_logger()


@dataclass(frozen=True)
class Recommendation:
    candidate_id: str
    score: CompatibilityScore
    last_active_at: datetime | None = None


@dataclass
class RecommendationPage:
    """One page of ranked candidates.

    ``partial`` is set when a best-effort request timed out and only the
    candidates scored in time were ranked.
    """

    viewer_id: str
    items: list[Recommendation]
    limit: int
    offset: int
    partial: bool = False
    pool: CandidatePoolStats = field(default_factory=CandidatePoolStats)


def ranking_key(rec: Recommendation) -> tuple[float, float, str]:
    activity = rec.last_active_at.timestamp() if rec.last_active_at else float("-inf")
    return (-rec.score.overall, -activity, rec.candidate_id)


def rank(recommendations: list[Recommendation]) -> list[Recommendation]:
    """Sort recommendations into their final, deterministic order."""
    return sorted(recommendations, key=ranking_key)


def _score_batch(
    viewer: dict,
    candidates: list[dict],
    model: ImplicitPreferenceModel | None,
    config: MatchingConfig,
    now: datetime,
) -> list[Recommendation]:
    return [
        Recommendation(
            candidate_id=c["id"],
            score=score_pair(viewer, c, model, config, now),
            last_active_at=c.get("last_active_at"),
        )
        for c in candidates
    ]


async def score_candidates(
    viewer: dict,
    candidates: list[dict],
    model: ImplicitPreferenceModel | None,
    config: MatchingConfig,
    best_effort: bool = False,
    executor: Executor | None = None,
) -> tuple[list[Recommendation], bool]:
    """Score candidates in batches on a thread pool.

    Returns:
        A tuple of (scored recommendations, partial flag).

    Raises:
        RankingTimeoutError: Scoring exceeded ``ranking.timeout_seconds``
            and ``best_effort`` is false.
    """
    if not candidates:
        return [], False

    ranking = config.ranking
    now = datetime.now(timezone.utc)
    batches = [
        candidates[i : i + ranking.batch_size]
        for i in range(0, len(candidates), ranking.batch_size)
    ]

    owned = executor is None
    if executor is None:
        executor = ThreadPoolExecutor(max_workers=ranking.max_workers, thread_name_prefix="ranker")

    loop = asyncio.get_running_loop()
    try:
        futures = [
            loop.run_in_executor(executor, _score_batch, viewer, batch, model, config, now)
            for batch in batches
        ]
        done, pending = await asyncio.wait(futures, timeout=ranking.timeout_seconds)
    finally:
        if owned:
            executor.shutdown(wait=False, cancel_futures=True)

    partial = bool(pending)
    if partial:
        for future in pending:
            future.cancel()
        logger.warning(
            "ranking_timeout",
            viewer_id=viewer["id"],
            batches_done=len(done),
            batches_pending=len(pending),
            best_effort=best_effort,
        )
        if not best_effort:
            raise RankingTimeoutError(
                f"scoring {len(candidates)} candidates exceeded {ranking.timeout_seconds}s"
            )

    # Preserve submission order before the final sort
    scored = [rec for future in futures if future in done for rec in future.result()]
    return scored, partial


async def get_recommendations(
    session_factory: async_sessionmaker,
    viewer_id: str,
    limit: int,
    offset: int = 0,
    config: MatchingConfig | None = None,
    best_effort: bool = False,
) -> RecommendationPage:
    """Return one page of ranked candidates for ``viewer_id``.

    Raises:
        InvalidArgumentError: ``limit <= 0`` or ``offset < 0``.
        NotFoundError: The viewer does not exist.
        ServiceUnavailableError: The candidate pool could not be fetched.
        RankingTimeoutError: Scoring timed out without ``best_effort``.
    """
    if limit <= 0:
        raise InvalidArgumentError(f"limit must be positive, got {limit}")
    if offset < 0:
        raise InvalidArgumentError(f"offset must not be negative, got {offset}")
    if config is None:
        config = MatchingConfig()

    log = logger.bind(viewer_id=viewer_id)
    stats = CandidatePoolStats()

    try:
        async with session_factory() as session, session.begin():
            viewer = await fetch_user_profile(session, viewer_id)
            if viewer is None:
                raise NotFoundError(f"user {viewer_id} not found")

            filters, defaulted = build_candidate_filters(viewer, config)
            candidates = await fetch_candidate_pool(session, viewer_id, filters)
            model = await ensure_preference_model(session, viewer_id)
    except SQLAlchemyError as e:
        log.error("candidate_pool_fetch_failed", error=str(e), exc_info=True)
        raise ServiceUnavailableError("candidate pool is unavailable") from e

    stats.fetched = len(candidates)
    stats.defaulted_preferences = defaulted
    if defaulted:
        log.info("preferences_defaulted", fields=defaulted)

    if config.ranking.exclude_beyond_max_distance:
        preferences, _ = effective_preferences(viewer, config)
        nearby = [
            c for c in candidates if within_max_distance(viewer, c, preferences["max_distance_km"])
        ]
        stats.excluded_beyond_distance = len(candidates) - len(nearby)
        candidates = nearby

    scored, partial = await score_candidates(viewer, candidates, model, config, best_effort)
    ranked = rank(scored)

    log.info(
        "recommendations_ranked",
        pool=stats.fetched,
        scored=len(scored),
        partial=partial,
        limit=limit,
        offset=offset,
    )
    return RecommendationPage(
        viewer_id=viewer_id,
        items=ranked[offset : offset + limit],
        limit=limit,
        offset=offset,
        partial=partial,
        pool=stats,
    )


async def explain_match(
    session_factory: async_sessionmaker,
    viewer_id: str,
    candidate_id: str,
    config: MatchingConfig | None = None,
) -> CompatibilityScore:
    """Re-run the aggregator for one pair ("why this match").

    Raises:
        InvalidArgumentError: ``viewer_id == candidate_id``.
        NotFoundError: Either user does not exist.
    """
    if viewer_id == candidate_id:
        raise InvalidArgumentError("viewer and candidate must differ")
    if config is None:
        config = MatchingConfig()

    try:
        async with session_factory() as session:
            viewer = await fetch_user_profile(session, viewer_id)
            candidate = await fetch_user_profile(session, candidate_id)
            model = await load_preference_model(session, viewer_id)
    except SQLAlchemyError as e:
        logger.error("match_factors_fetch_failed", viewer_id=viewer_id, error=str(e), exc_info=True)
        raise ServiceUnavailableError("profiles are unavailable") from e

    if viewer is None:
        raise NotFoundError(f"user {viewer_id} not found")
    if candidate is None:
        raise NotFoundError(f"user {candidate_id} not found")

    return score_pair(viewer, candidate, model, config)
