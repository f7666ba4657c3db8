"""Swipe recording endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from match_engine.api.deps import get_db_factory, get_learner_scheduler, get_matching_config
from match_engine.api.schemas import SwipeRequest, SwipeResponse
from match_engine.learning.scheduler import LearnerScheduler
from match_engine.matching.config import MatchingConfig
from match_engine.persistence.repository import SwipeMetadata
from match_engine.swipes.recorder import record_swipe

router = APIRouter(prefix="/api/swipes", tags=["swipes"])


@router.post("", response_model=SwipeResponse)
async def post_swipe(
    body: SwipeRequest,
    session_factory: async_sessionmaker = Depends(get_db_factory),
    config: MatchingConfig = Depends(get_matching_config),
    scheduler: LearnerScheduler | None = Depends(get_learner_scheduler),
) -> SwipeResponse:
    """Record a swipe and report whether it completed a mutual match.

    Re-swiping the same target overwrites the earlier decision.
    """
    result = await record_swipe(
        session_factory,
        body.actor_id,
        body.target_id,
        body.direction,
        SwipeMetadata(
            swipe_latency_ms=body.metadata.swipe_latency_ms,
            profile_view_duration_ms=body.metadata.profile_view_duration_ms,
            viewed_sections=tuple(body.metadata.viewed_sections),
        ),
        config.learner,
        scheduler,
    )
    return SwipeResponse(is_match=result.is_match, match_id=result.match_id)
