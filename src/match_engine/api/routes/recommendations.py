"""Recommendation and match-explanation endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import async_sessionmaker

from match_engine.api.deps import get_db_factory, get_matching_config
from match_engine.api.schemas import (
    MatchFactorsResponse,
    RecommendationItem,
    RecommendationsResponse,
)
from match_engine.matching.config import MatchingConfig
from match_engine.ranking.ranker import explain_match, get_recommendations

router = APIRouter(prefix="/api/users", tags=["recommendations"])


@router.get("/{viewer_id}/recommendations", response_model=RecommendationsResponse)
async def recommendations(
    viewer_id: str,
    limit: int = Query(default=20, le=100),
    offset: int = Query(default=0),
    best_effort: bool = Query(default=False),
    session_factory: async_sessionmaker = Depends(get_db_factory),
    config: MatchingConfig = Depends(get_matching_config),
) -> RecommendationsResponse:
    """Ranked, paginated candidates for a viewer with per-factor breakdowns."""
    page = await get_recommendations(
        session_factory, viewer_id, limit, offset, config, best_effort=best_effort
    )
    return RecommendationsResponse(
        viewer_id=page.viewer_id,
        limit=page.limit,
        offset=page.offset,
        partial=page.partial,
        items=[RecommendationItem.from_recommendation(r) for r in page.items],
    )


@router.get("/{viewer_id}/match-factors/{candidate_id}", response_model=MatchFactorsResponse)
async def match_factors(
    viewer_id: str,
    candidate_id: str,
    session_factory: async_sessionmaker = Depends(get_db_factory),
    config: MatchingConfig = Depends(get_matching_config),
) -> MatchFactorsResponse:
    """Explain the compatibility score for one viewer/candidate pair."""
    score = await explain_match(session_factory, viewer_id, candidate_id, config)
    return MatchFactorsResponse.from_score(viewer_id, candidate_id, score)
