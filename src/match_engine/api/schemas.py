"""Pydantic request/response schemas for the Match Engine API."""

from __future__ import annotations

import datetime as dt
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from match_engine.matching.combiner import CompatibilityScore
from match_engine.ranking.ranker import Recommendation

SwipeDirection = Literal["like", "dislike", "super_like"]


# --- Swipes ---


class SwipeMetadataSchema(BaseModel):
    swipe_latency_ms: int | None = Field(default=None, ge=0)
    profile_view_duration_ms: int | None = Field(default=None, ge=0)
    viewed_sections: list[str] = []


class SwipeRequest(BaseModel):
    actor_id: str = Field(min_length=1)
    target_id: str = Field(min_length=1)
    direction: SwipeDirection
    metadata: SwipeMetadataSchema = SwipeMetadataSchema()


class SwipeResponse(BaseModel):
    is_match: bool
    match_id: int | None = None


# --- Scoring ---


class FactorBreakdown(BaseModel):
    interest: float
    demographic: float
    location: float
    behavioral: float


class MatchFactorsResponse(BaseModel):
    viewer_id: str
    candidate_id: str
    score: float
    breakdown: FactorBreakdown
    computed_at: dt.datetime

    @classmethod
    def from_score(
        cls, viewer_id: str, candidate_id: str, score: CompatibilityScore
    ) -> MatchFactorsResponse:
        return cls(
            viewer_id=viewer_id,
            candidate_id=candidate_id,
            score=score.overall,
            breakdown=FactorBreakdown(**score.factors.as_dict()),
            computed_at=score.computed_at,
        )


class RecommendationItem(BaseModel):
    candidate_id: str
    score: float
    breakdown: FactorBreakdown
    computed_at: dt.datetime

    @classmethod
    def from_recommendation(cls, rec: Recommendation) -> RecommendationItem:
        return cls(
            candidate_id=rec.candidate_id,
            score=rec.score.overall,
            breakdown=FactorBreakdown(**rec.score.factors.as_dict()),
            computed_at=rec.score.computed_at,
        )


class RecommendationsResponse(BaseModel):
    viewer_id: str
    limit: int
    offset: int
    partial: bool
    items: list[RecommendationItem]


# --- Matches ---


class MatchSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    match_id: int
    user_id: str
    created_at: dt.datetime


class SwipeStatsSchema(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    swipe_count: int
    like_count: int
    dislike_count: int
    super_like_count: int
    # Likes and super-likes over all swipes
    like_ratio: float | None
    avg_swipe_latency_ms: float | None
    avg_profile_view_ms: float | None
    # Swipe counts per UTC hour of day
    active_hours: list[int]


# --- Config ---


class ScoringWeightsUpdate(BaseModel):
    interest: float | None = None
    demographic: float | None = None
    location: float | None = None
    behavioral: float | None = None


class ConfigUpdateRequest(BaseModel):
    """Partial update; nested sections are deep-merged into the active config."""

    scoring: ScoringWeightsUpdate | None = None
    location: dict | None = None
    demographic: dict | None = None
    behavioral: dict | None = None
    learner: dict | None = None
    ranking: dict | None = None
