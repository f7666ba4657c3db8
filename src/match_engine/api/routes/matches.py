"""Per-user endpoints: active matches and swipe statistics."""

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import async_sessionmaker

from match_engine.api.deps import get_db_factory
from match_engine.api.schemas import MatchSchema, SwipeStatsSchema
from match_engine.swipes.recorder import list_matches, swipe_stats

router = APIRouter(prefix="/api/users", tags=["users"])


@router.get("/{user_id}/matches", response_model=list[MatchSchema])
async def user_matches(
    user_id: str,
    session_factory: async_sessionmaker = Depends(get_db_factory),
) -> list[MatchSchema]:
    matches = await list_matches(session_factory, user_id)
    return [MatchSchema.model_validate(m) for m in matches]


@router.get("/{user_id}/swipe-stats", response_model=SwipeStatsSchema)
async def user_swipe_stats(
    user_id: str,
    session_factory: async_sessionmaker = Depends(get_db_factory),
) -> SwipeStatsSchema:
    """Swipe counters, like ratio, average timings and the active-hour histogram."""
    stats = await swipe_stats(session_factory, user_id)
    return SwipeStatsSchema.model_validate(stats)
