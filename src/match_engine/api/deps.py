"""FastAPI dependency injection for DB access and engine state."""

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from match_engine.db.session import get_session_factory
from match_engine.learning.scheduler import LearnerScheduler
from match_engine.matching.config import ConfigHolder, MatchingConfig


def get_db_factory() -> async_sessionmaker[AsyncSession]:
    """Session factory for services that manage their own transactions."""
    return get_session_factory()


def get_config_holder(request: Request) -> ConfigHolder:
    return request.app.state.config_holder


def get_matching_config(request: Request) -> MatchingConfig:
    """Snapshot of the active config, fixed for the whole request."""
    return request.app.state.config_holder.current


def get_learner_scheduler(request: Request) -> LearnerScheduler | None:
    return getattr(request.app.state, "learner_scheduler", None)
