"""REST API endpoints for the live matching configuration."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends

from match_engine.api.deps import get_config_holder, get_learner_scheduler
from match_engine.api.schemas import ConfigUpdateRequest
from match_engine.learning.scheduler import LearnerScheduler
from match_engine.matching.config import ConfigHolder, MatchingConfig, build_matching_config

logger = structlog.get_logger()

router = APIRouter(prefix="/api/config", tags=["config"])


def _deep_merge(base: dict, updates: dict) -> dict:
    """Recursively merge *updates* into *base*, only overwriting leaves."""
    merged = dict(base)
    for key, value in updates.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


@router.get("", response_model=MatchingConfig)
async def get_config(holder: ConfigHolder = Depends(get_config_holder)) -> MatchingConfig:
    """Return the active matching configuration."""
    return holder.current


@router.patch("", response_model=MatchingConfig)
async def patch_config(
    body: ConfigUpdateRequest,
    holder: ConfigHolder = Depends(get_config_holder),
    scheduler: LearnerScheduler | None = Depends(get_learner_scheduler),
) -> MatchingConfig:
    """Apply a partial update and swap it in if it validates.

    The merged config goes through the same validation as the YAML file, so
    weights that do not sum to 1.0 are rejected and the active config stays
    in place.  Learner runs pick up the new learner section when they start;
    the scheduler is resized to the new worker count.
    """
    update_data = body.model_dump(exclude_unset=True, exclude_none=True)
    merged = _deep_merge(holder.current.model_dump(), update_data)

    new_config = build_matching_config(merged)
    holder.swap(new_config)
    if scheduler is not None:
        scheduler.resize(new_config.learner.workers)

    logger.info("config_updated", sections=sorted(update_data))
    return new_config
