"""Liveness endpoint, with the state of the background learner."""

from fastapi import APIRouter, Depends

from match_engine.api.deps import get_learner_scheduler
from match_engine.learning.scheduler import LearnerScheduler

router = APIRouter()


@router.get("/health")
async def health(scheduler: LearnerScheduler | None = Depends(get_learner_scheduler)) -> dict:
    return {
        "status": "ok",
        "learner_workers": scheduler.active_workers if scheduler is not None else 0,
    }
