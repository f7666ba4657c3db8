"""Periodic background jobs: match reconciliation and learner catch-up."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog
from sqlalchemy.ext.asyncio import async_sessionmaker

from match_engine.learning.service import PreferenceLearnerService
from match_engine.swipes.reconciliation import reconcile_matches

logger = structlog.get_logger()


async def run_periodically(
    name: str,
    job: Callable[[], Awaitable[object]],
    interval_seconds: float,
    stop_event: asyncio.Event,
) -> None:
    """Run ``job`` every ``interval_seconds`` until ``stop_event`` is set.

    A failing run is logged and the loop carries on with the next tick.
    """
    log = logger.bind(job=name)
    while not stop_event.is_set():
        try:
            await job()
        except Exception as e:
            log.error("periodic_job_failed", error=str(e), exc_info=True)

        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
        except asyncio.TimeoutError:
            pass
    log.info("periodic_job_stopped")


async def run_worker(
    session_factory: async_sessionmaker,
    learner: PreferenceLearnerService,
    stop_event: asyncio.Event,
    reconciliation_interval_seconds: float,
    learner_sweep_interval_seconds: float,
) -> None:
    """Run the reconciliation sweep and the learner sweep side by side."""
    await asyncio.gather(
        run_periodically(
            "reconcile_matches",
            lambda: reconcile_matches(session_factory),
            reconciliation_interval_seconds,
            stop_event,
        ),
        run_periodically(
            "refresh_due_models",
            learner.refresh_due_models,
            learner_sweep_interval_seconds,
            stop_event,
        ),
    )
