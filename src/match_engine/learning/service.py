"""Preference learner runtime: load history, learn, replace the model.

Runs are serialized per user with a keyed lock, so two concurrent
refreshes for the same user never interleave their read-compute-replace
steps.  A version conflict from another process triggers one recompute.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog
from sqlalchemy.ext.asyncio import async_sessionmaker

from match_engine.errors import StaleModelError
from match_engine.learning.model import ImplicitPreferenceModel
from match_engine.learning.strategy import PreferenceLearner, WeightedAffinityLearner
from match_engine.locks import KeyedLocks
from match_engine.matching.config import ConfigHolder, LearnerConfig
from match_engine.persistence.repository import (
    consume_refresh_counter,
    fetch_refresh_counter,
    fetch_swipe_history,
    fetch_users_due_for_refresh,
    load_preference_model,
    save_preference_model,
)

logger = structlog.get_logger()

MAX_ATTEMPTS = 2


@dataclass
class LearnerRunResult:
    """Outcome of one learner run for one user."""

    user_id: str
    status: str  # "updated" | "skipped"
    model: ImplicitPreferenceModel | None = None
    history_size: int = 0


class PreferenceLearnerService:
    """Refreshes implicit preference models using a pluggable strategy.

    Given a ``ConfigHolder``, every run reads the learner section of the
    config that is active when the run starts, so a hot swap reaches runs
    that have not started yet.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker,
        config: LearnerConfig | None = None,
        strategy: PreferenceLearner | None = None,
        holder: ConfigHolder | None = None,
    ) -> None:
        self.session_factory = session_factory
        self._config = config or LearnerConfig()
        self._strategy = strategy
        self._holder = holder
        self._locks = KeyedLocks()

    @property
    def config(self) -> LearnerConfig:
        if self._holder is not None:
            return self._holder.current.learner
        return self._config

    async def refresh(self, user_id: str) -> LearnerRunResult:
        """Recompute and persist the model for one user.

        Fewer than ``min_likes`` likes in the window is not an error: the
        prior model is left untouched and the run is reported as skipped.
        """
        log = logger.bind(user_id=user_id)

        async with self._locks.hold(user_id):
            attempt = 1
            while True:
                try:
                    return await self._refresh_once(user_id, log)
                except StaleModelError:
                    if attempt >= MAX_ATTEMPTS:
                        raise
                    log.warning("preference_model_conflict", attempt=attempt)
                    attempt += 1

    async def _refresh_once(self, user_id: str, log) -> LearnerRunResult:
        config = self.config
        strategy = self._strategy or WeightedAffinityLearner(config)

        async with self.session_factory() as session, session.begin():
            observed = await fetch_refresh_counter(session, user_id)
            previous = await load_preference_model(session, user_id)
            history = await fetch_swipe_history(session, user_id, config.window_size)

            model = strategy.learn(user_id, history, previous)
            await consume_refresh_counter(session, user_id, observed)

            if model is None:
                log.info("learner_skipped_insufficient_likes", history_size=len(history))
                return LearnerRunResult(user_id=user_id, status="skipped", history_size=len(history))

            # Replace relative to the version we actually read
            expected = previous.version if previous else 0
            saved = await save_preference_model(session, model.with_version(expected))

        log.info(
            "preference_model_updated",
            version=saved.version,
            sample_count=saved.sample_count,
            tags=len(saved.tag_weights),
            age_center=saved.age_center,
        )
        return LearnerRunResult(
            user_id=user_id, status="updated", model=saved, history_size=len(history)
        )

    async def refresh_due_models(self) -> list[LearnerRunResult]:
        """Refresh every user whose swipe counter reached the threshold."""
        async with self.session_factory() as session:
            user_ids = await fetch_users_due_for_refresh(session, self.config.refresh_threshold)

        results = []
        for user_id in user_ids:
            try:
                results.append(await self.refresh(user_id))
            except Exception as e:
                logger.error("learner_run_failed", user_id=user_id, error=str(e), exc_info=True)

        logger.info(
            "learner_sweep_complete",
            due=len(user_ids),
            updated=sum(1 for r in results if r.status == "updated"),
        )
        return results
