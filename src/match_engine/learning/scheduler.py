"""Background queue that runs learner refreshes off the request path.

``schedule`` only enqueues and returns immediately.  A user already waiting
in the queue is not enqueued twice; per-user serialization of the actual
runs is handled by ``PreferenceLearnerService``.
"""

from __future__ import annotations

import asyncio

import structlog

from match_engine.learning.service import PreferenceLearnerService

logger = structlog.get_logger()

# Queued to retire one worker once it is idle
_STOP = None


class LearnerScheduler:
    def __init__(self, service: PreferenceLearnerService, workers: int = 1) -> None:
        self.service = service
        self.workers = workers
        self._queue: asyncio.Queue[str | None] = asyncio.Queue()
        self._pending: set[str] = set()
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    @property
    def active_workers(self) -> int:
        return len(self._tasks)

    def schedule(self, user_id: str) -> bool:
        """Enqueue a learner run for ``user_id``.

        Returns ``False`` if a run for that user is already pending.
        """
        if user_id in self._pending:
            return False
        self._pending.add(user_id)
        self._queue.put_nowait(user_id)
        logger.debug("learner_run_scheduled", user_id=user_id, queued=self._queue.qsize())
        return True

    async def start(self) -> None:
        if self._tasks:
            return
        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"learner-worker-{i}")
            for i in range(self.workers)
        ]
        logger.info("learner_scheduler_started", workers=self.workers)

    def resize(self, workers: int) -> None:
        """Change the worker count, e.g. after a config swap.

        New workers start at once.  Surplus workers retire after the runs
        queued ahead of them, so no scheduled run is dropped.
        """
        previous, self.workers = self.workers, workers
        if not self._tasks or workers == previous:
            return

        if workers > previous:
            self._tasks.extend(
                asyncio.create_task(self._worker(i), name=f"learner-worker-{i}")
                for i in range(previous, workers)
            )
        else:
            for _ in range(previous - workers):
                self._queue.put_nowait(_STOP)
        logger.info("learner_scheduler_resized", workers=workers, previous=previous)

    async def join(self) -> None:
        """Wait until every scheduled run has finished."""
        await self._queue.join()

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("learner_scheduler_stopped", dropped=self._queue.qsize())

    async def _worker(self, index: int) -> None:
        while True:
            user_id = await self._queue.get()
            if user_id is _STOP:
                self._tasks.remove(asyncio.current_task())
                self._queue.task_done()
                return
            self._pending.discard(user_id)
            try:
                await self.service.refresh(user_id)
            except Exception as e:
                logger.error(
                    "learner_run_failed", user_id=user_id, worker=index, error=str(e), exc_info=True
                )
            finally:
                self._queue.task_done()
