"""Background worker entry point: python -m match_engine.worker"""

import asyncio
import signal

import structlog

from match_engine.config.settings import get_settings
from match_engine.db.session import close_db, get_session_factory
from match_engine.learning.service import PreferenceLearnerService
from match_engine.logging_config import configure_logging
from match_engine.matching.config import load_matching_config
from match_engine.worker.loop import run_worker


async def main() -> None:
    settings = get_settings()
    configure_logging(json_output=settings.log_json, log_level=settings.log_level, component="worker")
    log = structlog.get_logger()

    session_factory = get_session_factory()
    matching_config = load_matching_config(settings.matching_config_path)
    learner = PreferenceLearnerService(session_factory, matching_config.learner)

    log.info(
        "worker_starting",
        database=settings.database_url.split("@")[-1],
        reconciliation_interval=settings.reconciliation_interval_seconds,
        learner_sweep_interval=settings.learner_sweep_interval_seconds,
    )

    # Graceful shutdown via SIGTERM/SIGINT
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, stop_event.set)

    try:
        await run_worker(
            session_factory,
            learner,
            stop_event,
            settings.reconciliation_interval_seconds,
            settings.learner_sweep_interval_seconds,
        )
    finally:
        await close_db()
    log.info("worker_shutdown")


if __name__ == "__main__":
    asyncio.run(main())
