"""FastAPI application for the Match Engine API."""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from match_engine.api.routes.config import router as config_router
from match_engine.api.routes.health import router as health_router
from match_engine.api.routes.matches import router as matches_router
from match_engine.api.routes.recommendations import router as recommendations_router
from match_engine.api.routes.swipes import router as swipes_router
from match_engine.config.settings import get_settings
from match_engine.db.session import close_db, get_session_factory
from match_engine.errors import (
    ConfigurationError,
    InvalidArgumentError,
    MatchEngineError,
    NotFoundError,
    RankingTimeoutError,
    ServiceUnavailableError,
)
from match_engine.learning.scheduler import LearnerScheduler
from match_engine.learning.service import PreferenceLearnerService
from match_engine.logging_config import configure_logging
from match_engine.matching.config import ConfigHolder, load_matching_config

logger = structlog.get_logger()

_STATUS_BY_ERROR: list[tuple[type[MatchEngineError], int]] = [
    (InvalidArgumentError, 400),
    (NotFoundError, 404),
    (ConfigurationError, 422),
    (ServiceUnavailableError, 503),
    (RankingTimeoutError, 504),
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    configure_logging(json_output=settings.log_json, log_level=settings.log_level)

    # Invalid weights raise ConfigurationError here and the app never serves
    config = load_matching_config(settings.matching_config_path)
    app.state.config_holder.swap(config)

    # Reads the learner section of the live config on every run
    service = PreferenceLearnerService(get_session_factory(), holder=app.state.config_holder)
    scheduler = LearnerScheduler(service, workers=config.learner.workers)
    await scheduler.start()
    app.state.learner_scheduler = scheduler

    logger.info("api_starting", database=settings.database_url.split("@")[-1])
    try:
        yield
    finally:
        await scheduler.stop()
        app.state.learner_scheduler = None
        await close_db()


app = FastAPI(title="Match Engine API", version="0.1.0", lifespan=lifespan)
app.state.config_holder = ConfigHolder()
app.state.learner_scheduler = None

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://localhost:19006"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MatchEngineError)
async def match_engine_error_handler(request: Request, exc: MatchEngineError) -> JSONResponse:
    """Translate engine errors into HTTP status codes at the request boundary."""
    status_code = 500
    for error_type, code in _STATUS_BY_ERROR:
        if isinstance(exc, error_type):
            status_code = code
            break

    log = logger.bind(path=request.url.path, error_type=type(exc).__name__)
    if status_code >= 500:
        log.error("request_failed", status=status_code, error=str(exc))
    else:
        log.info("request_rejected", status=status_code, error=str(exc))
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


app.include_router(health_router)
app.include_router(swipes_router)
app.include_router(recommendations_router)
app.include_router(matches_router)
app.include_router(config_router)
