"""Tests for the structlog configuration."""

import io
import json
import logging

import pytest
import structlog

from match_engine.logging_config import configure_logging


@pytest.fixture
def log_stream():
    stream = io.StringIO()
    yield stream
    structlog.reset_defaults()
    logging.getLogger().handlers.clear()


def test_json_lines_carry_component(log_stream):
    configure_logging(json_output=True, log_level="INFO", component="cli", stream=log_stream)

    structlog.get_logger("match_engine.test").info("swipe_recorded", actor_id="alice")

    record = json.loads(log_stream.getvalue().splitlines()[-1])
    assert record["event"] == "swipe_recorded"
    assert record["actor_id"] == "alice"
    assert record["component"] == "cli"
    assert record["level"] == "info"


def test_stdlib_loggers_share_format(log_stream):
    configure_logging(json_output=True, log_level="INFO", component="worker", stream=log_stream)

    logging.getLogger("uvicorn.error").warning("port in use")

    record = json.loads(log_stream.getvalue().splitlines()[-1])
    assert record["event"] == "port in use"
    assert record["component"] == "worker"


def test_level_filters_and_quiets_sqlalchemy(log_stream):
    configure_logging(json_output=True, log_level="WARNING", stream=log_stream)

    structlog.get_logger().info("not_shown")
    logging.getLogger("sqlalchemy.engine").info("SELECT 1")

    assert log_stream.getvalue() == ""
    assert logging.getLogger("sqlalchemy.engine").level == logging.WARNING
