"""
Tests for structured logging helpers
"""

import json
import logging

import pytest

from app.core import LogTimer, clear_context, get_logger, set_item_context, set_request_id
from app.core.logging import StructuredFormatter


@pytest.fixture(autouse=True)
def reset_context():
    clear_context()
    yield
    clear_context()


def _record(message="Stage completed", **extra):
    record = logging.LogRecord("app.services.pipeline.orchestrator", logging.INFO, __file__, 10,
                               message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:
    def test_extra_fields_and_context_ids(self):
        set_request_id("req-1")
        set_item_context("user-1", "item-9")

        payload = json.loads(StructuredFormatter().format(_record(stage=5, component="orchestrator")))

        assert payload["message"] == "Stage completed"
        assert payload["level"] == "INFO"
        assert payload["request_id"] == "req-1"
        assert payload["user_id"] == "user-1"
        assert payload["item_id"] == "item-9"
        assert payload["extra"] == {"stage": 5, "component": "orchestrator"}

    def test_sensitive_values_are_redacted(self):
        record = _record(api_key="AIza-secret", details={"token": "abc", "stage": 2})

        payload = json.loads(StructuredFormatter().format(record))

        assert payload["extra"]["api_key"] == "***REDACTED***"
        assert payload["extra"]["details"] == {"token": "***REDACTED***", "stage": 2}

    def test_cleared_context_is_omitted(self):
        set_item_context("user-1", "item-9")
        clear_context()

        payload = json.loads(StructuredFormatter().format(_record()))

        assert "item_id" not in payload
        assert "user_id" not in payload


class TestLoggerAdapter:
    def test_static_context_is_merged(self, caplog):
        logger = get_logger("app.tests.adapter", component="runner")

        with caplog.at_level(logging.INFO, logger="app.tests.adapter"):
            logger.info("Pass finished", extra={"users": 2})

        record = caplog.records[-1]
        assert record.component == "runner"
        assert record.users == 2

    def test_call_extra_wins_over_static_context(self, caplog):
        logger = get_logger("app.tests.adapter", component="runner")

        with caplog.at_level(logging.INFO, logger="app.tests.adapter"):
            logger.info("Overridden", extra={"component": "scout"})

        assert caplog.records[-1].component == "scout"


class TestLogTimer:
    def test_records_duration(self, caplog):
        logger = get_logger("app.tests.timer")

        with caplog.at_level(logging.INFO, logger="app.tests.timer"):
            with LogTimer(logger, "runner pass") as timer:
                pass

        assert timer.duration_ms >= 0
        assert caplog.records[-1].getMessage() == "Completed: runner pass"

    def test_failure_is_logged_and_reraised(self, caplog):
        logger = get_logger("app.tests.timer")

        with caplog.at_level(logging.INFO, logger="app.tests.timer"):
            with pytest.raises(RuntimeError):
                with LogTimer(logger, "runner pass"):
                    raise RuntimeError("boom")

        assert caplog.records[-1].getMessage() == "Failed: runner pass"
        assert caplog.records[-1].error == "boom"
