"""
Tests for structured JSON logging.
"""

import io
import json
import logging

import pytest

from shared.infrastructure.logging import (
    AlertingJsonFormatter, REDACTED, correlation_scope, current_correlation_id,
    get_logger, log_latency, setup_logging
)


def format_record(formatter, message, **extra):
    record = logging.LogRecord("alerting.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return json.loads(formatter.format(record))


class TestAlertingJsonFormatter:

    def test_adds_service_context(self):
        formatter = AlertingJsonFormatter("%(name)s %(levelname)s %(message)s", environment="test")

        payload = format_record(formatter, "Alert recorded", organization_id="org-1")

        assert payload["message"] == "Alert recorded"
        assert payload["levelname"] == "INFO"
        assert payload["organization_id"] == "org-1"
        assert payload["environment"] == "test"
        assert payload["service"] == "alert-sla-engine"
        assert payload["timestamp"].endswith("+00:00")
        assert "correlation_id" not in payload

    def test_redacts_sensitive_fields(self):
        formatter = AlertingJsonFormatter("%(message)s")

        payload = format_record(formatter, "connect", db_password="hunter2", api_key="abc", rows=3)

        assert payload["db_password"] == REDACTED
        assert payload["api_key"] == REDACTED
        assert payload["rows"] == 3

    def test_explicit_correlation_id_wins(self):
        formatter = AlertingJsonFormatter("%(message)s")

        with correlation_scope("outer"):
            payload = format_record(formatter, "ack", correlation_id="req-42")

        assert payload["correlation_id"] == "req-42"


class TestCorrelationScope:

    def test_scope_tags_records(self):
        formatter = AlertingJsonFormatter("%(message)s")

        with correlation_scope("req-7") as correlation_id:
            payload = format_record(formatter, "Acknowledge rejected")

        assert correlation_id == "req-7"
        assert payload["correlation_id"] == "req-7"
        assert current_correlation_id() is None

    def test_generated_id_and_nesting(self):
        with correlation_scope() as outer:
            assert outer
            with correlation_scope("inner"):
                assert current_correlation_id() == "inner"
            assert current_correlation_id() == outer


class TestSetupLogging:

    def test_writes_json_lines(self):
        stream = io.StringIO()
        root = logging.getLogger()
        previous_handlers, previous_level = list(root.handlers), root.level

        try:
            setup_logging("DEBUG", "test", stream=stream)
            with log_latency(get_logger("alerting.test"), "record_alerts", organization_id="org-1"):
                pass
        finally:
            root.handlers[:] = previous_handlers
            root.setLevel(previous_level)

        payload = json.loads(stream.getvalue().splitlines()[-1])
        assert payload["message"] == "record_alerts finished"
        assert payload["outcome"] == "ok"
        assert payload["organization_id"] == "org-1"
        assert payload["environment"] == "test"

    def test_unknown_level(self):
        with pytest.raises(ValueError):
            setup_logging("LOUD")


def test_log_latency_reports_errors(caplog):
    logger = get_logger("alerting.test")

    with caplog.at_level(logging.INFO):
        with pytest.raises(RuntimeError):
            with log_latency(logger, "acknowledge"):
                raise RuntimeError("store down")

    assert caplog.records[-1].outcome == "error"
    assert caplog.records[-1].operation == "acknowledge"
