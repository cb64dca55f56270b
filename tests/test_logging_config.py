"""Tests for dealroom.middleware.logging_config formatters and setup."""

import json
import logging

from dealroom.middleware.logging_config import (
    JSONFormatter,
    ReadableFormatter,
    configure_logging,
)


def _record(msg="Draft published", **extra):
    record = logging.LogRecord("dealroom.services", logging.INFO, __file__, 10, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:

    def test_carries_scope_and_request_fields(self):
        line = JSONFormatter().format(_record(
            project_id="p1", session_id="s1", request_id="r1", status=200, duration_ms=12.5,
        ))
        entry = json.loads(line)
        assert entry["message"] == "Draft published"
        assert entry["level"] == "INFO"
        assert entry["project_id"] == "p1"
        assert entry["session_id"] == "s1"
        assert entry["request_id"] == "r1"
        assert entry["status"] == 200

    def test_omits_missing_scope(self):
        entry = json.loads(JSONFormatter().format(_record()))
        assert "project_id" not in entry
        assert "exception" not in entry


class TestReadableFormatter:

    def test_scope_in_brackets(self):
        line = ReadableFormatter().format(_record(project_id="p1", session_id="s1", request_id="r1"))
        assert "dealroom.services [p1/s1 r1]: Draft published" in line

    def test_duration_suffix(self):
        line = ReadableFormatter().format(_record(duration_ms=41.6))
        assert line.endswith("Draft published (42ms)")


class TestConfigureLogging:

    def test_repeated_setup_keeps_one_handler(self, app, monkeypatch):
        monkeypatch.delenv("LOG_LEVEL", raising=False)
        monkeypatch.setitem(app.config, "LOG_LEVEL", None)
        configure_logging(app)
        configure_logging(app)
        ours = [
            h for h in logging.getLogger().handlers
            if isinstance(h.formatter, (JSONFormatter, ReadableFormatter))
        ]
        assert len(ours) == 1
        assert logging.getLogger().level == logging.WARNING
