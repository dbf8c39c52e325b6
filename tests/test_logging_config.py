"""Log formatters: audit context in JSON records and the readable line."""

import json
import logging

from portal.middleware.logging_config import JSONFormatter, ReadableFormatter


def _record(**extra):
    record = logging.LogRecord(
        "portal.services.application_lifecycle", logging.INFO, __file__, 10,
        "Application %s approved", ("abc",), None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    def test_audit_fields_copied(self):
        out = json.loads(JSONFormatter().format(_record(
            event_type="status_changed", application_id="abc", actor="Mariam", to_status="APPROVED",
        )))
        assert out["message"] == "Application abc approved"
        assert out["level"] == "INFO"
        assert out["event_type"] == "status_changed"
        assert out["actor"] == "Mariam"
        assert out["to_status"] == "APPROVED"
        assert "from_status" not in out

    def test_unknown_extra_ignored(self):
        out = json.loads(JSONFormatter().format(_record(password="secret")))
        assert "password" not in out


class TestReadableFormatter:
    def test_context_suffix(self):
        line = ReadableFormatter().format(_record(application_id="abcdef1234", actor="Mariam"))
        assert "Application abc approved" in line
        assert line.endswith("[app=abcdef12 actor=Mariam]")

    def test_no_context(self):
        line = ReadableFormatter().format(_record())
        assert "app=" not in line
        assert "actor=" not in line
