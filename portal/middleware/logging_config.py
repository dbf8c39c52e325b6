"""
Logging setup for the portal.

Two output shapes share one root handler:
    readable   coloured single line per record (development, tests)
    json       one JSON object per record (production, log shippers)

``LOG_LEVEL`` sets the level and ``LOG_FORMAT`` (readable | json) overrides
the shape picked from the environment.  Lifecycle events pass their context
through ``extra=`` and the JSON shape copies the keys listed in
``AUDIT_FIELDS`` and ``REQUEST_FIELDS``.
"""

import json
import logging
import os
import sys
from datetime import UTC, datetime

REQUEST_FIELDS = ("method", "path", "status", "duration_ms", "remote_addr", "request_id")
AUDIT_FIELDS = (
    "event_type",
    "application_id",
    "service_type",
    "actor",
    "from_status",
    "to_status",
    "certificate_number",
)

_QUIET_LOGGERS = ("werkzeug", "sqlalchemy.engine", "urllib3")

_LEVEL_COLOURS = {
    logging.DEBUG: "\033[36m",
    logging.INFO: "\033[32m",
    logging.WARNING: "\033[33m",
    logging.ERROR: "\033[31m",
    logging.CRITICAL: "\033[35m",
}
_RESET = "\033[0m"


class JSONFormatter(logging.Formatter):
    """Machine-readable record with request and audit context."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        for key in REQUEST_FIELDS + AUDIT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                payload[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL logger: message [app=... actor=...]`` in colour."""

    def format(self, record: logging.LogRecord) -> str:
        colour = _LEVEL_COLOURS.get(record.levelno, "")
        stamp = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{colour}{stamp} {record.levelname:<8}{_RESET} {record.name}: {record.getMessage()}"

        context = []
        app_id = getattr(record, "application_id", None)
        if app_id:
            context.append(f"app={app_id[:8]}")
        actor = getattr(record, "actor", None)
        if actor:
            context.append(f"actor={actor}")
        if context:
            line += f" [{' '.join(context)}]"

        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install the root handler for *app*'s environment."""
    testing = app.config.get("TESTING", False)
    production = not app.config.get("DEBUG", False) and not testing

    level_name = os.getenv("LOG_LEVEL", "INFO" if production else "DEBUG").upper()
    level = getattr(logging, level_name, logging.INFO)
    shape = os.getenv("LOG_FORMAT", "json" if production else "readable").lower()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if shape == "json" else ReadableFormatter())
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not testing:
        app.logger.info("Logging configured: level=%s format=%s", level_name, shape)
