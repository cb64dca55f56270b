"""
Logging setup for the deal room service.

Records raised while serving a request can carry the request id plus the
project and session they concern (see middleware.timing). Both formatters
surface that scope so one editing session can be followed across autosaves,
publishes and conflict resolution.

- production: one JSON object per line
- development / testing: single-line text, scope in brackets
- level: LOG_LEVEL config key, then LOG_LEVEL env var, then a per-mode default
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

# Attributes passed through ``extra=`` that are worth keeping in the output
SCOPE_KEYS = ("request_id", "project_id", "session_id")
REQUEST_KEYS = ("method", "path", "status", "duration_ms", "remote_addr")

_QUIET_LOGGERS = ("werkzeug", "sqlalchemy.engine", "alembic")


def _scope(record: logging.LogRecord, keys) -> dict:
    return {k: getattr(record, k) for k in keys if getattr(record, k, None) is not None}


class JSONFormatter(logging.Formatter):
    """One JSON document per record, for the log shipper."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.lineno}",
        }
        entry.update(_scope(record, REQUEST_KEYS + SCOPE_KEYS))
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """``HH:MM:SS LEVEL logger [project/session req] message (12ms)``"""

    def format(self, record: logging.LogRecord) -> str:
        ts = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        scope = _scope(record, SCOPE_KEYS)
        tag = ""
        if scope:
            where = "/".join(str(scope[k]) for k in ("project_id", "session_id") if k in scope)
            rid = scope.get("request_id")
            tag = " [" + " ".join(part for part in (where, rid) if part) + "]"

        line = f"{ts} {record.levelname:<8} {record.name}{tag}: {record.getMessage()}"
        duration = getattr(record, "duration_ms", None)
        if duration is not None:
            line += f" ({duration:.0f}ms)"
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _default_level(app) -> str:
    if app.config.get("TESTING"):
        return "WARNING"
    return "DEBUG" if app.config.get("DEBUG") else "INFO"


def configure_logging(app):
    """Install a single stderr handler on the root logger for ``app``.

    Calling it again (one app per test module, say) replaces the handler
    instead of adding a second one.
    """
    level_name = app.config.get("LOG_LEVEL") or os.getenv("LOG_LEVEL") or _default_level(app)
    level = logging.getLevelName(level_name.upper())
    if not isinstance(level, int):
        level = logging.INFO

    as_json = not app.config.get("DEBUG") and not app.config.get("TESTING")

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if as_json else ReadableFormatter())
    handler.setLevel(level)

    root = logging.getLogger()
    for existing in [h for h in root.handlers if isinstance(h.formatter, (JSONFormatter, ReadableFormatter))]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not app.config.get("TESTING"):
        app.logger.info("Logging configured: level=%s format=%s",
                        logging.getLevelName(level), "json" if as_json else "text")
