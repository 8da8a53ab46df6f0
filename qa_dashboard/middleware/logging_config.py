"""
Structured logging configuration.

- Development / testing: one colored line per record, request id and AI
  purpose appended when present
- Production: JSON lines (log aggregator compatible)
- LOG_LEVEL picks the level, LOG_FORMAT ("json" | "readable") overrides the format
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

# Fields passed through ``extra=`` by the timing middleware and the LLM gateway
REQUEST_FIELDS = ("method", "path", "status", "duration_ms", "remote_addr", "request_id")
AI_FIELDS = ("purpose", "provider", "model")

QUIET_LOGGERS = ("urllib3", "werkzeug", "sqlalchemy.engine", "httpx", "openai", "anthropic")


def _extras(record: logging.LogRecord, names) -> dict:
    return {
        name: getattr(record, name)
        for name in names
        if getattr(record, name, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per record."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "line": record.lineno,
        }
        entry.update(_extras(record, REQUEST_FIELDS + AI_FIELDS))
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    """Colored single-line formatter for the terminal."""

    LEVEL_COLORS = {
        "DEBUG": "\033[36m",
        "INFO": "\033[32m",
        "WARNING": "\033[33m",
        "ERROR": "\033[31m",
        "CRITICAL": "\033[35m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelname, "")
        clock = datetime.fromtimestamp(record.created).strftime("%H:%M:%S")
        line = f"{color}{clock} {record.levelname:<8}{self.RESET} {record.name}: {record.getMessage()}"

        tags = []
        if getattr(record, "request_id", None):
            tags.append(f"req={record.request_id}")
        if getattr(record, "duration_ms", None) is not None:
            tags.append(f"{record.duration_ms:.0f}ms")
        if getattr(record, "purpose", None):
            tags.append(f"ai={record.purpose}")
        if tags:
            line += " [" + " ".join(tags) + "]"

        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def _resolve(app):
    """(level_name, use_json) for this app."""
    is_testing = app.config.get("TESTING", False)
    is_prod = not app.config.get("DEBUG", False) and not is_testing

    level_name = (os.getenv("LOG_LEVEL") or ("INFO" if is_prod else "DEBUG")).upper()
    fmt = (app.config.get("LOG_FORMAT") or "").lower()
    use_json = fmt == "json" if fmt in ("json", "readable") else is_prod
    return level_name, use_json


def configure_logging(app):
    """Install a single stderr handler on the root logger."""
    level_name, use_json = _resolve(app)
    level = getattr(logging, level_name, logging.INFO)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if use_json else ReadableFormatter())
    handler.setLevel(level)

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    app.logger.setLevel(level)

    if not app.config.get("TESTING", False):
        app.logger.info("Logging configured: level=%s format=%s",
                        level_name, "json" if use_json else "readable")
