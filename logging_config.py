"""
Structured logging configuration.

- JSON lines in production, human-readable text in development
- Every record carries the request id (taken from X-Request-ID or generated)
- One access line per request with the authenticated user id
"""

from __future__ import annotations

import json
import logging
import time
import uuid

from flask import Flask, g, has_request_context, request
from flask_login import current_user

ACCESS_LOGGER = "study_planner.access"

# Attributes every LogRecord has; anything else was passed via ``extra=``.
_RESERVED = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


class RequestIdFilter(logging.Filter):
    """Attach the current request id (or "-") to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "request_id"):
            record.request_id = getattr(g, "request_id", "-") if has_request_context() else "-"
        return True


class JSONFormatter(logging.Formatter):
    """Emit log records as single-line JSON, including ``extra`` fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, value in vars(record).items():
            if key not in _RESERVED and key not in entry:
                entry[key] = value
        if record.exc_info and record.exc_info[0]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def _user_id() -> int | str:
    return current_user.id if current_user and current_user.is_authenticated else "-"


def init_logging(app: Flask) -> None:
    """Configure the root logger and register request-id/access-log hooks."""
    log_level = app.config.get("LOG_LEVEL", "INFO")

    handler = logging.StreamHandler()
    handler.addFilter(RequestIdFilter())
    if app.config.get("LOG_FORMAT", "text") == "json":
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s [%(request_id)s]: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        ))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(getattr(logging, log_level.upper(), logging.INFO))

    # werkzeug's own request lines duplicate the access log
    logging.getLogger("werkzeug").setLevel(logging.WARNING)

    access = logging.getLogger(ACCESS_LOGGER)

    @app.before_request
    def _start_request():
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]
        g.request_start = time.time()

    @app.after_request
    def _access_log(response):
        duration_ms = (time.time() - g.get("request_start", time.time())) * 1000
        response.headers["X-Request-ID"] = g.get("request_id", "-")
        access.info(
            "%s %s %s %.0fms user=%s",
            request.method,
            request.path,
            response.status_code,
            duration_ms,
            _user_id(),
            extra={"status": response.status_code, "duration_ms": round(duration_ms)},
        )
        return response
