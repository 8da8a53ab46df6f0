"""
Request timing middleware.

Every response carries X-Request-ID (echoed from the request when the client
sent one) and X-Request-Duration-Ms. API requests are logged once on the way
out; health probes are not logged.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

QUIET_PATH_PREFIX = "/api/v1/health"

# Completion calls routinely take seconds, so /ai/ gets its own bar
SLOW_MS = 1000
SLOW_AI_MS = 15000


def _slow_threshold(path: str) -> int:
    return SLOW_AI_MS if path.startswith("/api/v1/ai/") else SLOW_MS


def _log_level(status: int, duration_ms: float, path: str) -> tuple[int, str]:
    if status >= 500:
        return logging.ERROR, "Server error"
    if duration_ms > _slow_threshold(path):
        return logging.WARNING, "Slow request"
    return logging.DEBUG, "Request"


def init_request_timing(app: Flask):
    """Register the before/after hooks. Call before init_auth so rejected requests are timed."""

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _finish_timer(response):
        start = getattr(g, "request_start", None)
        if start is None:
            return response

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-ID"] = g.request_id
        response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.1f}"

        if request.path.startswith(QUIET_PATH_PREFIX):
            return response

        level, label = _log_level(response.status_code, duration_ms, request.path)
        logger.log(
            level, "%s: %s %s %d (%.0fms)",
            label, request.method, request.path, response.status_code, duration_ms,
            extra={
                "method": request.method,
                "path": request.path,
                "status": response.status_code,
                "duration_ms": duration_ms,
                "remote_addr": request.remote_addr,
                "request_id": g.request_id,
            },
        )
        return response
