"""
Request timing middleware.

Every response carries ``X-Request-ID`` (echoed from the caller when given)
and ``X-Request-Duration-Ms``.  Slow requests and 5xx responses are logged
with the acting identity so a failed status change can be traced back to
the reviewer who sent it.
"""

import logging
import time
import uuid

from flask import Flask, g, request

logger = logging.getLogger(__name__)

# Polled by the load balancer
_QUIET_BLUEPRINTS = frozenset({"health"})

SLOW_THRESHOLD_MS = 1000


def _request_extra(response, duration_ms: float) -> dict:
    return {
        "method": request.method,
        "path": request.path,
        "status": response.status_code,
        "duration_ms": duration_ms,
        "remote_addr": request.remote_addr,
        "request_id": getattr(g, "request_id", ""),
        "actor": request.headers.get("X-Actor"),
    }


def init_request_timing(app: Flask):
    """Register before/after hooks for request timing."""
    slow_ms = app.config.get("SLOW_REQUEST_MS", SLOW_THRESHOLD_MS)

    @app.before_request
    def _start_timer():
        g.request_start = time.perf_counter()
        g.request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:12]

    @app.after_request
    def _log_request(response):
        start = getattr(g, "request_start", None)
        if start is None:
            return response

        duration_ms = (time.perf_counter() - start) * 1000
        response.headers["X-Request-Duration-Ms"] = f"{duration_ms:.1f}"
        response.headers["X-Request-ID"] = g.request_id

        if request.blueprint in _QUIET_BLUEPRINTS:
            return response

        line = "%s %s %d (%.0fms)"
        args = (request.method, request.path, response.status_code, duration_ms)
        extra = _request_extra(response, duration_ms)
        if response.status_code >= 500:
            logger.error("Server error: " + line, *args, extra=extra)
        elif duration_ms > slow_ms:
            logger.warning("Slow request: " + line, *args, extra=extra)
        else:
            logger.debug("Request: " + line, *args, extra=extra)
        return response
