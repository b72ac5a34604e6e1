"""
Flask middleware for request logging and metrics.

Provides:
- Request ID tracking (X-Request-ID in and out)
- Logging context for the duration of each request
- HTTP request counters and timings
"""

import logging
import time
import uuid

from flask import Flask, Response, g, request

from monitoring.logging import clear_request_context, set_request_context
from monitoring.metrics import MetricsCollector

logger = logging.getLogger("openshelf.request")

PRINCIPAL_HEX_LENGTH = 64


def setup_request_logging(app: Flask, metrics: MetricsCollector) -> None:
    """
    Set up request logging middleware for a Flask app.

    Args:
        app: Flask application instance
        metrics: Collector the request counters and timings go to
    """

    @app.before_request
    def before_request():
        g.request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        g.start_time = time.perf_counter()

        set_request_context(
            request_id=g.request_id,
            method=request.method,
            path=request.path,
        )

    @app.after_request
    def after_request(response: Response) -> Response:
        _record_request(metrics, response.status_code)

        if hasattr(g, "request_id"):
            response.headers["X-Request-ID"] = g.request_id

        return response

    @app.teardown_request
    def teardown_request(exception=None):
        if exception is not None:
            logger.error(
                "Request failed with exception",
                exc_info=exception,
                extra={
                    "request_id": getattr(g, "request_id", "unknown"),
                    "path": request.path,
                    "method": request.method,
                },
            )
        clear_request_context()


def _record_request(metrics: MetricsCollector, status_code: int) -> None:
    duration_ms = 0.0
    if hasattr(g, "start_time"):
        duration_ms = (time.perf_counter() - g.start_time) * 1000

    path = normalize_path(request.path)
    metrics.increment(
        "http_requests_total",
        labels={"method": request.method, "path": path, "status": str(status_code)},
    )
    metrics.timing(
        "http_request_duration_ms",
        duration_ms,
        labels={"method": request.method, "path": path},
    )

    if status_code >= 500:
        log = logger.error
    elif status_code >= 400:
        log = logger.warning
    else:
        log = logger.info
    log(
        f"{request.method} {request.path} -> {status_code}",
        extra={"status_code": status_code, "duration_ms": round(duration_ms, 2)},
    )


def normalize_path(path: str) -> str:
    """
    Normalize path for metrics labels.

    Entry identifiers and principals become placeholders so label
    cardinality stays bounded.
    """
    parts = path.strip("/").split("/")
    normalized = []

    for part in parts:
        if len(part) == 36 and part.count("-") == 4:
            normalized.append(":id")
        elif len(part) == PRINCIPAL_HEX_LENGTH and all(c in "0123456789abcdef" for c in part.lower()):
            normalized.append(":principal")
        else:
            normalized.append(part)

    return "/" + "/".join(normalized) if normalized else "/"
