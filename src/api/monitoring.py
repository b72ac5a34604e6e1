"""
Monitoring and metrics API endpoints.

This blueprint provides:
- /metrics: Prometheus-compatible metrics endpoint
- /metrics/json: JSON format metrics
- /health: Basic health check
- /health/ready: Readiness probe
"""

import time
from importlib.metadata import PackageNotFoundError, version

from flask import Blueprint, Response, jsonify

from .state import get_service

# Create the blueprint
monitoring_bp = Blueprint('monitoring', __name__)

# Track startup time
_startup_time = time.time()


@monitoring_bp.route('/metrics', methods=['GET'])
def prometheus_metrics():
    """Prometheus-compatible metrics endpoint."""
    return Response(
        get_service().metrics.to_prometheus(),
        mimetype='text/plain; charset=utf-8'
    )


@monitoring_bp.route('/metrics/json', methods=['GET'])
def json_metrics():
    """JSON format metrics endpoint."""
    return jsonify(get_service().metrics.get_all())


@monitoring_bp.route('/health', methods=['GET'])
def health():
    """
    Basic health check endpoint.

    Returns service status and catalog summary.
    """
    info = get_service().get_info()
    storage = info["storage"]
    return jsonify({
        "status": "healthy" if storage.get("available") else "degraded",
        "service": "OpenShelf API",
        "version": _get_version(),
        "uptime_seconds": time.time() - _startup_time,
        "checks": {
            "catalog": {
                "initialized": info["initialized"],
                "paused": info.get("paused", False),
                "entries": info.get("catalog_count", 0),
            },
            "storage": {
                "available": storage.get("available", False),
                "backend": storage.get("backend_type"),
            },
        },
    })


@monitoring_bp.route('/health/ready', methods=['GET'])
def readiness():
    """
    Readiness probe.

    Ready once storage is reachable and the catalog is initialized.
    """
    service = get_service()
    issues = []

    if not service.storage.is_available():
        issues.append("storage: not available")
    elif not service.is_initialized():
        issues.append("catalog: not initialized")

    if issues:
        return jsonify({"status": "not_ready", "issues": issues}), 503

    return jsonify({"status": "ready"})


def _get_version() -> str:
    """Get application version."""
    try:
        return version("openshelf")
    except PackageNotFoundError:
        return "0.1.0"

