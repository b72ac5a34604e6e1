"""
Monitoring and metrics infrastructure for OpenShelf.

This package provides:
- Operation metrics collection (counters, gauges, histograms)
- Structured logging with JSON output
- Flask request middleware (request IDs, HTTP metrics, logging context)

Usage:
    from monitoring import metrics, get_logger

    metrics.increment("operations_total", labels={"operation": "mint_credential", "outcome": "ok"})

    logger = get_logger(__name__)
    logger.info("Something happened", extra={"operation": "pause"})
"""

from monitoring.logging import LoggingContext, configure_logging, get_logger
from monitoring.metrics import MetricsCollector, metrics

__all__ = [
    "LoggingContext",
    "MetricsCollector",
    "configure_logging",
    "get_logger",
    "metrics",
]
