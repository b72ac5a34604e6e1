"""
Metrics collection for OpenShelf.

Provides a simple, thread-safe metrics collection system that tracks:
- Counters: operations by name and outcome
- Gauges: roster sizes, catalog size, pause flag
- Histograms: operation duration

Metrics are exposed in a format compatible with Prometheus scraping.
"""

import threading
import time
from collections import defaultdict
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any

METRIC_PREFIX = "openshelf"

# Operation latency buckets in milliseconds
DEFAULT_BOUNDS = [0.5, 1, 2.5, 5, 10, 25, 50, 100, 250, 1000]


@dataclass
class HistogramBucket:
    """A histogram bucket for tracking value distributions."""

    le: float  # Less than or equal to
    count: int = 0


@dataclass
class Histogram:
    """A histogram for tracking distributions of values."""

    name: str
    buckets: list[HistogramBucket] = field(default_factory=list)
    sum: float = 0.0
    count: int = 0

    def __post_init__(self):
        if not self.buckets:
            self.buckets = [HistogramBucket(le=b) for b in DEFAULT_BOUNDS]
            self.buckets.append(HistogramBucket(le=float("inf")))

    def observe(self, value: float) -> None:
        """Record an observation."""
        self.sum += value
        self.count += 1
        for bucket in self.buckets:
            if value <= bucket.le:
                bucket.count += 1


class MetricsCollector:
    """
    Thread-safe metrics collector.

    Collects counters, gauges, and histograms with optional labels.
    """

    def __init__(self, prefix: str = METRIC_PREFIX):
        self.prefix = prefix
        self._lock = threading.RLock()
        self._counters: dict[str, dict[str, int]] = defaultdict(lambda: defaultdict(int))
        self._gauges: dict[str, dict[str, float]] = defaultdict(lambda: defaultdict(float))
        self._histograms: dict[str, dict[str, Histogram]] = defaultdict(dict)
        self._start_time = time.time()

    def _labels_key(self, labels: dict[str, str] | None) -> str:
        """Convert labels dict to a hashable key."""
        if not labels:
            return ""
        return ",".join(f'{k}="{v}"' for k, v in sorted(labels.items()))

    # Counter operations

    def increment(self, name: str, value: int = 1, labels: dict[str, str] | None = None) -> None:
        """Increment a counter."""
        with self._lock:
            self._counters[name][self._labels_key(labels)] += value

    def get_counter(self, name: str, labels: dict[str, str] | None = None) -> int:
        """Get current counter value."""
        with self._lock:
            return self._counters[name].get(self._labels_key(labels), 0)

    # Gauge operations

    def set_gauge(self, name: str, value: float, labels: dict[str, str] | None = None) -> None:
        """Set a gauge value."""
        with self._lock:
            self._gauges[name][self._labels_key(labels)] = value

    def get_gauge(self, name: str, labels: dict[str, str] | None = None) -> float:
        """Get current gauge value."""
        with self._lock:
            return self._gauges[name].get(self._labels_key(labels), 0.0)

    # Histogram operations

    def timing(self, name: str, value_ms: float, labels: dict[str, str] | None = None) -> None:
        """Record a timing observation in milliseconds."""
        with self._lock:
            key = self._labels_key(labels)
            if key not in self._histograms[name]:
                self._histograms[name][key] = Histogram(name=name)
            self._histograms[name][key].observe(value_ms)

    def get_histogram_count(self, name: str, labels: dict[str, str] | None = None) -> int:
        with self._lock:
            hist = self._histograms[name].get(self._labels_key(labels))
            return hist.count if hist else 0

    @contextmanager
    def timer(self, name: str, labels: dict[str, str] | None = None):
        """Context manager for timing code blocks."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            self.timing(name, elapsed_ms, labels)

    # Export methods

    def get_all(self) -> dict[str, Any]:
        """Get all metrics as a dictionary."""
        with self._lock:
            result: dict[str, Any] = {
                "uptime_seconds": time.time() - self._start_time,
                "counters": {},
                "gauges": {},
                "histograms": {},
            }

            for kind, store in (("counters", self._counters), ("gauges", self._gauges)):
                for name, values in store.items():
                    if len(values) == 1 and "" in values:
                        result[kind][name] = values[""]
                    else:
                        result[kind][name] = dict(values)

            for name, histograms in self._histograms.items():
                result["histograms"][name] = {}
                for key, hist in histograms.items():
                    result["histograms"][name][key or "_total"] = {
                        "count": hist.count,
                        "sum": hist.sum,
                        "avg": hist.sum / hist.count if hist.count > 0 else 0,
                        "buckets": {str(b.le): b.count for b in hist.buckets},
                    }

            return result

    def _series(self, metric_name: str, key: str, value: Any, extra: str = "") -> str:
        labels = ",".join(part for part in (key, extra) if part)
        if labels:
            return f"{metric_name}{{{labels}}} {value}"
        return f"{metric_name} {value}"

    def to_prometheus(self) -> str:
        """Export metrics in Prometheus text format."""
        lines = []

        with self._lock:
            uptime = time.time() - self._start_time
            lines.append(f"# HELP {self.prefix}_uptime_seconds Time since application start")
            lines.append(f"# TYPE {self.prefix}_uptime_seconds gauge")
            lines.append(f"{self.prefix}_uptime_seconds {uptime:.2f}")
            lines.append("")

            for kind, store in (("counter", self._counters), ("gauge", self._gauges)):
                for name, values in store.items():
                    metric_name = f"{self.prefix}_{name}"
                    lines.append(f"# TYPE {metric_name} {kind}")
                    for key, value in values.items():
                        lines.append(self._series(metric_name, key, value))
                    lines.append("")

            for name, histograms in self._histograms.items():
                metric_name = f"{self.prefix}_{name}"
                lines.append(f"# TYPE {metric_name} histogram")
                for key, hist in histograms.items():
                    for bucket in hist.buckets:
                        le_val = "+Inf" if bucket.le == float("inf") else bucket.le
                        lines.append(
                            self._series(f"{metric_name}_bucket", key, bucket.count, f'le="{le_val}"')
                        )
                    lines.append(self._series(f"{metric_name}_sum", key, f"{hist.sum:.2f}"))
                    lines.append(self._series(f"{metric_name}_count", key, hist.count))
                lines.append("")

        return "\n".join(lines)

    def reset(self) -> None:
        """Reset all metrics (useful for testing)."""
        with self._lock:
            self._counters.clear()
            self._gauges.clear()
            self._histograms.clear()
            self._start_time = time.time()


# Global metrics instance
metrics = MetricsCollector()
