"""
Monitoring utilities

In-memory metrics collection for carrier quoting and bookings:
- Counters (quote successes/failures per carrier, bookings committed/aborted)
- Histograms (carrier quote latency)

Exposed as JSON at /metrics/json.
"""
import logging
from collections import deque
from datetime import datetime, timezone, timedelta
from typing import Dict, Optional
from threading import Lock

logger = logging.getLogger(__name__)


class MetricsCollector:
    """
    In-memory metrics collector.

    For production, export to Prometheus, DataDog, or CloudWatch.
    """

    def __init__(self):
        self._counters: Dict[str, int] = {}
        self._gauges: Dict[str, float] = {}
        self._histograms: Dict[str, deque] = {}
        self._lock = Lock()
        self._start_time = datetime.now(timezone.utc)

    def increment(self, name: str, value: int = 1, labels: Dict[str, str] = None) -> None:
        """Increment a counter metric."""
        key = self._make_key(name, labels)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + value

    def gauge(self, name: str, value: float, labels: Dict[str, str] = None) -> None:
        """Set a gauge metric (point-in-time value)."""
        key = self._make_key(name, labels)
        with self._lock:
            self._gauges[key] = value

    def observe(self, name: str, value: float, labels: Dict[str, str] = None) -> None:
        """Record a histogram observation (e.g., latency)."""
        key = self._make_key(name, labels)
        now = datetime.now(timezone.utc)
        with self._lock:
            if key not in self._histograms:
                self._histograms[key] = deque(maxlen=10000)
            self._histograms[key].append((now, value))

    def _make_key(self, name: str, labels: Optional[Dict[str, str]]) -> str:
        if not labels:
            return name
        label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{label_str}}}"

    def get_counter(self, name: str, labels: Dict[str, str] = None) -> int:
        key = self._make_key(name, labels)
        return self._counters.get(key, 0)

    def get_histogram_stats(self, name: str, labels: Dict[str, str] = None,
                            window_seconds: int = 300) -> Dict:
        """Get histogram statistics for time window."""
        key = self._make_key(name, labels)
        cutoff = datetime.now(timezone.utc) - timedelta(seconds=window_seconds)

        with self._lock:
            if key not in self._histograms:
                return {"count": 0, "avg": 0, "min": 0, "max": 0, "p95": 0}
            values = [v for ts, v in self._histograms[key] if ts > cutoff]

        if not values:
            return {"count": 0, "avg": 0, "min": 0, "max": 0, "p95": 0}

        values.sort()
        p95_idx = int(len(values) * 0.95)

        return {
            "count": len(values),
            "avg": sum(values) / len(values),
            "min": values[0],
            "max": values[-1],
            "p95": values[p95_idx] if p95_idx < len(values) else values[-1],
        }

    def get_all_metrics(self) -> Dict:
        """Get all metrics for export/display."""
        now = datetime.now(timezone.utc)
        with self._lock:
            counters = dict(self._counters)
            gauges = dict(self._gauges)
            histogram_keys = list(self._histograms)

        return {
            "uptime_seconds": (now - self._start_time).total_seconds(),
            "counters": counters,
            "gauges": gauges,
            "histograms": {
                key: self.get_histogram_stats(key) for key in histogram_keys
            },
            "collected_at": now.isoformat(),
        }
