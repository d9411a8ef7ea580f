"""
TXD client metrics.

Prometheus counters for submissions, status polls and poll outcomes,
mirrored in a small in-memory store so callers can inspect them without
scraping.
"""

import threading
import logging
from typing import Any, Dict, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest, write_to_textfile

logger = logging.getLogger(__name__)


class TxdMetrics:
    """
    Metrics collector for TXD submissions.

    Example:
        >>> metrics = TxdMetrics()
        >>> metrics.record_submission(success=True)
        >>> metrics.record_poll("Pending")
        >>> print(metrics.get_stats())
    """

    def __init__(self, namespace: str = "txd", registry: Optional[CollectorRegistry] = None):
        """
        Initialize metrics collector.

        Args:
            namespace: Metric name prefix.
            registry: Prometheus registry (a private one is created if None).
        """
        self._namespace = namespace
        self._lock = threading.Lock()
        self._counters: Dict[str, float] = {}
        self._durations: list = []
        self.registry = registry or CollectorRegistry()

        self._submissions = Counter(
            f"{namespace}_submissions_total",
            "Submissions sent to TXD",
            ["result"],
            registry=self.registry,
        )
        self._polls = Counter(
            f"{namespace}_status_polls_total",
            "Status queries sent to TXD, by observed status or error",
            ["result"],
            registry=self.registry,
        )
        self._outcomes = Counter(
            f"{namespace}_poll_outcomes_total",
            "Terminal outcomes of poll sessions",
            ["outcome"],
            registry=self.registry,
        )
        self._poll_duration = Histogram(
            f"{namespace}_poll_duration_seconds",
            "Time from first poll to terminal outcome",
            buckets=(1.0, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0),
            registry=self.registry,
        )

    def _inc(self, key: str) -> None:
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + 1

    def record_submission(self, success: bool) -> None:
        result = "success" if success else "failure"
        self._inc(f"submissions_{result}")
        self._submissions.labels(result=result).inc()

    def record_poll(self, result: str) -> None:
        """Record one status query; result is the observed status or "error"."""
        self._inc(f"polls_{result}")
        self._polls.labels(result=result).inc()

    def record_outcome(self, outcome: str, duration_seconds: float) -> None:
        self._inc(f"outcomes_{outcome}")
        with self._lock:
            self._durations.append(duration_seconds)
        self._outcomes.labels(outcome=outcome).inc()
        self._poll_duration.observe(duration_seconds)

    def get_stats(self) -> Dict[str, Any]:
        """Get current metrics as a dictionary."""
        with self._lock:
            stats: Dict[str, Any] = dict(self._counters)
            if self._durations:
                stats["poll_duration_avg"] = sum(self._durations) / len(self._durations)
                stats["poll_duration_count"] = len(self._durations)
            return stats

    def export(self) -> bytes:
        """Get metrics in Prometheus text format."""
        return generate_latest(self.registry)

    def write_textfile(self, path: str) -> None:
        """Write metrics for the node exporter textfile collector."""
        write_to_textfile(path, self.registry)
        logger.debug(f"Metrics written to {path}")
