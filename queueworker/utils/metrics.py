"""
In-memory worker metrics.

Counters and histograms recorded by the worker loop:
- jobs_processed_total{queue}: jobs handed to process_job and completed
- job_failures_total{queue}: jobs whose execution raised
- job_duration_seconds{queue}: execution time per job
- worker_stops_total{reason}: why process_queue returned
"""
from collections import defaultdict
from typing import Any
import logging

logger = logging.getLogger("queueworker.metrics")


class MetricsCollector:
    """Simple in-memory metrics collector."""

    def __init__(self):
        self.counters: dict[str, int] = defaultdict(int)
        # running count/sum/min/max per key
        self.histograms: dict[str, dict[str, float]] = {}

    def increment_counter(self, name: str, value: int = 1, labels: dict[str, str] | None = None):
        key = self._build_key(name, labels)
        self.counters[key] += value

    def observe_histogram(self, name: str, value: float, labels: dict[str, str] | None = None):
        key = self._build_key(name, labels)
        agg = self.histograms.get(key)
        if agg is None:
            self.histograms[key] = {"count": 1, "sum": value, "min": value, "max": value}
            return
        agg["count"] += 1
        agg["sum"] += value
        agg["min"] = min(agg["min"], value)
        agg["max"] = max(agg["max"], value)

    def get_counter(self, name: str, labels: dict[str, str] | None = None) -> int:
        return self.counters.get(self._build_key(name, labels), 0)

    def get_histogram_stats(self, name: str, labels: dict[str, str] | None = None) -> dict[str, Any]:
        """count, sum, min, max and avg of the recorded values."""
        agg = self.histograms.get(self._build_key(name, labels))
        if agg is None:
            return {"count": 0, "sum": 0, "min": 0, "max": 0, "avg": 0}
        return {**agg, "avg": agg["sum"] / agg["count"]}

    def get_all_metrics(self) -> dict[str, Any]:
        return {
            "counters": dict(self.counters),
            "histograms": {k: self.get_histogram_stats(k) for k in self.histograms},
        }

    def reset(self):
        self.counters.clear()
        self.histograms.clear()

    @staticmethod
    def _build_key(name: str, labels: dict[str, str] | None) -> str:
        if not labels:
            return name
        label_str = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{label_str}}}"


# Global metrics collector instance
metrics = MetricsCollector()


def record_job_processed(queue: str, duration_seconds: float, collector: MetricsCollector = metrics):
    collector.increment_counter("jobs_processed_total", labels={"queue": queue})
    collector.observe_histogram("job_duration_seconds", duration_seconds, labels={"queue": queue})


def record_job_failed(queue: str, collector: MetricsCollector = metrics):
    collector.increment_counter("job_failures_total", labels={"queue": queue})


def record_worker_stop(reason: str, collector: MetricsCollector = metrics):
    collector.increment_counter("worker_stops_total", labels={"reason": reason})


def get_metrics_summary() -> dict:
    return metrics.get_all_metrics()
