import json
import logging
import math
import threading
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Dict, List

from logguard.schemas.metrics import ApiCallMetric, PerformanceSummary

logger = logging.getLogger(__name__)

MAX_METRICS = 1000
RECENT_CALLS_RETURNED = 50


def calculate_percentile(values: List[float], percentile: int) -> float:
    """Nearest-rank percentile. Returns 0 for an empty list."""
    if not values:
        return 0.0
    ordered = sorted(values)
    index = max(math.ceil((percentile / 100) * len(ordered)) - 1, 0)
    return ordered[index]


class PerformanceMetrics:
    """Bounded in-memory record of outbound API calls."""

    def __init__(self, max_metrics: int = MAX_METRICS):
        self._metrics: deque = deque(maxlen=max_metrics)
        self._lock = threading.Lock()

    def record_api_call(self, endpoint: str, method: str, status: int, duration: float, success: bool) -> None:
        metric = ApiCallMetric(
            endpoint=endpoint,
            method=method,
            status=status,
            duration=duration,
            success=success,
            timestamp=datetime.now(timezone.utc),
        )
        with self._lock:
            self._metrics.append(metric)
        logger.debug(f"API call {method} {endpoint} -> {status} ({duration:.0f}ms)")

    def _snapshot(self) -> List[ApiCallMetric]:
        with self._lock:
            return list(self._metrics)

    def endpoint_stats(self) -> Dict[str, Dict[str, float]]:
        """Average and p95 duration per 'METHOD endpoint'."""
        grouped: Dict[str, List[float]] = {}
        for m in self._snapshot():
            grouped.setdefault(f"{m.method} {m.endpoint}", []).append(m.duration)
        return {
            key: {
                "average": sum(durations) / len(durations),
                "p95": calculate_percentile(durations, 95),
                "count": len(durations),
            }
            for key, durations in grouped.items()
        }

    def get_metrics(self) -> PerformanceSummary:
        metrics = self._snapshot()
        if not metrics:
            return PerformanceSummary(
                api_calls=[],
                total_requests=0,
                successful_requests=0,
                failed_requests=0,
                average_response_time=0,
                slowest_endpoint="",
                fastest_endpoint="",
                error_rate=0,
            )

        total = len(metrics)
        successful = sum(1 for m in metrics if m.success)
        by_average = sorted(self.endpoint_stats().items(), key=lambda item: item[1]["average"], reverse=True)

        return PerformanceSummary(
            api_calls=metrics[-RECENT_CALLS_RETURNED:],
            total_requests=total,
            successful_requests=successful,
            failed_requests=total - successful,
            average_response_time=round(sum(m.duration for m in metrics) / total),
            slowest_endpoint=by_average[0][0],
            fastest_endpoint=by_average[-1][0],
            error_rate=(total - successful) / total * 100,
        )

    def get_endpoint_metrics(self, endpoint: str) -> List[ApiCallMetric]:
        return [m for m in self._snapshot() if m.endpoint == endpoint]

    def get_recent_metrics(self, minutes: int = 5) -> List[ApiCallMetric]:
        cutoff = datetime.now(timezone.utc) - timedelta(minutes=minutes)
        return [m for m in self._snapshot() if m.timestamp and m.timestamp > cutoff]

    def get_error_rate(self) -> float:
        metrics = self._snapshot()
        if not metrics:
            return 0.0
        return sum(1 for m in metrics if not m.success) / len(metrics) * 100

    def reset(self) -> None:
        with self._lock:
            self._metrics.clear()

    def export_metrics(self) -> str:
        return json.dumps(
            {
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "metrics": self.get_metrics().model_dump(mode="json"),
                "endpoints": self.endpoint_stats(),
            },
            indent=2,
        )
