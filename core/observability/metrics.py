"""
Metrics Collection for the Katana connector

Collects and exposes metrics for:
- Outbound requests (by method and HTTP status)
- Classified upstream errors (by error kind)
- Rate gate waits
- Pages fetched by the paginator
- Request latency (average, p95) by endpoint template

Metrics are kept in memory for the lifetime of the process.
"""

from collections import defaultdict
from dataclasses import dataclass, field
from threading import Lock
from typing import Dict, List, Optional, Any
import statistics


# =============================================================================
# Metric Data Classes
# =============================================================================

@dataclass
class RequestMetrics:
    """Metrics for outbound HTTP requests."""
    sent: int = 0
    succeeded: int = 0
    failed: int = 0

    by_method: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    by_status: Dict[int, int] = field(default_factory=lambda: defaultdict(int))
    errors_by_kind: Dict[str, int] = field(default_factory=lambda: defaultdict(int))


@dataclass
class RateGateMetrics:
    """Metrics for client-side throttling."""
    acquisitions: int = 0
    waits: int = 0
    total_wait_ms: float = 0.0


@dataclass
class PaginationMetrics:
    """Metrics for cursor pagination."""
    fetches: int = 0
    pages: int = 0
    records: int = 0
    truncated: int = 0


@dataclass
class TimingMetrics:
    """Request latency metrics."""
    # Raw timing samples (keep last N for percentile calculations)
    samples: List[float] = field(default_factory=list)
    max_samples: int = 1000

    by_endpoint: Dict[str, List[float]] = field(default_factory=lambda: defaultdict(list))

    def add_sample(self, duration_ms: float, endpoint: str = None):
        """Add a timing sample."""
        self.samples.append(duration_ms)
        if len(self.samples) > self.max_samples:
            self.samples = self.samples[-self.max_samples:]

        if endpoint:
            self.by_endpoint[endpoint].append(duration_ms)
            if len(self.by_endpoint[endpoint]) > self.max_samples:
                self.by_endpoint[endpoint] = self.by_endpoint[endpoint][-self.max_samples:]

    def get_average(self, endpoint: str = None) -> float:
        """Get average request time."""
        samples = self.by_endpoint.get(endpoint, []) if endpoint else self.samples
        return statistics.mean(samples) if samples else 0.0

    def get_p95(self, endpoint: str = None) -> float:
        """Get 95th percentile request time."""
        samples = self.by_endpoint.get(endpoint, []) if endpoint else self.samples
        if not samples:
            return 0.0
        sorted_samples = sorted(samples)
        idx = int(len(sorted_samples) * 0.95)
        return sorted_samples[min(idx, len(sorted_samples) - 1)]


# =============================================================================
# Metrics Collector (Singleton)
# =============================================================================

class MetricsCollector:
    """
    Thread-safe metrics collector for Katana API traffic.

    Usage:
        metrics = MetricsCollector.instance()
        metrics.record_request("GET", "/sales_orders", 200, duration_ms=120)
        metrics.record_error("validation")
    """

    _instance: Optional["MetricsCollector"] = None
    _lock = Lock()

    def __init__(self):
        self.requests = RequestMetrics()
        self.rate_gate = RateGateMetrics()
        self.pagination = PaginationMetrics()
        self.timings = TimingMetrics()
        self._lock = Lock()

    @classmethod
    def instance(cls) -> "MetricsCollector":
        """Get singleton instance."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = cls()
        return cls._instance

    def reset(self):
        """Clear all collected metrics."""
        with self._lock:
            self.requests = RequestMetrics()
            self.rate_gate = RateGateMetrics()
            self.pagination = PaginationMetrics()
            self.timings = TimingMetrics()

    # =========================================================================
    # Request Metrics
    # =========================================================================

    def record_request(self, method: str, endpoint: str, status: int, duration_ms: float = None):
        """Record a completed HTTP exchange.

        Args:
            method: HTTP method
            endpoint: Endpoint template (ids collapsed), used for latency buckets
            status: HTTP status code (0 when no response was received)
            duration_ms: Round-trip time
        """
        with self._lock:
            self.requests.sent += 1
            self.requests.by_method[method] += 1
            self.requests.by_status[status] += 1
            if 200 <= status < 300:
                self.requests.succeeded += 1
            else:
                self.requests.failed += 1

            if duration_ms is not None:
                self.timings.add_sample(duration_ms, endpoint)

    def record_error(self, kind: str):
        """Record a classified upstream error."""
        with self._lock:
            self.requests.errors_by_kind[kind] += 1

    # =========================================================================
    # Rate Gate Metrics
    # =========================================================================

    def record_rate_gate(self, waited_ms: float):
        """Record one rate gate acquisition and how long it waited."""
        with self._lock:
            self.rate_gate.acquisitions += 1
            if waited_ms > 0:
                self.rate_gate.waits += 1
                self.rate_gate.total_wait_ms += waited_ms

    # =========================================================================
    # Pagination Metrics
    # =========================================================================

    def record_page(self, record_count: int):
        """Record one page returned to the paginator."""
        with self._lock:
            self.pagination.pages += 1
            self.pagination.records += record_count

    def record_fetch_all(self, truncated: bool = False):
        """Record one completed fetch-all call."""
        with self._lock:
            self.pagination.fetches += 1
            if truncated:
                self.pagination.truncated += 1

    # =========================================================================
    # Timing
    # =========================================================================

    def get_timing_stats(self, endpoint: str = None) -> Dict[str, float]:
        """Get latency statistics for an endpoint template."""
        with self._lock:
            return {
                "average_ms": self.timings.get_average(endpoint),
                "p95_ms": self.timings.get_p95(endpoint),
                "sample_count": len(self.timings.by_endpoint.get(endpoint, []) if endpoint else self.timings.samples),
            }

    # =========================================================================
    # Summary
    # =========================================================================

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        with self._lock:
            return {
                "requests": {
                    "sent": self.requests.sent,
                    "succeeded": self.requests.succeeded,
                    "failed": self.requests.failed,
                    "by_method": dict(self.requests.by_method),
                    "by_status": dict(self.requests.by_status),
                    "errors_by_kind": dict(self.requests.errors_by_kind),
                },
                "rate_gate": {
                    "acquisitions": self.rate_gate.acquisitions,
                    "waits": self.rate_gate.waits,
                    "total_wait_ms": self.rate_gate.total_wait_ms,
                },
                "pagination": {
                    "fetches": self.pagination.fetches,
                    "pages": self.pagination.pages,
                    "records": self.pagination.records,
                    "truncated": self.pagination.truncated,
                },
                "timings": {
                    "overall": {
                        "average_ms": self.timings.get_average(),
                        "p95_ms": self.timings.get_p95(),
                    },
                    "by_endpoint": {
                        endpoint: {
                            "average_ms": self.timings.get_average(endpoint),
                            "p95_ms": self.timings.get_p95(endpoint),
                        }
                        for endpoint in self.timings.by_endpoint.keys()
                    },
                },
            }


# =============================================================================
# Module-level convenience functions
# =============================================================================

def get_metrics() -> MetricsCollector:
    """Get the global metrics collector."""
    return MetricsCollector.instance()


def record_request(method: str, endpoint: str, status: int, duration_ms: float = None):
    """Record a completed HTTP exchange."""
    get_metrics().record_request(method, endpoint, status, duration_ms)


def record_error(kind: str):
    """Record a classified upstream error."""
    get_metrics().record_error(kind)


def record_rate_gate(waited_ms: float):
    """Record one rate gate acquisition."""
    get_metrics().record_rate_gate(waited_ms)


def record_page(record_count: int):
    """Record one page returned to the paginator."""
    get_metrics().record_page(record_count)


def record_fetch_all(truncated: bool = False):
    """Record one completed fetch-all call."""
    get_metrics().record_fetch_all(truncated)
