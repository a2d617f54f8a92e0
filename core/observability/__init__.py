"""
Observability Module for the Katana connector

Provides:
- Structured logging with correlation IDs
- Metrics collection (requests, errors, rate gate waits, pagination, latency)
"""

from core.observability.metrics import (
    MetricsCollector,
    get_metrics,
    record_request,
    record_error,
    record_rate_gate,
    record_page,
    record_fetch_all,
)

from core.observability.logging import (
    get_logger,
    configure_logging,
    CorrelationContext,
    with_correlation,
)

__all__ = [
    # Metrics
    "MetricsCollector",
    "get_metrics",
    "record_request",
    "record_error",
    "record_rate_gate",
    "record_page",
    "record_fetch_all",
    # Logging
    "get_logger",
    "configure_logging",
    "CorrelationContext",
    "with_correlation",
]
