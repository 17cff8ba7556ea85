"""
Prometheus metrics for monitoring the alert-triage agent.

Defines and exposes metrics for:
- Alert capture and storage
- Notification delivery outcomes
- AI review outcomes and skipped cycles
- Preference memory merges

Metrics are exposed via HTTP endpoint for Prometheus scraping.
"""

import logging

from prometheus_client import (
    REGISTRY,
    Counter,
    Gauge,
    start_http_server,
)

from src.config.settings import get_settings

logger = logging.getLogger(__name__)


class MetricsCollector:
    """
    Prometheus metrics collector for the docket agent.

    Usage:
        metrics = get_metrics()
        metrics.start_server()

        metrics.record_delivery("success")
        metrics.record_review("failed")
    """

    def __init__(self):
        """Initialize Prometheus metrics."""

        self.alerts_enqueued = Counter(
            "docket_agent_alerts_enqueued_total",
            "Total number of alerts captured into the alert store",
            ["severity"],
        )

        self.deliveries = Counter(
            "docket_agent_deliveries_total",
            "Alert delivery attempts",
            ["outcome", "source"],  # outcome: success, failure; source: queue, retry
        )

        self.failed_dispatch_size = Gauge(
            "docket_agent_failed_dispatch_size",
            "Entries currently held in the failed dispatch collection",
        )

        self.reviews = Counter(
            "docket_agent_reviews_total",
            "Per-alert AI review outcomes",
            ["outcome"],  # completed, failed
        )

        self.review_cycles_skipped = Counter(
            "docket_agent_review_cycles_skipped_total",
            "Review cycles skipped because a previous cycle was still running",
        )

        self.memory_merges = Counter(
            "docket_agent_memory_merges_total",
            "Learnings merges applied to agent memory",
            ["outcome"],  # applied, consent_denied
        )

        self.store_write_failures = Counter(
            "docket_agent_store_write_failures_total",
            "Durable store writes that could not be persisted",
            ["key"],
        )

        logger.info("Prometheus metrics initialized")

    def start_server(self, port: int | None = None) -> None:
        """
        Start Prometheus metrics HTTP server.

        Args:
            port: Port to expose metrics on (default from settings)
        """
        settings = get_settings()
        port = port or settings.metrics_port

        start_http_server(port, registry=REGISTRY)
        logger.info("Prometheus metrics server started on port %d", port)

    def record_enqueue(self, severity: str) -> None:
        self.alerts_enqueued.labels(severity=severity).inc()

    def record_delivery(self, outcome: str, source: str = "queue") -> None:
        self.deliveries.labels(outcome=outcome, source=source).inc()

    def record_review(self, outcome: str) -> None:
        self.reviews.labels(outcome=outcome).inc()

    def record_write_failure(self, key: str) -> None:
        self.store_write_failures.labels(key=key).inc()


# Global metrics instance
_metrics: MetricsCollector | None = None


def get_metrics() -> MetricsCollector:
    """Get global metrics collector instance."""
    global _metrics
    if _metrics is None:
        _metrics = MetricsCollector()
    return _metrics
