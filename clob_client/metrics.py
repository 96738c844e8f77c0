"""
Prometheus metrics for the transport and the streaming client.
"""

import logging
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, start_http_server

logger = logging.getLogger(__name__)


class Metrics:
    """
    Prometheus metrics collector.

    Tracks:
    - HTTP request count and latency
    - Transport retries by reason
    - Streaming reconnects, received events and dropped events
    """

    def __init__(self, enabled: bool = True, port: Optional[int] = None,
                 registry: Optional[CollectorRegistry] = None):
        """
        Initialize metrics.

        Args:
            enabled: Enable metrics collection
            port: Exporter port; no HTTP server is started when None
            registry: Collector registry (a private one is created if None)
        """
        self.enabled = enabled
        self.registry = registry or CollectorRegistry()

        if not self.enabled:
            return

        self.http_requests = Counter(
            'clob_http_requests_total',
            'Total HTTP attempts',
            ['method', 'path', 'status'],
            registry=self.registry
        )

        self.http_latency = Histogram(
            'clob_http_latency_seconds',
            'HTTP attempt latency',
            ['method', 'path'],
            registry=self.registry
        )

        self.http_retries = Counter(
            'clob_http_retries_total',
            'Transport retries',
            ['method', 'path', 'reason'],
            registry=self.registry
        )

        self.ws_reconnects = Counter(
            'clob_ws_reconnects_total',
            'Streaming reconnect attempts',
            ['channel'],
            registry=self.registry
        )

        self.ws_events = Counter(
            'clob_ws_events_total',
            'Streaming events received',
            ['channel', 'event_type'],
            registry=self.registry
        )

        self.ws_dropped = Counter(
            'clob_ws_dropped_events_total',
            'Streaming events dropped on a full listener queue',
            ['channel'],
            registry=self.registry
        )

        self.ws_connected = Gauge(
            'clob_ws_connected',
            'Streaming connection state (1=connected)',
            ['channel'],
            registry=self.registry
        )

        if port is not None:
            try:
                start_http_server(port, registry=self.registry)
                logger.info(f"Metrics server started on port {port}")
            except OSError as e:
                logger.error(f"Failed to start metrics server: {e}")

    def track_request(self, method: str, path: str, status: str, duration: float) -> None:
        """Record one HTTP attempt."""
        if self.enabled:
            self.http_requests.labels(method=method, path=path, status=status).inc()
            self.http_latency.labels(method=method, path=path).observe(duration)

    def track_retry(self, method: str, path: str, reason: str) -> None:
        """Record a retry decision."""
        if self.enabled:
            self.http_retries.labels(method=method, path=path, reason=reason).inc()

    def track_reconnect(self, channel: str) -> None:
        if self.enabled:
            self.ws_reconnects.labels(channel=channel).inc()

    def track_event(self, channel: str, event_type: str) -> None:
        if self.enabled:
            self.ws_events.labels(channel=channel, event_type=event_type or "unknown").inc()

    def track_dropped(self, channel: str) -> None:
        if self.enabled:
            self.ws_dropped.labels(channel=channel).inc()

    def set_connected(self, channel: str, connected: bool) -> None:
        if self.enabled:
            self.ws_connected.labels(channel=channel).set(1 if connected else 0)


# Global metrics instance
_metrics: Optional[Metrics] = None


def get_metrics(enabled: bool = True, port: Optional[int] = None) -> Metrics:
    """Get or create the process-wide metrics instance."""
    global _metrics
    if _metrics is None:
        _metrics = Metrics(enabled=enabled, port=port)
    return _metrics
