"""
Monitoring and metrics collection for the web crawler system.
"""

import time
import logging
from typing import Dict, Optional, Any

from prometheus_client import Counter, Histogram, Gauge, CollectorRegistry, generate_latest
from prometheus_client import start_http_server


class MetricsCollector:
    """Collects crawler metrics in memory and mirrors them to Prometheus."""

    def __init__(self, enable_prometheus: bool = False, prometheus_port: int = 8000):
        self.logger = logging.getLogger(__name__)
        self.values: Dict[str, float] = {}
        self.enable_prometheus = enable_prometheus
        self.prometheus_port = prometheus_port

        self.prometheus_registry: Optional[CollectorRegistry] = None
        self.prometheus_metrics = {}

        if self.enable_prometheus:
            self._setup_prometheus()

    def _setup_prometheus(self):
        """Setup Prometheus metrics."""
        self.prometheus_registry = CollectorRegistry()

        self.prometheus_metrics = {
            'pages_attempted_total': Counter(
                'crawler_pages_attempted_total',
                'Total number of fetch attempts',
                registry=self.prometheus_registry
            ),
            'fetch_failures_total': Counter(
                'crawler_fetch_failures_total',
                'Total number of failed fetches',
                registry=self.prometheus_registry
            ),
            'sink_errors_total': Counter(
                'crawler_sink_errors_total',
                'Total number of persistence sink failures',
                ['sink'],
                registry=self.prometheus_registry
            ),
            'bytes_downloaded_total': Counter(
                'crawler_bytes_downloaded_total',
                'Total bytes downloaded',
                registry=self.prometheus_registry
            ),
            'response_time_seconds': Histogram(
                'crawler_response_time_seconds',
                'Elapsed time of fetch attempts',
                registry=self.prometheus_registry
            ),
            'frontier_size': Gauge(
                'crawler_frontier_size',
                'Number of URLs waiting in the frontier',
                registry=self.prometheus_registry
            ),
            'in_flight': Gauge(
                'crawler_in_flight',
                'Number of fetches currently executing',
                registry=self.prometheus_registry
            ),
        }

        self.logger.info("Prometheus metrics initialized")

    def start_prometheus_server(self):
        """Start Prometheus metrics HTTP server."""
        if not self.enable_prometheus:
            return

        try:
            start_http_server(self.prometheus_port, registry=self.prometheus_registry)
            self.logger.info(f"Prometheus metrics server started on port {self.prometheus_port}")
        except OSError as e:
            self.logger.error(f"Failed to start Prometheus server: {e}")

    def increment_counter(self, name: str, amount: float = 1, labels: Optional[Dict[str, str]] = None):
        """Increment a counter metric."""
        key = _key(name, labels)
        self.values[key] = self.values.get(key, 0) + amount

        prom_metric = self.prometheus_metrics.get(name)
        if prom_metric is not None:
            if labels:
                prom_metric.labels(**labels).inc(amount)
            else:
                prom_metric.inc(amount)

    def set_gauge(self, name: str, value: float):
        """Set a gauge metric value."""
        self.values[name] = value
        prom_metric = self.prometheus_metrics.get(name)
        if prom_metric is not None:
            prom_metric.set(value)

    def observe_histogram(self, name: str, value: float):
        """Record a histogram observation."""
        self.values[name] = value
        prom_metric = self.prometheus_metrics.get(name)
        if prom_metric is not None:
            prom_metric.observe(value)

    def get_current_values(self) -> Dict[str, float]:
        """Get current values of all metrics."""
        return dict(self.values)

    def export_prometheus(self) -> bytes:
        """Render the Prometheus text exposition, empty when disabled."""
        if self.prometheus_registry is None:
            return b''
        return generate_latest(self.prometheus_registry)


def _key(name: str, labels: Optional[Dict[str, str]]) -> str:
    if not labels:
        return name
    label_str = ','.join(f"{k}={v}" for k, v in sorted(labels.items()))
    return f"{name}{{{label_str}}}"


class CrawlerMonitor:
    """High-level monitoring interface for the crawler."""

    def __init__(self, metrics_collector: Optional[MetricsCollector] = None):
        self.metrics = metrics_collector or MetricsCollector()
        self.start_time = time.time()

    def record_fetch(self, result):
        """Record the outcome of one fetch attempt."""
        self.metrics.increment_counter('pages_attempted_total')
        self.metrics.observe_histogram('response_time_seconds', result.elapsed)
        if result.success:
            self.metrics.increment_counter('bytes_downloaded_total', result.size_bytes)
        else:
            self.metrics.increment_counter('fetch_failures_total')

    def record_sink_error(self, sink_name: str):
        """Record a persistence sink failure."""
        self.metrics.increment_counter('sink_errors_total', labels={'sink': sink_name})

    def update_frontier(self, queued: int, in_flight: int):
        """Update the frontier gauges."""
        self.metrics.set_gauge('frontier_size', queued)
        self.metrics.set_gauge('in_flight', in_flight)

    def get_summary(self) -> Dict[str, Any]:
        """Get a summary of all metrics."""
        current_values = self.metrics.get_current_values()
        runtime = time.time() - self.start_time
        attempted = current_values.get('pages_attempted_total', 0)

        return {
            'runtime_seconds': runtime,
            'metrics': current_values,
            'pages_per_minute': attempted / (runtime / 60) if runtime > 0 else 0,
        }


def initialize_monitoring(enable_prometheus: bool = False, prometheus_port: int = 8000) -> CrawlerMonitor:
    """Create a monitor and start the Prometheus endpoint when enabled."""
    metrics_collector = MetricsCollector(enable_prometheus, prometheus_port)
    metrics_collector.start_prometheus_server()
    return CrawlerMonitor(metrics_collector)
