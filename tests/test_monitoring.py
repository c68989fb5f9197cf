from datetime import datetime, timezone

from politecrawl.crawler.fetcher import FetchResult
from politecrawl.utils.monitoring import CrawlerMonitor, MetricsCollector


def make_result(success):
    now = datetime.now(timezone.utc)
    return FetchResult(url="https://a.example/", success=success, started_at=now,
                       finished_at=now, elapsed=0.2, size_bytes=100 if success else 0)


def test_monitor_counts_attempts_failures_and_bytes():
    monitor = CrawlerMonitor(MetricsCollector(enable_prometheus=True))

    monitor.record_fetch(make_result(True))
    monitor.record_fetch(make_result(False))
    monitor.update_frontier(queued=7, in_flight=2)

    values = monitor.metrics.get_current_values()
    assert values['pages_attempted_total'] == 2
    assert values['fetch_failures_total'] == 1
    assert values['bytes_downloaded_total'] == 100
    assert values['frontier_size'] == 7
    assert values['in_flight'] == 2

    exposition = monitor.metrics.export_prometheus().decode()
    assert 'crawler_pages_attempted_total 2.0' in exposition
    assert 'crawler_frontier_size 7.0' in exposition


def test_prometheus_disabled_keeps_in_memory_values():
    collector = MetricsCollector(enable_prometheus=False)
    collector.increment_counter('sink_errors_total', labels={'sink': 'pages'})

    assert collector.export_prometheus() == b''
    assert collector.get_current_values() == {'sink_errors_total{sink=pages}': 1}


def test_summary_includes_rate():
    monitor = CrawlerMonitor()
    monitor.record_fetch(make_result(True))

    summary = monitor.get_summary()
    assert summary['metrics']['pages_attempted_total'] == 1
    assert summary['pages_per_minute'] >= 0
