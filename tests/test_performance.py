import threading
import time
from datetime import datetime, timedelta, timezone

import pytest

from whatsfunc.metrics import Metric, MetricType
from whatsfunc.performance import (
    BenchmarkResult,
    Benchmarker,
    PerformanceMonitor,
    PerformanceReport,
    enable_performance_monitoring,
    get_performance_report,
    record_search_operation,
)

NOW = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)


def _metric(name, value):
    return Metric(name, MetricType.GAUGE, value, "value", NOW)


def _names(metrics):
    return {metric.name for metric in metrics}


def test_monitor_enabled_by_default_and_can_be_disabled():
    monitor = PerformanceMonitor()
    assert monitor.is_enabled() is True
    monitor.enable(False)
    assert monitor.is_enabled() is False


def test_record_search_operation_updates_metrics():
    monitor = PerformanceMonitor()
    monitor.record_search_operation(timedelta(milliseconds=10), 5, False, 10)
    monitor.record_search_operation(timedelta(milliseconds=5), 3, True, 8)
    collector = monitor.collector()

    assert collector.counter("cache_hits_total").value() == 1
    assert collector.counter("cache_misses_total").value() == 1
    assert collector.counter("searches_total", {"cache_hit": "true"}).value() == 1
    assert collector.counter("searches_total", {"cache_hit": "false"}).value() == 1
    assert collector.gauge("search_results").value() == 3.0

    query_lengths = collector.histogram("query_length")
    assert query_lengths.count() == 2
    assert query_lengths.sum() == 18.0

    miss_timer = collector.timer("search_duration", {"cache_hit": "false"})
    assert miss_timer.histogram().sum() == 10.0


def test_record_search_operation_accepts_seconds():
    monitor = PerformanceMonitor()
    monitor.record_search_operation(0.25, 1, True, 4)
    timer = monitor.collector().timer("search_duration", {"cache_hit": "true"})
    assert timer.histogram().sum() == pytest.approx(250.0)


def test_disabled_monitor_records_nothing():
    monitor = PerformanceMonitor()
    monitor.enable(False)
    monitor.record_search_operation(timedelta(milliseconds=1), 1, True, 1)
    monitor.record_database_operation("load", timedelta(milliseconds=1), True)
    monitor.record_memory_usage()
    assert monitor.collector().get_all_metrics() == []


def test_record_database_operation():
    monitor = PerformanceMonitor()
    monitor.record_database_operation("load", timedelta(milliseconds=100), True)
    tags = {"operation": "load", "success": "true"}
    collector = monitor.collector()
    assert collector.counter("database_operations_total", tags).value() == 1
    histogram = collector.timer("database_operation_duration", tags).histogram()
    assert histogram.sum() == 100.0


def test_record_memory_usage_sets_gauges():
    monitor = PerformanceMonitor()
    monitor.record_memory_usage()
    names = _names(monitor.collector().get_all_metrics())
    assert {"memory_alloc_bytes", "memory_sys_bytes", "gc_runs_total", "threads_active"} <= names
    assert monitor.collector().gauge("threads_active").value() >= 1


def test_performance_report_contents():
    monitor = PerformanceMonitor()
    monitor.record_search_operation(timedelta(milliseconds=10), 5, False, 10)
    monitor.record_search_operation(timedelta(milliseconds=5), 3, True, 8)
    monitor.record_database_operation("load", timedelta(milliseconds=100), True)
    monitor.record_memory_usage()

    report = monitor.get_performance_report()
    assert report.timestamp.year >= 2024
    assert len(report.application_metrics) > 0
    assert len(report.system_metrics) > 0
    assert report.cache_hit_ratio == 0.5
    assert report.thread_count >= 1


def test_report_derived_metrics():
    report = PerformanceReport(
        timestamp=NOW,
        application_metrics=[
            _metric("search_duration_count", 4.0),
            _metric("search_duration_sum", 10.0),
            _metric("cache_hits_total", 3.0),
            _metric("cache_misses_total", 1.0),
            _metric("searches_total", 4.0),
        ],
        system_metrics=[
            _metric("system_uptime", 2.0),
            _metric("system_memory_alloc", 2.0 * 1024 * 1024),
            _metric("system_threads", 5.0),
        ],
    )
    assert report.average_search_time == 2.5
    assert report.cache_hit_ratio == 0.75
    assert report.searches_per_second == 2.0
    assert report.memory_usage_mb == 2.0
    assert report.thread_count == 5


def test_report_without_data_has_zero_derived_values():
    report = PerformanceReport(timestamp=NOW, application_metrics=[], system_metrics=[])
    assert report.average_search_time == 0.0
    assert report.cache_hit_ratio == 0.0
    assert report.searches_per_second == 0.0
    assert report.memory_usage_mb == 0.0
    assert report.thread_count == 0


def test_report_string():
    report = PerformanceReport(
        timestamp=NOW,
        application_metrics=[_metric("cache_hits_total", 3.0), _metric("cache_misses_total", 1.0)],
        system_metrics=[_metric("system_threads", 2.0)],
    )
    text = str(report)
    assert text.startswith("Performance Report (2024-01-02 03:04:05):")
    assert "Cache Hit Ratio: 75.00%" in text
    assert "Average Search Time: 0.00 ms" in text
    assert "Active Threads: 2" in text


def test_memory_monitoring_records_until_stopped():
    monitor = PerformanceMonitor()
    stop = threading.Event()
    worker = threading.Thread(target=monitor.start_memory_monitoring, args=(stop, 0.01))
    worker.start()
    time.sleep(0.05)
    stop.set()
    worker.join(timeout=2)
    assert not worker.is_alive()
    assert "memory_alloc_bytes" in _names(monitor.collector().get_all_metrics())


def test_memory_monitoring_returns_when_disabled():
    monitor = PerformanceMonitor()
    monitor.enable(False)
    stop = threading.Event()
    worker = threading.Thread(target=monitor.start_memory_monitoring, args=(stop, 0.01))
    worker.start()
    worker.join(timeout=2)
    alive = worker.is_alive()
    stop.set()
    assert alive is False
    assert monitor.collector().get_all_metrics() == []


def test_memory_monitoring_rejects_non_positive_interval():
    monitor = PerformanceMonitor()
    with pytest.raises(ValueError):
        monitor.start_memory_monitoring(threading.Event(), 0)


def test_benchmark_function():
    benchmarker = Benchmarker(PerformanceMonitor())
    result = benchmarker.benchmark_function("test_function", lambda: time.sleep(0.001), 5)
    assert result.name == "test_function"
    assert result.iterations == 5
    assert result.ns_per_op >= 1_000_000
    assert result.duration >= timedelta(milliseconds=5)


def test_benchmark_rejects_zero_iterations():
    with pytest.raises(ValueError):
        Benchmarker().benchmark_function("noop", lambda: None, 0)


def test_profile_memory():
    benchmarker = Benchmarker(PerformanceMonitor())

    def allocate():
        data = [bytearray(1024) for _ in range(100)]
        data[0][0] = 1
        return data

    profile = benchmarker.profile_memory("test_memory", allocate)
    assert profile.name == "test_memory"
    assert profile.total_alloc_delta >= 100 * 1024
    assert profile.alloc_delta >= 0
    assert "Memory Profile for test_memory:" in str(profile)


def test_benchmark_result_string():
    result = BenchmarkResult(
        name="bench",
        iterations=10,
        duration=timedelta(milliseconds=1),
        ns_per_op=100,
        bytes_per_op=64,
        allocs_per_op=2,
        memory_used=0,
        timestamp=NOW,
    )
    assert str(result) == "bench: 10 iterations, 100 ns/op, 64 B/op, 2 allocs/op"


def test_default_monitor_functions():
    try:
        enable_performance_monitoring(True)
        record_search_operation(timedelta(milliseconds=2), 1, True, 3)
        report = get_performance_report()
        names = _names(report.application_metrics)
        assert "searches_total" in names
        assert "cache_hits_total" in names
        assert report.cache_hit_ratio > 0
    finally:
        enable_performance_monitoring(True)