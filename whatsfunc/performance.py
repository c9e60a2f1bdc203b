"""Application performance monitoring, derived reports and simple benchmarking."""

from __future__ import annotations

import gc
import sys
import threading
import time
import tracemalloc
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Iterator

from .metrics import Metric, MetricsCollector

_BYTES_PER_MB = 1024 * 1024


def _to_milliseconds(duration: timedelta | float) -> float:
    """Convert a timedelta or a number of seconds to milliseconds."""
    if isinstance(duration, timedelta):
        return duration / timedelta(milliseconds=1)
    return float(duration) * 1000.0


def _to_seconds(interval: timedelta | float) -> float:
    if isinstance(interval, timedelta):
        return interval.total_seconds()
    return float(interval)


def _local_now() -> datetime:
    return datetime.now().astimezone()


class PerformanceMonitor:
    """Records search, database and memory metrics into its own collector."""

    def __init__(self) -> None:
        self._collector = MetricsCollector()
        self._enabled = True

    def enable(self, enabled: bool) -> None:
        self._enabled = bool(enabled)

    def is_enabled(self) -> bool:
        return self._enabled

    def collector(self) -> MetricsCollector:
        return self._collector

    def record_search_operation(
        self,
        duration: timedelta | float,
        result_count: int,
        cache_hit: bool,
        query_length: int,
    ) -> None:
        """Record one search; ``duration`` is a timedelta or seconds."""
        if not self._enabled:
            return
        hit_tags = {"cache_hit": str(bool(cache_hit)).lower()}
        self._collector.timer("search_duration", hit_tags).histogram().observe(
            _to_milliseconds(duration)
        )
        self._collector.gauge("search_results").set(float(result_count))
        self._collector.histogram("query_length").observe(float(query_length))
        self._collector.counter("searches_total", hit_tags).inc()
        if cache_hit:
            self._collector.counter("cache_hits_total").inc()
        else:
            self._collector.counter("cache_misses_total").inc()

    def record_database_operation(
        self, operation: str, duration: timedelta | float, success: bool
    ) -> None:
        """Record one database operation and its outcome."""
        if not self._enabled:
            return
        tags = {"operation": operation, "success": str(bool(success)).lower()}
        self._collector.timer("database_operation_duration", tags).histogram().observe(
            _to_milliseconds(duration)
        )
        self._collector.counter("database_operations_total", tags).inc()

    def record_memory_usage(self) -> None:
        """Record the current memory, collector and thread figures as gauges."""
        if not self._enabled:
            return
        system = {metric.name: metric.value for metric in self._collector.get_system_metrics()}
        self._collector.gauge("memory_alloc_bytes").set(system.get("system_memory_alloc", 0.0))
        self._collector.gauge("memory_sys_bytes").set(system.get("system_memory_sys", 0.0))
        self._collector.gauge("gc_runs_total").set(system.get("system_gc_runs", 0.0))
        self._collector.gauge("threads_active").set(system.get("system_threads", 0.0))

    def start_memory_monitoring(
        self, stop_event: threading.Event, interval: timedelta | float
    ) -> None:
        """Record memory usage every ``interval`` until ``stop_event`` is set."""
        if not self._enabled:
            return
        seconds = _to_seconds(interval)
        if seconds <= 0:
            raise ValueError("interval must be positive")
        while not stop_event.wait(seconds):
            self.record_memory_usage()

    def get_performance_report(self) -> PerformanceReport:
        return PerformanceReport(
            timestamp=_local_now(),
            application_metrics=self._collector.get_all_metrics(),
            system_metrics=self._collector.get_system_metrics(),
        )


@dataclass
class PerformanceReport:
    """Metric snapshots together with figures derived from them."""

    timestamp: datetime
    application_metrics: list[Metric]
    system_metrics: list[Metric]
    average_search_time: float = field(default=0.0, init=False)
    cache_hit_ratio: float = field(default=0.0, init=False)
    searches_per_second: float = field(default=0.0, init=False)
    memory_usage_mb: float = field(default=0.0, init=False)
    thread_count: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        values: dict[str, float] = {}
        for metric in [*self.application_metrics, *self.system_metrics]:
            values[metric.name] = metric.value

        search_count = values.get("search_duration_count", 0.0)
        search_sum = values.get("search_duration_sum", 0.0)
        if search_count > 0 and search_sum > 0:
            self.average_search_time = search_sum / search_count

        hits = values.get("cache_hits_total", 0.0)
        total_requests = hits + values.get("cache_misses_total", 0.0)
        if total_requests > 0:
            self.cache_hit_ratio = hits / total_requests

        uptime = values.get("system_uptime", 0.0)
        if uptime > 0:
            self.searches_per_second = values.get("searches_total", 0.0) / uptime

        memory = values.get("system_memory_alloc", 0.0)
        if memory > 0:
            self.memory_usage_mb = memory / _BYTES_PER_MB

        self.thread_count = int(values.get("system_threads", 0.0))

    def __str__(self) -> str:
        return (
            f"Performance Report ({self.timestamp.strftime('%Y-%m-%d %H:%M:%S')}):\n"
            f"  Average Search Time: {self.average_search_time:.2f} ms\n"
            f"  Cache Hit Ratio: {self.cache_hit_ratio * 100:.2f}%\n"
            f"  Searches/Second: {self.searches_per_second:.2f}\n"
            f"  Memory Usage: {self.memory_usage_mb:.2f} MB\n"
            f"  Active Threads: {self.thread_count}"
        )


@dataclass(frozen=True)
class BenchmarkResult:
    """The outcome of running a function repeatedly."""

    name: str
    iterations: int
    duration: timedelta
    ns_per_op: int
    bytes_per_op: int
    allocs_per_op: int
    memory_used: int
    timestamp: datetime

    def __str__(self) -> str:
        return (
            f"{self.name}: {self.iterations} iterations, {self.ns_per_op} ns/op, "
            f"{self.bytes_per_op} B/op, {self.allocs_per_op} allocs/op"
        )


@dataclass(frozen=True)
class MemoryProfile:
    """Memory figures gathered around a single function call."""

    name: str
    duration: timedelta
    alloc_before: int
    alloc_after: int
    alloc_delta: int
    total_alloc_delta: int
    mallocs_delta: int
    free_delta: int
    gc_runs: int
    timestamp: datetime

    def __str__(self) -> str:
        return (
            f"Memory Profile for {self.name}:\n"
            f"  Duration: {self.duration}\n"
            f"  Memory Delta: {self.alloc_delta} bytes\n"
            f"  Total Allocated: {self.total_alloc_delta} bytes\n"
            f"  Allocations: {self.mallocs_delta}\n"
            f"  Frees: {self.free_delta}\n"
            f"  GC Runs: {self.gc_runs}"
        )


@dataclass
class _Measurement:
    elapsed_ns: int = 0
    alloc_before: int = 0
    alloc_after: int = 0
    peak_delta: int = 0
    blocks_delta: int = 0
    gc_runs: int = 0


def _gc_runs() -> int:
    return sum(stat.get("collections", 0) for stat in gc.get_stats())


@contextmanager
def _measure() -> Iterator[_Measurement]:
    """Collect timing and allocation figures for the enclosed block."""
    started_tracing = not tracemalloc.is_tracing()
    if started_tracing:
        tracemalloc.start()
    result = _Measurement()
    try:
        gc.collect()
        result.alloc_before = tracemalloc.get_traced_memory()[0]
        tracemalloc.reset_peak()
        blocks_before = sys.getallocatedblocks()
        gc_before = _gc_runs()
        start = time.perf_counter_ns()
        yield result
        result.elapsed_ns = time.perf_counter_ns() - start
        current, peak = tracemalloc.get_traced_memory()
        result.alloc_after = current
        result.peak_delta = max(peak - result.alloc_before, 0)
        result.blocks_delta = sys.getallocatedblocks() - blocks_before
        result.gc_runs = _gc_runs() - gc_before
    finally:
        if started_tracing:
            tracemalloc.stop()


class Benchmarker:
    """Times functions and profiles their memory use."""

    def __init__(self, monitor: PerformanceMonitor | None = None) -> None:
        self.monitor = monitor

    def benchmark_function(
        self, name: str, fn: Callable[[], Any], iterations: int
    ) -> BenchmarkResult:
        """Call ``fn`` ``iterations`` times and report per-call costs."""
        if iterations <= 0:
            raise ValueError("iterations must be positive")
        with _measure() as measured:
            for _ in range(iterations):
                fn()
        return BenchmarkResult(
            name=name,
            iterations=iterations,
            duration=timedelta(microseconds=measured.elapsed_ns / 1000),
            ns_per_op=measured.elapsed_ns // iterations,
            bytes_per_op=measured.peak_delta // iterations,
            allocs_per_op=max(measured.blocks_delta, 0) // iterations,
            memory_used=max(measured.alloc_after - measured.alloc_before, 0),
            timestamp=_local_now(),
        )

    def profile_memory(self, name: str, fn: Callable[[], Any]) -> MemoryProfile:
        """Call ``fn`` once and report how memory changed around it."""
        with _measure() as measured:
            fn()
        return MemoryProfile(
            name=name,
            duration=timedelta(microseconds=measured.elapsed_ns / 1000),
            alloc_before=measured.alloc_before,
            alloc_after=measured.alloc_after,
            alloc_delta=max(measured.alloc_after - measured.alloc_before, 0),
            total_alloc_delta=measured.peak_delta,
            mallocs_delta=max(measured.blocks_delta, 0),
            free_delta=max(-measured.blocks_delta, 0),
            gc_runs=measured.gc_runs,
            timestamp=_local_now(),
        )


_default_monitor = PerformanceMonitor()


def record_search_operation(
    duration: timedelta | float, result_count: int, cache_hit: bool, query_length: int
) -> None:
    _default_monitor.record_search_operation(duration, result_count, cache_hit, query_length)


def record_database_operation(operation: str, duration: timedelta | float, success: bool) -> None:
    _default_monitor.record_database_operation(operation, duration, success)


def record_memory_usage() -> None:
    _default_monitor.record_memory_usage()


def get_performance_report() -> PerformanceReport:
    return _default_monitor.get_performance_report()


def enable_performance_monitoring(enabled: bool) -> None:
    _default_monitor.enable(enabled)