"""Counters, gauges, histograms and timers, and a registry that collects them."""

from __future__ import annotations

import gc
import os
import threading
import time
import tracemalloc
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Mapping, Sequence

DEFAULT_BUCKETS: tuple[float, ...] = (
    0.1, 0.5, 1, 2.5, 5, 10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000,
)
REPORTED_PERCENTILES: tuple[int, ...] = (50, 90, 95, 99)

_GAUGE_SCALE = 1000  # gauges keep three decimal places


class MetricType(str, Enum):
    """The kind of value a metric carries."""

    COUNTER = "counter"
    GAUGE = "gauge"
    HISTOGRAM = "histogram"
    TIMER = "timer"


@dataclass
class Metric:
    """A snapshot of one metric value with its metadata."""

    name: str
    type: MetricType
    value: float
    unit: str
    timestamp: datetime
    description: str = ""
    tags: dict[str, str] | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "type": self.type.value,
            "value": self.value,
            "unit": self.unit,
            "description": self.description,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.tags:
            data["tags"] = dict(self.tags)
        return data


def _copy_tags(tags: Mapping[str, str] | None) -> dict[str, str] | None:
    return dict(tags) if tags else None


class Counter:
    """A monotonically increasing integer counter."""

    def __init__(self, name: str, tags: Mapping[str, str] | None = None) -> None:
        self.name = name
        self.tags = _copy_tags(tags)
        self._value = 0
        self._lock = threading.Lock()

    def inc(self) -> None:
        self.add(1)

    def add(self, value: int) -> None:
        with self._lock:
            self._value += int(value)

    def value(self) -> int:
        with self._lock:
            return self._value

    def reset(self) -> None:
        with self._lock:
            self._value = 0


class Gauge:
    """A value that can go up and down, kept to three decimal places."""

    def __init__(self, name: str, tags: Mapping[str, str] | None = None) -> None:
        self.name = name
        self.tags = _copy_tags(tags)
        self._scaled = 0
        self._lock = threading.Lock()

    def set(self, value: float) -> None:
        with self._lock:
            self._scaled = int(value * _GAUGE_SCALE)

    def value(self) -> float:
        with self._lock:
            return self._scaled / _GAUGE_SCALE

    def inc(self) -> None:
        with self._lock:
            self._scaled += _GAUGE_SCALE

    def dec(self) -> None:
        with self._lock:
            self._scaled -= _GAUGE_SCALE

    def add(self, value: float) -> None:
        with self._lock:
            self._scaled += int(value * _GAUGE_SCALE)


class Histogram:
    """Tracks the distribution of observed values across fixed buckets."""

    def __init__(
        self,
        name: str,
        tags: Mapping[str, str] | None = None,
        buckets: Sequence[float] | None = None,
    ) -> None:
        self.name = name
        self.tags = _copy_tags(tags)
        self.buckets: tuple[float, ...] = tuple(DEFAULT_BUCKETS if buckets is None else buckets)
        # One extra slot holds values above the largest bucket.
        self._counts = [0] * (len(self.buckets) + 1)
        self._sum = 0.0
        self._count = 0
        self._lock = threading.Lock()

    def observe(self, value: float) -> None:
        with self._lock:
            self._sum += value
            self._count += 1
            index = next(
                (i for i, bound in enumerate(self.buckets) if value <= bound),
                len(self.buckets),
            )
            self._counts[index] += 1

    def count(self) -> int:
        with self._lock:
            return self._count

    def sum(self) -> float:
        with self._lock:
            return self._sum

    def mean(self) -> float:
        with self._lock:
            return self._sum / self._count if self._count else 0.0

    def percentile(self, p: float) -> float:
        """Return the upper bound of the bucket holding the ``p``-th percentile."""
        with self._lock:
            if self._count == 0:
                return 0.0
            target = int(self._count * p / 100.0)
            cumulative = 0
            for index, count in enumerate(self._counts):
                cumulative += count
                if cumulative >= target:
                    if index < len(self.buckets):
                        return self.buckets[index]
                    return self.buckets[-1]
            return 0.0


class Timer:
    """Measures elapsed wall time in milliseconds into a histogram."""

    def __init__(self, name: str, tags: Mapping[str, str] | None = None) -> None:
        self.name = name
        self.tags = _copy_tags(tags)
        self._histogram = Histogram(f"{name}_duration", tags)

    def time(self) -> Callable[[], float]:
        """Start timing; call the returned function to record and get the elapsed ms."""
        start = time.perf_counter()

        def stop() -> float:
            elapsed_ms = (time.perf_counter() - start) * 1000.0
            self._histogram.observe(elapsed_ms)
            return elapsed_ms

        return stop

    def time_func(self, fn: Callable[[], Any]) -> Any:
        """Run ``fn``, record how long it took and return its result."""
        stop = self.time()
        try:
            return fn()
        finally:
            stop()

    def histogram(self) -> Histogram:
        return self._histogram


def _metric_key(name: str, tags: Mapping[str, str] | None) -> str:
    if not tags:
        return name
    return name + "".join(f":{key}={value}" for key, value in sorted(tags.items()))


def _resident_memory() -> int:
    """Best-effort resident set size of this process in bytes."""
    try:
        with open("/proc/self/statm", encoding="ascii") as handle:
            pages = int(handle.read().split()[1])
        return pages * os.sysconf("SC_PAGE_SIZE")
    except (OSError, ValueError, IndexError, AttributeError):
        pass
    try:
        import resource
    except ImportError:
        return 0
    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # Linux reports kilobytes, macOS bytes.
    return peak if os.uname().sysname == "Darwin" else peak * 1024


def _memory_stats() -> tuple[int, int, int]:
    """Return (bytes in use, peak bytes, bytes held from the OS)."""
    resident = _resident_memory()
    if tracemalloc.is_tracing():
        current, peak = tracemalloc.get_traced_memory()
        return current, peak, resident
    return resident, resident, resident


def _gc_runs() -> int:
    return sum(stat.get("collections", 0) for stat in gc.get_stats())


class MetricsCollector:
    """A thread-safe registry that creates metrics on first use."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: dict[str, Counter] = {}
        self._gauges: dict[str, Gauge] = {}
        self._histograms: dict[str, Histogram] = {}
        self._timers: dict[str, Timer] = {}
        self._start = time.monotonic()

    def _get_or_create(self, registry: dict[str, Any], factory: Callable, name, tags):
        key = _metric_key(name, tags)
        with self._lock:
            metric = registry.get(key)
            if metric is None:
                metric = registry[key] = factory(name, tags)
            return metric

    def counter(self, name: str, tags: Mapping[str, str] | None = None) -> Counter:
        return self._get_or_create(self._counters, Counter, name, tags)

    def gauge(self, name: str, tags: Mapping[str, str] | None = None) -> Gauge:
        return self._get_or_create(self._gauges, Gauge, name, tags)

    def histogram(self, name: str, tags: Mapping[str, str] | None = None) -> Histogram:
        return self._get_or_create(self._histograms, Histogram, name, tags)

    def timer(self, name: str, tags: Mapping[str, str] | None = None) -> Timer:
        return self._get_or_create(self._timers, Timer, name, tags)

    def get_all_metrics(self) -> list[Metric]:
        """Snapshot every counter, gauge and histogram."""
        now = datetime.now(timezone.utc)
        with self._lock:
            counters = list(self._counters.values())
            gauges = list(self._gauges.values())
            histograms = list(self._histograms.values())

        metrics = [
            Metric(c.name, MetricType.COUNTER, float(c.value()), "count", now, tags=c.tags)
            for c in counters
        ]
        metrics.extend(
            Metric(g.name, MetricType.GAUGE, g.value(), "value", now, tags=g.tags)
            for g in gauges
        )
        for h in histograms:
            metrics.append(
                Metric(f"{h.name}_count", MetricType.HISTOGRAM, float(h.count()), "count", now,
                       tags=h.tags)
            )
            metrics.append(
                Metric(f"{h.name}_sum", MetricType.HISTOGRAM, h.sum(), "ms", now, tags=h.tags)
            )
            metrics.append(
                Metric(f"{h.name}_mean", MetricType.HISTOGRAM, h.mean(), "ms", now, tags=h.tags)
            )
            metrics.extend(
                Metric(f"{h.name}_p{p}", MetricType.HISTOGRAM, h.percentile(p), "ms", now,
                       tags=h.tags)
                for p in REPORTED_PERCENTILES
            )
        return metrics

    def get_system_metrics(self) -> list[Metric]:
        """Snapshot process-level memory, collector, thread and uptime figures."""
        now = datetime.now(timezone.utc)
        in_use, peak, from_os = _memory_stats()
        uptime = time.monotonic() - self._start
        return [
            Metric("system_memory_alloc", MetricType.GAUGE, float(in_use), "bytes", now,
                   "Bytes allocated and still in use"),
            Metric("system_memory_total_alloc", MetricType.COUNTER, float(peak), "bytes", now,
                   "Peak bytes allocated"),
            Metric("system_memory_sys", MetricType.GAUGE, float(from_os), "bytes", now,
                   "Total bytes obtained from OS"),
            Metric("system_gc_runs", MetricType.COUNTER, float(_gc_runs()), "count", now,
                   "Number of GC runs"),
            Metric("system_threads", MetricType.GAUGE, float(threading.active_count()), "count",
                   now, "Number of active threads"),
            Metric("system_uptime", MetricType.GAUGE, uptime, "seconds", now,
                   "Application uptime"),
        ]

    def reset(self) -> None:
        """Forget every metric and restart the uptime clock."""
        with self._lock:
            self._counters = {}
            self._gauges = {}
            self._histograms = {}
            self._timers = {}
            self._start = time.monotonic()


_default_collector = MetricsCollector()


def default_counter(name: str, tags: Mapping[str, str] | None = None) -> Counter:
    return _default_collector.counter(name, tags)


def default_gauge(name: str, tags: Mapping[str, str] | None = None) -> Gauge:
    return _default_collector.gauge(name, tags)


def default_histogram(name: str, tags: Mapping[str, str] | None = None) -> Histogram:
    return _default_collector.histogram(name, tags)


def default_timer(name: str, tags: Mapping[str, str] | None = None) -> Timer:
    return _default_collector.timer(name, tags)


def get_all_metrics() -> list[Metric]:
    return _default_collector.get_all_metrics()


def get_system_metrics() -> list[Metric]:
    return _default_collector.get_system_metrics()


def reset_metrics() -> None:
    _default_collector.reset()