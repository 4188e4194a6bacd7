"""
Resilience metrics — counters, gauges, histograms for monitoring.

Exportable to Prometheus text format or JSON. Anything that emits metrics
talks to a `MetricsSink`; wrap third-party sinks with `guard()` so a broken
exporter can never fail a supervised call.
"""

import logging
from dataclasses import dataclass, field
from threading import Lock
from typing import Any, Protocol

logger = logging.getLogger("herald.metrics")

Labels = dict[str, str]


class MetricsSink(Protocol):
    def increment_counter(self, name: str, labels: Labels | None = None, value: int = 1) -> None: ...

    def record_histogram(self, name: str, value: float, labels: Labels | None = None) -> None: ...

    def set_gauge(self, name: str, value: float, labels: Labels | None = None) -> None: ...


def _key(labels: Labels | None) -> tuple:
    return tuple(sorted((labels or {}).items()))


@dataclass
class CounterMetric:
    name: str
    value: int = 0
    labels: dict[tuple, int] = field(default_factory=dict)

    def inc(self, labels: Labels | None = None, value: int = 1):
        self.value += value
        key = _key(labels)
        self.labels[key] = self.labels.get(key, 0) + value


@dataclass
class GaugeMetric:
    name: str
    labels: dict[tuple, float] = field(default_factory=dict)

    def set(self, value: float, labels: Labels | None = None):
        self.labels[_key(labels)] = value


@dataclass
class HistogramMetric:
    name: str
    observations: list[float] = field(default_factory=list)
    sum_value: float = 0.0
    count: int = 0

    MAX_OBSERVATIONS = 1000

    def observe(self, value: float):
        self.observations.append(value)
        self.sum_value += value
        self.count += 1
        if len(self.observations) > self.MAX_OBSERVATIONS:
            self.observations = self.observations[-self.MAX_OBSERVATIONS:]

    def percentile(self, p: float) -> float:
        if not self.observations:
            return 0.0
        s = sorted(self.observations)
        return s[min(int(len(s) * p), len(s) - 1)]


class ResilienceMetrics:
    """Thread-safe in-memory metrics collector."""

    def __init__(self, prefix: str = "herald_"):
        self._lock = Lock()
        self.prefix = prefix
        self.counters: dict[str, CounterMetric] = {}
        self.gauges: dict[str, GaugeMetric] = {}
        self.histograms: dict[str, HistogramMetric] = {}
        self._histogram_labels: dict[str, set[tuple]] = {}

    def increment_counter(self, name: str, labels: Labels | None = None, value: int = 1) -> None:
        with self._lock:
            self.counters.setdefault(name, CounterMetric(name)).inc(labels, value)

    def record_histogram(self, name: str, value: float, labels: Labels | None = None) -> None:
        with self._lock:
            self.histograms.setdefault(name, HistogramMetric(name)).observe(value)
            self._histogram_labels.setdefault(name, set()).add(_key(labels))

    def set_gauge(self, name: str, value: float, labels: Labels | None = None) -> None:
        with self._lock:
            self.gauges.setdefault(name, GaugeMetric(name)).set(value, labels)

    def counter_value(self, name: str, labels: Labels | None = None) -> int:
        with self._lock:
            c = self.counters.get(name)
            if c is None:
                return 0
            return c.value if labels is None else c.labels.get(_key(labels), 0)

    def gauge_value(self, name: str, labels: Labels | None = None) -> float | None:
        with self._lock:
            g = self.gauges.get(name)
            return g.labels.get(_key(labels)) if g else None

    def get_summary(self) -> dict[str, Any]:
        with self._lock:
            return {
                "counters": {n: c.value for n, c in self.counters.items()},
                "gauges": {n: {_label_str(k): v for k, v in g.labels.items()} for n, g in self.gauges.items()},
                "histograms": {
                    n: {"count": h.count, "sum": h.sum_value,
                        "p50": h.percentile(0.5), "p95": h.percentile(0.95), "p99": h.percentile(0.99)}
                    for n, h in self.histograms.items()
                },
            }

    def to_prometheus(self) -> str:
        lines: list[str] = []
        with self._lock:
            for name, c in sorted(self.counters.items()):
                full = f"{self.prefix}{name}_total"
                lines.append(f"# TYPE {full} counter")
                for key, v in sorted(c.labels.items()):
                    lines.append(f"{full}{_label_str(key)} {v}")
            for name, g in sorted(self.gauges.items()):
                full = f"{self.prefix}{name}"
                lines.append(f"# TYPE {full} gauge")
                for key, v in sorted(g.labels.items()):
                    lines.append(f"{full}{_label_str(key)} {v}")
            for name, h in sorted(self.histograms.items()):
                full = f"{self.prefix}{name}"
                lines.append(f"# TYPE {full} summary")
                for q in (0.5, 0.95, 0.99):
                    lines.append(f'{full}{{quantile="{q}"}} {h.percentile(q)}')
                lines.append(f"{full}_sum {h.sum_value}")
                lines.append(f"{full}_count {h.count}")
        return "\n".join(lines) + "\n"


def _label_str(key: tuple) -> str:
    if not key:
        return ""
    return "{" + ",".join(f'{k}="{v}"' for k, v in key) + "}"


class NullSink:
    def increment_counter(self, name: str, labels: Labels | None = None, value: int = 1) -> None:
        pass

    def record_histogram(self, name: str, value: float, labels: Labels | None = None) -> None:
        pass

    def set_gauge(self, name: str, value: float, labels: Labels | None = None) -> None:
        pass


class GuardedSink:
    """Forwards to a sink, logging and dropping anything it raises."""

    def __init__(self, sink: MetricsSink):
        self.sink = sink

    def increment_counter(self, name: str, labels: Labels | None = None, value: int = 1) -> None:
        try:
            self.sink.increment_counter(name, labels, value)
        except Exception as e:
            logger.debug(f"Metrics sink dropped counter {name}: {e}")

    def record_histogram(self, name: str, value: float, labels: Labels | None = None) -> None:
        try:
            self.sink.record_histogram(name, value, labels)
        except Exception as e:
            logger.debug(f"Metrics sink dropped histogram {name}: {e}")

    def set_gauge(self, name: str, value: float, labels: Labels | None = None) -> None:
        try:
            self.sink.set_gauge(name, value, labels)
        except Exception as e:
            logger.debug(f"Metrics sink dropped gauge {name}: {e}")


def guard(sink: MetricsSink | None) -> MetricsSink:
    if sink is None:
        return NullSink()
    if isinstance(sink, (GuardedSink, NullSink)):
        return sink
    return GuardedSink(sink)
