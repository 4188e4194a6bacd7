"""
Health monitor — rolling-window health for one supervised agent.

Every call outcome lands in a bounded window; status, error rate and
latency percentiles are derived from that window alone.
"""

import logging
import math
import threading
import time
from collections import deque
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from .metrics import MetricsSink, guard

logger = logging.getLogger("herald.health")


class HealthStatus(Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"
    UNKNOWN = "unknown"


_STATUS_GAUGE = {HealthStatus.HEALTHY: 0, HealthStatus.DEGRADED: 1, HealthStatus.UNHEALTHY: 2, HealthStatus.UNKNOWN: 3}


@dataclass(frozen=True)
class HealthCheckConfig:
    degraded_threshold: float = 0.1      # error rate
    unhealthy_threshold: float = 0.25    # error rate
    max_response_time_ms: float = 30_000.0
    rolling_window_size: int = 100
    max_consecutive_failures: int = 5


@dataclass(frozen=True)
class RequestMetric:
    success: bool
    duration_ms: float
    timestamp: datetime
    error: str | None = None


@dataclass
class HealthMetrics:
    status: HealthStatus
    total_requests: int
    successful_requests: int
    failed_requests: int
    success_rate: float
    error_rate: float
    average_response_time_ms: float
    p95_response_time_ms: float
    p99_response_time_ms: float
    last_request_time: datetime | None
    last_success_time: datetime | None
    last_failure_time: datetime | None
    consecutive_failures: int
    uptime_seconds: float

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {k: getattr(self, k) for k in self.__dataclass_fields__}
        d["status"] = self.status.value
        for k in ("last_request_time", "last_success_time", "last_failure_time"):
            d[k] = d[k].isoformat() if d[k] else None
        return d


def percentile(durations: list[float], p: float) -> float:
    """Nearest-rank percentile: index ceil(p/100 * n) - 1 of the ascending sort."""
    if not durations:
        return 0.0
    s = sorted(durations)
    index = max(0, math.ceil(p / 100 * len(s)) - 1)
    return s[min(index, len(s) - 1)]


class HealthMonitor:
    """Tracks success/failure and latency for one agent."""

    def __init__(self, agent_name: str, config: HealthCheckConfig | None = None, metrics: MetricsSink | None = None):
        self.agent_name = agent_name
        self.config = config or HealthCheckConfig()
        self._metrics = guard(metrics)
        self._lock = threading.Lock()
        self._window: deque[RequestMetric] = deque(maxlen=self.config.rolling_window_size)
        self._status = HealthStatus.UNKNOWN
        self.consecutive_failures = 0
        self.last_request_time: datetime | None = None
        self.last_success_time: datetime | None = None
        self.last_failure_time: datetime | None = None
        self._started = time.monotonic()

    @property
    def status(self) -> HealthStatus:
        return self._status

    def record_success(self, duration_ms: float):
        with self._lock:
            self._record(RequestMetric(True, duration_ms, datetime.now(UTC)))
            self.consecutive_failures = 0
            self.last_success_time = self.last_request_time
            self._update_status()
        self._metrics.increment_counter("agent_health_successes", {"agent": self.agent_name})

    def record_failure(self, duration_ms: float, error: str | None = None):
        with self._lock:
            self._record(RequestMetric(False, duration_ms, datetime.now(UTC), error))
            self.consecutive_failures += 1
            self.last_failure_time = self.last_request_time
            self._update_status()
        self._metrics.increment_counter("agent_health_failures", {"agent": self.agent_name, "error": error or "unknown"})

    def _record(self, metric: RequestMetric):
        self._window.append(metric)
        self.last_request_time = metric.timestamp
        self._metrics.record_histogram("agent_response_time_ms", metric.duration_ms,
                                       {"agent": self.agent_name, "success": str(metric.success).lower()})

    def _error_rate(self) -> float:
        if not self._window:
            return 0.0
        return sum(1 for r in self._window if not r.success) / len(self._window)

    def _average_ms(self) -> float:
        if not self._window:
            return 0.0
        return sum(r.duration_ms for r in self._window) / len(self._window)

    def _update_status(self):
        error_rate = self._error_rate()
        avg = self._average_ms()
        cfg = self.config

        if self.consecutive_failures >= cfg.max_consecutive_failures or error_rate >= cfg.unhealthy_threshold:
            new = HealthStatus.UNHEALTHY
        elif error_rate >= cfg.degraded_threshold or avg > cfg.max_response_time_ms:
            new = HealthStatus.DEGRADED
        else:
            new = HealthStatus.HEALTHY

        if new != self._status:
            old = self._status
            self._status = new
            logger.info(
                f"Agent {self.agent_name} health {old.value} -> {new.value} "
                f"(error_rate={error_rate:.2f}, avg={avg:.0f}ms, consecutive_failures={self.consecutive_failures})")
            self._metrics.increment_counter("agent_health_status_changes",
                                            {"agent": self.agent_name, "from": old.value, "to": new.value})

        labels = {"agent": self.agent_name}
        self._metrics.set_gauge("agent_health_status", _STATUS_GAUGE[self._status], labels)
        self._metrics.set_gauge("agent_error_rate", error_rate, labels)
        self._metrics.set_gauge("agent_success_rate", 1 - error_rate, labels)

    def window(self) -> list[RequestMetric]:
        with self._lock:
            return list(self._window)

    def get_metrics(self) -> HealthMetrics:
        with self._lock:
            total = len(self._window)
            ok = sum(1 for r in self._window if r.success)
            durations = [r.duration_ms for r in self._window]
            return HealthMetrics(
                status=self._status,
                total_requests=total,
                successful_requests=ok,
                failed_requests=total - ok,
                success_rate=ok / total if total else 0.0,
                error_rate=self._error_rate(),
                average_response_time_ms=self._average_ms(),
                p95_response_time_ms=percentile(durations, 95),
                p99_response_time_ms=percentile(durations, 99),
                last_request_time=self.last_request_time,
                last_success_time=self.last_success_time,
                last_failure_time=self.last_failure_time,
                consecutive_failures=self.consecutive_failures,
                uptime_seconds=time.monotonic() - self._started,
            )

    def is_healthy(self) -> bool:
        return self._status == HealthStatus.HEALTHY

    def is_available(self) -> bool:
        return self._status != HealthStatus.UNHEALTHY

    def reset(self):
        with self._lock:
            logger.info(f"Resetting health monitor for agent {self.agent_name}")
            self._window.clear()
            self._status = HealthStatus.UNKNOWN
            self.consecutive_failures = 0
            self.last_request_time = None
            self.last_success_time = None
            self.last_failure_time = None
            self._started = time.monotonic()
