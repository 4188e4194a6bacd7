"""Tests for rolling-window agent health monitoring."""

import pytest

from herald.resilience.health import HealthCheckConfig, HealthMonitor, HealthStatus, percentile


def monitor(**overrides) -> HealthMonitor:
    return HealthMonitor("writer", HealthCheckConfig(**overrides))


class TestStatus:
    def test_starts_unknown(self):
        m = monitor()
        assert m.status == HealthStatus.UNKNOWN
        assert m.is_available() is True
        assert m.is_healthy() is False

    def test_success_is_healthy(self):
        m = monitor()
        m.record_success(120)
        assert m.status == HealthStatus.HEALTHY

    def test_error_rate_degrades(self):
        m = monitor()
        for _ in range(9):
            m.record_success(50)
        m.record_failure(50, "timeout")
        assert m.status == HealthStatus.DEGRADED

    def test_error_rate_unhealthy(self):
        m = monitor()
        for _ in range(3):
            m.record_success(50)
        m.record_failure(50)
        assert m.status == HealthStatus.UNHEALTHY
        assert m.is_available() is False

    def test_slow_responses_degrade(self):
        m = monitor(max_response_time_ms=100)
        m.record_success(500)
        assert m.status == HealthStatus.DEGRADED

    def test_consecutive_failures_force_unhealthy(self):
        # Thresholds high enough that the error rate alone never trips
        m = monitor(unhealthy_threshold=1.1, degraded_threshold=1.1, max_consecutive_failures=3)
        for _ in range(20):
            m.record_success(10)
        for _ in range(2):
            m.record_failure(10)
        assert m.status == HealthStatus.HEALTHY
        m.record_failure(10)
        assert m.status == HealthStatus.UNHEALTHY

    def test_success_clears_consecutive_failures(self):
        m = monitor()
        m.record_failure(10)
        m.record_failure(10)
        m.record_success(10)
        assert m.consecutive_failures == 0


class TestWindow:
    def test_window_is_bounded(self):
        m = monitor(rolling_window_size=3)
        for ms in (1, 2, 3, 4, 5):
            m.record_success(ms)
        assert [r.duration_ms for r in m.window()] == [3, 4, 5]

    def test_old_failures_age_out(self):
        m = monitor(rolling_window_size=4)
        m.record_failure(10)
        for _ in range(4):
            m.record_success(10)
        assert m.status == HealthStatus.HEALTHY
        assert m.get_metrics().failed_requests == 0


class TestMetrics:
    def test_percentiles(self):
        data = [10, 20, 30, 40, 50]
        assert percentile(data, 50) == 30
        assert percentile(data, 95) == 50
        assert percentile(data, 99) == 50

    def test_percentile_of_empty(self):
        assert percentile([], 95) == 0.0

    def test_get_metrics(self):
        m = monitor()
        for ms in (10, 20, 30):
            m.record_success(ms)
        m.record_failure(40, "boom")
        metrics = m.get_metrics()
        assert metrics.total_requests == 4
        assert metrics.successful_requests == 3
        assert metrics.error_rate == pytest.approx(0.25)
        assert metrics.average_response_time_ms == pytest.approx(25)
        assert metrics.last_failure_time is not None
        assert metrics.uptime_seconds >= 0

    def test_to_dict_serialises_status_and_times(self):
        m = monitor()
        m.record_success(10)
        d = m.get_metrics().to_dict()
        assert d["status"] == "healthy"
        assert isinstance(d["last_request_time"], str)
        assert d["last_failure_time"] is None

    def test_reset(self):
        m = monitor()
        m.record_failure(10)
        m.reset()
        assert m.status == HealthStatus.UNKNOWN
        assert m.window() == []
        assert m.get_metrics().last_request_time is None

    def test_status_gauge_emitted(self, metrics):
        m = HealthMonitor("writer", metrics=metrics)
        m.record_success(10)
        assert metrics.gauge_value("agent_health_status", {"agent": "writer"}) == 0
        assert metrics.gauge_value("agent_error_rate", {"agent": "writer"}) == 0
