"""Tests for the in-memory metrics collector."""

from herald.resilience.metrics import GuardedSink, NullSink, ResilienceMetrics, guard


class TestCounters:
    def test_total_and_labelled(self):
        m = ResilienceMetrics()
        m.increment_counter("calls", {"agent": "a"})
        m.increment_counter("calls", {"agent": "a"})
        m.increment_counter("calls", {"agent": "b"}, value=3)
        assert m.counter_value("calls") == 5
        assert m.counter_value("calls", {"agent": "a"}) == 2
        assert m.counter_value("calls", {"agent": "c"}) == 0
        assert m.counter_value("missing") == 0

    def test_label_order_does_not_matter(self):
        m = ResilienceMetrics()
        m.increment_counter("calls", {"a": "1", "b": "2"})
        assert m.counter_value("calls", {"b": "2", "a": "1"}) == 1


class TestSummary:
    def test_histogram_percentiles(self):
        m = ResilienceMetrics()
        for v in range(1, 101):
            m.record_histogram("latency", v)
        h = m.get_summary()["histograms"]["latency"]
        assert h["count"] == 100
        assert h["sum"] == 5050
        assert h["p50"] == 51
        assert h["p99"] == 100

    def test_gauges(self):
        m = ResilienceMetrics()
        m.set_gauge("state", 2, {"name": "x"})
        m.set_gauge("state", 0, {"name": "x"})
        assert m.gauge_value("state", {"name": "x"}) == 0
        assert m.get_summary()["gauges"]["state"] == {'{name="x"}': 0}


class TestPrometheus:
    def test_export(self):
        m = ResilienceMetrics()
        m.increment_counter("errors", {"agent": "claude"})
        m.set_gauge("state", 1)
        m.record_histogram("latency", 10)
        text = m.to_prometheus()
        assert "# TYPE herald_errors_total counter" in text
        assert 'herald_errors_total{agent="claude"} 1' in text
        assert "herald_state 1" in text
        assert "herald_latency_count 1" in text
        assert text.endswith("\n")


class TestGuard:
    def test_none_becomes_null_sink(self):
        assert isinstance(guard(None), NullSink)

    def test_guard_is_idempotent(self):
        g = guard(ResilienceMetrics())
        assert isinstance(g, GuardedSink)
        assert guard(g) is g

    def test_guarded_sink_swallows_exporter_errors(self):
        class Broken:
            def increment_counter(self, *a, **kw):
                raise ValueError("nope")

            def record_histogram(self, *a, **kw):
                raise ValueError("nope")

            def set_gauge(self, *a, **kw):
                raise ValueError("nope")

        g = guard(Broken())
        g.increment_counter("x")
        g.record_histogram("x", 1.0)
        g.set_gauge("x", 1.0)
