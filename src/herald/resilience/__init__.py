"""Resilience layer — circuit breakers, health monitoring, supervision, metrics."""

from .circuit_breaker import BreakerConfig, CircuitBreaker, CircuitOpenError, CircuitState
from .health import HealthCheckConfig, HealthMonitor, HealthStatus
from .metrics import MetricsSink, ResilienceMetrics, guard
from .supervisor import (
    ExecutionContext,
    ExecutionResult,
    FallbackConfig,
    FallbackStrategy,
    RetryConfig,
    SupervisionConfig,
    Supervisor,
)

__all__ = [
    "BreakerConfig",
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitState",
    "HealthCheckConfig",
    "HealthMonitor",
    "HealthStatus",
    "MetricsSink",
    "ResilienceMetrics",
    "guard",
    "ExecutionContext",
    "ExecutionResult",
    "FallbackConfig",
    "FallbackStrategy",
    "RetryConfig",
    "SupervisionConfig",
    "Supervisor",
]
