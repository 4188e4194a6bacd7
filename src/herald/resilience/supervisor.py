"""
Agent supervisor — retry, circuit protection, health tracking and fallback
around every call to an external agent.

`Supervisor.execute` is total: it always returns an `ExecutionResult` and
never raises on executor failure. Callers must check `result.success`.

Timeouts: `ExecutionContext.timeout_seconds` is carried for the executor's
benefit only. The supervisor does not cancel a slow call; executors must
bound their own I/O (for example with an httpx timeout).
"""

from __future__ import annotations

import asyncio
import logging
import threading
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field, fields, replace
from enum import Enum
from typing import Any, Generic, Literal, TypeVar

from .circuit_breaker import BreakerConfig, CircuitBreaker, CircuitOpenError, CircuitState
from .health import HealthCheckConfig, HealthMonitor, HealthStatus
from .metrics import MetricsSink, guard

logger = logging.getLogger("herald.supervisor")

T = TypeVar("T")
Executor = Callable[[], Awaitable[T]]


class FallbackStrategy(str, Enum):
    CACHE = "cache"
    DEFAULT = "default"
    ALTERNATE = "alternate"


class _NoDefault:
    def __repr__(self) -> str:
        return "NO_DEFAULT"


NO_DEFAULT: Any = _NoDefault()


@dataclass
class ExecutionContext:
    agent_name: str
    operation: str
    priority: Literal["high", "normal", "low"] = "normal"
    timeout_seconds: float | None = None
    retryable: bool = True
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RetryConfig:
    enabled: bool = True
    max_attempts: int = 3
    backoff_ms: float = 1000.0
    backoff_multiplier: float = 2.0

    def delay_ms(self, attempt: int) -> float:
        return self.backoff_ms * self.backoff_multiplier ** (attempt - 1)


@dataclass(frozen=True)
class FallbackConfig:
    enabled: bool = True
    strategy: FallbackStrategy = FallbackStrategy.CACHE
    fallback_agent: str | None = None
    default_value: Any = NO_DEFAULT
    alternate_executor: Executor | None = None

    def __post_init__(self):
        if not isinstance(self.strategy, FallbackStrategy):
            object.__setattr__(self, "strategy", FallbackStrategy(self.strategy))


@dataclass
class SupervisionConfig:
    """Call-level overrides. Each part is a full config or a mapping of fields to override."""

    retry: RetryConfig | Mapping[str, Any] | None = None
    fallback: FallbackConfig | Mapping[str, Any] | None = None

    def __post_init__(self):
        for part, cls in (("retry", RetryConfig), ("fallback", FallbackConfig)):
            override = getattr(self, part)
            if isinstance(override, Mapping):
                unknown = set(override) - {f.name for f in fields(cls)}
                if unknown:
                    raise ValueError(f"Unknown {part} override(s): {', '.join(sorted(unknown))}")


@dataclass
class ExecutionResult(Generic[T]):
    success: bool
    duration_ms: float
    attempts: int
    agent_used: str
    data: T | None = None
    error: BaseException | None = None
    from_cache: bool = False
    from_fallback: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success, "data": self.data,
            "error": str(self.error) if self.error else None,
            "duration_ms": self.duration_ms, "from_cache": self.from_cache,
            "from_fallback": self.from_fallback, "attempts": self.attempts,
            "agent_used": self.agent_used,
        }


@dataclass
class SupervisedAgent:
    name: str
    circuit_breaker: CircuitBreaker
    health_monitor: HealthMonitor
    fallback_agent: str | None = None


@dataclass
class SupervisionStatistics:
    total_agents: int = 0
    healthy: int = 0
    degraded: int = 0
    unhealthy: int = 0
    unknown: int = 0
    circuits_closed: int = 0
    circuits_open: int = 0
    circuits_half_open: int = 0

    def to_dict(self) -> dict[str, int]:
        return {k: getattr(self, k) for k in self.__dataclass_fields__}


@dataclass
class _FallbackOutcome:
    data: Any
    agent_used: str
    from_cache: bool = False


def _merge(default, override):
    if override is None:
        return default
    if isinstance(override, Mapping):
        return replace(default, **override)
    return override


class Supervisor:
    """Registry of supervised agents and the supervised execution path."""

    def __init__(self, metrics: MetricsSink | None = None, breaker_config: BreakerConfig | None = None,
                 health_config: HealthCheckConfig | None = None, retry: RetryConfig | None = None,
                 fallback: FallbackConfig | None = None,
                 sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
                 clock: Callable[[], float] = time.monotonic):
        self._metrics = guard(metrics)
        self.breaker_config = breaker_config or BreakerConfig()
        self.health_config = health_config or HealthCheckConfig()
        self.default_retry = retry or RetryConfig()
        self.default_fallback = fallback or FallbackConfig()
        self._sleep = sleep
        self._clock = clock
        self._agents: dict[str, SupervisedAgent] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register_agent(self, name: str, config: SupervisionConfig | None = None) -> SupervisedAgent:
        if name in self._agents:
            logger.warning(f"Agent {name} already registered, skipping")
            return self._agents[name]

        with self._lock:
            if name in self._agents:
                logger.warning(f"Agent {name} already registered, skipping")
                return self._agents[name]
            fallback = self.resolve_fallback(config)
            agent = SupervisedAgent(
                name=name,
                circuit_breaker=CircuitBreaker(name, self.breaker_config, self._metrics, clock=self._clock),
                health_monitor=HealthMonitor(name, self.health_config, self._metrics),
                fallback_agent=fallback.fallback_agent,
            )
            self._agents[name] = agent

        logger.info(f"Agent registered for supervision: {name}")
        self._metrics.increment_counter("agents_supervised", {"agent": name})
        return agent

    def get_agent(self, name: str) -> SupervisedAgent | None:
        return self._agents.get(name)

    @property
    def agent_names(self) -> list[str]:
        return list(self._agents)

    def resolve_retry(self, config: SupervisionConfig | None) -> RetryConfig:
        """The supervisor's retry defaults with any call-level override applied."""
        return _merge(self.default_retry, config.retry if config else None)

    def resolve_fallback(self, config: SupervisionConfig | None) -> FallbackConfig:
        return _merge(self.default_fallback, config.fallback if config else None)

    # ------------------------------------------------------------------
    # Supervised execution
    # ------------------------------------------------------------------

    async def execute(self, context: ExecutionContext, executor: Executor[T],
                      config: SupervisionConfig | None = None) -> ExecutionResult[T]:
        start = time.monotonic()
        name, operation = context.agent_name, context.operation
        agent = self._agents.get(name) or self.register_agent(name, config)
        retry = self.resolve_retry(config)
        fallback = self.resolve_fallback(config)
        max_attempts = max(1, retry.max_attempts)

        attempts = 0
        last_error: Exception | None = None

        while attempts < max_attempts:
            attempts += 1
            try:
                # An open breaker rejects without running the executor or touching health.
                data = await agent.circuit_breaker.execute(lambda: self._observed(agent, operation, executor))
            except Exception as e:
                last_error = e
                if isinstance(e, CircuitOpenError):
                    logger.warning(f"Agent {name} circuit open (attempt {attempts}/{max_attempts}, {operation})")
                else:
                    logger.warning(f"Agent {name} execution failed (attempt {attempts}/{max_attempts}): {e}")
                self._metrics.increment_counter("agent_execution_errors",
                                                {"agent": name, "operation": operation, "attempt": str(attempts)})
                if retry.enabled and context.retryable and attempts < max_attempts:
                    delay = retry.delay_ms(attempts)
                    logger.debug(f"Retrying {name} in {delay:.0f}ms")
                    self._metrics.increment_counter("agent_execution_retries", {"agent": name, "operation": operation})
                    await self._sleep(delay / 1000)
                    continue
                break
            else:
                self._metrics.record_histogram("agent_execution_attempts", attempts, {"agent": name})
                return ExecutionResult(success=True, data=data, duration_ms=_elapsed_ms(start),
                                       attempts=attempts, agent_used=name)

        self._metrics.record_histogram("agent_execution_attempts", attempts, {"agent": name})

        if fallback.enabled:
            outcome = await self._try_fallback(name, operation, fallback)
            if outcome is not None:
                return ExecutionResult(success=True, data=outcome.data, duration_ms=_elapsed_ms(start),
                                       attempts=attempts, agent_used=outcome.agent_used,
                                       from_cache=outcome.from_cache, from_fallback=True)

        self._metrics.increment_counter("agent_execution_complete_failures", {"agent": name, "operation": operation})
        return ExecutionResult(success=False, error=last_error, duration_ms=_elapsed_ms(start),
                               attempts=attempts, agent_used=name)

    async def _observed(self, agent: SupervisedAgent, operation: str, executor: Executor[T]) -> T:
        """Run the executor and record its outcome to the agent's health monitor."""
        start = time.monotonic()
        try:
            data = await executor()
        except Exception as e:
            ms = _elapsed_ms(start)
            agent.health_monitor.record_failure(ms, str(e) or type(e).__name__)
            self._metrics.record_histogram("agent_execution_duration_ms", ms,
                                           {"agent": agent.name, "operation": operation, "success": "false"})
            raise
        ms = _elapsed_ms(start)
        agent.health_monitor.record_success(ms)
        self._metrics.record_histogram("agent_execution_duration_ms", ms,
                                       {"agent": agent.name, "operation": operation, "success": "true"})
        return data

    async def _try_fallback(self, name: str, operation: str, config: FallbackConfig) -> _FallbackOutcome | None:
        logger.info(f"Attempting fallback for agent {name} (strategy={config.strategy.value})")
        self._metrics.increment_counter("agent_fallback_attempts", {"agent": name, "strategy": config.strategy.value})

        outcome: _FallbackOutcome | None = None
        match config.strategy:
            case FallbackStrategy.DEFAULT:
                if config.default_value is not NO_DEFAULT:
                    logger.info(f"Using default value fallback for {name}")
                    outcome = _FallbackOutcome(config.default_value, name)
            case FallbackStrategy.ALTERNATE:
                outcome = await self._run_alternate(name, operation, config)
            case FallbackStrategy.CACHE:
                # Reserved: no response cache is wired in yet.
                logger.debug(f"Cache fallback unavailable for {name}")

        if outcome is not None:
            self._metrics.increment_counter("agent_fallback_successes",
                                            {"agent": name, "strategy": config.strategy.value})
        return outcome

    async def _run_alternate(self, name: str, operation: str, config: FallbackConfig) -> _FallbackOutcome | None:
        alt_name = config.fallback_agent or (self._agents[name].fallback_agent if name in self._agents else None)
        if not alt_name or alt_name == name:
            return None
        alt = self._agents.get(alt_name)
        if alt is None or not alt.health_monitor.is_available():
            logger.info(f"Alternate agent {alt_name} unavailable for {name}")
            return None
        if config.alternate_executor is None:
            logger.warning(f"Alternate agent {alt_name} is available but no executor was supplied")
            return None

        logger.info(f"Using alternate agent fallback: {alt_name}")
        try:
            data = await alt.circuit_breaker.execute(
                lambda: self._observed(alt, operation, config.alternate_executor))
        except Exception as e:
            logger.error(f"Fallback agent {alt_name} also failed: {e}")
            return None
        return _FallbackOutcome(data, alt_name)

    # ------------------------------------------------------------------
    # Read / administrative API
    # ------------------------------------------------------------------

    def get_agent_health(self, name: str) -> HealthStatus | None:
        agent = self._agents.get(name)
        return agent.health_monitor.status if agent else None

    def get_agent_metrics(self, name: str) -> dict[str, Any] | None:
        agent = self._agents.get(name)
        if not agent:
            return None
        return {
            "health": agent.health_monitor.get_metrics().to_dict(),
            "circuit_breaker": agent.circuit_breaker.get_stats().to_dict(),
        }

    def get_all_agents_status(self) -> dict[str, dict[str, Any]]:
        return {
            name: {
                "health": a.health_monitor.status.value,
                "circuit_breaker": a.circuit_breaker.state.value,
                "is_available": a.health_monitor.is_available(),
            }
            for name, a in list(self._agents.items())
        }

    def reset_agent(self, name: str) -> bool:
        agent = self._agents.get(name)
        if not agent:
            return False
        agent.health_monitor.reset()
        agent.circuit_breaker.reset()
        logger.info(f"Agent {name} supervision reset")
        return True

    def force_circuit_state(self, name: str, state: Literal["open", "closed"]) -> bool:
        agent = self._agents.get(name)
        if not agent:
            return False
        if state == "open":
            agent.circuit_breaker.force_open()
        elif state == "closed":
            agent.circuit_breaker.force_close()
        else:
            raise ValueError(f"Unknown circuit state: {state!r}")
        logger.warning(f"Agent {name} circuit breaker forced {state.upper()}")
        return True

    def get_statistics(self) -> SupervisionStatistics:
        stats = SupervisionStatistics()
        for agent in list(self._agents.values()):
            stats.total_agents += 1
            match agent.health_monitor.status:
                case HealthStatus.HEALTHY:
                    stats.healthy += 1
                case HealthStatus.DEGRADED:
                    stats.degraded += 1
                case HealthStatus.UNHEALTHY:
                    stats.unhealthy += 1
                case HealthStatus.UNKNOWN:
                    stats.unknown += 1
            match agent.circuit_breaker.state:
                case CircuitState.CLOSED:
                    stats.circuits_closed += 1
                case CircuitState.OPEN:
                    stats.circuits_open += 1
                case CircuitState.HALF_OPEN:
                    stats.circuits_half_open += 1
        return stats

    def shutdown(self):
        logger.info("Shutting down agent supervisor")
        with self._lock:
            for agent in self._agents.values():
                agent.circuit_breaker.destroy()
            self._agents.clear()


def _elapsed_ms(start: float) -> float:
    return (time.monotonic() - start) * 1000
