"""
Circuit breaker — stops calling an agent that keeps failing.

States:
    CLOSED    → Normal operation, calls pass through
    OPEN      → Agent is failing, calls fail fast
    HALF_OPEN → Trial calls test whether the agent recovered

OPEN → HALF_OPEN is observed lazily on the next call once the recovery
timeout has elapsed. There is no background timer: a breaker that receives
no calls while OPEN stays OPEN.
"""

import logging
import threading
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any, TypeVar

from .metrics import MetricsSink, guard

logger = logging.getLogger("herald.circuit_breaker")

T = TypeVar("T")


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


_STATE_GAUGE = {CircuitState.CLOSED: 0, CircuitState.HALF_OPEN: 1, CircuitState.OPEN: 2}


@dataclass(frozen=True)
class BreakerConfig:
    failure_threshold: int = 5
    success_threshold: int = 2
    recovery_timeout_seconds: float = 60.0


@dataclass
class CircuitBreakerStats:
    name: str
    state: CircuitState
    consecutive_failures: int
    consecutive_successes: int
    total_calls: int
    rejected_calls: int
    last_failure: datetime | None
    last_state_change: datetime
    forced: bool

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name, "state": self.state.value,
            "consecutive_failures": self.consecutive_failures,
            "consecutive_successes": self.consecutive_successes,
            "total_calls": self.total_calls, "rejected_calls": self.rejected_calls,
            "last_failure": self.last_failure.isoformat() if self.last_failure else None,
            "last_state_change": self.last_state_change.isoformat(),
            "forced": self.forced,
        }


class CircuitOpenError(Exception):
    def __init__(self, name: str, retry_in_seconds: float):
        self.name = name
        self.retry_in_seconds = retry_in_seconds
        super().__init__(f"Circuit breaker OPEN for {name}. Try again in {retry_in_seconds:.0f}s")


class CircuitBreaker:
    """Circuit breaker guarding calls to one named agent."""

    def __init__(self, name: str, config: BreakerConfig | None = None, metrics: MetricsSink | None = None,
                 clock: Callable[[], float] = time.monotonic):
        self.name = name
        self.config = config or BreakerConfig()
        self._metrics = guard(metrics)
        self._clock = clock
        self._lock = threading.Lock()
        self._state = CircuitState.CLOSED
        self._forced = False
        self._destroyed = False
        self._trial_in_flight = False
        self.consecutive_failures = 0
        self.consecutive_successes = 0
        self.total_calls = 0
        self.rejected_calls = 0
        self.opened_at: float | None = None
        self.last_failure: datetime | None = None
        self.last_state_change = datetime.now(UTC)

    @property
    def state(self) -> CircuitState:
        return self._state

    async def execute(self, fn: Callable[[], Awaitable[T]]) -> T:
        """Run `fn` under breaker protection, or raise CircuitOpenError without calling it."""
        trial = self._admit()
        try:
            result = await fn()
        except Exception:
            self._on_failure(trial)
            raise
        except BaseException:
            # Cancelled mid-trial: free the slot without counting an outcome.
            if trial:
                with self._lock:
                    self._trial_in_flight = False
            raise
        self._on_success(trial)
        return result

    def _admit(self) -> bool:
        """Decide whether a call may proceed. Returns True for a HALF_OPEN trial call."""
        with self._lock:
            if self._destroyed:
                raise CircuitOpenError(self.name, 0)
            if self._state == CircuitState.OPEN:
                remaining = self._remaining()
                if self._forced or remaining > 0:
                    self._reject(remaining)
                logger.info(f"Circuit {self.name}: recovery timeout elapsed, trying a call")
                self._transition(CircuitState.HALF_OPEN)
            if self._state == CircuitState.HALF_OPEN:
                if self._trial_in_flight:
                    self._reject(0)
                self._trial_in_flight = True
                self.total_calls += 1
                return True
            self.total_calls += 1
            return False

    def _reject(self, remaining: float):
        self.rejected_calls += 1
        self._metrics.increment_counter("circuit_breaker_rejections", {"name": self.name})
        raise CircuitOpenError(self.name, remaining)

    def _remaining(self) -> float:
        if self.opened_at is None:
            return 0.0
        return max(0.0, self.config.recovery_timeout_seconds - (self._clock() - self.opened_at))

    def _on_success(self, trial: bool):
        with self._lock:
            if trial:
                self._trial_in_flight = False
            self.consecutive_failures = 0
            if self._state == CircuitState.HALF_OPEN:
                self.consecutive_successes += 1
                if self.consecutive_successes >= self.config.success_threshold:
                    self._transition(CircuitState.CLOSED)
            else:
                self.consecutive_successes += 1
        self._metrics.increment_counter("circuit_breaker_successes", {"name": self.name})

    def _on_failure(self, trial: bool):
        with self._lock:
            if trial:
                self._trial_in_flight = False
            self.consecutive_successes = 0
            self.consecutive_failures += 1
            self.last_failure = datetime.now(UTC)
            if self._forced:
                pass
            elif self._state == CircuitState.HALF_OPEN:
                logger.warning(f"Circuit {self.name}: trial call failed, reopening")
                self._transition(CircuitState.OPEN)
            elif self._state == CircuitState.CLOSED and self.consecutive_failures >= self.config.failure_threshold:
                logger.warning(
                    f"Circuit {self.name}: failure threshold reached "
                    f"({self.consecutive_failures}/{self.config.failure_threshold})")
                self._transition(CircuitState.OPEN)
        self._metrics.increment_counter("circuit_breaker_failures", {"name": self.name})

    def _transition(self, new: CircuitState):
        old = self._state
        self._state = new
        self.last_state_change = datetime.now(UTC)
        self.consecutive_failures = 0
        self.consecutive_successes = 0
        if new == CircuitState.OPEN:
            self.opened_at = self._clock()
        elif new == CircuitState.CLOSED:
            self.opened_at = None
        if old != new:
            logger.info(f"Circuit {self.name}: {old.value} -> {new.value}")
            self._metrics.increment_counter("circuit_breaker_state_changes",
                                            {"name": self.name, "from": old.value, "to": new.value})
            self._metrics.set_gauge("circuit_breaker_state", _STATE_GAUGE[new], {"name": self.name})

    def retry_in_seconds(self) -> float:
        with self._lock:
            if self._state != CircuitState.OPEN:
                return 0.0
            return self._remaining()

    # --- Administrative ---

    def force_open(self):
        with self._lock:
            logger.warning(f"Circuit {self.name}: forced OPEN")
            self._transition(CircuitState.OPEN)
            self._forced = True

    def force_close(self):
        with self._lock:
            logger.warning(f"Circuit {self.name}: forced CLOSED")
            self._transition(CircuitState.CLOSED)
            self._forced = True

    def reset(self):
        with self._lock:
            logger.info(f"Circuit {self.name}: reset")
            self._transition(CircuitState.CLOSED)
            self._forced = False
            self._trial_in_flight = False
            self.total_calls = 0
            self.rejected_calls = 0
            self.last_failure = None

    def destroy(self):
        with self._lock:
            self._destroyed = True
            self._trial_in_flight = False

    def get_stats(self) -> CircuitBreakerStats:
        with self._lock:
            return CircuitBreakerStats(
                name=self.name, state=self._state,
                consecutive_failures=self.consecutive_failures,
                consecutive_successes=self.consecutive_successes,
                total_calls=self.total_calls, rejected_calls=self.rejected_calls,
                last_failure=self.last_failure, last_state_change=self.last_state_change,
                forced=self._forced,
            )
