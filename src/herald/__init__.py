"""
Herald — agent supervision and task routing for content automation.

Tasks are queued by priority, routed to the agent best suited to them, and
executed under a circuit breaker, health monitor, retry policy and fallback.

Quick start::

    supervisor = Supervisor(metrics=ResilienceMetrics())
    orchestrator = Orchestrator(supervisor, handlers)
    orchestrator.queue_task(TaskType.RESEARCH, ResearchPayload(query="..."), priority=5)
    report = await orchestrator.process_queue()
"""

__version__ = "0.1.0"

from herald.agents import (
    AgentName,
    AgentTask,
    NoHandlerError,
    Orchestrator,
    QueueReport,
    TaskType,
)
from herald.config import HeraldConfig, ProviderConfig, load_config
from herald.resilience import (
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
    ExecutionContext,
    ExecutionResult,
    HealthMonitor,
    HealthStatus,
    ResilienceMetrics,
    SupervisionConfig,
    Supervisor,
)

__all__ = [
    # Agents
    "AgentName",
    "AgentTask",
    "NoHandlerError",
    "Orchestrator",
    "QueueReport",
    "TaskType",
    # Config
    "HeraldConfig",
    "ProviderConfig",
    "load_config",
    # Resilience
    "CircuitBreaker",
    "CircuitOpenError",
    "CircuitState",
    "ExecutionContext",
    "ExecutionResult",
    "HealthMonitor",
    "HealthStatus",
    "ResilienceMetrics",
    "SupervisionConfig",
    "Supervisor",
]
