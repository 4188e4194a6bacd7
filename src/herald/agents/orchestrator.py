"""Orchestrator — priority task queue with capability-based routing."""

from __future__ import annotations

import logging
import random
import string
import threading
import time
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from itertools import count
from typing import Any, assert_never

from herald.resilience.supervisor import (
    ExecutionContext,
    ExecutionResult,
    FallbackStrategy,
    SupervisionConfig,
    Supervisor,
)

from .types import AGENT_TASK_TYPES, PAYLOAD_TYPES, AgentName, AgentTask, TaskPayload, TaskResult, TaskType

logger = logging.getLogger("herald.orchestrator")

TaskHandler = Callable[[AgentTask], Awaitable[TaskResult]]

_BASE36 = string.digits + string.ascii_lowercase


def _base36(n: int, width: int) -> str:
    out = []
    for _ in range(width):
        n, r = divmod(n, 36)
        out.append(_BASE36[r])
    return "".join(reversed(out))


class NoHandlerError(Exception):
    def __init__(self, agent: AgentName, task_type: TaskType):
        self.agent = agent
        self.task_type = task_type
        super().__init__(f"No handler registered for agent '{agent.value}' (task type: {task_type.value})")


@dataclass
class QueueReport:
    processed: int = 0
    succeeded: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"processed": self.processed, "succeeded": self.succeeded, "failed": self.failed}


def select_best_agent(task_type: TaskType | str) -> AgentName:
    """Static type → agent routing. Anything unrecognised goes to the general-reasoning agent."""
    try:
        kind = TaskType(task_type)
    except ValueError:
        logger.warning(f"Unknown task type {task_type!r}, routing to {AgentName.CLAUDE.value}")
        return AgentName.CLAUDE

    match kind:
        case TaskType.RESEARCH:
            return AgentName.PERPLEXITY
        case TaskType.WRITING | TaskType.ANALYSIS:
            return AgentName.CLAUDE
        case TaskType.EMBEDDING:
            return AgentName.EMBEDDING
        case _:
            assert_never(kind)


class Orchestrator:
    """
    Routes queued tasks to agent handlers through the supervisor.

    Usage:
        orchestrator = Orchestrator(supervisor, build_default_handlers(...))
        orchestrator.queue_task(TaskType.RESEARCH, ResearchPayload(query="..."), priority=5)
        report = await orchestrator.process_queue()
    """

    def __init__(self, supervisor: Supervisor, handlers: Mapping[AgentName, TaskHandler],
                 supervision: SupervisionConfig | None = None,
                 fallbacks: Mapping[AgentName, AgentName] | None = None,
                 accepts: Mapping[AgentName, frozenset[TaskType]] | None = None):
        self.supervisor = supervisor
        self.handlers: dict[AgentName, TaskHandler] = dict(handlers)
        self.supervision = supervision
        self.fallbacks: dict[AgentName, AgentName] = dict(fallbacks or {})
        self.accepts: dict[AgentName, frozenset[TaskType]] = dict(AGENT_TASK_TYPES if accepts is None else accepts)
        self._queue: list[AgentTask] = []
        self._lock = threading.Lock()
        self._seq = count()

    def __len__(self) -> int:
        return len(self._queue)

    # ------------------------------------------------------------------
    # Queue
    # ------------------------------------------------------------------

    def _next_id(self) -> str:
        millis = time.monotonic_ns() // 1_000_000
        suffix = "".join(random.choices(_BASE36, k=5)) + _base36(next(self._seq), 4)
        return f"task_{millis}_{suffix}"

    def queue_task(self, task_type: TaskType | str, payload: TaskPayload, priority: int = 0) -> str:
        kind = TaskType(task_type)
        expected = PAYLOAD_TYPES[kind]
        if not isinstance(payload, expected):
            raise TypeError(f"{kind.value} task needs {expected.__name__}, got {type(payload).__name__}")

        with self._lock:
            task = AgentTask(id=self._next_id(), type=kind, payload=payload, priority=priority,
                             timestamp=datetime.now(UTC))
            self._queue.append(task)
            # Stable sort: equal priorities keep insertion order.
            self._queue.sort(key=lambda t: t.priority, reverse=True)
        logger.debug(f"Queued {kind.value} task {task.id} (priority {priority})")
        return task.id

    def pending(self) -> list[AgentTask]:
        with self._lock:
            return list(self._queue)

    def _pop(self) -> AgentTask | None:
        with self._lock:
            return self._queue.pop(0) if self._queue else None

    # ------------------------------------------------------------------
    # Delegation
    # ------------------------------------------------------------------

    def select_best_agent(self, task: AgentTask) -> AgentName:
        return select_best_agent(task.type)

    async def delegate_task(self, task: AgentTask) -> ExecutionResult[TaskResult]:
        agent = self.select_best_agent(task)
        handler = self.handlers.get(agent)
        if handler is None:
            raise NoHandlerError(agent, task.type)

        logger.info(f"Delegating {task.type.value} task {task.id} to {agent.value}")
        context = ExecutionContext(agent_name=agent.value, operation=task.type.value,
                                   metadata={"task_id": task.id, "priority": task.priority})
        return await self.supervisor.execute(context, lambda: handler(task), self._config_for(agent, task))

    def _config_for(self, agent: AgentName, task: AgentTask) -> SupervisionConfig | None:
        """Wire the agent's configured fallback in as an ALTERNATE executor when it can serve this task."""
        fallback_agent = self.fallbacks.get(agent)
        fallback_handler = self.handlers.get(fallback_agent) if fallback_agent else None
        if fallback_handler is None:
            return self.supervision
        if task.type not in self.accepts.get(fallback_agent, frozenset()):
            logger.debug(f"Fallback {fallback_agent.value} cannot serve {task.type.value} tasks, skipping it")
            return self.supervision

        fb = self.supervisor.resolve_fallback(self.supervision)
        if not fb.enabled:
            return self.supervision
        if self.supervisor.get_agent(fallback_agent.value) is None:
            self.supervisor.register_agent(fallback_agent.value)
        return replace(self.supervision or SupervisionConfig(), fallback=replace(
            fb, strategy=FallbackStrategy.ALTERNATE, fallback_agent=fallback_agent.value,
            alternate_executor=lambda: fallback_handler(task)))

    async def process_queue(self) -> QueueReport:
        """Drain the queue highest-priority first. One task's failure never stops the drain."""
        report = QueueReport()
        while (task := self._pop()) is not None:
            report.processed += 1
            try:
                result = await self.delegate_task(task)
            except Exception as e:
                report.failed += 1
                logger.error(f"Error processing task {task.id}: {e}")
                continue
            if result.success:
                report.succeeded += 1
            else:
                report.failed += 1
                logger.warning(f"Task {task.id} failed after {result.attempts} attempt(s): {result.error}")
        return report

    def get_status(self) -> dict[str, Any]:
        return {"queued": len(self._queue), "handlers": sorted(a.value for a in self.handlers),
                "fallbacks": {a.value: f.value for a, f in self.fallbacks.items()}}
