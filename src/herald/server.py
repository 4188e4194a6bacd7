"""
Herald API server — FastAPI application exposing supervision and the task queue.

Supervision endpoints:
    GET  /api/v1/supervision/status                  All agents: health, circuit, availability
    GET  /api/v1/supervision/agents/{name}           Detailed metrics for one agent
    GET  /api/v1/supervision/health/{name}           Health status for one agent
    POST /api/v1/supervision/reset/{name}            Reset an agent's breaker and health
    POST /api/v1/supervision/circuit/{name}/{state}  Force circuit open|closed
    GET  /api/v1/supervision/statistics              Aggregate counts and percentages

Tasks:
    POST /api/v1/tasks             Queue a task
    GET  /api/v1/tasks             Pending tasks, highest priority first
    POST /api/v1/tasks/process     Drain the queue

Observability:
    GET  /health                   Liveness check
    GET  /api/v1/metrics           Resilience metrics (JSON)
    GET  /metrics                  Resilience metrics (Prometheus text)
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from herald.agents.handlers import build_default_handlers
from herald.agents.orchestrator import Orchestrator, TaskHandler
from herald.agents.types import AgentName, TaskType, payload_from_dict
from herald.config import DEFAULT_PROVIDERS, HeraldConfig, load_config
from herald.providers import AnthropicProvider, BaseProvider, OpenAIProvider, PerplexityProvider
from herald.resilience.metrics import ResilienceMetrics
from herald.resilience.supervisor import SupervisionConfig, Supervisor

logger = logging.getLogger("herald.server")


class TaskRequest(BaseModel):
    type: TaskType
    payload: dict[str, Any] = Field(default_factory=dict)
    priority: int = 0


def _percent(part: int, total: int) -> float:
    return round(part / total * 100, 1) if total else 0.0


def _build_providers(config: HeraldConfig) -> dict[str, BaseProvider]:
    providers: dict[str, BaseProvider] = {}
    for name, cls in (("perplexity", PerplexityProvider), ("anthropic", AnthropicProvider),
                      ("openai", OpenAIProvider)):
        cfg = config.get_provider(name) or DEFAULT_PROVIDERS[name]
        if not cfg.is_available:
            logger.warning(f"Provider {name} has no API key configured; its tasks will fail")
        providers[name] = cls(cfg)
    return providers


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(config: HeraldConfig | None = None,
               handlers: Mapping[AgentName, TaskHandler] | None = None) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        cfg = config or load_config()
        logging.getLogger("herald").setLevel(cfg.log_level)

        metrics = ResilienceMetrics()
        supervisor = Supervisor(
            metrics=metrics,
            breaker_config=cfg.breaker_config(),
            health_config=cfg.health_config(),
            retry=cfg.retry_config(),
            fallback=cfg.fallback_config(),
        )

        providers: dict[str, BaseProvider] = {}
        task_handlers = handlers
        if task_handlers is None:
            providers = _build_providers(cfg)
            task_handlers = build_default_handlers(
                providers["perplexity"], providers["anthropic"], providers["openai"])

        for agent in task_handlers:
            fallback = cfg.agent_fallbacks.get(agent)
            supervisor.register_agent(agent.value, SupervisionConfig(
                fallback={"fallback_agent": fallback.value} if fallback else None))

        app.state.config = cfg
        app.state.metrics = metrics
        app.state.supervisor = supervisor
        app.state.providers = providers
        app.state.orchestrator = Orchestrator(supervisor, task_handlers, fallbacks=cfg.agent_fallbacks)

        logger.info(f"Herald supervising {', '.join(supervisor.agent_names)}")
        logger.info(f"Herald ready on {cfg.host}:{cfg.port}")
        yield

        for p in providers.values():
            await p.close()
        supervisor.shutdown()

    app = FastAPI(
        title="Herald",
        version="0.1.0",
        description="Agent supervision and task routing",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"], allow_methods=["*"], allow_headers=["*"],
    )

    def _supervisor(request: Request) -> Supervisor:
        return request.app.state.supervisor

    def _orchestrator(request: Request) -> Orchestrator:
        return request.app.state.orchestrator

    # ==================================================================
    # Health
    # ==================================================================

    @app.get("/health")
    async def liveness():
        return {"status": "ok"}

    # ==================================================================
    # Supervision
    # ==================================================================

    @app.get("/api/v1/supervision/status")
    async def supervision_status(request: Request):
        return {"agents": _supervisor(request).get_all_agents_status()}

    @app.get("/api/v1/supervision/agents/{name}")
    async def agent_metrics(name: str, request: Request):
        data = _supervisor(request).get_agent_metrics(name)
        if data is None:
            raise HTTPException(404, f"Agent '{name}' is not supervised")
        return {"agent": name, **data}

    @app.get("/api/v1/supervision/health/{name}")
    async def agent_health(name: str, request: Request):
        status = _supervisor(request).get_agent_health(name)
        if status is None:
            raise HTTPException(404, f"Agent '{name}' is not supervised")
        return {"agent": name, "status": status.value}

    @app.post("/api/v1/supervision/reset/{name}")
    async def reset_agent(name: str, request: Request):
        if not _supervisor(request).reset_agent(name):
            raise HTTPException(404, f"Agent '{name}' is not supervised")
        return {"status": "reset", "agent": name}

    @app.post("/api/v1/supervision/circuit/{name}/{state}")
    async def force_circuit(name: str, state: str, request: Request):
        if state not in ("open", "closed"):
            raise HTTPException(400, f"Unknown circuit state '{state}' (expected open or closed)")
        if not _supervisor(request).force_circuit_state(name, state):  # type: ignore[arg-type]
            raise HTTPException(404, f"Agent '{name}' is not supervised")
        return {"status": state, "agent": name}

    @app.get("/api/v1/supervision/statistics")
    async def statistics(request: Request):
        stats = _supervisor(request).get_statistics()
        total = stats.total_agents
        return {
            **stats.to_dict(),
            "percentages": {
                "healthy": _percent(stats.healthy, total),
                "degraded": _percent(stats.degraded, total),
                "unhealthy": _percent(stats.unhealthy, total),
                "circuits_open": _percent(stats.circuits_open, total),
            },
        }

    # ==================================================================
    # Tasks
    # ==================================================================

    @app.post("/api/v1/tasks")
    async def queue_task(body: TaskRequest, request: Request):
        try:
            payload = payload_from_dict(body.type, body.payload)
        except ValueError as e:
            raise HTTPException(422, str(e)) from None
        task_id = _orchestrator(request).queue_task(body.type, payload, body.priority)
        return {"id": task_id, "type": body.type.value, "priority": body.priority}

    @app.get("/api/v1/tasks")
    async def pending_tasks(request: Request):
        return {"tasks": [t.to_dict() for t in _orchestrator(request).pending()]}

    @app.post("/api/v1/tasks/process")
    async def process_tasks(request: Request):
        report = await _orchestrator(request).process_queue()
        return report.to_dict()

    # ==================================================================
    # Observability
    # ==================================================================

    @app.get("/api/v1/metrics")
    async def metrics_summary(request: Request):
        return request.app.state.metrics.get_summary()

    @app.get("/metrics", response_class=PlainTextResponse)
    async def metrics_prometheus(request: Request):
        return request.app.state.metrics.to_prometheus()

    return app
