"""Herald agents — task types, capability records and the orchestrator."""

from .capabilities import CAPABILITIES, AgentCapability
from .orchestrator import NoHandlerError, Orchestrator, QueueReport, TaskHandler, select_best_agent
from .types import (
    AgentName,
    AgentTask,
    AnalysisPayload,
    AnalysisResult,
    ContentResult,
    EmbeddingPayload,
    EmbeddingResult,
    ResearchPayload,
    ResearchResult,
    TaskType,
    WritingPayload,
    payload_from_dict,
)

__all__ = [
    "AgentCapability",
    "CAPABILITIES",
    "NoHandlerError",
    "Orchestrator",
    "QueueReport",
    "TaskHandler",
    "select_best_agent",
    "AgentName",
    "AgentTask",
    "AnalysisPayload",
    "AnalysisResult",
    "ContentResult",
    "EmbeddingPayload",
    "EmbeddingResult",
    "ResearchPayload",
    "ResearchResult",
    "TaskType",
    "WritingPayload",
    "payload_from_dict",
]
