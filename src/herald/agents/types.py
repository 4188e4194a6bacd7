"""Task types — task kinds, agents, typed payloads and results."""

from dataclasses import dataclass, field, fields
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Generic, TypeVar


class TaskType(str, Enum):
    RESEARCH = "research"
    WRITING = "writing"
    ANALYSIS = "analysis"
    EMBEDDING = "embedding"


class AgentName(str, Enum):
    PERPLEXITY = "perplexity"   # real-time research
    CLAUDE = "claude"           # general reasoning and writing
    EMBEDDING = "embedding"     # vector embeddings


# Task kinds each agent's handler can serve. Claude answers research from
# its own knowledge when Perplexity is down (no live citations).
AGENT_TASK_TYPES: dict[AgentName, frozenset[TaskType]] = {
    AgentName.PERPLEXITY: frozenset({TaskType.RESEARCH}),
    AgentName.CLAUDE: frozenset({TaskType.RESEARCH, TaskType.WRITING, TaskType.ANALYSIS}),
    AgentName.EMBEDDING: frozenset({TaskType.EMBEDDING}),
}

BRAND_VOICES = ("professional", "casual", "technical", "playful")
ANALYSIS_TYPES = ("sentiment", "readability", "engagement", "seo")


# ---------------------------------------------------------------------------
# Payloads
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ResearchPayload:
    query: str
    sources: tuple[str, ...] = ("web", "academic", "news")
    max_results: int = 10
    topic: str | None = None
    report: bool = False    # also have Claude write the findings up as a report


@dataclass(frozen=True)
class WritingPayload:
    prompt: str
    topic: str | None = None
    context: str | None = None
    brand_voice: str = "professional"
    format: str = "article"
    max_tokens: int = 2000
    sections: tuple[str, ...] = ()

    def __post_init__(self):
        if self.brand_voice not in BRAND_VOICES:
            raise ValueError(
                f"Unknown brand voice '{self.brand_voice}' (expected one of: {', '.join(BRAND_VOICES)})")


@dataclass(frozen=True)
class AnalysisPayload:
    content: str
    analysis_type: str = "engagement"
    target_audience: str | None = None

    def __post_init__(self):
        if self.analysis_type not in ANALYSIS_TYPES:
            raise ValueError(
                f"Unknown analysis type '{self.analysis_type}' (expected one of: {', '.join(ANALYSIS_TYPES)})")


@dataclass(frozen=True)
class EmbeddingPayload:
    texts: tuple[str, ...]
    model: str = "text-embedding-3-small"


TaskPayload = ResearchPayload | WritingPayload | AnalysisPayload | EmbeddingPayload

PAYLOAD_TYPES: dict[TaskType, type] = {
    TaskType.RESEARCH: ResearchPayload,
    TaskType.WRITING: WritingPayload,
    TaskType.ANALYSIS: AnalysisPayload,
    TaskType.EMBEDDING: EmbeddingPayload,
}


def payload_from_dict(task_type: TaskType | str, data: dict[str, Any]) -> TaskPayload:
    """Build the payload for `task_type` from plain data. Raises ValueError on bad input."""
    cls = PAYLOAD_TYPES[TaskType(task_type)]
    known = {f.name for f in fields(cls)}
    unknown = set(data) - known
    if unknown:
        raise ValueError(f"Unknown {cls.__name__} fields: {', '.join(sorted(unknown))}")
    values = {k: tuple(v) if isinstance(v, list) else v for k, v in data.items()}
    try:
        return cls(**values)
    except TypeError as e:
        raise ValueError(f"Invalid {cls.__name__}: {e}") from None


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------

@dataclass
class ContentResult:
    content: str
    format: str | None = None
    model: str | None = None
    sections: dict[str, str] = field(default_factory=dict)
    usage: dict[str, int] = field(default_factory=dict)


@dataclass
class ResearchResult:
    summary: str
    citations: list[str] = field(default_factory=list)
    model: str | None = None
    report: ContentResult | None = None


@dataclass
class AnalysisResult:
    analysis_type: str
    analysis: str
    model: str | None = None


@dataclass
class Embedding:
    id: str
    content: str
    vector: list[float]

    @property
    def dimensions(self) -> int:
        return len(self.vector)


@dataclass
class EmbeddingResult:
    embeddings: list[Embedding]
    model: str | None = None

    @property
    def dimensions(self) -> int:
        return self.embeddings[0].dimensions if self.embeddings else 0


TaskResult = ResearchResult | ContentResult | AnalysisResult | EmbeddingResult


# ---------------------------------------------------------------------------
# Task
# ---------------------------------------------------------------------------

P = TypeVar("P", ResearchPayload, WritingPayload, AnalysisPayload, EmbeddingPayload)


@dataclass(frozen=True)
class AgentTask(Generic[P]):
    id: str
    type: TaskType
    payload: P
    priority: int = 0
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "type": self.type.value, "priority": self.priority,
                "timestamp": self.timestamp.isoformat(),
                "payload": {f.name: getattr(self.payload, f.name) for f in fields(self.payload)}}
