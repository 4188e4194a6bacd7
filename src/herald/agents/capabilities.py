"""
Agent capabilities — what each agent is good and bad at.

Reference data documenting why tasks are routed the way they are. The router
itself is a static task-type match and does not consult these records.
"""

from pydantic import BaseModel, ConfigDict, Field

from .types import AgentName


class AgentCapability(BaseModel):
    model_config = ConfigDict(frozen=True)

    agent: AgentName
    model: str
    strengths: tuple[str, ...] = Field(default_factory=tuple)
    weaknesses: tuple[str, ...] = Field(default_factory=tuple)
    cost_per_token: float = 0.0
    speed_rating: int = Field(default=5, ge=1, le=10)


CAPABILITIES: dict[AgentName, AgentCapability] = {
    AgentName.PERPLEXITY: AgentCapability(
        agent=AgentName.PERPLEXITY, model="sonar-pro",
        strengths=("real-time research", "web search", "fact checking", "current events"),
        weaknesses=("creative writing", "code generation"),
        cost_per_token=0.0001, speed_rating=9,
    ),
    AgentName.CLAUDE: AgentCapability(
        agent=AgentName.CLAUDE, model="claude-sonnet-4-5",
        strengths=("creative writing", "analysis", "code generation", "complex reasoning"),
        weaknesses=("real-time data", "web search"),
        cost_per_token=0.003, speed_rating=7,
    ),
    AgentName.EMBEDDING: AgentCapability(
        agent=AgentName.EMBEDDING, model="text-embedding-3-small",
        strengths=("vector embeddings", "semantic search", "similarity analysis"),
        weaknesses=("content generation", "reasoning"),
        cost_per_token=0.00002, speed_rating=10,
    ),
}
