"""Tests for the default agent → provider handler wiring."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from herald.agents.handlers import build_default_handlers
from herald.agents.types import (
    AgentName,
    AgentTask,
    AnalysisPayload,
    ContentResult,
    EmbeddingPayload,
    ResearchPayload,
    ResearchResult,
    TaskType,
    WritingPayload,
)
from herald.providers.base import ProviderError


@pytest.fixture
def providers():
    perplexity, anthropic, openai = MagicMock(), MagicMock(), MagicMock()
    perplexity.research = AsyncMock(return_value="research")
    anthropic.generate_content = AsyncMock(return_value="content")
    anthropic.analyze_content = AsyncMock(return_value="analysis")
    openai.create_embeddings = AsyncMock(return_value="embeddings")
    return perplexity, anthropic, openai


@pytest.fixture
def handlers(providers):
    return build_default_handlers(*providers)


def task(task_type, payload):
    return AgentTask(id="task_1_x", type=task_type, payload=payload)


async def test_research(handlers, providers):
    result = await handlers[AgentName.PERPLEXITY](
        task(TaskType.RESEARCH, ResearchPayload(query="llm pricing", topic="AI", max_results=3)))
    assert result == "research"
    providers[0].research.assert_awaited_once_with("AI: llm pricing", ("web", "academic", "news"), 3)
    providers[1].generate_content.assert_not_awaited()


class TestResearchReport:
    @pytest.fixture
    def findings(self, providers):
        found = ResearchResult(summary="Prices fell", citations=["https://a.example"], model="sonar-pro")
        providers[0].research = AsyncMock(return_value=found)
        return found

    async def test_report_written_from_findings(self, handlers, providers, findings):
        written = ContentResult(content="## Summary\nPrices fell", format="report", sections={"Summary": "Prices fell"})
        providers[1].generate_content = AsyncMock(return_value=written)
        result = await handlers[AgentName.PERPLEXITY](
            task(TaskType.RESEARCH, ResearchPayload(query="llm pricing", report=True)))
        assert result.summary == "Prices fell"
        assert result.report is written
        kwargs = providers[1].generate_content.await_args.kwargs
        assert kwargs["format"] == "report"
        assert "https://a.example" in kwargs["context"]

    async def test_failed_report_keeps_findings(self, handlers, providers, findings):
        providers[1].generate_content = AsyncMock(side_effect=ProviderError("overloaded", "anthropic", 529))
        result = await handlers[AgentName.PERPLEXITY](
            task(TaskType.RESEARCH, ResearchPayload(query="llm pricing", report=True)))
        assert result is findings
        assert result.report is None


async def test_claude_answers_research_without_citations(handlers, providers):
    providers[1].generate_content = AsyncMock(return_value=ContentResult(content="From memory", model="claude-x"))
    result = await handlers[AgentName.CLAUDE](task(TaskType.RESEARCH, ResearchPayload(query="llm pricing")))
    assert result == ResearchResult(summary="From memory", citations=[], model="claude-x")
    assert providers[1].generate_content.await_args.kwargs["format"] == "summary"


async def test_writing(handlers, providers):
    payload = WritingPayload(prompt="launch post", brand_voice="casual", format="report", sections=("Intro",))
    assert await handlers[AgentName.CLAUDE](task(TaskType.WRITING, payload)) == "content"
    kwargs = providers[1].generate_content.await_args.kwargs
    assert kwargs["brand_voice"] == "casual"
    assert kwargs["format"] == "report"
    assert kwargs["sections"] == ("Intro",)


async def test_analysis(handlers, providers):
    payload = AnalysisPayload(content="post", analysis_type="seo")
    assert await handlers[AgentName.CLAUDE](task(TaskType.ANALYSIS, payload)) == "analysis"
    providers[1].analyze_content.assert_awaited_once_with("post", analysis_type="seo", target_audience=None)


async def test_embedding(handlers, providers):
    payload = EmbeddingPayload(texts=("a", "b"))
    assert await handlers[AgentName.EMBEDDING](task(TaskType.EMBEDDING, payload)) == "embeddings"
    providers[2].create_embeddings.assert_awaited_once_with(("a", "b"), "text-embedding-3-small")


@pytest.mark.parametrize("agent, payload", [
    (AgentName.PERPLEXITY, WritingPayload(prompt="x")),
    (AgentName.CLAUDE, EmbeddingPayload(texts=("x",))),
    (AgentName.EMBEDDING, ResearchPayload(query="x")),
])
async def test_wrong_payload(handlers, agent, payload):
    with pytest.raises(TypeError):
        await handlers[agent](task(TaskType.RESEARCH, payload))
