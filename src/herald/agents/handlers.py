"""Default task handlers — bind each agent to the provider client that serves it."""

import logging
from dataclasses import replace

from herald.providers.anthropic import AnthropicProvider
from herald.providers.base import ProviderError
from herald.providers.openai import OpenAIProvider
from herald.providers.perplexity import PerplexityProvider

from .orchestrator import TaskHandler
from .types import (
    AgentName,
    AgentTask,
    AnalysisPayload,
    EmbeddingPayload,
    ResearchPayload,
    ResearchResult,
    TaskResult,
    WritingPayload,
)

logger = logging.getLogger("herald.handlers")


def _wrong_payload(agent: AgentName, task: AgentTask) -> TypeError:
    return TypeError(f"Agent '{agent.value}' cannot handle {type(task.payload).__name__} (task {task.id})")


def _research_query(payload: ResearchPayload) -> str:
    return f"{payload.topic}: {payload.query}" if payload.topic else payload.query


def _findings(result: ResearchResult) -> str:
    if not result.citations:
        return result.summary
    sources = "\n".join(f"- {c}" for c in result.citations)
    return f"{result.summary}\n\nSources:\n{sources}"


def build_default_handlers(perplexity: PerplexityProvider, anthropic: AnthropicProvider,
                           openai: OpenAIProvider) -> dict[AgentName, TaskHandler]:
    async def research(task: AgentTask) -> TaskResult:
        payload = task.payload
        if not isinstance(payload, ResearchPayload):
            raise _wrong_payload(AgentName.PERPLEXITY, task)
        query = _research_query(payload)
        result = await perplexity.research(query, payload.sources, payload.max_results)
        if not payload.report:
            return result

        # The research already succeeded; a failed write-up only drops the report.
        try:
            report = await anthropic.generate_content(
                f"Write a research report on: {query}", context=_findings(result), format="report")
        except ProviderError as e:
            logger.warning(f"Report for research task {task.id} failed, returning findings only: {e}")
            return result
        return replace(result, report=report)

    async def claude(task: AgentTask) -> TaskResult:
        payload = task.payload
        match payload:
            case WritingPayload():
                prompt = f"Topic: {payload.topic}\n\n{payload.prompt}" if payload.topic else payload.prompt
                return await anthropic.generate_content(
                    prompt, context=payload.context, brand_voice=payload.brand_voice,
                    format=payload.format, max_tokens=payload.max_tokens, sections=payload.sections,
                )
            case AnalysisPayload():
                return await anthropic.analyze_content(
                    payload.content, analysis_type=payload.analysis_type,
                    target_audience=payload.target_audience,
                )
            case ResearchPayload():
                # No live search here: the summary comes from the model alone, without citations.
                content = await anthropic.generate_content(
                    f"Summarize what is known about: {_research_query(payload)}", format="summary")
                return ResearchResult(summary=content.content, model=content.model)
            case _:
                raise _wrong_payload(AgentName.CLAUDE, task)

    async def embedding(task: AgentTask) -> TaskResult:
        payload = task.payload
        if not isinstance(payload, EmbeddingPayload):
            raise _wrong_payload(AgentName.EMBEDDING, task)
        return await openai.create_embeddings(payload.texts, payload.model)

    return {
        AgentName.PERPLEXITY: research,
        AgentName.CLAUDE: claude,
        AgentName.EMBEDDING: embedding,
    }
