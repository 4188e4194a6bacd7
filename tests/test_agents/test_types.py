"""Tests for task payloads, results and capability records."""

import pytest
from pydantic import ValidationError

from herald.agents.capabilities import CAPABILITIES, AgentCapability
from herald.agents.orchestrator import select_best_agent
from herald.agents.types import (
    AGENT_TASK_TYPES,
    ANALYSIS_TYPES,
    BRAND_VOICES,
    AgentName,
    AgentTask,
    AnalysisPayload,
    Embedding,
    EmbeddingPayload,
    EmbeddingResult,
    ResearchPayload,
    TaskType,
    WritingPayload,
    payload_from_dict,
)
from herald.providers.anthropic import ANALYSIS_PROMPTS, VOICE_PROMPTS


class TestPayloadFromDict:
    def test_builds_typed_payload(self):
        payload = payload_from_dict("writing", {"prompt": "launch post", "sections": ["intro", "cta"]})
        assert isinstance(payload, WritingPayload)
        assert payload.sections == ("intro", "cta")
        assert payload.brand_voice == "professional"

    def test_unknown_field(self):
        with pytest.raises(ValueError, match="colour"):
            payload_from_dict(TaskType.RESEARCH, {"query": "x", "colour": "red"})

    def test_missing_required_field(self):
        with pytest.raises(ValueError):
            payload_from_dict(TaskType.EMBEDDING, {})

    def test_research_defaults(self):
        payload = payload_from_dict(TaskType.RESEARCH, {"query": "x"})
        assert payload.max_results == 10
        assert payload.sources == ("web", "academic", "news")
        assert payload.report is False

    def test_unknown_brand_voice(self):
        with pytest.raises(ValueError, match="pirate"):
            payload_from_dict(TaskType.WRITING, {"prompt": "x", "brand_voice": "pirate"})

    def test_unknown_analysis_type(self):
        with pytest.raises(ValueError, match="vibes"):
            AnalysisPayload(content="x", analysis_type="vibes")

    def test_every_known_choice_is_accepted(self):
        for voice in BRAND_VOICES:
            assert WritingPayload(prompt="x", brand_voice=voice).brand_voice == voice
        for kind in ANALYSIS_TYPES:
            assert AnalysisPayload(content="x", analysis_type=kind).analysis_type == kind

    def test_provider_prompts_cover_every_choice(self):
        assert set(VOICE_PROMPTS) == set(BRAND_VOICES)
        assert set(ANALYSIS_PROMPTS) == set(ANALYSIS_TYPES)


class TestAgentTaskTypes:
    def test_each_agent_serves_its_routed_types(self):
        for task_type in TaskType:
            assert task_type in AGENT_TASK_TYPES[select_best_agent(task_type)]

    def test_perplexity_only_researches(self):
        assert AGENT_TASK_TYPES[AgentName.PERPLEXITY] == {TaskType.RESEARCH}


class TestResults:
    def test_embedding_dimensions(self):
        result = EmbeddingResult(embeddings=[Embedding(id="1", content="a", vector=[0.1, 0.2, 0.3])])
        assert result.dimensions == 3
        assert EmbeddingResult(embeddings=[]).dimensions == 0


class TestAgentTask:
    def test_to_dict(self):
        task = AgentTask(id="task_1_abc", type=TaskType.EMBEDDING, payload=EmbeddingPayload(texts=("a",)),
                         priority=4)
        d = task.to_dict()
        assert d["type"] == "embedding"
        assert d["priority"] == 4
        assert d["payload"]["texts"] == ("a",)
        assert d["timestamp"].endswith("+00:00")

    def test_is_frozen(self):
        task = AgentTask(id="t", type=TaskType.RESEARCH, payload=ResearchPayload(query="q"))
        with pytest.raises(AttributeError):
            task.priority = 10  # type: ignore[misc]


class TestCapabilities:
    def test_every_agent_documented(self):
        assert set(CAPABILITIES) == set(AgentName)
        assert all(c.agent == name for name, c in CAPABILITIES.items())

    def test_speed_rating_bounds(self):
        with pytest.raises(ValidationError):
            AgentCapability(agent=AgentName.CLAUDE, model="x", speed_rating=11)

    def test_frozen(self):
        with pytest.raises(ValidationError):
            CAPABILITIES[AgentName.CLAUDE].speed_rating = 1  # type: ignore[misc]
