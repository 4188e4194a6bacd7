"""Perplexity provider — web-grounded research."""

import logging
from collections.abc import Sequence

from herald.agents.types import ResearchResult

from .base import BaseProvider, ProviderError

logger = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a research assistant. Provide comprehensive, factual information with sources. "
    "Focus on: accuracy, recency, relevance, and credibility of sources."
)


class PerplexityProvider(BaseProvider):
    name = "perplexity"
    display_name = "Perplexity"

    async def research(self, query: str, sources: Sequence[str] = (), max_results: int = 10,
                       model: str | None = None) -> ResearchResult:
        body = {
            "model": model or self.config.default_model,
            "messages": [
                {"role": "system", "content": SYSTEM_PROMPT},
                {"role": "user", "content": query},
            ],
            "temperature": 0.2,
            "max_tokens": 4000,
            "return_citations": True,
            "search_recency_filter": "week",
        }
        # Source kinds ("web", "news") steer the prompt; only real domains go to the filter.
        domains = [s for s in sources if "." in s]
        if domains:
            body["search_domain_filter"] = domains

        data = await self._post("/chat/completions", body)
        try:
            summary = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            raise ProviderError("Malformed research response", self.name) from None
        citations = list(data.get("citations") or [])[:max_results]
        return ResearchResult(summary=summary, citations=citations, model=data.get("model"))
