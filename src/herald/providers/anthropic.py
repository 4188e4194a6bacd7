"""
Anthropic (Claude) provider — long-form writing and content analysis.

Brand voices shape the system prompt; report-format output is split into
sections on its `## ` headings.
"""

import logging
import re
from collections.abc import Sequence
from typing import Any

from herald.agents.types import AnalysisResult, ContentResult

from .base import BaseProvider, ProviderError

logger = logging.getLogger(__name__)

VOICE_PROMPTS: dict[str, str] = {
    "professional": "Write in a clear, authoritative and professional tone. Avoid slang.",
    "casual": "Write in a friendly, conversational tone, as if talking to a peer.",
    "technical": "Write precisely for an expert audience. Prefer concrete detail over hype.",
    "playful": "Write with energy and wit while keeping the message clear.",
}

ANALYSIS_PROMPTS: dict[str, str] = {
    "sentiment": "Analyze the sentiment and emotional tone of this content.",
    "readability": "Assess the readability of this content and suggest concrete simplifications.",
    "engagement": "Predict how engaging this content is on social media and how to improve it.",
    "seo": "Review this content for SEO: keywords, structure, and metadata suggestions.",
}

_SECTION_RE = re.compile(r"^##\s+(.+?)\n(.*?)(?=^##\s+|\Z)", re.MULTILINE | re.DOTALL)


def extract_sections(content: str) -> dict[str, str]:
    return {m.group(1).strip(): m.group(2).strip() for m in _SECTION_RE.finditer(content)}


class AnthropicProvider(BaseProvider):
    name = "anthropic"
    display_name = "Anthropic (Claude)"
    API_VERSION = "2023-06-01"

    def _get_headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self.config.api_key or "",
            "anthropic-version": self.API_VERSION,
            "User-Agent": "Herald/0.1.0",
        }

    async def _message(self, system: str, prompt: str, max_tokens: int, temperature: float) -> dict[str, Any]:
        body = {
            "model": self.config.default_model,
            "system": system,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        return await self._post("/v1/messages", body)

    @staticmethod
    def _text(data: dict[str, Any]) -> str:
        blocks = data.get("content") or []
        text = "".join(b.get("text", "") for b in blocks if b.get("type") == "text")
        if not text and not blocks:
            raise ProviderError("Empty message response", "anthropic")
        return text

    async def generate_content(self, prompt: str, context: str | None = None, brand_voice: str = "professional",
                               format: str = "article", max_tokens: int = 2000,
                               sections: Sequence[str] = ()) -> ContentResult:
        voice = VOICE_PROMPTS.get(brand_voice)
        if voice is None:
            raise ValueError(f"Unknown brand voice '{brand_voice}'")
        system = f"You are a content writer producing a {format}. {voice}"

        user = prompt
        if context:
            user = f"Context:\n{context}\n\nTask:\n{prompt}"
        if sections:
            user += "\n\nInclude these sections:\n" + "\n".join(f"- {s}" for s in sections)

        data = await self._message(system, user, max_tokens, temperature=0.7)
        content = self._text(data)
        return ContentResult(
            content=content,
            format=format,
            model=data.get("model"),
            sections=extract_sections(content) if format == "report" else {},
            usage=dict(data.get("usage") or {}),
        )

    async def analyze_content(self, content: str, analysis_type: str = "engagement",
                              target_audience: str | None = None) -> AnalysisResult:
        instruction = ANALYSIS_PROMPTS.get(analysis_type)
        if instruction is None:
            raise ValueError(f"Unknown analysis type '{analysis_type}'")
        if target_audience:
            instruction += f" The target audience is: {target_audience}."
        data = await self._message("You are a content strategist.", f"{instruction}\n\nContent:\n{content}",
                                   max_tokens=1500, temperature=0.3)
        return AnalysisResult(analysis_type=analysis_type, analysis=self._text(data), model=data.get("model"))
