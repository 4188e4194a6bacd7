"""OpenAI provider — text embeddings."""

import logging
import uuid
from collections.abc import Sequence

from herald.agents.types import Embedding, EmbeddingResult

from .base import BaseProvider, ProviderError

logger = logging.getLogger(__name__)


class OpenAIProvider(BaseProvider):
    name = "openai"
    display_name = "OpenAI"

    async def create_embeddings(self, texts: Sequence[str], model: str | None = None) -> EmbeddingResult:
        if not texts:
            return EmbeddingResult(embeddings=[], model=model or self.config.default_model)

        data = await self._post("/embeddings", {"model": model or self.config.default_model, "input": list(texts)})
        items = sorted(data.get("data") or [], key=lambda d: d.get("index", 0))
        if len(items) != len(texts):
            raise ProviderError(f"Expected {len(texts)} embeddings, got {len(items)}", self.name)
        return EmbeddingResult(
            embeddings=[Embedding(id=str(uuid.uuid4()), content=text, vector=item["embedding"])
                        for text, item in zip(texts, items, strict=True)],
            model=data.get("model"),
        )
