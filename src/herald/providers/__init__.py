"""Herald provider clients — thin HTTP adapters for each agent backend."""

from .anthropic import AnthropicProvider
from .base import (
    AuthenticationError,
    BaseProvider,
    ModelNotFoundError,
    ProviderError,
    RateLimitError,
)
from .openai import OpenAIProvider
from .perplexity import PerplexityProvider

__all__ = [
    "BaseProvider",
    "ProviderError",
    "RateLimitError",
    "AuthenticationError",
    "ModelNotFoundError",
    "AnthropicProvider",
    "OpenAIProvider",
    "PerplexityProvider",
]
