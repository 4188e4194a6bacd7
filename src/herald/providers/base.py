"""
Base provider — shared HTTP plumbing for the agent API clients.
"""

import logging
from typing import Any

import httpx

from herald.config import ProviderConfig

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class ProviderError(Exception):
    def __init__(self, message: str, provider: str, status_code: int | None = None):
        self.message = message
        self.provider = provider
        self.status_code = status_code
        super().__init__(f"[{provider}] {message}")


class RateLimitError(ProviderError):
    pass


class AuthenticationError(ProviderError):
    pass


class ModelNotFoundError(ProviderError):
    pass


# ---------------------------------------------------------------------------
# Base class
# ---------------------------------------------------------------------------

class BaseProvider:
    """HTTP client base for one provider. Subclasses add the task-specific calls."""

    name: str = "base"
    display_name: str = "Base Provider"
    health_path: str = "/models"

    def __init__(self, config: ProviderConfig, client: httpx.AsyncClient | None = None):
        self.config = config
        self._client = client

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                headers=self._get_headers(),
                timeout=httpx.Timeout(self.config.timeout),
            )
        return self._client

    async def close(self):
        if self._client:
            await self._client.aclose()
            self._client = None

    def _get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "User-Agent": "Herald/0.1.0"}
        if self.config.api_key:
            headers["Authorization"] = f"Bearer {self.config.api_key}"
        return headers

    async def _post(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self.client.post(path, json=body)
        except httpx.TimeoutException as e:
            raise ProviderError(f"Request timed out: {e}", self.name) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Connection error: {e}", self.name) from e
        self._handle_error(response)
        return response.json()

    async def health_check(self) -> dict[str, Any]:
        try:
            resp = await self.client.get(self.health_path)
            return {
                "status": "healthy" if resp.status_code == 200 else "degraded",
                "provider": self.name,
                "latency_ms": resp.elapsed.total_seconds() * 1000,
            }
        except Exception as e:
            return {"status": "unhealthy", "provider": self.name, "error": str(e)}

    def _handle_error(self, response: httpx.Response) -> None:
        if response.status_code == 401:
            raise AuthenticationError("Authentication failed.", self.name, 401)
        if response.status_code == 429:
            raise RateLimitError("Rate limit exceeded.", self.name, 429)
        if response.status_code == 404:
            raise ModelNotFoundError("Model not found.", self.name, 404)
        if response.status_code >= 400:
            try:
                msg = response.json().get("error", {}).get("message", response.text)
            except Exception:
                msg = response.text
            raise ProviderError(msg, self.name, response.status_code)

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}(name={self.name})>"
