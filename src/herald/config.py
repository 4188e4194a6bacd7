"""
Herald configuration.

Provider settings, supervision defaults, and routing options.
Reads from ~/.herald/config.toml with environment variable overrides.
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

from herald.agents.types import AgentName
from herald.resilience.circuit_breaker import BreakerConfig
from herald.resilience.health import HealthCheckConfig
from herald.resilience.supervisor import FallbackConfig, FallbackStrategy, RetryConfig

# ---------------------------------------------------------------------------
# Paths
# ---------------------------------------------------------------------------

HERALD_HOME = Path(os.getenv("HERALD_HOME", Path.home() / ".herald"))
CONFIG_PATH = HERALD_HOME / "config.toml"


# ---------------------------------------------------------------------------
# Single provider config
# ---------------------------------------------------------------------------

@dataclass
class ProviderConfig:
    """Configuration for one AI provider."""

    name: str
    base_url: str
    api_key_env: str | None
    default_model: str
    timeout: float = 30.0
    enabled: bool = True

    @property
    def api_key(self) -> str | None:
        if self.api_key_env:
            return os.getenv(self.api_key_env)
        return None

    @property
    def is_available(self) -> bool:
        if not self.enabled:
            return False
        if self.api_key_env:
            return bool(self.api_key)
        return True


# ---------------------------------------------------------------------------
# Default provider definitions
# ---------------------------------------------------------------------------

DEFAULT_PROVIDERS: dict[str, ProviderConfig] = {
    "perplexity": ProviderConfig(
        name="perplexity",
        base_url="https://api.perplexity.ai",
        api_key_env="PERPLEXITY_API_KEY",
        default_model="sonar-pro",
    ),
    "anthropic": ProviderConfig(
        name="anthropic",
        base_url="https://api.anthropic.com",
        api_key_env="ANTHROPIC_API_KEY",
        default_model="claude-sonnet-4-5-20250929",
        timeout=60.0,
    ),
    "openai": ProviderConfig(
        name="openai",
        base_url="https://api.openai.com/v1",
        api_key_env="OPENAI_API_KEY",
        default_model="text-embedding-3-small",
    ),
}


# ---------------------------------------------------------------------------
# Main config
# ---------------------------------------------------------------------------

@dataclass
class HeraldConfig:
    """Top-level Herald configuration."""

    # Server
    host: str = "0.0.0.0"
    port: int = 8085
    log_level: str = "INFO"

    # Providers
    providers: dict[str, ProviderConfig] = field(default_factory=dict)

    # Circuit breaker
    circuit_failure_threshold: int = 5
    circuit_success_threshold: int = 2
    circuit_recovery_seconds: float = 60.0

    # Health
    degraded_threshold: float = 0.1
    unhealthy_threshold: float = 0.25
    max_response_time_ms: float = 30_000.0
    rolling_window_size: int = 100
    max_consecutive_failures: int = 5

    # Retry
    retry_enabled: bool = True
    retry_max_attempts: int = 3
    retry_backoff_ms: float = 1000.0
    retry_backoff_multiplier: float = 2.0

    # Fallback
    fallback_enabled: bool = True
    fallback_strategy: FallbackStrategy = FallbackStrategy.CACHE

    # Routing: agent → agent used when the first is exhausted
    agent_fallbacks: dict[AgentName, AgentName] = field(default_factory=dict)

    # ── Builders ──────────────────────────────────────────────────────

    def breaker_config(self) -> BreakerConfig:
        return BreakerConfig(
            failure_threshold=self.circuit_failure_threshold,
            success_threshold=self.circuit_success_threshold,
            recovery_timeout_seconds=self.circuit_recovery_seconds,
        )

    def health_config(self) -> HealthCheckConfig:
        return HealthCheckConfig(
            degraded_threshold=self.degraded_threshold,
            unhealthy_threshold=self.unhealthy_threshold,
            max_response_time_ms=self.max_response_time_ms,
            rolling_window_size=self.rolling_window_size,
            max_consecutive_failures=self.max_consecutive_failures,
        )

    def retry_config(self) -> RetryConfig:
        return RetryConfig(
            enabled=self.retry_enabled,
            max_attempts=self.retry_max_attempts,
            backoff_ms=self.retry_backoff_ms,
            backoff_multiplier=self.retry_backoff_multiplier,
        )

    def fallback_config(self) -> FallbackConfig:
        return FallbackConfig(enabled=self.fallback_enabled, strategy=self.fallback_strategy)

    def get_provider(self, name: str) -> ProviderConfig | None:
        return self.providers.get(name)

    def get_available_providers(self) -> list[str]:
        return sorted(name for name, cfg in self.providers.items() if cfg.is_available)


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------

# TOML section → {key: config attribute}
_SECTIONS: dict[str, dict[str, str]] = {
    "server": {"host": "host", "port": "port", "log_level": "log_level"},
    "circuit_breaker": {
        "failure_threshold": "circuit_failure_threshold",
        "success_threshold": "circuit_success_threshold",
        "recovery_seconds": "circuit_recovery_seconds",
    },
    "health": {
        "degraded_threshold": "degraded_threshold",
        "unhealthy_threshold": "unhealthy_threshold",
        "max_response_time_ms": "max_response_time_ms",
        "rolling_window_size": "rolling_window_size",
        "max_consecutive_failures": "max_consecutive_failures",
    },
    "retry": {
        "enabled": "retry_enabled",
        "max_attempts": "retry_max_attempts",
        "backoff_ms": "retry_backoff_ms",
        "backoff_multiplier": "retry_backoff_multiplier",
    },
    "fallback": {"enabled": "fallback_enabled"},
}


def _coerce(config: HeraldConfig, attr: str, value: Any) -> Any:
    current = getattr(config, attr)
    if isinstance(current, bool):
        return bool(value)
    if isinstance(current, int):
        return int(value)
    if isinstance(current, float):
        return float(value)
    return value


def _apply_toml(config: HeraldConfig, data: dict[str, Any]) -> None:
    """Overlay TOML data onto a HeraldConfig."""
    for section, keys in _SECTIONS.items():
        values = data.get(section, {})
        for key, attr in keys.items():
            if key in values:
                setattr(config, attr, _coerce(config, attr, values[key]))

    if "strategy" in data.get("fallback", {}):
        config.fallback_strategy = FallbackStrategy(data["fallback"]["strategy"])

    # Provider overrides
    for name, overrides in data.get("providers", {}).items():
        cfg = config.providers.get(name)
        if cfg is None:
            continue
        if "base_url" in overrides:
            cfg.base_url = overrides["base_url"]
        if "default_model" in overrides:
            cfg.default_model = overrides["default_model"]
        if "enabled" in overrides:
            cfg.enabled = overrides["enabled"]
        if "timeout" in overrides:
            cfg.timeout = float(overrides["timeout"])

    # Routing fallbacks
    for agent, fallback in data.get("routing", {}).get("fallbacks", {}).items():
        config.agent_fallbacks[AgentName(agent)] = AgentName(fallback)


def load_config(config_path: Path | None = None) -> HeraldConfig:
    """
    Build config from defaults → TOML file → environment variables.

    Precedence (highest wins):
        1. Environment variables
        2. ~/.herald/config.toml
        3. Built-in defaults
    """
    config = HeraldConfig(
        providers={k: replace(v) for k, v in DEFAULT_PROVIDERS.items()},
    )

    path = config_path or CONFIG_PATH
    if path.exists():
        with open(path, "rb") as f:
            toml_data = tomllib.load(f)
        _apply_toml(config, toml_data)

    # Env overrides
    if os.getenv("HERALD_HOST"):
        config.host = os.getenv("HERALD_HOST")  # type: ignore[assignment]
    if os.getenv("HERALD_PORT"):
        config.port = int(os.getenv("HERALD_PORT"))  # type: ignore[arg-type]
    if os.getenv("HERALD_LOG_LEVEL"):
        config.log_level = os.getenv("HERALD_LOG_LEVEL").upper()  # type: ignore[union-attr]

    return config

