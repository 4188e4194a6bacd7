"""Tests for configuration loading."""

import pytest

from herald.agents.types import AgentName
from herald.config import HeraldConfig, load_config
from herald.resilience.supervisor import FallbackStrategy

TOML = """
[server]
port = 9000

[circuit_breaker]
failure_threshold = 2
recovery_seconds = 5

[health]
rolling_window_size = 20

[retry]
max_attempts = 4
backoff_ms = 250

[fallback]
strategy = "alternate"

[providers.anthropic]
default_model = "claude-haiku"
timeout = 15

[routing.fallbacks]
claude = "perplexity"
"""


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text(TOML)
    return path


class TestLoadConfig:
    def test_defaults_without_file(self, tmp_path):
        cfg = load_config(tmp_path / "missing.toml")
        assert cfg.port == 8085
        assert set(cfg.providers) == {"perplexity", "anthropic", "openai"}
        assert cfg.fallback_strategy == FallbackStrategy.CACHE

    def test_toml_overlay(self, config_file):
        cfg = load_config(config_file)
        assert cfg.port == 9000
        assert cfg.circuit_failure_threshold == 2
        assert cfg.circuit_recovery_seconds == 5.0
        assert isinstance(cfg.circuit_recovery_seconds, float)
        assert cfg.rolling_window_size == 20
        assert cfg.retry_max_attempts == 4
        assert cfg.fallback_strategy == FallbackStrategy.ALTERNATE
        assert cfg.providers["anthropic"].default_model == "claude-haiku"
        assert cfg.providers["anthropic"].timeout == 15.0
        assert cfg.agent_fallbacks == {AgentName.CLAUDE: AgentName.PERPLEXITY}

    def test_env_overrides_toml(self, config_file, monkeypatch):
        monkeypatch.setenv("HERALD_PORT", "9999")
        monkeypatch.setenv("HERALD_LOG_LEVEL", "debug")
        cfg = load_config(config_file)
        assert cfg.port == 9999
        assert cfg.log_level == "DEBUG"

    def test_defaults_are_not_shared(self, tmp_path):
        first = load_config(tmp_path / "missing.toml")
        first.providers["openai"].default_model = "changed"
        second = load_config(tmp_path / "missing.toml")
        assert second.providers["openai"].default_model != "changed"


class TestBuilders:
    def test_breaker_and_health(self):
        cfg = HeraldConfig(circuit_failure_threshold=7, rolling_window_size=10)
        assert cfg.breaker_config().failure_threshold == 7
        assert cfg.health_config().rolling_window_size == 10

    def test_retry_and_fallback(self):
        cfg = HeraldConfig(retry_backoff_ms=50, fallback_enabled=False)
        assert cfg.retry_config().delay_ms(2) == 100
        assert cfg.fallback_config().enabled is False

    def test_available_providers_need_keys(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PERPLEXITY_API_KEY", raising=False)
        monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        cfg = load_config(tmp_path / "missing.toml")
        assert cfg.get_available_providers() == ["openai"]
