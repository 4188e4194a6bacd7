"""Shared fixtures for the Herald test suite."""

import pytest

from herald.config import ProviderConfig
from herald.resilience.metrics import ResilienceMetrics
from herald.resilience.supervisor import Supervisor


class FakeClock:
    """Monotonic clock the test advances by hand."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class RecordingSleep:
    """Stand-in for asyncio.sleep that records requested delays and returns immediately."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float):
        self.delays.append(seconds)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def metrics():
    return ResilienceMetrics()


@pytest.fixture
def supervisor(metrics, sleep, clock):
    return Supervisor(metrics=metrics, sleep=sleep, clock=clock)


@pytest.fixture
def provider_config():
    """A minimal provider config for testing."""
    return ProviderConfig(
        name="test",
        base_url="http://localhost:9999",
        api_key_env=None,
        default_model="test-model",
    )
