"""Shared fixtures for admission tests."""

import pytest

from admission.app.storage.memory import InMemoryStorage


class FakeClock:
    """Manually advanced time source (epoch seconds)."""

    def __init__(self, start: float = 1_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def storage(clock):
    return InMemoryStorage(clock=clock)
