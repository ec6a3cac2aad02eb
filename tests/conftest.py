"""Shared fixtures."""

import pytest


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def set(self, t: float):
        self.now = t

    def advance(self, dt: float):
        self.now += dt


@pytest.fixture
def clock():
    return FakeClock()
