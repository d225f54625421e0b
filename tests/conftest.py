import asyncio
import types

import pytest

import core.pacing as pacing_mod

_real_sleep = asyncio.sleep


class FakeClock:
    """Manual monotonic clock; sleeping advances it instead of waiting."""

    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps = []

    def monotonic(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float, result=None):
        self.sleeps.append(seconds)
        self.now += max(0.0, seconds)
        # Still yield so other tasks get a turn.
        await _real_sleep(0)
        return result


@pytest.fixture
def fake_clock(monkeypatch):
    clock = FakeClock()
    monkeypatch.setattr(pacing_mod, "time", types.SimpleNamespace(monotonic=clock.monotonic))
    monkeypatch.setattr(pacing_mod.asyncio, "sleep", clock.sleep)
    return clock
