from __future__ import annotations

import asyncio

import pytest

from lecture_app.core.scheduling import AsyncioScheduler


def test_call_every_repeats_until_cancelled() -> None:
    async def scenario() -> int:
        scheduler = AsyncioScheduler()
        ticks: list[float] = []
        handle = scheduler.call_every(0.01, lambda: ticks.append(scheduler.now()))
        await asyncio.sleep(0.055)
        handle.cancel()
        handle.cancel()
        seen = len(ticks)
        await asyncio.sleep(0.03)
        assert len(ticks) == seen
        return seen

    assert asyncio.run(scenario()) >= 3


def test_call_later_fires_once_and_can_be_cancelled() -> None:
    async def scenario() -> tuple[list[str], list[str]]:
        scheduler = AsyncioScheduler()
        fired: list[str] = []
        skipped: list[str] = []
        scheduler.call_later(0.01, lambda: fired.append("x"))
        scheduler.call_later(0.01, lambda: skipped.append("y")).cancel()
        await asyncio.sleep(0.05)
        return fired, skipped

    assert asyncio.run(scenario()) == (["x"], [])


def test_interval_must_be_positive() -> None:
    async def scenario() -> None:
        AsyncioScheduler().call_every(0, lambda: None)

    with pytest.raises(ValueError):
        asyncio.run(scenario())
