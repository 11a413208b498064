"""Tests for the periodic background task."""

import asyncio

import pytest

from blogapi.app.core.periodic import PeriodicTask


@pytest.mark.asyncio
async def test_runs_until_stopped():
    calls = []

    async def tick():
        calls.append(1)

    task = PeriodicTask("tick", tick, interval=0.01)
    await task.start()
    assert task.running is True

    await asyncio.sleep(0.08)
    await task.stop()

    assert task.running is False
    assert len(calls) >= 2
    count = len(calls)
    await asyncio.sleep(0.03)
    assert len(calls) == count


@pytest.mark.asyncio
async def test_failures_do_not_stop_the_loop():
    calls = []

    async def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("first run fails")

    task = PeriodicTask("flaky", flaky, interval=0.01)
    await task.start()
    await asyncio.sleep(0.08)
    await task.stop()

    assert len(calls) >= 2


@pytest.mark.asyncio
async def test_stop_is_prompt_with_long_interval():
    async def never():
        raise AssertionError("should not run")

    task = PeriodicTask("slow", never, interval=3600)
    await task.start()
    await asyncio.wait_for(task.stop(), timeout=1)

    assert task.running is False


@pytest.mark.asyncio
async def test_stop_before_start_is_noop():
    async def noop():
        pass

    await PeriodicTask("idle", noop, interval=1).stop()


def test_rejects_non_positive_interval():
    async def noop():
        pass

    with pytest.raises(ValueError):
        PeriodicTask("bad", noop, interval=0)
