import asyncio

import pytest

from services.poller import PeriodicTask


def test_periodic_task_runs_until_stopped():
    calls = []

    async def record():
        calls.append(1)

    async def scenario():
        task = PeriodicTask(0.01, record, name="test")
        task.start()
        assert task.running
        await asyncio.sleep(0.05)
        await task.stop()
        assert not task.running
        count = len(calls)
        await asyncio.sleep(0.03)
        return count

    count = asyncio.run(scenario())
    assert count >= 1
    assert len(calls) == count


def test_callback_errors_do_not_kill_the_ticker():
    state = {"n": 0}

    async def flaky():
        state["n"] += 1
        raise RuntimeError("boom")

    async def scenario():
        task = PeriodicTask(0.01, flaky)
        task.start()
        await asyncio.sleep(0.05)
        running = task.running
        await task.stop()
        return running, task.ticks

    running, ticks = asyncio.run(scenario())
    assert running is True
    assert ticks >= 2


def test_tick_runs_sync_callback_once():
    calls = []
    task = PeriodicTask(1, lambda: calls.append("x"))
    asyncio.run(task.tick())
    assert calls == ["x"]
    assert task.ticks == 1


def test_invalid_interval():
    with pytest.raises(ValueError):
        PeriodicTask(0, lambda: None)
