import asyncio

import pytest

from interrogative.utils.async_helpers import create_safe_task, drain_tasks, has_running_loop, run_with_timeout
from interrogative.utils.observer import Signal


def test_signal_delivers_in_subscription_order():
    signal = Signal("test")
    calls = []
    signal.connect(lambda value: calls.append(("a", value)))
    signal.connect(lambda value: calls.append(("b", value)))
    signal.emit(1)
    assert calls == [("a", 1), ("b", 1)]


def test_failing_subscriber_does_not_block_others():
    signal = Signal("test")
    calls = []

    def broken(value):
        raise RuntimeError("boom")

    signal.connect(broken)
    signal.connect(calls.append)
    signal.emit("x")
    assert calls == ["x"]


def test_connect_returns_unsubscribe():
    signal = Signal("test")
    calls = []
    unsubscribe = signal.connect(calls.append)
    signal.connect(calls.append)
    assert signal.subscriber_count == 1

    unsubscribe()
    signal.emit(1)
    assert calls == []
    unsubscribe()


def test_callback_may_unsubscribe_itself():
    signal = Signal("test")
    calls = []

    def once(value):
        calls.append(value)
        signal.disconnect(once)

    signal.connect(once)
    signal.emit(1)
    signal.emit(2)
    assert calls == [1]


def test_no_running_loop_outside_async():
    assert not has_running_loop()


@pytest.mark.asyncio
async def test_safe_task_failure_is_contained():
    async def fail():
        raise ValueError("bad")

    async def ok():
        return 5

    tracked = set()
    failing = create_safe_task(fail(), name="fail", track=tracked)
    passing = create_safe_task(ok(), name="ok", track=tracked)
    assert tracked == {failing, passing}
    await drain_tasks([failing, passing])
    await asyncio.sleep(0)

    assert tracked == set()
    assert has_running_loop()
    assert isinstance(failing.exception(), ValueError)
    assert passing.result() == 5


@pytest.mark.asyncio
async def test_run_with_timeout():
    async def slow():
        await asyncio.sleep(5)
        return "late"

    async def fast():
        return "on time"

    assert await run_with_timeout(slow(), 0.01, default="fallback") == "fallback"
    assert await run_with_timeout(fast(), 1.0) == "on time"
