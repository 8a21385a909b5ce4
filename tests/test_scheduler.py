"""
Tests for the cooperative tick scheduler (sim/scheduler.py).
"""

import logging

import pytest

from sim.scheduler import TickScheduler, WaitSeconds, WaitUntil


def test_task_runs_to_first_yield_on_start():
    scheduler = TickScheduler(tick_hz=10.0)
    events = []

    def routine():
        events.append("started")
        yield None
        events.append("resumed")

    scheduler.start(routine())
    assert events == ["started"]
    scheduler.step()
    assert events == ["started", "resumed"]


def test_wait_seconds_uses_simulation_time():
    scheduler = TickScheduler(tick_hz=10.0)
    woke_at = []

    def routine():
        yield WaitSeconds(0.3)
        woke_at.append(scheduler.tick_count)

    scheduler.start(routine())
    for _ in range(5):
        scheduler.step()
    assert woke_at == [3]


def test_wait_until_predicate():
    scheduler = TickScheduler()
    ready = []
    done = []

    def routine():
        yield WaitUntil(lambda: bool(ready))
        done.append(scheduler.tick_count)

    scheduler.start(routine())
    scheduler.step()
    scheduler.step()
    assert done == []
    ready.append(True)
    scheduler.step()
    assert done == [3]


def test_invoke_repeating_stops_when_callback_returns_false():
    scheduler = TickScheduler(tick_hz=10.0)
    calls = []

    def callback():
        calls.append(round(scheduler.time, 6))
        return len(calls) < 3

    task = scheduler.invoke_repeating(callback, delay=0.0, interval=1.0)
    scheduler.run(max_ticks=50)
    assert calls == [0.0, 1.0, 2.0]
    assert task.done
    assert scheduler.tasks == []


def test_invoke_repeating_with_delay():
    scheduler = TickScheduler(tick_hz=10.0)
    calls = []
    scheduler.invoke_repeating(lambda: calls.append(scheduler.tick_count) or True, delay=0.5, interval=0.5)
    scheduler.run(max_ticks=10)
    assert calls == [5, 10]


def test_tick_callbacks_run_after_tasks():
    scheduler = TickScheduler()
    order = []

    def routine():
        while True:
            yield None
            order.append("task")

    scheduler.start(routine())
    scheduler.on_tick(lambda dt: order.append("tick"))
    scheduler.step()
    assert order == ["task", "tick"]


def test_cancelled_task_is_not_resumed():
    scheduler = TickScheduler()
    count = []

    def routine():
        while True:
            count.append(1)
            yield None

    task = scheduler.start(routine())
    scheduler.step()
    task.cancel()
    scheduler.step()
    assert len(count) == 2
    assert task.cancelled


def test_failing_task_is_retired(caplog):
    scheduler = TickScheduler()
    ticks = []

    def routine():
        yield None
        raise RuntimeError("boom")

    task = scheduler.start(routine())
    scheduler.on_tick(lambda dt: ticks.append(dt))
    with caplog.at_level(logging.ERROR, logger="sim.scheduler"):
        scheduler.step()
        scheduler.step()
    assert task.done
    assert len(ticks) == 2
    assert any("[TASK_FAILED]" in r.getMessage() for r in caplog.records)


def test_failing_tick_callback_does_not_stop_tick():
    scheduler = TickScheduler()
    seen = []

    def bad(dt):
        raise ValueError("bad tick")

    scheduler.on_tick(bad)
    scheduler.on_tick(lambda dt: seen.append(dt))
    scheduler.step()
    assert seen == [pytest.approx(scheduler.dt)]


def test_run_limits():
    scheduler = TickScheduler(tick_hz=50.0)
    scheduler.run(duration=1.0)
    assert scheduler.tick_count == 50

    scheduler = TickScheduler()
    scheduler.run(max_ticks=1000, stop=lambda: scheduler.tick_count >= 7)
    assert scheduler.tick_count == 7


def test_invalid_settings():
    with pytest.raises(ValueError):
        TickScheduler(tick_hz=0.0)
    with pytest.raises(ValueError):
        TickScheduler().invoke_repeating(lambda: True, delay=0.0, interval=0.0)
