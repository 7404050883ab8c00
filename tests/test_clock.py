import asyncio

import pytest

from forge_watch.clock import LoopClock, ManualClock, TimerGroup


def test_manual_clock_fires_in_deadline_order():
    clock = ManualClock()
    fired = []
    clock.call_later(0.3, lambda: fired.append(("c", clock.now())))
    clock.call_later(0.1, lambda: fired.append(("a", clock.now())))
    clock.call_later(0.2, lambda: fired.append(("b", clock.now())))

    clock.advance(0.25)
    assert fired == [("a", 100.0), ("b", 200.0)]
    assert clock.now() == 250.0

    clock.advance(1)
    assert [name for name, _ in fired] == ["a", "b", "c"]
    assert clock.pending == 0


def test_call_every_repeats_until_cancelled():
    clock = ManualClock()
    ticks = []
    handle = clock.call_every(0.1, lambda: ticks.append(clock.now()))
    clock.advance(0.35)
    assert ticks == [100.0, 200.0, 300.0]

    handle.cancel()
    handle.cancel()
    clock.advance(1)
    assert len(ticks) == 3
    assert handle.cancelled
    assert not handle.active


def test_callback_may_cancel_its_own_repeating_handle():
    clock = ManualClock()
    ticks = []
    handles = []

    def tick():
        ticks.append(clock.now())
        if len(ticks) == 2:
            handles[0].cancel()

    handles.append(clock.call_every(0.1, tick))
    clock.advance(1)
    assert ticks == [100.0, 200.0]


def test_timer_group_cancel_all_is_synchronous():
    clock = ManualClock()
    group = TimerGroup(clock)
    fired = []
    group.call_later(1, lambda: fired.append("later"))
    group.call_every(0.1, lambda: fired.append("tick"))
    assert group.active == 2

    group.cancel_all()
    assert group.active == 0
    assert clock.pending == 0
    clock.advance(5)
    assert fired == []


def test_one_shot_handle_is_inactive_after_firing():
    clock = ManualClock()
    group = TimerGroup(clock)
    handle = group.call_later(0.1, lambda: None)
    clock.advance(0.2)
    assert not handle.active
    assert not handle.cancelled
    assert group.active == 0


@pytest.mark.asyncio
async def test_loop_clock_runs_on_event_loop():
    clock = LoopClock()
    fired = asyncio.Event()
    ticks = []

    clock.call_later(0.01, fired.set)
    repeat = clock.call_every(0.01, lambda: ticks.append(1))
    await asyncio.wait_for(fired.wait(), 1.0)
    await asyncio.sleep(0.05)
    repeat.cancel()
    count = len(ticks)
    await asyncio.sleep(0.03)

    assert count >= 2
    assert len(ticks) == count
    assert clock.now() > 0
