from conftest import RecordingRenderer

from forge_watch.clock import ManualClock, TimerGroup
from forge_watch.cost import CostAccumulator, ease_out_cubic


def make():
    clock = ManualClock()
    renderer = RecordingRenderer()
    return clock, renderer, CostAccumulator(TimerGroup(clock), renderer)


def test_ease_out_cubic():
    assert ease_out_cubic(0) == 0
    assert ease_out_cubic(1) == 1
    assert ease_out_cubic(0.5) == 0.875


def test_set_is_immediate():
    clock, renderer, cost = make()
    cost.set("0.1234")
    assert cost.total_usd == 0.1234
    assert cost.displayed_usd == 0.1234
    assert renderer.cost == "$0.1234"
    assert not cost.animating
    assert clock.pending == 0


def test_update_adopts_value_and_animates_display():
    clock, renderer, cost = make()
    cost.update("1.0000")
    assert cost.total_usd == 1.0
    assert cost.displayed_usd == 0.0
    assert cost.animating

    clock.advance(0.4)
    assert 0 < cost.displayed_usd < 1.0

    clock.advance(0.5)
    assert cost.displayed_usd == 1.0
    assert renderer.cost == "$1.0000"
    assert not cost.animating
    assert clock.pending == 0


def test_last_arrival_wins():
    clock, renderer, cost = make()
    cost.update(2.0)
    clock.advance(0.1)
    cost.update(1.5)
    assert cost.total_usd == 1.5
    clock.advance(1)
    assert cost.displayed_usd == 1.5
    assert renderer.cost == "$1.5000"


def test_update_to_displayed_value_stops_animation():
    clock, _, cost = make()
    cost.set(0.5)
    cost.update(0.5)
    assert not cost.animating
    assert clock.pending == 0


def test_tokens():
    _, renderer, cost = make()
    cost.set_tokens(12_345)
    assert renderer.tokens == "12,345/1,000,000 tokens"
    cost.set_tokens(10, 200_000)
    assert cost.display_tokens == "10/200,000 tokens"


def test_close_cancels_animation():
    clock, _, cost = make()
    cost.update(3)
    cost.close()
    assert not cost.animating
    assert clock.pending == 0
