"""Tests for the manual clock and scheduler."""

import pytest

from frogchorus.core.clock import ManualClock, ManualScheduler, TimerHandle


class TestManualClock:
    def test_advance(self):
        clock = ManualClock(100.0)
        assert clock.advance(50) == 150.0
        assert clock.now_ms() == 150.0

    def test_cannot_go_backwards(self):
        clock = ManualClock(100.0)
        with pytest.raises(ValueError):
            clock.advance(-1)
        with pytest.raises(ValueError):
            clock.set(99.0)


class TestManualScheduler:
    def test_call_later_fires_in_order(self):
        clock = ManualClock()
        scheduler = ManualScheduler(clock)
        fired = []

        scheduler.call_later(300, lambda: fired.append(("a", clock.now_ms())))
        scheduler.call_later(100, lambda: fired.append(("b", clock.now_ms())))
        scheduler.advance(500)

        assert fired == [("b", 100.0), ("a", 300.0)]
        assert clock.now_ms() == 500.0

    def test_call_every_repeats(self):
        clock = ManualClock()
        scheduler = ManualScheduler(clock)
        fired = []

        scheduler.call_every(100, lambda: fired.append(clock.now_ms()))
        scheduler.advance(350)

        assert fired == [100.0, 200.0, 300.0]
        assert scheduler.pending == 1

    def test_cancelled_timer_does_not_fire(self):
        clock = ManualClock()
        scheduler = ManualScheduler(clock)
        fired = []

        handle = scheduler.call_later(100, lambda: fired.append(True))
        handle.cancel()
        handle.cancel()
        scheduler.advance(200)

        assert fired == []
        assert handle.cancelled
        assert scheduler.pending == 0

    def test_timer_can_be_cancelled_from_callback(self):
        clock = ManualClock()
        scheduler = ManualScheduler(clock)
        fired = []
        handle = None

        def tick():
            fired.append(clock.now_ms())
            if len(fired) == 2:
                handle.cancel()

        handle = scheduler.call_every(100, tick)
        scheduler.advance(1000)

        assert fired == [100.0, 200.0]

    def test_zero_interval_rejected(self):
        scheduler = ManualScheduler(ManualClock())
        with pytest.raises(ValueError):
            scheduler.call_every(0, lambda: None)

    def test_one_shot_is_inactive_after_firing(self):
        clock = ManualClock()
        scheduler = ManualScheduler(clock)
        handle = scheduler.call_later(10, lambda: None)
        assert handle.active
        scheduler.advance(10)
        assert not handle.active
        assert not handle.cancelled


class TestTimerHandle:
    def test_cancel_callback_runs_once(self):
        calls = []
        handle = TimerHandle(on_cancel=lambda: calls.append(True))
        handle.cancel()
        handle.cancel()
        assert calls == [True]
