"""Tests for the single-threaded deferred callback scheduler."""
from __future__ import annotations

from scanoverlay.scheduler import FrameScheduler
from fakes import ManualClock


def _recorder():
    calls = []
    return calls, lambda name: (lambda: calls.append(name))


class TestFrameScheduler:
    def test_nothing_runs_before_due(self):
        clock = ManualClock()
        sched = FrameScheduler(clock)
        calls, cb = _recorder()
        sched.call_later(0.3, cb("a"))
        clock.advance(0.29)
        assert sched.run_due() == 0
        assert calls == []
        assert sched.pending == 1

    def test_runs_once_when_due(self):
        clock = ManualClock()
        sched = FrameScheduler(clock)
        calls, cb = _recorder()
        handle = sched.call_later(0.3, cb("a"))
        clock.advance(0.3)
        assert sched.run_due() == 1
        assert sched.run_due() == 0
        assert calls == ["a"]
        assert handle.fired
        assert not handle.active
        assert sched.pending == 0

    def test_runs_in_due_order(self):
        clock = ManualClock()
        sched = FrameScheduler(clock)
        calls, cb = _recorder()
        sched.call_later(0.2, cb("late"))
        sched.call_later(0.1, cb("early"))
        sched.call_later(0.1, cb("early-2"))
        clock.advance(1.0)
        sched.run_due()
        assert calls == ["early", "early-2", "late"]

    def test_explicit_now(self):
        clock = ManualClock(start=0.0)
        sched = FrameScheduler(clock)
        calls, cb = _recorder()
        sched.call_later(0.5, cb("a"))
        assert sched.run_due(now=0.4) == 0
        assert sched.run_due(now=0.5) == 1

    def test_cancel(self):
        clock = ManualClock()
        sched = FrameScheduler(clock)
        calls, cb = _recorder()
        handle = sched.call_later(0.1, cb("a"))
        sched.cancel(handle)
        clock.advance(1.0)
        assert sched.run_due() == 0
        assert calls == []
        assert handle.cancelled
        assert sched.pending == 0

    def test_cancel_is_safe_on_none_and_fired_handles(self):
        clock = ManualClock()
        sched = FrameScheduler(clock)
        calls, cb = _recorder()
        handle = sched.call_later(0.0, cb("a"))
        sched.run_due()
        sched.cancel(handle)
        sched.cancel(None)
        assert not handle.cancelled
        assert calls == ["a"]

    def test_callback_can_cancel_a_later_one(self):
        clock = ManualClock()
        sched = FrameScheduler(clock)
        calls = []
        second = None

        def first():
            calls.append("first")
            sched.cancel(second)

        sched.call_later(0.1, first)
        second = sched.call_later(0.2, lambda: calls.append("second"))
        clock.advance(1.0)
        assert sched.run_due() == 1
        assert calls == ["first"]
