"""Tests for the interval timer.

The timer runs its callback on a daemon thread every ``interval_ms``
until stopped or until the callback returns False.  Intervals are kept
tiny so the tests stay fast.
"""

import threading

import pytest

from py_memsim.timer import DEFAULT_INTERVAL_MS, TickTimer

FAST_MS = 5
SLOW_MS = 60_000
WAIT_SECONDS = 5
TARGET_FIRES = 3


class TestTickTimerConfig:
    """Verify interval handling."""

    def test_default_interval(self) -> None:
        """A timer defaults to one second per tick."""
        timer = TickTimer(lambda: True)
        assert timer.interval_ms == DEFAULT_INTERVAL_MS

    def test_rejects_non_positive_interval(self) -> None:
        """The interval must be positive, at creation and later."""
        with pytest.raises(ValueError, match="positive"):
            TickTimer(lambda: True, interval_ms=0)
        timer = TickTimer(lambda: True)
        with pytest.raises(ValueError, match="positive"):
            timer.interval_ms = -1

    def test_new_timer_is_stopped(self) -> None:
        """A timer does nothing until started."""
        timer = TickTimer(lambda: True)
        assert timer.is_running is False
        assert timer.fires == 0


class TestTickTimerRun:
    """Verify firing and stopping."""

    def test_callback_returning_false_stops_timer(self) -> None:
        """The timer stops itself once the callback asks it to."""
        done = threading.Event()
        calls: list[int] = []

        def callback() -> bool:
            calls.append(1)
            if len(calls) == TARGET_FIRES:
                done.set()
                return False
            return True

        timer = TickTimer(callback, interval_ms=FAST_MS)
        timer.start()
        assert done.wait(WAIT_SECONDS)
        timer.stop()
        assert timer.fires == TARGET_FIRES
        assert len(calls) == TARGET_FIRES
        assert timer.is_running is False

    def test_stop_before_first_fire(self) -> None:
        """Stopping wakes the thread without calling the callback."""
        calls: list[int] = []

        def callback() -> bool:
            calls.append(1)
            return True

        timer = TickTimer(callback, interval_ms=SLOW_MS)
        timer.start()
        assert timer.is_running is True
        timer.stop()
        assert timer.is_running is False
        assert calls == []

    def test_restart_after_stop(self) -> None:
        """A stopped timer can be started again."""
        fired = threading.Event()

        def callback() -> bool:
            fired.set()
            return False

        timer = TickTimer(callback, interval_ms=SLOW_MS)
        timer.start()
        timer.stop()
        timer.interval_ms = FAST_MS
        timer.start()
        assert fired.wait(WAIT_SECONDS)
        timer.stop()
        assert timer.fires == 1

    def test_start_twice_is_noop(self) -> None:
        """Starting a running timer keeps the same thread."""
        timer = TickTimer(lambda: True, interval_ms=SLOW_MS)
        timer.start()
        thread = timer._thread
        timer.start()
        assert timer._thread is thread
        timer.stop()

    def test_stop_without_start_is_safe(self) -> None:
        """Stopping an idle timer does nothing."""
        timer = TickTimer(lambda: True)
        timer.stop()
        assert timer.is_running is False
