"""Interval timer — fires a callback at a fixed wall-clock period.

The simulator's notion of time is the tick, but a live simulation has
to turn ticks into something a person can watch.  The timer is the
bridge: a background thread that sleeps for ``interval_ms`` and then
calls its callback, over and over, until stopped.

It counts how many times it has fired, like a programmable interval
timer chip counts interrupts.  The callback may return False to ask
the timer to stop itself (the simulation uses this once every process
has completed).

Stopping never blocks on a callback in progress for longer than the
callback itself takes; waiting uses ``threading.Event.wait`` so a stop
request wakes the thread immediately instead of after a full period.
"""

import threading
from collections.abc import Callable

DEFAULT_INTERVAL_MS = 1000


class TickTimer:
    """A restartable background timer."""

    def __init__(
        self,
        callback: Callable[[], bool],
        *,
        interval_ms: int = DEFAULT_INTERVAL_MS,
    ) -> None:
        """Create a stopped timer.

        Args:
            callback: Called once per period; returning False stops the timer.
            interval_ms: Milliseconds between calls.

        """
        self._callback = callback
        self._fires = 0
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.interval_ms = interval_ms

    @property
    def interval_ms(self) -> int:
        """Return the period in milliseconds."""
        return self._interval_ms

    @interval_ms.setter
    def interval_ms(self, value: int) -> None:
        """Set the period; takes effect from the next wait.

        Raises:
            ValueError: If the interval is not positive.

        """
        if value <= 0:
            msg = f"Interval must be positive, got {value}"
            raise ValueError(msg)
        self._interval_ms = value

    @property
    def fires(self) -> int:
        """Return how many times the callback has been called."""
        return self._fires

    @property
    def is_running(self) -> bool:
        """Return True while the background thread is alive."""
        return self._thread is not None and self._thread.is_alive() and not self._stop.is_set()

    def start(self) -> None:
        """Start firing (no-op if already running)."""
        if self.is_running:
            return
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, args=(self._stop,), name="tick-timer", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        """Stop firing and wait for the thread to exit."""
        self._stop.set()
        thread = self._thread
        self._thread = None
        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def _run(self, stop: threading.Event) -> None:
        """Thread body: wait one period, fire, repeat until stopped."""
        while not stop.wait(self._interval_ms / 1000):
            self._fires += 1
            if not self._callback():
                stop.set()
