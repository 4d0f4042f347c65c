"""The simulation — one session of the memory allocator, end to end.

A ``Simulation`` owns every moving part of a session: the allocation
engine (ledger, processes, clock, cursor, log), the tick scheduler
that drives it, and the wall-clock timer that calls the scheduler
while the simulation is running.  Callers never touch those parts
directly; they go through the control surface here.

State machine::

    IDLE  --start-->  RUNNING  --pause-->  PAUSED
      ^                 |  ^                 |
      |                 |  +----resume-------+
      +---- reset ------+------ reset -------+
      +---- (all processes completed) -------+

Concurrency:
    Ticks fire on the timer's background thread while users submit,
    terminate, and resize from another thread.  Placement decisions
    read the whole ledger before mutating it, so every operation runs
    under one re-entrant lock; a tick is one indivisible critical
    section.  The timer is always stopped *outside* the lock so a tick
    waiting on the lock can never deadlock a ``pause``.  A second,
    separate lock serializes the clock controls themselves: a state
    change and the timer start or stop that goes with it happen as one
    step, so a ``resume`` racing a ``pause`` cannot leave the simulation
    RUNNING with no timer.
"""

from collections.abc import Iterable
from enum import StrEnum
from threading import Lock, RLock

from py_memsim.engine import (
    DEFAULT_TOTAL_MEMORY,
    AddressUnavailableError,
    AllocationEngine,
    Hole,
    InsufficientCapacityError,
    MemoryStats,
)
from py_memsim.logging import LogEntry, LogKind
from py_memsim.memory.ledger import Block
from py_memsim.memory.placement import Technique
from py_memsim.process import Process, ProcessInput, ProcessStatus
from py_memsim.scheduler import TickReport, TickScheduler
from py_memsim.timer import TickTimer

DEFAULT_SPEED_MS = 1000


class SimulationState(StrEnum):
    """Lifecycle of the simulation's clock."""

    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


class Simulation:
    """A memory allocation session with a start/pause/resume/reset clock."""

    def __init__(
        self,
        *,
        total_memory: int = DEFAULT_TOTAL_MEMORY,
        technique: Technique = Technique.FIRST_FIT,
        speed_ms: int = DEFAULT_SPEED_MS,
    ) -> None:
        """Create an idle simulation with empty memory.

        Args:
            total_memory: Size of the address space in KB.
            technique: Initial placement technique.
            speed_ms: Wall-clock milliseconds per tick while running.

        """
        self._lock = RLock()
        self._control = Lock()
        self._engine = AllocationEngine(total_memory=total_memory, technique=technique)
        self._scheduler = TickScheduler(self._engine)
        self._state = SimulationState.IDLE
        self._timer = TickTimer(self._on_timer, interval_ms=speed_ms)

    # -- Read-only views ---------------------------------------------------------

    @property
    def state(self) -> SimulationState:
        """Return the clock state."""
        return self._state

    @property
    def engine(self) -> AllocationEngine:
        """Return the underlying engine."""
        return self._engine

    @property
    def speed_ms(self) -> int:
        """Return the wall-clock milliseconds per tick."""
        return self._timer.interval_ms

    @property
    def technique(self) -> Technique:
        """Return the active placement technique."""
        return self._engine.technique

    @property
    def current_time(self) -> int:
        """Return the simulation clock."""
        with self._lock:
            return self._engine.current_time

    @property
    def total_memory(self) -> int:
        """Return the size of the address space."""
        with self._lock:
            return self._engine.total_memory

    @property
    def blocks(self) -> list[Block]:
        """Return a snapshot of the memory map."""
        with self._lock:
            return self._engine.blocks

    @property
    def processes(self) -> list[Process]:
        """Return all known processes in submission order."""
        with self._lock:
            return self._engine.processes

    @property
    def holes(self) -> list[Hole]:
        """Return the free regions in address order."""
        with self._lock:
            return self._engine.holes()

    @property
    def stats(self) -> MemoryStats:
        """Return a snapshot of memory usage."""
        with self._lock:
            return self._engine.stats()

    @property
    def logs(self) -> list[LogEntry]:
        """Return the retained log entries, newest first."""
        with self._lock:
            log = self._engine.log
            return log.recent(log.max_entries)

    @property
    def is_complete(self) -> bool:
        """Return True once there are processes and all have completed."""
        with self._lock:
            return self._scheduler.is_complete()

    def snapshot(self) -> dict[str, object]:
        """Return the whole observable state, taken at one instant.

        Every field is read under a single lock acquisition, so the
        clock, memory map, processes, holes and stats all describe the
        same tick even while the timer is running.

        Returns:
            A JSON-friendly mapping.

        """
        with self._lock:
            return {
                "state": str(self._state),
                "current_time": self._engine.current_time,
                "technique": str(self._engine.technique),
                "speed_ms": self._timer.interval_ms,
                "total_memory": self._engine.total_memory,
                "blocks": [b.to_dict() for b in self._engine.blocks],
                "processes": [p.to_dict() for p in self._engine.processes],
                "holes": [h.to_dict() for h in self._engine.holes()],
                "stats": self._engine.stats().to_dict(),
                "complete": self._scheduler.is_complete(),
            }

    def get_process(self, pid: int) -> Process | None:
        """Return the process with the given id, or None."""
        with self._lock:
            return self._engine.get_process(pid)

    # -- Processes ----------------------------------------------------------------

    def add_process(
        self,
        *,
        name: str,
        size: int,
        burst_time: int,
        arrival_time: int = 0,
        address: int | None = None,
    ) -> Process | None:
        """Submit one process, optionally at a manual address.

        Returns:
            The new process, or None if the manual address was
            unavailable (the process is then discarded).

        Raises:
            ValueError: If the request itself is invalid.

        """
        spec = ProcessInput(name=name, size=size, burst_time=burst_time, arrival_time=arrival_time)
        with self._lock:
            try:
                return self._engine.submit(spec, manual_address=address)
            except AddressUnavailableError:
                return None

    def import_processes(self, specs: Iterable[ProcessInput]) -> list[Process]:
        """Submit a batch of processes in order.

        Returns:
            The registered processes.

        """
        with self._lock:
            imported = [self._engine.submit(spec) for spec in specs]
            self._engine.log.log(
                LogKind.INFO,
                f"Imported {len(imported)} processes",
                technique=str(self._engine.technique),
                tick=self._engine.current_time,
                details=", ".join(p.name for p in imported),
            )
            return imported

    def terminate(self, pid: int) -> bool:
        """End a process early, freeing its memory if it holds any.

        Returns:
            True if the process was running or waiting and is now completed.

        """
        with self._lock:
            process = self._engine.get_process(pid)
            if process is None:
                return False
            if process.status is ProcessStatus.RUNNING:
                return self._engine.release(pid)
            return self._engine.cancel(pid)

    # -- Clock ---------------------------------------------------------------------

    def tick(self) -> TickReport:
        """Advance the simulation by exactly one tick."""
        with self._lock:
            return self._scheduler.advance()

    def run_to_completion(self, *, max_ticks: int = 10_000) -> list[TickReport]:
        """Tick until every process completes or ``max_ticks`` is reached.

        Returns:
            The reports of every tick run.

        """
        reports: list[TickReport] = []
        with self._lock:
            while not self._scheduler.is_complete() and len(reports) < max_ticks:
                reports.append(self._scheduler.advance())
        return reports

    def _on_timer(self) -> bool:
        """Timer callback: tick while RUNNING, stop once everything is done."""
        with self._lock:
            if self._state is not SimulationState.RUNNING:
                return False
            self._scheduler.advance()
            if self._scheduler.is_complete():
                self._state = SimulationState.IDLE
                return False
            return True

    def _transition(self, action: str, expected: SimulationState, target: SimulationState) -> None:
        """Move between clock states, enforcing the source state.

        Raises:
            RuntimeError: If the simulation is not in ``expected``.

        """
        with self._lock:
            if self._state is not expected:
                msg = f"Cannot {action}: simulation is {self._state}, expected {expected}"
                raise RuntimeError(msg)
            self._state = target

    def _restart_timer(self) -> None:
        """Start a fresh timer thread.

        A timer that has just asked to stop may still be alive for a
        moment, so it is stopped and joined first.
        """
        self._timer.stop()
        self._timer.start()

    def start(self) -> None:
        """Transition IDLE → RUNNING and start the timer."""
        with self._control:
            self._transition("start", SimulationState.IDLE, SimulationState.RUNNING)
            self._restart_timer()

    def pause(self) -> None:
        """Transition RUNNING → PAUSED; state is kept."""
        with self._control:
            self._transition("pause", SimulationState.RUNNING, SimulationState.PAUSED)
            self._timer.stop()

    def resume(self) -> None:
        """Transition PAUSED → RUNNING and restart the timer."""
        with self._control:
            self._transition("resume", SimulationState.PAUSED, SimulationState.RUNNING)
            self._restart_timer()

    def reset(self) -> None:
        """Stop the clock and return to an empty IDLE simulation.

        Processes, memory map, log, cursor and clock are cleared; the
        memory size and technique are kept, and the speed returns to
        the default.
        """
        with self._control:
            with self._lock:
                self._state = SimulationState.IDLE
            self._timer.stop()
            with self._lock:
                self._engine = AllocationEngine(
                    total_memory=self._engine.total_memory,
                    technique=self._engine.technique,
                    max_log_entries=self._engine.log.max_entries,
                )
                self._scheduler = TickScheduler(self._engine)
                self._timer.interval_ms = DEFAULT_SPEED_MS

    # -- Settings -------------------------------------------------------------------

    def set_speed(self, speed_ms: int) -> None:
        """Change the wall-clock milliseconds per tick.

        Raises:
            ValueError: If the speed is not positive.

        """
        self._timer.interval_ms = speed_ms

    def set_technique(self, technique: Technique) -> None:
        """Switch the placement technique for future allocations."""
        with self._lock:
            self._engine.technique = technique

    def change_total_memory(self, new_total: int) -> bool:
        """Resize the address space.

        Returns:
            True on success; False if the shrink was rejected (logged).

        """
        with self._lock:
            try:
                self._engine.resize(new_total)
            except InsufficientCapacityError:
                return False
            return True
