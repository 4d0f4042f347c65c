"""Tick scheduler — advances simulated time one step at a time.

Time in the simulator is discrete.  One call to ``advance()`` is one
tick, and a tick always performs the same four steps in the same
order:

1. **Admit** — every WAITING process that has arrived by the next tick
   asks the engine for memory, oldest arrival first (ties broken by
   process id, i.e. submission order).  Order matters: two processes
   arriving together can end up in different holes, or one can starve
   the other, depending on who goes first.
2. **Retry** — processes that found no hole stay WAITING and are tried
   again on every later tick.
3. **Age** — every RUNNING process (including ones just admitted) loses
   one tick of remaining time; those reaching zero release their memory
   immediately, so a one-tick burst finishes in the tick it starts.
4. **Advance the clock.**

Admission always precedes aging, so memory freed during a tick is only
visible to waiting processes on the following tick.
"""

from dataclasses import dataclass, field

from py_memsim.engine import AllocationEngine, NoSuitableHoleError
from py_memsim.process import ProcessStatus


@dataclass(frozen=True)
class TickReport:
    """What happened during one tick.

    Attributes:
        tick: The clock value after the tick.
        admitted: Ids of processes that received memory.
        failed: Ids of processes that were tried but found no hole.
        completed: Ids of processes that finished and released memory.

    """

    tick: int
    admitted: list[int] = field(default_factory=list)
    failed: list[int] = field(default_factory=list)
    completed: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-friendly representation."""
        return {
            "tick": self.tick,
            "admitted": list(self.admitted),
            "failed": list(self.failed),
            "completed": list(self.completed),
        }


class TickScheduler:
    """Drive an allocation engine through discrete time."""

    def __init__(self, engine: AllocationEngine) -> None:
        """Create a scheduler for the given engine."""
        self._engine = engine

    @property
    def engine(self) -> AllocationEngine:
        """Return the engine being driven."""
        return self._engine

    def advance(self) -> TickReport:
        """Run one tick: admit, age, release, then move the clock.

        Returns:
            A report of the admissions, failures and completions.

        """
        engine = self._engine
        next_time = engine.current_time + 1
        report = TickReport(tick=next_time)

        arrivals = sorted(
            (
                p
                for p in engine.processes
                if p.status is ProcessStatus.WAITING and p.arrival_time <= next_time
            ),
            key=lambda p: (p.arrival_time, p.pid),
        )
        for process in arrivals:
            try:
                engine.allocate(process, at=next_time)
            except NoSuitableHoleError:
                report.failed.append(process.pid)
            else:
                report.admitted.append(process.pid)

        for process in engine.running():
            if process.run_tick() == 0:
                engine.release(process.pid, at=next_time)
                report.completed.append(process.pid)

        engine.current_time = next_time
        return report

    def is_complete(self) -> bool:
        """Return True once there are processes and all have completed."""
        processes = self._engine.processes
        return bool(processes) and all(p.status is ProcessStatus.COMPLETED for p in processes)
