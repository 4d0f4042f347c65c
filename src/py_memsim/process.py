"""Simulated processes — the unit of work that asks for memory.

A process arrives at some tick, requests a contiguous region of
``size`` KB, holds it for ``burst_time`` ticks, and then gives it back.
It follows a small state machine, and each transition method enforces
that the process is in the right source state before moving it::

    WAITING → RUNNING → COMPLETED
       └───────────────────↑   (cancel: terminated before getting memory)

A process that arrives but finds no suitable hole simply stays
WAITING; the scheduler retries it every tick.
"""

from dataclasses import dataclass
from enum import StrEnum

PROCESS_COLORS: tuple[str, ...] = (
    "hsl(185, 100%, 50%)",  # cyan
    "hsl(270, 80%, 60%)",  # purple
    "hsl(320, 100%, 60%)",  # pink
    "hsl(150, 100%, 50%)",  # green
    "hsl(25, 100%, 55%)",  # orange
    "hsl(210, 100%, 60%)",  # blue
    "hsl(45, 100%, 50%)",  # yellow
    "hsl(0, 85%, 60%)",  # red
)


class ProcessStatus(StrEnum):
    """Lifecycle states of a simulated process.

    - WAITING: submitted, not yet holding memory (not arrived, or no hole).
    - RUNNING: holds a memory block and is burning through its burst.
    - COMPLETED: finished (or cancelled); holds no memory.
    """

    WAITING = "waiting"
    RUNNING = "running"
    COMPLETED = "completed"


@dataclass(frozen=True)
class ProcessInput:
    """The user-supplied description of a process before submission.

    Attributes:
        name: Human-readable label.
        size: Requested memory in KB.
        burst_time: Number of ticks the process runs once allocated.
        arrival_time: Tick at which the process becomes eligible.

    """

    name: str
    size: int
    burst_time: int
    arrival_time: int = 0

    def __post_init__(self) -> None:
        """Reject impossible requests."""
        if self.size <= 0:
            msg = f"Process size must be positive, got {self.size}"
            raise ValueError(msg)
        if self.burst_time <= 0:
            msg = f"Burst time must be positive, got {self.burst_time}"
            raise ValueError(msg)
        if self.arrival_time < 0:
            msg = f"Arrival time must not be negative, got {self.arrival_time}"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-friendly representation."""
        return {
            "name": self.name,
            "size": self.size,
            "burst_time": self.burst_time,
            "arrival_time": self.arrival_time,
        }


class Process:
    """A simulated process and its memory bookkeeping.

    Identity and request fields are fixed at creation; the lifecycle
    fields (status, remaining time, address, timestamps) only change
    through the transition methods.
    """

    def __init__(self, *, pid: int, spec: ProcessInput, color: str) -> None:
        """Create a WAITING process.

        Args:
            pid: Unique process identifier (submission order).
            spec: The validated request.
            color: Display color for memory maps.

        """
        self._pid = pid
        self._spec = spec
        self._color = color
        self._status = ProcessStatus.WAITING
        self._remaining_time = spec.burst_time
        self._start_address: int | None = None
        self._allocated_at: int | None = None
        self._end_time: int | None = None

    @property
    def pid(self) -> int:
        """Return the unique process identifier."""
        return self._pid

    @property
    def name(self) -> str:
        """Return the process name."""
        return self._spec.name

    @property
    def size(self) -> int:
        """Return the requested memory size in KB."""
        return self._spec.size

    @property
    def burst_time(self) -> int:
        """Return the total ticks of work."""
        return self._spec.burst_time

    @property
    def arrival_time(self) -> int:
        """Return the tick at which the process becomes eligible."""
        return self._spec.arrival_time

    @property
    def color(self) -> str:
        """Return the display color."""
        return self._color

    @property
    def spec(self) -> ProcessInput:
        """Return the original request."""
        return self._spec

    @property
    def status(self) -> ProcessStatus:
        """Return the current lifecycle state."""
        return self._status

    @property
    def remaining_time(self) -> int:
        """Return the ticks of work still to do."""
        return self._remaining_time

    @property
    def start_address(self) -> int | None:
        """Return the base address of the process's block, if ever placed."""
        return self._start_address

    @property
    def allocated_at(self) -> int | None:
        """Return the tick at which memory was granted."""
        return self._allocated_at

    @property
    def end_time(self) -> int | None:
        """Return the tick at which the process completed."""
        return self._end_time

    def _require(self, action: str, expected: ProcessStatus) -> None:
        """Raise RuntimeError unless the process is in ``expected``."""
        if self._status is not expected:
            msg = f"Cannot {action}: process {self._pid} is {self._status}, expected {expected}"
            raise RuntimeError(msg)

    def start(self, *, address: int, at: int) -> None:
        """Transition WAITING → RUNNING after memory was granted at ``address``."""
        self._require("start", ProcessStatus.WAITING)
        self._status = ProcessStatus.RUNNING
        self._start_address = address
        self._allocated_at = at

    def run_tick(self) -> int:
        """Burn one tick of work and return the remaining time."""
        self._require("run", ProcessStatus.RUNNING)
        self._remaining_time = max(self._remaining_time - 1, 0)
        return self._remaining_time

    def complete(self, *, at: int) -> None:
        """Transition RUNNING → COMPLETED."""
        self._require("complete", ProcessStatus.RUNNING)
        self._status = ProcessStatus.COMPLETED
        self._remaining_time = 0
        self._end_time = at

    def cancel(self, *, at: int) -> None:
        """Transition WAITING → COMPLETED without ever holding memory."""
        self._require("cancel", ProcessStatus.WAITING)
        self._status = ProcessStatus.COMPLETED
        self._end_time = at

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-friendly representation."""
        return {
            "id": self._pid,
            "name": self.name,
            "size": self.size,
            "burst_time": self.burst_time,
            "remaining_time": self._remaining_time,
            "arrival_time": self.arrival_time,
            "start_address": self._start_address,
            "allocated_at": self._allocated_at,
            "end_time": self._end_time,
            "status": str(self._status),
            "color": self._color,
        }

    def __repr__(self) -> str:
        """Return a debug-friendly representation."""
        return f"Process(pid={self._pid}, name={self.name!r}, size={self.size}, status={self._status})"
