"""Allocation engine — grants and reclaims contiguous memory.

The engine is the single owner of everything a placement decision
reads: the block ledger, the process table, the simulation clock, the
active technique, and the next-fit cursor.  Every mutation goes through
one of four entry points:

- ``submit`` — register a new process and, if it has already arrived,
  try to give it memory straight away.
- ``allocate`` — place an existing WAITING process (automatically via
  the placement policy, or at a manual address).
- ``release`` — free a RUNNING process's block and merge holes.
- ``resize`` — grow or shrink the address space.

Each call is atomic: it either fully succeeds or raises after logging
an error, with the ledger and process table exactly as before.  The
event log records one entry per outcome.
"""

from contextlib import suppress
from dataclasses import dataclass
from itertools import count

from py_memsim.logging import MAX_LOG_ENTRIES, AllocationLog, LogKind
from py_memsim.memory.ledger import Block, BlockLedger, LedgerError
from py_memsim.memory.placement import Technique, select_hole
from py_memsim.process import PROCESS_COLORS, Process, ProcessInput, ProcessStatus

DEFAULT_TOTAL_MEMORY = 1024


class AllocationError(Exception):
    """Base class for recoverable allocation failures."""


class NoSuitableHoleError(AllocationError):
    """Raise when no hole is large enough for a request."""


class AddressUnavailableError(AllocationError):
    """Raise when a manual address range is not inside a single hole."""


class InsufficientCapacityError(AllocationError):
    """Raise when memory cannot be shrunk to the requested size."""


@dataclass(frozen=True)
class Hole:
    """A free region as shown to users (``end`` is inclusive)."""

    id: int
    start: int
    end: int
    size: int

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-friendly representation."""
        return {"id": self.id, "start": self.start, "end": self.end, "size": self.size}


@dataclass(frozen=True)
class MemoryStats:
    """A snapshot of memory usage.

    External fragmentation counts all free memory once it is split
    across more than one hole.  Internal fragmentation is always 0:
    blocks are sized exactly to their requests.
    """

    total_memory: int
    used_memory: int
    free_memory: int
    utilization: float
    external_fragmentation: int
    number_of_holes: int
    number_of_running_processes: int
    internal_fragmentation: int = 0

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-friendly representation."""
        return {
            "total_memory": self.total_memory,
            "used_memory": self.used_memory,
            "free_memory": self.free_memory,
            "utilization": self.utilization,
            "internal_fragmentation": self.internal_fragmentation,
            "external_fragmentation": self.external_fragmentation,
            "number_of_holes": self.number_of_holes,
            "number_of_running_processes": self.number_of_running_processes,
        }


class AllocationEngine:
    """Own the ledger, processes and clock, and mutate them atomically."""

    def __init__(
        self,
        *,
        total_memory: int = DEFAULT_TOTAL_MEMORY,
        technique: Technique = Technique.FIRST_FIT,
        max_log_entries: int = MAX_LOG_ENTRIES,
    ) -> None:
        """Create an engine with one hole spanning all memory.

        Args:
            total_memory: Size of the address space in KB.
            technique: Initial placement technique.
            max_log_entries: Capacity of the allocation log.

        """
        self._ledger = BlockLedger(total=total_memory)
        self._technique = technique
        self._log = AllocationLog(max_entries=max_log_entries)
        self._processes: dict[int, Process] = {}
        self._pids = count(start=1)
        self._color_index = 0
        self._current_time = 0
        self._last_fit_index = 0
        self._successful_allocations = 0
        self._failed_allocations = 0

    # -- Accessors -------------------------------------------------------------

    @property
    def ledger(self) -> BlockLedger:
        """Return the block ledger."""
        return self._ledger

    @property
    def blocks(self) -> list[Block]:
        """Return all blocks in address order."""
        return self._ledger.blocks

    @property
    def total_memory(self) -> int:
        """Return the size of the address space."""
        return self._ledger.total

    @property
    def log(self) -> AllocationLog:
        """Return the allocation log."""
        return self._log

    @property
    def technique(self) -> Technique:
        """Return the active placement technique."""
        return self._technique

    @technique.setter
    def technique(self, value: Technique) -> None:
        """Switch the placement technique for future allocations."""
        self._technique = value

    @property
    def current_time(self) -> int:
        """Return the simulation clock."""
        return self._current_time

    @current_time.setter
    def current_time(self, value: int) -> None:
        """Move the clock; time never runs backwards."""
        if value < self._current_time:
            msg = f"Clock cannot go backwards ({self._current_time} -> {value})"
            raise ValueError(msg)
        self._current_time = value

    @property
    def last_fit_index(self) -> int:
        """Return the next-fit cursor."""
        return self._last_fit_index

    @property
    def processes(self) -> list[Process]:
        """Return all known processes in submission order."""
        return list(self._processes.values())

    @property
    def successful_allocations(self) -> int:
        """Return the number of allocations that succeeded."""
        return self._successful_allocations

    @property
    def failed_allocations(self) -> int:
        """Return the number of allocation attempts that failed."""
        return self._failed_allocations

    def get_process(self, pid: int) -> Process | None:
        """Return the process with the given id, or None."""
        return self._processes.get(pid)

    def _record(
        self,
        kind: LogKind,
        message: str,
        *,
        details: str | None = None,
        process: Process | None = None,
        process_name: str | None = None,
        tick: int | None = None,
    ) -> None:
        """Append a log entry stamped with the technique and clock."""
        self._log.log(
            kind,
            message,
            technique=str(self._technique),
            tick=self._current_time if tick is None else tick,
            details=details,
            process_id=process.pid if process is not None else None,
            process_name=process.name if process is not None else process_name,
        )

    # -- Submission and allocation ---------------------------------------------

    def _new_process(self, spec: ProcessInput) -> Process:
        """Build a WAITING process with the next id and palette color."""
        color = PROCESS_COLORS[self._color_index % len(PROCESS_COLORS)]
        self._color_index += 1
        return Process(pid=next(self._pids), spec=spec, color=color)

    def submit(self, spec: ProcessInput, *, manual_address: int | None = None) -> Process:
        """Register a process and allocate it now if it has arrived.

        A process that arrives in the future is queued.  One that has
        arrived but finds no suitable hole is also queued; the
        scheduler retries it every tick.

        Args:
            spec: The validated process request.
            manual_address: Place the process at this exact address
                instead of asking the placement policy.

        Returns:
            The registered process (RUNNING or WAITING).

        Raises:
            AddressUnavailableError: If ``manual_address`` is not inside
                a single hole.  Nothing is registered and no id or
                color is used up.

        """
        if manual_address is not None and spec.arrival_time <= self._current_time:
            self._check_manual(spec, manual_address)
        process = self._new_process(spec)

        if spec.arrival_time > self._current_time:
            self._processes[process.pid] = process
            self._record(
                LogKind.INFO,
                f"Queued {process.name} ({process.size} KB)",
                details=f"Will arrive at tick {spec.arrival_time}",
                process=process,
            )
            return process

        if manual_address is not None:
            self.allocate(process, manual_address=manual_address)
            self._processes[process.pid] = process
            return process

        self._processes[process.pid] = process
        # On failure the process stays WAITING and is retried every tick.
        with suppress(NoSuitableHoleError):
            self.allocate(process)
        return process

    def _locate_manual(self, size: int, address: int) -> Block | None:
        """Return the hole containing ``[address, address + size)``, if any."""
        return next((b for b in self._ledger.holes() if b.contains(address, size)), None)

    def _reject_manual(self, name: str, address: int, process: Process | None = None) -> AddressUnavailableError:
        """Log a refused manual address and build the error to raise."""
        msg = f"Cannot allocate {name} at address {address}"
        self._record(
            LogKind.ERROR,
            msg,
            details="Invalid or occupied address range",
            process=process,
            process_name=name,
        )
        return AddressUnavailableError(msg)

    def _check_manual(self, spec: ProcessInput, address: int) -> None:
        """Refuse a submission whose manual range is not free.

        Raises:
            AddressUnavailableError: If the range is not inside one hole.

        """
        if self._locate_manual(spec.size, address) is None:
            raise self._reject_manual(spec.name, address)

    def allocate(
        self,
        process: Process,
        *,
        manual_address: int | None = None,
        at: int | None = None,
    ) -> Block:
        """Give a WAITING process a block of memory.

        Args:
            process: The process to place.
            manual_address: Exact base address to use, if any.
            at: Tick to record as the allocation time (defaults to now).

        Returns:
            The occupied block.

        Raises:
            NoSuitableHoleError: If the placement policy finds nothing.
            AddressUnavailableError: If the manual range is not free.
            RuntimeError: If the process is not WAITING.

        """
        if process.status is not ProcessStatus.WAITING:
            msg = f"Cannot allocate process {process.pid}: it is {process.status}"
            raise RuntimeError(msg)

        when = self._current_time if at is None else at
        cursor = self._last_fit_index
        if manual_address is not None:
            hole = self._locate_manual(process.size, manual_address)
            if hole is None:
                self._failed_allocations += 1
                raise self._reject_manual(process.name, manual_address, process)
            target = hole
            address = manual_address
        else:
            placement = select_hole(self._ledger.blocks, process.size, self._technique, cursor)
            if placement is None:
                msg = f"Failed to allocate {process.name} ({process.size} KB)"
                self._failed_allocations += 1
                self._record(LogKind.ERROR, msg, details="No suitable hole found", process=process, tick=when)
                raise NoSuitableHoleError(msg)
            target = placement.block
            address = target.start
            cursor = placement.cursor

        block = self._ledger.split_at(
            target.id,
            address - target.start,
            process.size,
            process_id=process.pid,
            process_name=process.name,
            color=process.color,
        )
        process.start(address=address, at=when)
        self._last_fit_index = cursor
        self._successful_allocations += 1
        self._record(
            LogKind.ALLOCATION,
            f"Allocated {process.name} ({process.size} KB)",
            details=f"Address: {address}, Technique: {self._technique}",
            process=process,
            tick=when,
        )
        return block

    # -- Release and termination -----------------------------------------------

    def release(self, pid: int, *, at: int | None = None) -> bool:
        """Free a process's memory and mark it COMPLETED.

        Releasing an unknown process, or one that holds no memory, is a
        no-op.

        Args:
            pid: The process to release.
            at: Tick to record as the end time (defaults to now).

        Returns:
            True if memory was freed.

        """
        process = self._processes.get(pid)
        if process is None or process.status is not ProcessStatus.RUNNING:
            return False
        address = process.start_address
        freed = self._ledger.mark_free_and_merge(pid)
        if freed == 0:
            return False
        when = self._current_time if at is None else at
        process.complete(at=when)
        self._record(
            LogKind.DEALLOCATION,
            f"Deallocated {process.name}",
            details=f"Freed {freed} KB at address {address}",
            process=process,
            tick=when,
        )
        return True

    def cancel(self, pid: int) -> bool:
        """Complete a WAITING process that never received memory.

        Returns:
            True if the process was cancelled.

        """
        process = self._processes.get(pid)
        if process is None or process.status is not ProcessStatus.WAITING:
            return False
        process.cancel(at=self._current_time)
        self._record(
            LogKind.WARNING,
            f"Cancelled {process.name}",
            details="Terminated while waiting",
            process=process,
        )
        return True

    # -- Address space -----------------------------------------------------------

    def resize(self, new_total: int) -> None:
        """Change the size of the address space.

        Raises:
            InsufficientCapacityError: If the new size is below the
                memory in use, not positive, or the tail of memory
                cannot absorb the shrink.  Nothing changes.

        """
        used = self._ledger.used
        if new_total < self._ledger.total and new_total < used:
            msg = "Cannot reduce memory below used memory"
            self._record(LogKind.ERROR, msg, details=f"Used: {used}KB, Requested: {new_total}KB")
            raise InsufficientCapacityError(msg)
        try:
            self._ledger.resize(new_total)
        except LedgerError as e:
            msg = f"Cannot resize memory to {new_total}KB"
            self._record(LogKind.ERROR, msg, details=str(e))
            raise InsufficientCapacityError(msg) from e
        self._record(LogKind.INFO, f"Memory resized to {new_total}KB")

    # -- Derived views -----------------------------------------------------------

    def holes(self) -> list[Hole]:
        """Return the free regions in address order."""
        return [Hole(id=b.id, start=b.start, end=b.end - 1, size=b.size) for b in self._ledger.holes()]

    def running(self) -> list[Process]:
        """Return RUNNING processes in submission order."""
        return [p for p in self._processes.values() if p.status is ProcessStatus.RUNNING]

    def waiting(self) -> list[Process]:
        """Return WAITING processes in submission order."""
        return [p for p in self._processes.values() if p.status is ProcessStatus.WAITING]

    def stats(self) -> MemoryStats:
        """Return a snapshot of memory usage."""
        holes = self._ledger.holes()
        total = self._ledger.total
        used = self._ledger.used
        return MemoryStats(
            total_memory=total,
            used_memory=used,
            free_memory=total - used,
            utilization=used / total * 100,
            external_fragmentation=sum(h.size for h in holes) if len(holes) > 1 else 0,
            number_of_holes=len(holes),
            number_of_running_processes=len(self.running()),
        )
