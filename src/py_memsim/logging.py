"""Allocation log — a bounded audit trail of memory events.

Every allocation, release, and failure the engine performs is recorded
here so a user can replay *why* the memory map looks the way it does.
This is the simulator's equivalent of a kernel ring buffer (``dmesg``):
it holds only the most recent entries and silently drops the oldest.

- **LogKind** — what sort of event happened (allocation, error, ...).
- **LogEntry** — a single immutable record.
- **AllocationLog** — the bounded, append-only buffer with filtering.

Design choices:
    - **deque(maxlen=...)** gives ring-buffer semantics for free: an
      append on a full buffer evicts the oldest entry.
    - **Frozen dataclass for entries** — log records should be immutable.
    - **Per-log id counter** so ids restart after a reset and tests stay
      deterministic.
"""

from collections import deque
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import StrEnum
from itertools import count

MAX_LOG_ENTRIES = 100


class LogKind(StrEnum):
    """Categories of allocation events."""

    ALLOCATION = "allocation"
    DEALLOCATION = "deallocation"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass(frozen=True)
class LogEntry:
    """A single allocation log record.

    Attributes:
        id: Sequence number, unique within one log.
        kind: The category of event.
        message: Short human-readable summary.
        technique: Placement technique active when the event happened.
        tick: Simulation time of the event.
        details: Optional longer explanation (addresses, sizes, reasons).
        process_id: The process involved, if any.
        process_name: Name of the process involved, if any.
        timestamp: Wall-clock time the entry was created.

    """

    id: int
    kind: LogKind
    message: str
    technique: str
    tick: int = 0
    details: str | None = None
    process_id: int | None = None
    process_name: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    def __str__(self) -> str:
        """Format as ``[KIND] t=<tick>: message (details)``."""
        text = f"[{self.kind.name}] t={self.tick}: {self.message}"
        if self.details:
            text += f" ({self.details})"
        return text

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-friendly representation."""
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "kind": str(self.kind),
            "message": self.message,
            "details": self.details,
            "process_id": self.process_id,
            "process_name": self.process_name,
            "technique": self.technique,
            "tick": self.tick,
        }


class AllocationLog:
    """Bounded append-only log with filtering.

    Only the most recent ``max_entries`` records are kept.
    """

    def __init__(self, *, max_entries: int = MAX_LOG_ENTRIES) -> None:
        """Create an empty log.

        Args:
            max_entries: Capacity of the buffer; older entries are dropped.

        """
        if max_entries <= 0:
            msg = f"max_entries must be positive, got {max_entries}"
            raise ValueError(msg)
        self._entries: deque[LogEntry] = deque(maxlen=max_entries)
        self._ids = count(start=1)

    @property
    def max_entries(self) -> int:
        """Return the buffer capacity."""
        return self._entries.maxlen or 0

    @property
    def entries(self) -> list[LogEntry]:
        """Return retained entries in chronological order."""
        return list(self._entries)

    def __len__(self) -> int:
        """Return the number of retained entries."""
        return len(self._entries)

    def log(
        self,
        kind: LogKind,
        message: str,
        *,
        technique: str,
        tick: int = 0,
        details: str | None = None,
        process_id: int | None = None,
        process_name: str | None = None,
    ) -> LogEntry:
        """Append a new entry, evicting the oldest if the buffer is full.

        Returns:
            The entry that was appended.

        """
        entry = LogEntry(
            id=next(self._ids),
            kind=kind,
            message=message,
            technique=technique,
            tick=tick,
            details=details,
            process_id=process_id,
            process_name=process_name,
        )
        self._entries.append(entry)
        return entry

    def filter(
        self,
        *,
        kind: LogKind | None = None,
        process_id: int | None = None,
    ) -> list[LogEntry]:
        """Return entries matching the given criteria.

        Args:
            kind: If set, only return entries of this kind.
            process_id: If set, only return entries about this process.

        Returns:
            A filtered list of log entries, oldest first.

        """
        result = list(self._entries)
        if kind is not None:
            result = [e for e in result if e.kind is kind]
        if process_id is not None:
            result = [e for e in result if e.process_id == process_id]
        return result

    def recent(self, limit: int) -> list[LogEntry]:
        """Return up to ``limit`` entries, newest first."""
        if limit <= 0:
            return []
        return list(reversed(self._entries))[:limit]

    def clear(self) -> None:
        """Remove all entries and restart the id sequence."""
        self._entries.clear()
        self._ids = count(start=1)
