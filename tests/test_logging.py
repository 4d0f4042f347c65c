"""Tests for the allocation log.

The log is a bounded ring buffer of immutable entries.  Tests cover
appending, eviction, ordering of the two read views, filtering, and
the string form shown by the shell.
"""

import pytest

from py_memsim.logging import MAX_LOG_ENTRIES, AllocationLog, LogEntry, LogKind

TECHNIQUE = "first-fit"
SMALL_CAPACITY = 3


class TestLogEntry:
    """Verify the immutable log record."""

    def test_str_without_details(self) -> None:
        """The string form shows kind, tick and message."""
        entry = LogEntry(id=1, kind=LogKind.INFO, message="Memory resized", technique=TECHNIQUE, tick=4)
        assert str(entry) == "[INFO] t=4: Memory resized"

    def test_str_with_details(self) -> None:
        """Details are appended in parentheses."""
        entry = LogEntry(
            id=1,
            kind=LogKind.ALLOCATION,
            message="Allocated A (100 KB)",
            technique=TECHNIQUE,
            details="Address: 0, Technique: first-fit",
        )
        assert str(entry) == "[ALLOCATION] t=0: Allocated A (100 KB) (Address: 0, Technique: first-fit)"

    def test_entries_are_frozen(self) -> None:
        """Entries cannot be modified after creation."""
        entry = LogEntry(id=1, kind=LogKind.INFO, message="x", technique=TECHNIQUE)
        with pytest.raises(AttributeError):
            entry.message = "y"  # type: ignore[misc]

    def test_to_dict(self) -> None:
        """to_dict() exposes every field with the kind as a string."""
        entry = LogEntry(
            id=7,
            kind=LogKind.ERROR,
            message="Failed",
            technique=TECHNIQUE,
            tick=2,
            process_id=3,
            process_name="C",
        )
        data = entry.to_dict()
        assert data["id"] == 7
        assert data["kind"] == "error"
        assert data["tick"] == 2
        assert data["process_id"] == 3
        assert data["process_name"] == "C"
        assert isinstance(data["timestamp"], str)


class TestAllocationLog:
    """Verify appending, eviction and reading."""

    def test_default_capacity(self) -> None:
        """The default log keeps the most recent hundred entries."""
        assert AllocationLog().max_entries == MAX_LOG_ENTRIES

    def test_rejects_non_positive_capacity(self) -> None:
        """A log must hold at least one entry."""
        with pytest.raises(ValueError, match="positive"):
            AllocationLog(max_entries=0)

    def test_ids_increase(self) -> None:
        """Each appended entry gets the next id."""
        log = AllocationLog()
        first = log.log(LogKind.INFO, "a", technique=TECHNIQUE)
        second = log.log(LogKind.INFO, "b", technique=TECHNIQUE)
        assert (first.id, second.id) == (1, 2)

    def test_oldest_entries_are_evicted(self) -> None:
        """A full log drops its oldest entry on append."""
        log = AllocationLog(max_entries=SMALL_CAPACITY)
        for i in range(5):
            log.log(LogKind.INFO, f"event {i}", technique=TECHNIQUE)
        assert len(log) == SMALL_CAPACITY
        assert [e.message for e in log.entries] == ["event 2", "event 3", "event 4"]

    def test_hundred_and_first_entry_evicts_first(self) -> None:
        """With the default capacity, entry 101 pushes out entry 1."""
        log = AllocationLog()
        for i in range(MAX_LOG_ENTRIES + 1):
            log.log(LogKind.INFO, f"event {i}", technique=TECHNIQUE)
        assert len(log) == MAX_LOG_ENTRIES
        assert log.entries[0].message == "event 1"

    def test_recent_is_newest_first(self) -> None:
        """recent() reverses chronological order and truncates."""
        log = AllocationLog()
        for i in range(4):
            log.log(LogKind.INFO, f"event {i}", technique=TECHNIQUE)
        assert [e.message for e in log.recent(2)] == ["event 3", "event 2"]

    def test_recent_with_non_positive_limit(self) -> None:
        """A limit of zero returns nothing."""
        log = AllocationLog()
        log.log(LogKind.INFO, "a", technique=TECHNIQUE)
        assert log.recent(0) == []

    def test_filter_by_kind_and_process(self) -> None:
        """filter() narrows by kind and by process id."""
        log = AllocationLog()
        log.log(LogKind.ALLOCATION, "Allocated A", technique=TECHNIQUE, process_id=1)
        log.log(LogKind.ERROR, "Failed B", technique=TECHNIQUE, process_id=2)
        log.log(LogKind.DEALLOCATION, "Deallocated A", technique=TECHNIQUE, process_id=1)
        assert [e.message for e in log.filter(kind=LogKind.ERROR)] == ["Failed B"]
        assert [e.message for e in log.filter(process_id=1)] == ["Allocated A", "Deallocated A"]
        assert log.filter(kind=LogKind.ERROR, process_id=1) == []

    def test_clear_restarts_ids(self) -> None:
        """clear() empties the log and restarts numbering."""
        log = AllocationLog()
        log.log(LogKind.INFO, "a", technique=TECHNIQUE)
        log.clear()
        assert len(log) == 0
        assert log.log(LogKind.INFO, "b", technique=TECHNIQUE).id == 1
