"""Tests for the block ledger.

The ledger partitions ``[0, total)`` into touching blocks, splits holes
on allocation, merges holes on release, and resizes at the tail.  After
every mutation the coverage and hole-merge invariants must hold.
"""

import contextlib
import random

import pytest

from py_memsim.memory.ledger import Block, BlockLedger, LedgerError

TOTAL = 1024
HALF = 512
QUARTER = 256
PID_A = 1
PID_B = 2
PID_C = 3
UNKNOWN_PID = 99
GROWN_TOTAL = 2048


def _assert_invariants(ledger: BlockLedger) -> None:
    """Check coverage, ordering and hole merging explicitly."""
    ledger.validate()
    blocks = ledger.blocks
    assert blocks[0].start == 0
    assert blocks[-1].end == ledger.total
    for left, right in zip(blocks, blocks[1:], strict=False):
        assert right.start == left.start + left.size
        assert not (left.is_hole and right.is_hole)


class TestBlock:
    """Verify the block value object."""

    def test_hole_has_no_owner(self) -> None:
        """A block without a process id is a hole."""
        block = Block(id=1, start=0, size=10)
        assert block.is_hole
        assert block.end == 10

    def test_owned_block_is_not_hole(self) -> None:
        """A block with a process id is occupied."""
        block = Block(id=1, start=0, size=10, process_id=PID_A)
        assert not block.is_hole

    def test_contains(self) -> None:
        """contains() accepts spans fully inside the block only."""
        block = Block(id=1, start=100, size=50)
        assert block.contains(100, 50)
        assert block.contains(120, 10)
        assert not block.contains(90, 20)
        assert not block.contains(140, 20)


class TestLedgerCreation:
    """Verify the initial ledger state."""

    def test_starts_as_one_hole(self) -> None:
        """A new ledger is a single hole spanning all memory."""
        ledger = BlockLedger(total=TOTAL)
        assert len(ledger.blocks) == 1
        assert ledger.blocks[0].is_hole
        assert ledger.blocks[0].size == TOTAL
        assert ledger.used == 0
        assert ledger.free == TOTAL

    def test_rejects_non_positive_total(self) -> None:
        """Memory must have a positive size."""
        with pytest.raises(LedgerError, match="positive"):
            BlockLedger(total=0)


class TestSplit:
    """Verify carving occupied spans out of holes."""

    def test_split_at_start_leaves_trailing_hole(self) -> None:
        """Offset 0 produces [occupied, hole]."""
        ledger = BlockLedger(total=TOTAL)
        hole = ledger.holes()[0]
        occupied = ledger.split_at(hole.id, 0, QUARTER, process_id=PID_A, process_name="A")
        assert [b.is_hole for b in ledger.blocks] == [False, True]
        assert occupied.start == 0
        assert occupied.size == QUARTER
        assert occupied.process_name == "A"
        assert ledger.blocks[1].start == QUARTER
        _assert_invariants(ledger)

    def test_split_in_middle_produces_three_blocks(self) -> None:
        """A positive offset produces [hole, occupied, hole]."""
        ledger = BlockLedger(total=TOTAL)
        hole = ledger.holes()[0]
        occupied = ledger.split_at(hole.id, 100, 200, process_id=PID_A)
        sizes = [(b.start, b.size, b.is_hole) for b in ledger.blocks]
        assert sizes == [(0, 100, True), (100, 200, False), (300, TOTAL - 300, True)]
        assert occupied.start == 100
        _assert_invariants(ledger)

    def test_exact_fit_leaves_no_hole(self) -> None:
        """Filling a hole exactly leaves only the occupied block."""
        ledger = BlockLedger(total=TOTAL)
        ledger.split_at(ledger.holes()[0].id, 0, TOTAL, process_id=PID_A)
        assert ledger.holes() == []
        assert ledger.used == TOTAL
        _assert_invariants(ledger)

    def test_split_occupied_block_rejected(self) -> None:
        """Only holes can be split."""
        ledger = BlockLedger(total=TOTAL)
        occupied = ledger.split_at(ledger.holes()[0].id, 0, HALF, process_id=PID_A)
        with pytest.raises(LedgerError, match="owned"):
            ledger.split_at(occupied.id, 0, 10, process_id=PID_B)

    def test_split_too_large_rejected(self) -> None:
        """A span that overruns the hole is rejected without mutation."""
        ledger = BlockLedger(total=TOTAL)
        before = ledger.blocks
        with pytest.raises(LedgerError, match="does not fit"):
            ledger.split_at(before[0].id, 1000, 100, process_id=PID_A)
        assert ledger.blocks == before

    def test_split_unknown_block_rejected(self) -> None:
        """Splitting a block id that does not exist fails."""
        ledger = BlockLedger(total=TOTAL)
        with pytest.raises(LedgerError, match="No block"):
            ledger.split_at(12345, 0, 10, process_id=PID_A)


class TestMarkFreeAndMerge:
    """Verify release and hole merging."""

    def _three_processes(self) -> BlockLedger:
        """Lay out A, B, C at 0, 256, 512 with a trailing hole."""
        ledger = BlockLedger(total=TOTAL)
        for pid in (PID_A, PID_B, PID_C):
            tail = ledger.holes()[-1]
            ledger.split_at(tail.id, 0, QUARTER, process_id=pid)
        return ledger

    def test_release_middle_creates_isolated_hole(self) -> None:
        """Freeing B between A and C leaves two holes."""
        ledger = self._three_processes()
        freed = ledger.mark_free_and_merge(PID_B)
        assert freed == QUARTER
        assert [(h.start, h.size) for h in ledger.holes()] == [(QUARTER, QUARTER), (3 * QUARTER, QUARTER)]
        _assert_invariants(ledger)

    def test_release_merges_left_and_right(self) -> None:
        """Freeing a block between two holes yields one merged hole."""
        ledger = self._three_processes()
        ledger.mark_free_and_merge(PID_B)
        ledger.mark_free_and_merge(PID_A)
        assert [(h.start, h.size) for h in ledger.holes()] == [(0, HALF), (3 * QUARTER, QUARTER)]
        ledger.mark_free_and_merge(PID_C)
        assert [(h.start, h.size) for h in ledger.holes()] == [(0, TOTAL)]
        assert len(ledger.blocks) == 1
        _assert_invariants(ledger)

    def test_release_unknown_is_noop(self) -> None:
        """Releasing an unknown process leaves the ledger unchanged."""
        ledger = self._three_processes()
        before = ledger.blocks
        assert ledger.mark_free_and_merge(UNKNOWN_PID) == 0
        assert ledger.blocks == before

    def test_release_twice_is_noop(self) -> None:
        """A second release of the same process changes nothing."""
        ledger = self._three_processes()
        ledger.mark_free_and_merge(PID_B)
        before = ledger.blocks
        assert ledger.mark_free_and_merge(PID_B) == 0
        assert ledger.blocks == before

    def test_blocks_for(self) -> None:
        """blocks_for() returns only the owner's blocks."""
        ledger = self._three_processes()
        owned = ledger.blocks_for(PID_B)
        assert len(owned) == 1
        assert owned[0].start == QUARTER


class TestResize:
    """Verify growing and shrinking the address space."""

    def test_grow_empty_memory_keeps_one_hole(self) -> None:
        """Growing appends to (merges with) the trailing hole."""
        ledger = BlockLedger(total=TOTAL)
        ledger.resize(GROWN_TOTAL)
        assert ledger.total == GROWN_TOTAL
        assert [(b.start, b.size) for b in ledger.blocks] == [(0, GROWN_TOTAL)]
        _assert_invariants(ledger)

    def test_grow_with_occupied_tail_appends_hole(self) -> None:
        """Growing behind an occupied tail adds a new hole."""
        ledger = BlockLedger(total=TOTAL)
        ledger.split_at(ledger.holes()[0].id, 0, TOTAL, process_id=PID_A)
        ledger.resize(GROWN_TOTAL)
        assert [(b.start, b.size, b.is_hole) for b in ledger.blocks] == [
            (0, TOTAL, False),
            (TOTAL, GROWN_TOTAL - TOTAL, True),
        ]
        _assert_invariants(ledger)

    def test_shrink_takes_from_tail_hole(self) -> None:
        """Shrinking reduces the trailing hole."""
        ledger = BlockLedger(total=TOTAL)
        ledger.split_at(ledger.holes()[0].id, 0, QUARTER, process_id=PID_A)
        ledger.resize(HALF)
        assert ledger.total == HALF
        assert ledger.blocks[-1].size == HALF - QUARTER
        _assert_invariants(ledger)

    def test_shrink_removing_whole_tail_hole(self) -> None:
        """A tail hole exactly the size of the reduction disappears."""
        ledger = BlockLedger(total=TOTAL)
        ledger.split_at(ledger.holes()[0].id, 0, HALF, process_id=PID_A)
        ledger.resize(HALF)
        assert len(ledger.blocks) == 1
        assert not ledger.blocks[0].is_hole
        _assert_invariants(ledger)

    def test_shrink_with_occupied_tail_rejected(self) -> None:
        """The tail must be a hole to shrink."""
        ledger = BlockLedger(total=TOTAL)
        ledger.split_at(ledger.holes()[0].id, TOTAL - QUARTER, QUARTER, process_id=PID_A)
        before = ledger.blocks
        with pytest.raises(LedgerError, match="owned"):
            ledger.resize(TOTAL - 10)
        assert ledger.blocks == before
        assert ledger.total == TOTAL

    def test_shrink_more_than_tail_hole_rejected(self) -> None:
        """The tail hole must absorb the whole reduction."""
        ledger = BlockLedger(total=TOTAL)
        ledger.split_at(ledger.holes()[0].id, QUARTER, QUARTER, process_id=PID_A)
        before = ledger.blocks
        with pytest.raises(LedgerError, match="trailing hole"):
            ledger.resize(QUARTER)
        assert ledger.blocks == before

    def test_resize_to_same_size_is_noop(self) -> None:
        """Resizing to the current size changes nothing."""
        ledger = BlockLedger(total=TOTAL)
        before = ledger.blocks
        ledger.resize(TOTAL)
        assert ledger.blocks == before


class TestValidate:
    """Verify invariant checking."""

    def test_detects_unmerged_holes(self) -> None:
        """validate() flags adjacent holes."""
        ledger = BlockLedger(total=TOTAL)
        ledger._blocks = [Block(id=1, start=0, size=HALF), Block(id=2, start=HALF, size=HALF)]
        with pytest.raises(LedgerError, match="not merged"):
            ledger.validate()

    def test_detects_gap(self) -> None:
        """validate() flags a gap between blocks."""
        ledger = BlockLedger(total=TOTAL)
        ledger._blocks = [Block(id=1, start=0, size=HALF, process_id=PID_A), Block(id=2, start=HALF + 1, size=10)]
        with pytest.raises(LedgerError, match="starts at"):
            ledger.validate()

    def test_invariants_hold_under_random_workload(self) -> None:
        """Random splits, releases and resizes never break the invariants."""
        rng = random.Random(1234)
        ledger = BlockLedger(total=TOTAL)
        next_pid = 1
        for _ in range(500):
            op = rng.choice(["split", "split", "free", "resize"])
            if op == "split" and ledger.holes():
                hole = rng.choice(ledger.holes())
                length = rng.randint(1, hole.size)
                offset = rng.randint(0, hole.size - length)
                ledger.split_at(hole.id, offset, length, process_id=next_pid)
                next_pid += 1
            elif op == "free" and next_pid > 1:
                ledger.mark_free_and_merge(rng.randint(1, next_pid - 1))
            elif op == "resize":
                with contextlib.suppress(LedgerError):
                    ledger.resize(max(1, ledger.total + rng.randint(-200, 200)))
            _assert_invariants(ledger)
