"""Block ledger — the partition of the address space into blocks.

Contiguous allocation views memory as one line of addresses
``[0, total)`` cut into **blocks**.  Each block is either a **hole**
(free) or owned by exactly one process.  The ledger keeps four
invariants after every mutation:

1. Blocks are sorted by start address.
2. Adjacent blocks touch: ``next.start == prev.start + prev.size``.
3. The blocks cover the whole space: the first starts at 0, the last
   ends at ``total``.
4. No two adjacent blocks are both holes (holes are always merged).

Allocation **splits** a hole into up to three pieces (gap before,
occupied span, gap after).  Release **merges** the freed block with any
hole neighbours, which is how contiguous allocators fight external
fragmentation without compaction.

Blocks are frozen dataclasses; every mutation swaps in new block
objects, so a snapshot taken from ``blocks`` never changes underneath
its holder.
"""

from dataclasses import dataclass, replace
from itertools import count


class LedgerError(ValueError):
    """Raise when a ledger operation or invariant check fails."""


@dataclass(frozen=True)
class Block:
    """A maximal contiguous region of the address space.

    Attributes:
        id: Identifier unique within one ledger.
        start: First address of the block.
        size: Number of units in the block (always positive).
        process_id: Owning process, or None for a hole.
        process_name: Display name of the owner.
        color: Display color of the owner.

    """

    id: int
    start: int
    size: int
    process_id: int | None = None
    process_name: str | None = None
    color: str | None = None

    @property
    def is_hole(self) -> bool:
        """Return True if the block is free."""
        return self.process_id is None

    @property
    def end(self) -> int:
        """Return the first address past the block."""
        return self.start + self.size

    def contains(self, start: int, size: int) -> bool:
        """Return True if ``[start, start + size)`` lies within the block."""
        return self.start <= start and start + size <= self.end

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-friendly representation."""
        return {
            "id": self.id,
            "start": self.start,
            "size": self.size,
            "is_hole": self.is_hole,
            "process_id": self.process_id,
            "process_name": self.process_name,
            "color": self.color,
        }


class BlockLedger:
    """Ordered, gap-free list of blocks covering ``[0, total)``."""

    def __init__(self, *, total: int) -> None:
        """Create a ledger holding one hole that spans all memory.

        Args:
            total: Size of the address space.

        Raises:
            LedgerError: If total is not positive.

        """
        if total <= 0:
            msg = f"Total memory must be positive, got {total}"
            raise LedgerError(msg)
        self._ids = count(start=1)
        self._total = total
        self._blocks: list[Block] = [self._new_block(start=0, size=total)]

    def _new_block(
        self,
        *,
        start: int,
        size: int,
        process_id: int | None = None,
        process_name: str | None = None,
        color: str | None = None,
    ) -> Block:
        """Create a block with a fresh id."""
        return Block(
            id=next(self._ids),
            start=start,
            size=size,
            process_id=process_id,
            process_name=process_name,
            color=color,
        )

    @property
    def total(self) -> int:
        """Return the size of the address space."""
        return self._total

    @property
    def blocks(self) -> list[Block]:
        """Return all blocks in address order."""
        return list(self._blocks)

    @property
    def used(self) -> int:
        """Return the number of units owned by processes."""
        return sum(b.size for b in self._blocks if not b.is_hole)

    @property
    def free(self) -> int:
        """Return the number of unowned units."""
        return self._total - self.used

    def holes(self) -> list[Block]:
        """Return the free blocks in address order."""
        return [b for b in self._blocks if b.is_hole]

    def find(self, block_id: int) -> Block | None:
        """Return the block with the given id, or None."""
        return next((b for b in self._blocks if b.id == block_id), None)

    def blocks_for(self, process_id: int) -> list[Block]:
        """Return the blocks owned by a process."""
        return [b for b in self._blocks if b.process_id == process_id]

    def split_at(
        self,
        block_id: int,
        offset: int,
        length: int,
        *,
        process_id: int,
        process_name: str | None = None,
        color: str | None = None,
    ) -> Block:
        """Carve an occupied span out of a hole.

        The hole is replaced, in order, by a leading hole (if
        ``offset > 0``), the occupied span, and a trailing hole (if any
        space remains).

        Args:
            block_id: The hole to split.
            offset: Distance from the hole's start to the new span.
            length: Size of the new span.
            process_id: Owner of the new span.
            process_name: Display name of the owner.
            color: Display color of the owner.

        Returns:
            The newly created occupied block.

        Raises:
            LedgerError: If the block is missing, occupied, or too small.

        """
        index = next((i for i, b in enumerate(self._blocks) if b.id == block_id), None)
        if index is None:
            msg = f"No block with id {block_id}"
            raise LedgerError(msg)
        target = self._blocks[index]
        if not target.is_hole:
            msg = f"Block {block_id} is owned by process {target.process_id}"
            raise LedgerError(msg)
        if length <= 0 or offset < 0 or offset + length > target.size:
            msg = f"Span (offset={offset}, length={length}) does not fit block {block_id} of size {target.size}"
            raise LedgerError(msg)

        pieces: list[Block] = []
        if offset > 0:
            pieces.append(self._new_block(start=target.start, size=offset))
        occupied = self._new_block(
            start=target.start + offset,
            size=length,
            process_id=process_id,
            process_name=process_name,
            color=color,
        )
        pieces.append(occupied)
        remainder = target.size - offset - length
        if remainder > 0:
            pieces.append(self._new_block(start=occupied.end, size=remainder))

        self._blocks[index : index + 1] = pieces
        self._normalize()
        return occupied

    def mark_free_and_merge(self, process_id: int) -> int:
        """Turn every block owned by a process into a hole, then merge.

        Unknown (or already released) processes are a no-op.

        Returns:
            The number of units freed.

        """
        freed = 0
        blocks: list[Block] = []
        for block in self._blocks:
            if block.process_id == process_id:
                freed += block.size
                blocks.append(replace(block, process_id=None, process_name=None, color=None))
            else:
                blocks.append(block)
        if freed == 0:
            return 0
        self._blocks = blocks
        self._normalize()
        return freed

    def resize(self, new_total: int) -> None:
        """Grow or shrink the address space at its tail.

        Growing appends a hole (merged into an existing tail hole).
        Shrinking takes the difference out of the tail hole.

        Raises:
            LedgerError: If new_total is not positive, or on a shrink
                whose tail block is occupied or too small.

        """
        if new_total <= 0:
            msg = f"Total memory must be positive, got {new_total}"
            raise LedgerError(msg)
        delta = new_total - self._total
        if delta == 0:
            return
        if delta > 0:
            self._blocks.append(self._new_block(start=self._total, size=delta))
        else:
            reduction = -delta
            tail = self._blocks[-1]
            if not tail.is_hole:
                msg = f"Cannot shrink by {reduction}: the last block is owned by process {tail.process_id}"
                raise LedgerError(msg)
            if tail.size < reduction:
                msg = f"Cannot shrink by {reduction}: the trailing hole holds only {tail.size}"
                raise LedgerError(msg)
            if tail.size == reduction:
                self._blocks.pop()
            else:
                self._blocks[-1] = replace(tail, size=tail.size - reduction)
        self._total = new_total
        self._normalize()

    def _normalize(self) -> None:
        """Re-sort by address and merge neighbouring holes in one pass."""
        merged: list[Block] = []
        for block in sorted(self._blocks, key=lambda b: b.start):
            previous = merged[-1] if merged else None
            if previous is not None and previous.is_hole and block.is_hole and previous.end == block.start:
                merged[-1] = replace(previous, size=previous.size + block.size)
            else:
                merged.append(block)
        self._blocks = merged

    def validate(self) -> None:
        """Check every ledger invariant.

        Raises:
            LedgerError: Describing the first violation found.

        """
        if not self._blocks:
            msg = "Ledger has no blocks"
            raise LedgerError(msg)
        expected_start = 0
        previous: Block | None = None
        for block in self._blocks:
            if block.size <= 0:
                msg = f"Block {block.id} has non-positive size {block.size}"
                raise LedgerError(msg)
            if block.start != expected_start:
                msg = f"Block {block.id} starts at {block.start}, expected {expected_start}"
                raise LedgerError(msg)
            if previous is not None and previous.is_hole and block.is_hole:
                msg = f"Adjacent holes {previous.id} and {block.id} were not merged"
                raise LedgerError(msg)
            expected_start = block.end
            previous = block
        if expected_start != self._total:
            msg = f"Blocks end at {expected_start}, expected {self._total}"
            raise LedgerError(msg)
