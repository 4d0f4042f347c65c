"""Placement strategies — which hole should a request go into?

Every contiguous allocator must answer the same question: given the
current holes and a request of ``size`` units, which hole do we carve
the request out of?  Four classic answers ship here:

- **FirstFitPolicy**: the lowest-addressed hole that is big enough.
  Fast and simple; tends to leave small slivers near the start.
- **BestFitPolicy**: the smallest hole that is big enough.  Minimises
  the leftover in the chosen hole, but leaves many tiny unusable holes.
- **WorstFitPolicy**: the largest hole.  Leaves the biggest leftover,
  hoping it stays useful for later requests.
- **NextFitPolicy**: like first fit, but resumes scanning from where
  the last search stopped, spreading allocations across memory.

Design: Strategy pattern
    ``select_hole`` is the context; each policy is a strategy working
    on the same *candidate list* (holes with ``size >= requested``, in
    address order).  Ties in best/worst fit go to the lowest address.

Next-fit cursor:
    The cursor is an index into the candidate list, and that list is
    rebuilt on every call.  When the set of big-enough holes changes,
    the cursor points into a different list than the one it came from,
    so it does not track a fixed memory position.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Protocol

from py_memsim.memory.ledger import Block


class Technique(StrEnum):
    """Memory allocation techniques.

    Paging and segmentation exist only as labels; choosing one places
    memory with first fit.
    """

    FIRST_FIT = "first-fit"
    BEST_FIT = "best-fit"
    WORST_FIT = "worst-fit"
    NEXT_FIT = "next-fit"
    PAGING = "paging"
    SEGMENTATION = "segmentation"


CONTIGUOUS_TECHNIQUES: tuple[Technique, ...] = (
    Technique.FIRST_FIT,
    Technique.BEST_FIT,
    Technique.WORST_FIT,
    Technique.NEXT_FIT,
)

TECHNIQUE_LABELS: dict[Technique, str] = {
    Technique.FIRST_FIT: "First Fit",
    Technique.BEST_FIT: "Best Fit",
    Technique.WORST_FIT: "Worst Fit",
    Technique.NEXT_FIT: "Next Fit",
    Technique.PAGING: "Paging",
    Technique.SEGMENTATION: "Segmentation",
}

TECHNIQUE_DESCRIPTIONS: dict[Technique, str] = {
    Technique.FIRST_FIT: "Allocates the first sufficient block found from the beginning of memory",
    Technique.BEST_FIT: "Allocates the smallest sufficient block to minimize wastage",
    Technique.WORST_FIT: "Allocates the largest available block to minimize external fragmentation",
    Technique.NEXT_FIT: "Similar to first-fit but starts searching from the last allocation point",
    Technique.PAGING: "Divides memory into fixed-size pages and processes into equal-sized frames",
    Technique.SEGMENTATION: "Divides memory into logical segments of varying sizes",
}


def parse_technique(value: str) -> Technique:
    """Look up a technique by value (``best-fit``), name (``BEST_FIT``) or label.

    Raises:
        ValueError: If the text names no known technique.

    """
    key = value.strip().lower().replace("_", "-").replace(" ", "-")
    for technique in Technique:
        if key in {technique.value, TECHNIQUE_LABELS[technique].lower().replace(" ", "-")}:
            return technique
    msg = f"Unknown technique {value!r}; choose from {', '.join(t.value for t in Technique)}"
    raise ValueError(msg)


@dataclass(frozen=True)
class Placement:
    """The outcome of a successful hole search.

    Attributes:
        block: The hole chosen for the request.
        cursor: The next-fit cursor to store for the following search.

    """

    block: Block
    cursor: int


class PlacementPolicy(Protocol):
    """Interface every placement algorithm must satisfy."""

    def select(self, candidates: Sequence[Block], size: int, cursor: int) -> Placement | None:
        """Pick a hole from ``candidates`` (all big enough, address order)."""
        ...  # pragma: no cover


class FirstFitPolicy:
    """First fit — the lowest-addressed sufficient hole."""

    def select(self, candidates: Sequence[Block], size: int, cursor: int) -> Placement | None:  # noqa: ARG002
        """Return the first candidate."""
        if not candidates:
            return None
        return Placement(block=candidates[0], cursor=cursor)


class BestFitPolicy:
    """Best fit — the smallest sufficient hole.

    ``min`` returns the first of several equal minima, so ties resolve
    to the lowest address, exactly like a stable ascending sort.
    """

    def select(self, candidates: Sequence[Block], size: int, cursor: int) -> Placement | None:  # noqa: ARG002
        """Return the smallest candidate."""
        if not candidates:
            return None
        return Placement(block=min(candidates, key=lambda b: b.size), cursor=cursor)


class WorstFitPolicy:
    """Worst fit — the largest hole."""

    def select(self, candidates: Sequence[Block], size: int, cursor: int) -> Placement | None:  # noqa: ARG002
        """Return the largest candidate (lowest address on ties)."""
        if not candidates:
            return None
        return Placement(block=max(candidates, key=lambda b: b.size), cursor=cursor)


class NextFitPolicy:
    """Next fit — resume the circular scan at the cursor.

    The new cursor is the chosen index plus one, left unwrapped; the
    next call wraps it with a modulo against whatever candidate list it
    sees then.
    """

    def select(self, candidates: Sequence[Block], size: int, cursor: int) -> Placement | None:
        """Scan from ``cursor % len(candidates)`` for the first sufficient hole."""
        if not candidates:
            return None
        start = cursor % len(candidates)
        for step in range(len(candidates)):
            index = (start + step) % len(candidates)
            if candidates[index].size >= size:
                return Placement(block=candidates[index], cursor=index + 1)
        return None


_POLICIES: dict[Technique, PlacementPolicy] = {
    Technique.FIRST_FIT: FirstFitPolicy(),
    Technique.BEST_FIT: BestFitPolicy(),
    Technique.WORST_FIT: WorstFitPolicy(),
    Technique.NEXT_FIT: NextFitPolicy(),
}


def policy_for(technique: Technique) -> PlacementPolicy:
    """Return the placement policy for a technique (first fit for labels only)."""
    return _POLICIES.get(technique, _POLICIES[Technique.FIRST_FIT])


def select_hole(
    blocks: Sequence[Block],
    size: int,
    technique: Technique,
    cursor: int = 0,
) -> Placement | None:
    """Choose the hole a request of ``size`` units should occupy.

    Args:
        blocks: The ledger's blocks in address order (holes and owned).
        size: Requested size.
        technique: The placement technique to apply.
        cursor: The stored next-fit cursor (ignored by other techniques).

    Returns:
        The chosen hole and the cursor to store, or None if no hole is
        large enough.

    """
    candidates = [b for b in blocks if b.is_hole and b.size >= size]
    return policy_for(technique).select(candidates, size, cursor)
