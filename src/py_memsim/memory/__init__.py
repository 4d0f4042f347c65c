"""Memory subsystem — the block ledger and hole placement policies.

Re-exports public symbols so callers can write::

    from py_memsim.memory import BlockLedger, Technique, select_hole
"""

from py_memsim.memory.ledger import Block, BlockLedger, LedgerError
from py_memsim.memory.placement import (
    CONTIGUOUS_TECHNIQUES,
    TECHNIQUE_DESCRIPTIONS,
    TECHNIQUE_LABELS,
    BestFitPolicy,
    FirstFitPolicy,
    NextFitPolicy,
    Placement,
    PlacementPolicy,
    Technique,
    WorstFitPolicy,
    parse_technique,
    policy_for,
    select_hole,
)

__all__ = [
    "CONTIGUOUS_TECHNIQUES",
    "TECHNIQUE_DESCRIPTIONS",
    "TECHNIQUE_LABELS",
    "BestFitPolicy",
    "Block",
    "BlockLedger",
    "FirstFitPolicy",
    "LedgerError",
    "NextFitPolicy",
    "Placement",
    "PlacementPolicy",
    "Technique",
    "WorstFitPolicy",
    "parse_technique",
    "policy_for",
    "select_hole",
]
