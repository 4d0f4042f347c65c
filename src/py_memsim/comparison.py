"""Technique comparison — run one batch under every placement policy.

Which technique is "best" depends entirely on the workload.  The
comparison runner answers that empirically: it replays the same batch
on a fresh engine once per contiguous technique and records how each
run behaved, tick by tick:

- successful and failed allocation attempts;
- average memory utilization;
- the largest and average number of holes;
- the worst external fragmentation seen;
- how many ticks the batch took to finish.

Each run is an ordinary simulation, so the numbers are exactly what a
user would observe by stepping the same batch by hand.
"""

from collections.abc import Sequence
from dataclasses import dataclass

from py_memsim.engine import AllocationEngine
from py_memsim.memory.placement import CONTIGUOUS_TECHNIQUES, TECHNIQUE_LABELS, Technique
from py_memsim.process import ProcessInput
from py_memsim.scheduler import TickScheduler


@dataclass(frozen=True)
class ComparisonMetrics:
    """Summary of one technique's run over a batch."""

    technique: Technique
    label: str
    successful_allocations: int
    failed_allocations: int
    avg_utilization: float
    max_holes: int
    avg_holes: float
    max_external_fragmentation: int
    total_ticks: int

    def to_dict(self) -> dict[str, object]:
        """Return a JSON-friendly representation."""
        return {
            "technique": str(self.technique),
            "label": self.label,
            "successful_allocations": self.successful_allocations,
            "failed_allocations": self.failed_allocations,
            "avg_utilization": self.avg_utilization,
            "max_holes": self.max_holes,
            "avg_holes": self.avg_holes,
            "max_external_fragmentation": self.max_external_fragmentation,
            "total_ticks": self.total_ticks,
        }


def tick_budget(processes: Sequence[ProcessInput]) -> int:
    """Return enough ticks for any feasible batch to finish.

    Even if every process had to run alone, the last one would be done
    by the latest arrival plus the sum of all bursts.
    """
    if not processes:
        return 0
    return max(p.arrival_time for p in processes) + sum(p.burst_time for p in processes) + 1


def run_technique(
    processes: Sequence[ProcessInput],
    technique: Technique,
    *,
    total_memory: int,
) -> ComparisonMetrics:
    """Replay a batch under one technique and summarise the run.

    Processes that can never fit (larger than memory) keep the run
    going until the tick budget is spent.
    """
    engine = AllocationEngine(total_memory=total_memory, technique=technique)
    scheduler = TickScheduler(engine)
    for spec in processes:
        engine.submit(spec)

    utilization_sum = 0.0
    holes_sum = 0
    max_holes = 0
    max_external_fragmentation = 0
    samples = 0
    budget = tick_budget(processes)

    while samples < budget and not scheduler.is_complete():
        scheduler.advance()
        stats = engine.stats()
        samples += 1
        utilization_sum += stats.utilization
        holes_sum += stats.number_of_holes
        max_holes = max(max_holes, stats.number_of_holes)
        max_external_fragmentation = max(max_external_fragmentation, stats.external_fragmentation)

    return ComparisonMetrics(
        technique=technique,
        label=TECHNIQUE_LABELS[technique],
        successful_allocations=engine.successful_allocations,
        failed_allocations=engine.failed_allocations,
        avg_utilization=utilization_sum / samples if samples else 0.0,
        max_holes=max_holes,
        avg_holes=holes_sum / samples if samples else 0.0,
        max_external_fragmentation=max_external_fragmentation,
        total_ticks=engine.current_time,
    )


def compare_techniques(
    processes: Sequence[ProcessInput],
    *,
    total_memory: int,
    techniques: Sequence[Technique] = CONTIGUOUS_TECHNIQUES,
) -> list[ComparisonMetrics]:
    """Replay a batch under each technique.

    Returns:
        One metrics record per technique, in the order given; empty
        for an empty batch.

    """
    if not processes:
        return []
    return [run_technique(processes, t, total_memory=total_memory) for t in techniques]
