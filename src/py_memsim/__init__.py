"""py-memsim — a contiguous memory allocation simulator.

Re-exports the main entry points so callers can write::

    from py_memsim import Simulation, Technique
"""

from py_memsim.engine import (
    AddressUnavailableError,
    AllocationEngine,
    AllocationError,
    InsufficientCapacityError,
    NoSuitableHoleError,
)
from py_memsim.memory.placement import Technique
from py_memsim.process import Process, ProcessInput, ProcessStatus
from py_memsim.simulation import Simulation, SimulationState

__all__ = [
    "AddressUnavailableError",
    "AllocationEngine",
    "AllocationError",
    "InsufficientCapacityError",
    "NoSuitableHoleError",
    "Process",
    "ProcessInput",
    "ProcessStatus",
    "Simulation",
    "SimulationState",
    "Technique",
]
