"""Batch process lists — import, export, and generation.

Teaching sessions rarely type processes in one at a time.  This module
turns external process lists into validated ``ProcessInput`` records
and back again:

- ``parse_records`` — lenient validation of loosely-typed rows (from a
  spreadsheet export, a JSON body, a CSV file).  Missing names get a
  placeholder, and numbers that are missing or nonsensical fall back
  to defaults instead of rejecting the whole batch.
- ``load_processes`` / ``dump_processes`` — JSON and CSV files, using
  the same column headings a spreadsheet export would have.
- ``generate_random_processes`` — a reproducible random batch (pass a
  seeded ``random.Random``).
- ``SAMPLE_PROCESSES`` — a hand-picked batch that exercises small,
  medium, large, late, and short-lived processes.
"""

import csv
import importlib
import json
import random
from collections.abc import Iterable, Mapping
from pathlib import Path
from types import ModuleType

from py_memsim.process import ProcessInput

DEFAULT_SIZE = 64
DEFAULT_BURST_TIME = 5
DEFAULT_ARRIVAL_TIME = 0

MAX_RANDOM_PROCESSES = 20
_RANDOM_ARRIVAL_SPAN = 20
_RANDOM_MIN_SIZE = 32
_RANDOM_MIN_BURST = 3
_RANDOM_MAX_BURST = 17
_RANDOM_NAMES = (
    "Init",
    "Kernel",
    "Shell",
    "Editor",
    "Browser",
    "Player",
    "Daemon",
    "Server",
    "Client",
    "Worker",
    "Cache",
    "Logger",
    "Monitor",
    "Scheduler",
    "Handler",
)

# Accepted column names, spreadsheet heading first.
_NAME_KEYS = ("Process Name", "name")
_SIZE_KEYS = ("Size", "size")
_BURST_KEYS = ("Burst Time", "burstTime", "burst_time", "burst")
_ARRIVAL_KEYS = ("Arrival Time", "arrivalTime", "arrival_time", "arrival")

CSV_FIELDS = ("Process Name", "Size", "Burst Time", "Arrival Time")

SAMPLE_PROCESSES: tuple[ProcessInput, ...] = (
    ProcessInput(name="Small1", size=32, burst_time=5, arrival_time=0),
    ProcessInput(name="Small2", size=16, burst_time=3, arrival_time=1),
    ProcessInput(name="Small3", size=8, burst_time=4, arrival_time=2),
    ProcessInput(name="Medium1", size=128, burst_time=8, arrival_time=3),
    ProcessInput(name="Medium2", size=96, burst_time=6, arrival_time=4),
    ProcessInput(name="Large1", size=256, burst_time=10, arrival_time=5),
    ProcessInput(name="Large2", size=384, burst_time=12, arrival_time=6),
    ProcessInput(name="Late1", size=64, burst_time=5, arrival_time=10),
    ProcessInput(name="Late2", size=192, burst_time=7, arrival_time=12),
    ProcessInput(name="Temp1", size=96, burst_time=2, arrival_time=1),
    ProcessInput(name="Temp2", size=160, burst_time=3, arrival_time=2),
)


class BatchError(Exception):
    """Raise when a batch file cannot be read or written."""


def _first_present(row: Mapping[str, object], keys: tuple[str, ...]) -> object:
    """Return the first non-empty value among ``keys``, or None."""
    for key in keys:
        value = row.get(key)
        if value is not None and value != "":
            return value
    return None


def _as_int(value: object, *, default: int, minimum: int) -> int:
    """Coerce a loosely-typed value to an int, falling back to ``default``."""
    if isinstance(value, bool) or value is None:
        return default
    try:
        number = int(float(str(value).strip()))
    except (ValueError, OverflowError):
        return default
    return number if number >= minimum else default


def parse_records(rows: Iterable[Mapping[str, object]]) -> list[ProcessInput]:
    """Validate loosely-typed rows into process requests.

    Args:
        rows: Mappings using any of the accepted column names.

    Returns:
        One ``ProcessInput`` per row, in order.

    """
    processes: list[ProcessInput] = []
    for index, row in enumerate(rows):
        name = _first_present(row, _NAME_KEYS)
        processes.append(
            ProcessInput(
                name=str(name).strip() if name is not None and str(name).strip() else f"P{index + 1}",
                size=_as_int(_first_present(row, _SIZE_KEYS), default=DEFAULT_SIZE, minimum=1),
                burst_time=_as_int(_first_present(row, _BURST_KEYS), default=DEFAULT_BURST_TIME, minimum=1),
                arrival_time=_as_int(
                    _first_present(row, _ARRIVAL_KEYS),
                    default=DEFAULT_ARRIVAL_TIME,
                    minimum=0,
                ),
            )
        )
    return processes


def _read_text(path: Path) -> str:
    """Read a text batch file, tolerating the BOM spreadsheet exports add.

    Raises:
        BatchError: If the file is missing or not valid UTF-8.

    """
    try:
        return path.read_text(encoding="utf-8-sig")
    except (OSError, UnicodeDecodeError) as e:
        msg = f"Cannot read {path}: {e}"
        raise BatchError(msg) from e


def _spreadsheet_module() -> ModuleType:
    """Import the optional ``.xlsx`` support.

    Raises:
        BatchError: If openpyxl is not installed.

    """
    try:
        return importlib.import_module("py_memsim.spreadsheet")
    except ImportError as e:
        msg = "Excel files need openpyxl; install py-memsim[xlsx]"
        raise BatchError(msg) from e


def load_processes(path: Path) -> list[ProcessInput]:
    """Read a process list from a ``.json``, ``.csv`` or ``.xlsx`` file.

    JSON files hold a list of objects (or ``{"processes": [...]}``);
    CSV files and the first sheet of a workbook have a header row.

    Raises:
        BatchError: If the file is missing, malformed, or of an
            unsupported type.

    """
    suffix = path.suffix.lower()

    if suffix == ".json":
        text = _read_text(path)
        try:
            data = json.loads(text)
        except json.JSONDecodeError as e:
            msg = f"Invalid JSON in {path}: {e}"
            raise BatchError(msg) from e
        if isinstance(data, dict):
            data = data.get("processes", [])
        if not isinstance(data, list) or not all(isinstance(row, dict) for row in data):
            msg = f"{path} must contain a list of process objects"
            raise BatchError(msg)
        return parse_records(data)

    if suffix == ".csv":
        return parse_records(csv.DictReader(_read_text(path).splitlines()))

    if suffix == ".xlsx":
        return parse_records(_spreadsheet_module().read_rows(path))

    msg = f"Unsupported batch file type {suffix!r} (use .json, .csv or .xlsx)"
    raise BatchError(msg)


def dump_processes(processes: Iterable[ProcessInput], path: Path) -> None:
    """Write a process list to a ``.json``, ``.csv`` or ``.xlsx`` file.

    Raises:
        BatchError: If the file type is unsupported or cannot be written.

    """
    rows = [
        {
            "Process Name": p.name,
            "Size": p.size,
            "Burst Time": p.burst_time,
            "Arrival Time": p.arrival_time,
        }
        for p in processes
    ]
    suffix = path.suffix.lower()
    try:
        if suffix == ".json":
            path.write_text(json.dumps(rows, indent=2), encoding="utf-8")
        elif suffix == ".csv":
            with path.open("w", encoding="utf-8", newline="") as handle:
                writer = csv.DictWriter(handle, fieldnames=CSV_FIELDS)
                writer.writeheader()
                writer.writerows(rows)
        elif suffix == ".xlsx":
            _spreadsheet_module().write_rows(rows, CSV_FIELDS, path)
        else:
            msg = f"Unsupported batch file type {suffix!r} (use .json, .csv or .xlsx)"
            raise BatchError(msg)
    except OSError as e:
        msg = f"Cannot write {path}: {e}"
        raise BatchError(msg) from e


def generate_random_processes(
    count: int,
    *,
    total_memory: int,
    rng: random.Random | None = None,
) -> list[ProcessInput]:
    """Build a random batch sized for the given memory.

    Arrival times are unique within 0-19 while there are fewer than 20
    processes.  Sizes range from 32 KB to a quarter of memory; bursts
    from 3 to 17 ticks.

    Args:
        count: Number of processes, clamped to 1-20.
        total_memory: Memory size the batch is meant for.
        rng: Random source; pass a seeded one for reproducible batches.

    Returns:
        The batch sorted by arrival time.

    """
    rng = rng or random.Random()  # noqa: S311
    count = min(MAX_RANDOM_PROCESSES, max(1, count))
    max_size = max(_RANDOM_MIN_SIZE, total_memory // 4)
    used_arrivals: set[int] = set()
    processes: list[ProcessInput] = []
    for i in range(count):
        arrival = rng.randrange(_RANDOM_ARRIVAL_SPAN)
        while arrival in used_arrivals and len(used_arrivals) < _RANDOM_ARRIVAL_SPAN:
            arrival = rng.randrange(_RANDOM_ARRIVAL_SPAN)
        used_arrivals.add(arrival)
        processes.append(
            ProcessInput(
                name=f"{_RANDOM_NAMES[i % len(_RANDOM_NAMES)]}{i + 1}",
                size=rng.randint(_RANDOM_MIN_SIZE, max_size),
                burst_time=rng.randint(_RANDOM_MIN_BURST, _RANDOM_MAX_BURST),
                arrival_time=arrival,
            )
        )
    return sorted(processes, key=lambda p: p.arrival_time)
