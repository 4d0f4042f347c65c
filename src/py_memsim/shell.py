"""The shell — a text command interpreter for a simulation.

The shell reads a command string, splits it into a command name and
arguments, dispatches to a handler, and returns the handler's output
as a string.

Design choices:
    - **Returns strings, not prints.**  The shell stays fully testable
      and the caller (REPL, web UI, tests) decides how to display it.
    - **Command dispatch via a dict.**  Adding a command means writing
      one method and adding one dict entry.
    - **Manual stepping.**  The shell never starts the wall-clock
      timer; ``tick`` and ``run`` advance time explicitly so a session
      is reproducible line by line.
"""

import shlex
from collections.abc import Callable
from pathlib import Path
from typing import TypeAlias

from py_memsim.batch import SAMPLE_PROCESSES, BatchError, dump_processes, generate_random_processes, load_processes
from py_memsim.comparison import compare_techniques
from py_memsim.memory.placement import (
    CONTIGUOUS_TECHNIQUES,
    TECHNIQUE_DESCRIPTIONS,
    TECHNIQUE_LABELS,
    parse_technique,
)
from py_memsim.simulation import Simulation

_Handler: TypeAlias = Callable[[list[str]], str]

_DEFAULT_LOG_LINES = 10
_DEFAULT_RUN_LIMIT = 1000
_MAP_WIDTH = 64
_ADD_ARGS_WITHOUT_ARRIVAL = 3
_ADD_ARGS_WITH_ARRIVAL = 4


class Shell:
    """Command interpreter bound to one simulation."""

    EXIT_SENTINEL = "__EXIT__"

    def __init__(self, *, simulation: Simulation | None = None) -> None:
        """Create a shell, with a fresh simulation unless one is given."""
        self._simulation = simulation or Simulation()
        self._commands: dict[str, _Handler] = {
            "help": self._cmd_help,
            "add": self._cmd_add,
            "import": self._cmd_import,
            "export": self._cmd_export,
            "random": self._cmd_random,
            "sample": self._cmd_sample,
            "tick": self._cmd_tick,
            "run": self._cmd_run,
            "ps": self._cmd_ps,
            "mem": self._cmd_mem,
            "holes": self._cmd_holes,
            "stats": self._cmd_stats,
            "log": self._cmd_log,
            "kill": self._cmd_kill,
            "technique": self._cmd_technique,
            "resize": self._cmd_resize,
            "compare": self._cmd_compare,
            "reset": self._cmd_reset,
            "exit": self._cmd_exit,
        }

    @property
    def simulation(self) -> Simulation:
        """Return the simulation this shell drives."""
        return self._simulation

    @property
    def command_names(self) -> list[str]:
        """Return all command names, sorted."""
        return sorted(self._commands)

    def execute(self, command: str) -> str:
        """Parse and execute one command line.

        Returns:
            The command output, an error message, or EXIT_SENTINEL.

        """
        try:
            parts = shlex.split(command)
        except ValueError as e:
            return f"Error: {e}"
        if not parts:
            return ""
        name, args = parts[0], parts[1:]
        handler = self._commands.get(name)
        if handler is None:
            return f"Unknown command: {name}"
        return handler(args)

    # -- Commands --------------------------------------------------------------------

    def _cmd_help(self, _args: list[str]) -> str:
        """List available commands."""
        return "Available commands: " + ", ".join(self.command_names)

    def _cmd_add(self, args: list[str]) -> str:
        """Submit a process: add <name> <size> <burst> [arrival] [@address]."""
        address: int | None = None
        if args and args[-1].startswith("@"):
            try:
                address = int(args[-1][1:])
            except ValueError:
                return f"Error: invalid address '{args[-1][1:]}'"
            args = args[:-1]
        if len(args) not in {_ADD_ARGS_WITHOUT_ARRIVAL, _ADD_ARGS_WITH_ARRIVAL}:
            return "Usage: add <name> <size> <burst> [arrival] [@address]"
        try:
            size, burst = int(args[1]), int(args[2])
            arrival = int(args[3]) if len(args) == _ADD_ARGS_WITH_ARRIVAL else self._simulation.current_time
            process = self._simulation.add_process(
                name=args[0],
                size=size,
                burst_time=burst,
                arrival_time=arrival,
                address=address,
            )
        except ValueError as e:
            return f"Error: {e}"
        if process is None:
            return f"Error: address {address} is not available for {size} KB"
        where = f"at {process.start_address}" if process.start_address is not None else "(waiting)"
        return f"Process {process.pid} {process.name} {process.status} {where}"

    def _cmd_import(self, args: list[str]) -> str:
        """Import processes from a .json, .csv or .xlsx file."""
        if not args:
            return "Usage: import <path>"
        try:
            specs = load_processes(Path(args[0]))
        except BatchError as e:
            return f"Error: {e}"
        imported = self._simulation.import_processes(specs)
        return f"Imported {len(imported)} processes."

    def _cmd_export(self, args: list[str]) -> str:
        """Export the current process list to a .json, .csv or .xlsx file."""
        if not args:
            return "Usage: export <path>"
        processes = self._simulation.processes
        try:
            dump_processes([p.spec for p in processes], Path(args[0]))
        except BatchError as e:
            return f"Error: {e}"
        return f"Exported {len(processes)} processes to {args[0]}."

    def _cmd_random(self, args: list[str]) -> str:
        """Import a random batch: random [count]."""
        try:
            count = int(args[0]) if args else 5
        except ValueError:
            return f"Error: invalid count '{args[0]}'"
        specs = generate_random_processes(count, total_memory=self._simulation.total_memory)
        imported = self._simulation.import_processes(specs)
        return f"Imported {len(imported)} random processes."

    def _cmd_sample(self, _args: list[str]) -> str:
        """Import the built-in sample batch."""
        imported = self._simulation.import_processes(SAMPLE_PROCESSES)
        return f"Imported {len(imported)} sample processes."

    def _cmd_tick(self, args: list[str]) -> str:
        """Advance time: tick [n]."""
        try:
            count = int(args[0]) if args else 1
        except ValueError:
            return f"Error: invalid tick count '{args[0]}'"
        lines: list[str] = []
        for _ in range(max(count, 0)):
            report = self._simulation.tick()
            lines.append(
                f"t={report.tick} admitted={report.admitted} failed={report.failed} completed={report.completed}"
            )
        return "\n".join(lines)

    def _cmd_run(self, args: list[str]) -> str:
        """Tick until every process completes: run [max_ticks]."""
        try:
            limit = int(args[0]) if args else _DEFAULT_RUN_LIMIT
        except ValueError:
            return f"Error: invalid tick limit '{args[0]}'"
        reports = self._simulation.run_to_completion(max_ticks=limit)
        state = "complete" if self._simulation.is_complete else "incomplete"
        return f"Ran {len(reports)} ticks; simulation {state} at t={self._simulation.current_time}."

    def _cmd_ps(self, _args: list[str]) -> str:
        """List processes."""
        lines = ["PID    NAME         SIZE  BURST  LEFT  ARRIVE  ADDR   STATUS"]
        for p in self._simulation.processes:
            address = "-" if p.start_address is None else str(p.start_address)
            lines.append(
                f"{p.pid:<6} {p.name:<12} {p.size:<5} {p.burst_time:<6} {p.remaining_time:<5} "
                f"{p.arrival_time:<7} {address:<6} {p.status}"
            )
        return "\n".join(lines)

    def _cmd_mem(self, _args: list[str]) -> str:
        """Show the memory map as one bar plus one line per block."""
        blocks = self._simulation.blocks
        total = self._simulation.total_memory
        bar = ""
        for block in blocks:
            width = max(1, round(block.size / total * _MAP_WIDTH))
            bar += ("." if block.is_hole else "#") * width
        lines = [f"[{bar}]"]
        for block in blocks:
            owner = "hole" if block.is_hole else f"P{block.process_id} {block.process_name}"
            lines.append(f"{block.start:>6}-{block.end - 1:<6} {block.size:>6} KB  {owner}")
        return "\n".join(lines)

    def _cmd_holes(self, _args: list[str]) -> str:
        """List free regions."""
        holes = self._simulation.holes
        if not holes:
            return "No holes."
        return "\n".join(f"{h.start:>6}-{h.end:<6} {h.size:>6} KB" for h in holes)

    def _cmd_stats(self, _args: list[str]) -> str:
        """Show memory statistics."""
        stats = self._simulation.stats
        lines = [
            "=== Memory ===",
            f"Technique:     {TECHNIQUE_LABELS[self._simulation.technique]}",
            f"Time:          {self._simulation.current_time}",
            f"Total:         {stats.total_memory} KB",
            f"Used:          {stats.used_memory} KB",
            f"Free:          {stats.free_memory} KB",
            f"Utilization:   {stats.utilization:.1f}%",
            f"Holes:         {stats.number_of_holes}",
            f"External frag: {stats.external_fragmentation} KB",
            f"Internal frag: {stats.internal_fragmentation} KB",
            f"Running:       {stats.number_of_running_processes}",
        ]
        return "\n".join(lines)

    def _cmd_log(self, args: list[str]) -> str:
        """Show recent log entries, newest first: log [n]."""
        try:
            limit = int(args[0]) if args else _DEFAULT_LOG_LINES
        except ValueError:
            return f"Error: invalid line count '{args[0]}'"
        entries = self._simulation.logs[:limit]
        return "\n".join(str(e) for e in entries) if entries else "No log entries."

    def _cmd_kill(self, args: list[str]) -> str:
        """Terminate a process by PID."""
        if not args:
            return "Usage: kill <pid>"
        try:
            pid = int(args[0])
        except ValueError:
            return f"Error: invalid PID '{args[0]}'"
        if not self._simulation.terminate(pid):
            return f"Error: process {pid} is not running or waiting"
        return f"Process {pid} terminated."

    def _cmd_technique(self, args: list[str]) -> str:
        """Show or change the placement technique."""
        if not args:
            current = self._simulation.technique
            return f"{TECHNIQUE_LABELS[current]}: {TECHNIQUE_DESCRIPTIONS[current]}"
        try:
            technique = parse_technique(" ".join(args))
        except ValueError as e:
            return f"Error: {e}"
        self._simulation.set_technique(technique)
        suffix = "" if technique in CONTIGUOUS_TECHNIQUES else " (not modelled; placing with first fit)"
        return f"Technique set to {TECHNIQUE_LABELS[technique]}{suffix}."

    def _cmd_resize(self, args: list[str]) -> str:
        """Change the total memory size in KB."""
        if not args:
            return "Usage: resize <kb>"
        try:
            new_total = int(args[0])
        except ValueError:
            return f"Error: invalid size '{args[0]}'"
        if not self._simulation.change_total_memory(new_total):
            return f"Error: cannot resize memory to {new_total} KB"
        return f"Memory resized to {new_total} KB."

    def _cmd_compare(self, _args: list[str]) -> str:
        """Replay the current process list under every technique."""
        specs = [p.spec for p in self._simulation.processes]
        results = compare_techniques(specs, total_memory=self._simulation.total_memory)
        if not results:
            return "No processes to compare."
        lines = ["TECHNIQUE   OK   FAIL  UTIL%   MAXHOLES  AVGHOLES  MAXFRAG  TICKS"]
        lines.extend(
            f"{m.label:<11} {m.successful_allocations:<4} {m.failed_allocations:<5} {m.avg_utilization:<7.1f} "
            f"{m.max_holes:<9} {m.avg_holes:<9.2f} {m.max_external_fragmentation:<8} {m.total_ticks}"
            for m in results
        )
        return "\n".join(lines)

    def _cmd_reset(self, _args: list[str]) -> str:
        """Clear processes, memory and log."""
        self._simulation.reset()
        return "Simulation reset."

    def _cmd_exit(self, _args: list[str]) -> str:
        """Signal the REPL to stop."""
        return self.EXIT_SENTINEL
