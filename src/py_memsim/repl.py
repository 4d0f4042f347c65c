"""Interactive REPL (Read-Eval-Print Loop) for the memory simulator.

The REPL creates a shell around a fresh simulation and runs the classic
loop:

    1. **Read** — display a prompt and read user input.
    2. **Eval** — pass the command to ``shell.execute()``.
    3. **Print** — display the result.
    4. **Loop** — repeat until the shell returns the exit sentinel.

The shell is fully testable (returns strings, no I/O); this module is
the thin I/O wrapper that connects it to ``stdin``/``stdout``.  The
helpers (``build_prompt``, ``format_banner``) are pure and testable.
"""

import readline

from py_memsim.memory.placement import TECHNIQUE_LABELS
from py_memsim.shell import Shell
from py_memsim.simulation import Simulation

_BANNER_WIDTH = 42


def format_banner(simulation: Simulation) -> str:
    """Build the start-up banner for a simulation."""
    border = "=" * _BANNER_WIDTH
    header = f"\n  {border}\n               py-memsim\n   Contiguous memory allocation simulator\n  {border}\n\n"
    body = (
        f"  Memory:    {simulation.total_memory} KB\n"
        f"  Technique: {TECHNIQUE_LABELS[simulation.technique]}\n"
    )
    footer = "\nType 'help' for commands, 'exit' to quit.\n"
    return header + body + footer


def build_prompt(simulation: Simulation) -> str:
    """Return a prompt showing the technique and clock, e.g. ``first-fit t=3 $ ``."""
    return f"{simulation.technique} t={simulation.current_time} $ "


def _complete(text: str, state: int, names: list[str]) -> str | None:
    """Readline completer over command names."""
    matches = [n for n in names if n.startswith(text)]
    return matches[state] if state < len(matches) else None


def run() -> None:
    """Run the interactive simulator until ``exit``, Ctrl+D or Ctrl+C.

    This is the ``py-memsim`` console entry point.
    """
    shell = Shell()
    names = shell.command_names
    readline.set_completer(lambda text, state: _complete(text, state, names))
    readline.set_completer_delims(" \t")
    readline.parse_and_bind("tab: complete")

    print(format_banner(shell.simulation))  # noqa: T201

    try:
        while True:
            try:
                command = input(build_prompt(shell.simulation))
            except EOFError:
                # Ctrl+D
                print()  # noqa: T201
                break

            result = shell.execute(command)
            if result == Shell.EXIT_SENTINEL:
                break
            if result:
                print(result)  # noqa: T201

    except KeyboardInterrupt:
        print("\nInterrupted.")  # noqa: T201

    finally:
        shell.simulation.reset()
        print("Bye.")  # noqa: T201
