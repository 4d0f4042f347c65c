"""Tests for the REPL (Read-Eval-Print Loop).

The REPL is the interactive terminal wrapper around the shell.  The
pure helpers are tested directly; the loop itself is driven with a
patched ``input``.
"""

from unittest.mock import patch

import pytest

from py_memsim.memory.placement import Technique
from py_memsim.repl import _complete, build_prompt, format_banner, run
from py_memsim.simulation import Simulation

TOTAL = 2048


class TestHelpers:
    """Verify the pure formatting helpers."""

    def test_banner_shows_memory_and_technique(self) -> None:
        """The banner names the program, memory size and technique."""
        banner = format_banner(Simulation(total_memory=TOTAL, technique=Technique.NEXT_FIT))
        assert "py-memsim" in banner
        assert "2048 KB" in banner
        assert "Next Fit" in banner

    def test_prompt_shows_technique_and_clock(self) -> None:
        """The prompt tracks the technique and the clock."""
        sim = Simulation()
        assert build_prompt(sim) == "first-fit t=0 $ "
        sim.tick()
        sim.set_technique(Technique.BEST_FIT)
        assert build_prompt(sim) == "best-fit t=1 $ "

    def test_completer(self) -> None:
        """The completer cycles through matching command names."""
        names = ["help", "holes", "tick"]
        assert _complete("h", 0, names) == "help"
        assert _complete("h", 1, names) == "holes"
        assert _complete("h", 2, names) is None


class TestRun:
    """Verify the interactive loop."""

    def test_runs_commands_until_exit(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Commands are echoed until exit, then the session says goodbye."""
        with patch("builtins.input", side_effect=["add A 100 5", "", "exit"]):
            run()
        output = capsys.readouterr().out
        assert "Process 1 A running at 0" in output
        assert output.rstrip().endswith("Bye.")

    def test_eof_ends_session(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Ctrl+D ends the loop cleanly."""
        with patch("builtins.input", side_effect=EOFError):
            run()
        assert "Bye." in capsys.readouterr().out

    def test_interrupt_ends_session(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Ctrl+C ends the loop with a notice."""
        with patch("builtins.input", side_effect=KeyboardInterrupt):
            run()
        output = capsys.readouterr().out
        assert "Interrupted." in output
        assert "Bye." in output
