"""
ConsoleUI - Rich-based console output for the saptune CLI.
"""

from typing import Dict, Iterable, List, Optional

from rich.console import Console
from rich.table import Table
from rich.text import Text

from ..note.catalog import NoteCatalog
from ..protocol.result import NoteFieldComparison, TuningReport

DAEMON_REMINDER = (
    "\nRemember: if you wish to automatically activate the solution's tuning options after a reboot, "
    "you must instruct saptune to configure \"tuned\" daemon by running:"
    "\n    saptune daemon start"
)


class ConsoleUI:
    """
    Rich console interface for saptune.

    Args:
        console: Output for regular messages (stdout)
        err_console: Output for errors and warnings (stderr)
    """

    def __init__(self, console: Optional[Console] = None, err_console: Optional[Console] = None):
        self.console = console or Console(highlight=False)
        self.err_console = err_console or Console(stderr=True, highlight=False)

    def print(self, message: str = "", style: Optional[str] = None):
        """Print plain text; note names and values are never treated as markup."""
        self.console.print(Text(message, style=style or ""))

    def error(self, message: str):
        self.err_console.print(Text(message, style="bold red"))

    def warn(self, message: str):
        self.err_console.print(Text(message, style="yellow"))

    def print_note_fields(
        self,
        note_id: str,
        note_name: str,
        comparisons: Dict[str, NoteFieldComparison],
        print_comparison: bool = True,
    ):
        """
        Print the fields of a note that deviate from its expectation.

        Args:
            print_comparison: Show expected and actual values (verify), or
                only the value that would be set (simulate)
        """
        self.print(f"{note_id} - {note_name} -", style="bold")
        differing = [(name, c) for name, c in sorted(comparisons.items()) if not c.match]
        if not differing:
            self.print("\t(no change)", style="dim")
            return

        table = Table(show_header=True, box=None)
        table.add_column("Parameter", style="dim")
        if print_comparison:
            table.add_column("Expected")
            table.add_column("Actual", style="red")
        else:
            table.add_column("Value")

        for name, comparison in differing:
            if print_comparison:
                actual = comparison.actual
                if actual is None:
                    actual = f"(unreadable: {comparison.error})"
                table.add_row(Text(name), Text(comparison.expected), Text(actual))
            else:
                table.add_row(Text(name), Text(comparison.expected))

        self.console.print(table)

    def print_unsatisfied(
        self,
        notes: NoteCatalog,
        unsatisfied: Iterable[str],
        comparisons: Dict[str, Dict[str, NoteFieldComparison]],
    ):
        for note_id in unsatisfied:
            self.print_note_fields(note_id, notes.get(note_id).name, comparisons[note_id], True)

    def print_note_list(
        self,
        notes: NoteCatalog,
        solution_note_ids: List[str],
        manual_note_ids: List[str],
    ):
        self.print("All notes (+ denotes manually enabled notes, * denotes notes enabled by solutions):")
        for note_id, note in notes.items():
            if note.internal:
                continue
            marker = ""
            if note_id in solution_note_ids:
                marker = "*"
            elif note_id in manual_note_ids:
                marker = "+"
            self.print(f"{marker}\t{note_id}\t{note.name}", style="green" if marker else None)

    def print_solution_list(self, names: List[str], enabled: List[str]):
        self.print("All solutions (* denotes enabled solution):")
        for name in names:
            marker = "*" if name in enabled else ""
            self.print(f"{marker}\t{name}", style="green" if marker else None)

    def print_removed_notes(self, notes: NoteCatalog, removed: List[str]):
        if not removed:
            return
        self.print("The following previously-enabled notes are now tuned by the SAP solution:")
        for note_id in removed:
            self.print(f"\t{note_id}\t{notes.get(note_id).name}")

    def print_failures(self, report: TuningReport):
        """List every parameter that could not be processed."""
        for failure in report.failures:
            target = f"{failure.note_id} {failure.parameter}".strip()
            self.err_console.print(Text(f"\t{target} ({failure.operation}): {failure.message}", style="red"))

    def print_restore_preview(self, report: TuningReport):
        if not report.changes:
            self.print("No saved values differ from the running system.")
            return
        self.print("The following parameters would be restored:")
        for change in report.changes:
            current = change.current if change.current is not None else "(unreadable)"
            self.print(f"\t{change.parameter}: {current} -> {change.original}")

    def print_daemon_reminder(self):
        self.print(DAEMON_REMINDER)
