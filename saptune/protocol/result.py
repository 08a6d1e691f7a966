"""
Result objects - Engine → caller.

Comparisons from verify/simulate and reports from apply/revert. None of
these are persisted.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass
class NoteFieldComparison:
    """Expected vs. observed value of a single parameter."""
    expected: str
    actual: Optional[str]            # None when the value could not be read
    match: bool
    error: Optional[str] = None      # Read diagnostic


@dataclass
class ParameterFailure:
    """A parameter (or note) that could not be processed."""
    note_id: str
    parameter: str
    operation: str                   # read, write, restore, resolve
    message: str


@dataclass
class RestoreChange:
    """A saved original that revert would write back."""
    key: str
    parameter: str
    current: Optional[str]
    original: str


@dataclass
class TuningReport:
    """Outcome of an apply or revert operation."""
    notes: List[str] = field(default_factory=list)
    removed_additional_notes: List[str] = field(default_factory=list)
    failures: List[ParameterFailure] = field(default_factory=list)
    changes: List[RestoreChange] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return not self.failures

    def add_failure(self, note_id: str, parameter: str, operation: str, error: Exception):
        self.failures.append(ParameterFailure(
            note_id=note_id,
            parameter=parameter,
            operation=operation,
            message=str(error),
        ))

    def failed_notes(self) -> List[str]:
        """Note IDs with at least one failure, in first-failure order."""
        seen: List[str] = []
        for failure in self.failures:
            if failure.note_id not in seen:
                seen.append(failure.note_id)
        return seen


def conforms(comparisons: Dict[str, NoteFieldComparison]) -> bool:
    """True when every field matches its expectation."""
    return all(c.match for c in comparisons.values())
