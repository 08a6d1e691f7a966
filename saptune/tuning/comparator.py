"""
ParameterComparator - Compares a note's expected values with the live system.

Read-only. A parameter that cannot be read is reported as non-matching with
the read error attached; the comparison of the remaining parameters goes on.
"""

import logging
from typing import Dict, Optional

from ..discovery.system import SystemFacts
from ..note.models import Note
from ..note.parameters import normalize_value, read_with_timeout
from ..protocol.errors import ReadError
from ..protocol.result import NoteFieldComparison

logger = logging.getLogger(__name__)

# Shown when a computed expectation cannot be derived from SystemFacts
UNKNOWN_EXPECTED = "(unknown)"


class ParameterComparator:
    """
    Produces per-field comparisons for notes.

    Args:
        read_timeout: Seconds to wait for a single parameter read
    """

    def __init__(self, read_timeout: Optional[float] = 5.0):
        self.read_timeout = read_timeout

    def compare(self, note: Note, facts: SystemFacts) -> Dict[str, NoteFieldComparison]:
        """Compare every parameter of the note, keyed by parameter name."""
        comparisons = {}

        for parameter in note.parameters:
            expected = UNKNOWN_EXPECTED
            try:
                expected = parameter.expected_value(facts)
                actual = read_with_timeout(parameter, self.read_timeout)
            except ReadError as e:
                logger.debug("Note %s: cannot read %s: %s", note.id, parameter.name, e)
                comparisons[parameter.name] = NoteFieldComparison(
                    expected=expected,
                    actual=None,
                    match=False,
                    error=str(e),
                )
                continue

            comparisons[parameter.name] = NoteFieldComparison(
                expected=expected,
                actual=actual,
                match=self.matches(actual, expected),
            )

        return comparisons

    @staticmethod
    def matches(actual: Optional[str], expected: str) -> bool:
        """
        Compare actual value against expected value.

        - Whitespace runs are insignificant ("1 2\\t3" == "1 2 3")
        - Case-insensitive ("Performance" == "performance")
        - Integers compare numerically ("010" == "10")
        """
        if actual is None:
            return False

        actual = normalize_value(actual)
        expected = normalize_value(expected)

        if actual.lower() == expected.lower():
            return True

        actual_fields = actual.split(" ")
        expected_fields = expected.split(" ")
        if len(actual_fields) != len(expected_fields):
            return False

        try:
            return all(int(a) == int(e) for a, e in zip(actual_fields, expected_fields))
        except ValueError:
            return False
