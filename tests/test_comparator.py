"""Tests for ParameterComparator."""

import pytest

from saptune.discovery.system import SystemFacts
from saptune.note.models import Note
from saptune.tuning.comparator import ParameterComparator


@pytest.mark.parametrize("actual,expected", [
    ("1", "1"),
    ("1250\t256000  100 8192", "1250 256000 100 8192"),
    ("Performance", "performance"),
    ("010", "10"),
    ("never\n", "never"),
])
def test_matches(actual, expected):
    assert ParameterComparator.matches(actual, expected)


@pytest.mark.parametrize("actual,expected", [
    (None, "1"),
    ("1 2", "1 2 3"),
    ("powersave", "performance"),
    ("cpu0=powersave cpu1=performance", "performance"),
])
def test_does_not_match(actual, expected):
    assert not ParameterComparator.matches(actual, expected)


def test_compare_uses_computed_values(system):
    facts = SystemFacts(memory_kb=2048)
    system.values["mem"] = "2"
    note = Note("M", "Memory", (system.parameter("mem", lambda f: f.memory_mb),))

    comparisons = ParameterComparator().compare(note, facts)

    assert comparisons["mem"].expected == "2"
    assert comparisons["mem"].match


def test_compare_continues_after_unreadable(system, facts):
    system.unreadable.add("a")
    note = Note("N", "Two", (system.parameter("a", "1"), system.parameter("b", "0")))

    comparisons = ParameterComparator().compare(note, facts)

    assert comparisons["a"].actual is None
    assert not comparisons["a"].match
    assert comparisons["b"].match
