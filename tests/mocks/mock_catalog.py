"""
Small note and solution catalogs over a FakeSystem.

    N1: a=1 b=2
    N2: b=3 c=4        (shares b with N1)
    N3: d=5
    SOL  = [N1, N2]
    SOL2 = [N2, N3]
    PPCONLY (ppc64le only) = [N3]
"""

from saptune.note.catalog import NoteCatalog
from saptune.note.models import Note
from saptune.solution.catalog import SolutionCatalog

from .mock_system import FakeSystem

PLATFORM = "x86_64"

INITIAL_VALUES = {"a": "0", "b": "0", "c": "0", "d": "0"}


def make_note_catalog(system: FakeSystem) -> NoteCatalog:
    notes = [
        Note("N1", "First note", (system.parameter("a", "1"), system.parameter("b", "2"))),
        Note("N2", "Second note", (system.parameter("b", "3"), system.parameter("c", "4"))),
        Note("N3", "Third note", (system.parameter("d", "5"),)),
    ]
    return NoteCatalog({note.id: note for note in notes})


def make_solution_catalog(platform_key: str = PLATFORM) -> SolutionCatalog:
    return SolutionCatalog(
        {
            "x86_64": {"SOL": ("N1", "N2"), "SOL2": ("N2", "N3")},
            "ppc64le": {"PPCONLY": ("N3",)},
        },
        platform_key,
    )
