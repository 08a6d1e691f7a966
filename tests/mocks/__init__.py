"""
Mock components for testing saptune.

An in-memory system whose parameters can be made unreadable, unwritable
or hanging, plus small note and solution catalogs built on it, so the
engine runs without touching /proc or /sys.
"""

from .mock_system import FakeParameter, FakeSystem
from .mock_catalog import (
    INITIAL_VALUES,
    PLATFORM,
    make_note_catalog,
    make_solution_catalog,
)
from .mock_service import MockServiceController

__all__ = [
    'FakeParameter',
    'FakeSystem',
    'INITIAL_VALUES',
    'PLATFORM',
    'make_note_catalog',
    'make_solution_catalog',
    'MockServiceController',
]
