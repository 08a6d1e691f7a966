"""
saptune - Comprehensive system optimisation management for SAP solutions.

Applies, verifies and reverts kernel and device tuning recommended by SAP
and SUSE notes, individually or bundled as SAP solutions. Original values
are saved before the first change so every note can be reverted.

Usage:
    # As a command
    saptune solution apply HANA

    # Programmatically
    from saptune import TuningEngine, NoteCatalog, SolutionCatalog, StateStore

    engine = TuningEngine(notes, solutions, store, facts)
    engine.tune_note("1275776")
"""

__version__ = "1.0.0"

from .discovery.system import SystemFacts, SystemScanner
from .note.catalog import NoteCatalog
from .note.models import Note
from .protocol.errors import SaptuneError, TuningFailedError
from .protocol.result import NoteFieldComparison, TuningReport
from .solution.catalog import SolutionCatalog
from .tuning.engine import EngineConfig, TuningEngine
from .tuning.state import StateStore, TuningState

__all__ = [
    "__version__",
    "SystemFacts",
    "SystemScanner",
    "Note",
    "NoteCatalog",
    "SolutionCatalog",
    "SaptuneError",
    "TuningFailedError",
    "NoteFieldComparison",
    "TuningReport",
    "EngineConfig",
    "TuningEngine",
    "StateStore",
    "TuningState",
]
