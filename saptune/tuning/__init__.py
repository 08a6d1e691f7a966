"""
Tuning module - Applies, reverts and verifies tuning state.

Components:
- TuningEngine: Reconciles notes/solutions with the live system
- ParameterComparator: Expected vs. actual values per parameter
- StateStore / TuningState: Persisted enabled lists and saved originals
- StateLock: Advisory lock on the state file
- ServiceController: Manages tuned/sapconf services
"""

from .engine import TuningEngine, EngineConfig
from .comparator import ParameterComparator
from .state import StateStore, TuningState, SavedParameter
from .lock import StateLock
from .service import ServiceController, ServiceConfig

__all__ = [
    "TuningEngine",
    "EngineConfig",
    "ParameterComparator",
    "StateStore",
    "TuningState",
    "SavedParameter",
    "StateLock",
    "ServiceController",
    "ServiceConfig",
]
