"""
Shared data shapes for saptune.

- Errors raised by the engine, catalogs and parameter primitives
- Result objects returned to callers (comparisons, tuning reports)
"""

from .errors import (
    SaptuneError,
    NotFoundError,
    UnsupportedPlatformError,
    NotActiveError,
    ReadError,
    WriteError,
    StateCorruptError,
    LockTimeoutError,
    ServiceError,
    TuningFailedError,
)
from .result import (
    NoteFieldComparison,
    ParameterFailure,
    RestoreChange,
    TuningReport,
    conforms,
)

__all__ = [
    # Errors
    "SaptuneError",
    "NotFoundError",
    "UnsupportedPlatformError",
    "NotActiveError",
    "ReadError",
    "WriteError",
    "StateCorruptError",
    "LockTimeoutError",
    "ServiceError",
    "TuningFailedError",
    # Results
    "NoteFieldComparison",
    "ParameterFailure",
    "RestoreChange",
    "TuningReport",
    "conforms",
]
