"""
Error types raised by saptune.

NotFoundError / UnsupportedPlatformError / NotActiveError: single-target
requests that cannot be carried out (nothing is changed).
ReadError / WriteError: per-parameter I/O failures, collected into reports.
StateCorruptError / LockTimeoutError: persisted tuning state problems.
TuningFailedError: an apply/revert that partially failed (carries the report).
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .result import TuningReport


class SaptuneError(Exception):
    """Base class for all saptune errors."""
    pass


class NotFoundError(SaptuneError):
    """Unknown note or solution identifier."""
    pass


class UnsupportedPlatformError(SaptuneError):
    """The solution (or solution catalog) has no definition for this platform."""

    def __init__(self, message: str, platform_key: str = ""):
        super().__init__(message)
        self.platform_key = platform_key


class NotActiveError(SaptuneError):
    """Revert requested for a note or solution that is not active."""
    pass


class ReadError(SaptuneError):
    """A system parameter value could not be read."""
    pass


class WriteError(SaptuneError):
    """A system parameter value could not be written."""
    pass


class StateCorruptError(SaptuneError):
    """The persisted tuning state is unreadable or invalid."""
    pass


class LockTimeoutError(SaptuneError):
    """The tuning state lock could not be acquired in time."""
    pass


class ServiceError(SaptuneError):
    """A service control command failed."""
    pass


class TuningFailedError(SaptuneError):
    """Some parameters could not be applied or reverted.

    Parameters that were changed successfully keep their new values; the
    attached report lists every failure.
    """

    def __init__(self, report: "TuningReport", message: str = ""):
        self.report = report
        if not message:
            failed = ", ".join(sorted({f.note_id for f in report.failures}))
            message = f"{len(report.failures)} parameter operation(s) failed (notes: {failed})"
        super().__init__(message)
