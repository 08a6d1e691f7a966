"""
Tuning state - what is active and which original values to restore.

The state records the notes applied individually, the solutions applied,
and for every parameter currently overridden the value it had before the
first override together with the notes owning it. A parameter is restored
only when its last owner lets go.

On disk (JSON)::

    {
      "version": 1,
      "active_notes": ["2205917"],
      "active_solutions": ["HANA"],
      "parameters": {
        "sysctl:vm.swappiness": {"original": "60", "owners": ["1680803"]}
      }
    }
"""

import json
import logging
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from ..protocol.errors import StateCorruptError
from .lock import StateLock

logger = logging.getLogger(__name__)

STATE_VERSION = 1


@dataclass
class SavedParameter:
    """Original value of an overridden parameter and the notes holding it."""
    key: str
    original: str
    owners: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"original": self.original, "owners": list(self.owners)}


@dataclass
class TuningState:
    """Active notes/solutions and reference-counted saved originals."""
    active_notes: List[str] = field(default_factory=list)
    active_solutions: List[str] = field(default_factory=list)
    parameters: Dict[str, SavedParameter] = field(default_factory=dict)

    # =========================================================================
    # Ownership
    # =========================================================================

    def acquire(self, key: str, owner: str, current: str) -> bool:
        """
        Register ``owner`` on parameter ``key``.

        The original value is saved only when nobody owns the parameter yet.

        Returns:
            True if a new saved record was created
        """
        record = self.parameters.get(key)
        if record is None:
            self.parameters[key] = SavedParameter(key=key, original=current, owners=[owner])
            return True
        if owner not in record.owners:
            record.owners.append(owner)
        return False

    def release(self, key: str, owner: str) -> Optional[SavedParameter]:
        """
        Drop ``owner`` from parameter ``key``.

        Returns:
            The removed record when the last owner let go (restore it),
            otherwise None
        """
        record = self.parameters.get(key)
        if record is None or owner not in record.owners:
            return None
        record.owners.remove(owner)
        if record.owners:
            return None
        del self.parameters[key]
        return record

    def restore_record(self, record: SavedParameter) -> None:
        """Put back a record whose restore failed so it can be retried."""
        self.parameters[record.key] = record

    def owned_keys(self, owner: str) -> List[str]:
        return [key for key, record in self.parameters.items() if owner in record.owners]

    def owns_any(self, owner: str) -> bool:
        return any(owner in record.owners for record in self.parameters.values())

    # =========================================================================
    # Active lists (insertion ordered)
    # =========================================================================

    def add_note(self, note_id: str) -> None:
        if note_id not in self.active_notes:
            self.active_notes.append(note_id)

    def remove_note(self, note_id: str) -> bool:
        if note_id in self.active_notes:
            self.active_notes.remove(note_id)
            return True
        return False

    def add_solution(self, name: str) -> None:
        if name not in self.active_solutions:
            self.active_solutions.append(name)

    def remove_solution(self, name: str) -> bool:
        if name in self.active_solutions:
            self.active_solutions.remove(name)
            return True
        return False

    @property
    def is_empty(self) -> bool:
        return not (self.active_notes or self.active_solutions or self.parameters)

    # =========================================================================
    # Serialization
    # =========================================================================

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "version": STATE_VERSION,
            "active_notes": list(self.active_notes),
            "active_solutions": list(self.active_solutions),
            "parameters": {key: record.to_dict() for key, record in self.parameters.items()},
        }

    @classmethod
    def from_dict(cls, data: Any) -> "TuningState":
        """
        Create from dictionary (JSON deserialization).

        Raises:
            StateCorruptError: Wrong version or malformed content
        """
        if not isinstance(data, dict):
            raise StateCorruptError("state is not a JSON object")
        if data.get("version") != STATE_VERSION:
            raise StateCorruptError(f"unsupported state version {data.get('version')!r}")

        active_notes = data.get("active_notes", [])
        active_solutions = data.get("active_solutions", [])
        raw_parameters = data.get("parameters", {})

        if not _is_str_list(active_notes) or not _is_str_list(active_solutions):
            raise StateCorruptError("active_notes and active_solutions must be lists of strings")
        if not isinstance(raw_parameters, dict):
            raise StateCorruptError("parameters must be an object")

        parameters = {}
        for key, raw in raw_parameters.items():
            if (
                not isinstance(raw, dict)
                or not isinstance(raw.get("original"), str)
                or not _is_str_list(raw.get("owners"))
                or not raw["owners"]
            ):
                raise StateCorruptError(f"invalid saved parameter {key!r}")
            parameters[key] = SavedParameter(key=key, original=raw["original"], owners=list(raw["owners"]))

        return cls(
            active_notes=list(active_notes),
            active_solutions=list(active_solutions),
            parameters=parameters,
        )


def _is_str_list(value: Any) -> bool:
    return isinstance(value, list) and all(isinstance(item, str) for item in value)


class StateStore:
    """
    Loads and atomically saves the tuning state file.

    Every operation runs inside ``transaction()`` (exclusive lock, state
    saved on exit) or ``snapshot()`` (shared lock, read only).
    """

    def __init__(self, path: Path, lock_timeout: float = 10.0, poll_interval: float = 0.1):
        self.path = Path(path)
        self.lock_path = self.path.with_name(self.path.name + ".lock")
        self.lock_timeout = lock_timeout
        self.poll_interval = poll_interval

    def _lock(self, exclusive: bool) -> StateLock:
        return StateLock(
            self.lock_path,
            exclusive=exclusive,
            timeout=self.lock_timeout,
            poll_interval=self.poll_interval,
        )

    def load(self) -> TuningState:
        """
        Load state from disk. A missing file is an empty state.

        Raises:
            StateCorruptError: Unreadable or invalid file
        """
        try:
            with open(self.path) as f:
                data = json.load(f)
        except FileNotFoundError:
            return TuningState()
        except (OSError, ValueError) as e:
            raise StateCorruptError(
                f"Cannot read tuning state {self.path}: {e}. "
                f"Inspect or remove the file before tuning again."
            ) from e

        try:
            return TuningState.from_dict(data)
        except StateCorruptError as e:
            raise StateCorruptError(
                f"Tuning state {self.path} is invalid: {e}. "
                f"Inspect or remove the file before tuning again."
            ) from e

    def save(self, state: TuningState) -> None:
        """Write to a temp file in the same directory, then rename over."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(prefix=f".{self.path.name}.", dir=str(self.path.parent))
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(state.to_dict(), f, indent=2)
                f.write("\n")
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, self.path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise
        logger.debug("Saved tuning state to %s", self.path)

    @contextmanager
    def transaction(self) -> Iterator[TuningState]:
        """
        Exclusive lock, load, yield, save.

        The state is saved even when the body raises, so that parameters
        changed before the failure stay recorded.
        """
        with self._lock(exclusive=True):
            state = self.load()
            try:
                yield state
            finally:
                self.save(state)

    @contextmanager
    def snapshot(self) -> Iterator[TuningState]:
        """Shared lock, load, yield. Nothing is written."""
        with self._lock(exclusive=False):
            yield self.load()
