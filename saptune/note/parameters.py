"""
Parameter primitives - the read/write capability behind every note setting.

A parameter knows its identity (``key``), how to compute the value a note
expects, and how to read and write the live value. Everything else in
saptune treats parameters through this interface only.

Kinds:
- SysctlParameter: /proc/sys entry (vm.swappiness -> /proc/sys/vm/swappiness)
- SysfsParameter: a single sysfs file, "[selected] other" values unwrapped
- MultiSysfsParameter: one setting spread over many files (per-CPU governor,
  per-device block queue settings), read as one value when all agree
"""

import copy
import glob
import logging
import re
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

from ..discovery.system import SystemFacts
from ..protocol.errors import ReadError, WriteError

logger = logging.getLogger(__name__)

ExpectedValue = Union[str, Callable[[SystemFacts], object]]

_SELECTED_RE = re.compile(r'\[([^\]]+)\]')


def normalize_value(value: str) -> str:
    """Collapse whitespace runs (sysctl tabs, trailing newlines)."""
    return " ".join(value.split())


def _reason(error: Exception) -> str:
    return getattr(error, "strerror", None) or str(error)


def _unwrap_selected(raw: str) -> str:
    """Return the bracketed choice of a sysfs selector, e.g. "[never]"."""
    match = _SELECTED_RE.search(raw)
    if match:
        return match.group(1)
    return normalize_value(raw)


class Parameter(ABC):
    """
    A tunable system parameter.

    Args:
        name: Display name, unique within its kind
        expected: Literal value or a function of SystemFacts
    """

    KIND = "parameter"

    def __init__(self, name: str, expected: ExpectedValue):
        self.name = name
        self._expected = expected

    @property
    def key(self) -> str:
        """Identity shared by every note that touches this parameter."""
        return f"{self.KIND}:{self.name}"

    def expected_value(self, facts: SystemFacts) -> str:
        """Value the note asks for. Computed values may raise ReadError."""
        if callable(self._expected):
            return str(self._expected(facts))
        return str(self._expected)

    def with_expected(self, expected: ExpectedValue) -> "Parameter":
        """Copy of this parameter with a different expected value."""
        clone = copy.copy(self)
        clone._expected = expected
        return clone

    @abstractmethod
    def read(self) -> str:
        """Return the live value. Raises ReadError."""

    @abstractmethod
    def write(self, value: str) -> None:
        """Set the live value. Raises WriteError."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"


class SysctlParameter(Parameter):
    """Kernel parameter under /proc/sys."""

    KIND = "sysctl"

    def __init__(self, name: str, expected: ExpectedValue, root: str = "/proc/sys"):
        super().__init__(name, expected)
        self.root = Path(root)

    @property
    def path(self) -> Path:
        return self.root / self.name.replace(".", "/")

    def read(self) -> str:
        try:
            return normalize_value(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            raise ReadError(f"sysctl {self.name}: {_reason(e)}") from e

    def write(self, value: str) -> None:
        try:
            self.path.write_text(value + "\n")
        except OSError as e:
            raise WriteError(f"sysctl {self.name}={value}: {_reason(e)}") from e


class SysfsParameter(Parameter):
    """A single sysfs (or other pseudo-file) setting."""

    KIND = "sysfs"

    def __init__(self, name: str, path: str, expected: ExpectedValue):
        super().__init__(name, expected)
        self.path = Path(path)

    def read(self) -> str:
        try:
            return _unwrap_selected(self.path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as e:
            raise ReadError(f"{self.path}: {_reason(e)}") from e

    def write(self, value: str) -> None:
        try:
            self.path.write_text(value)
        except OSError as e:
            raise WriteError(f"{self.path}={value}: {_reason(e)}") from e


class MultiSysfsParameter(Parameter):
    """
    One logical setting stored in many files matched by a glob.

    Each file is labelled by a path component (``cpu0``, ``sda``). When all
    files agree the value reads as that single value, otherwise as
    ``label=value`` pairs, which ``write`` accepts as well so that saved
    originals restore per file.
    """

    KIND = "sysfs"

    def __init__(
        self,
        name: str,
        pattern: str,
        expected: ExpectedValue,
        label_index: int = -3,
        exclude: Optional[str] = None,
    ):
        super().__init__(name, expected)
        self.pattern = pattern
        self.label_index = label_index
        self._exclude = re.compile(exclude) if exclude else None

    def _targets(self) -> List[Tuple[str, Path]]:
        targets = []
        for match in sorted(glob.glob(self.pattern)):
            path = Path(match)
            label = path.parts[self.label_index]
            if self._exclude and self._exclude.match(label):
                continue
            targets.append((label, path))
        return targets

    def read(self) -> str:
        targets = self._targets()
        if not targets:
            raise ReadError(f"{self.name}: no files match {self.pattern}")

        values: Dict[str, str] = {}
        for label, path in targets:
            try:
                values[label] = _unwrap_selected(path.read_text(encoding="utf-8"))
            except (OSError, UnicodeDecodeError) as e:
                raise ReadError(f"{path}: {_reason(e)}") from e

        distinct = set(values.values())
        if len(distinct) == 1:
            return distinct.pop()
        return " ".join(f"{label}={value}" for label, value in values.items())

    def write(self, value: str) -> None:
        targets = self._targets()
        if not targets:
            raise WriteError(f"{self.name}: no files match {self.pattern}")

        per_label = self._parse_per_label(value)
        for label, path in targets:
            if per_label:
                if label not in per_label:
                    # Appeared after the value was saved, leave it alone
                    continue
                target_value = per_label[label]
            else:
                target_value = value
            try:
                path.write_text(target_value)
            except OSError as e:
                raise WriteError(f"{path}={target_value}: {_reason(e)}") from e

    @staticmethod
    def _parse_per_label(value: str) -> Dict[str, str]:
        tokens = value.split()
        if not tokens or not all("=" in t for t in tokens):
            return {}
        return dict(t.split("=", 1) for t in tokens)


def read_with_timeout(parameter: Parameter, timeout: Optional[float]) -> str:
    """
    Read a parameter, giving up after ``timeout`` seconds.

    The read runs in a daemon thread so a stuck pseudo-file cannot hang the
    whole reconciliation. A timeout is reported as ReadError.
    """
    if timeout is None:
        return parameter.read()

    outcome: Dict[str, object] = {}

    def target():
        try:
            outcome["value"] = parameter.read()
        except BaseException as e:  # handed back to the caller below
            outcome["error"] = e

    worker = threading.Thread(target=target, name=f"read {parameter.key}", daemon=True)
    worker.start()
    worker.join(timeout)

    if worker.is_alive():
        logger.warning("Reading %s timed out after %ss", parameter.name, timeout)
        raise ReadError(f"{parameter.name}: read timed out after {timeout}s")
    if "error" in outcome:
        raise outcome["error"]
    return outcome["value"]
