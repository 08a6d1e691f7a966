"""
NoteCatalog - Read-only lookup of notes by ID.

Built-in notes are extended (or replaced, by ID) with tuning sheets found
in the extra directory. A sheet is an INI file named ``<ID>.conf``::

    [meta]
    name = My vendor tuning

    [sysctl]
    vm.swappiness = 10

    [sysfs]
    /sys/kernel/mm/transparent_hugepage/defrag = never

    [cpu]
    governor = performance

    [block]
    scheduler = mq-deadline

Customisation: ``<sysconfig_dir>/saptune-note-<ID>`` holds shell style
``KEY=VALUE`` lines overriding expected values of that note.
"""

import configparser
import logging
import re
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from ..protocol.errors import NotFoundError
from .builtin import builtin_notes, block_parameter, governor_parameter
from .models import Note
from .parameters import Parameter, SysctlParameter, SysfsParameter

logger = logging.getLogger(__name__)

SHEET_SUFFIX = ".conf"
SYSCONFIG_PREFIX = "saptune-note-"


def _customisation_key(name: str) -> str:
    """vm.swappiness -> VM_SWAPPINESS"""
    return re.sub(r'[^A-Za-z0-9]', '_', name).upper()


def customisation_path(sysconfig_dir: str, note_id: str) -> Path:
    return Path(sysconfig_dir) / f"{SYSCONFIG_PREFIX}{note_id}"


def parse_tuning_sheet(path: Path, sysctl_root: str = "/proc/sys") -> Note:
    """
    Parse an extra tuning sheet into a Note.

    Raises:
        configparser.Error: Malformed INI content
        OSError: Unreadable file
        UnicodeDecodeError: File is not UTF-8
    """
    parser = configparser.ConfigParser(interpolation=None, delimiters=("=",))
    parser.optionxform = str  # Keep case of sysctl names and paths
    with open(path, encoding="utf-8") as f:
        parser.read_file(f)

    note_id = path.stem
    name = note_id
    parameters: List[Parameter] = []

    for section in parser.sections():
        options = parser[section]
        if section == "meta":
            name = options.get("name", name)
        elif section == "sysctl":
            for key, value in options.items():
                parameters.append(SysctlParameter(key, value, root=sysctl_root))
        elif section == "sysfs":
            for key, value in options.items():
                parameters.append(SysfsParameter(key, key, value))
        elif section == "cpu":
            for key, value in options.items():
                if key != "governor":
                    logger.warning("%s: unsupported cpu setting '%s' ignored", path, key)
                    continue
                parameters.append(governor_parameter(value))
        elif section == "block":
            for key, value in options.items():
                parameters.append(block_parameter(key, value))
        else:
            logger.warning("%s: unknown section [%s] ignored", path, section)

    return Note(id=note_id, name=name, parameters=tuple(parameters))


def parse_customisation(path: Path) -> Dict[str, str]:
    """Read KEY=VALUE lines, skipping comments and blank lines."""
    values = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith('#') or '=' not in line:
            continue
        key, value = line.split('=', 1)
        values[key.strip().upper()] = value.strip().strip('"\'')
    return values


class NoteCatalog:
    """Read-only mapping of note ID to Note."""

    def __init__(self, notes: Dict[str, Note]):
        self._notes = dict(notes)

    @classmethod
    def load(
        cls,
        extra_dir: Optional[str] = None,
        sysconfig_dir: Optional[str] = None,
        builtin: Optional[Dict[str, Note]] = None,
    ) -> "NoteCatalog":
        """
        Build the catalog from built-in notes and the extra directory.

        Args:
            extra_dir: Directory of ``<ID>.conf`` tuning sheets
            sysconfig_dir: Directory of ``saptune-note-<ID>`` customisations
            builtin: Base notes (defaults to the built-in catalog)
        """
        notes = dict(builtin if builtin is not None else builtin_notes())

        if extra_dir and Path(extra_dir).is_dir():
            for path in sorted(Path(extra_dir).glob(f"*{SHEET_SUFFIX}")):
                try:
                    note = parse_tuning_sheet(path)
                except (configparser.Error, OSError, UnicodeDecodeError) as e:
                    logger.error("Skipping tuning sheet %s: %s", path, e)
                    continue
                if note.id in notes:
                    logger.info("Tuning sheet %s replaces note %s", path, note.id)
                notes[note.id] = note

        if sysconfig_dir:
            for note_id, note in list(notes.items()):
                notes[note_id] = cls._customise(note, customisation_path(sysconfig_dir, note_id))

        return cls(notes)

    @staticmethod
    def _customise(note: Note, path: Path) -> Note:
        if not path.is_file():
            return note
        try:
            values = parse_customisation(path)
        except (OSError, UnicodeDecodeError) as e:
            logger.error("Cannot read customisation %s: %s", path, e)
            return note

        overrides = {}
        for parameter in note.parameters:
            key = _customisation_key(parameter.name)
            if key in values:
                overrides[parameter.name] = values[key]
        if overrides:
            logger.debug("Note %s customised: %s", note.id, overrides)
        return note.with_overrides(overrides)

    def get(self, note_id: str) -> Note:
        """Look up a note. Raises NotFoundError."""
        try:
            return self._notes[note_id]
        except KeyError:
            raise NotFoundError(
                f'the Note ID "{note_id}" is not recognised by saptune.\n'
                f'Run "saptune note list" for a complete list of supported notes.'
            ) from None

    def sorted_ids(self) -> List[str]:
        return sorted(self._notes)

    def items(self) -> List[Tuple[str, Note]]:
        return [(note_id, self._notes[note_id]) for note_id in self.sorted_ids()]

    def __contains__(self, note_id: object) -> bool:
        return note_id in self._notes

    def __iter__(self) -> Iterator[str]:
        return iter(self.sorted_ids())

    def __len__(self) -> int:
        return len(self._notes)
