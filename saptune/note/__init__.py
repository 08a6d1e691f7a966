"""
Note module - Tunable parameters and the notes that bundle them.

Components:
- Parameter kinds: sysctl, single sysfs file, multi-file sysfs setting
- Note: immutable bundle of parameters
- NoteCatalog: built-in notes plus extra tuning sheets
"""

from .parameters import (
    Parameter,
    SysctlParameter,
    SysfsParameter,
    MultiSysfsParameter,
    normalize_value,
    read_with_timeout,
)
from .models import Note
from .catalog import NoteCatalog, parse_tuning_sheet, customisation_path
from .builtin import builtin_notes

__all__ = [
    "Parameter",
    "SysctlParameter",
    "SysfsParameter",
    "MultiSysfsParameter",
    "normalize_value",
    "read_with_timeout",
    "Note",
    "NoteCatalog",
    "parse_tuning_sheet",
    "customisation_path",
    "builtin_notes",
]
