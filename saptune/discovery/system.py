"""
SystemScanner - Collects hardware facts used to select solutions and to
compute memory-dependent expected values.

Reads /proc directly; the root can be redirected for tests.
"""

import logging
import os
import platform
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# Suffix appended to the architecture when the page cache limit is tunable
PAGECACHE_SUFFIX = "_PC"


@dataclass(frozen=True)
class SystemFacts:
    """Hardware and kernel facts at scan time."""
    architecture: str = "x86_64"
    memory_kb: int = 0
    page_size: int = 4096
    pagecache_available: bool = False

    @property
    def memory_bytes(self) -> int:
        return self.memory_kb * 1024

    @property
    def memory_mb(self) -> int:
        return self.memory_kb // 1024

    @property
    def platform_key(self) -> str:
        """Solution selector: architecture plus optional page cache suffix."""
        if self.pagecache_available:
            return self.architecture + PAGECACHE_SUFFIX
        return self.architecture


@dataclass
class SystemScannerConfig:
    """Configuration for system scanning."""
    proc_root: str = "/proc"
    architecture: Optional[str] = None  # Override detected architecture


class SystemScanner:
    """
    Scans the local machine for SystemFacts.
    """

    def __init__(self, config: Optional[SystemScannerConfig] = None):
        self.config = config or SystemScannerConfig()
        self.proc_root = Path(self.config.proc_root)

    def scan(self) -> SystemFacts:
        """Perform full system scan."""
        facts = SystemFacts(
            architecture=self._get_architecture(),
            memory_kb=self._get_memory_kb(),
            page_size=self._get_page_size(),
            pagecache_available=self.is_pagecache_available(),
        )
        logger.debug("Scanned system facts: %s", facts)
        return facts

    def is_pagecache_available(self) -> bool:
        """Check whether the kernel offers the page cache limit sysctl."""
        return (self.proc_root / "sys" / "vm" / "pagecache_limit_mb").exists()

    def _get_architecture(self) -> str:
        if self.config.architecture:
            return self.config.architecture
        machine = platform.machine()
        # Normalise the names some platforms report
        return {"amd64": "x86_64", "AMD64": "x86_64", "arm64": "aarch64"}.get(machine, machine)

    def _get_memory_kb(self) -> int:
        """Get MemTotal from /proc/meminfo."""
        try:
            meminfo = (self.proc_root / "meminfo").read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Cannot read meminfo: %s; memory based values will not be tuned", e)
            return 0

        total_match = re.search(r'MemTotal:\s*(\d+)\s*kB', meminfo)
        if total_match:
            return int(total_match.group(1))
        return 0

    def _get_page_size(self) -> int:
        try:
            return os.sysconf("SC_PAGE_SIZE")
        except (ValueError, OSError):
            return 4096
