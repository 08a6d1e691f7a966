"""
Built-in SAP and SUSE notes.

Memory dependent values are computed from SystemFacts when the note is
evaluated, so the same catalog works on every machine.
"""

from typing import Dict

from ..discovery.system import SystemFacts
from ..protocol.errors import ReadError
from .models import Note
from .parameters import SysctlParameter, SysfsParameter, MultiSysfsParameter

THP_ENABLED = "/sys/kernel/mm/transparent_hugepage/enabled"
KSM_RUN = "/sys/kernel/mm/ksm/run"
CPU_GOVERNORS = "/sys/devices/system/cpu/cpu*/cpufreq/scaling_governor"
BLOCK_QUEUE = "/sys/block/*/queue/{setting}"

# Virtual devices that carry no I/O scheduler worth tuning
VIRTUAL_BLOCK_DEVICES = r"^(loop|ram|zram|sr|dm-)"


def _memory_bytes(facts: SystemFacts) -> int:
    """Physical memory. Raises ReadError when the scan could not size it."""
    if facts.memory_kb <= 0:
        raise ReadError("physical memory size unknown (/proc/meminfo unreadable)")
    return facts.memory_bytes


def _shmall(facts: SystemFacts) -> int:
    """All of physical memory, in pages."""
    return _memory_bytes(facts) // facts.page_size


def _shmmax(facts: SystemFacts) -> int:
    return _memory_bytes(facts)


def _pagecache_limit_mb(facts: SystemFacts) -> int:
    """2% of physical memory."""
    return _memory_bytes(facts) // (1024 * 1024) * 2 // 100


def block_parameter(setting: str, expected: str) -> MultiSysfsParameter:
    return MultiSysfsParameter(
        name=f"block.{setting}",
        pattern=BLOCK_QUEUE.format(setting=setting),
        expected=expected,
        exclude=VIRTUAL_BLOCK_DEVICES,
    )


def governor_parameter(expected: str) -> MultiSysfsParameter:
    return MultiSysfsParameter("cpu.governor", CPU_GOVERNORS, expected)


def builtin_notes() -> Dict[str, Note]:
    """Return the built-in notes keyed by ID."""
    notes = [
        Note(
            id="1275776",
            name="Linux: Preparing SLES for SAP environments",
            parameters=(
                SysctlParameter("kernel.shmall", _shmall),
                SysctlParameter("kernel.shmmax", _shmmax),
                SysctlParameter("kernel.sem", "1250 256000 100 8192"),
                SysctlParameter("vm.max_map_count", "2147483647"),
            ),
        ),
        Note(
            id="1984787",
            name="SUSE LINUX Enterprise Server 12: Installation notes",
            parameters=(
                SysctlParameter("kernel.numa_balancing", "0"),
                SysctlParameter("vm.max_map_count", "2147483647"),
                SysctlParameter("net.ipv4.tcp_slow_start_after_idle", "0"),
            ),
        ),
        Note(
            id="2205917",
            name="SAP HANA DB: Recommended OS settings for SLES 12 / SLES for SAP Applications 12",
            parameters=(
                SysfsParameter("transparent_hugepage", THP_ENABLED, "never"),
                SysfsParameter("ksm", KSM_RUN, "0"),
                SysctlParameter("kernel.numa_balancing", "0"),
                governor_parameter("performance"),
            ),
        ),
        Note(
            id="1557506",
            name="Linux paging improvements",
            parameters=(
                SysctlParameter("vm.pagecache_limit_mb", _pagecache_limit_mb),
                SysctlParameter("vm.pagecache_limit_ignore_dirty", "1"),
            ),
        ),
        Note(
            id="1680803",
            name="SYB: SAP Adaptive Server Enterprise - Best Practice for SAP Business Suite and SAP BW",
            parameters=(
                SysctlParameter("vm.swappiness", "0"),
                SysctlParameter("kernel.shmmni", "4096"),
            ),
        ),
        Note(
            id="Block",
            name="Block device scheduler and queue depth",
            parameters=(
                block_parameter("scheduler", "none"),
                block_parameter("nr_requests", "1024"),
            ),
            internal=True,
        ),
        Note(
            id="SUSE-GUIDE-01",
            name="SLES 12 OS Tuning & Optimization Guide - Part 1",
            parameters=(
                SysctlParameter("vm.dirty_ratio", "10"),
                SysctlParameter("vm.dirty_background_ratio", "5"),
            ),
        ),
        Note(
            id="SUSE-GUIDE-02",
            name="SLES 12: Network Tuning & Optimization Guide - Part 2",
            parameters=(
                SysctlParameter("net.core.somaxconn", "4096"),
                SysctlParameter("net.ipv4.tcp_max_syn_backlog", "8192"),
            ),
        ),
    ]
    return {note.id: note for note in notes}
