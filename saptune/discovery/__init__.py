"""
Discovery module - Hardware facts for solution selection and computed values.
"""

from .system import SystemScanner, SystemScannerConfig, SystemFacts, PAGECACHE_SUFFIX

__all__ = ["SystemScanner", "SystemScannerConfig", "SystemFacts", "PAGECACHE_SUFFIX"]
