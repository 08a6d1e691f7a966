"""
UI module - Console output for the command line.
"""

from .console import ConsoleUI, DAEMON_REMINDER

__all__ = ["ConsoleUI", "DAEMON_REMINDER"]
