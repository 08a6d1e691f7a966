"""
Solution module - Platform-scoped collections of notes.
"""

from .catalog import SolutionCatalog, Solution, builtin_solutions

__all__ = ["SolutionCatalog", "Solution", "builtin_solutions"]
