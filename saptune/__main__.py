"""
Entry point for running saptune as a module.

Usage:
    python -m saptune solution apply HANA
"""

from .cli import run

if __name__ == "__main__":
    run()
