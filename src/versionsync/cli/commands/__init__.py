"""
CLI Commands Package - Command handlers for the versionsync CLI.

Each handler takes the parsed arguments, the loaded configuration and the
console, and returns an exit code.
"""

from .local import run_bump, run_drift_check, run_set
from .resolve import run_auto_fix, run_resolve
from .stores import run_stores


__all__ = [
    # Store-aware reconciliation
    "run_resolve",
    "run_auto_fix",
    # Local-only commands
    "run_drift_check",
    "run_set",
    "run_bump",
    # Store queries
    "run_stores",
]
