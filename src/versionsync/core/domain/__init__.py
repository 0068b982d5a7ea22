"""
Domain Layer - Version tags, policies and reconciliation records.

No I/O happens here; adapters and the application layer build on it.
"""

from .entities import ObservedVersion, WriteOutcome
from .enums import (
    BumpKind,
    Confidence,
    EngineState,
    Ordering,
    SyncStrategy,
    Target,
    VersionSource,
    WriteStatus,
)
from .value_objects import SyncPolicy, VersionTag, compare_versions, max_version


__all__ = [
    "BumpKind",
    "Confidence",
    "EngineState",
    "ObservedVersion",
    "Ordering",
    "SyncPolicy",
    "SyncStrategy",
    "Target",
    "VersionSource",
    "VersionTag",
    "WriteOutcome",
    "WriteStatus",
    "compare_versions",
    "max_version",
]
