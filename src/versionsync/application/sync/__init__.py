"""
Sync Module - Reconciliation of local descriptors with the remote stores.
"""

from .drift import DriftChecker, DriftReport
from .lock import ProjectLock
from .orchestrator import ReconciliationEngine, ReconciliationResult
from .parallel import GatherResult, gather_store_versions, gather_store_versions_async


__all__ = [
    "DriftChecker",
    "DriftReport",
    "GatherResult",
    "ProjectLock",
    "ReconciliationEngine",
    "ReconciliationResult",
    "gather_store_versions",
    "gather_store_versions_async",
]
