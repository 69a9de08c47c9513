"""Sync module.

This module provides:
- SyncOrchestrator: the cache/sync state machine behind the pull interface
- decide_sync_mode: the state machine's entry decision
- BatchExecutor: sequential batches of concurrent repository fetches
- SyncResult: data plus provenance returned by every sync
"""

from .batch import BatchExecutor, BatchResult
from .decision import decide_sync_mode
from .enums import OutputFormat, Provenance, SyncMode
from .orchestrator import SyncOrchestrator
from .results import RepositoryActivity, SyncResult

__all__ = [
    # Orchestration
    "SyncOrchestrator",
    "decide_sync_mode",
    # Batching
    "BatchExecutor",
    "BatchResult",
    # Results
    "RepositoryActivity",
    "SyncResult",
    # Enums
    "OutputFormat",
    "Provenance",
    "SyncMode",
]
