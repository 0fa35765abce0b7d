"""Public service interfaces."""

from .region_backfill import BackfillReport, RegionBackfillService
from .result_set import ResultSetController
from .state_store import JsonFileStateStore, MemoryStateStore, StateStore

__all__ = [
    "BackfillReport",
    "JsonFileStateStore",
    "MemoryStateStore",
    "RegionBackfillService",
    "ResultSetController",
    "StateStore",
]
