"""
Storage package - Shared value stores and run records.
"""

from rulegraph.storage.memory import (
    InMemorySharedValueStore,
    RunStorage,
    StoredRun,
    run_storage,
)
from rulegraph.storage.kv import RestKVStore

__all__ = [
    "InMemorySharedValueStore",
    "RestKVStore",
    "RunStorage",
    "StoredRun",
    "run_storage",
]
