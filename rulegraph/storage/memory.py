"""
In-Memory Storage.

Provides an in-process Shared Value Store and a record of runs started
through the API. Both are safe to use from concurrent tasks.
"""

from typing import Any, Dict, List, Optional
from datetime import datetime
from copy import deepcopy
import asyncio
import logging
from dataclasses import dataclass, field

from rulegraph.engine.executor import ExecutionStatus
from rulegraph.engine.store import SharedValueStore


logger = logging.getLogger(__name__)


class InMemorySharedValueStore(SharedValueStore):
    """
    Shared Value Store backed by a dict.

    Values are copied on the way in and out, so a caller holding a value
    can never change what other runs read.
    """

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._values: Dict[str, Any] = deepcopy(initial or {})
        self._lock = asyncio.Lock()

    async def get(self, partition_key: str, default: Any = None) -> Any:
        async with self._lock:
            if partition_key not in self._values:
                return default
            return deepcopy(self._values[partition_key])

    async def put(self, partition_key: str, value: Any) -> None:
        async with self._lock:
            self._values[partition_key] = deepcopy(value)
        logger.debug(f"Stored value for '{partition_key}'")


@dataclass
class StoredRun:
    """A stored execution run."""
    run_id: str
    status: ExecutionStatus
    initial_state: Dict[str, Any]
    config: Dict[str, Any] = field(default_factory=dict)
    current_state: Dict[str, Any] = field(default_factory=dict)
    final_state: Optional[Dict[str, Any]] = None
    execution_log: List[Dict[str, Any]] = field(default_factory=list)
    current_node: Optional[str] = None
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: Optional[datetime] = None
    error: Optional[str] = None


class RunStorage:
    """
    Thread-safe in-memory storage for runs.

    Stores run state, allowing real-time updates and queries
    for ongoing and completed runs.
    """

    def __init__(self):
        self._runs: Dict[str, StoredRun] = {}
        self._lock = asyncio.Lock()

    async def create(
        self,
        run_id: str,
        initial_state: Dict[str, Any],
        config: Optional[Dict[str, Any]] = None
    ) -> StoredRun:
        """Create a new run record in the running state."""
        async with self._lock:
            stored = StoredRun(
                run_id=run_id,
                status=ExecutionStatus.RUNNING,
                initial_state=initial_state,
                config=config or {},
                current_state=deepcopy(initial_state),
            )
            self._runs[run_id] = stored
            return stored

    async def get(self, run_id: str) -> Optional[StoredRun]:
        """Get a run by ID."""
        async with self._lock:
            return self._runs.get(run_id)

    async def record_step(
        self,
        run_id: str,
        entry: Dict[str, Any],
        current_state: Dict[str, Any]
    ) -> Optional[StoredRun]:
        """Append a log entry and the state it produced."""
        async with self._lock:
            if run_id not in self._runs:
                return None
            stored = self._runs[run_id]
            stored.execution_log.append(entry)
            stored.current_state = current_state
            stored.current_node = entry.get("node")
            return stored

    async def complete(
        self,
        run_id: str,
        final_state: Dict[str, Any],
        execution_log: List[Dict[str, Any]]
    ) -> Optional[StoredRun]:
        """Mark a run as completed."""
        async with self._lock:
            if run_id not in self._runs:
                return None
            stored = self._runs[run_id]
            stored.status = ExecutionStatus.COMPLETED
            stored.final_state = final_state
            stored.execution_log = execution_log
            stored.completed_at = datetime.now()
            return stored

    async def fail(
        self,
        run_id: str,
        error: str,
        status: ExecutionStatus = ExecutionStatus.FAILED
    ) -> Optional[StoredRun]:
        """Mark a run as failed (or cancelled)."""
        async with self._lock:
            if run_id not in self._runs:
                return None
            stored = self._runs[run_id]
            stored.status = status
            stored.error = error
            stored.completed_at = datetime.now()
            return stored

    async def list_all(self) -> List[StoredRun]:
        """List all runs."""
        async with self._lock:
            return list(self._runs.values())

    def __len__(self) -> int:
        return len(self._runs)


# Global run storage instance
run_storage = RunStorage()
