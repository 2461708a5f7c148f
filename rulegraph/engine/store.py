"""
Shared Value Store contract.

The store holds state fields that outlive a single run. Values are keyed by
a partition key derived from the run configuration, so every run for the
same owner (an assistant, a tenant) sees the same value.
"""

from abc import ABC, abstractmethod
from typing import Any


class SharedValueStore(ABC):
    """
    Abstract client for a partitioned key-value store.

    Implementations must provide read-after-write consistency for a single
    partition key: once `put` has returned, a `get` for the same key returns
    the written value. Writes are last-write-wins per key; there is no
    multi-key atomicity.
    """

    @abstractmethod
    async def get(self, partition_key: str, default: Any = None) -> Any:
        """Return the stored value for a partition key, or `default`."""

    @abstractmethod
    async def put(self, partition_key: str, value: Any) -> None:
        """Store a value under a partition key, replacing any previous value."""

    async def close(self) -> None:
        """Release any resources held by the client."""
