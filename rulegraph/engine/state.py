"""
State Schema and Merge Engine.

A StateSchema declares every field a graph's state may hold, together with
the policy used to fold a node's partial update into that field. One generic
merge routine consults the policy table; no field gets special-case code.

Policies:
    replace: the new value overwrites the old one
    append:  the new value(s) are concatenated onto an ordered list
    shared:  the value lives in a SharedValueStore under a partition key
             taken from the run configuration, never in per-run state
"""

from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple
from dataclasses import dataclass
from datetime import datetime
from types import MappingProxyType
from enum import Enum
from copy import deepcopy
import logging
import uuid

from pydantic import BaseModel, Field

from rulegraph.engine.errors import MissingPartitionKeyError, UnknownFieldError
from rulegraph.engine.store import SharedValueStore


logger = logging.getLogger(__name__)


class MergePolicy(str, Enum):
    """How a partial update is folded into a state field."""
    REPLACE = "replace"
    APPEND = "append"
    SHARED = "shared"


@dataclass(frozen=True)
class StateField:
    """
    Declaration of a single state field.

    Attributes:
        name: Field name, unique within a schema
        policy: Merge policy, fixed for the lifetime of the schema
        default: Value used when the field has never been written
        partition_on: Config option holding the partition value (shared only)
        description: Human-readable description
    """

    name: str
    policy: MergePolicy = MergePolicy.REPLACE
    default: Any = None
    partition_on: Optional[str] = None
    description: str = ""

    def __post_init__(self):
        if not self.name:
            raise ValueError("State field name cannot be empty")
        if self.policy == MergePolicy.SHARED and not self.partition_on:
            raise ValueError(
                f"Shared field '{self.name}' must declare the config option it is partitioned on"
            )
        if self.policy != MergePolicy.SHARED and self.partition_on:
            raise ValueError(
                f"Only shared fields can be partitioned (field '{self.name}')"
            )

    @property
    def is_shared(self) -> bool:
        return self.policy == MergePolicy.SHARED

    def initial_value(self) -> Any:
        """Return a fresh copy of the field's default value."""
        if self.default is None and self.policy == MergePolicy.APPEND:
            return []
        return deepcopy(self.default)

    def partition_key(self, config: Mapping) -> str:
        """Compute the store key for a shared field from the run configuration."""
        owner = config.get(self.partition_on) if self.partition_on else None
        if owner is None or owner == "":
            raise MissingPartitionKeyError(self.name, self.partition_on or "")
        return f"{self.name}:{owner}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "policy": self.policy.value,
            "partition_on": self.partition_on,
            "description": self.description,
        }


def _append(current: Any, value: Any) -> List[Any]:
    merged = list(current) if current is not None else []
    if isinstance(value, (list, tuple)):
        merged.extend(value)
    else:
        merged.append(value)
    return merged


_REDUCERS: Dict[MergePolicy, Callable[[Any, Any], Any]] = {
    MergePolicy.REPLACE: lambda current, value: value,
    MergePolicy.APPEND: _append,
}


class StateSchema:
    """
    The declared shape of a graph's state.

    Usage:
        schema = StateSchema([
            StateField("messages", MergePolicy.APPEND),
            StateField("rules", MergePolicy.SHARED, partition_on="assistant_id"),
        ])
        state = schema.create({"messages": ["hi"]})
        state = schema.merge(state, {"messages": ["hello"]})
    """

    def __init__(self, fields: Iterable[StateField]):
        table: Dict[str, StateField] = {}
        for state_field in fields:
            if state_field.name in table:
                raise ValueError(f"State field '{state_field.name}' declared twice")
            table[state_field.name] = state_field
        self._fields = MappingProxyType(table)

    @property
    def fields(self) -> Mapping[str, StateField]:
        return self._fields

    @property
    def shared_fields(self) -> List[StateField]:
        return [f for f in self._fields.values() if f.is_shared]

    @property
    def transient_fields(self) -> List[StateField]:
        return [f for f in self._fields.values() if not f.is_shared]

    def __contains__(self, name: str) -> bool:
        return name in self._fields

    def check_fields(self, update: Mapping, node: Optional[str] = None) -> None:
        """Raise UnknownFieldError if the update touches undeclared fields."""
        unknown = [key for key in update if key not in self._fields]
        if unknown:
            raise UnknownFieldError(unknown, node)

    def split(self, update: Mapping, node: Optional[str] = None) -> Tuple[Dict[str, Any], Dict[str, Any]]:
        """
        Split a partial update into its transient and shared parts.

        The whole update is validated before anything is returned, so an
        update with an undeclared field is rejected as a unit.
        """
        self.check_fields(update, node)
        transient: Dict[str, Any] = {}
        shared: Dict[str, Any] = {}
        for key, value in update.items():
            if self._fields[key].is_shared:
                shared[key] = value
            else:
                transient[key] = value
        return transient, shared

    def create(self, initial: Optional[Mapping] = None) -> Dict[str, Any]:
        """
        Build fresh transient state for a run.

        Every transient field starts at its default; caller-supplied values
        are merged on top with the field's normal policy. Shared values in
        `initial` are ignored here; the executor forwards them to the store.
        """
        state = {f.name: f.initial_value() for f in self.transient_fields}
        return self.merge(state, initial or {})

    def merge(self, current: Mapping, update: Mapping, node: Optional[str] = None) -> Dict[str, Any]:
        """
        Fold a partial update into state and return the new state.

        `current` is never modified. Fields absent from the update are
        carried over unchanged; shared fields are never part of the result.
        """
        transient, _ = self.split(update, node)
        new_state = dict(current)
        for key, value in transient.items():
            state_field = self._fields[key]
            previous = new_state.get(key, state_field.initial_value())
            new_state[key] = _REDUCERS[state_field.policy](previous, value)
        return new_state

    async def read_shared(self, store: SharedValueStore, config: Mapping) -> Dict[str, Any]:
        """Fetch the current value of every shared field from the store."""
        values: Dict[str, Any] = {}
        for state_field in self.shared_fields:
            key = state_field.partition_key(config)
            values[state_field.name] = await store.get(key, state_field.initial_value())
            logger.debug(f"Read shared field '{state_field.name}' from '{key}'")
        return values

    async def write_shared(self, store: SharedValueStore, config: Mapping, update: Mapping) -> None:
        """Forward shared-field writes to the store, one put per field."""
        for name, value in update.items():
            key = self._fields[name].partition_key(config)
            await store.put(key, value)
            logger.debug(f"Wrote shared field '{name}' to '{key}'")

    async def resolve(self, state: Mapping, store: Optional[SharedValueStore], config: Mapping) -> Mapping[str, Any]:
        """
        Build the read-only view handed to nodes and routers.

        The view combines a deep copy of the transient state with the
        store's current shared values, so nothing a node does to its
        argument can leak back into the run.
        """
        view = deepcopy(dict(state))
        if self.shared_fields and store is not None:
            view.update(await self.read_shared(store, config))
        return MappingProxyType(view)

    def to_dict(self) -> Dict[str, Any]:
        return {name: f.to_dict() for name, f in self._fields.items()}

    def __repr__(self) -> str:
        policies = {name: f.policy.value for name, f in self._fields.items()}
        return f"StateSchema({policies})"


class StateSnapshot(BaseModel):
    """A snapshot of transient state after a node's update was merged."""

    timestamp: datetime = Field(default_factory=datetime.now)
    node_name: str
    update_fields: List[str] = Field(default_factory=list)
    state_data: Dict[str, Any]


class StateManager:
    """
    Owns the transient state of one run.

    State only changes through `apply`, which merges a node's update and
    records a snapshot, giving a full history of the run for debugging.
    """

    def __init__(self, schema: StateSchema, run_id: Optional[str] = None):
        self.schema = schema
        self.run_id = run_id or str(uuid.uuid4())
        self.history: List[StateSnapshot] = []
        self._current_state: Dict[str, Any] = {}

    @property
    def current_state(self) -> Dict[str, Any]:
        """Get the current transient state."""
        return self._current_state

    def initialize(self, initial_data: Optional[Mapping] = None) -> Dict[str, Any]:
        """Create fresh state from the caller's initial values."""
        self._current_state = self.schema.create(initial_data)
        return self._current_state

    def apply(self, update: Mapping, node_name: str) -> Dict[str, Any]:
        """Merge a transient update into the current state and record a snapshot."""
        new_state = self.schema.merge(self._current_state, update, node_name)
        self.history.append(StateSnapshot(
            node_name=node_name,
            update_fields=list(update.keys()),
            state_data=deepcopy(new_state),
        ))
        self._current_state = new_state
        return new_state

    def get_history(self) -> List[Dict[str, Any]]:
        """Get the state history as a list of dictionaries."""
        return [
            {
                "timestamp": s.timestamp.isoformat(),
                "node": s.node_name,
                "updated": s.update_fields,
                "state": s.state_data,
            }
            for s in self.history
        ]
