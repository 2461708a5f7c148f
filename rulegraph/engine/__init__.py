"""
Engine package - Core graph execution components.
"""

from rulegraph.engine.errors import (
    GraphError,
    TopologyError,
    UnknownFieldError,
    InvalidRouteError,
    StepLimitError,
    MissingPartitionKeyError,
    RunInputError,
    CollaboratorFailure,
    SchemaValidationError,
)
from rulegraph.engine.state import MergePolicy, StateField, StateSchema, StateManager
from rulegraph.engine.run_config import RunConfig
from rulegraph.engine.store import SharedValueStore
from rulegraph.engine.node import Node, node
from rulegraph.engine.router import ConditionalEdge
from rulegraph.engine.graph import Graph, CompiledGraph, START, END
from rulegraph.engine.executor import Executor, ExecutionResult, ExecutionStatus, ExecutionStep

__all__ = [
    "GraphError",
    "TopologyError",
    "UnknownFieldError",
    "InvalidRouteError",
    "StepLimitError",
    "MissingPartitionKeyError",
    "RunInputError",
    "CollaboratorFailure",
    "SchemaValidationError",
    "MergePolicy",
    "StateField",
    "StateSchema",
    "StateManager",
    "RunConfig",
    "SharedValueStore",
    "Node",
    "node",
    "ConditionalEdge",
    "Graph",
    "CompiledGraph",
    "START",
    "END",
    "Executor",
    "ExecutionResult",
    "ExecutionStatus",
    "ExecutionStep",
]
