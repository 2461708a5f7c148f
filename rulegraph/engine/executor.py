"""
Async Graph Executor.

The executor drives a compiled graph: it resolves the first node through the
edge leaving START, runs nodes one at a time, merges each partial update into
state, forwards shared-field writes to the store, and follows edges until END.
"""

from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Union
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
import asyncio
import inspect
import uuid
import time
import logging

from rulegraph.engine.errors import StepLimitError
from rulegraph.engine.graph import CompiledGraph, START, END
from rulegraph.engine.router import ConditionalEdge
from rulegraph.engine.run_config import RunConfig
from rulegraph.engine.state import StateManager
from rulegraph.engine.store import SharedValueStore


logger = logging.getLogger(__name__)


DEFAULT_MAX_STEPS = 25


class ExecutionStatus(str, Enum):
    """Status of a graph run."""
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


@dataclass
class ExecutionStep:
    """A single node execution in the run log."""
    step: int
    node: str
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_ms: Optional[float] = None
    result: str = "success"
    error: Optional[str] = None
    route_taken: Optional[str] = None
    next_node: Optional[str] = None
    updated_fields: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "step": self.step,
            "node": self.node,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
            "duration_ms": self.duration_ms,
            "result": self.result,
            "error": self.error,
            "route_taken": self.route_taken,
            "next_node": self.next_node,
            "updated_fields": self.updated_fields,
        }


@dataclass
class ExecutionResult:
    """Result of a completed run."""
    run_id: str
    graph_id: str
    status: ExecutionStatus
    final_state: Dict[str, Any]
    execution_log: List[ExecutionStep] = field(default_factory=list)
    history: List[Dict[str, Any]] = field(default_factory=list)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    total_duration_ms: Optional[float] = None
    first_node: Optional[str] = None

    @property
    def visited_nodes(self) -> List[str]:
        return [s.node for s in self.execution_log]


StepCallback = Callable[[ExecutionStep, Mapping[str, Any]], Union[None, Awaitable[None]]]


class Executor:
    """
    Async graph executor.

    Runs a compiled graph with:
    - Sequential node execution, one node at a time
    - Conditional routing evaluated on post-merge state
    - Shared fields read from and written to an injected store
    - A step limit guarding against runaway loops
    - A per-run execution log

    The executor keeps no state between runs; concurrent calls to `run` on
    one instance are independent. Errors raised by nodes, routers, or the
    store propagate to the caller unchanged, and a run cancelled while a
    node is in flight merges nothing from that node.

    Usage:
        executor = Executor(graph.compile(), store=InMemorySharedValueStore())
        result = await executor.run({"messages": [...]}, {"assistant_id": "a1"})
    """

    def __init__(
        self,
        graph: CompiledGraph,
        store: Optional[SharedValueStore] = None,
        max_steps: int = DEFAULT_MAX_STEPS,
        on_step: Optional[StepCallback] = None
    ):
        """
        Initialize the executor.

        Args:
            graph: The compiled graph to execute
            store: Shared value store (required if the schema has shared fields)
            max_steps: Maximum node executions per run
            on_step: Optional callback for each completed step (sync or async)
        """
        if graph.schema.shared_fields and store is None:
            raise ValueError(
                f"Graph '{graph.name}' declares shared fields but no store was provided"
            )
        if max_steps < 1:
            raise ValueError("max_steps must be at least 1")
        self.graph = graph
        self.store = store
        self.max_steps = max_steps
        self.on_step = on_step

    async def invoke(
        self,
        initial_state: Optional[Mapping[str, Any]] = None,
        config: Optional[Mapping[str, Any]] = None
    ) -> Dict[str, Any]:
        """Run the graph and return only the final state."""
        result = await self.run(initial_state, config)
        return result.final_state

    async def run(
        self,
        initial_state: Optional[Mapping[str, Any]] = None,
        config: Optional[Mapping[str, Any]] = None,
        run_id: Optional[str] = None
    ) -> ExecutionResult:
        """
        Execute the graph with the given initial state and configuration.

        Args:
            initial_state: Initial values for declared state fields
            config: Run configuration options
            run_id: Optional run ID (generated if not provided)

        Returns:
            ExecutionResult with the final state (shared fields resolved
            through the store) and the execution log
        """
        run_id = run_id or str(uuid.uuid4())
        run_config = RunConfig.coerce(config)
        schema = self.graph.schema
        started_at = datetime.now()
        start_time = time.time()
        manager = StateManager(schema, run_id)
        execution_log: List[ExecutionStep] = []

        logger.info(f"Starting run {run_id} of graph '{self.graph.name}'")

        try:
            transient, shared = schema.split(initial_state or {})
            manager.initialize(transient)
            if shared:
                await schema.write_shared(self.store, run_config, shared)

            _, current_node = await self._next_node(START, manager, run_config)
            first_node = current_node

            while current_node != END:
                if len(execution_log) >= self.max_steps:
                    raise StepLimitError(self.max_steps)

                step = await self._execute_node(
                    current_node, manager, run_config, len(execution_log) + 1
                )
                execution_log.append(step)

                step.route_taken, current_node = await self._next_node(
                    step.node, manager, run_config
                )
                step.next_node = current_node
                await self._notify(step, manager.current_state)

            final_state = dict(await schema.resolve(manager.current_state, self.store, run_config))

        except asyncio.CancelledError:
            logger.info(f"Run {run_id} cancelled after {len(execution_log)} completed steps")
            raise
        except Exception as e:
            logger.error(f"Run {run_id} failed: {e}")
            raise

        completed_at = datetime.now()
        logger.info(
            f"Run {run_id} completed in {len(execution_log)} steps "
            f"({[s.node for s in execution_log]})"
        )

        return ExecutionResult(
            run_id=run_id,
            graph_id=self.graph.graph_id,
            status=ExecutionStatus.COMPLETED,
            final_state=final_state,
            execution_log=execution_log,
            history=manager.get_history(),
            started_at=started_at,
            completed_at=completed_at,
            total_duration_ms=(time.time() - start_time) * 1000,
            first_node=first_node,
        )

    async def _execute_node(
        self,
        node_name: str,
        manager: StateManager,
        config: RunConfig,
        step_number: int
    ) -> ExecutionStep:
        """Execute a single node and merge its update."""
        node = self.graph.nodes[node_name]
        schema = self.graph.schema
        node_start_time = time.time()

        step = ExecutionStep(
            step=step_number,
            node=node.name,
            started_at=datetime.now(),
        )

        logger.info(f"Executing node: {node.name} (step {step_number})")

        try:
            view = await schema.resolve(manager.current_state, self.store, config)
            update = await node.execute(view, config)
            transient, shared = schema.split(update, node.name)
        except asyncio.CancelledError:
            logger.info(f"Node {node.name} cancelled before completion; update discarded")
            raise
        except Exception as e:
            logger.error(f"Node {node.name} failed: {e}")
            step.completed_at = datetime.now()
            step.duration_ms = (time.time() - node_start_time) * 1000
            step.result = "error"
            step.error = str(e)
            await self._notify(step, manager.current_state)
            raise

        if shared:
            await schema.write_shared(self.store, config, shared)
        manager.apply(transient, node.name)

        step.updated_fields = list(update.keys())
        step.completed_at = datetime.now()
        step.duration_ms = (time.time() - node_start_time) * 1000
        return step

    async def _next_node(self, source: str, manager: StateManager, config: RunConfig):
        """Follow the edge leaving source; returns (route_key, target)."""
        outgoing = self.graph.outgoing(source)
        if isinstance(outgoing, ConditionalEdge):
            view = await self.graph.schema.resolve(manager.current_state, self.store, config)
            return outgoing.evaluate(view, config)
        return None, outgoing

    async def _notify(self, step: ExecutionStep, state: Mapping[str, Any]) -> None:
        if not self.on_step:
            return
        try:
            outcome = self.on_step(step, state)
            if inspect.isawaitable(outcome):
                await outcome
        except Exception as e:
            logger.warning(f"Step callback failed: {e}")
