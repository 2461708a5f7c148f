"""
Graph Definition for the Graph Engine.

A Graph is the static topology of a run: its state schema, nodes, direct
edges, and conditional edges. `compile()` checks the topology and returns an
immutable CompiledGraph that the Executor can run any number of times.
"""

from typing import Any, Callable, Dict, List, Mapping, Optional, Set, Union, get_args, get_origin, get_type_hints, Literal
from dataclasses import dataclass, field
from types import MappingProxyType
import logging
import uuid

from rulegraph.engine.errors import TopologyError
from rulegraph.engine.node import Node, create_node_from_function
from rulegraph.engine.router import ConditionalEdge, RouteTable, normalize_routes
from rulegraph.engine.state import StateSchema


logger = logging.getLogger(__name__)


# Special node names
START = "__START__"
END = "__END__"


def declared_routes(router: Callable) -> Optional[List[str]]:
    """Read a router's candidate set from a `Literal[...]` return annotation."""
    try:
        hints = get_type_hints(router)
    except Exception:
        return None
    returns = hints.get("return")
    if get_origin(returns) is Literal:
        return [str(value) for value in get_args(returns)]
    return None


@dataclass
class Graph:
    """
    A graph definition consisting of nodes and edges over a state schema.

    Every node must have exactly one outgoing edge, direct or conditional.
    The first node to run is chosen by the edge leaving START.

    Attributes:
        schema: Declared state fields and their merge policies
        graph_id: Unique identifier for this graph
        name: Human-readable name
        nodes: Dict of node_name -> Node
        edges: Direct edges, source -> target
        conditional_edges: Dict of source -> ConditionalEdge
    """

    schema: StateSchema
    graph_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    name: str = "Unnamed Graph"
    description: str = ""
    nodes: Dict[str, Node] = field(default_factory=dict)
    edges: Dict[str, str] = field(default_factory=dict)
    conditional_edges: Dict[str, ConditionalEdge] = field(default_factory=dict)

    def add_node(
        self,
        name_or_handler: Union[str, Callable],
        handler: Optional[Callable] = None,
        description: str = ""
    ) -> "Graph":
        """
        Add a node to the graph.

        Accepts either `add_node("name", handler)` or `add_node(handler)`,
        in which case the name comes from the @node decorator or the
        function name.

        Returns:
            Self for chaining
        """
        if handler is None:
            if not callable(name_or_handler):
                raise ValueError(f"No handler provided for node '{name_or_handler}'")
            new_node = create_node_from_function(name_or_handler, description=description)
        else:
            new_node = create_node_from_function(handler, name_or_handler, description)

        if new_node.name in (START, END):
            raise ValueError(f"'{new_node.name}' is a reserved node name")
        if new_node.name in self.nodes:
            raise ValueError(f"Node '{new_node.name}' already exists in the graph")

        self.nodes[new_node.name] = new_node
        return self

    def add_edge(self, source: str, target: str) -> "Graph":
        """
        Add a direct edge from source to target.

        Node names are checked when the graph is compiled, so edges may be
        declared before the nodes they connect.

        Returns:
            Self for chaining
        """
        self._check_free_source(source)
        self.edges[source] = target
        return self

    def add_conditional_edges(
        self,
        source: str,
        router: Callable[..., Any],
        routes: Optional[RouteTable] = None
    ) -> "Graph":
        """
        Add a conditional edge leaving source.

        Args:
            source: Source node name, or START for the initial router
            router: Pure function of (state) or (state, config) returning a route key
            routes: Route key -> target mapping, or a list of target names.
                When omitted, the router's `Literal[...]` return annotation
                is used as the candidate set.

        Returns:
            Self for chaining
        """
        self._check_free_source(source)
        if routes is None:
            routes = declared_routes(router)
            if routes is None:
                raise ValueError(
                    f"Conditional edge from '{source}' needs routes or a Literal return annotation"
                )
        self.conditional_edges[source] = ConditionalEdge(
            source=source,
            router=router,
            routes=normalize_routes(routes),
        )
        return self

    def set_entry_point(self, node_name: str) -> "Graph":
        """Always start the graph at the given node."""
        return self.add_edge(START, node_name)

    def _check_free_source(self, source: str) -> None:
        if source == END:
            raise ValueError("END cannot have outgoing edges")
        if source in self.edges or source in self.conditional_edges:
            raise ValueError(f"Node '{source}' already has an outgoing edge")

    def validate(self) -> List[str]:
        """
        Validate the graph structure.

        Returns:
            List of topology problems (empty if valid)
        """
        errors: List[str] = []

        if not self.nodes:
            errors.append("Graph must have at least one node")
            return errors

        if START not in self.edges and START not in self.conditional_edges:
            errors.append("Graph has no edge leaving START")

        for source, target in self.edges.items():
            if source != START and source not in self.nodes:
                errors.append(f"Edge source '{source}' is not a registered node")
            if target == START:
                errors.append(f"Edge from '{source}' cannot target START")
            elif target != END and target not in self.nodes:
                errors.append(f"Edge target '{target}' is not a registered node")

        for source, cond in self.conditional_edges.items():
            if source != START and source not in self.nodes:
                errors.append(f"Conditional edge source '{source}' is not a registered node")
            for route_key, target in cond.routes.items():
                if target == START:
                    errors.append(f"Route '{route_key}' from '{source}' cannot target START")
                elif target != END and target not in self.nodes:
                    errors.append(
                        f"Route '{route_key}' from '{source}' targets unregistered node '{target}'"
                    )
            annotated = declared_routes(cond.router)
            if annotated:
                missing = [key for key in annotated if key not in cond.routes]
                if missing:
                    errors.append(
                        f"Routes from '{source}' omit candidates returned by its router: {missing}"
                    )

        for node_name in self.nodes:
            if node_name not in self.edges and node_name not in self.conditional_edges:
                errors.append(f"Node '{node_name}' has no outgoing edge")

        if errors:
            return errors

        reachable = self._get_reachable_nodes()
        orphans = set(self.nodes) - reachable
        if orphans:
            errors.append(f"Orphan nodes (not reachable from START): {sorted(orphans)}")

        stuck = sorted(n for n in reachable if not self._can_terminate(n))
        if stuck:
            errors.append(f"END is unreachable from nodes: {stuck}")

        return errors

    def _successors(self, source: str) -> Set[str]:
        if source in self.edges:
            return {self.edges[source]}
        if source in self.conditional_edges:
            return self.conditional_edges[source].targets
        return set()

    def _get_reachable_nodes(self) -> Set[str]:
        """Get all nodes reachable from START."""
        reachable: Set[str] = set()
        to_visit = list(self._successors(START))

        while to_visit:
            current = to_visit.pop()
            if current in reachable or current == END:
                continue
            reachable.add(current)
            to_visit.extend(self._successors(current))

        return reachable

    def _can_terminate(self, start: str) -> bool:
        seen: Set[str] = set()
        to_visit = [start]
        while to_visit:
            current = to_visit.pop()
            if current == END:
                return True
            if current in seen:
                continue
            seen.add(current)
            to_visit.extend(self._successors(current))
        return False

    def compile(self) -> "CompiledGraph":
        """
        Check the topology and freeze it.

        Raises:
            TopologyError: the graph can never be executed
        """
        errors = self.validate()
        if errors:
            raise TopologyError(errors)
        logger.info(f"Compiled graph '{self.name}' with {len(self.nodes)} nodes")
        return CompiledGraph(
            schema=self.schema,
            graph_id=self.graph_id,
            name=self.name,
            description=self.description,
            nodes=MappingProxyType(dict(self.nodes)),
            edges=MappingProxyType(dict(self.edges)),
            conditional_edges=MappingProxyType(dict(self.conditional_edges)),
        )


@dataclass(frozen=True)
class CompiledGraph:
    """
    An immutable, validated topology.

    Holds no per-run state, so one instance can serve any number of
    concurrent runs.
    """

    schema: StateSchema
    graph_id: str
    name: str
    description: str
    nodes: Mapping[str, Node]
    edges: Mapping[str, str]
    conditional_edges: Mapping[str, ConditionalEdge]

    def outgoing(self, source: str) -> Union[str, ConditionalEdge]:
        """Return the direct target or the conditional edge leaving source."""
        if source in self.conditional_edges:
            return self.conditional_edges[source]
        return self.edges[source]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the topology to a dictionary."""
        return {
            "graph_id": self.graph_id,
            "name": self.name,
            "description": self.description,
            "schema": self.schema.to_dict(),
            "nodes": {name: n.to_dict() for name, n in self.nodes.items()},
            "edges": dict(self.edges),
            "conditional_edges": {
                name: edge.to_dict()
                for name, edge in self.conditional_edges.items()
            },
        }

    def to_mermaid(self) -> str:
        """Generate a Mermaid diagram of the graph."""
        lines = ["graph TD"]
        lines.append(f'    {START}(("START"))')

        for name in self.nodes:
            lines.append(f'    {name}["{name}"]')

        lines.append(f'    {END}(("END"))')

        for source, target in self.edges.items():
            lines.append(f"    {source} --> {target}")

        for source, cond in self.conditional_edges.items():
            for route_key, target in cond.routes.items():
                if route_key == target:
                    lines.append(f"    {source} -.-> {target}")
                else:
                    lines.append(f"    {source} -.->|{route_key}| {target}")

        return "\n".join(lines)

    def __repr__(self) -> str:
        return f"CompiledGraph(name='{self.name}', nodes={list(self.nodes.keys())})"
