"""
Conditional Edges.

A conditional edge picks a node's successor with a router: a pure function
of the state and the run configuration. Each edge declares the finite set of
routes the router may return, so the graph can check every possible
transition at compile time.
"""

from typing import Any, Callable, Dict, Iterable, Mapping, Tuple, Union
from dataclasses import dataclass
import logging

from rulegraph.engine.errors import InvalidRouteError
from rulegraph.engine.node import accepts_config


logger = logging.getLogger(__name__)


RouteTable = Union[Dict[str, str], Iterable[str]]


def normalize_routes(routes: RouteTable) -> Dict[str, str]:
    """
    Turn a candidate set into a route table.

    A mapping is used as-is (route key -> target node). A plain sequence of
    node names routes each name to itself.
    """
    if isinstance(routes, Mapping):
        table = dict(routes)
    else:
        table = {target: target for target in routes}
    if not table:
        raise ValueError("A conditional edge needs at least one route")
    return table


@dataclass
class ConditionalEdge:
    """
    A conditional edge that routes to one of a fixed set of targets.

    The router receives the current state (and, if it accepts a second
    argument, the run configuration) and returns a route key. The routes
    dict maps route keys to target node names or END.
    """
    source: str
    router: Callable[..., Any]
    routes: Dict[str, str]

    def __post_init__(self):
        if not callable(self.router):
            raise ValueError(f"Router for '{self.source}' must be callable")
        self._takes_config = accepts_config(self.router)

    @property
    def targets(self) -> set:
        return set(self.routes.values())

    def evaluate(self, state: Mapping[str, Any], config: Mapping[str, Any]) -> Tuple[str, str]:
        """
        Run the router and return `(route_key, target)`.

        Raises:
            InvalidRouteError: the router returned a key outside the route table
        """
        args = (state, config) if self._takes_config else (state,)
        route_key = self.router(*args)
        try:
            target = self.routes[route_key]
        except (KeyError, TypeError):
            raise InvalidRouteError(self.source, route_key, self.routes.keys()) from None
        logger.debug(f"Conditional route from '{self.source}': {route_key} -> {target}")
        return route_key, target

    def to_dict(self) -> Dict[str, Any]:
        return {
            "source": self.source,
            "router": getattr(self.router, "__name__", str(self.router)),
            "routes": self.routes,
        }
