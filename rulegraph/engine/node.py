"""
Node Definition for the Graph Engine.

Nodes are the units of computation in a graph. Each node is a function
that receives a read-only view of the state and the run configuration,
and returns a partial update to be merged by the executor.
"""

from typing import Any, Callable, Dict, Mapping, Optional
from dataclasses import dataclass, field
import asyncio
import inspect
import functools

from pydantic import BaseModel


@dataclass
class Node:
    """
    A node in the graph.

    The handler may be sync or async and may accept either `(state)` or
    `(state, config)`. It returns a partial update: a dict of field name to
    value, a pydantic model (dumped to a dict), or None for no update.

    Attributes:
        name: Unique identifier for the node
        handler: Function that computes the partial update
        description: Human-readable description
        metadata: Additional node metadata
    """

    name: str
    handler: Callable[..., Any]
    description: str = ""
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        """Validate the node after initialization."""
        if not self.name:
            raise ValueError("Node name cannot be empty")
        if not callable(self.handler):
            raise ValueError(f"Handler for node '{self.name}' must be callable")
        self._takes_config = accepts_config(self.handler)

    @property
    def is_async(self) -> bool:
        """Check if the handler is an async function."""
        return inspect.iscoroutinefunction(self.handler)

    async def execute(self, state: Mapping[str, Any], config: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Execute the node handler and return its partial update.

        Exceptions raised by the handler propagate unchanged.

        Args:
            state: Read-only view of the current state
            config: The run configuration

        Returns:
            Partial update dictionary (empty if the handler returned None)
        """
        args = (state, config) if self._takes_config else (state,)
        if self.is_async:
            result = await self.handler(*args)
        else:
            # Run sync handler in executor to not block
            loop = asyncio.get_running_loop()
            result = await loop.run_in_executor(
                None,
                functools.partial(self.handler, *args)
            )

        if result is None:
            return {}
        if isinstance(result, BaseModel):
            return result.model_dump()
        if isinstance(result, Mapping):
            return dict(result)

        raise TypeError(
            f"Node '{self.name}' handler must return a dict, a pydantic model or None, "
            f"got {type(result).__name__}"
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the node to a dictionary."""
        return {
            "name": self.name,
            "description": self.description,
            "handler": getattr(self.handler, "__name__", str(self.handler)),
            "metadata": self.metadata,
        }


def accepts_config(func: Callable) -> bool:
    """Whether a handler takes the run configuration as a second argument."""
    try:
        params = inspect.signature(func).parameters.values()
    except (TypeError, ValueError):
        return False
    positional = [
        p for p in params
        if p.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD)
    ]
    varargs = any(p.kind == inspect.Parameter.VAR_POSITIONAL for p in params)
    return varargs or len(positional) >= 2


def node(name: Optional[str] = None, description: str = "") -> Callable:
    """
    Decorator to attach a node name and description to a handler.

    Usage:
        @node(name="callModel", description="Reply to the user")
        async def call_model(state, config):
            ...
            return {"messages": [reply]}

    Args:
        name: Node name (defaults to function name)
        description: Human-readable description

    Returns:
        The same function, tagged with node metadata
    """
    def decorator(func: Callable) -> Callable:
        func._node_metadata = {
            "name": name or func.__name__,
            "description": description or (func.__doc__ or "").strip(),
        }
        return func

    return decorator


def create_node_from_function(
    func: Callable,
    name: Optional[str] = None,
    description: str = ""
) -> Node:
    """
    Create a Node instance from a function.

    Metadata set by the @node decorator is used when name or description
    are not given explicitly.
    """
    meta = getattr(func, "_node_metadata", {})
    return Node(
        name=name or meta.get("name") or func.__name__,
        handler=func,
        description=description or meta.get("description", ""),
    )
