"""
Error taxonomy for the graph engine.

Every error raised by the engine itself derives from GraphError so callers
can catch engine failures separately from bugs in node code.
"""

from typing import Any, Iterable, List, Optional


class GraphError(Exception):
    """Base class for all graph engine errors."""


class TopologyError(GraphError):
    """The graph definition cannot be compiled into an executable graph."""

    def __init__(self, problems: Iterable[str]):
        self.problems: List[str] = list(problems)
        super().__init__("Invalid graph topology: " + "; ".join(self.problems))


class UnknownFieldError(GraphError):
    """A partial update references a field the state schema does not declare."""

    def __init__(self, fields: Iterable[str], node: Optional[str] = None):
        self.fields = sorted(fields)
        self.node = node
        where = f" from node '{node}'" if node else ""
        super().__init__(f"Update{where} references undeclared fields: {self.fields}")


class InvalidRouteError(GraphError):
    """A router returned a value outside its declared candidate set."""

    def __init__(self, source: str, route: Any, candidates: Iterable[str]):
        self.source = source
        self.route = route
        self.candidates = list(candidates)
        super().__init__(
            f"Router for '{source}' returned unknown route {route!r}. "
            f"Available routes: {self.candidates}"
        )


class StepLimitError(GraphError):
    """A run executed more nodes than the configured step limit."""

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"Max steps ({limit}) exceeded")


class MissingPartitionKeyError(GraphError):
    """A shared field was accessed but the run config lacks its partition key."""

    def __init__(self, field: str, config_key: str):
        self.field = field
        self.config_key = config_key
        super().__init__(
            f"Shared field '{field}' requires config option '{config_key}'"
        )


class RunInputError(GraphError):
    """Caller-supplied state or run configuration is malformed."""

    def __init__(self, what: str, errors: Optional[List[Any]] = None):
        self.what = what
        self.errors = errors or []
        super().__init__(f"Invalid {what}: {self.errors}")


class CollaboratorFailure(GraphError):
    """An external collaborator (model client, network store) failed."""


class SchemaValidationError(CollaboratorFailure):
    """Structured output from a collaborator could not be coerced to its schema."""

    def __init__(self, schema_name: str, raw: Any, errors: Optional[List[Any]] = None):
        self.schema_name = schema_name
        self.raw = raw
        self.errors = errors or []
        super().__init__(
            f"Output does not match schema '{schema_name}': {self.errors or raw!r}"
        )
