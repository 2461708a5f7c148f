"""Model inference abstraction for pluggable model backends."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Literal, Mapping, Optional, Type, TypeVar

from pydantic import BaseModel, ValidationError

from rulegraph.engine.errors import SchemaValidationError


T = TypeVar("T", bound=BaseModel)


_MESSAGE_TYPES = {"system": "system", "user": "human", "assistant": "ai"}


class Message(BaseModel):
    """A single chat message."""

    role: Literal["system", "user", "assistant"]
    content: str

    @property
    def type(self) -> str:
        """Conversation label for the message: system, human or ai."""
        return _MESSAGE_TYPES[self.role]

    @classmethod
    def coerce(cls, value: Any) -> "Message":
        """Accept a Message, a `{role, content}` dict, or a `(role, content)` pair."""
        if isinstance(value, cls):
            return value
        if isinstance(value, (list, tuple)) and len(value) == 2:
            role, content = value
            return cls(role=role, content=content)
        return cls.model_validate(value)


def coerce_structured(schema: Type[T], raw: Any, name: Optional[str] = None) -> T:
    """
    Validate raw collaborator output against a pydantic schema.

    Raises:
        SchemaValidationError: the output cannot be coerced to the schema
    """
    try:
        return schema.model_validate(raw)
    except ValidationError as e:
        raise SchemaValidationError(name or schema.__name__, raw, e.errors()) from e


class ModelClient(ABC):
    """
    Abstract model client - plug in any inference backend.

    Implementations own latency, retries and rate limits; the graph engine
    only awaits the call. Transport failures surface as CollaboratorFailure.
    """

    @abstractmethod
    async def invoke(
        self,
        messages: List[Message],
        config: Optional[Mapping[str, Any]] = None,
    ) -> Message:
        """
        Generate an unstructured reply.

        Args:
            messages: Conversation, optionally starting with system messages
            config: The run configuration of the calling node

        Returns:
            The assistant's reply
        """

    @abstractmethod
    async def invoke_structured(
        self,
        messages: List[Message],
        schema: Type[T],
        config: Optional[Mapping[str, Any]] = None,
        name: Optional[str] = None,
    ) -> T:
        """
        Generate output validated against a pydantic schema.

        Args:
            messages: Conversation, optionally starting with system messages
            schema: Pydantic model the output must satisfy
            config: The run configuration of the calling node
            name: Name for the output schema (defaults to the model name)

        Returns:
            An instance of `schema`

        Raises:
            SchemaValidationError: the raw output does not fit the schema
        """


def split_system(messages: List[Message]) -> tuple:
    """Separate system messages from the rest of the conversation."""
    system = "\n\n".join(m.content for m in messages if m.role == "system")
    rest: List[Dict[str, str]] = [
        {"role": m.role, "content": m.content} for m in messages if m.role != "system"
    ]
    return system, rest
