"""Anthropic Claude model client."""

from typing import Any, List, Mapping, Optional, Type
import logging

import anthropic

from rulegraph.config import settings
from rulegraph.engine.errors import CollaboratorFailure
from rulegraph.llm.provider import Message, ModelClient, T, coerce_structured, split_system


logger = logging.getLogger(__name__)


class AnthropicModelClient(ModelClient):
    """
    Model client for Claude via the Anthropic Messages API.

    Structured output uses a single forced tool whose input schema is the
    pydantic model's JSON schema; the tool input is then validated.
    """

    def __init__(
        self,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        api_key: Optional[str] = None,
        client: Optional[anthropic.AsyncAnthropic] = None,
    ):
        self.model = model or settings.CHAT_MODEL
        self.temperature = settings.MODEL_TEMPERATURE if temperature is None else temperature
        self.max_tokens = max_tokens or settings.MODEL_MAX_TOKENS
        self._client = client or anthropic.AsyncAnthropic(
            api_key=api_key or settings.ANTHROPIC_API_KEY
        )

    async def invoke(
        self,
        messages: List[Message],
        config: Optional[Mapping[str, Any]] = None,
    ) -> Message:
        response = await self._create(messages)
        text = "".join(
            block.text for block in response.content if getattr(block, "type", None) == "text"
        )
        return Message(role="assistant", content=text)

    async def invoke_structured(
        self,
        messages: List[Message],
        schema: Type[T],
        config: Optional[Mapping[str, Any]] = None,
        name: Optional[str] = None,
    ) -> T:
        tool_name = name or schema.__name__
        response = await self._create(
            messages,
            tools=[{
                "name": tool_name,
                "description": schema.__doc__ or f"Respond with {tool_name}",
                "input_schema": schema.model_json_schema(),
            }],
            tool_choice={"type": "tool", "name": tool_name},
        )
        for block in response.content:
            if getattr(block, "type", None) == "tool_use" and block.name == tool_name:
                return coerce_structured(schema, block.input, tool_name)
        return coerce_structured(schema, None, tool_name)

    async def _create(self, messages: List[Message], **kwargs: Any):
        system, conversation = split_system(messages)
        params = {
            "model": self.model,
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
            "messages": conversation,
        }
        if system:
            params["system"] = system
        params.update(kwargs)

        logger.debug(f"Calling {self.model} with {len(conversation)} messages")
        try:
            return await self._client.messages.create(**params)
        except anthropic.APIError as e:
            raise CollaboratorFailure(f"Anthropic request failed: {e}") from e
