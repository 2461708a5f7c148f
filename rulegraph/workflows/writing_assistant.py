"""
Writing Assistant Workflow.

A writing assistant that learns the user's style and content rules:
1. Reply to the user, with the rules learned so far in the system prompt
2. Classify whether the reply was writing content or just conversation
3. When the user accepts (and possibly revises) a text, regenerate the rules
4. Return the stored rules without any model call

Rules are a shared field partitioned on `assistant_id`, so every run for the
same assistant reads and updates the same rules.
"""

from typing import Any, Dict, List, Literal, Mapping, Optional
import logging

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from rulegraph.config import settings
from rulegraph.engine.errors import RunInputError
from rulegraph.engine.graph import Graph, CompiledGraph, START, END
from rulegraph.engine.node import node
from rulegraph.engine.state import MergePolicy, StateField, StateSchema
from rulegraph.llm.provider import Message, ModelClient
from rulegraph.workflows.prompts import (
    build_content_check_prompt,
    build_insights_prompt,
    build_system_prompt,
    format_conversation,
)


logger = logging.getLogger(__name__)


PARTITION_KEY = "assistant_id"


# ============================================================
# State and configuration
# ============================================================

WRITING_ASSISTANT_SCHEMA = StateSchema([
    StateField(
        "messages",
        MergePolicy.APPEND,
        description="Conversation history",
    ),
    StateField(
        "userRules",
        MergePolicy.SHARED,
        partition_on=PARTITION_KEY,
        description="Style and content rules learned for the assistant",
    ),
    StateField(
        "contentGenerated",
        MergePolicy.REPLACE,
        description="Whether writing content was generated in the conversation",
    ),
    StateField(
        "rules",
        MergePolicy.REPLACE,
        description="Copy of the stored user rules, returned to the caller",
    ),
])


class WritingAssistantConfig(BaseModel):
    """Run options understood by the writing assistant."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    assistant_id: Optional[str] = None
    system_rules: Optional[str] = Field(None, alias="systemRules")
    has_accepted_text: bool = Field(False, alias="hasAcceptedText")
    only_get_rules: bool = Field(False, alias="onlyGetRules")

    @classmethod
    def from_run_config(cls, config: Optional[Mapping[str, Any]]) -> "WritingAssistantConfig":
        try:
            return cls.model_validate(dict(config or {}))
        except ValidationError as e:
            raise RunInputError("run configuration", e.errors(include_url=False)) from e

    def resolved_system_rules(self) -> str:
        """System rules from the run, or the default rules as a bullet list."""
        if self.system_rules:
            return self.system_rules
        return "- " + "\n- ".join(settings.DEFAULT_SYSTEM_RULES)


class UserRules(BaseModel):
    """The user's rules for generating text."""

    model_config = ConfigDict(populate_by_name=True)

    style_rules: List[str] = Field(
        default_factory=list,
        alias="styleRules",
        description="List of rules focusing on style, tone, and structure of the text",
    )
    content_rules: List[str] = Field(
        default_factory=list,
        alias="contentRules",
        description="List of rules focusing on content, context, and purpose of the text",
    )


class ContentGenerated(BaseModel):
    """Whether writing content was generated in the conversation."""

    model_config = ConfigDict(populate_by_name=True)

    content_generated: bool = Field(
        ...,
        alias="contentGenerated",
        description="Whether or not content (e.g a tweet, or blog post) was generated in the conversation history.",
    )


def read_messages(state: Mapping[str, Any]) -> List[Message]:
    """Coerce the conversation in state to Message objects."""
    try:
        return [Message.coerce(m) for m in state.get("messages") or []]
    except ValidationError as e:
        raise RunInputError("messages", e.errors(include_url=False)) from e


# ============================================================
# Routers
# ============================================================

def should_generate_insights(
    state: Mapping[str, Any],
    config: Mapping[str, Any]
) -> Literal["getRules", "generateInsights", "callModel"]:
    """
    Pick the first node from the run flags.

    `onlyGetRules` wins over `hasAcceptedText`; with neither set the
    assistant replies to the user.
    """
    options = WritingAssistantConfig.from_run_config(config)
    if options.only_get_rules:
        return "getRules"
    if options.has_accepted_text:
        return "generateInsights"
    return "callModel"


def should_check_content_generation(
    state: Mapping[str, Any]
) -> Literal["wasContentGenerated", END]:
    """Skip the content check once content is known to have been generated."""
    if state.get("contentGenerated"):
        return END
    return "wasContentGenerated"


# ============================================================
# Nodes
# ============================================================

class WritingAssistant:
    """
    Node handlers for the writing assistant.

    Args:
        chat_model: Client used for replies and rule generation
        classifier_model: Client used for the content check (defaults to chat_model)
    """

    def __init__(self, chat_model: ModelClient, classifier_model: Optional[ModelClient] = None):
        self.chat_model = chat_model
        self.classifier_model = classifier_model or chat_model

    @node(name="callModel", description="Reply to the user with the learned rules applied")
    async def call_model(self, state: Mapping[str, Any], config: Mapping[str, Any]) -> Dict[str, Any]:
        options = WritingAssistantConfig.from_run_config(config)
        system_prompt = build_system_prompt(
            options.resolved_system_rules(),
            state.get("userRules"),
        )
        messages = [Message(role="system", content=system_prompt)]
        messages.extend(read_messages(state))

        response = await self.chat_model.invoke(messages, config)
        return {
            "messages": [response],
            "contentGenerated": bool(state.get("contentGenerated")),
        }

    @node(name="generateInsights", description="Regenerate the user's rules from the conversation")
    async def generate_insights(self, state: Mapping[str, Any], config: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Ask the model for the complete, updated rule set.

        The model always rewrites the whole list, so it sees the full
        conversation (including any "REVISED MESSAGE" from the user) and the
        current rules, and its answer replaces the stored rules.
        """
        options = WritingAssistantConfig.from_run_config(config)
        prompt = build_insights_prompt(
            options.resolved_system_rules(),
            state.get("userRules"),
            format_conversation(read_messages(state)),
        )
        result = await self.chat_model.invoke_structured(
            [Message(role="user", content=prompt)],
            UserRules,
            config,
            name="userRules",
        )
        logger.info(
            f"Generated {len(result.style_rules)} style and "
            f"{len(result.content_rules)} content rules"
        )
        return {"userRules": result.model_dump(by_alias=True)}

    @node(name="wasContentGenerated", description="Classify whether writing content was generated")
    async def was_content_generated(self, state: Mapping[str, Any], config: Mapping[str, Any]) -> Dict[str, Any]:
        prompt = build_content_check_prompt(format_conversation(read_messages(state)))
        result = await self.classifier_model.invoke_structured(
            [Message(role="user", content=prompt)],
            ContentGenerated,
            config,
            name="was_content_generated",
        )
        return result.model_dump(by_alias=True)

    @node(name="getRules", description="Return the stored rules without calling a model")
    def get_rules(self, state: Mapping[str, Any]) -> Dict[str, Any]:
        return {"rules": state.get("userRules")}


def build_writing_assistant_graph(
    chat_model: ModelClient,
    classifier_model: Optional[ModelClient] = None
) -> Graph:
    """Define the writing assistant topology."""
    handlers = WritingAssistant(chat_model, classifier_model)

    graph = Graph(
        schema=WRITING_ASSISTANT_SCHEMA,
        graph_id="writing-assistant",
        name="writing_assistant",
        description="Writing assistant that learns style and content rules from revisions",
    )

    graph.add_node(handlers.call_model)
    graph.add_node(handlers.generate_insights)
    graph.add_node(handlers.was_content_generated)
    # Lets read-only callers fetch the stored rules through a normal run
    graph.add_node(handlers.get_rules)

    graph.add_conditional_edges(START, should_generate_insights)
    graph.add_conditional_edges("callModel", should_check_content_generation)
    graph.add_edge("generateInsights", END)
    graph.add_edge("wasContentGenerated", END)
    graph.add_edge("getRules", END)

    return graph


def create_writing_assistant(
    chat_model: ModelClient,
    classifier_model: Optional[ModelClient] = None
) -> CompiledGraph:
    """
    Create the compiled writing assistant graph.

    Args:
        chat_model: Client for replies and rule generation
        classifier_model: Client for the content check

    Returns:
        A compiled graph ready for an Executor
    """
    return build_writing_assistant_graph(chat_model, classifier_model).compile()
