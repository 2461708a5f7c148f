"""
Workflows package - Graphs built on the engine.
"""

from rulegraph.workflows.writing_assistant import (
    WRITING_ASSISTANT_SCHEMA,
    WritingAssistant,
    WritingAssistantConfig,
    UserRules,
    build_writing_assistant_graph,
    create_writing_assistant,
)

__all__ = [
    "WRITING_ASSISTANT_SCHEMA",
    "WritingAssistant",
    "WritingAssistantConfig",
    "UserRules",
    "build_writing_assistant_graph",
    "create_writing_assistant",
]
