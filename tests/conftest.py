"""
Shared fixtures for the test suite.
"""

from typing import Any, Dict, List, Optional

import pytest

from rulegraph.engine.executor import Executor
from rulegraph.llm.provider import Message, ModelClient, coerce_structured
from rulegraph.storage.memory import InMemorySharedValueStore
from rulegraph.workflows.writing_assistant import create_writing_assistant


class ScriptedModelClient(ModelClient):
    """Model client that replays scripted outputs and records every call."""

    def __init__(self, replies: Optional[List[str]] = None, structured: Optional[List[Any]] = None):
        self.replies = list(replies or [])
        self.structured = list(structured or [])
        self.calls: List[Dict[str, Any]] = []

    async def invoke(self, messages, config=None):
        self.calls.append({"kind": "invoke", "messages": messages, "config": config})
        content = self.replies.pop(0) if self.replies else "ok"
        return Message(role="assistant", content=content)

    async def invoke_structured(self, messages, schema, config=None, name=None):
        self.calls.append({"kind": "structured", "messages": messages, "name": name})
        raw = self.structured.pop(0)
        return coerce_structured(schema, raw, name)


@pytest.fixture
def chat_model():
    return ScriptedModelClient()


@pytest.fixture
def classifier_model():
    return ScriptedModelClient()


@pytest.fixture
def store():
    return InMemorySharedValueStore()


@pytest.fixture
def assistant_executor(chat_model, classifier_model, store):
    graph = create_writing_assistant(chat_model, classifier_model)
    return Executor(graph, store=store)
