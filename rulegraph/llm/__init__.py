"""
LLM package - Model inference clients used inside nodes.
"""

from rulegraph.llm.provider import Message, ModelClient, coerce_structured
from rulegraph.llm.anthropic import AnthropicModelClient

__all__ = [
    "Message",
    "ModelClient",
    "AnthropicModelClient",
    "coerce_structured",
]
