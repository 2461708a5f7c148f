"""
RuleGraph - A small async graph engine for rule-learning writing assistants.

Run a directed graph of nodes over typed state, with per-field merge
policies, conditional routing, and shared values kept in a partitioned
key-value store.
"""

__version__ = "1.0.0"
