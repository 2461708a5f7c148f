"""
Pydantic Schemas for API Request/Response Models.

These schemas define the structure of data flowing through the API,
providing automatic validation and documentation.
"""

from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field

from rulegraph.engine.executor import ExecutionStatus


# ============================================================
# Run Schemas
# ============================================================

class RunRequest(BaseModel):
    """Request to run the writing assistant graph."""
    initial_state: Dict[str, Any] = Field(
        default_factory=dict,
        description="Initial values for declared state fields"
    )
    config: Dict[str, Any] = Field(
        default_factory=dict,
        description="Run configuration (assistant_id, systemRules, hasAcceptedText, onlyGetRules)"
    )

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "initial_state": {
                "messages": [
                    {"role": "user", "content": "Write a tweet about our launch"}
                ]
            },
            "config": {
                "assistant_id": "assistant-1",
                "hasAcceptedText": False,
                "onlyGetRules": False
            }
        }
    })


class ExecutionLogEntry(BaseModel):
    """A single entry in the execution log."""
    step: int
    node: str
    started_at: str
    completed_at: Optional[str]
    duration_ms: Optional[float]
    result: str
    error: Optional[str]
    route_taken: Optional[str]
    next_node: Optional[str] = None
    updated_fields: List[str] = Field(default_factory=list)


class RunResponse(BaseModel):
    """Response after running the graph."""
    run_id: str = Field(..., description="Unique identifier for this run")
    graph_id: str
    status: ExecutionStatus
    final_state: Dict[str, Any]
    execution_log: List[ExecutionLogEntry]
    started_at: Optional[str]
    completed_at: Optional[str]
    total_duration_ms: Optional[float]
    first_node: Optional[str] = None
    history: List[Dict[str, Any]] = Field(
        default_factory=list,
        description="State after each node: node, updated fields and transient state"
    )


class RunStateResponse(BaseModel):
    """Response with a stored run."""
    run_id: str
    status: ExecutionStatus
    config: Dict[str, Any]
    current_node: Optional[str]
    current_state: Dict[str, Any]
    final_state: Optional[Dict[str, Any]]
    execution_log: List[ExecutionLogEntry]
    started_at: str
    completed_at: Optional[str]
    error: Optional[str]


class RunListResponse(BaseModel):
    """Response listing runs."""
    runs: List[RunStateResponse]
    total: int


# ============================================================
# Rules Schemas
# ============================================================

class RulesResponse(BaseModel):
    """The rules stored for an assistant."""
    assistant_id: str
    rules: Optional[Dict[str, Any]] = Field(
        None,
        description="Stored user rules: styleRules and contentRules, or null if none"
    )


# ============================================================
# Graph Schemas
# ============================================================

class GraphInfoResponse(BaseModel):
    """Response with the graph topology."""
    graph_id: str
    name: str
    description: Optional[str]
    schema_fields: Dict[str, Dict[str, Any]]
    nodes: List[str]
    edges: Dict[str, str]
    conditional_edges: Dict[str, Dict[str, Any]]
    mermaid_diagram: str


# ============================================================
# Error Schemas
# ============================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    status_code: int
