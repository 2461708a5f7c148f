"""
Graph API Routes.

Read-only description of the compiled topology.
"""

from fastapi import APIRouter, Depends

from rulegraph.api.deps import get_executor
from rulegraph.api.schemas import GraphInfoResponse
from rulegraph.engine.executor import Executor


router = APIRouter(prefix="/graph", tags=["Graph"])


@router.get(
    "",
    response_model=GraphInfoResponse,
)
async def get_graph(executor: Executor = Depends(get_executor)) -> GraphInfoResponse:
    """Describe the graph: state schema, nodes, edges and a Mermaid diagram."""
    graph = executor.graph
    definition = graph.to_dict()

    return GraphInfoResponse(
        graph_id=graph.graph_id,
        name=graph.name,
        description=graph.description,
        schema_fields=definition["schema"],
        nodes=list(definition["nodes"].keys()),
        edges=definition["edges"],
        conditional_edges=definition["conditional_edges"],
        mermaid_diagram=graph.to_mermaid(),
    )
