"""
WebSocket Routes for Real-time Execution Streaming.

Provides live step updates while the graph runs.
"""

from typing import Any, Mapping
from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from fastapi.encoders import jsonable_encoder
import logging

from rulegraph.api.deps import get_executor
from rulegraph.api.routes.runs import execute_run
from rulegraph.engine.errors import GraphError
from rulegraph.engine.executor import ExecutionStep, Executor


logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebSocket"])


@router.websocket("/ws/run")
async def websocket_run(websocket: WebSocket, executor: Executor = Depends(get_executor)):
    """
    WebSocket endpoint for real-time graph execution.

    Message format (client -> server):
    ```json
    {"action": "start", "initial_state": {"messages": [...]}, "config": {"assistant_id": "a1"}}
    ```

    Message format (server -> client):
    ```json
    {
        "type": "step",
        "step": 1,
        "node": "callModel",
        "status": "success",
        "duration_ms": 15.5,
        "route_taken": "wasContentGenerated",
        "state": {...}
    }
    ```
    followed by a final `completed` or `error` message.
    """
    await websocket.accept()

    try:
        data = await websocket.receive_json()

        if data.get("action") != "start":
            await websocket.send_json({
                "type": "error",
                "error": "Expected 'start' action"
            })
            return

        async def on_step(step: ExecutionStep, state: Mapping[str, Any]):
            await websocket.send_json({
                "type": "step",
                "step": step.step,
                "node": step.node,
                "status": step.result,
                "duration_ms": step.duration_ms,
                "route_taken": step.route_taken,
                "next_node": step.next_node,
                "error": step.error,
                "state": jsonable_encoder(dict(state)),
            })

        await websocket.send_json({"type": "started"})

        try:
            result = await execute_run(
                executor,
                data.get("initial_state") or {},
                data.get("config") or {},
                on_step=on_step,
            )
        except GraphError as e:
            await websocket.send_json({
                "type": "error",
                "error_type": type(e).__name__,
                "error": str(e),
            })
            return

        await websocket.send_json({
            "type": "completed",
            "run_id": result.run_id,
            "status": result.status.value,
            "final_state": jsonable_encoder(result.final_state),
            "total_duration_ms": result.total_duration_ms,
        })

    except WebSocketDisconnect:
        logger.info("Client disconnected during run")
    finally:
        await _close_quietly(websocket)


async def _close_quietly(websocket: WebSocket) -> None:
    try:
        await websocket.close()
    except RuntimeError:
        # Already closed by the client
        pass
