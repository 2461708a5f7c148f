"""
Run API Routes.

Endpoints for invoking the graph, reading stored rules, and inspecting runs.
"""

from typing import Any, Mapping
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.encoders import jsonable_encoder
from uuid import uuid4
import asyncio
import logging

from rulegraph.api.deps import get_executor
from rulegraph.api.schemas import (
    ErrorResponse,
    ExecutionLogEntry,
    RulesResponse,
    RunListResponse,
    RunRequest,
    RunResponse,
    RunStateResponse,
)
from rulegraph.engine.errors import (
    CollaboratorFailure,
    GraphError,
    MissingPartitionKeyError,
    RunInputError,
    UnknownFieldError,
)
from rulegraph.engine.executor import ExecutionResult, ExecutionStatus, ExecutionStep, Executor
from rulegraph.storage.memory import StoredRun, run_storage
from rulegraph.workflows.writing_assistant import PARTITION_KEY


logger = logging.getLogger(__name__)

router = APIRouter(tags=["Runs"])


def graph_error_status(error: GraphError) -> int:
    """Map an engine error to an HTTP status code."""
    if isinstance(error, (UnknownFieldError, MissingPartitionKeyError, RunInputError)):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(error, CollaboratorFailure):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def execute_run(
    executor: Executor,
    initial_state: Mapping[str, Any],
    config: Mapping[str, Any],
    on_step=None,
) -> ExecutionResult:
    """
    Run the graph and keep a record of it in run storage.

    Each completed step is recorded as it happens; a failure is recorded
    and re-raised.
    """
    run_id = str(uuid4())
    await run_storage.create(run_id, jsonable_encoder(initial_state), dict(config))

    async def record(step: ExecutionStep, state: Mapping[str, Any]):
        await run_storage.record_step(run_id, step.to_dict(), jsonable_encoder(dict(state)))
        if on_step is not None:
            await on_step(step, state)

    run_executor = Executor(
        executor.graph,
        store=executor.store,
        max_steps=executor.max_steps,
        on_step=record,
    )

    try:
        result = await run_executor.run(initial_state, config, run_id=run_id)
    except asyncio.CancelledError:
        await run_storage.fail(run_id, "Run cancelled", status=ExecutionStatus.CANCELLED)
        raise
    except Exception as e:
        await run_storage.fail(run_id, str(e))
        raise

    await run_storage.complete(
        run_id,
        jsonable_encoder(result.final_state),
        [s.to_dict() for s in result.execution_log],
    )
    return result


# ============================================================
# Execution Endpoints
# ============================================================

@router.post(
    "/runs",
    response_model=RunResponse,
    responses={
        422: {"model": ErrorResponse, "description": "Invalid state or config"},
        502: {"model": ErrorResponse, "description": "Model or store failure"},
    }
)
async def run_graph(
    request: RunRequest,
    executor: Executor = Depends(get_executor),
) -> RunResponse:
    """
    Run the writing assistant with the given initial state and config.

    The run completes before the response is sent.
    """
    try:
        result = await execute_run(executor, request.initial_state, request.config)
    except GraphError as e:
        logger.warning(f"Run failed: {e}")
        raise HTTPException(status_code=graph_error_status(e), detail=str(e))

    return _result_to_response(result)


@router.get(
    "/rules/{assistant_id}",
    response_model=RulesResponse,
    responses={502: {"model": ErrorResponse}},
)
async def get_rules(
    assistant_id: str,
    executor: Executor = Depends(get_executor),
) -> RulesResponse:
    """Return the rules stored for an assistant without calling any model."""
    try:
        final_state = await executor.invoke(
            {}, {PARTITION_KEY: assistant_id, "onlyGetRules": True}
        )
    except GraphError as e:
        raise HTTPException(status_code=graph_error_status(e), detail=str(e))

    return RulesResponse(assistant_id=assistant_id, rules=final_state.get("rules"))


def _result_to_response(result: ExecutionResult) -> RunResponse:
    """Convert ExecutionResult to API response."""
    return RunResponse(
        run_id=result.run_id,
        graph_id=result.graph_id,
        status=result.status,
        final_state=jsonable_encoder(result.final_state),
        execution_log=[ExecutionLogEntry(**s.to_dict()) for s in result.execution_log],
        started_at=result.started_at.isoformat() if result.started_at else None,
        completed_at=result.completed_at.isoformat() if result.completed_at else None,
        total_duration_ms=result.total_duration_ms,
        first_node=result.first_node,
        history=jsonable_encoder(result.history),
    )


# ============================================================
# Run State Endpoints
# ============================================================

def _stored_to_response(stored: StoredRun) -> RunStateResponse:
    return RunStateResponse(
        run_id=stored.run_id,
        status=stored.status,
        config=stored.config,
        current_node=stored.current_node,
        current_state=stored.current_state,
        final_state=stored.final_state,
        execution_log=[ExecutionLogEntry(**entry) for entry in stored.execution_log],
        started_at=stored.started_at.isoformat(),
        completed_at=stored.completed_at.isoformat() if stored.completed_at else None,
        error=stored.error,
    )


@router.get(
    "/runs/{run_id}",
    response_model=RunStateResponse,
    responses={404: {"model": ErrorResponse}},
)
async def get_run(run_id: str) -> RunStateResponse:
    """Get a stored run."""
    stored = await run_storage.get(run_id)
    if not stored:
        raise HTTPException(status_code=404, detail=f"Run '{run_id}' not found")
    return _stored_to_response(stored)


@router.get(
    "/runs",
    response_model=RunListResponse,
)
async def list_runs() -> RunListResponse:
    """List all stored runs."""
    runs = await run_storage.list_all()
    return RunListResponse(
        runs=[_stored_to_response(stored) for stored in runs],
        total=len(runs),
    )
