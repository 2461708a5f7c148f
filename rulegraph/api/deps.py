"""
Runtime dependencies for the API.

The application lifespan installs the executor; routes receive it through
FastAPI dependency injection so tests can override it.
"""

from typing import Optional
from fastapi import HTTPException, status

from rulegraph.engine.executor import Executor


_executor: Optional[Executor] = None


def set_executor(executor: Optional[Executor]) -> None:
    """Install (or clear) the executor used by the routes."""
    global _executor
    _executor = executor


def get_executor() -> Executor:
    """FastAPI dependency returning the configured executor."""
    if _executor is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Graph executor is not configured",
        )
    return _executor
