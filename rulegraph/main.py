"""
RuleGraph - FastAPI Application Entry Point.

Serves the writing assistant graph over HTTP and WebSocket.
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import logging

from rulegraph.config import settings
from rulegraph.api.deps import set_executor
from rulegraph.api.routes import graph, runs, websocket
from rulegraph.engine.executor import Executor
from rulegraph.engine.store import SharedValueStore
from rulegraph.llm.anthropic import AnthropicModelClient
from rulegraph.storage.kv import RestKVStore
from rulegraph.storage.memory import InMemorySharedValueStore
from rulegraph.workflows.writing_assistant import create_writing_assistant


# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def create_store() -> SharedValueStore:
    """Use the REST key-value store when configured, else keep values in memory."""
    if settings.KV_REST_API_URL and settings.KV_REST_API_TOKEN:
        logger.info("Using REST key-value store for shared values")
        return RestKVStore(settings.KV_REST_API_URL, settings.KV_REST_API_TOKEN)
    logger.info("Using in-memory store for shared values")
    return InMemorySharedValueStore()


def create_executor(store: SharedValueStore) -> Executor:
    """Build the writing assistant executor from settings."""
    graph = create_writing_assistant(
        chat_model=AnthropicModelClient(model=settings.CHAT_MODEL),
        classifier_model=AnthropicModelClient(model=settings.CLASSIFIER_MODEL),
    )
    return Executor(graph, store=store, max_steps=settings.MAX_STEPS)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    # Startup
    logger.info(f"Starting {settings.APP_NAME} v{settings.APP_VERSION}")
    store = create_store()
    set_executor(create_executor(store))

    yield

    # Shutdown
    logger.info("Shutting down...")
    set_executor(None)
    await store.close()


# Create FastAPI application
app = FastAPI(
    title=settings.APP_NAME,
    description="""
## RuleGraph API

A writing assistant that learns style and content rules from the user's revisions.

### Features
- **Runs**: invoke the graph with initial state and run config
- **Rules**: read the rules learned for an assistant, without any model call
- **Graph**: inspect the topology and its Mermaid diagram
- **Real-time Updates**: WebSocket support for live step streaming

### Quick Start
1. Reply to a user: `POST /runs` with `messages` and `assistant_id`
2. Learn rules from accepted text: `POST /runs` with `hasAcceptedText: true`
3. Read learned rules: `GET /rules/{assistant_id}`
    """,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Include routers
app.include_router(runs.router)
app.include_router(graph.router)
app.include_router(websocket.router)


# ============================================================
# Root Endpoints
# ============================================================

@app.get("/", tags=["Root"])
async def root():
    """API root - returns basic info and links."""
    return {
        "name": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "description": "A graph engine for rule-learning writing assistants",
        "docs": "/docs",
        "redoc": "/redoc",
        "endpoints": {
            "runs": "/runs",
            "rules": "/rules/{assistant_id}",
            "graph": "/graph",
            "websocket_run": "/ws/run",
        },
    }


@app.get("/health", tags=["Root"])
async def health():
    """Health check endpoint."""
    from rulegraph.storage.memory import run_storage

    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "runs_count": len(run_storage),
    }


# ============================================================
# Error Handlers
# ============================================================

@app.exception_handler(Exception)
async def global_exception_handler(request, exc):
    """Global exception handler for unhandled errors."""
    logger.exception(f"Unhandled error: {exc}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "detail": str(exc) if settings.DEBUG else "An unexpected error occurred",
        },
    )
