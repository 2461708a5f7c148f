#!/usr/bin/env python3
"""
Simple run script for RuleGraph.

Usage:
    python run.py

Or with custom settings:
    HOST=127.0.0.1 PORT=8080 python run.py
"""

import uvicorn

from rulegraph.config import settings


def main():
    """Run the FastAPI application."""
    print(f"""
RuleGraph v{settings.APP_VERSION}
  Server:    http://{settings.HOST}:{settings.PORT}
  API Docs:  http://{settings.HOST}:{settings.PORT}/docs
  Store:     {"REST key-value" if settings.KV_REST_API_URL and settings.KV_REST_API_TOKEN else "in-memory"}
    """)

    uvicorn.run(
        "rulegraph.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
