"""
myPip FastAPI application.

Entry point for the API server.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI

from backend import db
from backend.config import check_server_settings, settings
from backend.middleware.rate_limit import rate_limiter
from backend.routes import me as me_routes
from backend.routes import projects as project_routes
from backend.routes import sessions as session_routes
from backend.services.session_store import session_store

check_server_settings()


# Background task for cleanup
async def cleanup_task():
    """
    Background task to evict idle sessions and old rate limit entries.

    Runs every 60 seconds.
    """
    while True:
        try:
            evicted = session_store.cleanup_idle(settings.SESSION_IDLE_MINUTES)
            if evicted > 0:
                print(f"Evicted {evicted} idle sessions")

            rate_limiter.cleanup_old_entries(max_age_hours=2)

        except Exception as e:
            print(f"Error in cleanup task: {e}")

        await asyncio.sleep(60)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Lifespan context manager for FastAPI application.

    Handles startup and shutdown logic:
    - Initialize database pool
    - Start background cleanup task
    - Close database pool on shutdown
    """
    # Startup
    await db.init_pool()
    print("Database pool initialized")

    cleanup_task_handle = asyncio.create_task(cleanup_task())
    print("Background cleanup task started")

    yield

    # Shutdown
    cleanup_task_handle.cancel()
    try:
        await cleanup_task_handle
    except asyncio.CancelledError:
        print("Background cleanup task stopped")

    await db.close_pool()
    print("Database pool closed")


app = FastAPI(
    title="myPip",
    docs_url=None,
    redoc_url=None,
    lifespan=lifespan,
)

# Register routes
app.include_router(me_routes.router)
app.include_router(session_routes.router)
app.include_router(project_routes.router)


@app.get("/health")
async def health():
    """Health check endpoint for uptime monitoring."""
    return {
        "status": "ok",
        "database": await db.ping(),
        "sessions": len(session_store),
    }
