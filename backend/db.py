"""
Database connection pool and RLS-scoped connection managers.

All database access goes through user_conn() or system_conn().
Never use pool.acquire() directly outside this module.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from uuid import UUID

import asyncpg

from backend import config

pool: asyncpg.Pool | None = None


async def init_pool() -> None:
    """
    Initialize the connection pool.
    Called once at application startup.
    """
    global pool
    pool = await asyncpg.create_pool(
        dsn=config.settings.DATABASE_URL,
        min_size=1,
        max_size=10,
        command_timeout=30,
        init=_init_connection,
    )


async def close_pool() -> None:
    """
    Close the connection pool.
    Called at application shutdown.
    """
    global pool
    if pool is not None:
        await pool.close()
        pool = None


async def _init_connection(conn: asyncpg.Connection) -> None:
    """Decode project ids straight to UUID."""
    await conn.set_type_codec(
        "uuid",
        encoder=str,
        decoder=lambda x: UUID(x),
        schema="pg_catalog",
    )


@asynccontextmanager
async def user_conn(user_id: str):
    """
    Acquire a database connection scoped to a specific user via RLS.

    Every query through this connection can only see/modify project rows
    whose user_id matches. Enforced by Postgres RLS policies.

    Usage:
        async with user_conn(user_id) as conn:
            row = await conn.fetchrow("SELECT * FROM projects WHERE id = $1", project_id)

    Args:
        user_id: Opaque identity-provider user id

    Yields:
        asyncpg.Connection with RLS context set
    """
    if pool is None:
        raise RuntimeError("Database pool not initialized. Call init_pool() first.")

    async with pool.acquire() as conn:
        async with conn.transaction():
            # All policies reference current_setting('app.user_id')
            await conn.execute(
                "SELECT set_config('app.user_id', $1, true)",
                str(user_id),
            )
            yield conn


@asynccontextmanager
async def system_conn():
    """
    Acquire a database connection without user scoping.

    For system operations (health checks) and reads of public projects. With
    an empty app.user_id, RLS exposes only rows marked is_public.

    Yields:
        asyncpg.Connection without RLS scoping
    """
    if pool is None:
        raise RuntimeError("Database pool not initialized. Call init_pool() first.")

    async with pool.acquire() as conn:
        async with conn.transaction():
            await conn.execute("SELECT set_config('app.user_id', '', true)")
            yield conn


async def ping() -> bool:
    """True if the pool is up and answers a trivial query."""
    if pool is None:
        return False
    try:
        async with system_conn() as conn:
            return await conn.fetchval("SELECT 1") == 1
    except (asyncpg.PostgresError, OSError):
        return False
