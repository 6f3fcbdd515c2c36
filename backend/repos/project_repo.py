"""Repository for saved project operations."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from uuid import UUID, uuid4

import asyncpg

from backend.db import system_conn, user_conn
from backend.models.project import CreateProjectRequest, Project, UpdateProjectRequest

logger = logging.getLogger(__name__)

_UPDATABLE = (
    "name",
    "description",
    "prompt",
    "generated_code",
    "preview_html",
    "is_public",
    "allow_remix",
    "category",
)


def _row_to_project(row: asyncpg.Record) -> Project:
    """Convert a database row to a Project model."""
    return Project(
        id=row["id"],
        user_id=row["user_id"],
        name=row["name"],
        description=row["description"],
        prompt=row["prompt"],
        generated_code=row["generated_code"],
        preview_html=row["preview_html"],
        is_public=row["is_public"],
        allow_remix=row["allow_remix"],
        category=row["category"],
        original_project_id=row["original_project_id"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class ProjectRepo:
    """
    All project-related database operations.

    Database failures are logged and reported as None / False / [] so the
    design session keeps working when persistence is down.
    """

    async def create(self, user_id: str, req: CreateProjectRequest) -> Project | None:
        """
        Create a new project for a user.

        Args:
            user_id: Owner id
            req: CreateProjectRequest with project content

        Returns:
            Newly created Project, or None on database failure
        """
        project_id = uuid4()
        now = datetime.now(UTC)

        try:
            async with user_conn(user_id) as conn:
                row = await conn.fetchrow(
                    """
                    INSERT INTO projects (
                        id, user_id, name, description, prompt, generated_code, preview_html,
                        is_public, allow_remix, category, original_project_id, created_at, updated_at
                    )
                    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12, $12)
                    RETURNING *
                    """,
                    project_id,
                    user_id,
                    req.name,
                    req.description,
                    req.prompt,
                    req.generated_code,
                    req.preview_html,
                    req.is_public,
                    req.allow_remix,
                    req.category,
                    req.original_project_id,
                    now,
                )
        except asyncpg.PostgresError as e:
            logger.error("Error creating project for user %s: %s", user_id, e)
            return None

        logger.info("Project created: %s (%d chars of code)", project_id, len(req.generated_code))
        return _row_to_project(row)

    async def get(self, user_id: str, project_id: UUID) -> Project | None:
        """
        Get one of the user's own projects by ID.

        RLS also exposes other users' public projects, so ownership is
        checked explicitly.

        Returns:
            Project if found and owned by user, None otherwise
        """
        try:
            async with user_conn(user_id) as conn:
                row = await conn.fetchrow(
                    "SELECT * FROM projects WHERE id = $1 AND user_id = $2",
                    project_id,
                    user_id,
                )
        except asyncpg.PostgresError as e:
            logger.error("Error getting project %s: %s", project_id, e)
            return None
        return _row_to_project(row) if row else None

    async def list_for_user(self, user_id: str) -> list[Project]:
        """List a user's projects, newest first."""
        try:
            async with user_conn(user_id) as conn:
                rows = await conn.fetch(
                    "SELECT * FROM projects WHERE user_id = $1 ORDER BY created_at DESC",
                    user_id,
                )
        except asyncpg.PostgresError as e:
            logger.error("Error listing projects for user %s: %s", user_id, e)
            return []
        return [_row_to_project(row) for row in rows]

    async def get_visible(self, user_id: str, project_id: UUID) -> Project | None:
        """Get a project the user owns or that is public. RLS decides which."""
        try:
            async with user_conn(user_id) as conn:
                row = await conn.fetchrow("SELECT * FROM projects WHERE id = $1", project_id)
        except asyncpg.PostgresError as e:
            logger.error("Error getting project %s: %s", project_id, e)
            return None
        return _row_to_project(row) if row else None

    async def get_public(self, project_id: UUID) -> Project | None:
        """Get a shared project for anyone, signed in or not."""
        try:
            async with system_conn() as conn:
                row = await conn.fetchrow("SELECT * FROM projects WHERE id = $1 AND is_public", project_id)
        except asyncpg.PostgresError as e:
            logger.error("Error getting public project %s: %s", project_id, e)
            return None
        return _row_to_project(row) if row else None

    async def list_public(
        self,
        category: str | None = None,
        search: str | None = None,
        limit: int = 50,
    ) -> list[Project]:
        """
        List shared projects, newest first.

        Args:
            category: Only this category, if given
            search: Case-insensitive substring of name or description
            limit: Maximum rows returned
        """
        pattern = None
        if search:
            escaped = search.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
            pattern = f"%{escaped}%"

        try:
            async with system_conn() as conn:
                rows = await conn.fetch(
                    """
                    SELECT * FROM projects
                    WHERE is_public
                      AND ($1::text IS NULL OR category = $1)
                      AND ($2::text IS NULL OR name ILIKE $2 OR description ILIKE $2)
                    ORDER BY created_at DESC
                    LIMIT $3
                    """,
                    category,
                    pattern,
                    limit,
                )
        except asyncpg.PostgresError as e:
            logger.error("Error listing public projects: %s", e)
            return []
        return [_row_to_project(row) for row in rows]

    async def remix(self, user_id: str, original: Project, name: str | None = None) -> Project | None:
        """
        Copy a project into the user's own projects.

        The copy is private, keeps the original's remix permission, and
        points back at it through original_project_id.
        """
        return await self.create(
            user_id,
            CreateProjectRequest(
                name=name or f"{original.name} (Remix)"[:200],
                description=original.description,
                prompt=original.prompt,
                generated_code=original.generated_code,
                preview_html=original.preview_html,
                is_public=False,
                allow_remix=original.allow_remix,
                category=original.category,
                original_project_id=original.id,
            ),
        )

    async def update(self, user_id: str, project_id: UUID, req: UpdateProjectRequest) -> Project | None:
        """
        Update a project. RLS ensures only the owner can update.

        Returns:
            Updated Project if found and owned by user, None otherwise
        """
        # Build SET clause from non-None fields only
        updates = {k: v for k in _UPDATABLE if (v := getattr(req, k)) is not None}
        if not updates:
            return await self.get(user_id, project_id)

        set_clause = ", ".join(f"{k} = ${i + 2}" for i, k in enumerate(updates))

        try:
            async with user_conn(user_id) as conn:
                # S608/B608: False positive - set_clause only contains column names from _UPDATABLE
                row = await conn.fetchrow(
                    f"""
                    UPDATE projects
                    SET {set_clause}, updated_at = now()
                    WHERE id = $1
                    RETURNING *
                    """,  # nosec B608
                    project_id,
                    *updates.values(),
                )
        except asyncpg.PostgresError as e:
            logger.error("Error updating project %s: %s", project_id, e)
            return None
        return _row_to_project(row) if row else None

    async def delete(self, user_id: str, project_id: UUID) -> bool:
        """
        Delete a project. RLS ensures only the owner can delete.

        Returns:
            True if deleted, False if not found, not owned, or on failure
        """
        try:
            async with user_conn(user_id) as conn:
                result = await conn.execute("DELETE FROM projects WHERE id = $1", project_id)
        except asyncpg.PostgresError as e:
            logger.error("Error deleting project %s: %s", project_id, e)
            return False
        return result == "DELETE 1"
