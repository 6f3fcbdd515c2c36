"""Project CRUD and sharing routes."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status

from backend.auth import get_current_user
from backend.models.identity import Identity
from backend.models.project import CreateProjectRequest, ProjectResponse, RemixRequest, UpdateProjectRequest
from backend.repos.project_repo import ProjectRepo

router = APIRouter(prefix="/api/projects", tags=["projects"])
project_repo = ProjectRepo()


@router.get("", status_code=200)
async def list_projects(user: Identity = Depends(get_current_user)) -> list[ProjectResponse]:
    """List the current user's projects, newest first."""
    projects = await project_repo.list_for_user(user.user_id)
    return [ProjectResponse.from_model(p) for p in projects]


@router.get("/public", status_code=200)
async def list_public_projects(
    category: str | None = Query(default=None, max_length=50),
    search: str | None = Query(default=None, max_length=200),
    limit: int = Query(default=50, ge=1, le=100),
) -> list[ProjectResponse]:
    """Shared projects from every user, newest first. No sign-in needed."""
    if category == "All Categories":
        category = None
    projects = await project_repo.list_public(category=category, search=search or None, limit=limit)
    return [ProjectResponse.from_model(p) for p in projects]


@router.get("/public/{project_id}", status_code=200)
async def get_public_project(project_id: UUID) -> ProjectResponse:
    """A shared project, including its code and preview."""
    project = await project_repo.get_public(project_id)
    if not project:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
    return ProjectResponse.from_model(project, include_content=True)


@router.post("", status_code=201)
async def create_project(
    req: CreateProjectRequest,
    user: Identity = Depends(get_current_user),
) -> ProjectResponse:
    """Create a project from an explicit source/markup pair."""
    project = await project_repo.create(user.user_id, req)
    if not project:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not save project. Please try again.",
        )
    return ProjectResponse.from_model(project, include_content=True)


@router.get("/{project_id}", status_code=200)
async def get_project(
    project_id: UUID,
    user: Identity = Depends(get_current_user),
) -> ProjectResponse:
    """Get a single project, including its code and preview."""
    project = await project_repo.get(user.user_id, project_id)
    if not project:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
    return ProjectResponse.from_model(project, include_content=True)


@router.patch("/{project_id}", status_code=200)
async def update_project(
    project_id: UUID,
    req: UpdateProjectRequest,
    user: Identity = Depends(get_current_user),
) -> ProjectResponse:
    """Update a project's metadata or content."""
    project = await project_repo.update(user.user_id, project_id, req)
    if not project:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
    return ProjectResponse.from_model(project, include_content=True)


@router.delete("/{project_id}", status_code=204)
async def delete_project(
    project_id: UUID,
    user: Identity = Depends(get_current_user),
) -> None:
    """Permanently delete a project."""
    if not await project_repo.delete(user.user_id, project_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")


@router.post("/{project_id}/remix", status_code=201)
async def remix_project(
    project_id: UUID,
    req: RemixRequest | None = None,
    user: Identity = Depends(get_current_user),
) -> ProjectResponse:
    """
    Copy a project into the current user's projects.

    Own projects can always be copied. Another user's project must be public
    and allow remixes. The copy starts private.
    """
    original = await project_repo.get_visible(user.user_id, project_id)
    if not original:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")
    if original.user_id != user.user_id and not original.allow_remix:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This project does not allow remixes.",
        )

    project = await project_repo.remix(user.user_id, original, name=req.name if req else None)
    if not project:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not save project. Please try again.",
        )
    return ProjectResponse.from_model(project, include_content=True)
