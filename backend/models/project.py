"""Project models for saved app designs."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field


class Project(BaseModel):
    """Core project model. Represents a row in the projects table."""

    id: UUID
    user_id: str
    name: str = "Untitled App"
    description: str = ""
    prompt: str = ""
    generated_code: str = ""
    preview_html: str = ""
    is_public: bool = False
    allow_remix: bool = True
    category: str = "other"
    original_project_id: UUID | None = None
    created_at: datetime
    updated_at: datetime


class CreateProjectRequest(BaseModel):
    """What the client sends to create a project."""

    model_config = {"extra": "forbid"}

    name: str = Field(default="Untitled App", min_length=1, max_length=200)
    description: str = Field(default="", max_length=2000)
    prompt: str = Field(default="", max_length=10000)
    generated_code: str = ""
    preview_html: str = ""
    is_public: bool = False
    allow_remix: bool = True
    category: str = Field(default="other", max_length=50)
    original_project_id: UUID | None = None


class UpdateProjectRequest(BaseModel):
    """What the client sends to update a project. All fields optional."""

    model_config = {"extra": "forbid"}

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    prompt: str | None = Field(default=None, max_length=10000)
    generated_code: str | None = None
    preview_html: str | None = None
    is_public: bool | None = None
    allow_remix: bool | None = None
    category: str | None = Field(default=None, max_length=50)


class RemixRequest(BaseModel):
    """Optional name for the copy. Defaults to "<original name> (Remix)"."""

    model_config = {"extra": "forbid"}

    name: str | None = Field(default=None, min_length=1, max_length=200)


class ProjectResponse(BaseModel):
    """What the API returns."""

    id: UUID
    name: str
    description: str
    prompt: str
    is_public: bool
    allow_remix: bool
    category: str
    original_project_id: UUID | None
    created_at: datetime
    updated_at: datetime
    generated_code: str | None = None  # Included when include_content=true
    preview_html: str | None = None

    @classmethod
    def from_model(cls, project: Project, include_content: bool = False) -> ProjectResponse:
        """Convert internal Project model to public API response."""
        return cls(
            id=project.id,
            name=project.name,
            description=project.description,
            prompt=project.prompt,
            is_public=project.is_public,
            allow_remix=project.allow_remix,
            category=project.category,
            original_project_id=project.original_project_id,
            created_at=project.created_at,
            updated_at=project.updated_at,
            generated_code=project.generated_code if include_content else None,
            preview_html=project.preview_html if include_content else None,
        )
