"""
Pydantic models for myPip.

All API data shapes defined here. No imports from db, repos, or routes.
"""

from backend.models.identity import Identity, MeResponse
from backend.models.project import (
    CreateProjectRequest,
    Project,
    ProjectResponse,
    RemixRequest,
    UpdateProjectRequest,
)
from backend.models.session import (
    GenerateRequest,
    InteractRequest,
    MutationResponse,
    RefineRequest,
    SessionResponse,
    UnlockRequest,
)

__all__ = [
    # Identity
    "Identity",
    "MeResponse",
    # Project models
    "Project",
    "CreateProjectRequest",
    "UpdateProjectRequest",
    "ProjectResponse",
    "RemixRequest",
    # Session models
    "GenerateRequest",
    "RefineRequest",
    "InteractRequest",
    "UnlockRequest",
    "SessionResponse",
    "MutationResponse",
]
