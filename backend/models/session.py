"""Session models for the generate / refine / interact API."""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field, model_validator


class CreateSessionRequest(BaseModel):
    """What the client sends to open a design session."""

    model_config = {"extra": "forbid"}

    project_id: UUID | None = None  # Load a saved project into the new session


class GenerateRequest(BaseModel):
    model_config = {"extra": "forbid"}

    prompt: str = Field(max_length=10000)


class RefineRequest(BaseModel):
    model_config = {"extra": "forbid"}

    instruction: str = Field(max_length=10000)


class InteractRequest(BaseModel):
    """
    A tap on the preview.

    Either a binding key issued by the current render (plus the gesture id
    that produced it), or the raw action id and description.
    """

    model_config = {"extra": "forbid"}

    binding_key: str | None = Field(default=None, max_length=64)
    gesture_id: str | None = Field(default=None, max_length=64)
    action_id: str | None = Field(default=None, max_length=200)
    action_description: str | None = Field(default=None, max_length=1000)

    @model_validator(mode="after")
    def _one_target(self) -> InteractRequest:
        if bool(self.binding_key) == bool(self.action_id):
            raise ValueError("Provide exactly one of binding_key or action_id.")
        return self


class UnlockRequest(BaseModel):
    model_config = {"extra": "forbid"}

    code: str = Field(min_length=1, max_length=100)


class ApiKeyRequest(BaseModel):
    model_config = {"extra": "forbid"}

    api_key: str = Field(min_length=1, max_length=500)


class SaveRequest(BaseModel):
    """Name/metadata for the project written from the session."""

    model_config = {"extra": "forbid"}

    name: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = Field(default=None, max_length=2000)
    # None leaves the saved value alone when the project already exists
    is_public: bool | None = None
    category: str | None = Field(default=None, max_length=50)


class HistoryEntryResponse(BaseModel):
    kind: Literal["user", "assistant", "interaction"]
    text: str
    timestamp: datetime


class ActionResponse(BaseModel):
    """One tappable element in the current preview."""

    binding_key: str
    action_id: str
    action_description: str


class SessionResponse(BaseModel):
    """What the API returns for a session."""

    id: UUID
    source_code: str
    preview_markup: str
    history: list[HistoryEntryResponse]
    credits_remaining: int
    unlimited_unlocked: bool
    state: Literal["idle", "submitting", "error"]
    error: str | None
    prompt: str | None
    project_id: UUID | None
    pair_hash: str
    actions: list[ActionResponse]


class MutationResponse(BaseModel):
    """Outcome of generate / refine / interact, plus the resulting session."""

    status: Literal["applied", "denied", "failed", "superseded"]
    message: str | None = None
    error_kind: str | None = None
    session: SessionResponse


class UnlockResponse(BaseModel):
    unlocked: bool
    message: str
    session: SessionResponse


class ApiKeyResponse(BaseModel):
    provider: str
    key_snippet: str
    connected: bool
