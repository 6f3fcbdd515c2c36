"""Design session routes."""

from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import HTMLResponse, Response

from backend.auth import get_current_user
from backend.config import settings
from backend.middleware.rate_limit import rate_limiter
from backend.models.identity import Identity
from backend.models.project import CreateProjectRequest, ProjectResponse, UpdateProjectRequest
from backend.models.session import (
    ActionResponse,
    ApiKeyRequest,
    ApiKeyResponse,
    CreateSessionRequest,
    GenerateRequest,
    HistoryEntryResponse,
    InteractRequest,
    MutationResponse,
    RefineRequest,
    SaveRequest,
    SessionResponse,
    UnlockRequest,
    UnlockResponse,
)
from backend.repos.project_repo import ProjectRepo
from backend.services.session_store import SessionEntry, session_store
from backend.utils.pair_hash import hash_pair
from engine.kernel.entitlement import UNLOCK_ACCEPTED, UNLOCK_REJECTED, verify_unlock_code
from engine.kernel.errors import NothingToDownload
from engine.kernel.preview import render_document
from engine.kernel.session import DENIED_NO_CREDITS
from engine.kernel.types import MutationOutcome, OutcomeStatus

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/sessions", tags=["sessions"])
project_repo = ProjectRepo()

PREVIEW_CSP = (
    "default-src 'none'; "
    "script-src 'unsafe-inline' https://cdn.tailwindcss.com; "
    "style-src 'unsafe-inline'; "
    "img-src data: https:; "
    "font-src data: https:; "
    "connect-src 'self'; "
    "frame-ancestors 'self'"
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_entry(session_id: UUID, user: Identity) -> SessionEntry:
    entry = session_store.get(session_id, user.user_id)
    if entry is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found.")
    return entry


def _check_rate_limit(user: Identity) -> None:
    if not rate_limiter.check_rate_limit(user.user_id, settings.API_RATE_LIMIT_PER_MINUTE, window_minutes=1):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many requests. Please wait a moment and try again.",
            headers={"Retry-After": str(rate_limiter.retry_after(user.user_id))},
        )


def session_response(entry: SessionEntry) -> SessionResponse:
    """Serialize a live session, including the actions of its current render."""
    s = entry.controller.session
    preview = entry.controller.preview
    tags = preview.tags if preview is not None else []
    return SessionResponse(
        id=entry.id,
        source_code=s.source_code,
        preview_markup=s.preview_markup,
        history=[HistoryEntryResponse(kind=h.kind, text=h.text, timestamp=h.timestamp) for h in s.history],
        credits_remaining=s.credits_remaining,
        unlimited_unlocked=s.unlimited_unlocked,
        state=s.state.value,
        error=s.error,
        prompt=s.prompt,
        project_id=entry.project_id,
        pair_hash=hash_pair(s.source_code, s.preview_markup),
        actions=[
            ActionResponse(binding_key=t.binding_key, action_id=t.action_id, action_description=t.action_description)
            for t in tags
        ],
    )


def _mutation_response(entry: SessionEntry, outcome: MutationOutcome) -> MutationResponse:
    if outcome.status == OutcomeStatus.DENIED:
        if outcome.error_kind == DENIED_NO_CREDITS:
            raise HTTPException(status_code=status.HTTP_402_PAYMENT_REQUIRED, detail=outcome.message)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=outcome.message)
    return MutationResponse(
        status=outcome.status.value,
        message=outcome.message,
        error_kind=outcome.error_kind,
        session=session_response(entry),
    )


# ---------------------------------------------------------------------------
# Session lifecycle
# ---------------------------------------------------------------------------


@router.post("", status_code=201)
async def create_session(
    req: CreateSessionRequest | None = None,
    user: Identity = Depends(get_current_user),
) -> SessionResponse:
    """Open a new design session, optionally seeded with a saved project."""
    project = None
    if req is not None and req.project_id is not None:
        project = await project_repo.get(user.user_id, req.project_id)
        if not project:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found.")

    entry = session_store.create(user.user_id)
    if project is not None:
        entry.controller.load(project.generated_code, project.preview_html, prompt=project.prompt or None)
        entry.project_id = project.id
    return session_response(entry)


@router.get("/{session_id}", status_code=200)
async def get_session(
    session_id: UUID,
    user: Identity = Depends(get_current_user),
) -> SessionResponse:
    """Current state of a session."""
    return session_response(_get_entry(session_id, user))


@router.delete("/{session_id}", status_code=204)
async def delete_session(
    session_id: UUID,
    user: Identity = Depends(get_current_user),
) -> None:
    """Close a session. Unsaved work is discarded."""
    if not session_store.delete(session_id, user.user_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Session not found.")


@router.post("/{session_id}/reset", status_code=200)
async def reset_session(
    session_id: UUID,
    user: Identity = Depends(get_current_user),
) -> SessionResponse:
    """Start a new app in the same session. Credits and unlock carry over."""
    entry = _get_entry(session_id, user)
    entry.controller.reset()
    entry.project_id = None
    return session_response(entry)


# ---------------------------------------------------------------------------
# Mutations
# ---------------------------------------------------------------------------


@router.post("/{session_id}/generate", status_code=200)
async def generate(
    session_id: UUID,
    req: GenerateRequest,
    user: Identity = Depends(get_current_user),
) -> MutationResponse:
    """Generate a new app from a description."""
    entry = _get_entry(session_id, user)
    _check_rate_limit(user)
    outcome = await entry.controller.generate(req.prompt)
    return _mutation_response(entry, outcome)


@router.post("/{session_id}/refine", status_code=200)
async def refine(
    session_id: UUID,
    req: RefineRequest,
    user: Identity = Depends(get_current_user),
) -> MutationResponse:
    """Apply a free-text change request to the current app."""
    entry = _get_entry(session_id, user)
    _check_rate_limit(user)
    outcome = await entry.controller.refine(req.instruction)
    return _mutation_response(entry, outcome)


@router.post("/{session_id}/interact", status_code=200)
async def interact(
    session_id: UUID,
    req: InteractRequest,
    user: Identity = Depends(get_current_user),
) -> MutationResponse:
    """
    Handle a tap on the preview.

    A binding_key must come from the session's current render. Keys from an
    older render are rejected with 409 so the client reloads the preview.
    Repeated events of one gesture are acknowledged without a second call.
    """
    entry = _get_entry(session_id, user)
    _check_rate_limit(user)

    if req.action_id:
        outcome = await entry.controller.interact(req.action_id, req.action_description or req.action_id)
        return _mutation_response(entry, outcome)

    preview = entry.controller.preview
    if preview is None or preview.resolve(req.binding_key) is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This preview is out of date. Reload it and try again.",
        )

    pending = preview.activate(req.binding_key, event="click", gesture_id=req.gesture_id)
    if pending is None:
        return MutationResponse(
            status="superseded",
            message="Gesture already handled.",
            session=session_response(entry),
        )
    return _mutation_response(entry, await pending)


@router.post("/{session_id}/unlock", status_code=200)
async def unlock(
    session_id: UUID,
    req: UnlockRequest,
    user: Identity = Depends(get_current_user),
) -> UnlockResponse:
    """Redeem an unlock code for unlimited prompts."""
    entry = _get_entry(session_id, user)
    verification = verify_unlock_code(req.code, settings.UNLOCK_CODE)
    unlocked = entry.controller.unlock(verification)
    if not unlocked:
        logger.info("Rejected unlock code for session %s", session_id)
    return UnlockResponse(
        unlocked=unlocked,
        message=UNLOCK_ACCEPTED if unlocked else UNLOCK_REJECTED,
        session=session_response(entry),
    )


@router.put("/{session_id}/api-key", status_code=200)
async def set_api_key(
    session_id: UUID,
    req: ApiKeyRequest,
    user: Identity = Depends(get_current_user),
) -> ApiKeyResponse:
    """Use the caller's own provider key for this session."""
    entry = _get_entry(session_id, user)
    client = session_store.set_api_key(entry, req.api_key)
    connected = await client.check_connection()
    return ApiKeyResponse(
        provider=client.config.provider,
        key_snippet=client.config.key_snippet,
        connected=connected,
    )


# ---------------------------------------------------------------------------
# Outputs
# ---------------------------------------------------------------------------


@router.get("/{session_id}/preview", status_code=200)
async def preview(
    session_id: UUID,
    user: Identity = Depends(get_current_user),
) -> HTMLResponse:
    """Sandboxed preview document for the current render."""
    entry = _get_entry(session_id, user)
    bound = entry.controller.preview or entry.controller.render()
    html = render_document(bound, interact_url=f"/api/sessions/{session_id}/interact")
    return HTMLResponse(
        content=html,
        headers={
            "Content-Security-Policy": PREVIEW_CSP,
            "Cache-Control": "no-store",
            "X-Content-Type-Options": "nosniff",
        },
    )


@router.get("/{session_id}/download", status_code=200)
async def download(
    session_id: UUID,
    user: Identity = Depends(get_current_user),
) -> Response:
    """Download the generated source as a Swift file."""
    entry = _get_entry(session_id, user)
    try:
        filename, content = entry.controller.download_source()
    except NothingToDownload as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e
    return Response(
        content=content,
        media_type="text/x-swift",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/{session_id}/save", status_code=200)
async def save(
    session_id: UUID,
    req: SaveRequest,
    user: Identity = Depends(get_current_user),
) -> ProjectResponse:
    """Create or update the project backing this session."""
    entry = _get_entry(session_id, user)
    s = entry.controller.session
    if not s.has_generated:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Nothing to save yet.")

    project = None
    if entry.project_id is not None:
        project = await project_repo.update(
            user.user_id,
            entry.project_id,
            UpdateProjectRequest(
                name=req.name,
                description=req.description,
                prompt=s.prompt,
                generated_code=s.source_code,
                preview_html=s.preview_markup,
                is_public=req.is_public,
                category=req.category,
            ),
        )
    if project is None:
        project = await project_repo.create(
            user.user_id,
            CreateProjectRequest(
                name=req.name or _default_name(s.prompt),
                description=req.description or "",
                prompt=s.prompt or "",
                generated_code=s.source_code,
                preview_html=s.preview_markup,
                is_public=bool(req.is_public),
                category=req.category or "other",
            ),
        )
    if project is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Could not save project. Please try again.",
        )

    entry.project_id = project.id
    return ProjectResponse.from_model(project)


def _default_name(prompt: str | None) -> str:
    if not prompt:
        return "Untitled App"
    name = prompt.strip().splitlines()[0]
    return name if len(name) <= 60 else name[:57].rstrip() + "..."
