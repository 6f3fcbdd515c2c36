"""Identity route."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from backend.auth import get_optional_user
from backend.models.identity import Identity, MeResponse

router = APIRouter(prefix="/api", tags=["identity"])


@router.get("/me", status_code=200)
async def me(user: Identity | None = Depends(get_optional_user)) -> MeResponse:
    """Who is signed in, if anyone. Never 401."""
    if user is None:
        return MeResponse(signed_in=False)
    return MeResponse(signed_in=True, user_id=user.user_id)
