"""Identity of the caller, as asserted by the identity provider's JWT."""

from __future__ import annotations

from pydantic import BaseModel


class Identity(BaseModel):
    """Authenticated caller. user_id is opaque (the token's subject)."""

    user_id: str
    email: str | None = None


class MeResponse(BaseModel):
    signed_in: bool
    user_id: str | None = None
