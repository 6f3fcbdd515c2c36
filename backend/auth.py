"""
Authentication for myPip.

Sessions are established by the external identity provider, which issues a
signed JWT. We only verify it and read the subject as an opaque user id.
"""

from __future__ import annotations

from typing import Annotated

import jwt
from fastapi import Cookie, Header, HTTPException, status

from backend import config
from backend.models.identity import Identity


def decode_jwt(token: str) -> dict:
    """
    Decode and verify an identity-provider JWT.

    Args:
        token: JWT string to decode

    Returns:
        Decoded payload

    Raises:
        HTTPException: If token is invalid or expired
    """
    options = {"require": ["sub", "exp"]}
    audience = config.settings.AUTH_JWT_AUDIENCE or None
    if audience is None:
        options["verify_aud"] = False
    try:
        return jwt.decode(
            token,
            config.settings.AUTH_JWT_KEY,
            algorithms=[config.settings.AUTH_JWT_ALGORITHM],
            audience=audience,
            options=options,
        )
    except jwt.ExpiredSignatureError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Session expired. Please sign in again.",
        ) from e
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token. Please sign in again.",
        ) from e


def identity_from_token(token: str) -> Identity:
    """Verify a token and return who it belongs to."""
    payload = decode_jwt(token)
    user_id = payload.get("sub")
    if not isinstance(user_id, str) or not user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid session token. Please sign in again.",
        )
    email = payload.get("email")
    return Identity(user_id=user_id, email=email if isinstance(email, str) else None)


def _token_from(session: str | None, authorization: str | None) -> str | None:
    # Bearer header first (CLI / API clients), then the browser cookie
    if authorization and authorization.startswith("Bearer "):
        return authorization.removeprefix("Bearer ").strip() or None
    return session or None


async def get_current_user(
    session: Annotated[str | None, Cookie()] = None,
    authorization: Annotated[str | None, Header()] = None,
) -> Identity:
    """
    FastAPI dependency to get the current authenticated user.

    Tries the Bearer token first, then the session cookie.

    Raises:
        HTTPException: If authentication fails
    """
    token = _token_from(session, authorization)
    if token is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated. Please sign in.",
        )
    return identity_from_token(token)


async def get_optional_user(
    session: Annotated[str | None, Cookie()] = None,
    authorization: Annotated[str | None, Header()] = None,
) -> Identity | None:
    """Like get_current_user, but returns None for anonymous or invalid credentials."""
    token = _token_from(session, authorization)
    if token is None:
        return None
    try:
        return identity_from_token(token)
    except HTTPException:
        return None
