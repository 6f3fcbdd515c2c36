"""
Tests for authentication (identity-provider JWTs).
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import jwt
import pytest
from fastapi import HTTPException

from backend import config
from backend.auth import _token_from, decode_jwt, identity_from_token


class TestJWT:
    """Token verification."""

    def test_decode_valid_token(self, token_for, user_id):
        payload = decode_jwt(token_for(user_id))

        assert payload["sub"] == user_id
        assert "exp" in payload

    def test_expired_token(self, token_for, user_id):
        token = token_for(user_id, expires_in=timedelta(hours=-1))

        with pytest.raises(HTTPException) as exc_info:
            decode_jwt(token)

        assert exc_info.value.status_code == 401
        assert "expired" in exc_info.value.detail.lower()

    def test_wrong_key(self, token_for, user_id):
        token = token_for(user_id, key="some-other-key-that-is-not-ours")

        with pytest.raises(HTTPException) as exc_info:
            decode_jwt(token)

        assert exc_info.value.status_code == 401
        assert "invalid" in exc_info.value.detail.lower()

    def test_missing_subject(self):
        payload = {"exp": datetime.now(UTC) + timedelta(hours=1)}
        token = jwt.encode(payload, config.settings.AUTH_JWT_KEY, algorithm=config.settings.AUTH_JWT_ALGORITHM)

        with pytest.raises(HTTPException) as exc_info:
            decode_jwt(token)

        assert exc_info.value.status_code == 401

    def test_garbage_token(self):
        with pytest.raises(HTTPException) as exc_info:
            decode_jwt("not-a-jwt")

        assert exc_info.value.status_code == 401

    def test_audience_checked_when_configured(self, monkeypatch, user_id):
        monkeypatch.setattr(config.settings, "AUTH_JWT_AUDIENCE", "mypip")
        now = datetime.now(UTC)
        good = jwt.encode(
            {"sub": user_id, "exp": now + timedelta(hours=1), "aud": "mypip"},
            config.settings.AUTH_JWT_KEY,
            algorithm=config.settings.AUTH_JWT_ALGORITHM,
        )
        bad = jwt.encode(
            {"sub": user_id, "exp": now + timedelta(hours=1), "aud": "elsewhere"},
            config.settings.AUTH_JWT_KEY,
            algorithm=config.settings.AUTH_JWT_ALGORITHM,
        )

        assert decode_jwt(good)["sub"] == user_id
        with pytest.raises(HTTPException):
            decode_jwt(bad)


class TestIdentity:
    def test_identity_from_token(self, user_id):
        token = jwt.encode(
            {"sub": user_id, "exp": datetime.now(UTC) + timedelta(hours=1), "email": "pip@example.com"},
            config.settings.AUTH_JWT_KEY,
            algorithm=config.settings.AUTH_JWT_ALGORITHM,
        )

        identity = identity_from_token(token)

        assert identity.user_id == user_id
        assert identity.email == "pip@example.com"

    def test_bearer_preferred_over_cookie(self):
        assert _token_from("cookie-token", "Bearer header-token") == "header-token"

    def test_cookie_fallback(self):
        assert _token_from("cookie-token", None) == "cookie-token"
        assert _token_from("cookie-token", "Basic abc") == "cookie-token"

    def test_no_credentials(self):
        assert _token_from(None, None) is None
        assert _token_from("", "Bearer ") is None


@pytest.mark.asyncio(loop_scope="session")
class TestMeRoute:
    """GET /api/me never returns 401."""

    async def test_anonymous(self, async_client):
        res = await async_client.get("/api/me")
        assert res.status_code == 200
        assert res.json() == {"signed_in": False, "user_id": None}

    async def test_signed_in_with_bearer(self, async_client, auth_headers, user_id):
        res = await async_client.get("/api/me", headers=auth_headers)
        assert res.json() == {"signed_in": True, "user_id": user_id}

    async def test_signed_in_with_cookie(self, async_client, token_for, user_id):
        async_client.cookies.set("session", token_for(user_id))
        res = await async_client.get("/api/me")
        assert res.json()["signed_in"] is True

    async def test_invalid_token_is_anonymous(self, async_client):
        res = await async_client.get("/api/me", headers={"Authorization": "Bearer nope"})
        assert res.status_code == 200
        assert res.json()["signed_in"] is False

    async def test_protected_route_rejects_expired_token(self, async_client, token_for, user_id):
        headers = {"Authorization": f"Bearer {token_for(user_id, expires_in=timedelta(minutes=-5))}"}
        res = await async_client.get("/api/projects", headers=headers)
        assert res.status_code == 401
        assert res.json()["detail"] == "Session expired. Please sign in again."
