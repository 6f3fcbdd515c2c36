"""Route tests for /api/projects. The repo is patched, so no database is needed."""

from __future__ import annotations

from datetime import UTC, datetime
from unittest.mock import AsyncMock, patch
from uuid import uuid4

import pytest

from backend.models.project import Project
from backend.repos.project_repo import ProjectRepo

pytestmark = pytest.mark.asyncio(loop_scope="session")

REPO = "backend.routes.projects.project_repo"


def _project(user_id: str, name: str = "Habit Tracker", **overrides) -> Project:
    now = datetime.now(UTC)
    fields = {
        "id": uuid4(),
        "user_id": user_id,
        "name": name,
        "prompt": "a habit tracker",
        "generated_code": "import SwiftUI",
        "preview_html": "<div>Habits</div>",
        "created_at": now,
        "updated_at": now,
    }
    fields.update(overrides)
    return Project(**fields)


class TestListProjects:
    async def test_requires_auth(self, async_client):
        res = await async_client.get("/api/projects")
        assert res.status_code == 401

    async def test_list_omits_content(self, async_client, auth_headers, user_id):
        projects = [_project(user_id, "B"), _project(user_id, "A")]
        with patch(f"{REPO}.list_for_user", new=AsyncMock(return_value=projects)) as list_for_user:
            res = await async_client.get("/api/projects", headers=auth_headers)

        assert res.status_code == 200
        data = res.json()
        assert [p["name"] for p in data] == ["B", "A"]
        assert data[0]["generated_code"] is None
        assert data[0]["preview_html"] is None
        list_for_user.assert_awaited_once_with(user_id)


class TestProjectCrud:
    async def test_create(self, async_client, auth_headers, user_id):
        project = _project(user_id)
        with patch(f"{REPO}.create", new=AsyncMock(return_value=project)) as create:
            res = await async_client.post(
                "/api/projects",
                json={"name": "Habit Tracker", "generated_code": "import SwiftUI", "preview_html": "<div>Habits</div>"},
                headers=auth_headers,
            )

        assert res.status_code == 201
        assert res.json()["generated_code"] == "import SwiftUI"
        assert create.call_args.args[0] == user_id

    async def test_create_rejects_unknown_fields(self, async_client, auth_headers):
        res = await async_client.post("/api/projects", json={"name": "x", "owner": "someone"}, headers=auth_headers)
        assert res.status_code == 422

    async def test_create_when_database_is_down(self, async_client, auth_headers):
        with patch(f"{REPO}.create", new=AsyncMock(return_value=None)):
            res = await async_client.post("/api/projects", json={"name": "x"}, headers=auth_headers)
        assert res.status_code == 503

    async def test_get(self, async_client, auth_headers, user_id):
        project = _project(user_id)
        with patch(f"{REPO}.get", new=AsyncMock(return_value=project)):
            res = await async_client.get(f"/api/projects/{project.id}", headers=auth_headers)

        assert res.status_code == 200
        assert res.json()["id"] == str(project.id)
        assert res.json()["preview_html"] == "<div>Habits</div>"

    async def test_get_missing(self, async_client, auth_headers):
        with patch(f"{REPO}.get", new=AsyncMock(return_value=None)):
            res = await async_client.get(f"/api/projects/{uuid4()}", headers=auth_headers)
        assert res.status_code == 404

    async def test_get_invalid_id(self, async_client, auth_headers):
        res = await async_client.get("/api/projects/not-a-uuid", headers=auth_headers)
        assert res.status_code == 422

    async def test_update(self, async_client, auth_headers, user_id):
        project = _project(user_id, name="Renamed")
        with patch(f"{REPO}.update", new=AsyncMock(return_value=project)) as update:
            res = await async_client.patch(
                f"/api/projects/{project.id}",
                json={"name": "Renamed", "is_public": True},
                headers=auth_headers,
            )

        assert res.status_code == 200
        assert res.json()["name"] == "Renamed"
        req = update.call_args.args[2]
        assert req.name == "Renamed"
        assert req.is_public is True
        assert req.generated_code is None

    async def test_update_missing(self, async_client, auth_headers):
        with patch(f"{REPO}.update", new=AsyncMock(return_value=None)):
            res = await async_client.patch(f"/api/projects/{uuid4()}", json={"name": "x"}, headers=auth_headers)
        assert res.status_code == 404

    async def test_delete(self, async_client, auth_headers):
        with patch(f"{REPO}.delete", new=AsyncMock(return_value=True)):
            res = await async_client.delete(f"/api/projects/{uuid4()}", headers=auth_headers)
        assert res.status_code == 204

    async def test_delete_missing(self, async_client, auth_headers):
        with patch(f"{REPO}.delete", new=AsyncMock(return_value=False)):
            res = await async_client.delete(f"/api/projects/{uuid4()}", headers=auth_headers)
        assert res.status_code == 404


# ── sharing ─────────────────────────────────────────────────────────────────

OTHER_OWNER = "user_2someoneelse000000000000"


class TestPublicProjects:
    """Shared projects are readable without signing in."""

    async def test_list_public_without_auth(self, async_client):
        projects = [_project(OTHER_OWNER, "Timer", is_public=True)]
        with patch(f"{REPO}.list_public", new=AsyncMock(return_value=projects)) as list_public:
            res = await async_client.get("/api/projects/public")

        assert res.status_code == 200
        assert [p["name"] for p in res.json()] == ["Timer"]
        assert res.json()[0]["generated_code"] is None
        assert "user_id" not in res.json()[0]
        list_public.assert_awaited_once_with(category=None, search=None, limit=50)

    async def test_list_public_filters(self, async_client):
        with patch(f"{REPO}.list_public", new=AsyncMock(return_value=[])) as list_public:
            await async_client.get("/api/projects/public", params={"category": "games", "search": "snake", "limit": 10})
            await async_client.get("/api/projects/public", params={"category": "All Categories"})

        assert list_public.await_args_list[0].kwargs == {"category": "games", "search": "snake", "limit": 10}
        assert list_public.await_args_list[1].kwargs["category"] is None

    async def test_list_public_limit_is_bounded(self, async_client):
        res = await async_client.get("/api/projects/public", params={"limit": 1000})
        assert res.status_code == 422

    async def test_get_public_includes_content(self, async_client):
        project = _project(OTHER_OWNER, is_public=True)
        with patch(f"{REPO}.get_public", new=AsyncMock(return_value=project)):
            res = await async_client.get(f"/api/projects/public/{project.id}")

        assert res.status_code == 200
        assert res.json()["generated_code"] == "import SwiftUI"

    async def test_get_public_missing(self, async_client):
        with patch(f"{REPO}.get_public", new=AsyncMock(return_value=None)):
            res = await async_client.get(f"/api/projects/public/{uuid4()}")
        assert res.status_code == 404


class TestRemix:
    async def test_remix_requires_auth(self, async_client):
        res = await async_client.post(f"/api/projects/{uuid4()}/remix")
        assert res.status_code == 401

    async def test_remix_public_project(self, async_client, auth_headers, user_id):
        original = _project(OTHER_OWNER, "Timer", is_public=True)
        copy = _project(user_id, "Timer (Remix)", original_project_id=original.id)
        with (
            patch(f"{REPO}.get_visible", new=AsyncMock(return_value=original)),
            patch(f"{REPO}.remix", new=AsyncMock(return_value=copy)) as remix,
        ):
            res = await async_client.post(f"/api/projects/{original.id}/remix", headers=auth_headers)

        assert res.status_code == 201
        assert res.json()["original_project_id"] == str(original.id)
        assert res.json()["is_public"] is False
        remix.assert_awaited_once_with(user_id, original, name=None)

    async def test_remix_with_name(self, async_client, auth_headers, user_id):
        original = _project(OTHER_OWNER, is_public=True)
        with (
            patch(f"{REPO}.get_visible", new=AsyncMock(return_value=original)),
            patch(f"{REPO}.remix", new=AsyncMock(return_value=_project(user_id, "Mine"))) as remix,
        ):
            res = await async_client.post(
                f"/api/projects/{original.id}/remix",
                json={"name": "Mine"},
                headers=auth_headers,
            )

        assert res.status_code == 201
        assert remix.await_args.kwargs["name"] == "Mine"

    async def test_remix_not_allowed(self, async_client, auth_headers):
        original = _project(OTHER_OWNER, is_public=True, allow_remix=False)
        with (
            patch(f"{REPO}.get_visible", new=AsyncMock(return_value=original)),
            patch(f"{REPO}.remix", new=AsyncMock()) as remix,
        ):
            res = await async_client.post(f"/api/projects/{original.id}/remix", headers=auth_headers)

        assert res.status_code == 403
        remix.assert_not_awaited()

    async def test_own_project_can_always_be_copied(self, async_client, auth_headers, user_id):
        original = _project(user_id, allow_remix=False)
        with (
            patch(f"{REPO}.get_visible", new=AsyncMock(return_value=original)),
            patch(f"{REPO}.remix", new=AsyncMock(return_value=_project(user_id))),
        ):
            res = await async_client.post(f"/api/projects/{original.id}/remix", headers=auth_headers)

        assert res.status_code == 201

    async def test_remix_private_or_missing(self, async_client, auth_headers):
        with patch(f"{REPO}.get_visible", new=AsyncMock(return_value=None)):
            res = await async_client.post(f"/api/projects/{uuid4()}/remix", headers=auth_headers)
        assert res.status_code == 404

    async def test_remix_when_database_is_down(self, async_client, auth_headers):
        original = _project(OTHER_OWNER, is_public=True)
        with (
            patch(f"{REPO}.get_visible", new=AsyncMock(return_value=original)),
            patch(f"{REPO}.remix", new=AsyncMock(return_value=None)),
        ):
            res = await async_client.post(f"/api/projects/{original.id}/remix", headers=auth_headers)
        assert res.status_code == 503

    async def test_repo_remix_copies_as_private(self, user_id):
        original = _project(OTHER_OWNER, "Timer", is_public=True, allow_remix=True, category="tools")
        repo = ProjectRepo()

        with patch.object(repo, "create", new=AsyncMock(return_value=None)) as create:
            await repo.remix(user_id, original)

        owner, req = create.await_args.args
        assert owner == user_id
        assert req.name == "Timer (Remix)"
        assert req.is_public is False
        assert req.allow_remix is True
        assert req.category == "tools"
        assert req.original_project_id == original.id
        assert req.generated_code == original.generated_code
        assert req.preview_html == original.preview_html
