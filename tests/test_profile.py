"""
Tests for self-service profile and avatar upload.
"""

import base64

import pytest
from httpx import AsyncClient

from app.core.errors import ValidationError
from app.services.users import avatar_data_url

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


class TestProfile:

    @pytest.mark.anyio
    async def test_me(self, client: AsyncClient):
        me = (await client.get("/api/users/me")).json()
        assert me["id"] == "alice"
        assert me["display_name"] == "Alice Chen"
        assert me["role"] == "user"

    @pytest.mark.anyio
    async def test_patch_profile_ignores_privileged_fields(self, client: AsyncClient):
        response = await client.patch(
            "/api/users/me", json={"job_title": " Account Manager ", "phone": "555-0101", "role": "admin"}
        )
        body = response.json()
        assert body["job_title"] == "Account Manager"
        assert body["phone"] == "555-0101"
        assert body["role"] == "user"

    @pytest.mark.anyio
    async def test_unauthenticated(self, client_for, setup_test_database):
        assert (await client_for(None).get("/api/users/me")).status_code == 401
        assert (await client_for("nobody").get("/api/users/me")).status_code == 401


class TestAvatar:

    @pytest.mark.anyio
    async def test_upload_stores_data_url(self, client: AsyncClient):
        response = await client.post(
            "/api/users/me/avatar", files={"file": ("me.png", PNG, "image/png")}
        )
        assert response.status_code == 200
        url = response.json()["profile_image_url"]
        assert url == "data:image/png;base64," + base64.b64encode(PNG).decode("ascii")

    @pytest.mark.anyio
    async def test_non_image_rejected(self, client: AsyncClient):
        response = await client.post(
            "/api/users/me/avatar", files={"file": ("notes.txt", b"hello", "text/plain")}
        )
        assert response.status_code == 400

    def test_size_limit(self):
        limit = 2 * 1024 * 1024
        assert avatar_data_url(b"x" * limit, "image/jpeg", limit).startswith("data:image/jpeg;base64,")
        with pytest.raises(ValidationError):
            avatar_data_url(b"x" * (limit + 1), "image/jpeg", limit)

    def test_empty_rejected(self):
        with pytest.raises(ValidationError):
            avatar_data_url(b"", "image/png", 1024)
