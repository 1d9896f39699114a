"""
API tests for the shared link controllers.

Owner endpoints live under /api/shared-links; anonymous visitors use
/api/public/shared-links without a token.
"""

from datetime import timedelta

import pytest
from fastapi import status
from httpx import AsyncClient

from models import utcnow
from tests.factories import LinkItemFactory, create_item, create_shared_link

PUBLIC = "/api/public/shared-links"


async def _share(client: AsyncClient, item_id, headers=None, **extra) -> dict:
    response = await client.post(
        "/api/shared-links", json={"itemId": str(item_id), "expiresIn": 24, **extra}, headers=headers
    )
    assert response.status_code == status.HTTP_201_CREATED, response.text
    return response.json()["data"]


class TestOwnerEndpoints:
    """Test cases for share link management."""

    @pytest.mark.asyncio
    async def test_create_link(self, authenticated_client: AsyncClient, test_db, test_user):
        item = await create_item(test_db, test_user.id, title="Holiday photos")

        data = await _share(authenticated_client, item.id, password="open-sesame")

        assert len(data["token"]) == 64
        assert data["url"].endswith(f"/s/{data['token']}")
        assert data["hasPassword"] is True
        assert data["item"] == {"id": str(item.id), "title": "Holiday photos", "type": "NOTE"}
        assert "passwordHash" not in data

    @pytest.mark.asyncio
    @pytest.mark.parametrize("expires_in", [0, 24 * 365 + 1])
    async def test_expiry_bounds(self, authenticated_client: AsyncClient, test_db, test_user, expires_in):
        item = await create_item(test_db, test_user.id)

        response = await authenticated_client.post(
            "/api/shared-links", json={"itemId": str(item.id), "expiresIn": expires_in}
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    @pytest.mark.asyncio
    async def test_share_foreign_item(self, authenticated_client: AsyncClient, test_db, test_user_2):
        item = await create_item(test_db, test_user_2.id)

        response = await authenticated_client.post(
            "/api/shared-links", json={"itemId": str(item.id), "expiresIn": 1}
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN

    @pytest.mark.asyncio
    async def test_list_links_with_status(self, authenticated_client: AsyncClient, test_db, test_user):
        item = await create_item(test_db, test_user.id)
        active = await create_shared_link(test_db, test_user.id, item.id)
        expired = await create_shared_link(
            test_db, test_user.id, item.id, expires_at=utcnow() - timedelta(hours=1)
        )
        revoked = await create_shared_link(test_db, test_user.id, item.id, revoked=True)

        response = await authenticated_client.get("/api/shared-links", params={"itemId": str(item.id)})
        only_revoked = await authenticated_client.get("/api/shared-links", params={"revoked": "true"})

        assert response.status_code == status.HTTP_200_OK
        statuses = {link["id"]: link["status"] for link in response.json()["data"]}
        assert statuses == {
            str(active.id): "ACTIVE",
            str(expired.id): "EXPIRED",
            str(revoked.id): "REVOKED",
        }
        assert response.json()["meta"]["total"] == 3
        assert [link["id"] for link in only_revoked.json()["data"]] == [str(revoked.id)]

    @pytest.mark.asyncio
    async def test_update_link(self, authenticated_client: AsyncClient, test_db, test_user):
        item = await create_item(test_db, test_user.id)
        created = await _share(authenticated_client, item.id, password="pw")

        response = await authenticated_client.patch(
            f"/api/shared-links/{created['id']}", json={"expiresIn": 72, "password": None}
        )

        assert response.status_code == status.HTTP_200_OK
        data = response.json()["data"]
        assert data["hasPassword"] is False
        assert data["expiresAt"] > created["expiresAt"]

    @pytest.mark.asyncio
    async def test_revoke_then_access(self, authenticated_client: AsyncClient, test_db, test_user):
        item = await create_item(test_db, test_user.id)
        created = await _share(authenticated_client, item.id)

        revoked = await authenticated_client.delete(f"/api/shared-links/{created['id']}")
        assert revoked.status_code == status.HTTP_200_OK
        assert revoked.json()["data"]["status"] == "REVOKED"

        again = await authenticated_client.delete(f"/api/shared-links/{created['id']}")
        assert again.status_code == status.HTTP_200_OK

        update = await authenticated_client.patch(f"/api/shared-links/{created['id']}", json={"expiresIn": 5})
        assert update.status_code == status.HTTP_400_BAD_REQUEST

        access = await authenticated_client.post(f"{PUBLIC}/{created['token']}/access")
        assert access.status_code == status.HTTP_410_GONE
        assert access.json()["message"] == "This share link is unavailable"

    @pytest.mark.asyncio
    async def test_permanent_delete(self, authenticated_client: AsyncClient, test_db, test_user):
        item = await create_item(test_db, test_user.id)
        created = await _share(authenticated_client, item.id)

        response = await authenticated_client.delete(f"/api/shared-links/{created['id']}/permanent")
        assert response.status_code == status.HTTP_200_OK

        access = await authenticated_client.get(f"{PUBLIC}/{created['token']}")
        assert access.status_code == status.HTTP_404_NOT_FOUND

    @pytest.mark.asyncio
    async def test_owner_endpoints_require_auth(self, client: AsyncClient):
        response = await client.get("/api/shared-links")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


class TestPublicAccess:
    """Test cases for anonymous access by token."""

    @pytest.mark.asyncio
    async def test_access_without_password(self, client: AsyncClient, test_db, test_user):
        item = await create_item(test_db, test_user.id, LinkItemFactory, title="Public read")
        link = await create_shared_link(test_db, test_user.id, item.id)

        response = await client.get(f"{PUBLIC}/{link.token}")

        assert response.status_code == status.HTTP_200_OK
        body = response.json()
        assert body["item"]["title"] == "Public read"
        assert body["item"]["type"] == "LINK"
        assert "id" not in body["item"]
        assert body["link"]["accessCount"] == 1

    @pytest.mark.asyncio
    async def test_password_flow(self, client: AsyncClient, test_db, test_user, auth_headers):
        owner = auth_headers(test_user)
        item = await create_item(test_db, test_user.id)
        created = await _share(client, item.id, headers=owner, password="open-sesame")
        url = f"{PUBLIC}/{created['token']}/access"

        missing = await client.post(url)
        wrong = await client.post(url, json={"password": "nope"})
        assert missing.status_code == status.HTTP_401_UNAUTHORIZED
        assert wrong.status_code == status.HTTP_401_UNAUTHORIZED

        listing = await client.get("/api/shared-links", params={"itemId": str(item.id)}, headers=owner)
        assert listing.json()["data"][0]["accessCount"] == 0

        ok = await client.post(url, json={"password": "open-sesame"})
        assert ok.status_code == status.HTTP_200_OK
        assert ok.json()["link"]["accessCount"] == 1

        via_query = await client.get(f"{PUBLIC}/{created['token']}", params={"password": "open-sesame"})
        assert via_query.json()["link"]["accessCount"] == 2

    @pytest.mark.asyncio
    async def test_expired_link(self, client: AsyncClient, test_db, test_user):
        item = await create_item(test_db, test_user.id)
        link = await create_shared_link(test_db, test_user.id, item.id, expires_at=utcnow() - timedelta(seconds=1))

        response = await client.get(f"{PUBLIC}/{link.token}")

        assert response.status_code == status.HTTP_410_GONE
        assert response.json()["error"] == "GONE"

    @pytest.mark.asyncio
    async def test_unknown_token(self, client: AsyncClient):
        response = await client.get(f"{PUBLIC}/does-not-exist")

        assert response.status_code == status.HTTP_404_NOT_FOUND
