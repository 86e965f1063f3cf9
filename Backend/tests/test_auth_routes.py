"""
Seller authentication routes: session resolution, email probe, login,
logout, first-run registration and self-deletion.

Run with: pytest Backend/tests/test_auth_routes.py -v
"""

import pytest
from sqlalchemy import select

from dshop.models import Seller, SellerShop
from conftest import add_seller, add_shop, bearer, link


async def login(client, email, password):
    return await client.post("/auth/login", json={"email": email, "password": password})


# ────────────────────────────────────────────────────────────────
# GET /auth
# ────────────────────────────────────────────────────────────────

class TestSessionResolution:

    @pytest.mark.asyncio
    async def test_no_session_is_not_success(self, client):
        response = await client.get("/auth")
        assert response.status_code == 200
        assert response.json() == {"success": False}

    @pytest.mark.asyncio
    async def test_superuser_is_admin_on_every_shop(self, client, superuser, shop, other_shop):
        """No SellerShop rows exist; superuser still sees both shops as admin."""
        await login(client, "root@shop.com", "rootpw")

        response = await client.get("/auth")
        data = response.json()

        assert response.status_code == 200
        assert data["success"] is True
        assert data["email"] == "root@shop.com"
        assert data["role"] == "admin"
        assert {s["authToken"] for s in data["shops"]} == {"alpha-token", "beta-token"}
        assert all(s["role"] == "admin" for s in data["shops"])
        assert set(data["shops"][0]) == {"id", "name", "authToken", "hostname", "role"}

    @pytest.mark.asyncio
    async def test_seller_only_sees_linked_shops(self, client, async_session, seller, shop, other_shop):
        await link(async_session, seller, shop, "basic")
        await login(client, "seller@shop.com", "sellerpw")

        data = (await client.get("/auth")).json()

        assert data["success"] is True
        assert [s["authToken"] for s in data["shops"]] == ["alpha-token"]
        assert data["shops"][0]["role"] == "basic"
        assert data["role"] == ""

    @pytest.mark.asyncio
    async def test_seller_role_for_named_shop(self, client, async_session, seller, shop, other_shop):
        await link(async_session, seller, shop, "admin")
        await login(client, "seller@shop.com", "sellerpw")

        named = (await client.get("/auth", headers=bearer(shop))).json()
        unlinked = (await client.get("/auth", headers=bearer(other_shop))).json()

        assert named["role"] == "admin"
        assert unlinked["role"] == ""

    @pytest.mark.asyncio
    async def test_seller_without_links_has_no_shops(self, client, seller, shop):
        await login(client, "seller@shop.com", "sellerpw")

        data = (await client.get("/auth")).json()

        assert data["success"] is True
        assert data["shops"] == []

    @pytest.mark.asyncio
    async def test_deleted_seller_session_is_rejected(self, client, async_session, seller):
        await login(client, "seller@shop.com", "sellerpw")
        await async_session.delete(seller)
        await async_session.commit()

        response = await client.get("/auth")

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Not logged in"}


# ────────────────────────────────────────────────────────────────
# GET /auth/{email}
# ────────────────────────────────────────────────────────────────

class TestEmailProbe:

    @pytest.mark.asyncio
    async def test_unknown_email_is_404(self, client):
        response = await client.get("/auth/nobody@shop.com")
        assert response.status_code == 404
        assert response.content == b""

    @pytest.mark.asyncio
    async def test_known_email_is_204(self, client, seller):
        response = await client.get("/auth/seller@shop.com")
        assert response.status_code == 204
        assert response.content == b""

    @pytest.mark.asyncio
    async def test_match_is_exact(self, client, seller):
        response = await client.get("/auth/SELLER@shop.com")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_probe_is_rate_limited(self, client):
        from dshop.core.config import get_settings

        limit = get_settings().email_probe_rate_limit
        for i in range(limit):
            response = await client.get(f"/auth/user{i}@shop.com")
            assert response.status_code == 404

        response = await client.get("/auth/one-more@shop.com")
        assert response.status_code == 429
        assert "Retry-After" in response.headers

    @pytest.mark.asyncio
    async def test_rotating_forwarded_for_still_limited(self, client):
        from dshop.core.config import get_settings

        limit = get_settings().email_probe_rate_limit
        statuses = []
        for i in range(limit + 10):
            response = await client.get(
                f"/auth/u{i}@shop.com",
                headers={"X-Forwarded-For": f"198.51.100.{i}"},
            )
            statuses.append(response.status_code)

        assert statuses[:limit] == [404] * limit
        assert statuses[limit:] == [429] * 10


# ────────────────────────────────────────────────────────────────
# POST /auth/login
# ────────────────────────────────────────────────────────────────

class TestSellerLogin:

    @pytest.mark.asyncio
    async def test_unknown_email(self, client, seller):
        response = await login(client, "ghost@shop.com", "sellerpw")
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Invalid email"}

    @pytest.mark.asyncio
    async def test_wrong_password(self, client, seller):
        response = await login(client, "seller@shop.com", "nope")
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Invalid password"}

        # Nothing was stored in the session
        assert (await client.get("/auth")).json() == {"success": False}

    @pytest.mark.asyncio
    async def test_superuser_login_reports_admin(self, client, superuser):
        response = await login(client, "root@shop.com", "rootpw")
        assert response.status_code == 200
        assert response.json() == {"success": True, "email": "root@shop.com", "role": "admin"}

    @pytest.mark.asyncio
    async def test_seller_login_reports_shop_role(self, client, async_session, seller, shop):
        await link(async_session, seller, shop, "basic")

        response = await client.post(
            "/auth/login",
            json={"email": "seller@shop.com", "password": "sellerpw"},
            headers=bearer(shop),
        )

        assert response.status_code == 200
        assert response.json() == {"success": True, "email": "seller@shop.com", "role": "basic"}

    @pytest.mark.asyncio
    async def test_seller_login_without_shop_has_empty_role(self, client, seller):
        response = await login(client, "seller@shop.com", "sellerpw")
        assert response.status_code == 200
        assert response.json()["role"] == ""
        assert (await client.get("/auth")).json()["role"] == ""

    @pytest.mark.asyncio
    async def test_seller_login_for_unlinked_shop_is_refused(self, client, seller, shop):
        response = await client.post(
            "/auth/login",
            json={"email": "seller@shop.com", "password": "sellerpw"},
            headers=bearer(shop),
        )
        assert response.status_code == 403
        assert response.json() == {"success": False, "message": "Unauthorized"}

    @pytest.mark.asyncio
    async def test_login_email_is_not_case_folded(self, client, seller):
        response = await login(client, "Seller@Shop.com", "sellerpw")
        assert response.status_code == 404


# ────────────────────────────────────────────────────────────────
# POST /auth/logout
# ────────────────────────────────────────────────────────────────

class TestLogout:

    @pytest.mark.asyncio
    async def test_logout_without_session(self, client):
        response = await client.post("/auth/logout")
        assert response.status_code == 200
        assert response.json() == {"success": False}

    @pytest.mark.asyncio
    async def test_logout_clears_session(self, client, seller):
        await login(client, "seller@shop.com", "sellerpw")

        response = await client.post("/auth/logout")
        assert response.json() == {"success": True}

        assert (await client.get("/auth")).json() == {"success": False}
        assert (await client.post("/auth/logout")).json() == {"success": False}


# ────────────────────────────────────────────────────────────────
# /auth/registration
# ────────────────────────────────────────────────────────────────

class TestRegistration:

    @pytest.mark.asyncio
    async def test_first_registration_creates_superuser_and_logs_in(self, client, async_session):
        response = await client.post(
            "/auth/registration",
            json={"name": "Owner", "email": "Owner@Shop.com", "password": "s3cret"},
        )

        assert response.status_code == 200
        assert response.json() == {"success": True}

        seller = await async_session.scalar(select(Seller))
        assert seller.email == "owner@shop.com"
        assert seller.superuser is True
        assert seller.password != "s3cret"

        me = (await client.get("/auth")).json()
        assert me["success"] is True
        assert me["role"] == "admin"

    @pytest.mark.asyncio
    async def test_second_registration_conflicts(self, client):
        payload = {"name": "Owner", "email": "owner@shop.com", "password": "s3cret"}
        assert (await client.post("/auth/registration", json=payload)).status_code == 200

        again = await client.post(
            "/auth/registration",
            json={"name": "Other", "email": "other@shop.com", "password": "x"},
        )

        assert again.status_code == 409
        assert again.json() == {
            "success": False,
            "message": "An initial user has already been setup",
        }

    @pytest.mark.asyncio
    async def test_registration_blocked_when_any_seller_exists(self, client, seller):
        response = await client.post(
            "/auth/registration",
            json={"name": "Owner", "email": "owner@shop.com", "password": "s3cret"},
        )
        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_incomplete_registration_is_rejected(self, client, async_session):
        response = await client.post("/auth/registration", json={"email": "owner@shop.com"})

        assert response.status_code == 400
        assert response.json() == {"success": False, "message": "Invalid registration"}
        assert await async_session.scalar(select(Seller)) is None

    @pytest.mark.asyncio
    async def test_delete_requires_session(self, client):
        response = await client.delete("/auth/registration")
        assert response.status_code == 400
        assert response.json() == {"success": False}

    @pytest.mark.asyncio
    async def test_delete_removes_seller_and_reports_destroy(self, client, async_session, seller, shop):
        await link(async_session, seller, shop, "admin")
        await login(client, "seller@shop.com", "sellerpw")

        response = await client.delete("/auth/registration")

        assert response.status_code == 200
        assert response.json() == {"success": False, "destroy": 1}
        assert await async_session.scalar(select(Seller)) is None
        assert await async_session.scalar(select(SellerShop)) is None
        assert (await client.get("/auth")).json() == {"success": False}


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "ok"}
