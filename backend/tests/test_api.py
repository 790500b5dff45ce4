"""
API tests through FastAPI's TestClient

Focus on authentication, role guards and the response envelope; the
service behaviour itself is covered by the service-level tests.
"""
from datetime import datetime, timedelta

import pytest

from gayatri.api import routes_admin, routes_platforms
from gayatri.models.campaign import InvitationStatus
from gayatri.models.influencer import Influencer
from gayatri.models.user import User, UserRole
from gayatri.services import platform_sync
from gayatri.services.integrations import IntegrationRunner

from conftest import PASSWORD, auth_headers
from tests.fixtures.marketplace_fixtures import FakePlatformClient


def _signup(client, email="nadia@example.com", role="INFLUENCER", password="longenough"):
    return client.post(
        "/api/auth/signup",
        json={"name": "Nadia", "email": email, "password": password, "role": role},
    )


class TestAuth:
    def test_signup_returns_token_and_cookie(self, client, db):
        resp = _signup(client)

        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["user"]["role"] == "INFLUENCER"
        assert body["data"]["redirect_to"] == "/kol/dashboard"
        assert body["data"]["access_token"]
        assert "auth_token" in resp.cookies
        user = db.query(User).filter(User.email == "nadia@example.com").one()
        assert db.query(Influencer).filter(Influencer.user_id == user.id).count() == 1

    def test_duplicate_email_conflicts(self, client):
        _signup(client)
        resp = _signup(client, email="NADIA@example.com")

        assert resp.status_code == 409
        assert resp.json() == {"success": False, "message": "Email already registered"}

    def test_admin_role_not_self_assignable(self, client):
        resp = _signup(client, role="ADMIN")
        assert resp.status_code == 400
        assert resp.json()["success"] is False

    def test_short_password_rejected(self, client):
        resp = _signup(client, password="short")
        assert resp.status_code == 400

    def test_malformed_email_is_validation_error(self, client):
        resp = _signup(client, email="not-an-email")

        assert resp.status_code == 422
        body = resp.json()
        assert body["success"] is False
        assert body["errors"][0]["field"] == "body.email"

    def test_login_and_me(self, client, make):
        user = make.user(UserRole.BRAND)

        resp = client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})
        assert resp.status_code == 200
        token = resp.json()["data"]["access_token"]

        me = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["email"] == user.email
        assert me.json()["role_display_name"] == "Brand"

    def test_wrong_password_and_unknown_email_look_the_same(self, client, make):
        user = make.user(UserRole.BRAND)
        wrong = client.post("/api/auth/login", json={"email": user.email, "password": "nope-nope"})
        unknown = client.post("/api/auth/login", json={"email": "ghost@example.com", "password": "x"})

        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json() == {
            "success": False,
            "message": "Invalid email or password",
        }

    def test_me_requires_authentication(self, client):
        resp = client.get("/api/auth/me")
        assert resp.status_code == 401
        assert resp.json()["message"] == "Not authenticated"

    def test_garbage_token_rejected(self, client):
        resp = client.get("/api/auth/me", headers={"Authorization": "Bearer garbage"})
        assert resp.status_code == 401

    def test_cookie_authentication(self, client, make):
        user = make.user(UserRole.INFLUENCER)
        client.post("/api/auth/login", json={"email": user.email, "password": PASSWORD})

        assert client.get("/api/auth/me").status_code == 200


class TestRoleGuards:
    def test_admin_routes_forbidden_for_brands(self, client, make):
        brand_user = make.user(UserRole.BRAND)
        resp = client.get("/api/users", headers=auth_headers(brand_user))

        assert resp.status_code == 403
        assert resp.json()["success"] is False

    def test_admin_lists_other_users(self, client, make):
        admin = make.admin()
        other = make.user(UserRole.BRAND)

        resp = client.get("/api/users", headers=auth_headers(admin))

        assert resp.status_code == 200
        assert [u["id"] for u in resp.json()] == [other.id]

    def test_role_change_applies_without_new_token(self, client, make, db):
        user = make.user(UserRole.ADMIN)
        headers = auth_headers(user)
        user.role = UserRole.BRAND
        db.commit()

        assert client.get("/api/users", headers=headers).status_code == 403


class TestCampaignEndpoints:
    def test_brand_creates_and_influencer_accepts(self, client, make, db):
        owner = make.user(UserRole.BRAND)
        brand = make.brand(owner)
        influencer_user, influencer = make.influencer()
        start = datetime.utcnow() + timedelta(days=1)

        created = client.post(
            "/api/campaigns",
            headers=auth_headers(owner),
            json={
                "brand_id": brand.id,
                "name": "Glow week",
                "type": "SELF_SERVICE",
                "start_date": start.isoformat(),
                "end_date": (start + timedelta(days=7)).isoformat(),
                "influencer_ids": [influencer.id],
            },
        )
        assert created.status_code == 201
        campaign_id = created.json()["data"]["id"]

        invitations = client.get("/api/invitations", headers=auth_headers(influencer_user)).json()
        assert [inv["campaign"]["id"] for inv in invitations] == [campaign_id]

        resp = client.post(
            f"/api/invitations/{invitations[0]['id']}/respond",
            headers=auth_headers(influencer_user),
            json={"response": "accepted"},
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == InvitationStatus.ACTIVE.value

        campaign = client.get(f"/api/campaigns/{campaign_id}", headers=auth_headers(owner)).json()
        assert campaign["status"] == "ACTIVE"

    def test_influencer_cannot_create_campaign(self, client, make):
        user, _ = make.influencer()
        resp = client.post(
            "/api/campaigns",
            headers=auth_headers(user),
            json={
                "brand_id": 1,
                "name": "x",
                "type": "DIRECT",
                "start_date": "2026-01-01T00:00:00",
                "end_date": "2026-01-02T00:00:00",
            },
        )
        assert resp.status_code == 403

    def test_uninvited_influencer_cannot_view_campaign(self, client, make):
        campaign = make.campaign(make.brand())
        user, _ = make.influencer()

        resp = client.get(f"/api/campaigns/{campaign.id}", headers=auth_headers(user))
        assert resp.status_code == 403

    def test_missing_campaign_is_404(self, client, make):
        admin = make.admin()
        resp = client.get("/api/campaigns/999", headers=auth_headers(admin))

        assert resp.status_code == 404
        assert resp.json()["success"] is False

    def test_forced_start_flag_in_error_body(self, client, make):
        admin = make.admin()
        campaign = make.campaign(make.brand())

        resp = client.post(
            f"/api/admin/campaigns/{campaign.id}/start",
            headers=auth_headers(admin),
            json={"force": False},
        )

        assert resp.status_code == 409
        assert resp.json()["requires_force"] is True


class TestNotificationEndpoints:
    def test_list_and_mark_read(self, client, make, db):
        owner = make.user(UserRole.BRAND)
        campaign = make.campaign(make.brand(owner))
        influencer_user, influencer = make.influencer()
        client.post(
            f"/api/campaigns/{campaign.id}/invitations",
            headers=auth_headers(owner),
            json={"influencer_ids": [influencer.id]},
        )
        headers = auth_headers(influencer_user)

        listing = client.get("/api/notifications", headers=headers).json()
        assert listing["unread"] == 1
        notification_id = listing["items"][0]["id"]

        resp = client.post(f"/api/notifications/{notification_id}/read", headers=headers)
        assert resp.status_code == 200
        assert client.get("/api/notifications", headers=headers).json()["unread"] == 0

    def test_cannot_read_someone_elses_notification(self, client, make):
        owner = make.user(UserRole.BRAND)
        campaign = make.campaign(make.brand(owner))
        influencer_user, influencer = make.influencer()
        client.post(
            f"/api/campaigns/{campaign.id}/invitations",
            headers=auth_headers(owner),
            json={"influencer_ids": [influencer.id]},
        )
        notification_id = client.get(
            "/api/notifications", headers=auth_headers(influencer_user)
        ).json()["items"][0]["id"]

        resp = client.post(f"/api/notifications/{notification_id}/read", headers=auth_headers(owner))
        assert resp.status_code == 404


class TestPlatformEndpoints:
    @pytest.fixture
    def tiktok(self, monkeypatch):
        fake = FakePlatformClient("tiktok", uses_pkce=True)
        runner = IntegrationRunner(clients={"tiktok": fake})
        for module in (platform_sync, routes_platforms, routes_admin):
            monkeypatch.setattr(module, "get_integrations", lambda: runner)
        return fake

    def test_connect_refresh_and_batch_refresh(self, client, make, tiktok):
        user, _ = make.influencer()
        headers = auth_headers(user)

        state = client.post("/api/connections/tiktok/authorize", headers=headers).json()["state"]
        connected = client.post(
            "/api/connections/tiktok/callback",
            headers=headers,
            json={"code": "abc", "state": state},
        )
        assert connected.status_code == 200
        connection = connected.json()["data"]
        assert connection["followers"] == 50_000
        assert tiktok.exchanged[0]["code"] == "abc"

        refreshed = client.post(f"/api/connections/{connection['id']}/refresh", headers=headers)
        assert refreshed.status_code == 200
        assert len(tiktok.profile_calls) == 2

        admin = make.admin()
        batch = client.post("/api/admin/connections/tiktok/refresh", headers=auth_headers(admin))
        assert batch.status_code == 200
        assert batch.json()["message"] == "1 successful, 0 failed"

    def test_callback_with_unknown_state(self, client, make, tiktok):
        user, _ = make.influencer()
        resp = client.post(
            "/api/connections/tiktok/callback",
            headers=auth_headers(user),
            json={"code": "abc", "state": "forged"},
        )

        assert resp.status_code == 400
        assert resp.json()["success"] is False
        assert tiktok.exchanged == []
