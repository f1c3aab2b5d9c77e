from unittest.mock import AsyncMock, patch

from app import auth


def bearer(token="header.payload.signature"):
    return {"Authorization": f"Bearer {token}"}


class TestAdminEmail:
    def test_match_is_case_insensitive(self):
        assert auth.is_admin_email(" Admin@Example.com ")

    def test_other_emails(self):
        assert not auth.is_admin_email("someone@example.com")
        assert not auth.is_admin_email(None)


class TestAdminRoutes:
    def test_malformed_token(self, client, make_settings):
        make_settings()

        response = client.get("/admin/challenge/overview", headers=bearer("not-a-jwt"))

        assert response.status_code == 401

    def test_non_admin_is_forbidden(self, client, make_settings):
        make_settings()
        claims = {"email": "someone@example.com", "email_verified": True}

        with patch.object(auth, "verify_firebase_token", new=AsyncMock(return_value=claims)):
            response = client.get("/admin/challenge/overview", headers=bearer())

        assert response.status_code == 403

    def test_unverified_admin_email_is_forbidden(self, client, make_settings):
        make_settings()
        claims = {"email": "admin@example.com", "email_verified": False}

        with patch.object(auth, "verify_firebase_token", new=AsyncMock(return_value=claims)):
            response = client.get("/admin/challenge/overview", headers=bearer())

        assert response.status_code == 403

    def test_admin_is_allowed(self, client, make_settings):
        make_settings()
        claims = {"email": "admin@example.com", "email_verified": True}

        with patch.object(auth, "verify_firebase_token", new=AsyncMock(return_value=claims)):
            response = client.get("/admin/challenge/overview", headers=bearer())

        assert response.status_code == 200
