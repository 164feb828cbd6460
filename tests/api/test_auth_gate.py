from datetime import datetime, timezone

from fastapi import status
from fastapi.testclient import TestClient

from app.core.config import settings
from app.core.jwt_utils import build_claims, create_access_token, issue_token
from app.core.roles import Role
from app.models.auth import AuthSession
from app.models.users import User
from app.services import sessions


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestAuthGate:
    """Test cases for token extraction and validation on protected routes"""

    def test_bearer_header(self, client: TestClient, register_user):
        token = register_user().json()["token"]
        client.cookies.clear()
        assert client.get("/auth/me", headers=_bearer(token)).status_code == status.HTTP_200_OK

    def test_cookie(self, client: TestClient, register_user):
        register_user()
        assert client.get("/auth/me").status_code == status.HTTP_200_OK

    def test_non_bearer_header_falls_back_to_cookie(self, client: TestClient, register_user):
        register_user()
        response = client.get("/auth/me", headers={"Authorization": "Basic Zm9vOmJhcg=="})
        assert response.status_code == status.HTTP_200_OK

    def test_header_wins_over_cookie(self, client: TestClient, register_user):
        register_user()
        response = client.get("/auth/me", headers=_bearer("garbage"))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"detail": "Invalid or expired token"}

    def test_no_token(self, client: TestClient):
        response = client.get("/auth/me")
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"detail": "Authentication required"}

    def test_valid_signature_without_session_is_rejected(self, client: TestClient, register_user):
        user_id = register_user().json()["user"]["id"]
        client.cookies.clear()

        token = create_access_token(user_id, Role.USER, email="a@x.com")
        response = client.get("/auth/me", headers=_bearer(token))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"detail": "Invalid or expired token"}

    def test_expired_token_is_rejected(self, client: TestClient, register_user, db_session):
        user_id = register_user().json()["user"]["id"]
        client.cookies.clear()
        token = issue_token(
            build_claims(user_id, Role.USER, expires_in=-5),
            settings.ENCODE_KEY,
        )
        sessions.create_session(db_session, user_id, token)

        assert client.get("/auth/me", headers=_bearer(token)).status_code == status.HTTP_401_UNAUTHORIZED

    def test_expired_session_is_rejected(self, client: TestClient, register_user, db_session):
        token = register_user().json()["token"]
        client.cookies.clear()
        db_session.query(AuthSession).update({AuthSession.expires_at: 0})
        db_session.commit()

        assert client.get("/auth/me", headers=_bearer(token)).status_code == status.HTTP_401_UNAUTHORIZED

    def test_role_mismatch_is_rejected(self, client: TestClient, register_user, db_session):
        token = register_user().json()["token"]
        client.cookies.clear()
        user = db_session.query(User).one()
        user.role = Role.ADMIN
        db_session.commit()

        response = client.get("/auth/me", headers=_bearer(token))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        assert response.json() == {"detail": "Invalid or expired token"}

    def test_deleted_user_is_rejected(self, client: TestClient, register_user, db_session):
        token = register_user().json()["token"]
        client.cookies.clear()
        user = db_session.query(User).one()
        db_session.query(AuthSession).delete()
        db_session.delete(user)
        db_session.commit()

        assert client.get("/auth/me", headers=_bearer(token)).status_code == status.HTTP_401_UNAUTHORIZED

    def test_banned_user_is_forbidden(self, client: TestClient, register_user, db_session):
        token = register_user().json()["token"]
        user = db_session.query(User).one()
        user.banned_at = datetime.now(timezone.utc)
        db_session.commit()

        response = client.get("/auth/me", headers=_bearer(token))
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json() == {"detail": "Account banned"}


class TestStatusAPI:
    """Test cases for GET /auth/status"""

    def test_anonymous(self, client: TestClient):
        response = client.get("/auth/status")
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"user": None}

    def test_logged_in(self, client: TestClient, register_user):
        user_id = register_user().json()["user"]["id"]
        assert client.get("/auth/status").json()["user"]["id"] == user_id

    def test_bad_token_is_anonymous(self, client: TestClient):
        response = client.get("/auth/status", headers=_bearer("garbage"))
        assert response.status_code == status.HTTP_200_OK
        assert response.json() == {"user": None}

    def test_banned_user_is_anonymous(self, client: TestClient, register_user, db_session):
        register_user()
        user = db_session.query(User).one()
        user.banned_at = datetime.now(timezone.utc)
        db_session.commit()

        assert client.get("/auth/status").json() == {"user": None}


class TestAdminAPI:
    """Test cases for the admin ban/unban routes"""

    def test_admin_bans_and_unbans(self, client: TestClient, admin_wallet, wallet, wallet_login):
        target_id = wallet_login(wallet).json()["user"]["id"]
        target_token = wallet_login(wallet).json()["token"]
        admin_token = wallet_login(admin_wallet).json()["token"]
        client.cookies.clear()

        banned = client.post(f"/admin/users/{target_id}/ban", headers=_bearer(admin_token))
        assert banned.status_code == status.HTTP_200_OK
        assert banned.json()["user"]["id"] == target_id
        assert client.get("/auth/me", headers=_bearer(target_token)).status_code == status.HTTP_403_FORBIDDEN

        unbanned = client.post(f"/admin/users/{target_id}/unban", headers=_bearer(admin_token))
        assert unbanned.status_code == status.HTTP_200_OK
        assert client.get("/auth/me", headers=_bearer(target_token)).status_code == status.HTTP_200_OK

    def test_ordinary_user_cannot_ban(self, client: TestClient, wallet, make_wallet, wallet_login):
        target_id = wallet_login(make_wallet()).json()["user"]["id"]
        token = wallet_login(wallet).json()["token"]
        client.cookies.clear()

        response = client.post(f"/admin/users/{target_id}/ban", headers=_bearer(token))
        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.json() == {"detail": "Admin access required"}

    def test_admin_cannot_ban_self(self, client: TestClient, admin_wallet, wallet_login):
        data = wallet_login(admin_wallet).json()
        response = client.post(f"/admin/users/{data['user']['id']}/ban", headers=_bearer(data["token"]))
        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_unknown_target(self, client: TestClient, admin_wallet, wallet_login):
        token = wallet_login(admin_wallet).json()["token"]
        response = client.post("/admin/users/missing/ban", headers=_bearer(token))
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_requires_authentication(self, client: TestClient):
        assert client.post("/admin/users/anyone/ban").status_code == status.HTTP_401_UNAUTHORIZED
