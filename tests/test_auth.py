"""
Tests for admin login, token verification, logout and password management.
"""
import inspect

from fastapi import status

from app.api.endpoints import auth
from app.models.access_key import AccessKey
from app.models.bearer_token import BearerToken
from app.services.password_service import PASSWORD_HASH_KEY
from app.services.settings_store import SettingsStore
from conftest import ADMIN_PASSWORD, ip_headers


def test_login_with_correct_password_returns_token(client, db_session):
    response = client.post(
        "/api/auth/login",
        json={"password": ADMIN_PASSWORD},
        headers=ip_headers("10.0.0.1"),
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["success"] is True
    assert len(data["token"]) == 64

    row = db_session.query(BearerToken).filter(BearerToken.token == data["token"]).one()
    assert row.kind == "admin"
    assert row.expires_at is None
    assert row.ip_address == "10.0.0.1"


def test_login_with_wrong_password_fails(client):
    response = client.post("/api/auth/login", json={"password": "wrong"})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json() == {"success": False, "message": "Invalid credentials"}


def test_login_without_password_is_bad_request(client):
    response = client.post("/api/auth/login", json={})

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["success"] is False


def test_login_persists_configured_hash(client, db_session):
    client.post("/api/auth/login", json={"password": ADMIN_PASSWORD})
    assert SettingsStore(db_session).get(PASSWORD_HASH_KEY) is not None


def test_verify_admin_token(client, admin_token):
    response = client.post("/api/auth/verify", headers=ip_headers("10.0.0.1", admin_token))

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data == {"success": True, "tokenType": "admin", "isAdmin": True}


def test_verify_starlight_token_includes_key_info(client, make_key, redeem):
    code = make_key(percentage=30)
    token = redeem(code).json()["token"]

    response = client.post("/api/auth/verify", headers=ip_headers("192.168.1.10", token))

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["tokenType"] == "starlight"
    assert data["isAdmin"] is False
    assert data["keyInfo"]["code"] == code
    assert data["keyInfo"]["percentage"] == 30


def test_verify_without_token_is_unauthorized(client):
    response = client.post("/api/auth/verify")

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["success"] is False


def test_verify_with_unknown_token_is_unauthorized(client):
    response = client.post("/api/auth/verify", headers={"Authorization": "Bearer nope"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_verify_token_of_revoked_key_is_unauthorized(client, make_key, redeem, db_session):
    code = make_key()
    token = redeem(code).json()["token"]

    # Delete the key row only, leaving the token behind
    db_session.query(AccessKey).filter(AccessKey.code == code).delete(synchronize_session=False)
    db_session.commit()

    response = client.post("/api/auth/verify", headers=ip_headers("192.168.1.10", token))
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_logout_revokes_token(client, admin_token):
    headers = ip_headers("10.0.0.1", admin_token)

    response = client.post("/api/auth/logout", headers=headers)
    assert response.status_code == status.HTTP_200_OK
    assert response.json() == {"success": True}

    assert client.post("/api/auth/verify", headers=headers).status_code == status.HTTP_401_UNAUTHORIZED


def test_logout_is_idempotent(client):
    assert client.post("/api/auth/logout").json() == {"success": True}
    response = client.post("/api/auth/logout", headers={"Authorization": "Bearer unknown"})
    assert response.status_code == status.HTTP_200_OK


def test_update_password(client, admin_token):
    headers = ip_headers("10.0.0.1", admin_token)
    response = client.post(
        "/api/auth/update-password",
        json={"currentPassword": ADMIN_PASSWORD, "newPassword": "new-secret"},
        headers=headers,
    )
    assert response.status_code == status.HTTP_200_OK

    assert client.post("/api/auth/login", json={"password": ADMIN_PASSWORD}).status_code == 401
    assert client.post("/api/auth/login", json={"password": "new-secret"}).status_code == 200


def test_update_password_with_wrong_current_password(client, admin_token):
    response = client.post(
        "/api/auth/update-password",
        json={"currentPassword": "wrong", "newPassword": "new-secret"},
        headers=ip_headers("10.0.0.1", admin_token),
    )

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
    assert response.json()["message"] == "Current password is incorrect"


def test_update_password_rejects_short_password(client, admin_token):
    response = client.post(
        "/api/auth/update-password",
        json={"currentPassword": ADMIN_PASSWORD, "newPassword": "abc"},
        headers=ip_headers("10.0.0.1", admin_token),
    )
    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_update_password_requires_admin_token(client, make_key, redeem):
    """An admin-role access key is not enough to change the password."""
    code = make_key(role="admin")
    token = redeem(code).json()["token"]

    response = client.post(
        "/api/auth/update-password",
        json={"currentPassword": ADMIN_PASSWORD, "newPassword": "new-secret"},
        headers=ip_headers("192.168.1.10", token),
    )
    assert response.status_code == status.HTTP_403_FORBIDDEN


def test_generate_password_hash(client, admin_token):
    response = client.post(
        "/api/auth/generate-password-hash",
        json={"newPassword": "another-secret"},
        headers=ip_headers("10.0.0.1", admin_token),
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["hash"].startswith("$2")

    # Generating a hash does not change the active password
    assert client.post("/api/auth/login", json={"password": ADMIN_PASSWORD}).status_code == 200


def test_generate_password_hash_requires_auth(client):
    response = client.post("/api/auth/generate-password-hash", json={"newPassword": "another-secret"})
    assert response.status_code == status.HTTP_401_UNAUTHORIZED


def test_password_routes_run_off_the_event_loop():
    # bcrypt calls must not block other requests
    for route in (auth.login, auth.update_password, auth.generate_password_hash):
        assert not inspect.iscoroutinefunction(route)
