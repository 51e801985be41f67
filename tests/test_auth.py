from datetime import timedelta

import bcrypt
import pytest

from storefront.application.services.auth_service import AuthService
from storefront.domain.errors import (
    EmailTakenError,
    InvalidCredentialsError,
    InvalidInputError,
    TokenExpiredError,
    TokenMissingError,
    TokenRevokedError,
    UnsupportedSignInMethodError,
)
from storefront.domain.models import SignInMethod


def _signin(client, email="a@x.com", password="pw1"):
    return client.post("/auth/signin", json={"method": "Email-Password", "email": email, "password": password})


def test_register_returns_token_header(client):
    response = client.post(
        "/auth/register",
        json={"method": "Email-Password", "email": "a@x.com", "password": "pw1", "name": "Ana", "phoneNumber": "555"},
    )
    assert response.status_code == 200
    assert response.headers["authorization"]
    body = response.json()
    assert body["userId"] == 1
    assert body["expiresAt"]


def test_register_duplicate_email_conflicts(client, register):
    register()
    response = client.post(
        "/auth/register",
        json={"method": "Email-Password", "email": "A@x.com", "password": "other", "name": "Ana"},
    )
    assert response.status_code == 409
    assert response.json()["error"] == "email_taken"


def test_signin_reuses_active_token(client, register):
    headers = register()
    response = _signin(client)
    assert response.status_code == 200
    assert response.headers["authorization"] == headers["auth_token"]


def test_signin_wrong_password(client, register):
    register()
    response = _signin(client, password="nope")
    assert response.status_code == 401
    assert response.json()["error"] == "invalid_credentials"


def test_google_method_is_not_supported(client):
    response = client.post(
        "/auth/register",
        json={"method": "Google", "email": "g@x.com", "name": "Gabi"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "unsupported_sign_in_method"


def test_unknown_method_fails_validation(client):
    response = client.post("/auth/signin", json={"method": "Magic", "email": "a@x.com", "password": "pw1"})
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_input"


def test_refresh_revokes_previous_token(client, register):
    old = register()
    response = client.post("/auth/refresh", headers=old)
    assert response.status_code == 200
    new = {"auth_token": response.headers["authorization"]}
    assert new != old

    assert client.get("/auth/session", headers=new).status_code == 200
    stale = client.get("/auth/session", headers=old)
    assert stale.status_code == 401
    assert stale.json()["error"] == "token_revoked"


def test_signout_invalidates_token(client, register):
    headers = register()
    assert client.post("/auth/signout", headers=headers).status_code == 204
    assert client.get("/auth/session", headers=headers).status_code == 401

    # signing in again issues a fresh token
    response = _signin(client)
    assert response.status_code == 200
    assert response.headers["authorization"] != headers["auth_token"]


def test_session_requires_token(client):
    response = client.get("/auth/session")
    assert response.status_code == 401
    assert response.json()["error"] == "token_missing"


def test_tampered_token_rejected(client, register):
    headers = register()
    token = headers["auth_token"]
    tampered = token[:-2] + ("AA" if token[-2:] != "AA" else "BB")
    response = client.get("/auth/session", headers={"auth_token": tampered})
    assert response.status_code == 401
    assert response.json()["error"] == "invalid_token"


# Service level --------------------------------------------------------------
def _service(persistence, ttl=timedelta(days=30)):
    return AuthService(
        persistence=persistence,
        secret_key="test-secret",
        issuer="urn:test:issuer",
        audience="urn:test:audience",
        token_ttl=ttl,
        bcrypt_rounds=4,
    )


def test_expired_token_is_rotated_on_signin(persistence):
    expired = _service(persistence, ttl=timedelta(seconds=-60))
    _, token = expired.register(SignInMethod.EMAIL_PASSWORD, "a@x.com", "Ana", "pw1")

    with pytest.raises(TokenExpiredError):
        expired.verify(token.token)

    service = _service(persistence)
    rotated = service.authenticate(SignInMethod.EMAIL_PASSWORD, "a@x.com", "pw1")
    assert rotated.token != token.token
    assert service.verify(rotated.token).user_id == token.user_id


def test_register_rules(persistence):
    service = _service(persistence)
    service.register(SignInMethod.EMAIL_PASSWORD, "a@x.com", "Ana", "pw1")

    with pytest.raises(EmailTakenError):
        service.register(SignInMethod.EMAIL_PASSWORD, " a@X.com ", "Ana", "pw1")
    with pytest.raises(UnsupportedSignInMethodError):
        service.register(SignInMethod.EMAIL_PASSWORD, "b@x.com", "Bia", None)
    with pytest.raises(InvalidInputError):
        service.register(SignInMethod.EMAIL_PASSWORD, "c@x.com", "Cai", "x" * 73)
    with pytest.raises(InvalidCredentialsError):
        service.authenticate(SignInMethod.EMAIL_PASSWORD, "missing@x.com", "pw1")


def test_verify_rejects_missing_and_revoked(persistence):
    service = _service(persistence)
    user, token = service.register(SignInMethod.EMAIL_PASSWORD, "a@x.com", "Ana", "pw1")

    with pytest.raises(TokenMissingError):
        service.verify(None)
    service.sign_out(user.id)
    with pytest.raises(TokenRevokedError):
        service.verify(token.token)


def test_unknown_email_still_checks_a_password_hash(persistence, monkeypatch):
    service = _service(persistence)
    calls = []
    real_checkpw = bcrypt.checkpw

    def counting_checkpw(password, hashed):
        calls.append(hashed)
        return real_checkpw(password, hashed)

    monkeypatch.setattr(bcrypt, "checkpw", counting_checkpw)
    with pytest.raises(InvalidCredentialsError):
        service.authenticate(SignInMethod.EMAIL_PASSWORD, "nobody@x.com", "pw1")
    assert len(calls) == 1
