# tests/test_auth_api.py
# PURPOSE: register, login, me; the bearer gate in front of every protected route.

import uuid

from taskforge.db_models import UserDB
from taskforge.security import validate_token


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def test_register_returns_user_and_valid_token(client):
    r = client.post(
        "/api/auth/register",
        json={"email": "a@x.com", "password": "password123", "first_name": "Ada"},
    )
    assert r.status_code == 201
    body = r.json()
    assert body["user"]["email"] == "a@x.com"
    assert body["user"]["first_name"] == "Ada"
    assert body["user"]["is_active"] is True
    assert "password_hash" not in body["user"]
    # token subject is the created user's id
    claims = validate_token(body["token"])
    assert str(claims.sub) == body["user"]["id"]


def test_register_duplicate_email_is_conflict_case_insensitive(client, register):
    register("dup@example.com")
    r = client.post("/api/auth/register", json={"email": "DUP@Example.com", "password": "password123"})
    assert r.status_code == 409
    assert r.json() == {"error": "Email already registered"}


def test_register_validation_errors(client):
    r_email = client.post("/api/auth/register", json={"email": "not-an-email", "password": "password123"})
    assert r_email.status_code == 400
    assert set(r_email.json()) == {"error"}

    r_short = client.post("/api/auth/register", json={"email": "s@example.com", "password": "short"})
    assert r_short.status_code == 400
    assert "at least 8 characters" in r_short.json()["error"]


def test_login_success_updates_last_login(client, register):
    user, _ = register("login@example.com")
    assert user["last_login_at"] is None

    r = client.post("/api/auth/login", json={"email": "login@example.com", "password": "password123"})
    assert r.status_code == 200
    body = r.json()
    assert body["user"]["id"] == user["id"]
    assert body["user"]["last_login_at"] is not None
    assert validate_token(body["token"]).sub == uuid.UUID(user["id"])


def test_login_bad_credentials(client, register):
    register("bad@example.com")
    r_pw = client.post("/api/auth/login", json={"email": "bad@example.com", "password": "wrong-password"})
    assert r_pw.status_code == 401
    assert r_pw.json() == {"error": "Invalid credentials"}

    r_unknown = client.post("/api/auth/login", json={"email": "nobody@example.com", "password": "password123"})
    assert r_unknown.status_code == 401
    assert r_unknown.json() == {"error": "Invalid credentials"}


def test_login_deactivated_account(client, register, db_session):
    user, _ = register("gone@example.com")
    row = db_session.get(UserDB, uuid.UUID(user["id"]))
    row.is_active = False
    db_session.commit()

    r = client.post("/api/auth/login", json={"email": "gone@example.com", "password": "password123"})
    assert r.status_code == 401
    assert r.json() == {"error": "Account is deactivated"}


def test_me_requires_bearer_token(client, register):
    user, token = register("me@example.com")

    r = client.get("/api/auth/me", headers=_auth(token))
    assert r.status_code == 200
    assert r.json()["id"] == user["id"]

    r_missing = client.get("/api/auth/me")
    assert r_missing.status_code == 401
    assert r_missing.json() == {"error": "Missing authorization header"}

    r_scheme = client.get("/api/auth/me", headers={"Authorization": f"Token {token}"})
    assert r_scheme.status_code == 401

    r_garbage = client.get("/api/auth/me", headers=_auth("garbage"))
    assert r_garbage.status_code == 401


def test_update_profile_is_partial(client, register):
    _, token = register("profile@example.com", first_name="Ada", last_name="Lovelace")

    r = client.patch("/api/auth/me", json={"first_name": "Augusta"}, headers=_auth(token))
    assert r.status_code == 200
    assert r.json()["first_name"] == "Augusta"
    assert r.json()["last_name"] == "Lovelace"


def test_long_password_registers_and_logs_in(client):
    password = "x" * 80
    r = client.post("/api/auth/register", json={"email": "long@example.com", "password": password})
    assert r.status_code == 201, r.text

    r_ok = client.post("/api/auth/login", json={"email": "long@example.com", "password": password})
    assert r_ok.status_code == 200

    # Same first 72 bytes, different tail: must not be accepted
    r_bad = client.post("/api/auth/login", json={"email": "long@example.com", "password": "x" * 79 + "y"})
    assert r_bad.status_code == 401
