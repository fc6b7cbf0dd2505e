# tests/test_organizations_api.py
# PURPOSE: organization create/list/get/members, slug rules and non-member masking.

import uuid

import pytest

from taskforge.api.errors import ValidationFailed
from taskforge.db_models import OrganizationDB
from taskforge.roles import Role
from taskforge.store_db import add_member as db_add_member


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def test_create_organization_makes_creator_owner(client, register):
    _, token = register("owner@example.com")
    r = client.post(
        "/api/organizations",
        json={"name": "Acme", "slug": "acme", "description": "Rockets"},
        headers=_auth(token),
    )
    assert r.status_code == 201
    org = r.json()
    assert org["name"] == "Acme"
    assert org["slug"] == "acme"
    assert org["role"] == "owner"
    assert org["is_active"] is True
    assert r.headers["Location"] == f"/api/organizations/{org['id']}"


def test_duplicate_slug_is_conflict_even_for_another_user(client, register, create_org):
    _, first = register("first@example.com")
    _, second = register("second@example.com")
    create_org(first, slug="shared")

    r = client.post("/api/organizations", json={"name": "Other", "slug": "shared"}, headers=_auth(second))
    assert r.status_code == 409
    assert set(r.json()) == {"error"}


def test_invalid_slug_is_rejected(client, register):
    _, token = register("slug@example.com")
    for slug in ("has space", "under_score", "ünï", ""):
        r = client.post("/api/organizations", json={"name": "X", "slug": slug}, headers=_auth(token))
        assert r.status_code == 400, slug


def test_list_only_my_organizations_newest_first_with_role(client, register, create_org, add_member):
    me, token = register("me@example.com")
    _, other = register("other@example.com")
    older = create_org(token, slug="older")
    newer = create_org(token, slug="newer")
    foreign = create_org(other, slug="foreign")
    create_org(other, slug="invisible")
    add_member(foreign["id"], me["id"], "manager")

    r = client.get("/api/organizations", headers=_auth(token))
    assert r.status_code == 200
    got = [(o["slug"], o["role"]) for o in r.json()]
    assert got == [("foreign", "manager"), ("newer", "owner"), ("older", "owner")]
    assert {o["id"] for o in r.json()} == {older["id"], newer["id"], foreign["id"]}


def test_get_organization_member_and_non_member(client, register, create_org):
    _, owner = register("owner@example.com")
    _, stranger = register("stranger@example.com")
    org = create_org(owner)

    r = client.get(f"/api/organizations/{org['id']}", headers=_auth(owner))
    assert r.status_code == 200
    assert r.json()["role"] == "owner"

    # Non-member and nonexistent look identical
    r_stranger = client.get(f"/api/organizations/{org['id']}", headers=_auth(stranger))
    r_missing = client.get(f"/api/organizations/{uuid.uuid4()}", headers=_auth(owner))
    assert r_stranger.status_code == 404
    assert r_missing.status_code == 404
    assert r_stranger.json() == r_missing.json()


def test_deactivated_organization_is_hidden(client, register, create_org, db_session):
    _, token = register("owner@example.com")
    org = create_org(token)
    row = db_session.get(OrganizationDB, uuid.UUID(org["id"]))
    row.is_active = False
    db_session.commit()

    assert client.get(f"/api/organizations/{org['id']}", headers=_auth(token)).status_code == 404
    assert client.get("/api/organizations", headers=_auth(token)).json() == []


def test_list_members_with_profiles(client, register, create_org, add_member):
    owner, token = register("owner@example.com", first_name="Olive")
    member, member_token = register("member@example.com", last_name="Moss")
    _, stranger = register("stranger@example.com")
    org = create_org(token)
    add_member(org["id"], member["id"], "member")

    r = client.get(f"/api/organizations/{org['id']}/members", headers=_auth(member_token))
    assert r.status_code == 200
    members = r.json()
    assert [m["user_id"] for m in members] == [owner["id"], member["id"]]
    assert members[0]["role"] == "owner"
    assert members[0]["user_email"] == "owner@example.com"
    assert members[0]["user_first_name"] == "Olive"
    assert members[1]["user_last_name"] == "Moss"
    assert all("password_hash" not in m for m in members)

    r_stranger = client.get(f"/api/organizations/{org['id']}/members", headers=_auth(stranger))
    assert r_stranger.status_code == 404


def test_organization_routes_require_authentication(client):
    assert client.get("/api/organizations").status_code == 401
    assert client.post("/api/organizations", json={"name": "A", "slug": "a"}).status_code == 401


def test_malformed_id_is_bad_request(client, register):
    _, token = register("owner@example.com")
    r = client.get("/api/organizations/not-a-uuid", headers=_auth(token))
    assert r.status_code == 400
    assert set(r.json()) == {"error"}


def test_add_member_accepts_exact_role_strings_only(register, create_org, db_session):
    _, token = register("owner@example.com")
    user, _ = register("new@example.com")
    org = create_org(token)
    org_id, user_id = uuid.UUID(org["id"]), uuid.UUID(user["id"])

    for bad in ("superuser", "Admin", ""):
        with pytest.raises(ValidationFailed):
            db_add_member(db_session, org_id, user_id, bad)

    member = db_add_member(db_session, org_id, user_id, "admin")
    assert member.role is Role.ADMIN
