# tests/test_projects_api.py
# PURPOSE: project CRUD, per-organization slugs, role-gated delete and non-member masking.

import uuid

import pytest


def _auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def _create_project(client, token: str, org_id: str, slug: str = "p1", **extra) -> dict:
    payload = {"name": slug.upper(), "slug": slug, **extra}
    r = client.post(f"/api/organizations/{org_id}/projects", json=payload, headers=_auth(token))
    assert r.status_code == 201, r.text
    return r.json()


def test_create_and_get_project(client, register, create_org):
    user, token = register("owner@example.com")
    org = create_org(token)

    project = _create_project(client, token, org["id"], "website", description="Marketing site", color="#ff0000")
    assert project["organization_id"] == org["id"]
    assert project["created_by"] == user["id"]
    assert project["status"] == "planning"
    assert project["color"] == "#ff0000"

    r = client.get(f"/api/projects/{project['id']}", headers=_auth(token))
    assert r.status_code == 200
    assert r.json()["slug"] == "website"


def test_create_project_defaults_status_and_color(client, register, create_org):
    _, token = register("owner@example.com")
    org = create_org(token)

    project = _create_project(client, token, org["id"], "bare")
    assert project["status"] == "planning"
    assert project["color"] == "#3B82F6"
    assert project["description"] is None

    # Explicit values win over the defaults
    custom = _create_project(client, token, org["id"], "custom", status="active", color="#00ff00")
    assert custom["status"] == "active"
    assert custom["color"] == "#00ff00"


def test_project_slug_unique_within_organization_only(client, register, create_org):
    _, token = register("owner@example.com")
    first = create_org(token, slug="first")
    second = create_org(token, slug="second")
    _create_project(client, token, first["id"], "shared")

    r_dup = client.post(
        f"/api/organizations/{first['id']}/projects", json={"name": "Again", "slug": "shared"}, headers=_auth(token)
    )
    assert r_dup.status_code == 409

    # Same slug in another organization is fine
    _create_project(client, token, second["id"], "shared")


def test_non_member_cannot_create_project(client, register, create_org):
    _, owner = register("owner@example.com")
    _, stranger = register("stranger@example.com")
    org = create_org(owner)

    r = client.post(
        f"/api/organizations/{org['id']}/projects", json={"name": "P", "slug": "p"}, headers=_auth(stranger)
    )
    assert r.status_code == 403
    assert r.json() == {"error": "You are not a member of this organization"}


def test_list_projects_newest_first(client, register, create_org):
    _, token = register("owner@example.com")
    org = create_org(token)
    _create_project(client, token, org["id"], "one")
    _create_project(client, token, org["id"], "two")
    _create_project(client, token, org["id"], "three")

    r = client.get(f"/api/organizations/{org['id']}/projects", headers=_auth(token))
    assert r.status_code == 200
    assert [p["slug"] for p in r.json()] == ["three", "two", "one"]


def test_patch_project_is_merge_patch(client, register, create_org, add_member):
    _, owner = register("owner@example.com")
    member, member_token = register("member@example.com")
    org = create_org(owner)
    add_member(org["id"], member["id"], "member")
    project = _create_project(client, owner, org["id"], "site", description="Old", color="#000000")

    # Any member may edit
    r = client.patch(f"/api/projects/{project['id']}", json={"status": "on-hold"}, headers=_auth(member_token))
    assert r.status_code == 200
    data = r.json()
    assert data["status"] == "on-hold"
    assert data["name"] == "SITE"
    assert data["description"] == "Old"
    assert data["color"] == "#000000"
    assert data["organization_id"] == org["id"]

    # Explicit null clears an optional field
    r_clear = client.patch(f"/api/projects/{project['id']}", json={"color": None}, headers=_auth(owner))
    assert r_clear.json()["color"] is None
    assert r_clear.json()["status"] == "on-hold"


@pytest.mark.parametrize("role", ["member", "manager"])
def test_delete_project_forbidden_below_admin(client, register, create_org, add_member, role):
    _, owner = register("owner@example.com")
    user, token = register("user@example.com")
    org = create_org(owner)
    add_member(org["id"], user["id"], role)
    project = _create_project(client, owner, org["id"])

    r = client.delete(f"/api/projects/{project['id']}", headers=_auth(token))
    assert r.status_code == 403
    assert r.json() == {"error": "Only organization owners and admins can delete projects"}
    assert client.get(f"/api/projects/{project['id']}", headers=_auth(token)).status_code == 200


@pytest.mark.parametrize("role", ["owner", "admin"])
def test_delete_project_allowed_for_owner_and_admin(client, register, create_org, add_member, role):
    _, creator = register("creator@example.com")
    user, token = register("user@example.com")
    org = create_org(creator)
    if role == "owner":
        token = creator
    else:
        add_member(org["id"], user["id"], role)
    project = _create_project(client, creator, org["id"])

    r = client.delete(f"/api/projects/{project['id']}", headers=_auth(token))
    assert r.status_code == 204
    assert client.get(f"/api/projects/{project['id']}", headers=_auth(token)).status_code == 404


def test_delete_project_removes_its_tasks(client, register, create_org):
    _, token = register("owner@example.com")
    org = create_org(token)
    project = _create_project(client, token, org["id"])
    task = client.post(f"/api/projects/{project['id']}/tasks", json={"title": "T"}, headers=_auth(token)).json()
    client.post(f"/api/tasks/{task['id']}/comments", json={"content": "hi"}, headers=_auth(token))

    assert client.delete(f"/api/projects/{project['id']}", headers=_auth(token)).status_code == 204
    assert client.get(f"/api/tasks/{task['id']}", headers=_auth(token)).status_code == 404


def test_non_member_gets_404_on_every_project_route(client, register, create_org):
    _, owner = register("owner@example.com")
    _, stranger = register("stranger@example.com")
    org = create_org(owner)
    project = _create_project(client, owner, org["id"])
    pid = project["id"]
    headers = _auth(stranger)

    assert client.get(f"/api/organizations/{org['id']}/projects", headers=headers).status_code == 404
    assert client.get(f"/api/projects/{pid}", headers=headers).status_code == 404
    assert client.patch(f"/api/projects/{pid}", json={"name": "x"}, headers=headers).status_code == 404
    assert client.delete(f"/api/projects/{pid}", headers=headers).status_code == 404
    assert client.get(f"/api/projects/{pid}/tasks", headers=headers).status_code == 404
    assert client.post(f"/api/projects/{pid}/tasks", json={"title": "x"}, headers=headers).status_code == 404
    # Nothing changed
    assert client.get(f"/api/projects/{pid}", headers=_auth(owner)).json()["name"] == project["name"]


def test_unknown_project_is_404(client, register):
    _, token = register("owner@example.com")
    assert client.get(f"/api/projects/{uuid.uuid4()}", headers=_auth(token)).status_code == 404
