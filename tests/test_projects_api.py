import pytest


@pytest.fixture
async def alice(login):
    return await login("alice")


@pytest.fixture
async def bob(login):
    return await login("bob")


async def _create_project(client, owner, name="Launch", description="Go-to-market"):
    response = await client.post(
        "/api/projects", json={"name": name, "description": description}, headers=owner["headers"]
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


async def _add_member(client, project_id, admin, user, role=None):
    payload = {"userId": user["user"]["id"]}
    if role:
        payload["role"] = role
    return await client.post(f"/api/projects/{project_id}/members", json=payload, headers=admin["headers"])


# ── create / read ──────────────────────────────────────

async def test_creator_becomes_admin(client, alice):
    project = await _create_project(client, alice)

    assert project["name"] == "Launch"
    assert project["status"] == "ACTIVE"
    assert len(project["members"]) == 1
    member = project["members"][0]
    assert member["userId"] == alice["user"]["id"]
    assert member["role"] == "ADMIN"
    assert member["user"]["username"] == "alice"
    assert project["tasks"] == []


async def test_create_strips_markup_and_validates(client, alice):
    project = await _create_project(client, alice, name="<b>Plan</b>")
    assert project["name"] == "Plan"

    response = await client.post("/api/projects", json={"name": ""}, headers=alice["headers"])
    assert response.status_code == 400
    assert "name" in response.json()["errors"]


async def test_get_project_membership_rules(client, alice, bob):
    project = await _create_project(client, alice)

    ok = await client.get(f"/api/projects/{project['id']}", headers=alice["headers"])
    assert ok.status_code == 200
    assert ok.json()["data"]["id"] == project["id"]

    forbidden = await client.get(f"/api/projects/{project['id']}", headers=bob["headers"])
    assert forbidden.status_code == 403
    assert forbidden.json()["message"] == "You are not a member of this project"

    missing = await client.get("/api/projects/9999", headers=alice["headers"])
    assert missing.status_code == 404
    assert missing.json()["message"] == "Project not found"


async def test_list_only_member_projects_with_page_info(client, alice, bob):
    for name in ("A", "B", "C"):
        await _create_project(client, alice, name=name)
    await _create_project(client, bob, name="Bob's")

    first = await client.get("/api/projects", params={"limit": 2}, headers=alice["headers"])
    assert first.status_code == 200
    body = first.json()
    assert len(body["data"]) == 2
    assert body["pageInfo"] == {"page": 1, "limit": 2, "total": 3, "pages": 2}

    second = await client.get("/api/projects", params={"limit": 2, "page": 2}, headers=alice["headers"])
    assert len(second.json()["data"]) == 1

    bobs = await client.get("/api/projects", headers=bob["headers"])
    assert [p["name"] for p in bobs.json()["data"]] == ["Bob's"]


async def test_list_sorting(client, alice):
    for name in ("Charlie", "Alpha", "Bravo"):
        await _create_project(client, alice, name=name)

    response = await client.get(
        "/api/projects", params={"sortBy": "name", "sortOrder": "asc"}, headers=alice["headers"]
    )
    assert [p["name"] for p in response.json()["data"]] == ["Alpha", "Bravo", "Charlie"]

    bad = await client.get("/api/projects", params={"sortBy": "password"}, headers=alice["headers"])
    assert bad.status_code == 400
    assert "sortBy" in bad.json()["errors"]


async def test_list_empty(client, alice):
    response = await client.get("/api/projects", headers=alice["headers"])
    assert response.json()["data"] == []
    assert response.json()["pageInfo"]["pages"] == 0


# ── update / delete ────────────────────────────────────

async def test_update_is_admin_only(client, alice, bob):
    project = await _create_project(client, alice)
    await _add_member(client, project["id"], alice, bob)

    denied = await client.put(f"/api/projects/{project['id']}", json={"name": "Nope"}, headers=bob["headers"])
    assert denied.status_code == 403
    assert denied.json()["message"] == "Only project admin can update project"

    response = await client.put(
        f"/api/projects/{project['id']}", json={"name": "Renamed", "status": "completed"}, headers=alice["headers"]
    )
    assert response.status_code == 200
    updated = response.json()["data"]
    assert updated["name"] == "Renamed"
    assert updated["status"] == "COMPLETED"
    assert updated["description"] == "Go-to-market"


async def test_update_rejects_null_name(client, alice):
    project = await _create_project(client, alice)
    response = await client.put(f"/api/projects/{project['id']}", json={"name": None}, headers=alice["headers"])
    assert response.status_code == 400
    assert "name" in response.json()["errors"]


async def test_delete_is_admin_only(client, alice, bob):
    project = await _create_project(client, alice)
    await _add_member(client, project["id"], alice, bob)

    denied = await client.delete(f"/api/projects/{project['id']}", headers=bob["headers"])
    assert denied.status_code == 403

    response = await client.delete(f"/api/projects/{project['id']}", headers=alice["headers"])
    assert response.status_code == 200
    assert response.json() == {"success": True, "message": "Project deleted successfully", "data": None}

    gone = await client.get(f"/api/projects/{project['id']}", headers=alice["headers"])
    assert gone.status_code == 404


# ── membership ─────────────────────────────────────────

async def test_add_member_defaults_to_user_role(client, alice, bob):
    project = await _create_project(client, alice)

    response = await _add_member(client, project["id"], alice, bob)
    assert response.status_code == 201
    member = response.json()["data"]
    assert member["role"] == "USER"
    assert member["userId"] == bob["user"]["id"]
    assert member["user"]["username"] == "bob"

    visible = await client.get(f"/api/projects/{project['id']}", headers=bob["headers"])
    assert visible.status_code == 200


async def test_add_member_twice_conflicts(client, alice, bob):
    project = await _create_project(client, alice)
    await _add_member(client, project["id"], alice, bob)

    again = await _add_member(client, project["id"], alice, bob, role="MANAGER")
    assert again.status_code == 409
    assert again.json()["message"] == "User is already a member of this project"

    fetched = await client.get(f"/api/projects/{project['id']}", headers=alice["headers"])
    assert len(fetched.json()["data"]["members"]) == 2


async def test_add_member_errors(client, alice, bob, login):
    project = await _create_project(client, alice)
    carol = await login("carol")

    unknown = await client.post(
        f"/api/projects/{project['id']}/members", json={"userId": 9999}, headers=alice["headers"]
    )
    assert unknown.status_code == 404
    assert unknown.json()["message"] == "User not found"

    await _add_member(client, project["id"], alice, bob, role="MANAGER")
    manager_attempt = await _add_member(client, project["id"], bob, carol)
    assert manager_attempt.status_code == 403
    assert manager_attempt.json()["message"] == "Only project admin can add members"

    outsider_attempt = await _add_member(client, project["id"], carol, carol)
    assert outsider_attempt.status_code == 403


async def test_last_admin_cannot_leave(client, alice, bob):
    project = await _create_project(client, alice)
    pid, alice_id = project["id"], alice["user"]["id"]

    blocked = await client.delete(f"/api/projects/{pid}/members/{alice_id}", headers=alice["headers"])
    assert blocked.status_code == 409
    assert blocked.json()["message"] == "Cannot remove the last admin from the project"

    await _add_member(client, pid, alice, bob, role="ADMIN")

    left = await client.delete(f"/api/projects/{pid}/members/{alice_id}", headers=alice["headers"])
    assert left.status_code == 200

    after = await client.get(f"/api/projects/{pid}", headers=bob["headers"])
    members = after.json()["data"]["members"]
    assert [(m["userId"], m["role"]) for m in members] == [(bob["user"]["id"], "ADMIN")]

    no_longer_member = await client.get(f"/api/projects/{pid}", headers=alice["headers"])
    assert no_longer_member.status_code == 403


async def test_remove_member(client, alice, bob):
    project = await _create_project(client, alice)
    pid = project["id"]
    await _add_member(client, pid, alice, bob)

    denied = await client.delete(f"/api/projects/{pid}/members/{alice['user']['id']}", headers=bob["headers"])
    assert denied.status_code == 403

    removed = await client.delete(f"/api/projects/{pid}/members/{bob['user']['id']}", headers=alice["headers"])
    assert removed.status_code == 200
    assert removed.json()["message"] == "Member removed successfully"

    again = await client.delete(f"/api/projects/{pid}/members/{bob['user']['id']}", headers=alice["headers"])
    assert again.status_code == 404
    assert again.json()["message"] == "Project member not found"
