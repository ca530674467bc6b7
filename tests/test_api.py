"""HTTP-level tests for routing, auth and the error envelope."""
from uuid import uuid4

import pytest

from tests.conftest import TEST_PASSWORD, auth_headers

API = "/api/v1"


@pytest.mark.asyncio
async def test_register_login_and_me(client):
    registered = await client.post(
        f"{API}/auth/register",
        json={"email": "Dana@Example.com", "password": "Passw0rdX", "firstName": "Dana", "lastName": "Lee"},
    )
    assert registered.status_code == 201
    body = registered.json()
    assert body["tokenType"] == "bearer"
    assert body["user"]["email"] == "dana@example.com"

    duplicate = await client.post(
        f"{API}/auth/register",
        json={"email": "dana@example.com", "password": "Passw0rdX", "firstName": "D", "lastName": "L"},
    )
    assert duplicate.status_code == 409
    assert duplicate.json()["error"]["kind"] == "conflict"

    login = await client.post(f"{API}/auth/login", json={"email": "dana@example.com", "password": "Passw0rdX"})
    assert login.status_code == 200
    token = login.json()["accessToken"]

    me = await client.get(f"{API}/auth/me", headers={"Authorization": f"Bearer {token}"})
    assert me.status_code == 200
    assert me.json()["firstName"] == "Dana"

    refreshed = await client.post(f"{API}/auth/refresh", json={"refreshToken": login.json()["refreshToken"]})
    assert refreshed.status_code == 200
    assert refreshed.json()["accessToken"]


@pytest.mark.asyncio
async def test_weak_password_and_bad_login_are_rejected(client, alice):
    weak = await client.post(
        f"{API}/auth/register",
        json={"email": "weak@example.com", "password": "short", "firstName": "W", "lastName": "K"},
    )
    assert weak.status_code == 422

    bad = await client.post(f"{API}/auth/login", json={"email": alice.email, "password": "wrong"})
    assert bad.status_code == 401
    assert bad.json()["error"] == {"kind": "unauthorized", "message": "Invalid email or password"}

    form = await client.post(f"{API}/auth/token", data={"username": alice.email, "password": TEST_PASSWORD})
    assert form.status_code == 200


@pytest.mark.asyncio
async def test_requests_without_valid_token_are_rejected(client, alice):
    assert (await client.get(f"{API}/tasks")).status_code == 401
    garbage = await client.get(f"{API}/tasks", headers={"Authorization": "Bearer not-a-token"})
    assert garbage.status_code == 401


@pytest.mark.asyncio
async def test_task_lifecycle_over_http(client, alice, bob):
    created = await client.post(
        f"{API}/tasks",
        json={"title": "Write docs", "priority": "high", "assignedTo": str(bob.id), "tags": ["docs"]},
        headers=auth_headers(alice),
    )
    assert created.status_code == 201
    task = created.json()
    assert task["assignedTo"] == str(bob.id)
    assert task["createdBy"] == str(alice.id)
    assert task["status"] == "todo"

    updated = await client.put(
        f"{API}/tasks/{task['id']}",
        json={"status": "in_progress", "createdBy": str(bob.id), "id": str(uuid4())},
        headers=auth_headers(bob),
    )
    assert updated.status_code == 200
    assert updated.json()["status"] == "in_progress"
    assert updated.json()["createdBy"] == str(alice.id)
    assert updated.json()["id"] == task["id"]

    listing = await client.get(f"{API}/tasks", params={"status": "in_progress"}, headers=auth_headers(bob))
    assert listing.json()["pagination"]["total"] == 1

    activity = await client.get(f"{API}/tasks/{task['id']}/activity", headers=auth_headers(alice))
    assert [e["action"] for e in activity.json()["activities"]] == ["task_created", "status_changed"]

    forbidden = await client.delete(f"{API}/tasks/{task['id']}", headers=auth_headers(bob))
    assert forbidden.status_code == 403
    assert forbidden.json()["error"]["kind"] == "access_denied"

    deleted = await client.delete(f"{API}/tasks/{task['id']}", headers=auth_headers(alice))
    assert deleted.status_code == 200

    missing = await client.get(f"{API}/tasks/{task['id']}", headers=auth_headers(alice))
    assert missing.status_code == 404
    assert missing.json() == {
        "error": {"kind": "not_found", "message": "Task not found"},
        "detail": "Task not found",
    }


@pytest.mark.asyncio
async def test_blank_title_is_rejected(client, alice):
    response = await client.post(f"{API}/tasks", json={"title": "   "}, headers=auth_headers(alice))
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_comment_and_notification_inbox(client, alice, bob):
    task = (
        await client.post(
            f"{API}/tasks", json={"title": "Review", "assignedTo": str(bob.id)}, headers=auth_headers(alice)
        )
    ).json()

    comment = await client.post(
        f"{API}/tasks/{task['id']}/comments", json={"content": "Ready?"}, headers=auth_headers(alice)
    )
    assert comment.status_code == 201

    count = await client.get(f"{API}/notifications/unread-count", headers=auth_headers(bob))
    assert count.json() == {"unreadCount": 2}

    inbox = (await client.get(f"{API}/notifications", headers=auth_headers(bob))).json()
    assert {n["type"] for n in inbox["notifications"]} == {"task_assigned", "new_comment"}
    assert all(n["taskTitle"] == "Review" for n in inbox["notifications"])

    first_id = inbox["notifications"][0]["id"]
    assert (await client.put(f"{API}/notifications/{first_id}/read", headers=auth_headers(alice))).status_code == 403
    marked = await client.put(f"{API}/notifications/{first_id}/read", headers=auth_headers(bob))
    assert marked.json()["read"] is True

    unread = await client.get(f"{API}/notifications", params={"unreadOnly": "true"}, headers=auth_headers(bob))
    assert len(unread.json()["notifications"]) == 1

    await client.put(f"{API}/notifications/read-all", headers=auth_headers(bob))
    count = await client.get(f"{API}/notifications/unread-count", headers=auth_headers(bob))
    assert count.json() == {"unreadCount": 0}

    await client.delete(f"{API}/notifications", headers=auth_headers(bob))
    inbox = (await client.get(f"{API}/notifications", headers=auth_headers(bob))).json()
    assert inbox["notifications"] == []


@pytest.mark.asyncio
async def test_create_task_from_template_over_http(client, alice):
    template = await client.post(
        f"{API}/templates",
        json={"name": "Standup", "title": "Daily standup", "priority": "low", "dueInDays": 1},
        headers=auth_headers(alice),
    )
    assert template.status_code == 201
    template_id = template.json()["id"]

    plain = await client.post(f"{API}/templates/{template_id}/create-task", headers=auth_headers(alice))
    assert plain.status_code == 201
    assert plain.json()["task"]["title"] == "Daily standup"
    assert plain.json()["task"]["dueDate"] is not None

    custom = await client.post(
        f"{API}/templates/{template_id}/create-task",
        json={"customTitle": "Friday standup", "customDescription": ""},
        headers=auth_headers(alice),
    )
    assert custom.json()["task"]["title"] == "Friday standup"
    assert custom.json()["template"]["name"] == "Standup"

    detail = await client.get(f"{API}/templates/{template_id}", headers=auth_headers(alice))
    assert detail.json()["usageCount"] == 2
    assert detail.json()["stats"]["totalUses"] == 2

    search = await client.get(f"{API}/templates/search", params={"q": ""}, headers=auth_headers(alice))
    assert search.status_code == 400
    assert search.json()["error"]["kind"] == "validation_failed"


@pytest.mark.asyncio
async def test_upload_and_download_over_http(client, alice):
    task = (await client.post(f"{API}/tasks", json={"title": "Files"}, headers=auth_headers(alice))).json()

    uploaded = await client.post(
        f"{API}/tasks/{task['id']}/attachments",
        files=[("files", ("notes.txt", b"hello world", "text/plain"))],
        headers=auth_headers(alice),
    )
    assert uploaded.status_code == 201
    attachment = uploaded.json()["attachments"][0]
    assert attachment["originalName"] == "notes.txt"
    assert attachment["formattedSize"] == "11 Bytes"

    downloaded = await client.get(
        f"{API}/tasks/{task['id']}/attachments/{attachment['id']}/download", headers=auth_headers(alice)
    )
    assert downloaded.status_code == 200
    assert downloaded.content == b"hello world"
    assert "notes.txt" in downloaded.headers["content-disposition"]

    rejected = await client.post(
        f"{API}/tasks/{task['id']}/attachments",
        files=[("files", ("tool.exe", b"MZ", "application/pdf"))],
        headers=auth_headers(alice),
    )
    assert rejected.status_code == 400

    recent = await client.get(f"{API}/tasks/attachments/recent", headers=auth_headers(alice))
    assert len(recent.json()["attachments"]) == 1


@pytest.mark.asyncio
async def test_profile_and_analytics(client, alice):
    updated = await client.put(f"{API}/users/profile", json={"firstName": " Ally "}, headers=auth_headers(alice))
    assert updated.json()["firstName"] == "Ally"

    await client.post(f"{API}/tasks", json={"title": "Counted"}, headers=auth_headers(alice))
    stats = await client.get(f"{API}/users/stats", headers=auth_headers(alice))
    assert stats.json() == {"createdTasks": 1, "assignedTasks": 1, "completedTasks": 0}

    overview = await client.get(f"{API}/analytics/overview", headers=auth_headers(alice))
    assert overview.status_code == 200
