"""Tests for WebSocket subscription frames."""
from uuid import uuid4

import pytest

from taskflow.api.ws import _handle_frame
from taskflow.schemas.task import TaskCreate
from tests.fakes import FakeConnection


@pytest.mark.asyncio
async def test_participant_can_subscribe_and_unsubscribe(db_session, services, alice):
    task = await services.tasks.create_task(db_session, TaskCreate(title="Live"), alice.id)
    socket = FakeConnection()

    await _handle_frame(socket, db_session, services, alice.id, {"action": "subscribe", "taskId": str(task.id)})
    await _handle_frame(
        socket, db_session, services, alice.id,
        {"action": "subscribe", "channel": "comments", "taskId": str(task.id)},
    )
    assert socket.events() == ["subscribed", "subscribed"]
    assert socket.sent[1]["data"]["channel"] == f"task:{task.id}:comments"

    services.connections.push_to_task_channel(task.id, "task:updated", {"id": str(task.id)})
    await services.connections.drain()
    assert socket.events()[-1] == "task:updated"

    await _handle_frame(socket, db_session, services, alice.id, {"action": "unsubscribe", "taskId": str(task.id)})
    assert services.connections.push_to_task_channel(task.id, "task:updated", {}) == 0


@pytest.mark.asyncio
async def test_bad_frames_and_outsiders_get_errors(db_session, services, alice, carol):
    task = await services.tasks.create_task(db_session, TaskCreate(title="Private"), alice.id)
    socket = FakeConnection()

    await _handle_frame(socket, db_session, services, carol.id, {"action": "subscribe", "taskId": str(task.id)})
    await _handle_frame(socket, db_session, services, carol.id, {"action": "dance", "taskId": str(task.id)})
    await _handle_frame(socket, db_session, services, carol.id, {"action": "subscribe", "taskId": "nope"})
    await _handle_frame(socket, db_session, services, carol.id, ["not", "a", "dict"])
    await _handle_frame(socket, db_session, services, carol.id, {"action": "subscribe", "taskId": str(uuid4())})

    assert socket.events() == ["error"] * 5
    assert socket.sent[0]["data"]["kind"] == "access_denied"
    assert socket.sent[4]["data"]["kind"] == "not_found"
    assert services.connections.push_to_task_channel(task.id, "task:updated", {}) == 0
