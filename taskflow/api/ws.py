"""WebSocket endpoint for live task and notification events.

Clients connect with ``?token=<access token>`` and may send::

    {"action": "subscribe", "channel": "task", "taskId": "..."}
    {"action": "unsubscribe", "channel": "comments", "taskId": "..."}

Subscribing requires being the task's creator or assignee.
"""
import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.core.exceptions import TaskflowError
from taskflow.database import get_db
from taskflow.dependencies import get_services, resolve_user
from taskflow.realtime.connection_manager import ConnectionManager
from taskflow.services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter()

CHANNELS = {
    "task": ConnectionManager.task_channel,
    "comments": ConnectionManager.comments_channel,
}


async def _handle_frame(websocket: WebSocket, db: AsyncSession, services: Services, user_id, frame) -> None:
    action = frame.get("action") if isinstance(frame, dict) else None
    channel_kind = frame.get("channel", "task") if isinstance(frame, dict) else None
    if action not in ("subscribe", "unsubscribe") or channel_kind not in CHANNELS:
        await websocket.send_json({"event": "error", "data": {"message": "Unknown action"}})
        return

    try:
        task_id = UUID(str(frame.get("taskId")))
    except ValueError:
        await websocket.send_json({"event": "error", "data": {"message": "Invalid taskId"}})
        return

    channel = CHANNELS[channel_kind](task_id)
    if action == "unsubscribe":
        services.connections.unsubscribe(channel, websocket)
        await websocket.send_json({"event": "unsubscribed", "data": {"channel": channel}})
        return

    try:
        await services.tasks.get_accessible_task(db, task_id, user_id)
    except TaskflowError as exc:
        await websocket.send_json({"event": "error", "data": {"kind": exc.kind, "message": exc.message}})
        return
    services.connections.subscribe(channel, websocket)
    await websocket.send_json({"event": "subscribed", "data": {"channel": channel}})


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: str = Query(default=""),
    db: AsyncSession = Depends(get_db),
    services: Services = Depends(get_services),
):
    try:
        user = await resolve_user(db, token)
    except TaskflowError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    if not user.is_active:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    user_id = user.id
    await websocket.accept()
    services.connections.connect(user_id, websocket)
    try:
        while True:
            frame = await websocket.receive_json()
            await _handle_frame(websocket, db, services, user_id, frame)
    except WebSocketDisconnect:
        pass
    except ValueError:
        logger.warning("Closing WebSocket of user %s after malformed frame", user_id)
        await websocket.close(code=status.WS_1003_UNSUPPORTED_DATA)
    finally:
        services.connections.disconnect(user_id, websocket)
