"""Activity log recorder.

Turns a structured action plus metadata into an immutable ``Activity``
row with a human-readable message. Unknown actions are still recorded
with a generic message.
"""
import logging
from datetime import date, datetime
from typing import Any, Dict, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.crud.comment import entry as entry_crud
from taskflow.middleware.metrics import activity_entries_total
from taskflow.models.comment import Activity, ActivityAction

logger = logging.getLogger(__name__)


def _fmt(value: Any) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if hasattr(value, "value"):
        return str(value.value)
    return "" if value is None else str(value)


def format_activity_message(action: str, metadata: Optional[Dict[str, Any]] = None) -> str:
    """Render the log line for ``action``."""
    meta = metadata or {}
    action = getattr(action, "value", action)

    if action == ActivityAction.STATUS_CHANGED:
        return f'changed status from "{_fmt(meta.get("oldStatus"))}" to "{_fmt(meta.get("newStatus"))}"'
    if action == ActivityAction.PRIORITY_CHANGED:
        return f'changed priority from "{_fmt(meta.get("oldPriority"))}" to "{_fmt(meta.get("newPriority"))}"'
    if action == ActivityAction.ASSIGNED:
        return f"assigned task to {_fmt(meta.get('assigneeName'))}"
    if action == ActivityAction.DUE_DATE_CHANGED:
        if meta.get("newDueDate") is None:
            return "removed the due date"
        return f"changed due date to {_fmt(meta.get('newDueDate'))}"
    if action == ActivityAction.TASK_CREATED:
        return "created this task"
    if action == ActivityAction.TASK_COMPLETED:
        return "marked task as completed"
    if action == ActivityAction.TASK_REOPENED:
        return "reopened this task"
    if action == ActivityAction.FILES_UPLOADED:
        return f"uploaded {_fmt(meta.get('count'))} file(s): {_fmt(meta.get('files'))}"
    if action == ActivityAction.FILE_DELETED:
        return f"deleted file: {_fmt(meta.get('fileName'))}"
    if action == ActivityAction.TASK_CREATED_FROM_TEMPLATE:
        return f"created this task from template: {_fmt(meta.get('templateName'))}"
    return f"performed action: {action}"


def _json_safe(metadata: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    safe = {}
    for key, value in (metadata or {}).items():
        if isinstance(value, (datetime, date)):
            value = value.isoformat()
        elif isinstance(value, UUID):
            value = str(value)
        elif hasattr(value, "value"):
            value = value.value
        safe[key] = value
    return safe


class ActivityService:
    """Appends activity entries to a task's history."""

    async def record(
        self,
        db: AsyncSession,
        *,
        task_id: UUID,
        user_id: UUID,
        action: str,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Activity:
        action = getattr(action, "value", action)
        activity = await entry_crud.create_activity(
            db,
            task_id=task_id,
            user_id=user_id,
            action=action,
            content=format_activity_message(action, metadata),
            meta_data=_json_safe(metadata),
        )
        activity_entries_total.labels(action=action).inc()
        logger.debug("Activity %s recorded on task %s by user %s", action, task_id, user_id)
        return activity
