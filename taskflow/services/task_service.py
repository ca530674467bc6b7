"""Task mutation orchestrator.

Creates, updates and deletes tasks. The primary write commits first;
activity entries, notifications, cache invalidation and live pushes then
run as best-effort follow-ups through ``SideEffects``.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from taskflow.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from taskflow.core.side_effects import SideEffects
from taskflow.crud.task import task as task_crud
from taskflow.crud.user import user as user_crud
from taskflow.models.comment import ActivityAction
from taskflow.models.task import Task, TaskPriority, TaskStatus
from taskflow.realtime.connection_manager import ConnectionManager
from taskflow.schemas.common import Pagination
from taskflow.schemas.task import TaskCreate, TaskListResponse, TaskResponse, TaskUpdate
from taskflow.services.activity_service import ActivityService
from taskflow.services.cache_service import TaskCache, task_list_key
from taskflow.services.notification_service import NotificationService
from taskflow.services.storage_service import StorageService
from taskflow.utils.recipients import recipients
from taskflow.utils.timeutils import as_utc

logger = logging.getLogger(__name__)

# Diffed after every update, in this order.
TRACKED_FIELDS = ("status", "priority", "assigned_to", "due_date")

# Fields that may not be cleared with an explicit null.
NON_NULLABLE_FIELDS = {"title", "priority", "status", "tags", "assigned_to"}


@dataclass(frozen=True)
class TaskState:
    """Values of a task at one point in time."""

    title: str
    status: TaskStatus
    priority: TaskPriority
    assigned_to: UUID
    due_date: Optional[datetime]
    created_by: UUID

    @classmethod
    def of(cls, task: Task) -> "TaskState":
        return cls(
            title=task.title,
            status=task.status,
            priority=task.priority,
            assigned_to=task.assigned_to,
            due_date=as_utc(task.due_date),
            created_by=task.created_by,
        )


@dataclass(frozen=True)
class FieldChange:
    field: str
    old: Any
    new: Any


def diff_tracked_fields(before: TaskState, after: TaskState) -> List[FieldChange]:
    """Changed tracked fields, in declaration order."""
    return [
        FieldChange(name, getattr(before, name), getattr(after, name))
        for name in TRACKED_FIELDS
        if getattr(before, name) != getattr(after, name)
    ]


class TaskService:
    """Entry point for every task mutation."""

    def __init__(
        self,
        cache: TaskCache,
        connections: ConnectionManager,
        notifications: NotificationService,
        activity: ActivityService,
        storage: Optional[StorageService] = None,
    ):
        self.cache = cache
        self.connections = connections
        self.notifications = notifications
        self.activity = activity
        self.storage = storage

    async def get_accessible_task(self, db: AsyncSession, task_id: UUID, user_id: UUID) -> Task:
        """Load a task the user created or is assigned to."""
        task = await task_crud.get(db, task_id)
        if task is None:
            raise NotFoundError("Task not found")
        if not task.is_participant(user_id):
            raise ForbiddenError("Access denied")
        return task

    async def _ensure_user_exists(self, db: AsyncSession, user_id: UUID) -> None:
        if await user_crud.get(db, user_id) is None:
            raise NotFoundError("Assigned user not found")

    async def _invalidate_lists(self, *user_ids: UUID) -> None:
        await self.cache.invalidate_task_lists(*recipients(user_ids))

    async def list_tasks(
        self,
        db: AsyncSession,
        user_id: UUID,
        *,
        status: Optional[TaskStatus] = None,
        priority: Optional[TaskPriority] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> TaskListResponse:
        key = task_list_key(
            user_id,
            status.value if status else None,
            priority.value if priority else None,
            search,
            page,
            limit,
        )
        cached = await self.cache.get_json(key)
        if cached is not None:
            return TaskListResponse.model_validate(cached)

        tasks, total = await task_crud.list_for_user(
            db,
            user_id=user_id,
            status=status,
            priority=priority,
            search=search,
            page=page,
            limit=limit,
        )
        response = TaskListResponse(
            tasks=[TaskResponse.model_validate(t) for t in tasks],
            pagination=Pagination.build(page, limit, total),
        )
        await self.cache.set_json(key, response.to_payload())
        return response

    async def get_task(self, db: AsyncSession, task_id: UUID, user_id: UUID) -> TaskResponse:
        task = await self.get_accessible_task(db, task_id, user_id)
        return TaskResponse.model_validate(task)

    async def create_task(self, db: AsyncSession, data: TaskCreate, actor_id: UUID) -> TaskResponse:
        assignee_id = data.assigned_to or actor_id
        if assignee_id != actor_id:
            await self._ensure_user_exists(db, assignee_id)

        task = Task(
            title=data.title,
            description=data.description,
            priority=data.priority,
            status=TaskStatus.TODO,
            due_date=data.due_date,
            tags=list(data.tags),
            created_by=actor_id,
            assigned_to=assignee_id,
        )
        db.add(task)
        await db.commit()
        await db.refresh(task)
        response = TaskResponse.model_validate(task)
        logger.info("Task created: %s by user %s", task.id, actor_id)

        effects = SideEffects(db)
        effects.add(
            "activity:task_created",
            lambda: self.activity.record(
                db, task_id=response.id, user_id=actor_id, action=ActivityAction.TASK_CREATED
            ),
        )
        if assignee_id != actor_id:
            effects.add(
                "notify:task_assigned",
                lambda: self.notifications.notify_task_assigned(
                    db,
                    task_id=response.id,
                    task_title=response.title,
                    assignee_id=assignee_id,
                    assigner_id=actor_id,
                ),
            )
        effects.add("cache:task_lists", lambda: self._invalidate_lists(actor_id, assignee_id))
        effects.add("push:task_created", lambda: self._push_created(response))
        await effects.run()
        return response

    async def _push_created(self, response: TaskResponse) -> None:
        payload = response.to_payload()
        for user_id in recipients([response.created_by, response.assigned_to]):
            self.connections.push_to_user(user_id, "task:created", payload)

    def _normalize_updates(self, updates: TaskUpdate) -> dict:
        changes = updates.model_dump(exclude_unset=True)
        for name in list(changes):
            if name in NON_NULLABLE_FIELDS and changes[name] is None:
                del changes[name]
        if "title" in changes:
            changes["title"] = changes["title"].strip()
            if not changes["title"]:
                raise ValidationError("Task title is required")
        return changes

    async def update_task(
        self,
        db: AsyncSession,
        task_id: UUID,
        updates: TaskUpdate,
        actor_id: UUID,
    ) -> TaskResponse:
        task = await self.get_accessible_task(db, task_id, actor_id)
        changes = self._normalize_updates(updates)

        new_assignee = changes.get("assigned_to")
        if new_assignee is not None and new_assignee != task.assigned_to:
            await self._ensure_user_exists(db, new_assignee)

        before = TaskState.of(task)
        for name, value in changes.items():
            setattr(task, name, value)
        if "due_date" in changes and as_utc(changes["due_date"]) != before.due_date:
            task.due_reminder_sent_at = None

        await db.commit()
        await db.refresh(task)
        after = TaskState.of(task)
        response = TaskResponse.model_validate(task)
        logger.info("Task updated: %s by user %s", task_id, actor_id)

        effects = SideEffects(db)
        for change in diff_tracked_fields(before, after):
            self._plan_change(db, effects, change, before, after, task_id, actor_id)
        effects.add(
            "cache:task_lists",
            lambda: self._invalidate_lists(actor_id, before.created_by, before.assigned_to, after.assigned_to),
        )
        effects.add("push:task_updated", lambda: self._push(task_id, "task:updated", response.to_payload()))
        await effects.run()
        return response

    def _plan_change(
        self,
        db: AsyncSession,
        effects: SideEffects,
        change: FieldChange,
        before: TaskState,
        after: TaskState,
        task_id: UUID,
        actor_id: UUID,
    ) -> None:
        def record(action: ActivityAction, metadata: Optional[dict] = None):
            effects.add(
                f"activity:{action.value}",
                lambda: self.activity.record(
                    db, task_id=task_id, user_id=actor_id, action=action, metadata=metadata
                ),
            )

        if change.field == "status":
            record(
                ActivityAction.STATUS_CHANGED,
                {"oldStatus": change.old.value, "newStatus": change.new.value},
            )
            effects.add(
                "notify:task_status_changed",
                lambda: self.notifications.notify_status_changed(
                    db,
                    task_id=task_id,
                    task_title=before.title,
                    new_status=change.new,
                    actor_id=actor_id,
                    creator_id=before.created_by,
                    assignee_id=before.assigned_to,
                ),
            )
            if change.new == TaskStatus.COMPLETED:
                record(ActivityAction.TASK_COMPLETED)
                effects.add(
                    "notify:task_completed",
                    lambda: self.notifications.notify_task_completed(
                        db,
                        task_id=task_id,
                        task_title=before.title,
                        completer_id=actor_id,
                        creator_id=before.created_by,
                    ),
                )
            elif change.old == TaskStatus.COMPLETED:
                record(ActivityAction.TASK_REOPENED)
        elif change.field == "priority":
            record(
                ActivityAction.PRIORITY_CHANGED,
                {"oldPriority": change.old.value, "newPriority": change.new.value},
            )
        elif change.field == "assigned_to":
            effects.add(
                "activity:assigned",
                lambda: self._record_assignment(db, task_id, actor_id, change.new),
            )
            effects.add(
                "notify:task_assigned",
                lambda: self.notifications.notify_task_assigned(
                    db,
                    task_id=task_id,
                    task_title=before.title,
                    assignee_id=change.new,
                    assigner_id=actor_id,
                ),
            )
        elif change.field == "due_date":
            record(
                ActivityAction.DUE_DATE_CHANGED,
                {"oldDueDate": change.old, "newDueDate": change.new},
            )

    async def _record_assignment(self, db: AsyncSession, task_id: UUID, actor_id: UUID, assignee_id: UUID):
        assignee = await user_crud.get(db, assignee_id)
        return await self.activity.record(
            db,
            task_id=task_id,
            user_id=actor_id,
            action=ActivityAction.ASSIGNED,
            metadata={
                "assigneeId": assignee_id,
                "assigneeName": assignee.full_name if assignee else "Unknown user",
            },
        )

    async def _push(self, task_id: UUID, event: str, payload: Any) -> None:
        self.connections.push_to_task_channel(task_id, event, payload)

    async def delete_task(self, db: AsyncSession, task_id: UUID, actor_id: UUID) -> None:
        task = await task_crud.get(db, task_id)
        if task is None:
            raise NotFoundError("Task not found")
        if task.created_by != actor_id:
            raise ForbiddenError("Only task creator can delete the task")

        participants = task.participants()
        await db.refresh(task, ["attachments"])
        blob_keys = [attachment.file_path for attachment in task.attachments]

        await db.delete(task)
        await db.commit()
        logger.info("Task deleted: %s by user %s", task_id, actor_id)

        effects = SideEffects(db)
        if self.storage is not None:
            for key in blob_keys:
                effects.add("storage:delete", lambda key=key: run_in_threadpool(self.storage.delete, key))
        effects.add("cache:task_lists", lambda: self._invalidate_lists(actor_id, *participants))
        effects.add("cache:comments", lambda: self.cache.invalidate_comments(task_id))
        effects.add("push:task_deleted", lambda: self._push(task_id, "task:deleted", {"id": str(task_id)}))
        await effects.run()
