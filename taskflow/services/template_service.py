"""Task templates: CRUD, search, instantiation and duplication."""
import logging
from datetime import timedelta
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from taskflow.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from taskflow.core.side_effects import SideEffects
from taskflow.crud.template import template as template_crud
from taskflow.crud.user import user as user_crud
from taskflow.middleware.metrics import template_instantiations_total
from taskflow.models.comment import ActivityAction
from taskflow.models.task import Task, TaskStatus
from taskflow.models.template import Template
from taskflow.realtime.connection_manager import ConnectionManager
from taskflow.schemas.common import Pagination
from taskflow.schemas.task import TaskResponse
from taskflow.schemas.template import (
    InstantiationResponse,
    TemplateCreate,
    TemplateDetailResponse,
    TemplateInstantiate,
    TemplateListResponse,
    TemplateResponse,
    TemplateSearchResponse,
    TemplateStats,
    TemplateSummary,
    TemplateUpdate,
)
from taskflow.services.activity_service import ActivityService
from taskflow.services.cache_service import TaskCache
from taskflow.services.notification_service import NotificationService
from taskflow.utils.recipients import recipients
from taskflow.utils.timeutils import utcnow

logger = logging.getLogger(__name__)

# Copied by duplicate(); identifiers, timestamps and the usage counter are not.
COPIED_FIELDS = (
    "name",
    "description",
    "title",
    "task_description",
    "priority",
    "tags",
    "checklist_items",
    "default_assignee_id",
    "due_in_days",
)


def _required(value: Optional[str], message: str) -> str:
    value = (value or "").strip()
    if not value:
        raise ValidationError(message)
    return value


class TemplateService:
    """Template operations, including creating tasks from templates."""

    def __init__(
        self,
        cache: TaskCache,
        connections: ConnectionManager,
        notifications: NotificationService,
        activity: ActivityService,
    ):
        self.cache = cache
        self.connections = connections
        self.notifications = notifications
        self.activity = activity

    async def _get(self, db: AsyncSession, template_id: UUID) -> Template:
        found = await template_crud.get(db, template_id)
        if found is None:
            raise NotFoundError("Template not found")
        return found

    async def _get_readable(self, db: AsyncSession, template_id: UUID, user_id: UUID) -> Template:
        found = await self._get(db, template_id)
        if found.user_id != user_id and not found.is_public:
            raise ForbiddenError("Access denied")
        return found

    async def _get_owned(self, db: AsyncSession, template_id: UUID, user_id: UUID) -> Template:
        found = await self._get(db, template_id)
        if found.user_id != user_id:
            raise ForbiddenError("Access denied")
        return found

    async def _check_default_assignee(self, db: AsyncSession, user_id: Optional[UUID]) -> None:
        if user_id is not None and await user_crud.get(db, user_id) is None:
            raise NotFoundError("Default assignee not found")

    async def create_template(self, db: AsyncSession, data: TemplateCreate, user_id: UUID) -> TemplateResponse:
        name = _required(data.name, "Template name is required")
        title = _required(data.title, "Task title is required")
        await self._check_default_assignee(db, data.default_assignee_id)

        values = data.model_dump(exclude={"name", "title"})
        created = await template_crud.create(db, obj_in={**values, "name": name, "title": title, "user_id": user_id})
        logger.info("Template created: %s by user %s", created.id, user_id)
        return TemplateResponse.model_validate(created)

    async def list_templates(
        self,
        db: AsyncSession,
        user_id: UUID,
        *,
        include_public: bool = False,
        page: int = 1,
        limit: int = 20,
    ) -> TemplateListResponse:
        templates, total = await template_crud.list_for_user(
            db, user_id=user_id, include_public=include_public, page=page, limit=limit
        )
        return TemplateListResponse(
            templates=[TemplateResponse.model_validate(t) for t in templates],
            pagination=Pagination.build(page, limit, total),
        )

    async def list_public(self, db: AsyncSession, *, page: int = 1, limit: int = 20) -> TemplateListResponse:
        templates, total = await template_crud.list_public(db, page=page, limit=limit)
        return TemplateListResponse(
            templates=[TemplateResponse.model_validate(t) for t in templates],
            pagination=Pagination.build(page, limit, total),
        )

    async def get_template(self, db: AsyncSession, template_id: UUID, user_id: UUID) -> TemplateDetailResponse:
        found = await self._get_readable(db, template_id, user_id)
        stats = await template_crud.get_usage_stats(db, template_id=template_id)
        base = TemplateResponse.model_validate(found)
        return TemplateDetailResponse(**base.model_dump(), stats=TemplateStats(**stats))

    async def update_template(
        self,
        db: AsyncSession,
        template_id: UUID,
        updates: TemplateUpdate,
        user_id: UUID,
    ) -> TemplateResponse:
        found = await self._get_owned(db, template_id, user_id)
        changes = updates.model_dump(exclude_unset=True)

        for name in ("priority", "tags", "checklist_items", "is_public"):
            if name in changes and changes[name] is None:
                del changes[name]
        if "name" in changes:
            changes["name"] = _required(changes["name"], "Template name is required")
        if "title" in changes:
            changes["title"] = _required(changes["title"], "Task title is required")
        if changes.get("default_assignee_id") is not None:
            await self._check_default_assignee(db, changes["default_assignee_id"])

        updated = await template_crud.update(db, db_obj=found, obj_in=changes)
        logger.info("Template updated: %s by user %s", template_id, user_id)
        return TemplateResponse.model_validate(updated)

    async def delete_template(self, db: AsyncSession, template_id: UUID, user_id: UUID) -> None:
        await self._get_owned(db, template_id, user_id)
        await template_crud.remove(db, id=template_id)
        logger.info("Template deleted: %s by user %s", template_id, user_id)

    async def search_templates(
        self,
        db: AsyncSession,
        user_id: UUID,
        *,
        query: Optional[str],
        public_only: bool = False,
        page: int = 1,
        limit: int = 20,
    ) -> TemplateSearchResponse:
        term = _required(query, "Search query is required")
        templates, total = await template_crud.search(
            db, term=term, user_id=user_id, public_only=public_only, page=page, limit=limit
        )
        return TemplateSearchResponse(
            templates=[TemplateResponse.model_validate(t) for t in templates],
            pagination=Pagination.build(page, limit, total),
            query=term,
        )

    async def instantiate(
        self,
        db: AsyncSession,
        template_id: UUID,
        user_id: UUID,
        overrides: Optional[TemplateInstantiate] = None,
    ) -> InstantiationResponse:
        """Create a task from a template, applying non-empty overrides."""
        overrides = overrides or TemplateInstantiate()
        found = await self._get_readable(db, template_id, user_id)

        assignee_id = overrides.assigned_to or found.default_assignee_id or user_id
        if assignee_id != user_id and await user_crud.get(db, assignee_id) is None:
            raise NotFoundError("Assigned user not found")

        due_date = overrides.due_date
        if due_date is None and found.due_in_days is not None:
            due_date = utcnow() + timedelta(days=found.due_in_days)

        task = Task(
            title=overrides.title or found.title,
            description=overrides.description or found.task_description,
            priority=overrides.priority or found.priority,
            status=TaskStatus.TODO,
            tags=list(overrides.tags) if overrides.tags else list(found.tags or []),
            due_date=due_date,
            created_by=user_id,
            assigned_to=assignee_id,
        )
        db.add(task)
        await db.flush()
        await template_crud.add_usage(db, template_id=template_id, user_id=user_id, task_id=task.id)
        await db.commit()
        await db.refresh(task)
        await db.refresh(found, ["usage_count"])
        template_instantiations_total.inc()

        response = InstantiationResponse(
            task=TaskResponse.model_validate(task),
            template=TemplateSummary.model_validate(found),
        )
        task_response = response.task
        template_name = found.name
        logger.info("Task %s created from template %s by user %s", task.id, template_id, user_id)

        effects = SideEffects(db)
        effects.add(
            "activity:task_created_from_template",
            lambda: self.activity.record(
                db,
                task_id=task_response.id,
                user_id=user_id,
                action=ActivityAction.TASK_CREATED_FROM_TEMPLATE,
                metadata={"templateId": template_id, "templateName": template_name},
            ),
        )
        if assignee_id != user_id:
            effects.add(
                "notify:task_assigned",
                lambda: self.notifications.notify_task_assigned(
                    db,
                    task_id=task_response.id,
                    task_title=task_response.title,
                    assignee_id=assignee_id,
                    assigner_id=user_id,
                ),
            )
        effects.add(
            "cache:task_lists",
            lambda: self.cache.invalidate_task_lists(*recipients([user_id, assignee_id])),
        )
        effects.add("push:task_created", lambda: self._push_created(task_response))
        await effects.run()
        return response

    async def _push_created(self, task_response: TaskResponse) -> None:
        payload = task_response.to_payload()
        for uid in recipients([task_response.created_by, task_response.assigned_to]):
            self.connections.push_to_user(uid, "task:created", payload)

    async def duplicate(self, db: AsyncSession, template_id: UUID, user_id: UUID) -> TemplateResponse:
        """Private copy of a template owned by ``user_id``."""
        source = await self._get_readable(db, template_id, user_id)
        values = {name: getattr(source, name) for name in COPIED_FIELDS}
        values["name"] = f"{source.name} (Copy)"
        values["tags"] = list(source.tags or [])
        values["checklist_items"] = [dict(item) for item in source.checklist_items or []]
        copy = await template_crud.create(db, obj_in={**values, "user_id": user_id, "is_public": False})
        logger.info("Template %s duplicated as %s by user %s", template_id, copy.id, user_id)
        return TemplateResponse.model_validate(copy)
