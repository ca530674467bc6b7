"""Task attachments: upload, listing, download and removal."""
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from taskflow.config import settings
from taskflow.core.exceptions import ForbiddenError, NotFoundError, ValidationError
from taskflow.core.side_effects import SideEffects
from taskflow.crud.attachment import attachment as attachment_crud
from taskflow.models.attachment import Attachment
from taskflow.models.comment import ActivityAction
from taskflow.realtime.connection_manager import ConnectionManager
from taskflow.schemas.attachment import (
    AttachmentListResponse,
    AttachmentResponse,
    UploadResponse,
    UserAttachmentsResponse,
)
from taskflow.schemas.common import Pagination
from taskflow.services.activity_service import ActivityService
from taskflow.services.storage_service import StorageService
from taskflow.services.task_service import TaskService
from taskflow.utils.files import (
    format_file_size,
    generate_file_name,
    get_file_icon,
    validate_file_size,
    validate_file_type,
)

logger = logging.getLogger(__name__)


@dataclass
class IncomingFile:
    """One uploaded file, already read into memory."""

    original_name: str
    mime_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def to_response(attachment: Attachment) -> AttachmentResponse:
    response = AttachmentResponse.model_validate(attachment)
    response.formatted_size = format_file_size(attachment.file_size)
    response.icon = get_file_icon(attachment.mime_type)
    return response


class AttachmentService:
    """Attachment operations scoped to task participants."""

    def __init__(
        self,
        tasks: TaskService,
        storage: StorageService,
        connections: ConnectionManager,
        activity: ActivityService,
    ):
        self.tasks = tasks
        self.storage = storage
        self.connections = connections
        self.activity = activity

    def _validate(self, files: Sequence[IncomingFile]) -> None:
        if not files:
            raise ValidationError("No files uploaded")
        if len(files) > settings.MAX_FILES_PER_UPLOAD:
            raise ValidationError(f"Maximum {settings.MAX_FILES_PER_UPLOAD} files per upload")
        for incoming in files:
            error = validate_file_type(incoming.original_name, incoming.mime_type) or validate_file_size(
                incoming.size
            )
            if error:
                raise ValidationError(f"{incoming.original_name}: {error}")

    async def upload(
        self,
        db: AsyncSession,
        task_id: UUID,
        user_id: UUID,
        files: Sequence[IncomingFile],
    ) -> UploadResponse:
        await self.tasks.get_accessible_task(db, task_id, user_id)
        self._validate(files)

        stored: List[str] = []
        created: List[Attachment] = []
        try:
            for incoming in files:
                key = generate_file_name(incoming.original_name)
                await run_in_threadpool(self.storage.save, key, incoming.data, incoming.mime_type)
                stored.append(key)
                row = Attachment(
                    task_id=task_id,
                    user_id=user_id,
                    file_name=key,
                    original_name=incoming.original_name,
                    mime_type=incoming.mime_type,
                    file_size=incoming.size,
                    file_path=key,
                )
                db.add(row)
                created.append(row)
            await db.commit()
        except Exception:
            await db.rollback()
            for key in stored:
                try:
                    await run_in_threadpool(self.storage.delete, key)
                except Exception:
                    logger.exception("Could not remove orphaned blob %s", key)
            raise

        responses = [to_response(row) for row in created]
        names = ", ".join(f.original_name for f in files)
        logger.info("Uploaded %s file(s) to task %s by user %s", len(created), task_id, user_id)

        effects = SideEffects(db)
        effects.add(
            "activity:files_uploaded",
            lambda: self.activity.record(
                db,
                task_id=task_id,
                user_id=user_id,
                action=ActivityAction.FILES_UPLOADED,
                metadata={"count": len(responses), "files": names},
            ),
        )
        effects.add(
            "push:attachments_uploaded",
            lambda: self._push(task_id, "attachments:uploaded", [r.to_payload() for r in responses]),
        )
        await effects.run()
        return UploadResponse(message=f"{len(responses)} file(s) uploaded successfully", attachments=responses)

    async def list_attachments(
        self,
        db: AsyncSession,
        task_id: UUID,
        user_id: UUID,
        *,
        page: int = 1,
        limit: int = 50,
    ) -> AttachmentListResponse:
        await self.tasks.get_accessible_task(db, task_id, user_id)
        attachments, total = await attachment_crud.list_for_task(db, task_id=task_id, page=page, limit=limit)
        total_size = await attachment_crud.total_size_for_task(db, task_id=task_id)
        return AttachmentListResponse(
            attachments=[to_response(a) for a in attachments],
            total_size=total_size,
            formatted_total_size=format_file_size(total_size),
            pagination=Pagination.build(page, limit, total),
        )

    async def _get_for_task(self, db: AsyncSession, task_id: UUID, attachment_id: UUID) -> Attachment:
        found = await attachment_crud.get(db, attachment_id)
        if found is None:
            raise NotFoundError("Attachment not found")
        if found.task_id != task_id:
            raise ForbiddenError("Attachment does not belong to this task")
        return found

    async def download(
        self,
        db: AsyncSession,
        task_id: UUID,
        attachment_id: UUID,
        user_id: UUID,
    ) -> Tuple[Attachment, Optional[str], Optional[bytes]]:
        """Attachment row plus either a presigned URL or the file bytes."""
        await self.tasks.get_accessible_task(db, task_id, user_id)
        found = await self._get_for_task(db, task_id, attachment_id)

        url = await run_in_threadpool(self.storage.generate_download_url, found.file_path)
        if url is not None:
            return found, url, None
        if not await run_in_threadpool(self.storage.exists, found.file_path):
            raise NotFoundError("File not found on server")
        data = await run_in_threadpool(self.storage.read, found.file_path)
        return found, None, data

    async def delete(self, db: AsyncSession, task_id: UUID, attachment_id: UUID, user_id: UUID) -> None:
        task = await self.tasks.get_accessible_task(db, task_id, user_id)
        found = await self._get_for_task(db, task_id, attachment_id)
        if found.user_id != user_id and task.created_by != user_id:
            raise ForbiddenError("Only the uploader or task creator can delete this attachment")

        key, original_name = found.file_path, found.original_name
        await db.delete(found)
        await db.commit()
        logger.info("Attachment deleted: %s by user %s", attachment_id, user_id)

        effects = SideEffects(db)
        effects.add("storage:delete", lambda: run_in_threadpool(self.storage.delete, key))
        effects.add(
            "activity:file_deleted",
            lambda: self.activity.record(
                db,
                task_id=task_id,
                user_id=user_id,
                action=ActivityAction.FILE_DELETED,
                metadata={"fileName": original_name},
            ),
        )
        effects.add(
            "push:attachment_deleted",
            lambda: self._push(task_id, "attachments:deleted", {"id": str(attachment_id)}),
        )
        await effects.run()

    async def recent_for_user(self, db: AsyncSession, user_id: UUID, limit: int = 10) -> UserAttachmentsResponse:
        attachments = await attachment_crud.recent_for_user(db, user_id=user_id, limit=limit)
        total_size = await attachment_crud.total_size_for_user(db, user_id=user_id)
        return UserAttachmentsResponse(
            attachments=[to_response(a) for a in attachments],
            total_size=total_size,
            formatted_total_size=format_file_size(total_size),
        )

    async def _push(self, task_id: UUID, event: str, payload) -> None:
        self.connections.push_to_task_channel(task_id, event, payload)
