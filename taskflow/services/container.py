"""Wiring of the service layer around its external collaborators."""
from taskflow.realtime.connection_manager import ConnectionManager
from taskflow.services.activity_service import ActivityService
from taskflow.services.attachment_service import AttachmentService
from taskflow.services.cache_service import TaskCache
from taskflow.services.comment_service import CommentService
from taskflow.services.notification_service import NotificationService
from taskflow.services.storage_service import StorageService
from taskflow.services.task_service import TaskService
from taskflow.services.template_service import TemplateService


class Services:
    """Services built on one cache, one connection registry and one storage.

    Created in the application lifespan and stored on ``app.state``; tests
    build one around in-memory fakes.
    """

    def __init__(self, cache: TaskCache, connections: ConnectionManager, storage: StorageService):
        self.cache = cache
        self.connections = connections
        self.storage = storage

        self.activity = ActivityService()
        self.notifications = NotificationService(connections)
        self.tasks = TaskService(cache, connections, self.notifications, self.activity, storage)
        self.comments = CommentService(self.tasks, cache, connections, self.notifications)
        self.templates = TemplateService(cache, connections, self.notifications, self.activity)
        self.attachments = AttachmentService(self.tasks, storage, connections, self.activity)

    async def close(self) -> None:
        await self.connections.close()
        await self.cache.close()
