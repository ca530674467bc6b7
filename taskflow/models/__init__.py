"""Model modules."""
from taskflow.models.user import User
from taskflow.models.task import Task, TaskStatus, TaskPriority
from taskflow.models.comment import TaskEntry, Comment, Activity, EntryType, ActivityAction
from taskflow.models.notification import Notification, NotificationType
from taskflow.models.template import Template, TemplateUsage
from taskflow.models.attachment import Attachment

__all__ = [
    "User",
    "Task",
    "TaskStatus",
    "TaskPriority",
    "TaskEntry",
    "Comment",
    "Activity",
    "EntryType",
    "ActivityAction",
    "Notification",
    "NotificationType",
    "Template",
    "TemplateUsage",
    "Attachment",
]
