"""Analytics schemas."""
import datetime as dt
from typing import Optional
from taskflow.schemas.common import CamelModel


class OverviewResponse(CamelModel):
    """Status breakdown of the caller's assigned tasks."""

    total_tasks: int
    completed: int
    in_progress: int
    todo: int
    overdue: int


class ProductivityPoint(CamelModel):
    """Completed tasks on one day."""

    date: dt.date
    completed_tasks: int


class TrendPoint(CamelModel):
    """Completion figures for one priority."""

    priority: str
    count: int
    avg_completion_time: Optional[float] = None
