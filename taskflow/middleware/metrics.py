"""Prometheus metrics."""
import time

from fastapi import FastAPI
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

# Metrics
http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "endpoint"],
)

notifications_created_total = Counter(
    "taskflow_notifications_created_total",
    "Notifications persisted",
    ["type"],
)

activity_entries_total = Counter(
    "taskflow_activity_entries_total",
    "Activity log entries recorded",
    ["action"],
)

side_effect_failures_total = Counter(
    "taskflow_side_effect_failures_total",
    "Secondary side effects that failed after a committed write",
    ["effect"],
)

template_instantiations_total = Counter(
    "taskflow_template_instantiations_total",
    "Tasks created from templates",
)


def setup_metrics(app: FastAPI) -> None:
    """Setup Prometheus metrics endpoint."""

    @app.middleware("http")
    async def observe_duration(request, call_next):
        started = time.perf_counter()
        response = await call_next(request)
        route = request.scope.get("route")
        endpoint = getattr(route, "path", "unmatched")
        http_request_duration_seconds.labels(request.method, endpoint).observe(
            time.perf_counter() - started
        )
        return response

    @app.get("/metrics", include_in_schema=False)
    async def metrics():
        """Prometheus metrics endpoint."""
        return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
