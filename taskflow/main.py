"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from taskflow.api import ws
from taskflow.api.v1 import analytics, attachments, auth, comments, notifications, tasks, templates, users
from taskflow.config import settings
from taskflow.core.exceptions import TaskflowError
from taskflow.core.logging import setup_logging
from taskflow.database import close_db, engine, init_db
from taskflow.middleware.metrics import setup_metrics
from taskflow.realtime.connection_manager import ConnectionManager
from taskflow.services.cache_service import TaskCache
from taskflow.services.container import Services
from taskflow.services.storage_service import StorageService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    setup_logging()
    await init_db()
    app.state.services = Services(
        cache=TaskCache.from_url(settings.REDIS_URL),
        connections=ConnectionManager(),
        storage=StorageService(),
    )
    logger.info("%s %s started", settings.APP_NAME, settings.APP_VERSION)
    yield
    # Shutdown
    await app.state.services.close()
    await close_db()


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

setup_metrics(app)


@app.exception_handler(TaskflowError)
async def taskflow_error_handler(request: Request, exc: TaskflowError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": {"kind": exc.kind, "message": exc.message}, "detail": exc.message},
        headers=getattr(exc, "headers", None),
    )


# Include routers
app.include_router(auth.router, prefix=f"{settings.API_V1_PREFIX}/auth", tags=["auth"])
app.include_router(users.router, prefix=f"{settings.API_V1_PREFIX}/users", tags=["users"])
app.include_router(attachments.router, prefix=f"{settings.API_V1_PREFIX}/tasks", tags=["attachments"])
app.include_router(tasks.router, prefix=f"{settings.API_V1_PREFIX}/tasks", tags=["tasks"])
app.include_router(comments.router, prefix=f"{settings.API_V1_PREFIX}/tasks", tags=["comments"])
app.include_router(
    notifications.router, prefix=f"{settings.API_V1_PREFIX}/notifications", tags=["notifications"]
)
app.include_router(templates.router, prefix=f"{settings.API_V1_PREFIX}/templates", tags=["templates"])
app.include_router(analytics.router, prefix=f"{settings.API_V1_PREFIX}/analytics", tags=["analytics"])
app.include_router(ws.router)


@app.get("/health")
async def health_check(request: Request):
    """Health check endpoint."""
    health_status = {
        "status": "ok",
        "checks": {
            "database": "unknown",
            "redis": "unknown",
        },
    }

    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        health_status["checks"]["database"] = "ok"
    except Exception as e:
        health_status["checks"]["database"] = f"error: {e}"
        health_status["status"] = "degraded"

    try:
        await request.app.state.services.cache.ping()
        health_status["checks"]["redis"] = "ok"
    except Exception as e:
        health_status["checks"]["redis"] = f"error: {e}"
        health_status["status"] = "degraded"

    return health_status
