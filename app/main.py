# app/main.py - Application wiring: logging, cache tier, routes and error handlers
from fastapi import FastAPI, Depends, HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from contextlib import asynccontextmanager
import time

# Core imports
from app.core.config import settings
from app.core.cache import build_cache_store
from app.db.database import engine, get_db, init_db

# Import tracing
from app.core import tracing

# Import API routes
from app.api.v1.endpoints import tasks

# Import exception handlers
from app.exceptions.handlers import (
    http_exception_handler,
    validation_exception_handler,
    task_validation_exception_handler,
    task_not_found_handler,
    task_store_exception_handler,
    global_exception_handler
)
from app.exceptions.tasks import TaskValidationError, TaskNotFoundError, TaskStoreError


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan: create tables, open the cache tier, close it on shutdown
    """
    tracing.info("Taskboard API startup initiated")

    try:
        await init_db()
    except Exception as e:
        tracing.error(f"Database initialization failed: {e}")
        raise

    app.state.cache = build_cache_store(settings)

    tracing.info(f"Environment: {settings.ENVIRONMENT}")
    tracing.info(f"Log Level: {settings.LOG_LEVEL}")
    tracing.info(f"Cache: {'Enabled' if app.state.cache.enabled else 'Disabled'}")
    tracing.info("Taskboard API v1.0.0 startup complete")

    yield

    tracing.info("Taskboard API shutdown initiated")
    await app.state.cache.close()
    tracing.info("Taskboard API shutdown complete")


# Create FastAPI application
app = FastAPI(
    title="Taskboard API",
    description="Task catalog with a read-through cache",
    version="1.0.0",
    lifespan=lifespan,
    docs_url="/docs" if settings.ENVIRONMENT == "development" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT == "development" else None,
    openapi_url="/openapi.json" if settings.ENVIRONMENT == "development" else None
)

# =============================================================================
# TRACING + LOGGING
# =============================================================================

tracing.setup_tracing(app, db_engine=engine)

# =============================================================================
# EXCEPTION HANDLERS
# =============================================================================

app.add_exception_handler(RequestValidationError, validation_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(TaskValidationError, task_validation_exception_handler)
app.add_exception_handler(TaskNotFoundError, task_not_found_handler)
app.add_exception_handler(TaskStoreError, task_store_exception_handler)
app.add_exception_handler(Exception, global_exception_handler)

# =============================================================================
# API ROUTES
# =============================================================================

app.include_router(tasks.router, prefix="/api/v1/tasks", tags=["Tasks"])

tracing.info("API routes configured")


# =============================================================================
# SYSTEM ENDPOINTS
# =============================================================================

@app.get("/health", tags=["System"])
async def health_check(request: Request, db: AsyncSession = Depends(get_db)):
    """
    Database connectivity is required; the cache is reported but optional
    """
    cache = request.app.state.cache
    if not cache.enabled:
        cache_status = "disabled"
    elif await cache.ping():
        cache_status = "connected"
    else:
        cache_status = "unavailable"

    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        tracing.error(f"Health check failed: {e}",
                      endpoint="/health",
                      status="failed",
                      error_type=type(e).__name__)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service unhealthy - database connection failed"
        )

    return {
        "status": "healthy",
        "service": "Taskboard API",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT,
        "timestamp": time.time(),
        **tracing.get_trace_context(),
        "checks": {
            "database": "connected",
            "cache": cache_status
        }
    }
