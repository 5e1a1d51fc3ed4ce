# app/exceptions/handlers.py
from fastapi import Request, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from app.core import tracing
from app.exceptions.tasks import TaskValidationError, TaskNotFoundError, TaskStoreError
import time


def get_client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def _error_body(request: Request, status_code: int, detail, **extra) -> dict:
    return {
        "detail": detail,
        "status_code": status_code,
        "trace_id": tracing.get_current_trace_id(),
        "timestamp": time.time(),
        "path": request.url.path,
        **extra
    }


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    tracing.error(
        f"🚨 HTTP {exc.status_code}: {exc.detail}",
        url=str(request.url),
        ip=get_client_ip(request)
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(request, exc.status_code, exc.detail),
        headers=getattr(exc, 'headers', None)
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {
            "field": " -> ".join(str(x) for x in error["loc"]),
            "message": error["msg"],
            "type": error["type"]
        }
        for error in exc.errors()
    ]

    tracing.warning(
        f"⚠️ Validation error: {len(errors)} errors",
        url=str(request.url),
        ip=get_client_ip(request)
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(request, status.HTTP_422_UNPROCESSABLE_ENTITY, "Validation error", errors=errors)
    )


async def task_validation_exception_handler(request: Request, exc: TaskValidationError) -> JSONResponse:
    tracing.warning(
        f"⚠️ Task validation failed on {exc.field}: {exc.message}",
        url=str(request.url),
        ip=get_client_ip(request)
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=_error_body(
            request,
            status.HTTP_422_UNPROCESSABLE_ENTITY,
            exc.message,
            field=exc.field,
            errors=exc.errors
        )
    )


async def task_not_found_handler(request: Request, exc: TaskNotFoundError) -> JSONResponse:
    tracing.info(
        f"🔍 {exc.resource} {exc.task_id} not found",
        url=str(request.url)
    )

    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content=_error_body(request, status.HTTP_404_NOT_FOUND, str(exc))
    )


async def task_store_exception_handler(request: Request, exc: TaskStoreError) -> JSONResponse:
    tracing.error(
        f"🔥 Task store failure during {exc.operation}: {exc.detail}",
        url=str(request.url),
        ip=get_client_ip(request)
    )

    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content=_error_body(request, status.HTTP_503_SERVICE_UNAVAILABLE, "Task storage unavailable")
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    tracing.error(
        f"🔥 UNHANDLED EXCEPTION: {str(exc)}",
        url=str(request.url),
        ip=get_client_ip(request)
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_error_body(
            request,
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Internal server error",
            error_type=type(exc).__name__
        )
    )
