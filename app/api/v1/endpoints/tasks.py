# app/api/v1/endpoints/tasks.py
"""Task catalog endpoints"""
from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import Any, Dict, List, Optional, Union
from pydantic import ValidationError

from app.core.config import settings
from app.db.database import get_db
from app.db import crud
from app.db.models import TaskStatus, TaskPriority
from app.api.v1.schemas.tasks import TaskCreate, TaskFilter, TaskUpdate
from app.exceptions.tasks import TaskNotFoundError
from app.services.task_repository import TaskRepository

router = APIRouter()


def get_task_repository(request: Request, db: AsyncSession = Depends(get_db)) -> TaskRepository:
    """Per-request repository over the request's session and the app-wide cache"""
    return TaskRepository(db=db, cache=request.app.state.cache)


def get_task_filter(
    status_filter: Optional[TaskStatus] = Query(None, alias="status", description="Filter by status"),
    priority: Optional[TaskPriority] = Query(None, description="Filter by priority"),
    created_from: Optional[date] = Query(None, alias="createdFrom", description="Created on or after (YYYY-MM-DD)"),
    created_to: Optional[date] = Query(None, alias="createdTo", description="Created on or before (YYYY-MM-DD)"),
    page: Optional[int] = Query(None, ge=1, description="Page number; omit for the full list"),
    limit: Optional[int] = Query(None, ge=1, le=settings.MAX_PAGE_LIMIT, description="Items per page"),
) -> TaskFilter:
    """Dependency to turn query parameters into a TaskFilter"""
    try:
        return TaskFilter(
            status=status_filter,
            priority=priority,
            created_from=created_from,
            created_to=created_to,
            page=page,
            limit=limit,
        )
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))


async def ensure_assignee_exists(db: AsyncSession, assignee_id: Optional[int]) -> None:
    if assignee_id is None:
        return
    if await crud.user.get_user_by_id(db, assignee_id) is None:
        raise TaskNotFoundError(assignee_id, resource="Assignee")


@router.get("", response_model=Union[List[Dict[str, Any]], Dict[str, Any]])
async def list_tasks(
    task_filter: TaskFilter = Depends(get_task_filter),
    repository: TaskRepository = Depends(get_task_repository),
):
    """List tasks, optionally filtered and paginated"""
    return await repository.list(task_filter)


@router.get("/{task_id}", response_model=Dict[str, Any])
async def get_task(
    task_id: int,
    repository: TaskRepository = Depends(get_task_repository),
):
    """Get a specific task by id"""
    task = await repository.get_by_id(task_id)
    if task is None:
        raise TaskNotFoundError(task_id)
    return task


@router.post("", response_model=Dict[str, Any], status_code=status.HTTP_201_CREATED)
async def create_task(
    task_data: TaskCreate,
    db: AsyncSession = Depends(get_db),
    repository: TaskRepository = Depends(get_task_repository),
):
    """Create a task of any kind"""
    await ensure_assignee_exists(db, task_data.assignee_id)
    return await repository.create(task_data)


@router.put("/{task_id}", response_model=Dict[str, Any])
async def update_task(
    task_id: int,
    updates: TaskUpdate,
    db: AsyncSession = Depends(get_db),
    repository: TaskRepository = Depends(get_task_repository),
):
    """Partially update a task; omitted fields keep their values"""
    await ensure_assignee_exists(db, updates.assignee_id)
    task = await repository.update(task_id, updates)
    if task is None:
        raise TaskNotFoundError(task_id)
    return task


@router.delete("/{task_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_task(
    task_id: int,
    repository: TaskRepository = Depends(get_task_repository),
):
    """Delete a task"""
    if not await repository.delete(task_id):
        raise TaskNotFoundError(task_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
