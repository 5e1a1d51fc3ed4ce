# app/db/crud/task.py
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy import select, func, and_, true
from sqlalchemy.sql.elements import ColumnElement
from typing import Optional, List, Dict, Any
from loguru import logger

from app.db.models import Task
from app.api.v1.schemas.tasks import TaskFilter
from app.exceptions.tasks import TaskStoreError
from app.utils.helpers import start_of_day, start_of_next_day


def build_task_predicate(task_filter: TaskFilter) -> ColumnElement:
    """Translate a filter into a WHERE clause"""
    conditions = []

    if task_filter.status is not None:
        conditions.append(Task.status == task_filter.status)

    if task_filter.priority is not None:
        conditions.append(Task.priority == task_filter.priority)

    # Inclusive day boundaries on creation time
    if task_filter.created_from is not None:
        conditions.append(Task.created_at >= start_of_day(task_filter.created_from))

    if task_filter.created_to is not None:
        conditions.append(Task.created_at < start_of_next_day(task_filter.created_to))

    return and_(*conditions) if conditions else true()


async def _fail(db: AsyncSession, operation: str, e: Exception):
    logger.error(f"Task store {operation} failed: {e}")
    await db.rollback()
    raise TaskStoreError(operation, str(e)) from e


async def find_tasks(
        db: AsyncSession,
        predicate: ColumnElement,
        offset: Optional[int] = None,
        limit: Optional[int] = None
) -> List[Task]:
    """Tasks matching predicate, newest first"""
    try:
        query = (
            select(Task)
            .where(predicate)
            .order_by(Task.created_at.desc(), Task.id.desc())
        )
        if offset is not None:
            query = query.offset(offset)
        if limit is not None:
            query = query.limit(limit)

        result = await db.execute(query)
        return list(result.scalars().all())

    except SQLAlchemyError as e:
        await _fail(db, "find", e)


async def count_tasks(db: AsyncSession, predicate: ColumnElement) -> int:
    """Number of tasks matching predicate"""
    try:
        total = await db.scalar(select(func.count(Task.id)).where(predicate))
        return total or 0

    except SQLAlchemyError as e:
        await _fail(db, "count", e)


async def get_task_by_id(db: AsyncSession, task_id: int) -> Optional[Task]:
    """Get task by primary key"""
    try:
        return await db.get(Task, task_id)

    except SQLAlchemyError as e:
        await _fail(db, "find_by_pk", e)


async def create_task(db: AsyncSession, fields: Dict[str, Any]) -> Task:
    """Insert a task row"""
    try:
        task = Task(**fields)
        db.add(task)
        await db.commit()
        await db.refresh(task)

        logger.info(f"Task created: {task.id} ({task.kind.value}) {task.title}")
        return task

    except SQLAlchemyError as e:
        await _fail(db, "create", e)


async def save_task(db: AsyncSession, task: Task) -> Task:
    """Persist pending changes on a loaded task"""
    try:
        await db.commit()
        await db.refresh(task)

        logger.info(f"Task {task.id} updated")
        return task

    except SQLAlchemyError as e:
        await _fail(db, "save", e)


async def delete_task(db: AsyncSession, task: Task) -> bool:
    """Delete a task (hard delete)"""
    task_id = task.id
    try:
        await db.delete(task)
        await db.commit()
        logger.info(f"Task {task_id} deleted")
        return True

    except SQLAlchemyError as e:
        await _fail(db, "destroy", e)
