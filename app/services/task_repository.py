# app/services/task_repository.py
"""
Read-through, write-invalidate task repository.

Reads consult the cache first and fill it from the database on a miss. Writes
never modify cached values: they commit to the database, then delete every key
the write could have affected before returning, and the next reader
repopulates them.

No locks are taken. A reader that missed just before a concurrent write can
store the pre-write value after that write's invalidation; the stale entry
lives until its TTL runs out. Cache failures degrade to misses and skipped
deletes; database failures propagate as TaskStoreError.
"""
from typing import Any, Dict, List, Mapping, Optional, Union
from sqlalchemy.ext.asyncio import AsyncSession
from loguru import logger

from app.api.v1.schemas.tasks import TaskCreate, TaskFilter, TaskUpdate
from app.core.cache import CacheStore, NullCacheStore
from app.core.cache_keys import CacheTTL, TaskCacheKeys
from app.core.pagination import PaginationMeta, page_offset, paginated_envelope
from app.core.task_variants import (
    detail_columns,
    merge_task_update,
    validate_task_details,
    variant_columns,
    variant_from_row,
)
from app.db.crud import task as task_crud
from app.db.models import TaskPriority, TaskStatus
from app.utils.helpers import clean_dict, utc_now

TaskInfo = Dict[str, Any]


class TaskRepository:
    """The only entry point to task data for callers above the store"""

    def __init__(
            self,
            db: AsyncSession,
            cache: Optional[CacheStore] = None,
            keys: Optional[TaskCacheKeys] = None,
            ttl: Optional[CacheTTL] = None
    ):
        self.db = db
        self.cache = cache or NullCacheStore()
        self.keys = keys or TaskCacheKeys()
        self.ttl = ttl or CacheTTL.from_settings()

    @staticmethod
    def _describe_rows(rows) -> List[TaskInfo]:
        return [variant_from_row(row).describe() for row in rows]

    async def _invalidate_collections(self) -> None:
        await self.cache.delete_by_prefix(self.keys.collection_scope())

    async def list(self, task_filter: Optional[TaskFilter] = None) -> Union[List[TaskInfo], Dict[str, Any]]:
        """
        Tasks matching the filter, newest first. Without a page the result is
        a bare list; with one it is a {tasks, pagination} envelope.
        """
        task_filter = task_filter or TaskFilter()
        key = self.keys.key_for(task_filter)

        cached = await self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key}")
            return cached
        logger.debug(f"Cache miss: {key}")

        predicate = task_crud.build_task_predicate(task_filter)

        if task_filter.is_paginated:
            page, limit = task_filter.page, task_filter.page_limit
            total = await task_crud.count_tasks(self.db, predicate)
            rows = await task_crud.find_tasks(
                self.db, predicate, offset=page_offset(page, limit), limit=limit
            )
            result = paginated_envelope(self._describe_rows(rows), PaginationMeta.build(page, limit, total))
            await self.cache.set(key, result, self.ttl.tasks_page)
            return result

        rows = await task_crud.find_tasks(self.db, predicate)
        result = self._describe_rows(rows)
        await self.cache.set(key, result, self.ttl.tasks)
        return result

    async def get_by_id(self, task_id: int) -> Optional[TaskInfo]:
        """Single task projection, or None. Absent tasks are never cached."""
        key = self.keys.task_key(task_id)

        cached = await self.cache.get(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key}")
            return cached

        row = await task_crud.get_task_by_id(self.db, task_id)
        if row is None:
            return None

        info = variant_from_row(row).describe()
        await self.cache.set(key, info, self.ttl.task)
        return info

    async def create(self, payload: TaskCreate) -> TaskInfo:
        """Validate, insert, purge collection entries, return the cached projection"""
        details = validate_task_details(payload.kind, clean_dict(payload.kind_fields()))

        fields = {
            "title": payload.title,
            "description": payload.description,
            "status": payload.status or TaskStatus.TODO,
            "priority": payload.priority or TaskPriority.MEDIUM,
            "deadline": payload.deadline,
            "assignee_id": payload.assignee_id,
        }
        fields.update(detail_columns(details))

        task = await task_crud.create_task(self.db, fields)
        await self._invalidate_collections()
        return await self.get_by_id(task.id)

    async def update(self, task_id: int, changes: Union[TaskUpdate, Mapping[str, Any]]) -> Optional[TaskInfo]:
        """
        Apply only the supplied fields. Returns None when the task does not
        exist. The merged task is validated before anything is written.
        """
        task = await task_crud.get_task_by_id(self.db, task_id)
        if task is None:
            return None

        if isinstance(changes, TaskUpdate):
            changes = changes.changes()
        variant = merge_task_update(variant_from_row(task), changes)

        for column, value in variant_columns(variant).items():
            setattr(task, column, value)
        # onupdate only fires when some column actually changed
        task.updated_at = utc_now()
        await task_crud.save_task(self.db, task)

        await self.cache.delete(self.keys.task_key(task_id))
        await self._invalidate_collections()
        return await self.get_by_id(task_id)

    async def delete(self, task_id: int) -> bool:
        """Remove a task. Returns False when it does not exist."""
        task = await task_crud.get_task_by_id(self.db, task_id)
        if task is None:
            return False

        await task_crud.delete_task(self.db, task)

        await self.cache.delete(self.keys.task_key(task_id))
        await self._invalidate_collections()
        return True
