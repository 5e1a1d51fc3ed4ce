# app/core/cache_keys.py
"""
Cache keys for the task catalog

    <ns>task:<id>                                   single task
    <ns>tasks:list:<filters>                        unpaginated list
    <ns>tasks:page:<page>:limit:<limit>:<filters>   one page

List and page keys live under the collection scope ``<ns>tasks:`` so a
single prefix delete purges every cached collection. Item keys are outside
that scope. A full list and a page of the same filter are independent
entries.
"""
from datetime import date
from enum import Enum
from typing import Any, NamedTuple

from app.core.config import settings
from app.api.v1.schemas.tasks import TaskFilter

# Filter fields that shape a collection key, sorted for stable output
FILTER_KEY_FIELDS = ("created_from", "created_to", "priority", "status")


def _key_value(value: Any) -> str:
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, date):
        return value.isoformat()
    return str(value)


def filters_key(task_filter: TaskFilter) -> str:
    """Canonical `name=value|...` string of the filter's predicate fields, or `all`"""
    parts = [
        f"{name}={_key_value(getattr(task_filter, name))}"
        for name in FILTER_KEY_FIELDS
        if getattr(task_filter, name) is not None
    ]
    return "|".join(parts) or "all"


class CacheTTL(NamedTuple):
    task: int
    tasks: int
    tasks_page: int

    @classmethod
    def from_settings(cls) -> "CacheTTL":
        return cls(
            task=settings.CACHE_TTL_TASK,
            tasks=settings.CACHE_TTL_TASKS,
            tasks_page=settings.CACHE_TTL_TASKS_PAGE,
        )


class TaskCacheKeys:
    """Derives item keys, collection keys and the collection invalidation scope"""

    def __init__(self, prefix: str = None):
        prefix = settings.CACHE_KEY_PREFIX if prefix is None else prefix
        self.namespace = f"{prefix}:" if prefix else ""

    def task_key(self, task_id: int) -> str:
        return f"{self.namespace}task:{int(task_id)}"

    def collection_scope(self) -> str:
        """Prefix shared by every list and page key"""
        return f"{self.namespace}tasks:"

    def task_list_key(self, task_filter: TaskFilter) -> str:
        key = f"{self.collection_scope()}list:{filters_key(task_filter)}"
        # limit does not change an unpaginated result but is still part of the filter
        if task_filter.limit is not None:
            key += f"|limit={task_filter.limit}"
        return key

    def task_page_key(self, task_filter: TaskFilter) -> str:
        page = task_filter.page or 1
        return (
            f"{self.collection_scope()}page:{page}:limit:{task_filter.page_limit}:"
            f"{filters_key(task_filter)}"
        )

    def key_for(self, task_filter: TaskFilter) -> str:
        if task_filter.is_paginated:
            return self.task_page_key(task_filter)
        return self.task_list_key(task_filter)
