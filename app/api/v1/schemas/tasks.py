# app/api/v1/schemas/tasks.py
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict, Any
from datetime import date

from app.core.config import settings
from app.db.models.enums import TaskStatus, TaskPriority, TaskKind, BugSeverity

# Fields that belong to one task kind only
KIND_FIELDS = (
    "parent_id", "labels", "assignee",
    "severity", "environment", "steps_to_reproduce",
    "story_points", "epic_link",
    "children_ids", "color",
)


def _check_deadline(v: Optional[date]) -> Optional[date]:
    if v is not None and v < date.today():
        raise ValueError("Deadline cannot be in the past")
    return v


class _CamelSchema(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TaskFilter(_CamelSchema):
    """Immutable list query: status/priority/creation-date bounds plus optional paging"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True, extra="forbid")

    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    created_from: Optional[date] = Field(None, description="Inclusive, floored to 00:00:00")
    created_to: Optional[date] = Field(None, description="Inclusive, covers the whole day")
    page: Optional[int] = Field(None, ge=1, description="1-based page; omit for the full list")
    limit: Optional[int] = Field(None, ge=1, le=settings.MAX_PAGE_LIMIT, description="Page size")

    @property
    def is_paginated(self) -> bool:
        return self.page is not None

    @property
    def page_limit(self) -> int:
        """Page size with the configured default applied"""
        return self.limit or settings.DEFAULT_PAGE_LIMIT


class TaskKindFields(_CamelSchema):
    """Kind-specific fields; validated against the task kind by the repository"""
    parent_id: Optional[int] = None
    labels: Optional[List[str]] = None
    assignee: Optional[str] = Field(None, description="Legacy free-text assignee label (Subtask)")
    severity: Optional[BugSeverity] = None
    environment: Optional[str] = None
    steps_to_reproduce: Optional[str] = None
    story_points: Optional[int] = None
    epic_link: Optional[str] = None
    children_ids: Optional[List[int]] = None
    color: Optional[str] = None

    def kind_fields(self) -> Dict[str, Any]:
        """Kind-specific fields the caller actually supplied"""
        return self.model_dump(include=set(KIND_FIELDS), exclude_unset=True)


class TaskCreate(TaskKindFields):
    """Schema for creating a task of any kind"""
    title: str = Field(..., min_length=1, max_length=500, description="Task title")
    description: Optional[str] = Field(None, description="Task description")
    kind: TaskKind = Field(TaskKind.TASK, description="Task kind")
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    deadline: Optional[date] = None
    assignee_id: Optional[int] = Field(None, gt=0, description="Assigned user id")

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Title is required and must be a non-empty string")
        return v

    @field_validator("deadline")
    @classmethod
    def deadline_not_past(cls, v: Optional[date]) -> Optional[date]:
        return _check_deadline(v)


class TaskUpdate(TaskKindFields):
    """
    Partial update. Only fields present in the request are applied; an
    explicit null clears a nullable field.
    """
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    kind: Optional[TaskKind] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    deadline: Optional[date] = None
    assignee_id: Optional[int] = Field(None, gt=0)

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError("Title is required and must be a non-empty string")
        return v

    @field_validator("deadline")
    @classmethod
    def deadline_not_past(cls, v: Optional[date]) -> Optional[date]:
        return _check_deadline(v)

    def changes(self) -> Dict[str, Any]:
        """Supplied fields only, keyed by field name"""
        return self.model_dump(exclude_unset=True)
