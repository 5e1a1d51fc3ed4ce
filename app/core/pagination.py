# app/core/pagination.py
"""
Pagination arithmetic shared by the task repository and the list endpoint
"""
from typing import Any, Dict, List
from math import ceil
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def page_offset(page: int, limit: int) -> int:
    """Offset for a 1-based page"""
    return (page - 1) * limit


def total_pages(total: int, limit: int) -> int:
    """Number of pages needed to hold total rows"""
    return ceil(total / limit) if total > 0 else 0


class PaginationMeta(BaseModel):
    """Pagination block of a paginated task envelope"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    page: int = Field(..., ge=1)
    limit: int = Field(..., ge=1)
    total: int = Field(..., ge=0)
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> "PaginationMeta":
        pages = total_pages(total, limit)
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=pages,
            has_next=page < pages,
            has_prev=page > 1,
        )


def paginated_envelope(tasks: List[Dict[str, Any]], meta: PaginationMeta) -> Dict[str, Any]:
    """JSON-ready envelope: {tasks: [...], pagination: {...}}"""
    return {
        "tasks": tasks,
        "pagination": meta.model_dump(by_alias=True),
    }
