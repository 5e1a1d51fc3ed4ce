# app/core/task_variants.py
"""
Task variants.

Every task is one TaskVariant record: the shared fields plus a ``details``
payload tagged by ``kind``. Kind-specific fields live only in their own
payload, so a projection never carries another kind's fields. Links to other
tasks (parent, children) are stored as raw ids.

``describe()`` turns a variant into the uniform, JSON-ready projection served
to callers and stored in the cache; ``build_task_variant()`` is its inverse.
"""
from datetime import date, datetime
from typing import Annotated, Any, Dict, Iterable, List, Literal, Mapping, Optional, Type, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from app.db.models.enums import TaskStatus, TaskPriority, TaskKind, BugSeverity
from app.exceptions.tasks import TaskValidationError
from app.utils.helpers import clean_dict


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")


class PlainTaskDetails(_CamelModel):
    kind: Literal[TaskKind.TASK] = TaskKind.TASK


class SubtaskDetails(_CamelModel):
    kind: Literal[TaskKind.SUBTASK] = TaskKind.SUBTASK
    parent_id: int
    labels: List[str] = Field(default_factory=list)
    # Legacy free-text display name, unrelated to assignee_id
    assignee: Optional[str] = None


class BugDetails(_CamelModel):
    kind: Literal[TaskKind.BUG] = TaskKind.BUG
    severity: BugSeverity
    environment: str = Field(..., min_length=1)
    steps_to_reproduce: str = Field(..., min_length=1)


class StoryDetails(_CamelModel):
    kind: Literal[TaskKind.STORY] = TaskKind.STORY
    story_points: int = Field(..., ge=0)
    epic_link: Optional[str] = None


class EpicDetails(_CamelModel):
    kind: Literal[TaskKind.EPIC] = TaskKind.EPIC
    children_ids: Optional[List[int]] = None
    color: Optional[str] = None


TaskDetails = Annotated[
    Union[PlainTaskDetails, SubtaskDetails, BugDetails, StoryDetails, EpicDetails],
    Field(discriminator="kind"),
]

DETAIL_MODELS: Dict[TaskKind, Type[_CamelModel]] = {
    TaskKind.TASK: PlainTaskDetails,
    TaskKind.SUBTASK: SubtaskDetails,
    TaskKind.BUG: BugDetails,
    TaskKind.STORY: StoryDetails,
    TaskKind.EPIC: EpicDetails,
}

# details field -> tasks column
DETAIL_COLUMNS: Dict[TaskKind, Dict[str, str]] = {
    TaskKind.TASK: {},
    TaskKind.SUBTASK: {"parent_id": "parent_id", "labels": "labels", "assignee": "assignee_label"},
    TaskKind.BUG: {"severity": "severity", "environment": "environment", "steps_to_reproduce": "steps_to_reproduce"},
    TaskKind.STORY: {"story_points": "story_points", "epic_link": "epic_link"},
    TaskKind.EPIC: {"children_ids": "children_ids", "color": "color"},
}

READ_ONLY_FIELDS = ("id", "created_at", "updated_at")
MUTABLE_BASE_FIELDS = ("title", "description", "status", "priority", "deadline", "assignee_id")


class TaskVariant(_CamelModel):
    """A validated task of any kind"""
    id: int
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    deadline: Optional[date] = None
    assignee_id: Optional[int] = None
    created_at: datetime
    updated_at: datetime
    details: TaskDetails = Field(default_factory=PlainTaskDetails)

    @property
    def kind(self) -> TaskKind:
        return self.details.kind

    def describe(self) -> Dict[str, Any]:
        """Uniform projection: shared fields, kind tag, then the kind's own fields"""
        info = self.model_dump(mode="json", by_alias=True, exclude={"details"})
        info["kind"] = self.kind.value
        info.update(_describe_details(self.details))
        return info


def _describe_details(details) -> Dict[str, Any]:
    kind = details.kind
    if kind == TaskKind.TASK:
        return {}
    if kind == TaskKind.SUBTASK:
        return {
            "parentId": details.parent_id,
            "labels": list(details.labels),
            "assignee": details.assignee,
        }
    if kind == TaskKind.BUG:
        return {
            "severity": details.severity.value,
            "environment": details.environment,
            "stepsToReproduce": details.steps_to_reproduce,
        }
    if kind == TaskKind.STORY:
        return {
            "storyPoints": details.story_points,
            "epicLink": details.epic_link,
        }
    # Epic
    return {
        "childrenIds": list(details.children_ids) if details.children_ids is not None else None,
        "color": details.color,
    }


def _field_maps(models: Iterable[Type[BaseModel]]):
    """(name-or-alias -> name, name -> alias) over every field of the models"""
    to_name, to_alias = {}, {}
    for model in models:
        for name, field in model.model_fields.items():
            alias = field.alias or name
            to_name[name] = name
            to_name[alias] = name
            to_alias[name] = alias
    return to_name, to_alias


_KEY_NAMES, _KEY_ALIASES = _field_maps([TaskVariant, *DETAIL_MODELS.values()])


def _normalize_keys(payload: Mapping[str, Any]) -> Dict[str, Any]:
    """camelCase keys -> field names; unknown keys pass through untouched"""
    return {_KEY_NAMES.get(key, key): value for key, value in payload.items()}


def coerce_kind(value: Any) -> TaskKind:
    if value is None:
        return TaskKind.TASK
    try:
        return TaskKind(value)
    except ValueError:
        raise TaskValidationError("kind", f"Unknown task kind: {value}")


_KIND_TAGS = {tag for kind in TaskKind for tag in (kind.value, kind.name, str(kind), repr(kind))}


def _error_field(loc) -> Optional[str]:
    # Discriminated-union errors carry the union tag inside loc
    parts = [
        _KEY_ALIASES.get(str(part), str(part))
        for part in loc
        if part != "details" and str(part) not in _KIND_TAGS
    ]
    return ".".join(parts) or None


def _validate(model: Type[BaseModel], data: Dict[str, Any], kind: TaskKind):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        errors = []
        for error in e.errors():
            field = _error_field(error["loc"])
            message = error["msg"]
            if error["type"] == "extra_forbidden":
                message = f"Field is not applicable to {kind.value} tasks"
            errors.append({"field": field, "message": message, "type": error["type"]})
        first = errors[0]
        raise TaskValidationError(first["field"], first["message"], errors) from e


def validate_task_details(kind: Any, fields: Mapping[str, Any]):
    """Validate only the kind-specific fields of a payload"""
    kind = coerce_kind(kind)
    data = _normalize_keys(fields)
    data["kind"] = kind
    return _validate(DETAIL_MODELS[kind], data, kind)


def build_task_variant(payload: Mapping[str, Any]) -> TaskVariant:
    """
    Construct a variant from a flat, projection-shaped mapping
    (camelCase or snake_case keys). Raises TaskValidationError.
    """
    data = _normalize_keys(payload)
    kind = coerce_kind(data.pop("kind", None))
    detail_names = set(DETAIL_MODELS[kind].model_fields) - {"kind"}
    details = {name: data.pop(name) for name in list(data) if name in detail_names}
    data["details"] = {"kind": kind, **details}
    return _validate(TaskVariant, data, kind)


def merge_task_update(current: TaskVariant, changes: Mapping[str, Any]) -> TaskVariant:
    """
    Apply a partial update. Keys absent from ``changes`` keep their value, an
    explicit None clears a nullable field. Switching kind drops the old kind's
    fields, so the new kind's required fields must be part of ``changes``.
    """
    changes = _normalize_keys(changes)
    for name in READ_ONLY_FIELDS:
        if name in changes:
            raise TaskValidationError(_KEY_ALIASES[name], "Field is read-only")

    # A missing kind keeps the current one; kind itself is never nullable
    if "kind" in changes and changes["kind"] is None:
        raise TaskValidationError("kind", "Kind cannot be null")
    kind = coerce_kind(changes.pop("kind", current.kind))
    payload = current.model_dump(exclude={"details"})
    if kind == current.kind:
        payload.update(current.details.model_dump(exclude={"kind"}))
    payload.update(changes)
    payload["kind"] = kind
    return build_task_variant(payload)


def variant_from_row(row) -> TaskVariant:
    """Build a variant from a tasks row, reading only the row kind's columns"""
    kind = coerce_kind(row.kind)
    payload = {name: getattr(row, name) for name in READ_ONLY_FIELDS + MUTABLE_BASE_FIELDS}
    payload.update(clean_dict({field: getattr(row, column) for field, column in DETAIL_COLUMNS[kind].items()}))
    payload["kind"] = kind
    return build_task_variant(payload)


def detail_columns(details) -> Dict[str, Any]:
    """Column values for a details payload; other kinds' columns are nulled"""
    columns = {column: None for mapping in DETAIL_COLUMNS.values() for column in mapping.values()}
    for field, column in DETAIL_COLUMNS[details.kind].items():
        value = getattr(details, field)
        columns[column] = list(value) if isinstance(value, list) else value
    columns["kind"] = details.kind
    return columns


def variant_columns(variant: TaskVariant) -> Dict[str, Any]:
    """Every writable column of a tasks row for this variant"""
    columns = {name: getattr(variant, name) for name in MUTABLE_BASE_FIELDS}
    columns.update(detail_columns(variant.details))
    return columns


__all__ = [
    'TaskVariant', 'TaskDetails', 'PlainTaskDetails', 'SubtaskDetails', 'BugDetails',
    'StoryDetails', 'EpicDetails', 'DETAIL_MODELS', 'DETAIL_COLUMNS',
    'build_task_variant', 'validate_task_details', 'merge_task_update',
    'variant_from_row', 'variant_columns', 'detail_columns', 'coerce_kind',
]
