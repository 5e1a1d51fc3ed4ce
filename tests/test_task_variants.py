"""
Task variant construction, projection and merge tests
"""
from datetime import date, datetime, timezone

import pytest

from app.core.task_variants import (
    build_task_variant,
    detail_columns,
    merge_task_update,
    validate_task_details,
    variant_columns,
    variant_from_row,
)
from app.db.models import Task, TaskKind, TaskStatus, TaskPriority, BugSeverity
from app.exceptions.tasks import TaskValidationError

CREATED = datetime(2024, 5, 1, 9, 30, tzinfo=timezone.utc)

BASE = {
    "id": 7,
    "title": "Ship release",
    "description": "Cut the tag",
    "status": "in_progress",
    "priority": "high",
    "deadline": "2030-01-15",
    "assigneeId": None,
    "createdAt": CREATED.isoformat(),
    "updatedAt": CREATED.isoformat(),
}

KIND_PAYLOADS = {
    "Task": {},
    "Subtask": {"parentId": 3, "labels": ["backend", "infra"], "assignee": "ops"},
    "Bug": {"severity": "critical", "environment": "production", "stepsToReproduce": "Open the app"},
    "Story": {"storyPoints": 5, "epicLink": "EPIC-1"},
    "Epic": {"childrenIds": [1, 2, 3], "color": "#ff0000"},
}


def projection(kind, **overrides):
    payload = {**BASE, "kind": kind, **KIND_PAYLOADS[kind]}
    payload.update(overrides)
    return payload


class TestProjection:
    """describe() and build_task_variant() agree for every kind"""

    @pytest.mark.parametrize("kind", list(KIND_PAYLOADS))
    async def test_describe_reconstructs_variant(self, kind):
        variant = build_task_variant(projection(kind))

        described = variant.describe()

        assert described["kind"] == kind
        assert build_task_variant(described) == variant

    async def test_projection_has_only_own_kind_fields(self):
        described = build_task_variant(projection("Bug")).describe()

        assert described["severity"] == "critical"
        assert described["stepsToReproduce"] == "Open the app"
        for foreign in ("storyPoints", "epicLink", "parentId", "labels", "childrenIds", "color"):
            assert foreign not in described

    async def test_plain_task_has_shared_fields_only(self):
        described = build_task_variant(projection("Task")).describe()

        assert set(described) == {
            "id", "title", "description", "status", "priority", "deadline",
            "assigneeId", "createdAt", "updatedAt", "kind",
        }
        assert described["deadline"] == "2030-01-15"

    async def test_snake_case_keys_accepted(self):
        variant = build_task_variant({
            "id": 1, "title": "x", "kind": "Story", "story_points": 0,
            "created_at": CREATED, "updated_at": CREATED,
        })

        assert variant.kind == TaskKind.STORY
        assert variant.details.story_points == 0

    async def test_missing_kind_defaults_to_task(self):
        payload = dict(BASE)

        assert build_task_variant(payload).kind == TaskKind.TASK

    async def test_subtask_labels_default_to_empty(self):
        payload = projection("Subtask")
        del payload["labels"]

        described = build_task_variant(payload).describe()

        assert described["labels"] == []

    async def test_epic_without_children(self):
        described = build_task_variant(projection("Epic", childrenIds=None)).describe()

        assert described["childrenIds"] is None


class TestKindValidation:
    """Kind-specific rules"""

    async def test_story_points_zero_is_valid(self):
        details = validate_task_details("Story", {"storyPoints": 0})
        assert details.story_points == 0

    async def test_negative_story_points_rejected(self):
        with pytest.raises(TaskValidationError) as exc_info:
            validate_task_details("Story", {"storyPoints": -1})

        assert exc_info.value.field == "storyPoints"

    async def test_bug_requires_severity_environment_steps(self):
        with pytest.raises(TaskValidationError) as exc_info:
            validate_task_details("Bug", {"severity": "minor"})

        fields = {error["field"] for error in exc_info.value.errors}
        assert fields == {"environment", "stepsToReproduce"}

    async def test_bug_rejects_empty_environment(self):
        with pytest.raises(TaskValidationError) as exc_info:
            validate_task_details("Bug", {"severity": "minor", "environment": "", "stepsToReproduce": "x"})

        assert exc_info.value.field == "environment"

    async def test_unknown_severity_rejected(self):
        with pytest.raises(TaskValidationError) as exc_info:
            validate_task_details("Bug", {"severity": "apocalyptic", "environment": "e", "stepsToReproduce": "s"})

        assert exc_info.value.field == "severity"

    async def test_subtask_requires_parent(self):
        with pytest.raises(TaskValidationError) as exc_info:
            validate_task_details("Subtask", {"labels": ["a"]})

        assert exc_info.value.field == "parentId"

    async def test_foreign_field_rejected(self):
        with pytest.raises(TaskValidationError) as exc_info:
            validate_task_details("Task", {"severity": "major"})

        assert exc_info.value.field == "severity"
        assert "not applicable to Task" in exc_info.value.message

    async def test_foreign_field_rejected_on_build(self):
        with pytest.raises(TaskValidationError) as exc_info:
            build_task_variant(projection("Bug", storyPoints=3))

        assert exc_info.value.field == "storyPoints"

    async def test_unknown_kind_rejected(self):
        with pytest.raises(TaskValidationError) as exc_info:
            build_task_variant({**projection("Task"), "kind": "Chore"})

        assert exc_info.value.field == "kind"

    async def test_blank_title_rejected(self):
        with pytest.raises(TaskValidationError) as exc_info:
            build_task_variant(projection("Task", title=""))

        assert exc_info.value.field == "title"


class TestMergeUpdate:
    """Partial update semantics"""

    async def test_absent_fields_keep_values(self):
        current = build_task_variant(projection("Bug"))

        merged = merge_task_update(current, {"priority": TaskPriority.URGENT})

        assert merged.priority == TaskPriority.URGENT
        assert merged.title == current.title
        assert merged.description == current.description
        assert merged.details == current.details

    async def test_explicit_none_clears_nullable_field(self):
        current = build_task_variant(projection("Story"))

        merged = merge_task_update(current, {"deadline": None, "epicLink": None})

        assert merged.deadline is None
        assert merged.details.epic_link is None
        assert merged.details.story_points == 5

    async def test_kind_specific_field_update(self):
        current = build_task_variant(projection("Story"))

        merged = merge_task_update(current, {"storyPoints": 8})

        assert merged.details.story_points == 8

    async def test_update_cannot_break_kind_rules(self):
        current = build_task_variant(projection("Story"))

        with pytest.raises(TaskValidationError) as exc_info:
            merge_task_update(current, {"storyPoints": -2})

        assert exc_info.value.field == "storyPoints"

    async def test_kind_switch_drops_old_fields(self):
        current = build_task_variant(projection("Bug"))

        merged = merge_task_update(current, {"kind": "Story", "storyPoints": 3})

        assert merged.kind == TaskKind.STORY
        described = merged.describe()
        assert "severity" not in described
        assert described["storyPoints"] == 3

    async def test_null_kind_rejected(self):
        current = build_task_variant(projection("Bug"))

        with pytest.raises(TaskValidationError) as exc_info:
            merge_task_update(current, {"kind": None})

        assert exc_info.value.field == "kind"

    async def test_absent_kind_keeps_current(self):
        current = build_task_variant(projection("Bug"))

        merged = merge_task_update(current, {"title": "Still a bug"})

        assert merged.kind == TaskKind.BUG
        assert merged.details == current.details

    async def test_kind_switch_requires_new_fields(self):
        current = build_task_variant(projection("Task"))

        with pytest.raises(TaskValidationError) as exc_info:
            merge_task_update(current, {"kind": "Bug"})

        assert exc_info.value.field in {"severity", "environment", "stepsToReproduce"}

    @pytest.mark.parametrize("field", ["id", "createdAt", "updated_at"])
    async def test_read_only_fields_rejected(self, field):
        current = build_task_variant(projection("Task"))

        with pytest.raises(TaskValidationError) as exc_info:
            merge_task_update(current, {field: CREATED})

        assert exc_info.value.message == "Field is read-only"


class TestRowConversion:
    """Mapping between variants and tasks rows"""

    def make_row(self, **columns):
        defaults = {
            "id": 11, "title": "Row task", "description": None,
            "status": TaskStatus.TODO, "priority": TaskPriority.LOW,
            "deadline": None, "assignee_id": None,
            "created_at": CREATED, "updated_at": CREATED,
        }
        defaults.update(columns)
        return Task(**defaults)

    async def test_row_reads_only_own_kind_columns(self):
        row = self.make_row(
            kind=TaskKind.BUG, severity=BugSeverity.MAJOR, environment="staging",
            steps_to_reproduce="Click", story_points=13, color="blue",
        )

        described = variant_from_row(row).describe()

        assert described["kind"] == "Bug"
        assert described["severity"] == "major"
        assert "storyPoints" not in described
        assert "color" not in described

    async def test_subtask_assignee_label_column(self):
        row = self.make_row(kind=TaskKind.SUBTASK, parent_id=4, labels=["ui"], assignee_label="sam")

        variant = variant_from_row(row)

        assert variant.details.assignee == "sam"
        assert variant.details.parent_id == 4

    async def test_detail_columns_null_other_kinds(self):
        details = validate_task_details("Epic", {"childrenIds": [5, 6], "color": "green"})

        columns = detail_columns(details)

        assert columns["kind"] == TaskKind.EPIC
        assert columns["children_ids"] == [5, 6]
        assert columns["color"] == "green"
        assert columns["severity"] is None
        assert columns["story_points"] is None
        assert columns["assignee_label"] is None

    async def test_variant_columns_cover_shared_fields(self):
        variant = build_task_variant(projection("Subtask"))

        columns = variant_columns(variant)

        assert columns["title"] == "Ship release"
        assert columns["deadline"] == date(2030, 1, 15)
        assert columns["assignee_label"] == "ops"
        assert "id" not in columns
        assert "created_at" not in columns
