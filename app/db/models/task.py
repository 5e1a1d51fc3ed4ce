# app/db/models/task.py
"""Task table holding every task kind inline"""
from sqlalchemy import Column, Integer, String, Text, ForeignKey, Index, Enum, Date, JSON

from app.db.models.base import Base, TimestampMixin, IntegerIdMixin
from app.db.models.enums import TaskStatus, TaskPriority, TaskKind, BugSeverity


def _enum_values(enum_cls):
    return [member.value for member in enum_cls]


class Task(Base, IntegerIdMixin, TimestampMixin):
    """
    One row per task. Kind-specific columns are nullable and only populated
    for the row's own kind; links to other tasks are raw ids.
    """
    __tablename__ = "tasks"

    # Shared fields
    title = Column(String(500), nullable=False)
    description = Column(Text, nullable=True)
    kind = Column(Enum(TaskKind, values_callable=_enum_values), nullable=False, default=TaskKind.TASK, index=True)
    status = Column(Enum(TaskStatus, values_callable=_enum_values), nullable=False, default=TaskStatus.TODO, index=True)
    priority = Column(Enum(TaskPriority, values_callable=_enum_values), nullable=False, default=TaskPriority.MEDIUM, index=True)
    deadline = Column(Date, nullable=True)
    assignee_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    # Subtask
    parent_id = Column(Integer, nullable=True)
    labels = Column(JSON, nullable=True)
    assignee_label = Column(String(255), nullable=True)

    # Bug
    severity = Column(Enum(BugSeverity, values_callable=_enum_values), nullable=True)
    environment = Column(String(255), nullable=True)
    steps_to_reproduce = Column(Text, nullable=True)

    # Story
    story_points = Column(Integer, nullable=True)
    epic_link = Column(String(255), nullable=True)

    # Epic
    children_ids = Column(JSON, nullable=True)
    color = Column(String(32), nullable=True)

    __table_args__ = (
        Index('idx_task_status_priority', 'status', 'priority'),
        Index('idx_task_parent', 'parent_id'),
    )

    def __repr__(self):
        return f"<Task id={self.id} kind={self.kind} status={self.status}>"
