# app/db/models/enums.py
import enum


class TaskStatus(str, enum.Enum):
    TODO = "todo"
    IN_PROGRESS = "in_progress"
    REVIEW = "review"
    DONE = "done"


class TaskPriority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TaskKind(str, enum.Enum):
    """Discriminant of the task variants"""
    TASK = "Task"
    SUBTASK = "Subtask"
    BUG = "Bug"
    STORY = "Story"
    EPIC = "Epic"


class BugSeverity(str, enum.Enum):
    MINOR = "minor"
    MAJOR = "major"
    CRITICAL = "critical"
