# app/db/models/__init__.py
"""
Database models package
Imports all models for easy access
"""

# Import base classes and mixins
from app.db.models.base import Base, TimestampMixin, IntegerIdMixin

# Import all enums
from app.db.models.enums import TaskStatus, TaskPriority, TaskKind, BugSeverity

# Import models
from app.db.models.user import User
from app.db.models.task import Task

# Export all models and enums
__all__ = [
    # Base classes
    'Base', 'TimestampMixin', 'IntegerIdMixin',

    # Enums
    'TaskStatus', 'TaskPriority', 'TaskKind', 'BugSeverity',

    # Models
    'User', 'Task',
]
