"""CRUD operations for database models"""
from . import task
from . import user

__all__ = ["task", "user"]
