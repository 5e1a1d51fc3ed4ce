# app/exceptions/tasks.py
from typing import Any, Dict, List, Optional


class TaskValidationError(Exception):
    """A task payload violates its kind's field rules"""

    def __init__(self, field: Optional[str], message: str, errors: Optional[List[Dict[str, Any]]] = None):
        self.field = field
        self.message = message
        self.errors = errors or [{"field": field, "message": message}]
        super().__init__(f"{field}: {message}" if field else message)


class TaskNotFoundError(Exception):
    """Raised by the HTTP layer when a task id does not exist"""

    def __init__(self, task_id: int, resource: str = "Task"):
        self.task_id = task_id
        self.resource = resource
        super().__init__(f"{resource} not found")


class TaskStoreError(Exception):
    """The relational store failed to execute a task operation"""

    def __init__(self, operation: str, detail: str):
        self.operation = operation
        self.detail = detail
        super().__init__(f"Task store {operation} failed: {detail}")
