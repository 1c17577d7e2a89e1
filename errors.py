# errors.py
from __future__ import annotations

from typing import Dict, Optional


class TaskdeckError(Exception):
    """Base class for errors raised by the task layer."""


class Unauthenticated(TaskdeckError):
    def __init__(self, message: str = "Please sign in to continue."):
        super().__init__(message)


class InvalidCredentials(TaskdeckError):
    def __init__(self, message: str = "Invalid credentials."):
        super().__init__(message)


class RegistrationInvalid(TaskdeckError):
    """Registration input failed validation. `field_errors` maps field -> message."""

    def __init__(self, field_errors: Optional[Dict[str, str]] = None):
        self.field_errors = dict(field_errors or {})
        super().__init__("Invalid fields. Failed to register.")


class EmailInUse(TaskdeckError):
    def __init__(self, message: str = "Email already in use."):
        super().__init__(message)


class UserNotFound(TaskdeckError):
    def __init__(self, message: str = "User not found"):
        super().__init__(message)


class TaskAccessDenied(TaskdeckError):
    """Task is missing or belongs to someone else. Both cases read the same."""

    def __init__(self, task_id: str = ""):
        self.task_id = task_id
        super().__init__("Task not found")


class TaskNotFound(TaskAccessDenied):
    pass


class TaskForbidden(TaskAccessDenied):
    pass
