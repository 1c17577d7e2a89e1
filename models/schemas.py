# models/schemas.py
"""Plain values that cross the repository boundary. Times are epoch milliseconds."""
from sqlmodel import SQLModel, Field
from pydantic import field_validator
from typing import Optional, List
import uuid

from models.task import Priority, Category
from utils.dates import coerce_due_date

NULLABLE_FIELDS = {"description", "due_date"}


def _blank_to_none(v):
    if isinstance(v, str):
        v = v.strip()
        return v or None
    return v


class SubtaskRead(SQLModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    text: str = Field(min_length=1)
    completed: bool = False


class TaskRead(SQLModel):
    id: str
    text: str
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    category: Category = Category.PERSONAL
    due_date: Optional[int] = None
    subtasks: List[SubtaskRead] = Field(default_factory=list)
    completed: bool = False
    created_at: int = 0


class TaskCreate(SQLModel):
    text: str = Field(min_length=1)
    description: Optional[str] = None
    priority: Priority = Priority.MEDIUM
    category: Category = Category.PERSONAL
    due_date: Optional[int] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def _due(cls, v):
        return coerce_due_date(v)

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, v):
        return _blank_to_none(v)


class TaskUpdate(SQLModel):
    """Partial update. Only fields that were explicitly set are applied."""

    text: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    priority: Optional[Priority] = None
    category: Optional[Category] = None
    due_date: Optional[int] = None
    subtasks: Optional[List[SubtaskRead]] = None
    completed: Optional[bool] = None

    @field_validator("due_date", mode="before")
    @classmethod
    def _due(cls, v):
        return coerce_due_date(v)

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, v):
        return _blank_to_none(v)

    def changes(self) -> dict:
        """Explicitly-set fields as model values (subtasks stay SubtaskRead).

        None clears the nullable columns; for the rest it means "leave alone".
        """
        out = {}
        for name in self.model_fields_set:
            v = getattr(self, name)
            if v is None and name not in NULLABLE_FIELDS:
                continue
            out[name] = v
        return out
