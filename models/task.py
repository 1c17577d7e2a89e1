# models/task.py
from sqlmodel import SQLModel, Field, Relationship
from sqlalchemy import Column, DateTime, Enum as SAEnum
from typing import Optional, List, TYPE_CHECKING
from datetime import datetime
from enum import Enum
import uuid

from utils.dates import utcnow

if TYPE_CHECKING:
    from models.user import User
    from models.subtask import Subtask


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Category(str, Enum):
    PERSONAL = "personal"
    WORK = "work"
    STUDY = "study"


def _values(enum_cls):
    return [m.value for m in enum_cls]


class Task(SQLModel, table=True):
    __tablename__ = "tasks"
    __table_args__ = {"extend_existing": True}

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, primary_key=True)
    owner_id: str = Field(foreign_key="users.id", index=True)
    text: str
    description: Optional[str] = None
    priority: Priority = Field(
        default=Priority.MEDIUM,
        sa_column=Column(SAEnum(Priority, name="task_priority", values_callable=_values), nullable=False),
    )
    category: Category = Field(
        default=Category.PERSONAL,
        sa_column=Column(SAEnum(Category, name="task_category", values_callable=_values), nullable=False),
    )
    due_date: Optional[datetime] = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    completed: bool = Field(default=False)
    created_at: datetime = Field(
        default_factory=utcnow,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )

    owner: "User" = Relationship(back_populates="tasks")
    subtasks: List["Subtask"] = Relationship(
        back_populates="task",
        sa_relationship_kwargs={"cascade": "all, delete-orphan", "order_by": "Subtask.position"},
    )
