# models/subtask.py
from sqlmodel import SQLModel, Field, Relationship
from typing import TYPE_CHECKING
import uuid

if TYPE_CHECKING:
    from models.task import Task

class Subtask(SQLModel, table=True):
    __tablename__ = "subtasks"
    __table_args__ = {"extend_existing": True}

    id: str = Field(default_factory=lambda: uuid.uuid4().hex, primary_key=True)
    task_id: str = Field(foreign_key="tasks.id", index=True)
    text: str
    completed: bool = Field(default=False)
    # index in the caller-supplied list; subtasks come back in this order
    position: int = Field(default=0)

    task: "Task" = Relationship(back_populates="subtasks")
