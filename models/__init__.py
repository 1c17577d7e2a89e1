# models/__init__.py
from .user import User
from .task import Task, Priority, Category
from .subtask import Subtask
from .schemas import SubtaskRead, TaskRead, TaskCreate, TaskUpdate
