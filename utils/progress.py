# utils/progress.py
from typing import Iterable, List, Optional, Tuple

from models.schemas import TaskRead
from models.task import Priority
from utils.dates import now_ms

PRIORITY_WEIGHT = {Priority.HIGH: 3, Priority.MEDIUM: 2, Priority.LOW: 1}

def completion_percent(completed: int, total: int) -> float:
    if total == 0:
        return 0.0
    return completed / total * 100

def progress(tasks: Iterable[TaskRead]) -> float:
    tasks = list(tasks)
    return completion_percent(sum(1 for t in tasks if t.completed), len(tasks))

def sort_tasks(tasks: Iterable[TaskRead]) -> List[TaskRead]:
    """Display order: open before done, then high > medium > low, then newest first."""
    return sorted(tasks, key=lambda t: (t.completed, -PRIORITY_WEIGHT[t.priority], -t.created_at))

def subtask_counts(task: TaskRead) -> Tuple[int, int]:
    subs = task.subtasks or []
    return sum(1 for s in subs if s.completed), len(subs)

def is_overdue(task: TaskRead, now: Optional[int] = None) -> bool:
    if task.due_date is None or task.completed:
        return False
    return task.due_date < (now_ms() if now is None else now)
