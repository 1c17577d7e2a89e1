# utils/overview.py
from typing import Iterable, Optional

import pandas as pd

from models.schemas import TaskRead
from utils.dates import format_due
from utils.progress import is_overdue, sort_tasks, subtask_counts

COLUMNS = ["Task", "Priority", "Category", "Due", "Subtasks", "Status"]

def overview_df(tasks: Iterable[TaskRead], now: Optional[int] = None) -> pd.DataFrame:
    rows = []
    for t in sort_tasks(tasks):
        done, total = subtask_counts(t)
        if t.completed:
            status = "Done"
        elif is_overdue(t, now):
            status = "Overdue"
        else:
            status = "Open"
        rows.append({
            "Task": t.text,
            "Priority": t.priority.value,
            "Category": t.category.value,
            "Due": format_due(t.due_date),
            "Subtasks": f"{done}/{total}" if total else "",
            "Status": status,
        })
    return pd.DataFrame(rows, columns=COLUMNS)

def category_summary(tasks: Iterable[TaskRead]) -> pd.DataFrame:
    """Open/done counts per category, one row per category that has tasks."""
    df = pd.DataFrame(
        [{"Category": t.category.value, "Done": int(t.completed)} for t in tasks],
        columns=["Category", "Done"],
    )
    if df.empty:
        return pd.DataFrame(columns=["Category", "Total", "Done", "Open"])
    out = df.groupby("Category").agg(Total=("Done", "size"), Done=("Done", "sum")).reset_index()
    out["Open"] = out["Total"] - out["Done"]
    return out
