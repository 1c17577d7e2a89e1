# reconcile.py
"""Optimistic task list for one signed-in session.

The board keeps the last confirmed list from the server plus an ordered list
of pending mutations. What the UI shows is the confirmed list with the pending
mutations replayed on top, so a mutation is visible the moment it is issued
and disappears again (rollback) if its durable write fails.

Writes for the same task id go out one at a time, in issue order. A task that
was added optimistically carries a temporary id until the server answers;
edits made in the meantime wait in that task's queue and are sent with the
server id once it is known.
"""

from __future__ import annotations

import itertools
import threading
import uuid
from collections import deque
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Iterable, List, Optional, Union

from loguru import logger

import actions
from actions import NOT_FOUND, ActionResult
from auth import Identity
from config import get_settings
from models.schemas import SubtaskRead, TaskCreate, TaskRead, TaskUpdate
from models.task import Category, Priority
from utils.dates import now_ms
from utils.progress import progress, sort_tasks

TEMP_PREFIX = "tmp-"


@dataclass(frozen=True)
class AddTask:
    task: TaskRead


@dataclass(frozen=True)
class UpdateTask:
    task: TaskRead


@dataclass(frozen=True)
class DeleteTask:
    task_id: str


Action = Union[AddTask, UpdateTask, DeleteTask]


def apply(tasks: List[TaskRead], action: Action) -> List[TaskRead]:
    """Return a new list with `action` applied; `tasks` is left alone."""
    if isinstance(action, AddTask):
        return [action.task] + [t for t in tasks if t.id != action.task.id]
    if isinstance(action, UpdateTask):
        return [action.task if t.id == action.task.id else t for t in tasks]
    if isinstance(action, DeleteTask):
        return [t for t in tasks if t.id != action.task_id]
    raise TypeError(f"unknown action {action!r}")


def replay(tasks: List[TaskRead], pending: Iterable[Action]) -> List[TaskRead]:
    out = list(tasks)
    for action in pending:
        out = apply(out, action)
    return out


def new_temp_id() -> str:
    return f"{TEMP_PREFIX}{uuid.uuid4().hex}"


def is_temp_id(task_id: str) -> bool:
    return task_id.startswith(TEMP_PREFIX)


@dataclass
class Failure:
    task_id: str
    action: str
    message: str
    at: int = field(default_factory=now_ms)


@dataclass(eq=False)
class _Pending:
    seq: int
    key: str
    action: Action
    call: Callable[[str], ActionResult]
    label: str
    dispatched: bool = False


_executor: Optional[ThreadPoolExecutor] = None
_executor_lock = threading.Lock()


def default_executor() -> ThreadPoolExecutor:
    global _executor
    with _executor_lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=get_settings().write_workers,
                thread_name_prefix="taskdeck-write",
            )
        return _executor


def _rekey(action: Action, task_id: str, created_at: int) -> Action:
    if isinstance(action, UpdateTask):
        return UpdateTask(action.task.model_copy(update={"id": task_id, "created_at": created_at}))
    if isinstance(action, DeleteTask):
        return DeleteTask(task_id)
    return action


class TaskBoard:
    """One session's view of its tasks. Safe to touch from worker callbacks."""

    def __init__(self, identity: Identity, gateway: Any = None, executor: Optional[Executor] = None,
                 initial: Optional[List[TaskRead]] = None):
        self.identity = identity
        self._gateway = gateway or actions
        self._executor = executor or default_executor()
        self._lock = threading.RLock()
        self._confirmed: List[TaskRead] = list(initial or [])
        self._pending: List[_Pending] = []
        self._queues: Dict[str, Deque[_Pending]] = {}
        self._aliases: Dict[str, str] = {}
        # bumped on every enqueue and settle for a key
        self._stamps: Dict[str, int] = {}
        self._failures: List[Failure] = []
        self._seq = itertools.count(1)
        self.version = 0

    @classmethod
    def load(cls, identity: Identity, gateway: Any = None, executor: Optional[Executor] = None) -> "TaskBoard":
        gateway = gateway or actions
        return cls(identity, gateway, executor, initial=gateway.list_tasks(identity))

    # ---- reads ----
    @property
    def tasks(self) -> List[TaskRead]:
        with self._lock:
            return replay(self._confirmed, [p.action for p in self._pending])

    @property
    def confirmed(self) -> List[TaskRead]:
        with self._lock:
            return list(self._confirmed)

    def sorted_tasks(self) -> List[TaskRead]:
        return sort_tasks(self.tasks)

    def progress(self) -> float:
        return progress(self.tasks)

    def resolve(self, task_id: str) -> str:
        with self._lock:
            return self._aliases.get(task_id, task_id)

    def get(self, task_id: str) -> Optional[TaskRead]:
        key = self.resolve(task_id)
        return next((t for t in self.tasks if t.id == key), None)

    def is_pending(self, task_id: Optional[str] = None) -> bool:
        with self._lock:
            if task_id is None:
                return bool(self._pending)
            return self.resolve(task_id) in self._queues

    def drain_failures(self) -> List[Failure]:
        with self._lock:
            out, self._failures = self._failures, []
            return out

    def refresh(self) -> bool:
        """Re-fetch the confirmed list. Skipped (False) while writes are pending."""
        with self._lock:
            if self._pending:
                return False
        fresh = self._gateway.list_tasks(self.identity)
        with self._lock:
            if self._pending:
                return False
            self._confirmed = list(fresh)
            self._prune()
            self._touch()
        return True

    # ---- mutations ----
    def add(self, text: str, description: Optional[str] = None, priority: Priority = Priority.MEDIUM,
            category: Category = Category.PERSONAL, due_date: Any = None) -> str:
        """Show the task now, create it in the background. Returns its temporary id."""
        data = TaskCreate(
            text=(text or "").strip(),
            description=description,
            priority=priority,
            category=category,
            due_date=due_date,
        )
        temp_id = new_temp_id()
        task = TaskRead(
            id=temp_id,
            text=data.text,
            description=data.description,
            priority=data.priority,
            category=data.category,
            due_date=data.due_date,
            subtasks=[],
            completed=False,
            created_at=now_ms(),
        )
        ready = self._enqueue(temp_id, AddTask(task),
                              lambda _tid: self._gateway.create_task(self.identity, data), "create")
        if ready is not None:
            self._dispatch(ready)
        return temp_id

    def edit(self, task_id: str, **changes: Any) -> bool:
        update = TaskUpdate(**changes)
        return self._update(task_id, lambda _current: update)

    def toggle(self, task_id: str) -> bool:
        return self._update(task_id, lambda cur: TaskUpdate(completed=not cur.completed))

    def add_subtask(self, task_id: str, text: str) -> bool:
        sub = SubtaskRead(text=(text or "").strip())
        return self._update(task_id, lambda cur: TaskUpdate(subtasks=[*cur.subtasks, sub]))

    def toggle_subtask(self, task_id: str, subtask_id: str) -> bool:
        def _changes(cur):
            subs = [s.model_copy(update={"completed": not s.completed}) if s.id == subtask_id else s
                    for s in cur.subtasks]
            return TaskUpdate(subtasks=subs)
        return self._update(task_id, _changes)

    def delete_subtask(self, task_id: str, subtask_id: str) -> bool:
        return self._update(
            task_id, lambda cur: TaskUpdate(subtasks=[s for s in cur.subtasks if s.id != subtask_id]))

    def delete(self, task_id: str) -> bool:
        with self._lock:
            key = self.resolve(task_id)
            if not any(t.id == key for t in self.tasks):
                return False
            ready = self._enqueue(key, DeleteTask(key),
                                  lambda tid: self._gateway.delete_task(self.identity, tid), "delete")
        if ready is not None:
            self._dispatch(ready)
        return True

    def _update(self, task_id: str, build: Callable[[TaskRead], TaskUpdate]) -> bool:
        with self._lock:
            key = self.resolve(task_id)
            current = next((t for t in self.tasks if t.id == key), None)
            if current is None:
                return False
            update = build(current)
            task = current.model_copy(update=update.changes())
            ready = self._enqueue(key, UpdateTask(task),
                                  lambda tid: self._gateway.update_task(self.identity, tid, update), "update")
        if ready is not None:
            self._dispatch(ready)
        return True

    # ---- dispatch / reconcile ----
    def _touch(self):
        self.version += 1

    def _bump(self, key: str) -> int:
        self._stamps[key] = self._stamps.get(key, 0) + 1
        return self._stamps[key]

    def _prune(self):
        """Forget aliases and stamps of tasks that are neither confirmed nor queued."""
        live = {t.id for t in self._confirmed} | set(self._queues)
        self._aliases = {tmp: sid for tmp, sid in self._aliases.items() if sid in live}
        self._stamps = {k: n for k, n in self._stamps.items() if k in live}

    def _enqueue(self, key: str, action: Action, call: Callable[[str], ActionResult],
                 label: str) -> Optional[_Pending]:
        """Record a pending mutation. Returns it if nothing is ahead of it for `key`."""
        with self._lock:
            p = _Pending(next(self._seq), key, action, call, label)
            self._pending.append(p)
            queue = self._queues.setdefault(key, deque())
            queue.append(p)
            self._bump(key)
            self._touch()
            return p if len(queue) == 1 else None

    def _dispatch(self, p: _Pending):
        with self._lock:
            if p.dispatched or p not in self._pending:
                return
            p.dispatched = True
            task_id = p.key
        try:
            fut = self._executor.submit(p.call, task_id)
        except RuntimeError as e:
            # executor already shut down
            self._settle(p, None, e)
            return
        fut.add_done_callback(lambda f, p=p: self._on_done(p, f))

    def _on_done(self, p: _Pending, fut: Future):
        try:
            result, error = fut.result(), None
        except Exception as e:
            result, error = None, e
        self._settle(p, result, error)

    def _settle(self, p: _Pending, result: Optional[ActionResult], error: Optional[BaseException]):
        refetch = None
        with self._lock:
            if p not in self._pending:
                return
            self._pending.remove(p)
            queue = self._queues.get(p.key)
            if queue and queue[0] is p:
                queue.popleft()

            ok = error is None and result is not None and result.success
            if ok:
                key = self._confirm(p, result)
            else:
                key = p.key
                self._fail(p, result, error)

            stamp = self._bump(key)
            if not ok and not isinstance(p.action, AddTask):
                refetch = (key, stamp)

            queue = self._queues.get(key)
            next_up = queue[0] if queue else None
            if queue is not None and not queue:
                del self._queues[key]
            self._prune()
            self._touch()

        if next_up is not None:
            self._dispatch(next_up)
        if refetch is not None:
            self._refetch(*refetch)

    def _confirm(self, p: _Pending, result: ActionResult) -> str:
        """Fold a confirmed mutation into the confirmed list. Returns the task's current key."""
        action = p.action
        if isinstance(action, AddTask):
            server = result.task or action.task
            self._confirmed = apply(self._confirmed, AddTask(server))
            if server.id != p.key:
                self._remap(p.key, server)
            return server.id
        if isinstance(action, UpdateTask):
            self._confirmed = apply(self._confirmed, UpdateTask(result.task or action.task))
        else:
            self._confirmed = apply(self._confirmed, action)
        return p.key

    def _remap(self, temp_id: str, server: TaskRead):
        logger.debug("task {} confirmed as {}", temp_id, server.id)
        self._aliases[temp_id] = server.id
        queue = self._queues.pop(temp_id, deque())
        for q in queue:
            q.key = server.id
            q.action = _rekey(q.action, server.id, server.created_at)
        self._queues[server.id] = queue

    def _fail(self, p: _Pending, result: Optional[ActionResult], error: Optional[BaseException]):
        if error is not None:
            message = str(error) or type(error).__name__
        elif result is not None:
            message = result.error or "Something went wrong."
        else:
            message = "No response from server."
        logger.error("Failed to {} task {}: {}", p.label, p.key, message)
        self._failures.append(Failure(p.key, p.label, message))

        # later writes for this task were built on the state that just rolled back
        queue = self._queues.get(p.key)
        while queue:
            q = queue.popleft()
            if q in self._pending:
                self._pending.remove(q)
            logger.info("cancelled queued {} of task {}", q.label, q.key)
            self._failures.append(Failure(q.key, q.label, "Cancelled: an earlier change to this task failed."))

    def _refetch(self, key: str, stamp: int):
        try:
            fut = self._executor.submit(self._gateway.get_task, self.identity, key)
        except RuntimeError as e:
            logger.warning("could not re-fetch task {}: {}", key, e)
            return
        fut.add_done_callback(lambda f: self._on_refetched(key, stamp, f))

    def _on_refetched(self, key: str, stamp: int, fut: Future):
        try:
            result = fut.result()
        except Exception as e:
            logger.warning("re-fetch of task {} failed: {}", key, e)
            return
        with self._lock:
            if self._stamps.get(key) != stamp:
                # the task was written again after this read was issued
                logger.debug("dropping stale re-fetch of task {}", key)
                return
            if result.success and result.task is not None:
                self._confirmed = apply(self._confirmed, UpdateTask(result.task))
            elif result.code == NOT_FOUND:
                self._confirmed = apply(self._confirmed, DeleteTask(key))
            else:
                logger.warning("re-fetch of task {} failed: {}", key, result.error)
                return
            self._prune()
            self._touch()
