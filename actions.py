# actions.py
"""Session-scoped task operations.

This is where errors stop: every write returns an ActionResult instead of
raising, except Unauthenticated, which the UI turns into a trip back to the
sign-in screen.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, List, Mapping, Optional, Union

from loguru import logger
from pydantic import ValidationError

import db
from auth import Identity
from errors import TaskAccessDenied, Unauthenticated, UserNotFound
from models.schemas import TaskCreate, TaskRead, TaskUpdate

NOT_FOUND = "not_found"
INVALID = "invalid"
ERROR = "error"


@dataclass
class ActionResult:
    success: bool
    error: Optional[str] = None
    task: Optional[TaskRead] = None
    code: Optional[str] = None


def _require(identity: Optional[Identity]) -> Identity:
    if identity is None or not getattr(identity, "user_id", None):
        raise Unauthenticated()
    return identity


def _run(what: str, fn: Callable[[], Optional[TaskRead]]) -> ActionResult:
    try:
        task = fn()
    except TaskAccessDenied as e:
        logger.warning("{} rejected for task {}", what, e.task_id)
        return ActionResult(False, str(e), code=NOT_FOUND)
    except UserNotFound as e:
        logger.warning("{} failed: {}", what, e)
        return ActionResult(False, str(e), code=NOT_FOUND)
    except ValidationError as e:
        logger.warning("{} got invalid fields: {}", what, e.errors())
        return ActionResult(False, "Invalid task fields.", code=INVALID)
    except Unauthenticated:
        raise
    except Exception:
        logger.exception("Failed to {}", what)
        return ActionResult(False, "Something went wrong.", code=ERROR)
    return ActionResult(True, task=task)


def list_tasks(identity: Optional[Identity]) -> List[TaskRead]:
    identity = _require(identity)
    return db.list_tasks(identity.user_id)


def get_task(identity: Optional[Identity], task_id: str) -> ActionResult:
    identity = _require(identity)
    return _run("read task", lambda: db.get_task(task_id, identity.user_id))


def create_task(identity: Optional[Identity], data: Union[TaskCreate, Mapping[str, Any]]) -> ActionResult:
    identity = _require(identity)

    def _create():
        payload = data if isinstance(data, TaskCreate) else TaskCreate.model_validate(dict(data))
        return db.create_task(identity.user_id, payload)

    return _run("create task", _create)


def update_task(identity: Optional[Identity], task_id: str,
                changes: Union[TaskUpdate, Mapping[str, Any]]) -> ActionResult:
    identity = _require(identity)

    def _update():
        payload = changes if isinstance(changes, TaskUpdate) else TaskUpdate.model_validate(dict(changes))
        return db.update_task(task_id, identity.user_id, payload)

    return _run("update task", _update)


def delete_task(identity: Optional[Identity], task_id: str) -> ActionResult:
    identity = _require(identity)

    def _delete():
        db.delete_task(task_id, identity.user_id)
        return None

    return _run("delete task", _delete)
