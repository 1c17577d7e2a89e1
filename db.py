# db.py

#============================================================#
#                          Taskdeck                          #
#============================================================#
# Created     : 2026-10-19                                   #
# Version     : V1.0.0                                       #
#------------------------------------------------------------#
# Purpose     : Taskdeck is a personal task tracker with     #
#               priorities, categories, due dates and        #
#               subtasks (SQLite/Postgres via SQLModel)      #
#============================================================#


from __future__ import annotations

from typing import Optional, List

from loguru import logger
from sqlalchemy import event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import selectinload
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine, select

from config import get_settings
from errors import EmailInUse, TaskForbidden, TaskNotFound, UserNotFound
from models.user import User
from models.task import Task
from models.subtask import Subtask
from models.schemas import SubtaskRead, TaskRead, TaskCreate, TaskUpdate
from utils.dates import to_datetime, to_epoch_ms, utcnow


# ---- Engine / Session ----
def _sqlite_pragmas(dbapi_conn, _record):
    cur = dbapi_conn.cursor()
    cur.execute("PRAGMA foreign_keys=ON")
    cur.close()


def make_engine(url: str, echo: bool = False, timeout: int = 30):
    kwargs = {"echo": echo, "pool_pre_ping": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False, "timeout": timeout}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, otherwise every session sees an empty db
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_timeout"] = timeout
    eng = create_engine(url, **kwargs)
    if url.startswith("sqlite"):
        event.listen(eng, "connect", _sqlite_pragmas)
    return eng


_settings = get_settings()
engine = make_engine(_settings.database_url, _settings.db_echo, _settings.db_timeout)


def configure(url: str, echo: bool = False, timeout: int = 30):
    """Point the module at another database (tests, alternate deployments)."""
    global engine
    engine.dispose()
    engine = make_engine(url, echo, timeout)
    return engine


def get_session() -> Session:
    return Session(engine, expire_on_commit=False)


def init_db():
    SQLModel.metadata.create_all(engine)


# ---- conversions ----
def _to_read(t: Task) -> TaskRead:
    return TaskRead(
        id=t.id,
        text=t.text,
        description=t.description,
        priority=t.priority,
        category=t.category,
        due_date=to_epoch_ms(t.due_date),
        subtasks=[SubtaskRead(id=s.id, text=s.text, completed=s.completed) for s in t.subtasks],
        completed=bool(t.completed),
        created_at=to_epoch_ms(t.created_at),
    )


# ---- users ----
def get_user_by_email(email: str) -> Optional[User]:
    with get_session() as s:
        return s.exec(select(User).where(User.email == email.strip().lower())).one_or_none()


def create_user(email: str, password_hash: str, name: Optional[str] = None) -> User:
    with get_session() as s:
        user = User(email=email.strip().lower(), password_hash=password_hash, name=name)
        s.add(user)
        try:
            s.commit()
        except IntegrityError:
            # lost a race with a concurrent registration of the same email
            s.rollback()
            raise EmailInUse()
        s.refresh(user)
        return user


# ---- authorization guard ----
def authorize_task(s: Session, task_id: str, requester_id: str) -> Task:
    """Resolve a task for `requester_id` or raise.

    TaskNotFound and TaskForbidden share a message; callers treat them as one.
    """
    t = s.get(Task, task_id)
    if t is None:
        raise TaskNotFound(task_id)
    if t.owner_id != requester_id:
        raise TaskForbidden(task_id)
    return t


# ---- tasks ----
def list_tasks(owner_id: str) -> List[TaskRead]:
    """Newest first, each with its subtasks. Unknown owner -> empty list."""
    with get_session() as s:
        if s.get(User, owner_id) is None:
            logger.warning("list_tasks: no user row for {}, returning empty list", owner_id)
            return []
        rows = s.exec(
            select(Task)
            .where(Task.owner_id == owner_id)
            .options(selectinload(Task.subtasks))
            .order_by(Task.created_at.desc(), Task.id.desc())
        ).all()
        return [_to_read(t) for t in rows]


def get_task(task_id: str, requester_id: str) -> TaskRead:
    with get_session() as s:
        return _to_read(authorize_task(s, task_id, requester_id))


def create_task(owner_id: str, data: TaskCreate) -> TaskRead:
    with get_session() as s:
        if s.get(User, owner_id) is None:
            raise UserNotFound()
        t = Task(
            owner_id=owner_id,
            text=data.text,
            description=data.description,
            priority=data.priority,
            category=data.category,
            due_date=to_datetime(data.due_date),
            completed=False,
            created_at=utcnow(),
        )
        s.add(t)
        s.commit()
        s.refresh(t)
        logger.debug("created task {} for {}", t.id, owner_id)
        return _to_read(t)


def update_task(task_id: str, requester_id: str, changes: TaskUpdate) -> TaskRead:
    """Apply the explicitly-set fields of `changes` in one transaction.

    `subtasks`, when given, replaces the whole collection: existing rows are
    deleted and the supplied list inserted with its ids and order. Either the
    field update and the replace both land, or neither does.
    """
    values = changes.changes()
    subtasks = values.pop("subtasks", None)
    with get_session() as s:
        try:
            t = authorize_task(s, task_id, requester_id)
            for field, value in values.items():
                if field == "due_date":
                    value = to_datetime(value)
                setattr(t, field, value)
            s.add(t)

            if subtasks is not None:
                for old in s.exec(select(Subtask).where(Subtask.task_id == task_id)).all():
                    s.delete(old)
                s.flush()
                s.add_all(
                    Subtask(id=sub.id, task_id=task_id, text=sub.text,
                            completed=sub.completed, position=i)
                    for i, sub in enumerate(subtasks)
                )
            s.commit()
        except Exception:
            s.rollback()
            raise
        s.refresh(t)
        return _to_read(t)


def delete_task(task_id: str, requester_id: str) -> None:
    with get_session() as s:
        t = authorize_task(s, task_id, requester_id)
        s.delete(t)
        s.commit()
