from datetime import datetime, timezone

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import select

import db
from errors import TaskAccessDenied, TaskForbidden, TaskNotFound, UserNotFound
from models.schemas import SubtaskRead, TaskCreate, TaskUpdate
from models.subtask import Subtask
from models.task import Category, Priority, Task
from models.user import User
from utils.dates import to_epoch_ms


def _new(owner, text="Task", **kw):
    return db.create_task(owner.user_id, TaskCreate(text=text, **kw))


def _subs(task_id):
    return [(s.id, s.text) for s in db.get_task(task_id, _owner_of(task_id)).subtasks]


def _owner_of(task_id):
    with db.get_session() as s:
        return s.get(Task, task_id).owner_id


def test_list_for_unknown_owner_is_empty(database):
    assert db.list_tasks("no-such-user") == []


def test_create_sets_defaults(alice):
    t = _new(alice, "Buy milk", priority=Priority.HIGH, category=Category.WORK, due_date=1_704_067_200_000)
    assert t.id and not t.id.startswith("tmp-")
    assert t.text == "Buy milk"
    assert t.priority is Priority.HIGH and t.category is Category.WORK
    assert t.due_date == 1_704_067_200_000
    assert t.subtasks == [] and t.completed is False
    assert t.created_at > 0


def test_create_for_missing_user(database):
    with pytest.raises(UserNotFound):
        db.create_task("ghost", TaskCreate(text="x"))


def test_list_newest_first_with_subtasks(alice, bob):
    first = _new(alice, "first")
    second = _new(alice, "second")
    _new(bob, "not mine")
    with db.get_session() as s:
        s.get(Task, first.id).created_at = datetime(2024, 1, 1, tzinfo=timezone.utc)
        s.get(Task, second.id).created_at = datetime(2024, 1, 2, tzinfo=timezone.utc)
        s.commit()
    db.update_task(first.id, alice.user_id, TaskUpdate(subtasks=[SubtaskRead(id="s1", text="sub")]))
    listed = db.list_tasks(alice.user_id)
    assert [t.text for t in listed] == ["second", "first"]
    assert [s.id for s in listed[1].subtasks] == ["s1"]


def test_partial_update_leaves_other_fields(alice):
    t = _new(alice, "old", description="keep me", priority=Priority.LOW, due_date=5_000)
    out = db.update_task(t.id, alice.user_id, TaskUpdate(text="new"))
    assert out.text == "new"
    assert out.description == "keep me"
    assert out.priority is Priority.LOW
    assert out.due_date == 5_000


def test_explicit_none_clears_due_date_but_not_text(alice):
    t = _new(alice, "keep", due_date=5_000)
    out = db.update_task(t.id, alice.user_id, TaskUpdate(due_date=None, text=None))
    assert out.due_date is None
    assert out.text == "keep"


def test_completed_is_independent_of_subtasks(alice):
    t = _new(alice)
    out = db.update_task(t.id, alice.user_id, TaskUpdate(completed=True,
                                                         subtasks=[SubtaskRead(id="s1", text="open")]))
    assert out.completed is True
    assert out.subtasks[0].completed is False


def test_subtasks_are_replaced_not_merged(alice):
    t = _new(alice)
    db.update_task(t.id, alice.user_id, TaskUpdate(subtasks=[SubtaskRead(id="A", text="a"),
                                                             SubtaskRead(id="B", text="b")]))
    out = db.update_task(t.id, alice.user_id, TaskUpdate(subtasks=[SubtaskRead(id="C", text="c")]))
    assert [(s.id, s.text) for s in out.subtasks] == [("C", "c")]
    with db.get_session() as s:
        assert [r.id for r in s.exec(select(Subtask)).all()] == ["C"]


def test_subtask_order_is_callers_order(alice):
    t = _new(alice)
    subs = [SubtaskRead(id="z", text="z"), SubtaskRead(id="a", text="a"), SubtaskRead(id="m", text="m")]
    db.update_task(t.id, alice.user_id, TaskUpdate(subtasks=subs))
    assert [s for s, _ in _subs(t.id)] == ["z", "a", "m"]


def test_subtasks_can_keep_their_ids_across_replace(alice):
    t = _new(alice)
    db.update_task(t.id, alice.user_id, TaskUpdate(subtasks=[SubtaskRead(id="A", text="a")]))
    out = db.update_task(t.id, alice.user_id, TaskUpdate(subtasks=[SubtaskRead(id="A", text="a", completed=True),
                                                                    SubtaskRead(id="B", text="b")]))
    assert [(s.id, s.completed) for s in out.subtasks] == [("A", True), ("B", False)]


def test_empty_subtask_list_clears_them(alice):
    t = _new(alice)
    db.update_task(t.id, alice.user_id, TaskUpdate(subtasks=[SubtaskRead(id="A", text="a")]))
    out = db.update_task(t.id, alice.user_id, TaskUpdate(subtasks=[]))
    assert out.subtasks == []


def test_update_is_all_or_nothing(alice):
    other = _new(alice, "other")
    db.update_task(other.id, alice.user_id, TaskUpdate(subtasks=[SubtaskRead(id="taken", text="x")]))
    t = _new(alice, "before")
    db.update_task(t.id, alice.user_id, TaskUpdate(subtasks=[SubtaskRead(id="mine", text="m")]))

    # "taken" already belongs to another task, so the insert fails
    with pytest.raises(SQLAlchemyError):
        db.update_task(t.id, alice.user_id, TaskUpdate(text="after", subtasks=[SubtaskRead(id="taken", text="y")]))

    again = db.get_task(t.id, alice.user_id)
    assert again.text == "before"
    assert [s.id for s in again.subtasks] == ["mine"]


def test_guard_rejects_other_owner_without_writing(alice, bob):
    t = _new(alice, "private", description="notes", priority=Priority.HIGH, due_date=5_000)
    db.update_task(t.id, alice.user_id, TaskUpdate(subtasks=[SubtaskRead(id="A", text="a"),
                                                             SubtaskRead(id="B", text="b", completed=True)]))
    before = db.get_task(t.id, alice.user_id)

    with pytest.raises(TaskForbidden):
        db.update_task(t.id, bob.user_id, TaskUpdate(text="hacked", completed=True, subtasks=[]))
    with pytest.raises(TaskForbidden):
        db.update_task(t.id, bob.user_id, TaskUpdate(subtasks=[SubtaskRead(id="X", text="x")]))
    with pytest.raises(TaskForbidden):
        db.delete_task(t.id, bob.user_id)
    with pytest.raises(TaskForbidden):
        db.get_task(t.id, bob.user_id)

    assert db.get_task(t.id, alice.user_id) == before
    with db.get_session() as s:
        rows = s.exec(select(Subtask).order_by(Subtask.position)).all()
        assert [(r.id, r.task_id, r.completed) for r in rows] == [("A", t.id, False), ("B", t.id, True)]


def test_missing_and_foreign_look_the_same(alice, bob):
    t = _new(alice)
    with pytest.raises(TaskNotFound) as missing:
        db.delete_task("nope", bob.user_id)
    with pytest.raises(TaskForbidden) as foreign:
        db.delete_task(t.id, bob.user_id)
    assert isinstance(missing.value, TaskAccessDenied) and isinstance(foreign.value, TaskAccessDenied)
    assert str(missing.value) == str(foreign.value)


def test_delete_cascades_subtasks(alice):
    t = _new(alice)
    keep = _new(alice, "keep")
    db.update_task(t.id, alice.user_id, TaskUpdate(subtasks=[SubtaskRead(id="A", text="a")]))
    db.update_task(keep.id, alice.user_id, TaskUpdate(subtasks=[SubtaskRead(id="K", text="k")]))
    db.delete_task(t.id, alice.user_id)
    assert [x.id for x in db.list_tasks(alice.user_id)] == [keep.id]
    with db.get_session() as s:
        assert [r.id for r in s.exec(select(Subtask)).all()] == ["K"]


def test_timestamps_are_stored_with_a_timezone(alice):
    for column in (Task.__table__.c.created_at, Task.__table__.c.due_date, User.__table__.c.created_at):
        assert column.type.timezone is True
    t = _new(alice, due_date=1_704_067_200_123)
    with db.get_session() as s:
        row = s.get(Task, t.id)
        assert to_epoch_ms(row.due_date) == 1_704_067_200_123
        assert to_epoch_ms(row.created_at) == t.created_at
