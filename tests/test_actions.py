import pytest

import actions
import db
from auth import Identity
from errors import Unauthenticated
from models.schemas import TaskUpdate
from reconcile import TaskBoard

from .fakes import ImmediateExecutor


def test_unauthenticated_is_raised_not_swallowed(database):
    with pytest.raises(Unauthenticated):
        actions.list_tasks(None)
    with pytest.raises(Unauthenticated):
        actions.create_task(None, {"text": "x"})
    with pytest.raises(Unauthenticated):
        actions.delete_task(Identity(user_id="", email=""), "t")


def test_create_from_form_values(alice):
    res = actions.create_task(alice, {"text": "Essay", "category": "study", "due_date": "2024-01-01"})
    assert res.success and res.error is None
    assert res.task.category.value == "study"
    assert res.task.due_date == 1_704_067_200_000
    assert [t.id for t in actions.list_tasks(alice)] == [res.task.id]


def test_invalid_fields_are_a_failed_result(alice):
    res = actions.create_task(alice, {"text": "", "priority": "urgent"})
    assert not res.success
    assert res.code == actions.INVALID
    assert actions.list_tasks(alice) == []


def test_create_for_unprovisioned_user(database):
    res = actions.create_task(Identity(user_id="ghost", email="g@example.com"), {"text": "x"})
    assert not res.success and res.code == actions.NOT_FOUND


def test_foreign_and_missing_tasks_get_one_opaque_answer(alice, bob):
    task = actions.create_task(alice, {"text": "mine"}).task
    foreign = actions.update_task(bob, task.id, {"text": "theirs"})
    missing = actions.update_task(bob, "does-not-exist", {"text": "theirs"})
    assert not foreign.success and not missing.success
    assert (foreign.error, foreign.code) == (missing.error, missing.code) == ("Task not found", actions.NOT_FOUND)
    assert not actions.delete_task(bob, task.id).success
    assert actions.get_task(alice, task.id).task.text == "mine"


def test_unexpected_errors_become_a_generic_failure(alice, monkeypatch):
    task = actions.create_task(alice, {"text": "mine"}).task

    def explode(*_a, **_kw):
        raise RuntimeError("disk on fire")

    monkeypatch.setattr(db, "update_task", explode)
    res = actions.update_task(alice, task.id, TaskUpdate(completed=True))
    assert not res.success
    assert res.error == "Something went wrong."
    assert res.code == actions.ERROR


def test_board_against_the_real_repository(alice):
    board = TaskBoard.load(alice, actions, ImmediateExecutor())
    temp = board.add("Write tests", priority="high")
    task_id = board.resolve(temp)
    assert task_id != temp

    board.add_subtask(temp, "fixtures")
    board.toggle(task_id)
    board.edit(task_id, description="with pytest")

    stored = actions.list_tasks(alice)
    assert len(stored) == 1
    assert stored[0].completed and stored[0].description == "with pytest"
    assert [s.text for s in stored[0].subtasks] == ["fixtures"]
    assert [t.model_dump() for t in board.tasks] == [t.model_dump() for t in stored]
    assert board.drain_failures() == []

    board.delete(task_id)
    assert actions.list_tasks(alice) == [] and board.tasks == []
