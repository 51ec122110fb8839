"""Ownership policy tests."""

import pytest

from taskmanager.auth.ownership import authorize_task, ensure_owner
from taskmanager.db.models import Task
from taskmanager.errors import Forbidden, NotFound
from taskmanager.services.user_service import Identity

OWNER = Identity(id=1, email="owner@example.com")
STRANGER = Identity(id=2, email="stranger@example.com")


def test_same_owner_passes():
    ensure_owner(1, 1)


def test_different_owner_forbidden():
    with pytest.raises(Forbidden) as exc:
        ensure_owner(1, 2)
    assert exc.value.message == "user is not owner of this item"


def test_missing_task_is_not_found_even_for_strangers():
    with pytest.raises(NotFound):
        authorize_task(None, STRANGER)


def test_owner_gets_task_back():
    task = Task(id=7, name="mine", user_id=OWNER.id)
    assert authorize_task(task, OWNER) is task


def test_stranger_forbidden():
    task = Task(id=7, name="mine", user_id=OWNER.id)
    with pytest.raises(Forbidden):
        authorize_task(task, STRANGER)
