from types import SimpleNamespace

import pytest

from app.errors import ForbiddenError
from app.models import UserRole
from app.permissions import can_mutate_task, ensure_admin, is_admin


def actor(user_id, role):
    return SimpleNamespace(id=user_id, role=role)


def task(assigned_to_id):
    return SimpleNamespace(assigned_to_id=assigned_to_id)


@pytest.mark.parametrize("assignee", [1, 5, 9])
def test_admin_may_mutate_any_task(assignee):
    assert can_mutate_task(actor(5, UserRole.ADMIN), task(assignee))


def test_staff_may_mutate_own_task():
    assert can_mutate_task(actor(5, UserRole.STAFF), task(5))


@pytest.mark.parametrize("assignee", [1, 9])
def test_staff_may_not_mutate_others_task(assignee):
    assert not can_mutate_task(actor(5, UserRole.STAFF), task(assignee))


def test_role_stored_as_plain_int_is_understood():
    assert is_admin(actor(1, 1))
    assert not is_admin(actor(1, 0))


def test_ensure_admin():
    ensure_admin(actor(1, UserRole.ADMIN))
    with pytest.raises(ForbiddenError) as excinfo:
        ensure_admin(actor(2, UserRole.STAFF))
    assert excinfo.value.status_code == 403
