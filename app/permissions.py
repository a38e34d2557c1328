"""Authorization rules.

Only tasks are restricted per row: staff may change the tasks assigned
to them, admins may change any task. Customers and projects are open to
every authenticated user.

The checks read ``role`` from the object they are given. Callers pass the
user row loaded for the current request, so the role is always the one
stored right now, never a value carried in the token.
"""

from .errors import ForbiddenError
from .models import UserRole


def is_admin(actor) -> bool:
    return actor.role == UserRole.ADMIN


def can_mutate_task(actor, task) -> bool:
    """
    Decide whether ``actor`` may edit or delete ``task``.

    Args:
        actor: Object with ``id`` and ``role``.
        task: Object with ``assigned_to_id``.

    Returns:
        bool: ``True`` for admins, and for staff assigned to the task.
    """
    if is_admin(actor):
        return True
    return actor.id == task.assigned_to_id


def ensure_admin(actor) -> None:
    if not is_admin(actor):
        raise ForbiddenError("Only administrators can perform this action")
