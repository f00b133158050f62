"""
Task-level permission checking utilities.

Role checks for whole routes live in auth.dependencies; this module answers
"may this caller touch this particular task".
"""

import logging

from errors import Forbidden
from models import User, Task, UserRole

logger = logging.getLogger(__name__)


def _canonical_id(value) -> str:
    # Ids may arrive as int (ORM) or str (token subject, JSON)
    return str(value).strip()


def is_admin(user: User) -> bool:
    return user.role == UserRole.admin


def is_assigned(user: User, task: Task) -> bool:
    """True if the user appears in the task's assignee list, compared by canonical id."""
    caller_id = _canonical_id(user.id)
    return any(_canonical_id(user_id) == caller_id for user_id in task.assigned_user_ids)


def is_creator(user: User, task: Task) -> bool:
    return task.created_by is not None and _canonical_id(task.created_by) == _canonical_id(user.id)


def require_assignee_or_admin(user: User, task: Task, message: str = "Not authorized") -> None:
    """
    Allow admins and assignees of the task, reject everyone else.

    Used for status changes and checklist replacement.

    Raises:
        Forbidden: caller is neither admin nor assigned to the task
    """
    if is_admin(user):
        logger.debug(f"User {user.id} is admin, granting access to task {task.id}")
        return
    if is_assigned(user, task):
        logger.debug(f"User {user.id} is assigned to task {task.id}, granting access")
        return

    logger.info(f"User {user.id} is not assigned to task {task.id}, access denied")
    raise Forbidden(message)


def require_task_editor(user: User, task: Task) -> None:
    """
    Allow admins, the task's creator and its assignees.

    Only enforced when STRICT_TASK_EDITS is enabled.

    Raises:
        Forbidden: caller has no relationship with the task
    """
    if is_admin(user) or is_creator(user, task) or is_assigned(user, task):
        return

    logger.info(f"User {user.id} may not edit task {task.id} (strict task edits)")
    raise Forbidden("Not authorized to edit this task")
