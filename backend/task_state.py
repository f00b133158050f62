"""
Checklist, progress and status rules for tasks.

These functions mutate a Task in memory and never touch the session; the
route handlers own loading, locking and committing.
"""

import logging
from typing import List, Dict, Any, Optional

import models

logger = logging.getLogger(__name__)


def completed_count(checklist: Optional[List[Dict[str, Any]]]) -> int:
    """Number of checklist items marked completed."""
    return sum(1 for item in checklist or [] if item.get("completed"))


def compute_progress(checklist: Optional[List[Dict[str, Any]]]) -> int:
    """
    Percentage of completed items, rounded half up to an integer.

    An empty checklist has progress 0.

    Example:
        >>> compute_progress([{"completed": True}, {"completed": False}, {"completed": True}])
        67
    """
    total = len(checklist or [])
    if total == 0:
        return 0
    done = completed_count(checklist)
    # Integer form of floor(100 * done / total + 0.5)
    return (200 * done + total) // (2 * total)


def status_for_progress(progress: int) -> models.TaskStatus:
    if progress >= 100:
        return models.TaskStatus.completed
    if progress > 0:
        return models.TaskStatus.in_progress
    return models.TaskStatus.pending


def normalize_checklist(items: List[Any]) -> List[Dict[str, Any]]:
    """Plain JSON-ready copies of checklist items (dicts or pydantic models)."""
    normalized = []
    for item in items:
        if hasattr(item, "model_dump"):
            item = item.model_dump()
        normalized.append({"text": item["text"], "completed": bool(item.get("completed", False))})
    return normalized


def replace_checklist(task: models.Task, items: List[Any]) -> models.Task:
    """
    Replace the checklist and re-derive progress and status from it.

    The derived status overwrites whatever status the task had before.
    """
    task.todo_checklist = normalize_checklist(items)
    task.progress = compute_progress(task.todo_checklist)
    task.status = status_for_progress(task.progress)
    logger.debug(
        f"Task {task.id} checklist replaced: {completed_count(task.todo_checklist)}/"
        f"{len(task.todo_checklist)} done, progress={task.progress}, status={task.status.value}"
    )
    return task


def set_status(task: models.Task, new_status: Optional[models.TaskStatus]) -> models.Task:
    """
    Set the status directly.

    A missing status keeps the current one. Landing on Completed forces every
    checklist item complete and progress to 100; moving away from Completed
    later does not undo that.
    """
    if new_status is not None:
        task.status = new_status

    if task.status == models.TaskStatus.completed:
        task.todo_checklist = [
            {"text": item["text"], "completed": True} for item in task.todo_checklist or []
        ]
        task.progress = 100
        logger.debug(f"Task {task.id} completed: checklist forced complete")

    return task
