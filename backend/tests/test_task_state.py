"""
Unit tests for checklist, progress and status derivation.

These exercise task_state directly on unsaved Task objects, no HTTP involved.
"""

import logging

import pytest

import models
import task_state
from schemas import TodoItem

logger = logging.getLogger(__name__)


def items(*flags):
    return [{"text": f"Item {i}", "completed": flag} for i, flag in enumerate(flags)]


def make_task(status=models.TaskStatus.pending, checklist=None, progress=0) -> models.Task:
    return models.Task(title="Unsaved", status=status, todo_checklist=checklist or [], progress=progress)


# ============== Progress (5 tests) ==============


def test_empty_checklist_has_zero_progress():
    assert task_state.compute_progress([]) == 0
    assert task_state.compute_progress(None) == 0


@pytest.mark.parametrize("flags,expected", [
    ((True, False, True), 67),
    ((True, False, False), 33),
    ((True, False), 50),
    ((True,) + (False,) * 7, 13),
    ((True, True, True), 100),
    ((False, False), 0),
])
def test_progress_rounds_half_up(flags, expected):
    assert task_state.compute_progress(items(*flags)) == expected


def test_completed_count_ignores_incomplete_items():
    assert task_state.completed_count(items(True, False, True, False)) == 2
    assert task_state.completed_count([]) == 0


def test_status_for_progress_thresholds():
    assert task_state.status_for_progress(0) == models.TaskStatus.pending
    assert task_state.status_for_progress(1) == models.TaskStatus.in_progress
    assert task_state.status_for_progress(99) == models.TaskStatus.in_progress
    assert task_state.status_for_progress(100) == models.TaskStatus.completed


def test_normalize_checklist_accepts_models_and_dicts():
    normalized = task_state.normalize_checklist([
        TodoItem(text="From model", completed=True),
        {"text": "From dict"},
    ])

    assert normalized == [
        {"text": "From model", "completed": True},
        {"text": "From dict", "completed": False},
    ]


# ============== Checklist replacement (3 tests) ==============


def test_replace_checklist_derives_progress_and_status():
    task = make_task()

    task_state.replace_checklist(task, items(True, False, True))

    assert task.progress == 67
    assert task.status == models.TaskStatus.in_progress
    logger.info("✓ Partial checklist moves task to In Progress")


def test_replace_checklist_with_empty_list_resets_to_pending():
    task = make_task(status=models.TaskStatus.completed, checklist=items(True), progress=100)

    task_state.replace_checklist(task, [])

    assert task.todo_checklist == []
    assert task.progress == 0
    assert task.status == models.TaskStatus.pending


def test_replace_checklist_overrides_previous_status():
    task = make_task(status=models.TaskStatus.completed, checklist=items(True, True), progress=100)

    task_state.replace_checklist(task, items(True, False))

    assert task.progress == 50
    assert task.status == models.TaskStatus.in_progress


# ============== Direct status changes (4 tests) ==============


def test_set_status_completed_forces_checklist_complete():
    task = make_task(checklist=items(False, True, False), progress=33)

    task_state.set_status(task, models.TaskStatus.completed)

    assert task.status == models.TaskStatus.completed
    assert all(item["completed"] for item in task.todo_checklist)
    assert [item["text"] for item in task.todo_checklist] == ["Item 0", "Item 1", "Item 2"]
    assert task.progress == 100
    logger.info("✓ Completing a task completes its checklist")


def test_set_status_in_progress_leaves_checklist_alone():
    checklist = items(False, True)
    task = make_task(checklist=checklist, progress=50)

    task_state.set_status(task, models.TaskStatus.in_progress)

    assert task.status == models.TaskStatus.in_progress
    assert task.todo_checklist == checklist
    assert task.progress == 50


def test_set_status_none_keeps_current_status():
    task = make_task(status=models.TaskStatus.in_progress, checklist=items(True, False), progress=50)

    task_state.set_status(task, None)

    assert task.status == models.TaskStatus.in_progress
    assert task.progress == 50


def test_leaving_completed_keeps_checklist_complete():
    task = make_task(checklist=items(False, False))
    task_state.set_status(task, models.TaskStatus.completed)

    task_state.set_status(task, models.TaskStatus.pending)

    assert task.status == models.TaskStatus.pending
    assert all(item["completed"] for item in task.todo_checklist)
    assert task.progress == 100
