"""
Spreadsheet exports for admins.

Column headers are consumed by existing spreadsheets and scripts; keep the
text exactly as it is.
"""

import io
import logging
from typing import List, Dict, Any

import pandas as pd
from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session, joinedload

import models
from database import get_db
from auth.dependencies import get_current_admin

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["reports"])

XLSX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

TASK_REPORT_COLUMNS = [
    ("Task ID", 25),
    ("Title", 30),
    ("Description", 50),
    ("Priority", 15),
    ("Status", 15),
    ("Due Date", 20),
    ("Assigned To", 30),
]

USER_REPORT_COLUMNS = [
    ("User name", 30),
    ("Email", 40),
    ("Total Assigned Tasks", 20),
    ("Pending Tasks", 20),
    ("In Progress Tasks", 20),
    ("Completed Tasks", 20),
]


def format_assignees(users: List[models.User]) -> str:
    """``Name (email)`` pairs joined by commas, or ``Unassigned``."""
    joined = ", ".join(f"{user.name} ({user.email})" for user in users)
    return joined or "Unassigned"


def build_task_rows(tasks: List[models.Task]) -> List[Dict[str, Any]]:
    rows = []
    for task in tasks:
        rows.append({
            "Task ID": str(task.id),
            "Title": task.title,
            "Description": task.description or "",
            "Priority": task.priority.value,
            "Status": task.status.value,
            "Due Date": task.due_date.date().isoformat() if task.due_date else "",
            "Assigned To": format_assignees(task.assignees),
        })
    return rows


def build_user_rows(users: List[models.User], tasks: List[models.Task]) -> List[Dict[str, Any]]:
    """
    Per-user task counts, one row per user in the given order.

    Counters are keyed by user id; assignees that are not in ``users`` (for
    example admins) are skipped.
    """
    counters = {
        str(user.id): {
            "User name": user.name,
            "Email": user.email,
            "Total Assigned Tasks": 0,
            "Pending Tasks": 0,
            "In Progress Tasks": 0,
            "Completed Tasks": 0,
        }
        for user in users
    }
    status_columns = {
        models.TaskStatus.pending: "Pending Tasks",
        models.TaskStatus.in_progress: "In Progress Tasks",
        models.TaskStatus.completed: "Completed Tasks",
    }

    for task in tasks:
        for user_id in task.assigned_user_ids:
            row = counters.get(str(user_id))
            if row is None:
                continue
            row["Total Assigned Tasks"] += 1
            row[status_columns[task.status]] += 1

    return list(counters.values())


def write_workbook(rows: List[Dict[str, Any]], columns, sheet_name: str) -> bytes:
    """Render rows as a single-sheet .xlsx workbook with fixed headers and widths."""
    headers = [header for header, _ in columns]
    df = pd.DataFrame(rows, columns=headers)

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        df.to_excel(writer, sheet_name=sheet_name, index=False)
        worksheet = writer.sheets[sheet_name]
        for index, (_, width) in enumerate(columns):
            letter = worksheet.cell(row=1, column=index + 1).column_letter
            worksheet.column_dimensions[letter].width = width

    return output.getvalue()


def _xlsx_response(content: bytes, filename: str) -> StreamingResponse:
    return StreamingResponse(
        io.BytesIO(content),
        media_type=XLSX_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/export/tasks")
def export_tasks_report(
    current_user: models.User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Download every task as tasks_report.xlsx (admin only)."""
    logger.debug(f"Admin {current_user.id} exporting tasks report")

    tasks = db.query(models.Task)\
        .options(joinedload(models.Task.assignee_links).joinedload(models.TaskAssignee.user))\
        .order_by(models.Task.id)\
        .all()

    content = write_workbook(build_task_rows(tasks), TASK_REPORT_COLUMNS, "Tasks Report")
    logger.info(f"Tasks report exported by user {current_user.id}: {len(tasks)} rows")
    return _xlsx_response(content, "tasks_report.xlsx")


@router.get("/export/user")
def export_users_report(
    current_user: models.User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Download per-member task counts as users_report.xlsx (admin only)."""
    logger.debug(f"Admin {current_user.id} exporting users report")

    users = db.query(models.User)\
        .filter(models.User.role == models.UserRole.member)\
        .order_by(models.User.id)\
        .all()
    tasks = db.query(models.Task)\
        .options(joinedload(models.Task.assignee_links))\
        .all()

    content = write_workbook(build_user_rows(users, tasks), USER_REPORT_COLUMNS, "User Task Report")
    logger.info(f"Users report exported by user {current_user.id}: {len(users)} rows")
    return _xlsx_response(content, "users_report.xlsx")
