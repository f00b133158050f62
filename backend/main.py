from fastapi import FastAPI, Depends, Query, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles
from sqlalchemy.orm import Session, joinedload
from typing import List, Optional
from pathlib import Path
import logging

from config import Settings, get_settings
from database import get_db, engine, Base
import models
import schemas
import task_state
from errors import BadRequest, NotFound, install_error_handlers
from auth.routes import router as auth_router
from auth.dependencies import get_current_user, get_current_admin
from auth.permissions import require_assignee_or_admin, require_task_editor
from reports import router as reports_router

settings = get_settings()

# Configure logging
logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Task Manager API",
    description="Team task management with role-based access, checklists and spreadsheet reports",
    version="1.0.0"
)

# CORS middleware for the configured frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.client_url],
    allow_methods=["GET", "POST", "PUT", "DELETE"],
    allow_headers=["Content-Type", "Authorization"],
)

install_error_handlers(app)

app.include_router(auth_router)
app.include_router(reports_router)


@app.on_event("startup")
def create_tables():
    """Create missing tables. Existing tables are left untouched."""
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured")


# ============== Uploaded Images ==============

try:
    Path(settings.upload_dir).mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")
except OSError as e:
    # Read-only filesystems (some test and container setups) can still serve the API
    logger.warning(f"Could not create upload directory: {e}. Image uploads will not be served.")


# Health check
@app.get("/health")
def health_check():
    return {"status": "healthy"}


# ============== Helpers ==============

# Fields a full edit may not set to null
NON_NULLABLE_TASK_FIELDS = {"title", "priority", "due_date", "assigned_to", "attachments", "todo_checklist"}


def serialize_task(task: models.Task) -> dict:
    """Task as a response dict with assignees resolved to name/email."""
    return {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "priority": task.priority,
        "status": task.status,
        "due_date": task.due_date,
        "assigned_to": [
            {
                "id": user.id,
                "name": user.name,
                "email": user.email,
                "profile_image_url": user.profile_image_url,
            }
            for user in task.assignees
        ],
        "created_by": task.created_by,
        "attachments": task.attachments or [],
        "todo_checklist": task.todo_checklist or [],
        "progress": task.progress,
        "created_at": task.created_at,
        "updated_at": task.updated_at,
    }


def assigned_to(query, user_id: int):
    """Restrict a Task query to tasks that list user_id among the assignees."""
    return query.filter(models.Task.assignee_links.any(models.TaskAssignee.user_id == user_id))


def visible_tasks(db: Session, user: models.User):
    """Admins see every task; members see only tasks assigned to them."""
    query = db.query(models.Task)
    if user.role != models.UserRole.admin:
        query = assigned_to(query, user.id)
    return query


def status_counts(query) -> dict:
    # Four separate counts, not a snapshot: concurrent writes may skew them
    return {
        "all": query.count(),
        "pending_tasks": query.filter(models.Task.status == models.TaskStatus.pending).count(),
        "in_progress_tasks": query.filter(models.Task.status == models.TaskStatus.in_progress).count(),
        "completed_tasks": query.filter(models.Task.status == models.TaskStatus.completed).count(),
    }


def validate_assignee_ids(db: Session, user_ids: List[int]) -> None:
    """Reject assignee lists that reference users that do not exist."""
    wanted = set(user_ids)
    if not wanted:
        return
    found = {
        row.id for row in
        db.query(models.User.id).filter(models.User.id.in_(wanted)).all()
    }
    missing = sorted(wanted - found)
    if missing:
        logger.info(f"Rejected assignee list with unknown user IDs: {missing}")
        raise BadRequest(f"Unknown user ID(s) in assignedTo: {', '.join(str(m) for m in missing)}")


def get_task_or_404(db: Session, task_id: int, for_update: bool = False) -> models.Task:
    query = db.query(models.Task).filter(models.Task.id == task_id)
    if for_update:
        # Serialises concurrent status/checklist writers on backends with row locks
        query = query.with_for_update()
    task = query.first()
    if not task:
        logger.info(f"Task {task_id} not found")
        raise NotFound("Task not found")
    return task


# ============== Users ==============

@app.get("/api/users", response_model=List[schemas.UserWithTaskCounts])
def list_users(
    current_user: models.User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """List members with counts of their assigned tasks per status (admin only)."""
    logger.debug(f"Admin {current_user.id} listing members")

    users = db.query(models.User)\
        .filter(models.User.role == models.UserRole.member)\
        .order_by(models.User.id)\
        .all()

    result = []
    for user in users:
        user_tasks = assigned_to(db.query(models.Task), user.id)
        result.append({
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "role": user.role,
            "profile_image_url": user.profile_image_url,
            "created_at": user.created_at,
            "updated_at": user.updated_at,
            "pending_task": user_tasks.filter(models.Task.status == models.TaskStatus.pending).count(),
            "in_progress_task": user_tasks.filter(models.Task.status == models.TaskStatus.in_progress).count(),
            "completed_task": user_tasks.filter(models.Task.status == models.TaskStatus.completed).count(),
        })

    logger.info(f"list_users returned {len(result)} members")
    return result


@app.get("/api/users/{user_id}", response_model=schemas.User)
def get_user(
    user_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get user by ID."""
    logger.debug(f"User {current_user.id} requesting user {user_id}")

    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        raise NotFound("User not found")
    return user


# ============== Dashboards ==============
# Registered before /api/tasks/{task_id} so the literal paths win

@app.get("/api/tasks/dashboard-data", response_model=schemas.StatusSummary)
def get_dashboard_data(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Task counts per status: all tasks for admins, assigned tasks for members."""
    logger.debug(f"User {current_user.id} requesting dashboard data")
    return status_counts(visible_tasks(db, current_user))


@app.get("/api/tasks/user-dashboard-data", response_model=schemas.StatusSummary)
def get_user_dashboard_data(
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Task counts per status over the tasks assigned to the caller, whatever the role."""
    logger.debug(f"User {current_user.id} requesting personal dashboard data")
    return status_counts(assigned_to(db.query(models.Task), current_user.id))


# ============== Tasks ==============

@app.get("/api/tasks", response_model=schemas.TaskListResponse)
def list_tasks(
    current_user: models.User = Depends(get_current_user),
    status_filter: Optional[models.TaskStatus] = Query(None, alias="status"),
    db: Session = Depends(get_db)
):
    """
    List visible tasks, optionally filtered by status.

    Each task carries ``completedTodoCount``. ``statusSummary`` counts every
    visible task per status and ignores the status filter.
    """
    logger.debug(f"User {current_user.id} listing tasks: status={status_filter}")

    scoped = visible_tasks(db, current_user)
    query = scoped
    if status_filter:
        query = query.filter(models.Task.status == status_filter)

    tasks = query.options(
        joinedload(models.Task.assignee_links).joinedload(models.TaskAssignee.user)
    ).order_by(models.Task.id).all()

    result = []
    for task in tasks:
        task_dict = serialize_task(task)
        task_dict["completed_todo_count"] = task_state.completed_count(task.todo_checklist)
        result.append(task_dict)

    logger.info(f"list_tasks completed successfully: returned {len(result)} tasks")
    return {"tasks": result, "status_summary": status_counts(scoped)}


@app.get("/api/tasks/{task_id}", response_model=schemas.Task)
def get_task(
    task_id: int,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get a task with its assignees."""
    logger.debug(f"User {current_user.id} requesting task {task_id}")
    return serialize_task(get_task_or_404(db, task_id))


@app.post("/api/tasks", response_model=schemas.TaskMutationResponse, status_code=status.HTTP_201_CREATED)
def create_task(
    task: schemas.TaskCreate,
    current_user: models.User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Create a new task (admin only). The caller is always recorded as creator."""
    logger.info(f"User {current_user.id} creating task: {task.title}")

    validate_assignee_ids(db, task.assigned_to)

    db_task = models.Task(
        title=task.title,
        description=task.description,
        priority=task.priority,
        due_date=task.due_date,
        created_by=current_user.id,
        attachments=list(task.attachments),
        todo_checklist=task_state.normalize_checklist(task.todo_checklist),
    )
    db_task.set_assignees(task.assigned_to)
    db.add(db_task)
    db.commit()
    db.refresh(db_task)

    logger.info(f"Task created successfully: id={db_task.id}")
    return {"message": "Task created successfully", "task": serialize_task(db_task)}


@app.put("/api/tasks/{task_id}", response_model=schemas.TaskMutationResponse)
def update_task(
    task_id: int,
    task_update: schemas.TaskUpdate,
    current_user: models.User = Depends(get_current_user),
    app_settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db)
):
    """
    Edit any subset of title, description, priority, dueDate, assignedTo,
    attachments and todoChecklist.

    Open to every authenticated user unless STRICT_TASK_EDITS is set. Writing
    the checklist here does not re-derive progress or status; use
    PUT /api/tasks/{task_id}/todo for that.
    """
    logger.info(f"User {current_user.id} updating task {task_id}")

    task = get_task_or_404(db, task_id)

    if app_settings.strict_task_edits:
        require_task_editor(current_user, task)

    update_data = task_update.model_dump(exclude_unset=True)

    for field_name in NON_NULLABLE_TASK_FIELDS:
        if field_name in update_data and update_data[field_name] is None:
            raise BadRequest(f"{field_name} cannot be null")

    if "assigned_to" in update_data:
        validate_assignee_ids(db, update_data["assigned_to"])
        task.set_assignees(update_data.pop("assigned_to"))

    if "todo_checklist" in update_data:
        task.todo_checklist = task_state.normalize_checklist(update_data.pop("todo_checklist"))

    for key, value in update_data.items():
        setattr(task, key, value)

    db.commit()
    db.refresh(task)

    logger.info(f"Task {task_id} updated successfully")
    return {"message": "Task updated successfully", "task": serialize_task(task)}


@app.delete("/api/tasks/{task_id}", response_model=schemas.MessageResponse)
def delete_task(
    task_id: int,
    current_user: models.User = Depends(get_current_admin),
    db: Session = Depends(get_db)
):
    """Delete task (admin only)."""
    logger.debug(f"User {current_user.id} deleting task {task_id}")

    task = get_task_or_404(db, task_id)
    db.delete(task)
    db.commit()

    logger.info(f"Task {task_id} deleted by user {current_user.id}")
    return {"message": "Task deleted successfully"}


@app.put("/api/tasks/{task_id}/status", response_model=schemas.TaskMutationResponse)
def update_task_status(
    task_id: int,
    status_update: schemas.StatusUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Change the status (admins and assignees). Completing forces the checklist complete."""
    logger.info(f"User {current_user.id} setting status of task {task_id} to {status_update.status}")

    task = get_task_or_404(db, task_id, for_update=True)
    require_assignee_or_admin(current_user, task, "Not authorized")

    task_state.set_status(task, status_update.status)
    db.commit()
    db.refresh(task)

    logger.info(f"Task {task_id} status is now {task.status.value} (progress {task.progress})")
    return {"message": "Task status updated", "task": serialize_task(task)}


@app.put("/api/tasks/{task_id}/todo", response_model=schemas.ChecklistUpdateResponse)
def update_task_checklist(
    task_id: int,
    checklist_update: schemas.ChecklistUpdate,
    current_user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Replace the checklist (admins and assignees) and re-derive progress and status."""
    logger.info(f"User {current_user.id} replacing checklist of task {task_id}")

    task = get_task_or_404(db, task_id, for_update=True)
    require_assignee_or_admin(current_user, task, "Not authorized to update the checklist")

    task_state.replace_checklist(task, checklist_update.todo_checklist)
    db.commit()
    db.refresh(task)

    logger.info(f"Task {task_id} checklist updated: progress {task.progress}, status {task.status.value}")
    return {"message": "Task checklist updated", "updated_task": serialize_task(task)}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=settings.port)
