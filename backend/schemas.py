from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional, List, Any

# Enums are shared with the ORM so stored values validate without conversion
from models import UserRole, TaskPriority, TaskStatus


class CamelModel(BaseModel):
    """
    Base for all API payloads.

    JSON keys are camelCase (``assignedTo``, ``todoChecklist``); snake_case
    field names are accepted on input as well.
    """
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, from_attributes=True)


ASSIGNED_TO_MESSAGE = "assignedTo must be an array of user IDs"


def _require_id_list(value: Any) -> Any:
    if value is not None and not isinstance(value, list):
        raise ValueError(ASSIGNED_TO_MESSAGE)
    return value


# User schemas
class UserSummary(CamelModel):
    id: int
    name: str
    email: str
    profile_image_url: Optional[str] = None


class User(CamelModel):
    id: int
    name: str
    email: str
    role: UserRole
    profile_image_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class UserWithTaskCounts(User):
    pending_task: int = 0
    in_progress_task: int = 0
    completed_task: int = 0


# Auth schemas
class RegisterRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=100)
    profile_image_url: Optional[str] = None
    admin_invite_token: Optional[str] = None


class LoginRequest(CamelModel):
    email: EmailStr
    password: str


class AuthResponse(CamelModel):
    id: int
    name: str
    email: str
    role: UserRole
    profile_image_url: Optional[str] = None
    token: str


class ProfileUpdate(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[EmailStr] = None
    password: Optional[str] = Field(None, min_length=6, max_length=100)


class ProfileUpdateResponse(CamelModel):
    id: int
    name: str
    email: str
    role: UserRole
    token: str


class ImageUploadResponse(CamelModel):
    image_url: str


# Task schemas
class TodoItem(CamelModel):
    text: str = Field(..., min_length=1)
    completed: bool = False


class TaskCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.medium
    due_date: datetime
    assigned_to: List[int]
    attachments: List[str] = Field(default_factory=list)
    todo_checklist: List[TodoItem] = Field(default_factory=list)

    @field_validator("assigned_to", mode="before")
    @classmethod
    def assigned_to_must_be_list(cls, value):
        if value is None:
            raise ValueError(ASSIGNED_TO_MESSAGE)
        return _require_id_list(value)


class TaskUpdate(CamelModel):
    """
    Full edit payload.

    Only keys present in the request are applied (``exclude_unset``), so an
    explicit empty string is a real value rather than "keep the old one".
    """
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[datetime] = None
    assigned_to: Optional[List[int]] = None
    attachments: Optional[List[str]] = None
    todo_checklist: Optional[List[TodoItem]] = None

    @field_validator("assigned_to", mode="before")
    @classmethod
    def assigned_to_must_be_list(cls, value):
        return _require_id_list(value)


class StatusUpdate(CamelModel):
    status: Optional[TaskStatus] = None


class ChecklistUpdate(CamelModel):
    todo_checklist: List[TodoItem]


class Task(CamelModel):
    id: int
    title: str
    description: Optional[str] = None
    priority: TaskPriority
    status: TaskStatus
    due_date: datetime
    assigned_to: List[UserSummary] = Field(default_factory=list)
    created_by: Optional[int] = None
    attachments: List[str] = Field(default_factory=list)
    todo_checklist: List[TodoItem] = Field(default_factory=list)
    progress: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class TaskListItem(Task):
    completed_todo_count: int = 0


class StatusSummary(CamelModel):
    all: int
    pending_tasks: int
    in_progress_tasks: int
    completed_tasks: int


class TaskListResponse(CamelModel):
    tasks: List[TaskListItem] = Field(default_factory=list)
    status_summary: StatusSummary


class TaskMutationResponse(CamelModel):
    message: str
    task: Task


class ChecklistUpdateResponse(CamelModel):
    message: str
    updated_task: Task


class MessageResponse(CamelModel):
    message: str
