from sqlalchemy import Column, Integer, String, Text, ForeignKey, DateTime, Enum, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from database import Base


class UserRole(str, enum.Enum):
    admin = "admin"
    member = "member"


class TaskPriority(str, enum.Enum):
    low = "Low"
    medium = "Medium"
    high = "High"


class TaskStatus(str, enum.Enum):
    pending = "Pending"
    in_progress = "In Progress"
    completed = "Completed"


def _enum_values(enum_cls):
    # Store "In Progress" rather than the member name "in_progress"
    return [member.value for member in enum_cls]


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    profile_image_url = Column(String(1024), nullable=True)
    role = Column(
        Enum(UserRole, name="user_role", values_callable=_enum_values),
        nullable=False,
        default=UserRole.member,
    )
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    created_tasks = relationship("Task", back_populates="creator")
    assignments = relationship("TaskAssignee", back_populates="user")


class Task(Base):
    __tablename__ = "tasks"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(255), nullable=False)
    description = Column(Text)
    priority = Column(
        Enum(TaskPriority, name="task_priority", values_callable=_enum_values),
        nullable=False,
        default=TaskPriority.medium,
    )
    status = Column(
        Enum(TaskStatus, name="task_status", values_callable=_enum_values),
        nullable=False,
        default=TaskStatus.pending,
    )
    due_date = Column(DateTime(timezone=True), nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    progress = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Checklist items are {"text": str, "completed": bool}; always reassign, never mutate in place
    todo_checklist = Column(JSON, nullable=False, default=list)
    attachments = Column(JSON, nullable=False, default=list)

    # Relationships
    creator = relationship("User", back_populates="created_tasks")
    assignee_links = relationship(
        "TaskAssignee",
        back_populates="task",
        order_by="TaskAssignee.position",
        cascade="all, delete-orphan",
    )

    @property
    def assignees(self):
        return [link.user for link in self.assignee_links]

    @property
    def assigned_user_ids(self):
        return [link.user_id for link in self.assignee_links]

    def set_assignees(self, user_ids):
        """Replace the assignee list, keeping the given order and dropping repeats."""
        seen = set()
        links = []
        for user_id in user_ids:
            if user_id in seen:
                continue
            seen.add(user_id)
            links.append(TaskAssignee(user_id=user_id, position=len(links)))
        self.assignee_links = links


class TaskAssignee(Base):
    __tablename__ = "task_assignees"

    id = Column(Integer, primary_key=True, index=True)
    task_id = Column(Integer, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)

    # Relationships
    task = relationship("Task", back_populates="assignee_links")
    user = relationship("User", back_populates="assignments")
