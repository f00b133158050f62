"""
Test configuration and fixtures for task manager tests.

Provides:
- Test database with SQLite in-memory for speed
- FastAPI test client with database dependency override
- Authentication helpers (JWT token generation)
- Common fixtures for admin/member users and tasks
"""

import os
import sys
import logging
import tempfile
from datetime import datetime, timedelta
from typing import Generator, Dict, List, Optional

# Environment must be in place before config.get_settings() is first called
os.environ.setdefault("ENVIRONMENT", "development")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret-key")
os.environ.setdefault("ADMIN_INVITE_TOKEN", "test-invite-token")
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="task-manager-uploads-"))

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

# Add backend directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import get_settings
from database import Base, get_db
from main import app
import models
from auth.security import hash_password, create_access_token

# Configure logging for tests
logging.basicConfig(level=logging.WARNING)
logger = logging.getLogger(__name__)

# SQLite in-memory database for fast testing
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"

DUE_DATE = datetime(2030, 1, 15, 12, 0, 0)


@pytest.fixture(scope="function")
def test_db() -> Generator[Session, None, None]:
    """
    Create a fresh in-memory SQLite database for each test.

    This ensures test isolation and fast execution.
    """
    engine = create_engine(
        SQLALCHEMY_TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)

    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    db = TestingSessionLocal()

    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)
        logger.debug("Test database cleaned up")


@pytest.fixture(scope="function")
def client(test_db: Session) -> TestClient:
    """
    Create FastAPI test client with database dependency override.
    """
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


def make_user(db: Session, name: str, email: str, password: str, role: models.UserRole) -> models.User:
    user = models.User(
        name=name,
        email=email,
        password_hash=hash_password(password),
        role=role,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Created {role.value} user with ID: {user.id}")
    return user


def make_task(
    db: Session,
    creator: models.User,
    title: str = "Task",
    assignees: Optional[List[models.User]] = None,
    status: models.TaskStatus = models.TaskStatus.pending,
    checklist: Optional[List[dict]] = None,
    **kwargs,
) -> models.Task:
    task = models.Task(
        title=title,
        due_date=kwargs.pop("due_date", DUE_DATE),
        status=status,
        created_by=creator.id,
        todo_checklist=checklist or [],
        attachments=kwargs.pop("attachments", []),
        **kwargs,
    )
    task.set_assignees([user.id for user in assignees or []])
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


@pytest.fixture(scope="function")
def admin_user(test_db: Session) -> models.User:
    return make_user(test_db, "Admin User", "admin@test.com", "admin123", models.UserRole.admin)


@pytest.fixture(scope="function")
def member_user(test_db: Session) -> models.User:
    return make_user(test_db, "Member User", "member@test.com", "member123", models.UserRole.member)


@pytest.fixture(scope="function")
def another_member(test_db: Session) -> models.User:
    return make_user(test_db, "Another Member", "another@test.com", "another123", models.UserRole.member)


def create_auth_token(user: models.User, expires_delta: timedelta = None) -> str:
    """
    Helper to create JWT access token for a user.

    Args:
        user: User to create token for
        expires_delta: Optional expiration time override

    Returns:
        JWT access token string
    """
    return create_access_token(user.id, get_settings(), expires_delta)


def bearer(user: models.User) -> Dict[str, str]:
    return {"Authorization": f"Bearer {create_auth_token(user)}"}


@pytest.fixture(scope="function")
def auth_headers(admin_user: models.User) -> Dict[str, str]:
    """Authorization headers for the admin user."""
    return bearer(admin_user)


@pytest.fixture(scope="function")
def member_auth_headers(member_user: models.User) -> Dict[str, str]:
    """Authorization headers for the member user."""
    return bearer(member_user)


@pytest.fixture(scope="function")
def another_member_auth_headers(another_member: models.User) -> Dict[str, str]:
    """Authorization headers for the second member."""
    return bearer(another_member)


@pytest.fixture(scope="function")
def assigned_task(test_db: Session, admin_user: models.User, member_user: models.User) -> models.Task:
    """A task created by the admin and assigned to member_user, with a three-item checklist."""
    return make_task(
        test_db,
        admin_user,
        title="Write report",
        assignees=[member_user],
        checklist=[
            {"text": "Outline", "completed": False},
            {"text": "Draft", "completed": False},
            {"text": "Review", "completed": False},
        ],
    )
