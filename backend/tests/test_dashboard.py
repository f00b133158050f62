"""
Tests for dashboard counts, the member directory and the health check.
"""

import logging

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

import models
from tests.conftest import make_task

logger = logging.getLogger(__name__)


@pytest.fixture
def mixed_tasks(test_db: Session, admin_user: models.User, member_user: models.User, another_member: models.User):
    """Five tasks: three for member_user, one for another_member, one unassigned."""
    return [
        make_task(test_db, admin_user, title="M1", assignees=[member_user], status=models.TaskStatus.pending),
        make_task(test_db, admin_user, title="M2", assignees=[member_user], status=models.TaskStatus.in_progress),
        make_task(test_db, admin_user, title="M3", assignees=[member_user, another_member],
                  status=models.TaskStatus.completed),
        make_task(test_db, admin_user, title="A1", assignees=[another_member], status=models.TaskStatus.pending),
        make_task(test_db, admin_user, title="U1", status=models.TaskStatus.pending),
    ]


# ============== Dashboards (3 tests) ==============


def test_member_dashboard_counts_assigned_tasks(client: TestClient, mixed_tasks, member_auth_headers):
    response = client.get("/api/tasks/dashboard-data", headers=member_auth_headers)

    assert response.status_code == 200, response.json()
    assert response.json() == {"all": 3, "pendingTasks": 1, "inProgressTasks": 1, "completedTasks": 1}


def test_admin_dashboard_counts_every_task(client: TestClient, mixed_tasks, auth_headers):
    response = client.get("/api/tasks/dashboard-data", headers=auth_headers)

    assert response.status_code == 200, response.json()
    assert response.json() == {"all": 5, "pendingTasks": 3, "inProgressTasks": 1, "completedTasks": 1}


def test_user_dashboard_is_always_personal(client: TestClient, mixed_tasks, auth_headers, another_member_auth_headers):
    admin_view = client.get("/api/tasks/user-dashboard-data", headers=auth_headers)
    member_view = client.get("/api/tasks/user-dashboard-data", headers=another_member_auth_headers)

    assert admin_view.json() == {"all": 0, "pendingTasks": 0, "inProgressTasks": 0, "completedTasks": 0}
    assert member_view.json() == {"all": 2, "pendingTasks": 1, "inProgressTasks": 0, "completedTasks": 1}
    logger.info("✓ Personal dashboard ignores role")


# ============== Users (4 tests) ==============


def test_admin_lists_members_with_counts(
    client: TestClient,
    mixed_tasks,
    member_user: models.User,
    another_member: models.User,
    auth_headers
):
    response = client.get("/api/users", headers=auth_headers)

    assert response.status_code == 200, response.json()
    users = {user["email"]: user for user in response.json()}
    assert set(users) == {member_user.email, another_member.email}

    member = users[member_user.email]
    assert (member["pendingTask"], member["inProgressTask"], member["completedTask"]) == (1, 1, 1)
    another = users[another_member.email]
    assert (another["pendingTask"], another["inProgressTask"], another["completedTask"]) == (1, 0, 1)
    assert all("passwordHash" not in user for user in response.json())


def test_member_cannot_list_users(client: TestClient, member_user: models.User, member_auth_headers):
    response = client.get("/api/users", headers=member_auth_headers)

    assert response.status_code == 403
    assert response.json()["detail"] == "Access denied, admin only"


def test_get_user_by_id(client: TestClient, admin_user: models.User, member_user: models.User, member_auth_headers):
    response = client.get(f"/api/users/{admin_user.id}", headers=member_auth_headers)

    assert response.status_code == 200, response.json()
    assert response.json()["email"] == admin_user.email
    assert response.json()["role"] == "admin"


def test_get_unknown_user(client: TestClient, member_user: models.User, member_auth_headers):
    response = client.get("/api/users/9999", headers=member_auth_headers)

    assert response.status_code == 404
    assert response.json()["detail"] == "User not found"


# ============== Health (1 test) ==============


def test_health_check(client: TestClient):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}
