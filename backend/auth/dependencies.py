"""
FastAPI dependencies for authentication and authorization.

This module provides dependency functions that can be used in route handlers to:
- Extract and validate the current user from a bearer token
- Enforce role-based access control (admin-only routes)
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from config import Settings, get_settings
from database import get_db
from errors import Unauthorized, Forbidden
from models import User, UserRole
from auth.security import verify_token

logger = logging.getLogger(__name__)

# HTTP Bearer token scheme; missing or non-Bearer headers are reported as None
security = HTTPBearer(auto_error=False)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolve the caller from the ``Authorization: Bearer <token>`` header.

    Raises:
        Unauthorized: header missing or not a Bearer credential, token invalid
            or expired, subject malformed, or subject does not exist

    Example:
        @app.get("/api/protected")
        async def protected_route(user: User = Depends(get_current_user)):
            return {"user_id": user.id}
    """
    if credentials is None or not credentials.credentials:
        logger.info("No bearer credentials provided")
        raise Unauthorized("Not authorized, no token")

    payload = verify_token(credentials.credentials, settings)
    if payload is None:
        raise Unauthorized("Not authorized, token failed")

    subject = payload.get("sub")
    try:
        user_id = int(subject)
    except (TypeError, ValueError):
        # Malformed subject should be a 401, not a 500
        logger.info(f"Invalid subject in token: {subject!r}")
        raise Unauthorized("Not authorized, token failed")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        logger.info(f"User not found for token subject: {user_id}")
        raise Unauthorized("Not authorized, user not found")

    logger.debug(f"User authenticated via JWT: {user.email}")
    return user


def require_role(required_role: UserRole):
    """
    Create a dependency that requires a specific user role.

    Example:
        @app.delete("/api/tasks/{task_id}")
        def delete_task(current_user: User = Depends(require_role(UserRole.admin))):
            ...
    """

    async def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role != required_role:
            logger.info(
                f"Access denied: user {current_user.email} has role '{current_user.role.value}', "
                f"but '{required_role.value}' is required"
            )
            raise Forbidden("Access denied, admin only")
        return current_user

    return role_checker


async def get_current_admin(current_user: User = Depends(require_role(UserRole.admin))) -> User:
    """Convenience dependency for admin-only endpoints."""
    return current_user
