"""
Authentication API endpoints.

This module provides REST API endpoints for:
- User registration (with optional admin invite token)
- Login
- Reading and updating the caller's profile
- Profile image upload
"""

import logging
import secrets
from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from sqlalchemy.orm import Session

import schemas
from config import Settings, get_settings
from database import get_db
from errors import BadRequest, Conflict, Unauthorized
from models import User, UserRole
from auth.security import hash_password, verify_password, create_access_token
from auth.dependencies import get_current_user
from uploads import validate_image_upload, save_upload_file

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


def _auth_payload(user: User, settings: Settings) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "email": user.email,
        "role": user.role,
        "profile_image_url": user.profile_image_url,
        "token": create_access_token(user.id, settings),
    }


def _invite_matches(supplied: Optional[str], settings: Settings) -> bool:
    if not supplied or not settings.admin_invite_token:
        return False
    # compare_digest rejects non-ASCII str, so compare the UTF-8 bytes
    return secrets.compare_digest(supplied.encode("utf-8"), settings.admin_invite_token.encode("utf-8"))


@router.post("/register", response_model=schemas.AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    request: schemas.RegisterRequest,
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    """
    Register a new user account.

    The account is a member unless the supplied admin invite token matches
    the server's ADMIN_INVITE_TOKEN.

    Raises:
        Conflict: email already registered
    """
    logger.info(f"Registration attempt for email: {request.email}")

    existing_user = db.query(User).filter(User.email == request.email).first()
    if existing_user:
        logger.info(f"Registration failed: email already exists: {request.email}")
        raise Conflict("User already exists")

    role = UserRole.admin if _invite_matches(request.admin_invite_token, settings) else UserRole.member
    if request.admin_invite_token and role != UserRole.admin:
        logger.warning(f"Invalid admin invite token supplied for {request.email}, registering as member")

    new_user = User(
        name=request.name,
        email=request.email,
        password_hash=hash_password(request.password),
        profile_image_url=request.profile_image_url,
        role=role,
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)

    logger.info(f"User registered successfully: {new_user.email} (ID: {new_user.id}, role: {role.value})")
    return _auth_payload(new_user, settings)


@router.post("/login", response_model=schemas.AuthResponse)
def login(
    request: schemas.LoginRequest,
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    """
    Login with email and password.

    Raises:
        Unauthorized: unknown email or wrong password
    """
    logger.info(f"Login attempt for email: {request.email}")

    user = db.query(User).filter(User.email == request.email).first()
    if not user:
        logger.info(f"Login failed: user not found: {request.email}")
        raise Unauthorized("Invalid email or password")

    if not verify_password(request.password, user.password_hash):
        logger.info(f"Login failed: invalid password: {request.email}")
        raise Unauthorized("Invalid email or password")

    logger.info(f"User logged in: {user.email}")
    return _auth_payload(user, settings)


@router.get("/profile", response_model=schemas.User)
async def get_profile(current_user: User = Depends(get_current_user)):
    """Get the authenticated user's profile (never includes the password hash)."""
    logger.debug(f"User {current_user.id} requesting own profile")
    return current_user


@router.put("/profile", response_model=schemas.ProfileUpdateResponse)
def update_profile(
    profile_update: schemas.ProfileUpdate,
    current_user: User = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    db: Session = Depends(get_db),
):
    """
    Update name, email and/or password of the caller and issue a fresh token.

    Raises:
        Conflict: the new email belongs to another user
    """
    logger.debug(f"User {current_user.id} updating profile")

    # Omitted and null fields keep their current value
    update_data = {
        key: value
        for key, value in profile_update.model_dump(exclude_unset=True).items()
        if value is not None
    }

    if "email" in update_data and update_data["email"] != current_user.email:
        existing_user = db.query(User).filter(
            User.email == update_data["email"],
            User.id != current_user.id
        ).first()
        if existing_user:
            logger.info(f"Profile update rejected: email {update_data['email']} already in use")
            raise Conflict(f"Email '{update_data['email']}' is already in use")

    if "name" in update_data:
        current_user.name = update_data["name"]
    if "email" in update_data:
        current_user.email = update_data["email"]
    if "password" in update_data:
        current_user.password_hash = hash_password(update_data["password"])

    db.commit()
    db.refresh(current_user)

    logger.info(f"Profile updated: {current_user.email} (ID: {current_user.id})")
    return {
        "id": current_user.id,
        "name": current_user.name,
        "email": current_user.email,
        "role": current_user.role,
        "token": create_access_token(current_user.id, settings),
    }


@router.post("/upload-image", response_model=schemas.ImageUploadResponse)
async def upload_image(
    request: Request,
    image: Optional[UploadFile] = File(None),
    settings: Settings = Depends(get_settings),
):
    """
    Store a profile image and return the public URL it is served from.

    Raises:
        BadRequest: no file, or not a JPEG/PNG image
    """
    if image is None or not image.filename:
        raise BadRequest("No file uploaded")

    validate_image_upload(image)
    filename = await save_upload_file(settings.upload_dir, image)

    image_url = f"{str(request.base_url)}uploads/{filename}"
    logger.info(f"Profile image uploaded: {image_url}")
    return {"image_url": image_url}
