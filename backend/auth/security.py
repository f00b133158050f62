"""
Security utilities for password hashing and JWT token management.

This module provides cryptographic functions for:
- Password hashing using Argon2id (memory-hard, GPU-resistant)
- Access token creation and verification

The signing secret and algorithm come from the Settings object passed in by
the caller; nothing here reads the environment.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

from jose import JWTError, ExpiredSignatureError, jwt
from passlib.context import CryptContext

from config import Settings, TOKEN_EXPIRE_DAYS

logger = logging.getLogger(__name__)

# Password hashing configuration using Argon2id
pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    """
    Hash a password using Argon2id.

    Example:
        >>> hashed = hash_password("my_secure_password")
        >>> verify_password("my_secure_password", hashed)
        True
    """
    logger.debug("Hashing password")
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Return True if plain_password matches the stored hash."""
    logger.debug("Verifying password")
    is_valid = pwd_context.verify(plain_password, hashed_password)
    logger.debug(f"Password verification result: {is_valid}")
    return is_valid


def create_access_token(
    user_id: int,
    settings: Settings,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed access token for a user.

    The subject claim carries the user id as a string. Tokens expire after
    TOKEN_EXPIRE_DAYS unless expires_delta overrides it (tests use a negative
    delta to mint already-expired tokens).

    Example:
        >>> token = create_access_token(1, settings)
    """
    if expires_delta is None:
        expires_delta = timedelta(days=TOKEN_EXPIRE_DAYS)
    expire = datetime.now(timezone.utc) + expires_delta

    to_encode = {"sub": str(user_id), "exp": expire}
    encoded_jwt = jwt.encode(to_encode, settings.jwt_secret, algorithm=settings.jwt_algorithm)
    logger.debug(f"Access token created for user {user_id}, expires at: {expire}")
    return encoded_jwt


def verify_token(token: str, settings: Settings) -> Optional[Dict[str, Any]]:
    """
    Verify signature and expiry of a token.

    Returns:
        Decoded payload if valid, None otherwise
    """
    logger.debug("Verifying JWT token")
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        logger.info("JWT verification failed: token expired")
        return None
    except JWTError as e:
        logger.info(f"JWT verification failed: {str(e)}")
        return None

    logger.debug(f"Token verified successfully for user: {payload.get('sub')}")
    return payload
