"""
Application configuration.

Settings are read from the environment exactly once and frozen. Components
receive the Settings object through the ``get_settings`` FastAPI dependency
instead of reading ``os.environ`` themselves, which lets tests swap in their
own values with ``app.dependency_overrides``.
"""

import logging
import os
import secrets
from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, ConfigDict

logger = logging.getLogger(__name__)

SUPPORTED_ALGORITHMS = ["HS256", "HS384", "HS512"]

# Tokens are valid for a fixed 7 days; there is no refresh flow
TOKEN_EXPIRE_DAYS = 7


class Settings(BaseModel):
    model_config = ConfigDict(frozen=True)

    environment: str = "development"
    database_url: str = "sqlite:///./task_manager.db"
    jwt_secret: str
    jwt_algorithm: str = "HS256"
    admin_invite_token: Optional[str] = None
    client_url: str = "*"
    port: int = 8000
    upload_dir: str = "./uploads"
    log_level: str = "INFO"
    strict_task_edits: bool = False

    @property
    def is_production_like(self) -> bool:
        """True for production and staging, where insecure defaults are refused."""
        return self.environment.lower() in ("production", "staging")


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_settings() -> Settings:
    """
    Build Settings from environment variables.

    Raises:
        ValueError: if JWT_SECRET is missing in a production-like environment
    """
    environment = os.environ.get("ENVIRONMENT", "development")
    production_like = environment.lower() in ("production", "staging")

    jwt_secret = os.environ.get("JWT_SECRET")
    if not jwt_secret:
        if production_like:
            raise ValueError(
                "JWT_SECRET environment variable is required in production. "
                "Generate a secure key with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
            )
        jwt_secret = "dev-insecure-key-" + secrets.token_urlsafe(32)
        logger.warning(
            "⚠️  JWT_SECRET not set! Using temporary development key. "
            "Tokens will not survive a restart. Set JWT_SECRET environment variable."
        )

    algorithm = os.environ.get("JWT_ALGORITHM", "HS256")
    if algorithm not in SUPPORTED_ALGORITHMS:
        logger.warning(
            f"⚠️  Unsupported JWT_ALGORITHM={algorithm}. Using HS256. "
            f"Supported: {', '.join(SUPPORTED_ALGORITHMS)}"
        )
        algorithm = "HS256"

    try:
        port = int(os.environ.get("PORT", "8000"))
    except ValueError:
        logger.warning("⚠️  Invalid PORT value in environment. Using default of 8000.")
        port = 8000

    admin_invite_token = os.environ.get("ADMIN_INVITE_TOKEN") or None
    if admin_invite_token is None:
        logger.info("ADMIN_INVITE_TOKEN not set, admin self-registration is disabled")

    return Settings(
        environment=environment,
        database_url=os.environ.get("DATABASE_URL", "sqlite:///./task_manager.db"),
        jwt_secret=jwt_secret,
        jwt_algorithm=algorithm,
        admin_invite_token=admin_invite_token,
        client_url=os.environ.get("CLIENT_URL", "*"),
        port=port,
        upload_dir=os.environ.get("UPLOAD_DIR", "./uploads"),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        strict_task_edits=_env_flag("STRICT_TASK_EDITS"),
    )


@lru_cache
def get_settings() -> Settings:
    """Process-wide Settings, constructed on first use."""
    return load_settings()
