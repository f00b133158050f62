"""Profile image upload storage."""

import logging
import uuid
from pathlib import Path

from fastapi import UploadFile

from errors import AppError, BadRequest, Internal

logger = logging.getLogger(__name__)

MAX_IMAGE_SIZE = 5 * 1024 * 1024  # 5MB
ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png"}
ALLOWED_IMAGE_MIME_TYPES = {"image/jpeg", "image/png"}


class PayloadTooLarge(AppError):
    status_code = 413
    default_message = "File too large"


def validate_image_upload(file: UploadFile) -> None:
    """Validate file extension and MIME type of an uploaded image."""
    file_ext = Path(file.filename or "").suffix.lower()
    if file_ext not in ALLOWED_IMAGE_EXTENSIONS:
        raise BadRequest("Only .jpeg, .jpg and .png formats are allowed")

    # Many clients send octet-stream for binary files, so we trust the extension
    if file.content_type not in ALLOWED_IMAGE_MIME_TYPES and file.content_type != "application/octet-stream":
        raise BadRequest(f"MIME type not allowed: {file.content_type}")


async def save_upload_file(upload_dir: str, file: UploadFile) -> str:
    """
    Save an uploaded image under a generated name, streaming in chunks.

    Returns:
        The stored filename, relative to upload_dir
    """
    target_dir = Path(upload_dir)
    target_dir.mkdir(parents=True, exist_ok=True)

    file_ext = Path(file.filename).suffix.lower()
    unique_filename = f"{uuid.uuid4()}{file_ext}"
    filepath = target_dir / unique_filename

    CHUNK_SIZE = 1024 * 1024
    total_size = 0

    try:
        with open(filepath, "wb") as f:
            while True:
                chunk = await file.read(CHUNK_SIZE)
                if not chunk:
                    break

                total_size += len(chunk)
                if total_size > MAX_IMAGE_SIZE:
                    raise PayloadTooLarge(
                        f"File too large. Maximum size: {MAX_IMAGE_SIZE / (1024*1024):.0f}MB"
                    )

                f.write(chunk)
    except AppError:
        filepath.unlink(missing_ok=True)
        raise
    except OSError as e:
        filepath.unlink(missing_ok=True)
        logger.error(f"Failed to save file: {e}")
        raise Internal("Failed to save file")

    logger.info(f"Stored upload {unique_filename} ({total_size} bytes)")
    return unique_filename
