"""
Local media store for customer photos.

Files are written under ``settings.UPLOAD_DIR_ABS`` and served by the
``/uploads`` static mount; the returned URL path is what gets stored on the
customer row.
"""
import uuid
from pathlib import Path
from typing import Optional

from gymdesk.core.config import settings
from gymdesk.core.exceptions import UpstreamError, ValidationError
from gymdesk.core.logging_config import get_logger

logger = get_logger("media_service")

ALLOWED_IMAGE_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/webp", "image/gif"}
ALLOWED_IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".webp", ".gif"}


def validate_image(content_type: Optional[str], filename: Optional[str], size: int) -> None:
    """Validate image type (by Content-Type or filename extension) and size."""
    if size == 0:
        raise ValidationError("No file provided or file is empty")
    if size > settings.MAX_UPLOAD_SIZE:
        raise ValidationError(
            f"File too large. Max size: {settings.MAX_UPLOAD_SIZE / 1024 / 1024:g}MB"
        )
    content_type = (content_type or "").strip().lower()
    if content_type in ALLOWED_IMAGE_TYPES:
        return
    # Browsers sometimes send a generic Content-Type for images
    if filename and Path(filename).suffix.lower() in ALLOWED_IMAGE_EXTENSIONS:
        return
    raise ValidationError(
        f"Invalid file type. Allowed extensions: {', '.join(sorted(ALLOWED_IMAGE_EXTENSIONS))}"
    )


def store_image(content: bytes, filename: Optional[str], folder: str = "customers") -> str:
    """
    Write an image to the media store and return its URL path.

    Raises:
        UpstreamError: the upload directory is not writable
    """
    ext = Path(filename or "").suffix.lower()
    if ext not in ALLOWED_IMAGE_EXTENSIONS:
        ext = ".jpg"
    name = f"{uuid.uuid4()}{ext}"
    target_dir = Path(settings.UPLOAD_DIR_ABS) / folder
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        (target_dir / name).write_bytes(content)
    except OSError as e:
        logger.error(f"Failed to store image in {target_dir}: {e}", exc_info=True)
        raise UpstreamError("Image storage unavailable") from e
    return f"/uploads/{folder}/{name}"


def delete_image(url: Optional[str]) -> None:
    """Remove a previously stored image; missing files are ignored."""
    if not url or not url.startswith("/uploads/"):
        return
    path = Path(settings.UPLOAD_DIR_ABS) / url[len("/uploads/"):]
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.warning(f"Could not delete old image {path}: {e}")
