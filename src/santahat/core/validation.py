"""Validation utilities for uploaded images."""

import logging
import time

from .config import DEFAULT_MAX_UPLOAD_BYTES
from .errors import ValidationError
from .models import ImageAsset

logger = logging.getLogger(__name__)

# Used when the upload carries no content type at all.
FALLBACK_MIME_TYPE = "image/jpeg"


def validate_mime_type(mime_type: str | None) -> str:
    """Check that the declared content type is an image type.

    Args:
        mime_type: Content type reported for the upload (may be empty)

    Returns:
        Normalized mime type

    Raises:
        ValidationError: If the content type is not ``image/*``
    """
    if not mime_type:
        return FALLBACK_MIME_TYPE

    normalized = mime_type.split(";", 1)[0].strip().lower()
    if not normalized.startswith("image/"):
        raise ValidationError("Please upload an image file (JPG, PNG, WEBP).")
    return normalized


def validate_upload_size(size: int, max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES) -> None:
    """Reject empty uploads and uploads over ``max_bytes``.

    Raises:
        ValidationError: If the size is zero or exceeds the limit
    """
    if size <= 0:
        raise ValidationError("The uploaded file is empty.")
    if size > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        raise ValidationError(f"Image size must not exceed {limit_mb:g}MB.")


def validate_upload(
    data: bytes, mime_type: str | None, max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES
) -> ImageAsset:
    """Validate an uploaded file and decode it into an ImageAsset.

    All checks run before any network interaction so a bad upload never
    reaches the remote model.

    Args:
        data: Raw file contents
        mime_type: Content type reported for the upload
        max_bytes: Largest accepted file size

    Returns:
        Decoded ImageAsset

    Raises:
        ValidationError: If the type, size or contents are invalid
    """
    normalized = validate_mime_type(mime_type)
    validate_upload_size(len(data), max_bytes)

    try:
        asset = ImageAsset.from_bytes(data, normalized)
    except ValueError as e:
        logger.warning(f"Rejected undecodable upload ({normalized}, {len(data)} bytes)")
        raise ValidationError("The file could not be read as an image.") from e

    logger.debug(f"Accepted upload: {asset.width}x{asset.height} {asset.mime_type}")
    return asset


def download_filename(timestamp_ms: int | None = None) -> str:
    """Return the file name offered for downloading a result.

    Args:
        timestamp_ms: Unix time in milliseconds (default: now)
    """
    if timestamp_ms is None:
        timestamp_ms = int(time.time() * 1000)
    return f"santa-hat-avatar-{timestamp_ms}.png"
