"""Image upload validation for thread photos and avatars."""

from __future__ import annotations

import logging
from pathlib import Path

from fastapi import HTTPException, UploadFile

from threadboard.gateway.file_storage import FileStorageError, key_from_url, remove_file, store_file

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Upload validation constants
# ---------------------------------------------------------------------------
ALLOWED_EXTENSIONS = {
    ".png",
    ".jpg",
    ".jpeg",
    ".gif",
    ".webp",
    ".bmp",
}

ALLOWED_MIME_TYPES = {
    "image/png",
    "image/jpeg",
    "image/gif",
    "image/webp",
    "image/bmp",
    # Fallback for unknown but extension-validated files
    "application/octet-stream",
}

# Maximum size per individual file (5 MB)
MAX_SINGLE_FILE_SIZE = 5 * 1024 * 1024


def _validate_upload(filename: str, content_type: str | None, content_size: int) -> None:
    """Validate an image upload against the allowlists and size limit.

    Args:
        filename: The original filename.
        content_type: The MIME type from the upload.
        content_size: The size of the file content in bytes.

    Raises:
        HTTPException: 400 for a disallowed type, 413 when too large.
    """
    ext = Path(filename).suffix.lower()
    if ext not in ALLOWED_EXTENSIONS:
        raise HTTPException(
            status_code=400,
            detail=f"File type '{ext}' is not allowed. Allowed types: {', '.join(sorted(ALLOWED_EXTENSIONS))}",
        )

    if content_type and content_type not in ALLOWED_MIME_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"MIME type '{content_type}' is not allowed for upload.",
        )

    if content_size > MAX_SINGLE_FILE_SIZE:
        max_mb = MAX_SINGLE_FILE_SIZE // (1024 * 1024)
        raise HTTPException(
            status_code=413,
            detail=f"File '{filename}' exceeds maximum size of {max_mb} MB.",
        )


async def read_image_upload(file: UploadFile | None) -> tuple[bytes, str, str | None] | None:
    """Read and validate an optional image form field.

    Browsers submit an empty part with no filename when the field is left
    blank; that counts as no upload.

    Returns:
        ``(content, filename, content_type)``, or None when nothing was sent.

    Raises:
        HTTPException: If the upload fails validation.
    """
    if file is None or not file.filename:
        return None
    content = await file.read()
    if not content:
        return None
    _validate_upload(file.filename, file.content_type, len(content))
    return content, file.filename, file.content_type


async def save_image_upload(file: UploadFile | None, bucket: str = "image") -> str | None:
    """Validate and store an optional image, returning its URL.

    Returns:
        The stored file's URL, or None when no file was sent.

    Raises:
        HTTPException: 400/413 on validation failure, 500 if storing fails.
    """
    upload = await read_image_upload(file)
    if upload is None:
        return None
    content, filename, content_type = upload
    try:
        return store_file(content, filename, content_type, bucket=bucket)
    except FileStorageError as e:
        logger.error(f"Failed to store upload {filename}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to store file: {e}")


def discard_upload(url: str | None, bucket: str = "image") -> None:
    """Remove a just-stored upload whose database write did not go through."""
    if url:
        remove_file(key_from_url(url), bucket=bucket)
