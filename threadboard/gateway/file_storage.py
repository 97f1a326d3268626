"""Storage for uploaded files.

In OPS mode files go to S3-compatible object storage through boto3 and are
served from the bucket's public download URL. Otherwise they are written
under UPLOAD_DIR and served by the gateway at ``/uploads``.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from threadboard.gateway.config import get_gateway_config

logger = logging.getLogger(__name__)

LOCAL_URL_PREFIX = "/uploads"
BUCKETS = ("image", "video")


class FileStorageError(Exception):
    """Raised when an upload cannot be written to its backend."""


def make_key(filename: str) -> str:
    """Build a unique storage key of the form ``<stem>-<uuid>.<ext>``."""
    path = Path(filename)
    stem = path.stem or "file"
    return f"{stem}-{uuid.uuid4()}{path.suffix.lower()}"


def _get_s3_client():
    storage = get_gateway_config().storage
    return boto3.client(
        "s3",
        region_name=storage.region,
        endpoint_url=storage.endpoint_url,
        aws_access_key_id=storage.access_key_id,
        aws_secret_access_key=storage.secret_access_key,
    )


def store_file(content: bytes, filename: str, content_type: str | None, bucket: str = "image") -> str:
    """Store an uploaded file and return the URL it is served from.

    Args:
        content: Raw file bytes.
        filename: Client-supplied filename; only its stem and extension are kept.
        content_type: MIME type recorded with the object.
        bucket: "image" or "video".

    Returns:
        Public URL (OPS mode) or ``/uploads/<bucket>/<key>`` path.

    Raises:
        ValueError: If the bucket is unknown.
        FileStorageError: If the local write or the object upload fails.
    """
    if bucket not in BUCKETS:
        raise ValueError(f"Unknown bucket: {bucket}")

    config = get_gateway_config()
    key = make_key(Path(filename).name)

    if config.uses_object_storage:
        try:
            _get_s3_client().put_object(
                Bucket=bucket,
                Key=key,
                Body=content,
                ContentType=content_type or "application/octet-stream",
            )
        except (BotoCoreError, ClientError) as e:
            raise FileStorageError(f"Upload to bucket {bucket} failed: {e}") from e
        base_url = config.storage.download_url(bucket) or ""
        logger.info(f"Stored {key} in bucket {bucket}")
        return f"{base_url.rstrip('/')}/{key}"

    target_dir = Path(config.upload_dir) / bucket
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        (target_dir / key).write_bytes(content)
    except OSError as e:
        raise FileStorageError(f"Writing {key} failed: {e}") from e
    logger.info(f"Stored {key} under {target_dir}")
    return f"{LOCAL_URL_PREFIX}/{bucket}/{key}"


def key_from_url(url: str) -> str:
    """Extract the storage key (last path segment) from a stored file URL."""
    return url.rstrip("/").rsplit("/", 1)[-1]


def remove_file(key: str, bucket: str = "image") -> bool:
    """Remove a stored file. Best effort: failures are logged, not raised.

    Returns:
        True if the file was removed.
    """
    config = get_gateway_config()

    if config.uses_object_storage:
        try:
            _get_s3_client().delete_object(Bucket=bucket, Key=key)
            logger.info(f"Removed {key} from bucket {bucket}")
            return True
        except (BotoCoreError, ClientError) as e:
            logger.warning(f"Failed to remove {key} from bucket {bucket}: {e}")
            return False

    path = Path(config.upload_dir) / bucket / Path(key).name
    try:
        path.unlink()
        return True
    except FileNotFoundError:
        return False
    except OSError as e:
        logger.warning(f"Failed to remove {path}: {e}")
        return False
