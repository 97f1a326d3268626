"""Tests for local and S3-backed file storage."""

from __future__ import annotations

import re
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError

from threadboard.gateway.config import reset_gateway_config
from threadboard.gateway.file_storage import (
    FileStorageError,
    key_from_url,
    make_key,
    remove_file,
    store_file,
)

UUID_RE = r"[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}"


@pytest.fixture()
def ops_mode(monkeypatch):
    monkeypatch.setenv("MODE", "OPS")
    monkeypatch.setenv("STORAGE_REGION", "auto")
    monkeypatch.setenv("STORAGE_ENDPOINT_URL", "https://storage.example.com")
    monkeypatch.setenv("STORAGE_ACCESS_KEY_ID", "key")
    monkeypatch.setenv("STORAGE_SECRET_ACCESS_KEY", "secret")
    monkeypatch.setenv("STORAGE_DOWNLOAD_URL_IMAGE", "https://img.example.com/")
    reset_gateway_config()

    s3 = MagicMock()
    with patch("threadboard.gateway.file_storage.boto3.client", return_value=s3) as mock_client:
        yield s3, mock_client


class TestKeys:
    """Tests for storage key naming."""

    def test_key_keeps_stem_and_extension(self):
        assert re.fullmatch(rf"holiday-{UUID_RE}\.jpg", make_key("holiday.JPG"))

    def test_keys_are_unique(self):
        assert make_key("a.png") != make_key("a.png")

    def test_key_from_url(self):
        assert key_from_url("https://img.example.com/a-1.png") == "a-1.png"
        assert key_from_url("/uploads/image/a-1.png") == "a-1.png"


class TestLocalStorage:
    """Without MODE=OPS files are written under UPLOAD_DIR."""

    def test_store_and_remove(self, gateway_env):
        url = store_file(b"data", "cat.png", "image/png")
        assert url.startswith("/uploads/image/cat-")

        path = Path(gateway_env).parent / "files" / "image" / key_from_url(url)
        assert path.read_bytes() == b"data"

        assert remove_file(key_from_url(url)) is True
        assert not path.exists()
        assert remove_file(key_from_url(url)) is False

    def test_path_components_in_filename_ignored(self, gateway_env):
        url = store_file(b"data", "../../etc/cat.png", "image/png")
        assert url.startswith("/uploads/image/cat-")

    def test_unknown_bucket(self):
        with pytest.raises(ValueError):
            store_file(b"data", "cat.png", "image/png", bucket="docs")


class TestObjectStorage:
    """With MODE=OPS files go to S3 through boto3."""

    def test_store_uploads_to_bucket(self, ops_mode):
        s3, mock_client = ops_mode
        url = store_file(b"data", "cat.png", "image/png")

        mock_client.assert_called_once_with(
            "s3",
            region_name="auto",
            endpoint_url="https://storage.example.com",
            aws_access_key_id="key",
            aws_secret_access_key="secret",
        )
        kwargs = s3.put_object.call_args.kwargs
        assert kwargs["Bucket"] == "image"
        assert kwargs["Body"] == b"data"
        assert kwargs["ContentType"] == "image/png"
        assert url == f"https://img.example.com/{kwargs['Key']}"

    def test_upload_failure_raises(self, ops_mode):
        s3, _ = ops_mode
        s3.put_object.side_effect = ClientError({"Error": {"Code": "500", "Message": "boom"}}, "PutObject")
        with pytest.raises(FileStorageError):
            store_file(b"data", "cat.png", "image/png")

    def test_remove_deletes_object(self, ops_mode):
        s3, _ = ops_mode
        assert remove_file("cat-1.png") is True
        s3.delete_object.assert_called_once_with(Bucket="image", Key="cat-1.png")

    def test_remove_failure_is_logged_not_raised(self, ops_mode):
        s3, _ = ops_mode
        s3.delete_object.side_effect = ClientError({"Error": {"Code": "404", "Message": "gone"}}, "DeleteObject")
        assert remove_file("cat-1.png") is False
