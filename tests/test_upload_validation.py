"""Tests for image upload validation."""

from __future__ import annotations

import pytest
from fastapi import HTTPException

from threadboard.gateway.uploads import (
    ALLOWED_EXTENSIONS,
    MAX_SINGLE_FILE_SIZE,
    _validate_upload,
)


class TestExtensionValidation:
    """Test file extension allowlist."""

    @pytest.mark.parametrize("filename", ["photo.png", "photo.jpg", "photo.jpeg", "anim.gif", "pic.webp", "old.bmp"])
    def test_allowed_extensions_pass(self, filename):
        """Image extensions should pass validation."""
        _validate_upload(filename, "application/octet-stream", 100)

    @pytest.mark.parametrize(
        "filename",
        ["malware.exe", "vector.svg", "report.pdf", "script.py", "archive.zip", "noext"],
    )
    def test_rejected_extensions_fail(self, filename):
        """Non-image files are rejected."""
        with pytest.raises(HTTPException) as exc_info:
            _validate_upload(filename, "application/octet-stream", 100)
        assert exc_info.value.status_code == 400
        assert "not allowed" in exc_info.value.detail

    def test_extension_case_insensitive(self):
        """Extension check should be case-insensitive."""
        _validate_upload("image.PNG", "image/png", 100)

    def test_svg_not_in_allowlist(self):
        """SVG can carry scripts and is not accepted."""
        assert ".svg" not in ALLOWED_EXTENSIONS


class TestMimeValidation:
    """Test MIME type allowlist."""

    def test_image_mime_passes(self):
        _validate_upload("photo.jpg", "image/jpeg", 100)

    def test_missing_mime_passes(self):
        """A missing content type falls back to the extension check."""
        _validate_upload("photo.jpg", None, 100)

    def test_disguised_file_rejected(self):
        """An image extension with a non-image MIME type is rejected."""
        with pytest.raises(HTTPException) as exc_info:
            _validate_upload("photo.png", "text/html", 100)
        assert exc_info.value.status_code == 400


class TestSizeValidation:
    """Test per-file size limit."""

    def test_max_size_is_5mb(self):
        assert MAX_SINGLE_FILE_SIZE == 5 * 1024 * 1024

    def test_at_limit_passes(self):
        _validate_upload("photo.png", "image/png", MAX_SINGLE_FILE_SIZE)

    def test_over_limit_is_413(self):
        with pytest.raises(HTTPException) as exc_info:
            _validate_upload("photo.png", "image/png", MAX_SINGLE_FILE_SIZE + 1)
        assert exc_info.value.status_code == 413
        assert "5 MB" in exc_info.value.detail


class TestOversizedUploadEndpoint:
    """The size limit is enforced on real requests."""

    def test_oversized_photo_rejected(self, logged_in):
        c, _ = logged_in("alice")
        big = b"\x00" * (MAX_SINGLE_FILE_SIZE + 1)
        resp = c.post("/threads", data={"content": "big"}, files={"photo": ("big.png", big, "image/png")})
        assert resp.status_code == 413
