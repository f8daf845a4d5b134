from __future__ import annotations

import io
import logging
import os
from pathlib import Path

import pytest

from src.services import file_catalog
from src.services.downloads import FileDownload, content_disposition, open_download
from src.services.errors import (
    InaccessibleError,
    MalformedPathError,
    NotAFileError,
    NotFoundError,
    TraversalViolationError,
)


def test_open_download_streams_file_content(share_root: Path):
    target = open_download(share_root, "a.txt")
    assert target.filename == "a.txt"
    assert target.size == 5
    assert target.media_type == "text/plain"
    assert b"".join(target.iter_chunks(chunk_size=2)) == b"hello"
    assert target.handle.closed


def test_suggested_name_is_the_requested_file_name(share_root: Path):
    target = open_download(share_root, "sub/../sub/nested.txt")
    try:
        assert target.filename == "nested.txt"
        assert target.path == share_root / "sub" / "nested.txt"
    finally:
        target.handle.close()


def test_directory_is_not_a_file(share_root: Path):
    with pytest.raises(NotAFileError):
        open_download(share_root, "sub")


def test_missing_file_is_not_found(share_root: Path):
    with pytest.raises(NotFoundError):
        open_download(share_root, "missing.txt")


def test_traversal_is_forbidden(tmp_path: Path, share_root: Path):
    (tmp_path / "secret.txt").write_text("secret", encoding="utf-8")
    with pytest.raises(TraversalViolationError):
        open_download(share_root, "../secret.txt")
    with pytest.raises(TraversalViolationError):
        open_download(share_root, "sub/../../secret.txt")


def test_empty_name_is_malformed(share_root: Path):
    with pytest.raises(MalformedPathError):
        open_download(share_root, "")


def test_content_disposition_strips_header_injection():
    header = content_disposition('evil".txt\r\nSet-Cookie: x=1')
    assert "\r" not in header and "\n" not in header
    assert header.startswith('attachment; filename="evil_.txt__Set-Cookie: x=1"')
    assert "filename*=UTF-8''evil%22.txt%0D%0ASet-Cookie%3A%20x%3D1" in header


def test_content_disposition_encodes_non_ascii_names():
    header = content_disposition("résumé.pdf", inline=True)
    assert header.startswith('inline; filename="r_sum_.pdf"')
    assert header.endswith("filename*=UTF-8''r%C3%A9sum%C3%A9.pdf")


class _FailingReader(io.BytesIO):
    def __init__(self):
        super().__init__(b"abcdef")
        self.reads = 0

    def read(self, size=-1):
        self.reads += 1
        if self.reads > 1:
            raise OSError(5, "Input/output error")
        return super().read(size)


def test_mid_transfer_failure_is_logged_not_raised(tmp_path: Path, caplog):
    handle = _FailingReader()
    target = FileDownload(path=tmp_path / "broken.bin", filename="broken.bin", size=6, handle=handle)

    with caplog.at_level(logging.ERROR, logger="file_share.downloads"):
        chunks = list(target.iter_chunks(chunk_size=3))

    assert chunks == [b"abc"]
    assert handle.closed
    assert "aborted after 3 of 6 bytes" in caplog.text


def test_inaccessible_file_is_reported_like_missing(share_root: Path, monkeypatch):
    original = file_catalog.os.stat

    def deny_a_txt(path, *args, **kwargs):
        if not isinstance(path, int) and os.path.basename(path) == "a.txt":
            raise PermissionError(13, "Permission denied", str(path))
        return original(path, *args, **kwargs)

    monkeypatch.setattr(file_catalog.os, "stat", deny_a_txt)

    with pytest.raises(InaccessibleError) as excinfo:
        open_download(share_root, "a.txt")
    assert excinfo.value.status_code == NotFoundError.status_code
    assert excinfo.value.public_message == NotFoundError.public_message
