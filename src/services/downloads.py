from __future__ import annotations

import logging
import mimetypes
import os
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import BinaryIO
from urllib.parse import quote

from src.services.errors import InaccessibleError, NotAFileError, NotFoundError
from src.services.file_catalog import EntryKind, inspect_path
from src.services.path_resolver import resolve_path

logger = logging.getLogger("file_share.downloads")

CHUNK_SIZE = 64 * 1024


@dataclass
class FileDownload:
    """An opened file ready to be streamed to a client."""

    path: Path
    filename: str
    size: int
    handle: BinaryIO

    @property
    def media_type(self) -> str:
        guessed, _ = mimetypes.guess_type(self.filename)
        return guessed or "application/octet-stream"

    def iter_chunks(self, chunk_size: int = CHUNK_SIZE) -> Iterator[bytes]:
        """Yield the file content and close the handle afterwards.

        Headers are already on the wire once the first chunk is requested,
        so read failures are logged and end the body early.
        """

        sent = 0
        try:
            while True:
                chunk = self.handle.read(chunk_size)
                if not chunk:
                    break
                sent += len(chunk)
                yield chunk
        except OSError:
            logger.exception(
                "Download of %s aborted after %d of %d bytes", self.path, sent, self.size
            )
        finally:
            self.handle.close()


def _ascii_fallback(filename: str) -> str:
    cleaned = []
    for char in filename:
        if char in '"\\' or ord(char) < 0x20 or ord(char) >= 0x7F:
            cleaned.append("_")
        else:
            cleaned.append(char)
    return "".join(cleaned) or "download"


def content_disposition(filename: str, *, inline: bool = False) -> str:
    """Build a Content-Disposition value that is safe to echo ``filename`` into."""

    disposition = "inline" if inline else "attachment"
    return (
        f'{disposition}; filename="{_ascii_fallback(filename)}"; '
        f"filename*=UTF-8''{quote(filename, safe='')}"
    )


def open_download(base: Path, requested: str) -> FileDownload:
    """Resolve, inspect and open ``requested`` for streaming.

    Every rejection is raised before any response header exists:
    ``TraversalViolationError``/``MalformedPathError`` from resolution,
    then ``NotFoundError``, ``NotAFileError`` or ``InaccessibleError``.
    """

    resolved = resolve_path(base, requested)
    details = inspect_path(resolved.path)
    if details.kind is not EntryKind.FILE:
        raise NotAFileError(f"'{resolved.relative_path}' is not a regular file")

    try:
        handle = open(resolved.path, "rb")
    except FileNotFoundError as exc:
        raise NotFoundError(f"'{resolved.relative_path}' vanished before it was opened") from exc
    except IsADirectoryError as exc:
        raise NotAFileError(f"'{resolved.relative_path}' is not a regular file") from exc
    except OSError as exc:
        raise InaccessibleError(f"Cannot open '{resolved.relative_path}': {exc}") from exc

    try:
        size = os.fstat(handle.fileno()).st_size
    except OSError as exc:
        handle.close()
        raise InaccessibleError(f"Cannot stat '{resolved.relative_path}': {exc}") from exc

    return FileDownload(
        path=resolved.path,
        filename=PurePosixPath(resolved.requested).name,
        size=size,
        handle=handle,
    )
