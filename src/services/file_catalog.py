from __future__ import annotations

import asyncio
import logging
import os
import stat
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path, PurePosixPath

from src.services.errors import (
    FileShareError,
    InaccessibleError,
    NotFoundError,
    ServerError,
)
from src.services.path_resolver import is_within_root, resolve_path

logger = logging.getLogger("file_share.catalog")

# (name, lower-cased extension including the dot) -> keep?
EntryFilter = Callable[[str, str], bool]


class EntryKind(str, Enum):
    FILE = "file"
    DIRECTORY = "directory"
    OTHER = "other"


class SortOrder(str, Enum):
    NONE = "none"
    NEWEST = "newest"
    NAME = "name"


@dataclass(frozen=True)
class FileStat:
    kind: EntryKind
    size: int
    created_at: datetime


@dataclass(frozen=True)
class EntryDescriptor:
    """Metadata describing an entry in the shared directory."""

    name: str
    relative_path: str
    kind: EntryKind
    size: int
    created_at: datetime

    @property
    def is_dir(self) -> bool:
        return self.kind is EntryKind.DIRECTORY


@dataclass(frozen=True)
class DirectoryListing:
    """Entries of one directory plus its canonical path relative to the root."""

    relative_path: str
    entries: list[EntryDescriptor]


@dataclass(frozen=True)
class InspectionOutcome:
    """Result of inspecting one enumerated child; either entry or error is set."""

    name: str
    entry: EntryDescriptor | None = None
    error: FileShareError | None = None


def _created_at(st: os.stat_result) -> datetime:
    timestamp = getattr(st, "st_birthtime", None)
    if timestamp is None:
        timestamp = st.st_ctime
    return datetime.fromtimestamp(timestamp, tz=timezone.utc)


def inspect_path(path: Path | str) -> FileStat:
    """Stat ``path`` once and classify it.

    Raises ``NotFoundError`` when nothing is there (including when a parent
    component is a regular file) and ``InaccessibleError`` for any other
    ``OSError``.
    """

    try:
        st = os.stat(path)
    except (FileNotFoundError, NotADirectoryError) as exc:
        raise NotFoundError(f"'{path}' not found") from exc
    except OSError as exc:
        raise InaccessibleError(f"'{path}' is not accessible: {exc}") from exc

    if stat.S_ISDIR(st.st_mode):
        kind = EntryKind.DIRECTORY
    elif stat.S_ISREG(st.st_mode):
        kind = EntryKind.FILE
    else:
        kind = EntryKind.OTHER
    return FileStat(kind=kind, size=st.st_size, created_at=_created_at(st))


def extension_filter(extensions: Iterable[str]) -> EntryFilter:
    """Return a predicate keeping names whose extension is in ``extensions``."""

    allowed = frozenset(
        ext.lower() if ext.startswith(".") else f".{ext.lower()}" for ext in extensions
    )

    def _matches(name: str, extension: str) -> bool:
        return extension in allowed

    return _matches


def sort_entries(entries: list[EntryDescriptor], sort_order: SortOrder) -> list[EntryDescriptor]:
    """Order entries; ``sorted`` is stable so ties keep enumeration order."""

    if sort_order is SortOrder.NEWEST:
        return sorted(entries, key=lambda entry: entry.created_at, reverse=True)
    if sort_order is SortOrder.NAME:
        return sorted(entries, key=lambda entry: (not entry.is_dir, entry.name.lower()))
    return list(entries)


def resolve_directory(base: Path, relative_path: str = "") -> tuple[Path, str]:
    """Return the directory to list and its POSIX path relative to ``base``."""

    if not relative_path:
        return base, ""
    resolved = resolve_path(base, relative_path)
    if inspect_path(resolved.path).kind is not EntryKind.DIRECTORY:
        raise NotFoundError(f"Directory '{relative_path}' not found")
    return resolved.path, resolved.relative_path


def enumerate_directory(directory: Path) -> list[str]:
    """Return the names of the immediate children of ``directory``."""

    try:
        with os.scandir(directory) as entries:
            return [entry.name for entry in entries]
    except OSError as exc:
        raise ServerError(f"Cannot read directory '{directory}': {exc}") from exc


def _inspect_child(base: Path, directory: Path, relative_dir: str, name: str) -> InspectionOutcome:
    child = os.path.join(directory, name)
    try:
        details = inspect_path(child)
    except FileShareError as exc:
        return InspectionOutcome(name=name, error=exc)

    if not is_within_root(os.path.realpath(base), os.path.realpath(child)):
        return InspectionOutcome(
            name=name, error=InaccessibleError(f"'{child}' points outside the shared root")
        )

    rel_path = PurePosixPath(relative_dir) / name if relative_dir else PurePosixPath(name)
    return InspectionOutcome(
        name=name,
        entry=EntryDescriptor(
            name=name,
            relative_path=str(rel_path),
            kind=details.kind,
            size=details.size,
            created_at=details.created_at,
        ),
    )


async def build_listing(
    base: Path,
    relative_path: str = "",
    *,
    entry_filter: EntryFilter | None = None,
    sort_order: SortOrder = SortOrder.NONE,
    include_directories: bool = True,
) -> DirectoryListing:
    """List the immediate children of ``base / relative_path``.

    Children are inspected concurrently in worker threads. Entries that
    vanish or cannot be inspected are dropped; one bad entry never fails
    the listing. Before sorting, results follow enumeration order. The
    returned ``relative_path`` is the canonical form of ``relative_path``.
    """

    directory, relative_dir = await asyncio.to_thread(resolve_directory, base, relative_path)
    names = await asyncio.to_thread(enumerate_directory, directory)

    outcomes = await asyncio.gather(
        *(asyncio.to_thread(_inspect_child, base, directory, relative_dir, name) for name in names)
    )

    entries = []
    for outcome in outcomes:
        if outcome.error is not None:
            if isinstance(outcome.error, NotFoundError):
                logger.debug("Entry %s vanished before it could be inspected", outcome.name)
            else:
                logger.warning("Skipping entry %s: %s", outcome.name, outcome.error)
            continue
        entry = outcome.entry
        if entry.kind is EntryKind.OTHER:
            continue
        if entry.is_dir and not include_directories:
            continue
        if entry_filter is not None and not entry.is_dir:
            if not entry_filter(entry.name, os.path.splitext(entry.name)[1].lower()):
                continue
        entries.append(entry)

    return DirectoryListing(relative_path=relative_dir, entries=sort_entries(entries, sort_order))
