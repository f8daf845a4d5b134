from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from urllib.parse import unquote

from src.services.errors import MalformedPathError, TraversalViolationError


@dataclass(frozen=True)
class ResolvedPath:
    """A canonical path known to live strictly inside the shared root."""

    requested: str
    path: Path
    relative_path: str


def is_within_root(root: str, candidate: str) -> bool:
    """Return True when ``candidate`` equals ``root`` or is nested under it.

    Both arguments must already be canonical. The comparison keeps the
    separator boundary, so ``/share-other`` is not inside ``/share``.
    """

    if candidate == root:
        return True
    prefix = root if root.endswith(os.sep) else root + os.sep
    return candidate.startswith(prefix)


def resolve_path(root: Path, requested: str, *, encoded: bool = False) -> ResolvedPath:
    """Canonicalise ``requested`` against ``root`` and verify containment.

    Set ``encoded`` when ``requested`` still carries URL escapes; it is
    decoded once and only once.
    """

    if encoded:
        requested = unquote(requested)
    if not requested or "\x00" in requested:
        raise MalformedPathError(f"Malformed path {requested!r}")
    if os.path.isabs(requested):
        raise TraversalViolationError(f"Absolute path {requested!r} is not allowed")

    canonical_root = os.path.realpath(root)
    candidate = os.path.realpath(os.path.join(canonical_root, requested))
    if not is_within_root(canonical_root, candidate):
        raise TraversalViolationError(
            f"Path {requested!r} escapes shared root {canonical_root}"
        )
    if candidate == canonical_root:
        raise MalformedPathError(f"Path {requested!r} resolves to the shared root itself")

    relative = Path(os.path.relpath(candidate, canonical_root)).as_posix()
    return ResolvedPath(requested=requested, path=Path(candidate), relative_path=relative)
