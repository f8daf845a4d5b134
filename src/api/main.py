from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, StreamingResponse

from src.api.views import entry_to_json, render_gallery, render_listing
from src.config import Settings
from src.services.downloads import content_disposition, open_download
from src.services.errors import FileShareError, InaccessibleError, TraversalViolationError
from src.services.file_catalog import SortOrder, build_listing, extension_filter

logger = logging.getLogger("file_share.api")


def _rejection(exc: FileShareError, requested: str) -> HTTPException:
    if isinstance(exc, TraversalViolationError):
        logger.warning("Rejected traversal attempt for %r: %s", requested, exc)
    elif isinstance(exc, InaccessibleError):
        logger.warning("Inaccessible path %r: %s", requested, exc)
    elif exc.status_code >= 500:
        logger.error("Failed to serve %r: %s", requested, exc, exc_info=exc)
    else:
        logger.info("Rejected %r with %d: %s", requested, exc.status_code, exc)
    return HTTPException(status_code=exc.status_code, detail=exc.public_message)


def create_app(settings: Settings) -> FastAPI:
    """Build the file-sharing application around an immutable ``Settings``."""

    app = FastAPI(
        title="File Share Service",
        description="Read-only directory browser, gallery and downloader built with FastAPI.",
        version="0.1.0",
    )
    app.state.settings = settings

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault(
            "Content-Security-Policy",
            "default-src 'self'; style-src 'self' 'unsafe-inline';",
        )
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        return response

    @app.get("/", response_class=HTMLResponse)
    async def browse(
        path: str = Query(default="", description="Relative path to browse"),
        sort: SortOrder = Query(default=SortOrder.NAME),
    ):
        try:
            listing = await build_listing(settings.share_root, path, sort_order=sort)
        except FileShareError as exc:
            raise _rejection(exc, path) from exc
        return HTMLResponse(content=render_listing(listing.entries, listing.relative_path, sort))

    @app.get("/gallery", response_class=HTMLResponse)
    async def gallery(
        path: str = Query(default="", description="Relative path to browse"),
        sort: SortOrder = Query(default=SortOrder.NEWEST),
    ):
        try:
            listing = await build_listing(
                settings.share_root,
                path,
                entry_filter=extension_filter(settings.gallery_extensions),
                sort_order=sort,
            )
        except FileShareError as exc:
            raise _rejection(exc, path) from exc
        return HTMLResponse(content=render_gallery(listing.entries, listing.relative_path, sort))

    @app.get("/api/entries")
    async def list_entries(
        path: str = Query(default="", description="Relative path to browse"),
        sort: SortOrder = Query(default=SortOrder.NONE),
        images: bool = Query(default=False, description="Only list gallery images"),
    ):
        entry_filter = extension_filter(settings.gallery_extensions) if images else None
        try:
            listing = await build_listing(
                settings.share_root,
                path,
                entry_filter=entry_filter,
                sort_order=sort,
                include_directories=not images,
            )
        except FileShareError as exc:
            raise _rejection(exc, path) from exc
        return {
            "path": listing.relative_path,
            "entries": [entry_to_json(entry) for entry in listing.entries],
        }

    @app.get("/download/{file_path:path}")
    def download(file_path: str, inline: bool = Query(default=False)):
        try:
            target = open_download(settings.share_root, file_path)
        except FileShareError as exc:
            raise _rejection(exc, file_path) from exc

        headers = {
            "Content-Disposition": content_disposition(target.filename, inline=inline),
            "Content-Length": str(target.size),
        }
        return StreamingResponse(target.iter_chunks(), media_type=target.media_type, headers=headers)

    logger.info("Sharing directory: %s", settings.share_root)
    return app
