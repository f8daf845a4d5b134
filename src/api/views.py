from __future__ import annotations

from html import escape
from urllib.parse import quote, urlencode

from src.services.file_catalog import EntryDescriptor, SortOrder

PAGE_STYLE = """
    body { font-family: Arial, sans-serif; max-width: 1200px; margin: 0 auto; padding: 20px; background-color: #f5f5f5; }
    h1 { color: #333; margin-bottom: 0.5rem; }
    table { width: 100%; background-color: white; border-collapse: collapse; box-shadow: 0 2px 4px rgba(0,0,0,0.1); margin-top: 1rem; }
    th, td { padding: 12px; text-align: left; border-bottom: 1px solid #ddd; }
    th { background-color: #4CAF50; color: white; font-weight: bold; }
    tr:hover { background-color: #f5f5f5; }
    a { color: #0066cc; text-decoration: none; }
    a:hover { text-decoration: underline; }
    .crumbs { font-size: 0.9rem; color: #555; }
    .top-bar { display: flex; justify-content: space-between; align-items: center; }
    .no-files { padding: 20px; text-align: center; color: #666; }
    .gallery { display: grid; grid-template-columns: repeat(auto-fill, minmax(200px, 1fr)); gap: 12px; margin-top: 1rem; }
    .gallery figure { margin: 0; background: white; padding: 8px; box-shadow: 0 2px 4px rgba(0,0,0,0.1); }
    .gallery img { width: 100%; height: 180px; object-fit: cover; }
    .gallery figcaption { font-size: 0.8rem; color: #555; word-break: break-all; }
    .gallery .folder { display: flex; align-items: center; justify-content: center; min-height: 80px; font-weight: bold; }
"""


def download_href(entry: EntryDescriptor, *, inline: bool = False) -> str:
    href = f"/download/{quote(entry.relative_path)}"
    if inline:
        href += "?inline=true"
    return href


def browse_href(view: str, relative_path: str, sort_order: SortOrder | None = None) -> str:
    params = {}
    if relative_path:
        params["path"] = relative_path
    if sort_order is not None:
        params["sort"] = sort_order.value
    return f"{view}?{urlencode(params)}" if params else view


def build_breadcrumbs(current_path: str, view: str = "/") -> list[tuple[str, str]]:
    crumbs = [("Home", view)]  # (label, href)
    if not current_path:
        return crumbs

    running = []
    for part in current_path.split("/"):
        if not part:
            continue
        running.append(part)
        crumbs.append((part, browse_href(view, "/".join(running))))
    return crumbs


def parent_href(current_path: str, view: str = "/") -> str | None:
    if not current_path:
        return None
    return browse_href(view, "/".join(current_path.split("/")[:-1]))


def format_size(entry: EntryDescriptor) -> str:
    if entry.is_dir:
        return "--"
    return f"{entry.size:,} bytes"


def format_created(entry: EntryDescriptor) -> str:
    return entry.created_at.strftime("%Y-%m-%d %H:%M:%S UTC")


def _page(title: str, current_path: str, view: str, body: str) -> str:
    crumbs_html = " / ".join(
        f"<a href='{escape(href)}'>{escape(label)}</a>" for label, href in build_breadcrumbs(current_path, view)
    )
    up = parent_href(current_path, view)
    up_html = f"<a href='{escape(up)}'>&larr; Up one level</a>" if up else ""
    return f"""<!DOCTYPE html>
<html lang='en'>
<head>
    <meta charset='utf-8'>
    <meta name='viewport' content='width=device-width, initial-scale=1.0'>
    <title>{escape(title)}</title>
    <style>{PAGE_STYLE}</style>
</head>
<body>
    <div class='top-bar'>
        <h1>{escape(title)}</h1>
        <div>{up_html}</div>
    </div>
    <div class='crumbs'>{crumbs_html}</div>
    {body}
</body>
</html>
"""


def render_listing(entries: list[EntryDescriptor], current_path: str, sort_order: SortOrder) -> str:
    """Render entries as an HTML table; every name and href is escaped."""

    if not entries:
        return _page("Shared Files", current_path, "/", "<div class='no-files'>No files available</div>")

    rows = []
    for entry in entries:
        if entry.is_dir:
            href = browse_href("/", entry.relative_path, sort_order)
            display_name = f"{entry.name}/"
        else:
            href = download_href(entry)
            display_name = entry.name
        rows.append(
            f"<tr><td><a href='{escape(href)}'>{escape(display_name)}</a></td>"
            f"<td>{format_size(entry)}</td><td>{format_created(entry)}</td></tr>"
        )

    body = f"""<table>
        <thead>
            <tr><th>Filename</th><th>Size</th><th>Date Created</th></tr>
        </thead>
        <tbody>
            {"".join(rows)}
        </tbody>
    </table>"""
    return _page("Shared Files", current_path, "/", body)


def render_gallery(entries: list[EntryDescriptor], current_path: str, sort_order: SortOrder) -> str:
    """Render image entries as a thumbnail grid; subdirectories come first as folder tiles."""

    if not entries:
        return _page("Gallery", current_path, "/gallery", "<div class='no-files'>No images available</div>")

    figures = []
    for entry in (entry for entry in entries if entry.is_dir):
        href = browse_href("/gallery", entry.relative_path, sort_order)
        figures.append(
            f"<figure class='folder'><a href='{escape(href)}'>&#128193; {escape(entry.name)}/</a></figure>"
        )
    for entry in (entry for entry in entries if not entry.is_dir):
        name = escape(entry.name)
        figures.append(
            f"<figure><a href='{escape(download_href(entry))}'>"
            f"<img src='{escape(download_href(entry, inline=True))}' alt='{name}' loading='lazy'></a>"
            f"<figcaption>{name}<br>{format_created(entry)}</figcaption></figure>"
        )
    return _page("Gallery", current_path, "/gallery", f"<div class='gallery'>{''.join(figures)}</div>")


def entry_to_json(entry: EntryDescriptor) -> dict:
    return {
        "name": entry.name,
        "relative_path": entry.relative_path,
        "kind": entry.kind.value,
        "size": entry.size,
        "created_at": entry.created_at.isoformat(),
    }
