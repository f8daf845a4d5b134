from __future__ import annotations


class FileShareError(Exception):
    """Base class for rejections produced while resolving or serving a path."""

    status_code = 500
    public_message = "Internal server error"


class MalformedPathError(FileShareError):
    """Raised for empty requests, null bytes or requests that collapse onto the root."""

    status_code = 400
    public_message = "Malformed path"


class TraversalViolationError(FileShareError):
    """Raised when the requested path is outside the shared root."""

    status_code = 403
    public_message = "Access denied"


class NotFoundError(FileShareError):
    status_code = 404
    public_message = "File not found"


class NotAFileError(FileShareError):
    status_code = 400
    public_message = "Not a file"


class InaccessibleError(FileShareError):
    """Permission or I/O failure; reported to clients like a missing file."""

    status_code = 404
    public_message = "File not found"


class ServerError(FileShareError):
    status_code = 500
    public_message = "Error reading directory"
