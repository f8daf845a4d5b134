from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger("file_share.config")

SHARE_ROOT_ENV = "DIR_SHARE"
HOST_ENV = "HOST"
PORT_ENV = "PORT"
LOG_LEVEL_ENV = "LOG_LEVEL"
GALLERY_EXTENSIONS_ENV = "GALLERY_EXTENSIONS"

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3000
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_GALLERY_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".gif", ".webp"})


class ConfigError(ValueError):
    """Raised when the startup configuration is missing or invalid."""


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration, built once at startup and never mutated."""

    share_root: Path
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = DEFAULT_LOG_LEVEL
    gallery_extensions: frozenset[str] = DEFAULT_GALLERY_EXTENSIONS


def validate_share_root(raw: str | os.PathLike | None) -> Path:
    """Return the canonical shared root or raise ``ConfigError``."""

    if raw is None or not str(raw).strip():
        raise ConfigError(
            f"{SHARE_ROOT_ENV} is not set. Create a .env file with {SHARE_ROOT_ENV}=<path-to-share>"
        )
    root = Path(str(raw).strip()).expanduser().resolve()
    if not root.exists():
        raise ConfigError(f"Directory does not exist: {root}")
    if not root.is_dir():
        raise ConfigError(f"Path is not a directory: {root}")
    return root


def _parse_port(raw: str | int | None) -> int:
    if raw is None or raw == "":
        return DEFAULT_PORT
    try:
        port = int(raw)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid {PORT_ENV} value: {raw!r}") from exc
    if not 0 < port < 65536:
        raise ConfigError(f"{PORT_ENV} out of range: {port}")
    return port


def _parse_extensions(raw: str | None) -> frozenset[str]:
    if not raw:
        return DEFAULT_GALLERY_EXTENSIONS
    extensions = set()
    for part in raw.split(","):
        part = part.strip().lower()
        if not part:
            continue
        extensions.add(part if part.startswith(".") else f".{part}")
    return frozenset(extensions) or DEFAULT_GALLERY_EXTENSIONS


def load_settings(
    environ: Mapping[str, str] | None = None,
    *,
    env_file: str | os.PathLike | None = ".env",
    overrides: Mapping[str, object] | None = None,
) -> Settings:
    """Build ``Settings`` from the environment.

    When ``environ`` is omitted the process environment is used, after
    loading ``env_file`` with python-dotenv (existing variables win).
    ``overrides`` holds already-parsed CLI values and takes precedence.
    """

    if environ is None:
        if env_file is not None and Path(env_file).is_file():
            load_dotenv(env_file)
        environ = os.environ
    overrides = {key: value for key, value in (overrides or {}).items() if value is not None}

    share_root = validate_share_root(overrides.get("share_root", environ.get(SHARE_ROOT_ENV)))
    log_level = str(overrides.get("log_level", environ.get(LOG_LEVEL_ENV) or DEFAULT_LOG_LEVEL)).upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise ConfigError(f"Unknown {LOG_LEVEL_ENV} value: {log_level!r}")

    settings = Settings(
        share_root=share_root,
        host=str(overrides.get("host", environ.get(HOST_ENV) or DEFAULT_HOST)),
        port=_parse_port(overrides.get("port", environ.get(PORT_ENV))),
        log_level=log_level,
        gallery_extensions=_parse_extensions(environ.get(GALLERY_EXTENSIONS_ENV)),
    )
    logger.debug("Loaded settings: %s", settings)
    return settings
