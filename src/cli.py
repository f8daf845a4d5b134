from __future__ import annotations

import argparse
import logging
import sys

import uvicorn

from src.api.main import create_app
from src.config import ConfigError, load_settings

logger = logging.getLogger("file_share")


def configure_logging(level: str) -> None:
    logger.setLevel(level)
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(levelname)s %(name)s - %(message)s"))
        logger.addHandler(handler)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="file-share",
        description="Share a directory over HTTP as a browsable listing and image gallery.",
    )
    parser.add_argument("--root", dest="share_root", help="Directory to share (overrides DIR_SHARE)")
    parser.add_argument("--host", help="Interface to bind (overrides HOST)")
    parser.add_argument("--port", type=int, help="Port to listen on (overrides PORT)")
    parser.add_argument("--log-level", dest="log_level", help="Logging level (overrides LOG_LEVEL)")
    parser.add_argument("--env-file", default=".env", help="dotenv file to load (default: .env)")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    configure_logging("INFO")

    try:
        settings = load_settings(
            env_file=args.env_file,
            overrides={
                "share_root": args.share_root,
                "host": args.host,
                "port": args.port,
                "log_level": args.log_level,
            },
        )
    except ConfigError as exc:
        logger.error("ERROR: %s", exc)
        return 1

    configure_logging(settings.log_level)
    app = create_app(settings)
    logger.info("Server running on http://%s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
    return 0


if __name__ == "__main__":
    sys.exit(main())
