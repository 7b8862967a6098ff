"""
Command line entry point

Usage:
    gemini-openai-proxy --port 8080 --api-key $GEMINI_API_KEY
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Optional, Sequence

import uvicorn

from gemini_proxy.config import Settings, get_settings

logger = logging.getLogger(__name__)


def _build_parser(settings: Settings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gemini-openai-proxy",
        description="Serve an OpenAI-compatible API backed by Google Gemini.",
    )
    parser.add_argument("--host", default=settings.HOST, help="Interface to bind (default: %(default)s)")
    parser.add_argument("--port", type=int, default=settings.PORT, help="Port to listen on (default: %(default)s)")
    parser.add_argument(
        "--api-key",
        default=None,
        help="Gemini API key (default: $GEMINI_API_KEY)",
    )
    return parser


def resolve_settings(argv: Optional[Sequence[str]] = None) -> Settings:
    """
    Merge command line flags over environment settings

    Raises:
        SystemExit: argparse errors, or no API key from either source
    """
    settings = get_settings()
    parser = _build_parser(settings)
    args = parser.parse_args(list(argv) if argv is not None else None)

    api_key = args.api_key or settings.GEMINI_API_KEY
    if not api_key:
        parser.error("an API key is required (--api-key or GEMINI_API_KEY)")

    return settings.model_copy(
        update={"HOST": args.host, "PORT": args.port, "GEMINI_API_KEY": api_key}
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry function; returns the process exit code."""
    settings = resolve_settings(argv)

    from gemini_proxy.main import create_app

    app = create_app(settings)
    logger.info("Listening on %s:%d", settings.HOST, settings.PORT)
    uvicorn.run(app, host=settings.HOST, port=settings.PORT, log_config=None)
    return 0


if __name__ == "__main__":
    sys.exit(main())
