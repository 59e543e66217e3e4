"""
=============================================================================
FILESERVER CLI ENTRY POINT
=============================================================================

    # Serve ./public on localhost:8000
    python -m fileserver

    # Another directory, another port
    python -m fileserver --root ./site --port 3000

    # Listen on all interfaces (for containers)
    python -m fileserver --host 0.0.0.0

Environment variables (FILESERVER_*, see config.py) supply the defaults;
command-line arguments override them.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import LOG_LEVELS, ServerConfig
from .server import FileServer


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="fileserver",
        description="Static file server for HTTP/1.1",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m fileserver                      # Serve ./public on :8000
  python -m fileserver --port 3000          # Custom port
  python -m fileserver --root ./site        # Another directory
  python -m fileserver --max-age 3600       # Cache for an hour
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})",
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})",
    )

    parser.add_argument(
        "--no-keep-alive",
        action="store_true",
        help="Close the connection after every response",
    )

    # ─────────────────────────────────────────────────────────────────────
    # FILE ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--root", "-r",
        default=defaults.root_dir,
        help=f"Directory to serve (default: {defaults.root_dir})",
    )

    parser.add_argument(
        "--index",
        default=defaults.index_file,
        help=f"File served for directory requests (default: {defaults.index_file})",
    )

    parser.add_argument(
        "--max-age",
        type=int,
        default=defaults.cache_max_age,
        help=f"Cache-Control max-age in seconds (default: {defaults.cache_max_age})",
    )

    # ─────────────────────────────────────────────────────────────────────
    # META ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--log-level", "-l",
        type=str.upper,
        choices=LOG_LEVELS,
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level})",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"fileserver {__version__}",
    )

    return parser


def parse_config(argv: Optional[List[str]] = None) -> ServerConfig:
    """Environment defaults, overridden by ``argv``."""
    defaults = ServerConfig.from_env()
    args = build_parser(defaults).parse_args(argv)

    return ServerConfig(
        host=args.host,
        port=args.port,
        root_dir=args.root,
        index_file=args.index,
        cache_max_age=args.max_age,
        keep_alive=not args.no_keep_alive,
        log_level=args.log_level,
    )


def main(argv: Optional[List[str]] = None) -> int:
    config = parse_config(argv)

    try:
        server = FileServer(config)
    except ValueError as e:
        print(f"fileserver: {e}", file=sys.stderr)
        return 2

    server.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
