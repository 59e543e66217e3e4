"""
=============================================================================
FILESERVER - Static File Server for HTTP/1.1
=============================================================================

Serves a directory over HTTP/1.1 with conditional requests, byte ranges
(single and multipart), and on-the-fly gzip.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    fileserver/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m fileserver)
    ├── server.py            # FileServer: asyncio accept + keep-alive loop
    ├── config.py            # ServerConfig dataclass
    ├── errors.py            # ServerError hierarchy (one per status)
    ├── core/                # I/O
    │   ├── connection.py    # StreamReader/StreamWriter wrapper
    │   ├── filesystem.py    # stat and windowed file reads
    │   └── streamer.py      # ResponseStreamer (full / range / multipart)
    ├── http/                # Protocol building blocks
    │   ├── request.py       # Request-head parsing
    │   ├── response.py      # Headers, ResponseIntent, HTTP dates
    │   ├── range_parser.py  # Range header parsing
    │   ├── status_codes.py  # HTTP status enum
    │   └── mime_types.py    # MIME type detection
    └── handlers/            # The response-decision pipeline
        ├── validation.py    # RequestValidator
        ├── resolver.py      # ResourceResolver
        ├── cache.py         # CacheNegotiator
        ├── ranges.py        # RangeNegotiator
        ├── compression.py   # ContentEncoder
        ├── errors.py        # ErrorReporter
        └── static.py        # StaticFileHandler (runs the pipeline)

=============================================================================
QUICK START
=============================================================================

    from fileserver import FileServer, ServerConfig

    FileServer(ServerConfig(root_dir="./public", port=8000)).run()

Or from the shell:

    python -m fileserver --root ./public --port 8000

=============================================================================
"""

# http must be imported before errors (errors depends on http.status_codes)
from . import http
from .config import ServerConfig
from .errors import ServerError
from .server import FileServer

__version__ = "1.0.0"

__all__ = [
    "FileServer",
    "ServerConfig",
    "ServerError",
    "__version__",
]
