"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Everything the server needs to know, fixed at startup and read-only after.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   Priority (highest to lowest):                                     │
    │                                                                     │
    │   1. Command-line arguments                                         │
    │      └── python -m fileserver --port 3000                           │
    │                                                                     │
    │   2. Environment variables                                          │
    │      └── FILESERVER_PORT=3000 python -m fileserver                  │
    │                                                                     │
    │   3. Default values (in this dataclass)                             │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHY NOTHING CHANGES AT RUNTIME
=============================================================================

Every connection coroutine reads the same configuration. Because nothing
writes to it after ``validate()``, no request can observe another
request's state through it, and no locking is needed. The default header
set is exposed as an immutable ``Headers`` value for the same reason.

=============================================================================
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict

from .http.response import Headers


DEFAULT_HEADERS: Dict[str, str] = {
    "Accept-Ranges": "bytes",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, HEAD",
    "X-Content-Type-Options": "nosniff",
    "Vary": "Accept-Encoding",
}

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class ServerConfig:
    """
    Configuration for the file server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK         host, port, keep_alive, keep_alive_timeout, max_header_size
    FILES           root_dir, index_file, chunk_size
    RESPONSES       cache_max_age, compression_level, headers, server_name
    LOGGING         log_level

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"

    port: int = 8000
    """0 binds an ephemeral port (see ``FileServer.port``)."""

    keep_alive: bool = True

    keep_alive_timeout: float = 5.0
    """Seconds an idle persistent connection is kept open."""

    max_header_size: int = 16 * 1024
    """Largest accepted request head, in bytes. Larger heads get a 400."""

    # ─────────────────────────────────────────────────────────────────────
    # FILES
    # ─────────────────────────────────────────────────────────────────────

    root_dir: str = "public"

    index_file: str = "index.html"
    """Served for requests that resolve to a directory."""

    chunk_size: int = 64 * 1024
    """Size of each file read, in bytes."""

    # ─────────────────────────────────────────────────────────────────────
    # RESPONSES
    # ─────────────────────────────────────────────────────────────────────

    cache_max_age: int = 600
    """Seconds, for ``Cache-Control: public, max-age=N``."""

    compression_level: int = 6
    """zlib level for gzip responses: 1 fastest, 9 smallest."""

    headers: Dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HEADERS))
    """Sent on every response."""

    server_name: str = "fileserver/1.0"

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"

    @property
    def default_headers(self) -> Headers:
        return Headers(self.headers)

    def resolved_root(self) -> Path:
        """
        Canonical absolute root directory.

        Raises:
            FileNotFoundError: The root does not exist.
        """
        return Path(self.root_dir).resolve(strict=True)

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        FILESERVER_HOST       Bind address (default: 127.0.0.1)
        FILESERVER_PORT       Port (default: 8000)
        FILESERVER_ROOT       Directory to serve (default: public)
        FILESERVER_INDEX      Directory index file (default: index.html)
        FILESERVER_MAX_AGE    Cache-Control max-age (default: 600)
        FILESERVER_LOG_LEVEL  Logging level (default: INFO)

        =====================================================================
        """
        return cls(
            host=os.getenv("FILESERVER_HOST", "127.0.0.1"),
            port=int(os.getenv("FILESERVER_PORT", "8000")),
            root_dir=os.getenv("FILESERVER_ROOT", "public"),
            index_file=os.getenv("FILESERVER_INDEX", "index.html"),
            cache_max_age=int(os.getenv("FILESERVER_MAX_AGE", "600")),
            log_level=os.getenv("FILESERVER_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """Fail fast at startup on values the server cannot run with."""
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if not Path(self.root_dir).is_dir():
            raise ValueError(f"Root directory does not exist: {self.root_dir}")

        if not self.index_file or "/" in self.index_file:
            raise ValueError(f"Invalid index file name: {self.index_file!r}")

        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

        if self.cache_max_age < 0:
            raise ValueError("cache_max_age must be >= 0")

        if not 1 <= self.compression_level <= 9:
            raise ValueError(f"compression_level must be 1-9, got {self.compression_level}")

        if self.max_header_size < 1024:
            raise ValueError("max_header_size must be >= 1024")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"Unknown log level: {self.log_level}")


# =============================================================================
# MODULE SUMMARY
# =============================================================================
#
# 1. Typed configuration with a dataclass
# 2. Environment variable support via from_env()
# 3. Validation at startup (fail-fast)
# 4. Root canonicalized once, headers exposed as an immutable value
# =============================================================================
