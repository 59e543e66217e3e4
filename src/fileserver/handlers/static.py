"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Runs the response-decision pipeline for one request and streams the
result.

=============================================================================
THE PIPELINE
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │   RequestValidator     version / method / path grammar     400 405  │
    │          │                                                 505      │
    │          ▼                                                          │
    │   ResourceResolver     path → Resource (stat, index)       403 404  │
    │          │                                                          │
    │          ▼                                                          │
    │   CacheNegotiator      ETag, Last-Modified, Cache-Control  ──► 304  │
    │          │                                                          │
    │          ├─── Range header? ──► RangeNegotiator            206 416  │
    │          │                            │ (If-Range stale)            │
    │          ▼                            ▼                             │
    │   ContentEncoder       identity or gzip                    200      │
    │          │                                                          │
    │          ▼                                                          │
    │   ResponseStreamer     head + body                                  │
    │                                                                     │
    │   ErrorReporter        any ServerError above, caught once here      │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

Each stage takes the headers so far and returns new ones (or an intent).
Nothing writes to the socket until the streamer runs.

=============================================================================
WHEN STREAMING FAILS
=============================================================================

    outcome.completed                       → keep the connection
    failed, connection.headers_sent False   → 500 JSON via ErrorReporter
    failed, connection.headers_sent True    → connection.abort()

=============================================================================
"""

import logging
from pathlib import Path
from typing import Mapping, Optional

from .cache import CacheNegotiator
from .compression import ContentEncoder
from .errors import ErrorReporter
from .ranges import RangeNegotiator
from .resolver import ResourceResolver
from .validation import RequestValidator
from ..core.connection import Connection
from ..core.filesystem import DEFAULT_CHUNK_SIZE, FileSystem
from ..core.streamer import ResponseStreamer, StreamOutcome
from ..errors import InternalError, ServerError
from ..http.request import HTTPRequest
from ..http.response import Headers, ResponseIntent


logger = logging.getLogger(__name__)


class StaticFileHandler:
    """
    Serves files from ``root_dir`` through the negotiation pipeline.

    =========================================================================
    USAGE
    =========================================================================

        handler = StaticFileHandler(Path("public").resolve())
        keep = await handler.handle(connection, request)

    ``handle`` never raises for request-level problems. Its return value
    says whether the connection is still in a usable state.

    =========================================================================
    """

    def __init__(
        self,
        root_dir: Path,
        index_file: str = "index.html",
        cache_max_age: int = 600,
        default_headers: Optional[Headers] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        compression_level: int = 6,
    ):
        """
        Args:
            root_dir: Canonical root directory. Every served file is inside it.
            index_file: Served for directory requests.
            cache_max_age: Cache-Control max-age in seconds.
            default_headers: Headers present on every response.
            chunk_size: File read size in bytes.
            compression_level: zlib level for gzip responses.
        """
        self.default_headers = default_headers if default_headers is not None else Headers()

        self.filesystem = FileSystem(chunk_size=chunk_size)
        self.validator = RequestValidator()
        self.resolver = ResourceResolver(root_dir, self.filesystem, index_file)
        self.cache = CacheNegotiator(max_age=cache_max_age)
        self.ranges = RangeNegotiator()
        self.encoder = ContentEncoder(level=compression_level)
        self.streamer = ResponseStreamer(self.filesystem, self.encoder.compressors())
        self.reporter = ErrorReporter(self.streamer)

    @classmethod
    def from_config(cls, config) -> "StaticFileHandler":
        """Build a handler from a validated ``ServerConfig``."""
        return cls(
            root_dir=config.resolved_root(),
            index_file=config.index_file,
            cache_max_age=config.cache_max_age,
            default_headers=config.default_headers,
            chunk_size=config.chunk_size,
            compression_level=config.compression_level,
        )

    async def handle(self, connection: Connection, request: HTTPRequest,
                     connection_headers: Optional[Mapping[str, str]] = None) -> bool:
        """
        Answer one request on ``connection``.

        Args:
            connection_headers: Per-connection headers (``Connection``,
                                ``Keep-Alive``) added to every response.

        Returns:
            False when the connection was aborted and must not be reused.
        """
        send_body = not request.is_head
        headers = self.default_headers.with_headers(connection_headers or {})

        # ─────────────────────────────────────────────────────────────────
        # NEGOTIATE
        # ─────────────────────────────────────────────────────────────────
        try:
            intent, path = await self._negotiate(request, headers)
        except ServerError as e:
            logger.debug(f"{request.method} {request.path} -> {int(e.status)}: {e.message}")
            return await self.report(connection, e, headers, send_body)
        except Exception:
            logger.exception(f"Unexpected error handling {request.method} {request.path}")
            return await self.report(
                connection, InternalError("Internal server error"), headers, send_body
            )

        # ─────────────────────────────────────────────────────────────────
        # STREAM
        # ─────────────────────────────────────────────────────────────────
        try:
            outcome = await self.streamer.stream(connection, intent, path, send_body)
        except Exception as e:
            logger.exception(f"Unexpected error streaming {request.path}")
            outcome = StreamOutcome.failed(e)

        return await self._settle(connection, outcome, headers, send_body)

    async def report(self, connection: Connection, error: ServerError,
                     headers: Optional[Headers] = None, send_body: bool = True) -> bool:
        """Send ``error`` as a JSON response. Returns False if that failed."""
        if headers is None:
            headers = self.default_headers
        outcome = await self.reporter.report(connection, error, headers, send_body)
        if outcome.completed:
            return True
        connection.abort()
        return False

    async def _negotiate(self, request: HTTPRequest,
                         headers: Headers) -> tuple[ResponseIntent, Optional[Path]]:
        self.validator.validate(request)
        resource = await self.resolver.resolve(request.path)

        headers, intent = self.cache.negotiate(request, resource, headers)
        if intent is not None:
            return intent, None

        intent = self.ranges.negotiate(request, resource, headers)
        if intent is None:
            intent = self.encoder.negotiate(
                request, resource.content_type, resource.size, headers
            )
        return intent, resource.path

    async def _settle(self, connection: Connection, outcome: StreamOutcome,
                      headers: Headers, send_body: bool) -> bool:
        if outcome.completed:
            return True

        if not connection.headers_sent:
            return await self.report(
                connection, InternalError("Error reading file"), headers, send_body
            )

        connection.abort()
        return False
