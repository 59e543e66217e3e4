"""
=============================================================================
RESPONSE STREAMING
=============================================================================

Executes a ResponseIntent: writes the head, then produces the body with
the strategy negotiation picked.

=============================================================================
STRATEGIES
=============================================================================

    ┌──────────────┬──────────────────────────────────────────────────────┐
    │ NONE         │ head only (304)                                      │
    │ ERROR_JSON   │ head + literal JSON body                             │
    │ FULL         │ file ──► [gzip] ──► socket                           │
    │ SINGLE_RANGE │ file[start..end] ──► socket                          │
    │ MULTIPART    │ for each range: preamble, file[start..end]; closer   │
    └──────────────┴──────────────────────────────────────────────────────┘

=============================================================================
MULTIPART/BYTERANGES FRAMING (RFC 7233 appendix A)
=============================================================================

    --3f2a...\r\n
    Content-Type: text/plain; charset=utf-8\r\n
    Content-Range: bytes 0-4/100\r\n
    \r\n
    <5 bytes>\r\n
    --3f2a...\r\n
    Content-Type: text/plain; charset=utf-8\r\n
    Content-Range: bytes 90-99/100\r\n
    \r\n
    <10 bytes>\r\n
    --3f2a...--\r\n

Parts are strictly sequential: a part's preamble is written only after
the previous part's bytes were accepted by the socket.

=============================================================================
FAILURE HANDLING
=============================================================================

``stream()`` never raises for I/O problems. It returns a StreamOutcome
and the caller looks at ``connection.headers_sent`` to decide:

    failed, headers not sent  → report a 500 through ErrorReporter
    failed, headers sent      → connection.abort()

The first file window is opened BEFORE the head is written, so the most
common failure (file vanished or unreadable since stat) is still
reportable.

=============================================================================
"""

import logging
import zlib
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

from .connection import Connection
from .filesystem import FileSystem, FileWindowReader
from ..http.response import BodyStrategy, ResponseIntent


logger = logging.getLogger(__name__)

CRLF = "\r\n"

# Produces a fresh compressor object (``compress`` / ``flush``) per response
CompressorFactory = Callable[[], "zlib._Compress"]

# Exceptions that mean "this transfer failed", as opposed to a bug
STREAM_ERRORS = (OSError, EOFError, zlib.error)


@dataclass(frozen=True)
class StreamOutcome:
    """Result of streaming one response."""

    completed: bool
    error: Optional[BaseException] = None

    @classmethod
    def done(cls) -> "StreamOutcome":
        return cls(completed=True)

    @classmethod
    def failed(cls, error: BaseException) -> "StreamOutcome":
        return cls(completed=False, error=error)


class BodySink:
    """
    Destination for body bytes: optional compressor, optional chunked
    framing, then the connection.
    """

    def __init__(self, connection: Connection, chunked: bool = False,
                 compressor: Optional["zlib._Compress"] = None):
        self.connection = connection
        self.chunked = chunked
        self.compressor = compressor

    async def send(self, data: bytes) -> None:
        if self.compressor is not None:
            data = self.compressor.compress(data)
        await self._emit(data)

    async def finish(self) -> None:
        if self.compressor is not None:
            await self._emit(self.compressor.flush())
        if self.chunked:
            await self.connection.end_chunks()

    async def _emit(self, data: bytes) -> None:
        if self.chunked:
            await self.connection.write_chunk(data)
        else:
            await self.connection.write(data)


class ResponseStreamer:
    """
    Writes responses described by a ResponseIntent.

    Args:
        filesystem: Source of file windows.
        compressors: Content-coding name → compressor factory.
    """

    def __init__(self, filesystem: FileSystem,
                 compressors: Optional[Dict[str, CompressorFactory]] = None):
        self.filesystem = filesystem
        self.compressors = dict(compressors or {})

    async def stream(
        self,
        connection: Connection,
        intent: ResponseIntent,
        path: Optional[Path] = None,
        send_body: bool = True,
    ) -> StreamOutcome:
        """
        Send ``intent`` on ``connection``.

        Args:
            connection: Target connection; its ``headers_sent`` flag tells
                        the caller whether a failure is still reportable.
            intent: Negotiated status, headers and body strategy.
            path: File to read for FULL / SINGLE_RANGE / MULTIPART.
            send_body: False for HEAD: identical head, no body.
        """
        try:
            head_only = not send_body or not intent.status.allows_body
            if head_only or intent.strategy in (BodyStrategy.NONE, BodyStrategy.ERROR_JSON):
                await connection.send_head(intent.status, intent.headers)
                if not head_only and intent.body:
                    await connection.write(intent.body)
                return StreamOutcome.done()

            if path is None:
                raise ValueError(f"{intent.strategy.value} response needs a file path")

            windows = self._windows(intent)
            first = self.filesystem.open_window(path, *windows[0])
            await first.open()
            try:
                await connection.send_head(intent.status, intent.headers)
                sink = BodySink(connection, chunked=intent.is_chunked,
                                compressor=self._compressor(intent))
                if intent.strategy is BodyStrategy.MULTIPART:
                    await self._stream_multipart(sink, intent, path, first)
                else:
                    await self._pump(first, sink)
                await sink.finish()
            finally:
                await first.close()

        except STREAM_ERRORS as e:
            logger.warning(
                f"[{connection.id}] Streaming {intent.strategy.value} response failed "
                f"(headers_sent={connection.headers_sent}): {e!r}"
            )
            return StreamOutcome.failed(e)

        return StreamOutcome.done()

    def _windows(self, intent: ResponseIntent) -> List[Tuple[int, Optional[int]]]:
        if intent.strategy is BodyStrategy.FULL:
            # Exactly the stat'd length, even if the file changed since
            return [(0, intent.size - 1)]
        return [(r.start, r.end) for r in intent.ranges]

    def _compressor(self, intent: ResponseIntent) -> Optional["zlib._Compress"]:
        if intent.encoding is None:
            return None
        try:
            factory = self.compressors[intent.encoding]
        except KeyError:
            raise ValueError(f"No compressor registered for {intent.encoding!r}") from None
        return factory()

    async def _pump(self, reader: FileWindowReader, sink: BodySink) -> None:
        async for chunk in reader:
            await sink.send(chunk)

    async def _stream_multipart(self, sink: BodySink, intent: ResponseIntent,
                                path: Path, first: FileWindowReader) -> None:
        """
        Write every part in order, then the closing delimiter.

        ``first`` is the already-open reader for ``intent.ranges[0]``.
        """
        boundary = intent.boundary

        for index, byte_range in enumerate(intent.ranges):
            preamble = (
                f"{CRLF if index else ''}--{boundary}{CRLF}"
                f"Content-Type: {intent.part_type}{CRLF}"
                f"Content-Range: {byte_range.content_range(intent.size)}{CRLF}"
                f"{CRLF}"
            )
            await sink.send(preamble.encode("latin-1"))

            if index == 0:
                await self._pump(first, sink)
                continue

            reader = self.filesystem.open_window(path, byte_range.start, byte_range.end)
            async with reader:
                await self._pump(reader, sink)

        await sink.send(f"{CRLF}--{boundary}--{CRLF}".encode("latin-1"))
