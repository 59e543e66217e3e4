"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps an asyncio ``StreamReader`` / ``StreamWriter`` pair with the
operations the server needs for one HTTP/1.1 connection.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

TCP delivers bytes in order, but not in the chunks they were sent in.
A request head may arrive in several pieces, so we buffer until the
``\\r\\n\\r\\n`` terminator shows up. ``StreamReader.readuntil`` does exactly
that, and its ``limit`` caps how much we are willing to buffer.

=============================================================================
HEADERS SENT = RESPONSE COMMITTED
=============================================================================

Once the status line and headers are on the wire the response is
committed. If the body then fails halfway (disk error, file truncated),
there is no way to turn it into an error response: the client already
got "200 OK" and a length. The only honest signal left is to reset the
connection so the client sees a truncated transfer:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  headers_sent == False   → error can still be reported (JSON body)  │
    │  headers_sent == True    → abort(): RST, no more bytes              │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
BACKPRESSURE
=============================================================================

``StreamWriter.write`` never blocks; it appends to the transport buffer.
``await drain()`` suspends while that buffer is above the high-water
mark. ``write()`` below always drains, so a producer that awaits it can
never run ahead of a slow client.

=============================================================================
CONNECTION STATES
=============================================================================

    NEW ──► READING ──► PROCESSING ──► WRITING ──► KEEP_ALIVE ─┐
               ▲                                               │
               └───────────────────────────────────────────────┘
                                   │
                                   ▼
                         CLOSING ──► CLOSED

=============================================================================
"""

import asyncio
import logging
import time
import uuid
from enum import Enum
from typing import Optional

from ..errors import HTTPParseError
from ..http.response import Headers, serialize_head
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


class Connection:
    """
    One client connection.

    Attributes:
        id: Short identifier for log lines.
        address: Peer (ip, port).
        state: Current ConnectionState.
        requests_handled: Completed requests on this connection.
        headers_sent: Whether the current response's head was written.
        bytes_sent: Body bytes written for the current response.
    """

    def __init__(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        server_name: str = "fileserver/1.0",
        keep_alive_timeout: Optional[float] = 5.0,
    ):
        self.reader = reader
        self.writer = writer
        self.server_name = server_name
        self.keep_alive_timeout = keep_alive_timeout

        peer = writer.get_extra_info("peername")
        self.address: tuple[str, int] = tuple(peer[:2]) if peer else ("", 0)
        self.id = str(uuid.uuid4())[:8]
        self.state = ConnectionState.NEW
        self.created_at = time.time()
        self.requests_handled = 0

        self.headers_sent = False
        self.bytes_sent = 0

    @property
    def is_closed(self) -> bool:
        return self.state in (ConnectionState.CLOSING, ConnectionState.CLOSED)

    # =========================================================================
    # READING
    # =========================================================================

    async def read_head(self) -> Optional[bytes]:
        """
        Read one request head, terminator included.

        Returns:
            The head bytes, or None when the client closed the connection
            (or stayed idle past the keep-alive timeout) between requests.

        Raises:
            HTTPParseError: Head exceeded the reader limit, or the client
                            hung up in the middle of it.
        """
        self.state = ConnectionState.READING
        timeout = self.keep_alive_timeout if self.requests_handled else None

        try:
            return await asyncio.wait_for(self.reader.readuntil(b"\r\n\r\n"), timeout)
        except asyncio.TimeoutError:
            logger.debug(f"[{self.id}] Idle timeout after {self.requests_handled} requests")
            return None
        except asyncio.IncompleteReadError as e:
            if not e.partial.strip():
                return None
            raise HTTPParseError("Connection closed mid-request") from e
        except asyncio.LimitOverrunError as e:
            raise HTTPParseError("Request head too large") from e
        except ConnectionError:
            return None

    async def discard_body(self, length: int) -> None:
        """Consume and drop a request body so the next head starts cleanly."""
        while length > 0:
            chunk = await self.reader.read(min(length, 64 * 1024))
            if not chunk:
                break
            length -= len(chunk)

    # =========================================================================
    # WRITING
    # =========================================================================

    def begin_response(self) -> None:
        """Reset per-response bookkeeping before handling a new request."""
        self.state = ConnectionState.PROCESSING
        self.headers_sent = False
        self.bytes_sent = 0

    async def send_head(self, status: HTTPStatus, headers: Headers) -> None:
        """Write status line and headers. Commits the response."""
        if self.headers_sent:
            raise RuntimeError("response headers already sent")
        self.state = ConnectionState.WRITING
        self.writer.write(serialize_head(status, headers, self.server_name))
        self.headers_sent = True
        await self.writer.drain()

    async def write(self, data: bytes) -> None:
        """Write body bytes and wait until the transport accepts more."""
        if not data:
            return
        self.writer.write(data)
        self.bytes_sent += len(data)
        await self.writer.drain()

    async def write_chunk(self, data: bytes) -> None:
        """Write one ``Transfer-Encoding: chunked`` frame."""
        if not data:
            return
        self.writer.write(f"{len(data):X}\r\n".encode("ascii"))
        self.writer.write(data)
        self.writer.write(b"\r\n")
        self.bytes_sent += len(data)
        await self.writer.drain()

    async def end_chunks(self) -> None:
        """Write the zero-length last chunk."""
        self.writer.write(b"0\r\n\r\n")
        await self.writer.drain()

    # =========================================================================
    # CLOSING
    # =========================================================================

    def set_keep_alive(self) -> None:
        self.requests_handled += 1
        self.state = ConnectionState.KEEP_ALIVE

    def abort(self) -> None:
        """
        Drop the connection immediately (TCP RST), discarding buffered output.

        Used when a committed response cannot be completed.
        """
        if self.state == ConnectionState.CLOSED:
            return
        logger.warning(
            f"[{self.id}] Aborting connection after {self.bytes_sent} body bytes"
        )
        self.state = ConnectionState.CLOSED
        self.writer.transport.abort()

    async def close(self) -> None:
        """Flush and close gracefully."""
        if self.state == ConnectionState.CLOSED:
            return
        self.state = ConnectionState.CLOSING
        try:
            self.writer.close()
            await self.writer.wait_closed()
        except ConnectionError:
            pass  # Peer already gone
        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    async def __aenter__(self) -> "Connection":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> bool:
        await self.close()
        return False
