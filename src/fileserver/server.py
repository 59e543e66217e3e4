"""
=============================================================================
FILE SERVER
=============================================================================

Ties the pieces together: an asyncio listening socket, one coroutine per
connection, and the StaticFileHandler pipeline for every request.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │                       ┌─────────────────┐                           │
    │                       │   FileServer    │                           │
    │                       └────────┬────────┘                           │
    │                                │ asyncio.start_server               │
    │                                ▼                                    │
    │                   one coroutine per connection                      │
    │                                │                                    │
    │           ┌────────────────────┼────────────────────┐               │
    │           ▼                    ▼                    ▼               │
    │    ┌──────────────┐    ┌──────────────┐    ┌───────────────────┐    │
    │    │  Connection  │    │RequestParser │    │ StaticFileHandler │    │
    │    │  (streams)   │    │   (bytes)    │    │    (pipeline)     │    │
    │    └──────────────┘    └──────────────┘    └───────────────────┘    │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHY ASYNCIO, NOT THREADS
=============================================================================

A file server spends nearly all its time waiting: for the client to send
a request, for the disk, for the client to accept more bytes. With one
event loop, every wait is a suspension point and thousands of idle
connections cost a few kilobytes each. File reads go to the default
thread executor (``asyncio.to_thread``) so a slow disk never stalls the
loop, and ``await drain()`` pauses a transfer while its client is slow.

=============================================================================
CONNECTION LOOP
=============================================================================

    1. read head          (None → client left, stop)
    2. parse              (broken → 400, close)
    3. discard any body
    4. handler.handle     (False → aborted, stop)
    5. keep-alive?        (yes → 1, no → close)

=============================================================================
"""

import asyncio
import logging
from typing import Dict, Optional, Set

from .config import ServerConfig
from .core.connection import Connection
from .errors import HTTPParseError
from .handlers.static import StaticFileHandler
from .http.request import RequestParser


logger = logging.getLogger(__name__)


class FileServer:
    """
    Asynchronous static file server.

    =========================================================================
    USAGE
    =========================================================================

        # Blocking, with Ctrl+C handling:
        FileServer(ServerConfig(root_dir="./public")).run()

        # Inside an existing event loop (tests):
        server = FileServer(ServerConfig(root_dir=tmp, port=0))
        await server.start()
        ... connect to server.port ...
        await server.stop()

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.config.validate()

        self.handler = StaticFileHandler.from_config(self.config)
        self.parser = RequestParser(max_head_size=self.config.max_header_size)

        self._server: Optional[asyncio.AbstractServer] = None
        self._connections: Set[asyncio.Task] = set()
        self.port: Optional[int] = None

    @property
    def is_running(self) -> bool:
        return self._server is not None and self._server.is_serving()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    async def start(self) -> None:
        """Bind and start accepting connections."""
        self._server = await asyncio.start_server(
            self._on_connection,
            self.config.host,
            self.config.port,
            limit=self.config.max_header_size,
        )
        sockname = self._server.sockets[0].getsockname()
        self.port = sockname[1]
        logger.info(
            f"Serving {self.handler.resolver.root_dir} on "
            f"http://{self.config.host}:{self.port}"
        )

    async def serve_forever(self) -> None:
        if self._server is None:
            await self.start()
        async with self._server:
            await self._server.serve_forever()

    async def stop(self) -> None:
        """
        Stop accepting, then cancel open connections.

        A transfer that is cut off here is aborted like any other
        interrupted transfer.
        """
        if self._server is None:
            return
        logger.info("Shutting down server...")
        self._server.close()

        for task in list(self._connections):
            task.cancel()
        if self._connections:
            await asyncio.gather(*self._connections, return_exceptions=True)

        await self._server.wait_closed()
        self._server = None
        logger.info("Server stopped")

    def run(self) -> None:
        """Start the server and block until Ctrl+C."""
        self._setup_logging()
        try:
            asyncio.run(self._run())
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")

    async def _run(self) -> None:
        await self.start()
        try:
            await self._server.serve_forever()
        finally:
            await self.stop()

    def _setup_logging(self) -> None:
        """Configure logging based on config."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("fileserver").setLevel(level)

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    async def _on_connection(self, reader: asyncio.StreamReader,
                             writer: asyncio.StreamWriter) -> None:
        task = asyncio.current_task()
        self._connections.add(task)
        try:
            connection = Connection(
                reader,
                writer,
                server_name=self.config.server_name,
                keep_alive_timeout=self.config.keep_alive_timeout,
            )
            async with connection:
                await self._process_connection(connection)
        except asyncio.CancelledError:
            writer.transport.abort()
            raise
        except Exception as e:
            logger.exception(f"Connection error: {e}")
            writer.transport.abort()
        finally:
            self._connections.discard(task)

    async def _process_connection(self, conn: Connection) -> None:
        """
        The keep-alive loop for one connection.

        Every exit path leaves through ``break``, and the caller's
        ``async with`` closes the connection.
        """
        while True:
            # ─────────────────────────────────────────────────────────────
            # READ REQUEST
            # ─────────────────────────────────────────────────────────────
            conn.begin_response()
            try:
                head = await conn.read_head()
            except HTTPParseError as e:
                await self.handler.report(
                    conn, e, self.handler.default_headers.with_header("Connection", "close")
                )
                break

            if head is None:
                break

            # ─────────────────────────────────────────────────────────────
            # PARSE REQUEST
            # ─────────────────────────────────────────────────────────────
            try:
                request = self.parser.parse(head, conn.address)
            except HTTPParseError as e:
                logger.debug(f"[{conn.id}] Unparseable request: {e.message}")
                await self.handler.report(
                    conn, e, self.handler.default_headers.with_header("Connection", "close")
                )
                break

            await conn.discard_body(request.content_length)

            # ─────────────────────────────────────────────────────────────
            # HANDLE
            # ─────────────────────────────────────────────────────────────
            keep_alive = self.config.keep_alive and request.is_keep_alive
            usable = await self.handler.handle(
                conn, request, self._connection_headers(keep_alive)
            )

            # ─────────────────────────────────────────────────────────────
            # KEEP-ALIVE OR CLOSE
            # ─────────────────────────────────────────────────────────────
            if not usable or not keep_alive:
                break
            conn.set_keep_alive()

    def _connection_headers(self, keep_alive: bool) -> Dict[str, str]:
        if not keep_alive:
            return {"Connection": "close"}
        return {
            "Connection": "keep-alive",
            "Keep-Alive": f"timeout={int(self.config.keep_alive_timeout)}",
        }
