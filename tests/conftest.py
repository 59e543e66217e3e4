"""
pytest configuration and fixtures.
"""

import asyncio
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import pytest
import pytest_asyncio

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from fileserver import FileServer, ServerConfig
from fileserver.handlers.resolver import Resource
from fileserver.http.request import HTTPRequest


# Fixed modification time: 2023-11-14 22:13:20.500 UTC
MTIME_NS = 1_700_000_000_500_000_000
MTIME_SECONDS = 1_700_000_000

INDEX_HTML = b"<!doctype html>\n<title>home</title>\n<h1>Hello from the index</h1>\n"
DOCS_INDEX_HTML = b"<!doctype html>\n<title>docs</title>\n<h1>Documentation</h1>\n"
GUIDE_HTML = b"<!doctype html>\n<p>" + b"guide " * 200 + b"</p>\n"
HELLO_TEXT = b"Hello, world!\n" * 20
BINARY_DATA = bytes(range(256)) * 4
PNG_DATA = b"\x89PNG\r\n\x1a\n" + bytes(range(200))

TIMEOUT = 5.0


@pytest.fixture
def public_root(tmp_path: Path) -> Path:
    """
    A served directory:

        public/
        ├── index.html
        ├── hello.txt       (280 bytes, fixed mtime)
        ├── data.bin        (1024 bytes)
        ├── image.png
        ├── docs/
        │   ├── index.html
        │   └── guide.v2.html
        └── empty/          (no index file)
    """
    root = tmp_path / "public"
    root.mkdir()
    (root / "index.html").write_bytes(INDEX_HTML)
    (root / "hello.txt").write_bytes(HELLO_TEXT)
    (root / "data.bin").write_bytes(BINARY_DATA)
    (root / "image.png").write_bytes(PNG_DATA)

    docs = root / "docs"
    docs.mkdir()
    (docs / "index.html").write_bytes(DOCS_INDEX_HTML)
    (docs / "guide.v2.html").write_bytes(GUIDE_HTML)

    (root / "empty").mkdir()

    for name in ("hello.txt", "data.bin", "image.png", "index.html"):
        os.utime(root / name, ns=(MTIME_NS, MTIME_NS))

    return root.resolve()


@pytest.fixture
def config(public_root: Path) -> ServerConfig:
    """Test server configuration on an ephemeral port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        root_dir=str(public_root),
        keep_alive_timeout=2.0,
        log_level="WARNING",
    )


@pytest_asyncio.fixture
async def server(config: ServerConfig):
    """A running FileServer."""
    srv = FileServer(config)
    await srv.start()
    yield srv
    await srv.stop()


@pytest_asyncio.fixture
async def client(server: FileServer):
    """A connected HTTPClient."""
    c = await HTTPClient.connect(server.port)
    yield c
    await c.close()


@pytest.fixture
def text_resource(public_root: Path) -> Resource:
    """The hello.txt Resource as the resolver would produce it."""
    return Resource(
        path=public_root / "hello.txt",
        size=len(HELLO_TEXT),
        mtime_ns=MTIME_NS,
        content_type="text/plain; charset=utf-8",
    )


def make_request(method: str = "GET", target: str = "/hello.txt",
                 version: str = "HTTP/1.1", **headers: str) -> HTTPRequest:
    """
    Build an HTTPRequest; keyword headers use underscores for dashes:

        make_request(if_none_match='"a-b"')
    """
    return HTTPRequest(
        method=method,
        target=target,
        version=version,
        headers={name.replace("_", "-").lower(): value for name, value in headers.items()},
    )


# =============================================================================
# RAW HTTP CLIENT
# =============================================================================

@dataclass
class Response:
    """A response as read off the wire."""

    status: int
    reason: str
    headers: Dict[str, str]
    body: bytes = b""
    raw_head: bytes = b""

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())

    def json(self):
        import json
        return json.loads(self.body)


class HTTPClient:
    """Minimal HTTP/1.1 client over asyncio streams, for end-to-end tests."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        self.reader = reader
        self.writer = writer

    @classmethod
    async def connect(cls, port: int, host: str = "127.0.0.1") -> "HTTPClient":
        reader, writer = await asyncio.open_connection(host, port)
        return cls(reader, writer)

    async def send_raw(self, data: bytes) -> None:
        self.writer.write(data)
        await self.writer.drain()

    async def request(self, method: str = "GET", path: str = "/",
                      headers: Optional[Dict[str, str]] = None,
                      version: str = "HTTP/1.1") -> Response:
        lines = [f"{method} {path} {version}", "Host: localhost"]
        lines.extend(f"{name}: {value}" for name, value in (headers or {}).items())
        await self.send_raw(("\r\n".join(lines) + "\r\n\r\n").encode("latin-1"))
        return await self.read_response(head_only=(method == "HEAD"))

    async def read_response(self, head_only: bool = False) -> Response:
        head = await asyncio.wait_for(self.reader.readuntil(b"\r\n\r\n"), TIMEOUT)
        lines = head.decode("latin-1").split("\r\n")
        _, status, reason = lines[0].split(" ", 2)

        headers: Dict[str, str] = {}
        for line in lines[1:]:
            if line:
                name, value = line.split(":", 1)
                headers[name.strip().lower()] = value.strip()

        response = Response(int(status), reason, headers, raw_head=head)
        if head_only or response.status == 304:
            return response

        if headers.get("transfer-encoding", "").lower() == "chunked":
            response.body = await asyncio.wait_for(self._read_chunked(), TIMEOUT)
        elif "content-length" in headers:
            response.body = await asyncio.wait_for(
                self.reader.readexactly(int(headers["content-length"])), TIMEOUT
            )
        else:
            response.body = await asyncio.wait_for(self.reader.read(), TIMEOUT)
        return response

    async def _read_chunked(self) -> bytes:
        body = bytearray()
        while True:
            size_line = await self.reader.readuntil(b"\r\n")
            size = int(size_line.strip(), 16)
            if size == 0:
                await self.reader.readuntil(b"\r\n")
                return bytes(body)
            body += await self.reader.readexactly(size)
            await self.reader.readexactly(2)

    async def is_closed_by_peer(self) -> bool:
        """True when the server closed the connection (EOF)."""
        try:
            data = await asyncio.wait_for(self.reader.read(1), TIMEOUT)
        except ConnectionError:
            return True
        return data == b""

    async def close(self) -> None:
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except ConnectionError:
            pass


def parse_multipart(body: bytes, boundary: str) -> List[Tuple[Dict[str, str], bytes]]:
    """Split a multipart/byteranges body into (part headers, part bytes)."""
    delimiter = b"--" + boundary.encode("ascii")
    sections = body.split(delimiter)
    assert sections[0] == b"", "body must start with the boundary"
    assert sections[-1] == b"--\r\n", "body must end with the closing boundary"

    parts = []
    for section in sections[1:-1]:
        head, _, data = section.partition(b"\r\n\r\n")
        assert data.endswith(b"\r\n")
        part_headers = {}
        for line in head.decode("latin-1").strip().split("\r\n"):
            name, value = line.split(":", 1)
            part_headers[name.strip().lower()] = value.strip()
        parts.append((part_headers, data[:-2]))
    return parts


# =============================================================================
# IN-MEMORY CONNECTION
# =============================================================================

@dataclass
class RecordingConnection:
    """
    Stands in for core.connection.Connection in unit tests.

    ``fail_after_writes`` makes the Nth body write raise ConnectionResetError,
    like a client that went away mid-transfer.
    """

    fail_after_writes: Optional[int] = None
    id: str = "test"
    headers_sent: bool = False
    status: Optional[int] = None
    headers: Optional[object] = None
    body: bytearray = field(default_factory=bytearray)
    chunks: List[bytes] = field(default_factory=list)
    chunks_ended: bool = False
    aborted: bool = False
    writes: int = 0

    async def send_head(self, status, headers) -> None:
        if self.headers_sent:
            raise RuntimeError("response headers already sent")
        self.status = status
        self.headers = headers
        self.headers_sent = True

    async def write(self, data: bytes) -> None:
        if not data:
            return
        self._count_write()
        self.body += data

    async def write_chunk(self, data: bytes) -> None:
        if not data:
            return
        self._count_write()
        self.chunks.append(data)
        self.body += data

    async def end_chunks(self) -> None:
        self.chunks_ended = True

    def abort(self) -> None:
        self.aborted = True

    def _count_write(self) -> None:
        self.writes += 1
        if self.fail_after_writes is not None and self.writes > self.fail_after_writes:
            raise ConnectionResetError("peer went away")


@pytest.fixture
def recording_connection() -> RecordingConnection:
    return RecordingConnection()
