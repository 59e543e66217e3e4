"""
=============================================================================
RESPONSE HEADERS AND RESPONSE INTENT
=============================================================================

A file response is decided before a single body byte is read. This module
holds the two values that carry that decision through the pipeline:

    Headers          an immutable, case-insensitive header map
    ResponseIntent   status + headers + "how to produce the body"

=============================================================================
HEADERS ARE VALUES, NOT A SHARED OBJECT
=============================================================================

Every pipeline stage receives a Headers value and returns a new one:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                     │
    │   base = config.default_headers          (read-only, shared)        │
    │      │                                                              │
    │      ▼  CacheNegotiator                                             │
    │   base.with_headers({"ETag": ..., "Last-Modified": ...})            │
    │      │                                                              │
    │      ▼  RangeNegotiator / ContentEncoder                            │
    │   ....with_header("Content-Range", ...).without("Content-Length")   │
    │      │                                                              │
    │      ▼  ResponseStreamer                                            │
    │   serialize_head(status, headers)  ───►  socket                     │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

No stage can leak a header into another request, and nothing can change
the headers of a response after they were written.

=============================================================================
BODY STRATEGIES
=============================================================================

    NONE          304 Not Modified (headers only)
    FULL          whole file, identity or gzip
    SINGLE_RANGE  one byte window, 206
    MULTIPART     several windows framed as multipart/byteranges, 206
    ERROR_JSON    {"status", "statusMessage", "message"} body

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import formatdate, parsedate_to_datetime
from enum import Enum
from typing import Dict, Iterable, Iterator, Mapping, Optional, Tuple

from .range_parser import ByteRange
from .status_codes import HTTPStatus


class Headers(Mapping[str, str]):
    """
    Immutable, case-insensitive, insertion-ordered header map.

    Lookups ignore case; the spelling of the first insertion is what goes
    on the wire.

        >>> h = Headers({"Content-Type": "text/html"})
        >>> h["content-type"]
        'text/html'
        >>> h.with_header("ETag", '"a-b"').without("content-type")
        Headers({'ETag': '"a-b"'})
    """

    __slots__ = ("_items",)

    def __init__(self, items: Optional[Mapping[str, str] | Iterable[Tuple[str, str]]] = None):
        self._items: Dict[str, Tuple[str, str]] = {}
        if items is None:
            return
        pairs = items.items() if isinstance(items, Mapping) else items
        for name, value in pairs:
            self._items[name.lower()] = (name, str(value))

    def __getitem__(self, name: str) -> str:
        return self._items[name.lower()][1]

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and name.lower() in self._items

    def __iter__(self) -> Iterator[str]:
        return (original for original, _ in self._items.values())

    def __len__(self) -> int:
        return len(self._items)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Headers):
            return {k: v for k, (_, v) in self._items.items()} == \
                   {k: v for k, (_, v) in other._items.items()}
        return NotImplemented

    def __hash__(self) -> int:
        return hash(tuple(sorted((k, v) for k, (_, v) in self._items.items())))

    def __repr__(self) -> str:
        return f"Headers({dict(self.items())!r})"

    def with_header(self, name: str, value: object) -> "Headers":
        """Return a copy with ``name`` set (replacing any existing value)."""
        copy = Headers()
        copy._items = dict(self._items)
        key = name.lower()
        original = copy._items[key][0] if key in copy._items else name
        copy._items[key] = (original, str(value))
        return copy

    def with_headers(self, values: Mapping[str, object]) -> "Headers":
        result = self
        for name, value in values.items():
            result = result.with_header(name, value)
        return result

    def without(self, *names: str) -> "Headers":
        """Return a copy with every header in ``names`` removed."""
        drop = {name.lower() for name in names}
        copy = Headers()
        copy._items = {k: v for k, v in self._items.items() if k not in drop}
        return copy


class BodyStrategy(Enum):
    NONE = "none"
    FULL = "full"
    SINGLE_RANGE = "single-range"
    MULTIPART = "multipart"
    ERROR_JSON = "error-json"


@dataclass(frozen=True)
class ResponseIntent:
    """
    The outcome of negotiation for one request.

    Attributes:
        status: Status code to send.
        headers: Complete header set (framing headers included).
        strategy: How the streamer produces the body.
        ranges: Byte windows for SINGLE_RANGE / MULTIPART.
        encoding: ``"gzip"`` when the FULL body is compressed, else None.
        boundary: Multipart boundary token.
        part_type: Content-Type written inside each multipart part.
        size: Total resource length, for multipart Content-Range lines.
        body: Literal body for ERROR_JSON.
    """

    status: HTTPStatus
    headers: Headers
    strategy: BodyStrategy
    ranges: Tuple[ByteRange, ...] = ()
    encoding: Optional[str] = None
    boundary: Optional[str] = None
    part_type: Optional[str] = None
    size: int = 0
    body: bytes = field(default=b"", repr=False)

    @property
    def is_chunked(self) -> bool:
        return self.headers.get("Transfer-Encoding", "").lower() == "chunked"


# =============================================================================
# HTTP DATES
# =============================================================================

def format_http_date(value: datetime | float) -> str:
    """
    IMF-fixdate (RFC 7231), always GMT: ``Wed, 01 Jan 2026 12:00:00 GMT``.

    Accepts a datetime or a POSIX timestamp.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        value = value.timestamp()
    return formatdate(value, usegmt=True)


def parse_http_date(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an HTTP date header into an aware UTC datetime.

    Returns None for a missing or unparseable value; callers treat that as
    its own case instead of comparing against a sentinel.
    """
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value.strip())
    except (TypeError, ValueError, IndexError, OverflowError):
        return None
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    try:
        return parsed.astimezone(timezone.utc)
    except OverflowError:
        # e.g. 31 Dec 9999 at a negative offset lands past datetime.max
        return None


# =============================================================================
# SERIALIZATION
# =============================================================================

def serialize_head(
    status: HTTPStatus,
    headers: Headers,
    server_name: str = "fileserver/1.0",
    version: str = "HTTP/1.1",
) -> bytes:
    """
    Status line plus header block, terminated by the empty line.

    ``Date`` and ``Server`` are added when absent.

        HTTP/1.1 206 Partial Content\\r\\n
        Content-Range: bytes 0-99/1000\\r\\n
        ...
        \\r\\n
    """
    if "Date" not in headers:
        headers = headers.with_header("Date", format_http_date(datetime.now(timezone.utc)))
    if "Server" not in headers:
        headers = headers.with_header("Server", server_name)

    lines = [f"{version} {int(status)} {status.phrase}"]
    lines.extend(f"{name}: {value}" for name, value in headers.items())
    lines.append("")
    return ("\r\n".join(lines) + "\r\n").encode("latin-1")
