"""
=============================================================================
RANGE REQUESTS
=============================================================================

Lets a client fetch part of a file: resuming a download, seeking in a
video, reading the tail of a log.

    ┌─────────────────────────────┬──────────────────────────────────────┐
    │ Request                     │ Response                             │
    ├─────────────────────────────┼──────────────────────────────────────┤
    │ (no Range)                  │ not handled here → full 200          │
    │ Range: bytes=0-99           │ 206, Content-Range: bytes 0-99/N     │
    │ Range: bytes=-500           │ 206, the last 500 bytes              │
    │ Range: bytes=0-9,50-59      │ 206, multipart/byteranges            │
    │ Range: bytes=999999-        │ 416 (beyond the end)                 │
    │ Range: pages=1              │ 416 (malformed)                      │
    └─────────────────────────────┴──────────────────────────────────────┘

=============================================================================
IF-RANGE: "ONLY IF IT'S STILL THE SAME FILE"
=============================================================================

A client resuming a download sends the validator of the copy it has:

    Range: bytes=5000-
    If-Range: "1f4-18c2a9b3f00"         (or an HTTP date)

If the file changed in between, stitching new bytes onto the old prefix
would corrupt it, so the server ignores the Range and sends the whole
file with 200 instead:

    If-Range is a date   → changed if date < mtime
    If-Range is anything → changed if it is not the current ETag

=============================================================================
MULTIPART/BYTERANGES
=============================================================================

Several ranges come back as one body with its own part headers (framing
is written by the streamer). The total length is not computed up front,
so the response uses chunked transfer coding instead of Content-Length.

=============================================================================
"""

import logging
import uuid
from typing import Optional

from .resolver import Resource
from ..errors import RangeNotSatisfiable
from ..http.range_parser import RangeError, parse_range
from ..http.request import HTTPRequest
from ..http.response import (
    BodyStrategy,
    Headers,
    ResponseIntent,
    parse_http_date,
)
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


class RangeNegotiator:
    """
    Turns a Range header into a 206 ResponseIntent.

    Args:
        combine: Merge overlapping/adjacent ranges before responding.
    """

    def __init__(self, combine: bool = False):
        self.combine = combine

    def negotiate(self, request: HTTPRequest, resource: Resource,
                  headers: Headers) -> Optional[ResponseIntent]:
        """
        Returns:
            A 206 intent, or None when the request has no Range header or
            If-Range says the client's copy is stale (serve the full file).

        Raises:
            RangeNotSatisfiable: Range is malformed or outside the file.
        """
        range_header = request.get_header("Range")
        if not range_header:
            return None

        ranges = parse_range(resource.size, range_header, combine=self.combine)
        if isinstance(ranges, RangeError):
            raise RangeNotSatisfiable(f"Invalid range {range_header}")

        if not self.if_range_matches(request, resource, headers.get("ETag", "")):
            logger.debug(f"If-Range mismatch, sending full body: {request.path}")
            return None

        headers = headers.without("Content-Length", "Content-Encoding", "Transfer-Encoding")

        if len(ranges) == 1:
            byte_range = ranges[0]
            return ResponseIntent(
                status=HTTPStatus.PARTIAL_CONTENT,
                headers=headers.with_headers({
                    "Content-Type": resource.content_type,
                    "Content-Range": byte_range.content_range(resource.size),
                    "Content-Length": byte_range.length,
                }),
                strategy=BodyStrategy.SINGLE_RANGE,
                ranges=(byte_range,),
                size=resource.size,
            )

        boundary = uuid.uuid4().hex
        return ResponseIntent(
            status=HTTPStatus.PARTIAL_CONTENT,
            headers=headers.with_headers({
                "Content-Type": f"multipart/byteranges; boundary={boundary}",
                "Transfer-Encoding": "chunked",
            }),
            strategy=BodyStrategy.MULTIPART,
            ranges=tuple(ranges),
            boundary=boundary,
            part_type=resource.content_type,
            size=resource.size,
        )

    @staticmethod
    def if_range_matches(request: HTTPRequest, resource: Resource, etag: str) -> bool:
        """True when there is no If-Range, or it still describes ``resource``."""
        if_range = request.get_header("If-Range").strip()
        if not if_range:
            return True

        date = parse_http_date(if_range)
        if date is not None:
            return date.timestamp() >= resource.mtime_seconds
        return if_range == etag
