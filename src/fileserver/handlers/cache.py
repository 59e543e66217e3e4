"""
=============================================================================
CONDITIONAL REQUESTS (CACHE VALIDATION)
=============================================================================

Browsers keep a copy of what they downloaded. On the next visit they ask
"has it changed?" instead of downloading again:

    First visit:
    ┌───────────────────────────────────────────────────────────────┐
    │ GET /app.js                                                   │
    │                                   200 OK                      │
    │                                   ETag: "1f4-18c2a9b3f00"     │
    │                                   Last-Modified: Wed, ...     │
    │                                   Cache-Control: public,      │
    │                                                  max-age=600  │
    └───────────────────────────────────────────────────────────────┘

    Revalidation (after max-age ran out):
    ┌───────────────────────────────────────────────────────────────┐
    │ GET /app.js                                                   │
    │ If-None-Match: "1f4-18c2a9b3f00"                              │
    │ If-Modified-Since: Wed, ...                                   │
    │                                   304 Not Modified            │
    │                                   (no body)                   │
    └───────────────────────────────────────────────────────────────┘

=============================================================================
VALIDATORS
=============================================================================

    ETag           "<hex size>-<hex mtime in ms>"
    Last-Modified  mtime as an HTTP date (second precision)

Both are pure functions of the file's size and modification time, so two
requests for an unchanged file always get the same values, and any write
that changes size or mtime changes the ETag.

Comparison is deliberately simple: strong equality for If-None-Match, and
``If-Modified-Since >= mtime`` for dates. No weak validators, no lists.

=============================================================================
INTERVIEW QUESTIONS ABOUT CACHING
=============================================================================

Q: "Why send both ETag and Last-Modified?"
A: "Older caches only understand Last-Modified. ETag is more precise:
   HTTP dates have one-second resolution, so two writes within the same
   second look identical by date but not by ETag."

Q: "Why does a 304 drop Content-Length?"
A: "A 304 has no body. A Content-Length describing a body that is not
   sent would make the client wait for bytes that never come, or update
   its cached copy's metadata wrongly."

=============================================================================
"""

import logging
from typing import Optional

from .resolver import Resource
from ..http.request import HTTPRequest
from ..http.response import (
    BodyStrategy,
    Headers,
    ResponseIntent,
    format_http_date,
    parse_http_date,
)
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)

# Headers that describe a body; a 304 must not carry them
CONTENT_HEADERS = (
    "Content-Type",
    "Content-Length",
    "Content-Encoding",
    "Content-Range",
    "Transfer-Encoding",
)


def make_etag(size: int, mtime_ns: int) -> str:
    """
    Strong ETag from size and modification time.

        >>> make_etag(500, 1_700_000_000_123_456_789)
        '"1f4-18bcfe5687b"'
    """
    mtime_ms = mtime_ns // 1_000_000
    return f'"{size:x}-{mtime_ms:x}"'


class CacheNegotiator:
    """
    Sets validators and decides between 304 and "continue".

    Args:
        max_age: Value for ``Cache-Control: public, max-age=N``.
    """

    def __init__(self, max_age: int = 600):
        self.max_age = max_age

    def validators(self, resource: Resource, headers: Headers) -> Headers:
        """Return ``headers`` with ETag, Last-Modified and Cache-Control set."""
        return headers.with_headers({
            "Last-Modified": format_http_date(resource.mtime_seconds),
            "ETag": make_etag(resource.size, resource.mtime_ns),
            "Cache-Control": f"public, max-age={self.max_age}",
        })

    def negotiate(self, request: HTTPRequest, resource: Resource,
                  headers: Headers) -> tuple[Headers, Optional[ResponseIntent]]:
        """
        Apply validators, then check the request's conditionals.

        Returns:
            ``(headers, intent)``. ``intent`` is a 304 ResponseIntent when the
            client's copy is current, otherwise None and the caller continues
            with the returned (validator-bearing) headers.
        """
        headers = self.validators(resource, headers)

        if not self.is_not_modified(request, resource, headers["ETag"]):
            return headers, None

        logger.debug(f"Not modified: {request.path}")
        intent = ResponseIntent(
            status=HTTPStatus.NOT_MODIFIED,
            headers=headers.without(*CONTENT_HEADERS),
            strategy=BodyStrategy.NONE,
        )
        return headers, intent

    def is_not_modified(self, request: HTTPRequest, resource: Resource, etag: str) -> bool:
        if_none_match = request.get_header("If-None-Match")
        if if_none_match and if_none_match.strip() == etag:
            return True

        since = parse_http_date(request.get_header("If-Modified-Since"))
        if since is None:
            return False
        return since.timestamp() >= resource.mtime_seconds
